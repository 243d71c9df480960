"""URL canonicalisation and crawl-scope predicates.

``normalize_url`` collapses equivalent spellings of a URL to one frontier
key.  The remaining helpers decide whether a discovered link is eligible for
the crawl frontier.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

_HTTP_SCHEMES = frozenset({"http", "https"})

# Links to these are never pages worth crawling.
DENIED_EXTENSIONS: tuple[str, ...] = (
    # archives / binaries / documents
    "pdf", "zip", "exe", "dmg", "pkg", "rar", "7z", "tar", "gz", "bz2", "iso",
    # structured data, feeds, styles, scripts
    "xml", "rss", "atom", "json", "css", "js",
    # images
    "jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "ico", "tiff",
    # audio / video
    "mp3", "mp4", "avi", "mov", "wmv", "flv", "webm",
)

_DENIED_RE = re.compile(
    r"\.(?:" + "|".join(re.escape(ext) for ext in DENIED_EXTENSIONS) + r")$",
    re.IGNORECASE,
)


def normalize_url(url: str) -> str:
    """Return the canonical form of *url*.

    Drops the fragment, strips trailing slashes from the path (an empty path
    becomes ``/``), and lowercases scheme and host.  Path casing and the query
    string are preserved.  Anything that does not parse as an absolute URL is
    returned unchanged.
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc or not hostname:
        return url

    netloc = hostname
    if ":" in hostname:  # IPv6 literal
        netloc = f"[{hostname}]"
    if port is not None:
        netloc = f"{netloc}:{port}"
    userinfo, sep, _ = parts.netloc.rpartition("@")
    if sep:
        netloc = f"{userinfo}@{netloc}"

    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, ""))


def is_http_url(url: str) -> bool:
    """``True`` for absolute http/https URLs with a host."""
    try:
        parts = urlsplit(url)
        return parts.scheme.lower() in _HTTP_SCHEMES and bool(parts.hostname)
    except ValueError:
        return False


def host_of(url: str) -> str:
    """Lowercased hostname of *url*, or ``""`` when it has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def same_host(url: str, host: str) -> bool:
    return host_of(url) == host.lower()


def has_denied_extension(url: str) -> bool:
    """``True`` when the URL path ends in a non-page file extension."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    return bool(_DENIED_RE.search(path))

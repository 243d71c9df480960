"""
Breadth-first, single-domain URL collector.

Responsibilities:
- Validate the seed and derive the crawl host from it.
- Maintain a FIFO frontier plus a ``seen`` set, both bounded relative to
  ``max_pages``.
- Keep at most ``settings.crawl_concurrency`` fetches in flight.
- Stop dispatching when ``max_pages`` pages are recorded or the wall-clock
  deadline passes; in-flight pages are always drained before returning.

Only a malformed seed is an error.  Every per-page failure is logged and the
page is skipped.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Set
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from storescout.config import settings
from storescout.errors import InvalidSeedError
from storescout.scraper.fetcher import build_client, fetch_with_retry
from storescout.scraper.models import CrawlPageRecord
from storescout.scraper.urls import (
    has_denied_extension,
    host_of,
    is_http_url,
    normalize_url,
)

log = logging.getLogger(__name__)


def parse_page_metadata(html: str, max_description: int | None = None) -> tuple[str, str, BeautifulSoup]:
    """Return ``(title, description, soup)`` for an HTML document.

    The description is the first non-empty of ``meta[name=description]`` and
    ``meta[property=og:description]``, truncated to *max_description*.
    """
    if max_description is None:
        max_description = settings.description_max_length
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title is not None:
        title = soup.title.get_text().strip()

    description = ""
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        tag = soup.find("meta", attrs=attrs)
        content = (tag.get("content") or "").strip() if tag is not None else ""
        if content:
            description = content
            break

    return title, description[:max_description], soup


def extract_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Resolve every ``<a href>`` on the page against *base_url* and normalise it."""
    links: List[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor.get("href", "").strip()
        if not href:
            continue
        try:
            links.append(normalize_url(urljoin(base_url, href)))
        except ValueError:
            log.debug("Ignoring invalid href %r on %s", href, base_url)
    return links


@dataclass
class FrontierCrawler:
    """
    Crawl one host breadth-first starting from ``seed_url``.

    ``deadline`` is a budget in seconds measured from the start of
    :meth:`crawl`; ``None`` uses ``settings.collection_timeout``.
    """

    client: httpx.AsyncClient
    seed_url: str
    max_pages: int
    deadline: float | None = None
    concurrency: int = field(default_factory=lambda: settings.crawl_concurrency)

    # Frontier state
    queue: Deque[str] = field(default_factory=deque)
    seen: Set[str] = field(default_factory=set)
    results: List[CrawlPageRecord] = field(default_factory=list)

    host: str = field(init=False)
    normalized_seed: str = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.seed_url, str) or not is_http_url(self.seed_url):
            raise InvalidSeedError(f"Invalid seed URL provided: {self.seed_url!r}")
        self.normalized_seed = normalize_url(self.seed_url)
        self.host = host_of(self.normalized_seed)
        if self.deadline is None:
            self.deadline = settings.collection_timeout
        self.max_pages = max(0, int(self.max_pages))
        self.concurrency = max(1, int(self.concurrency))

    @property
    def seen_cap(self) -> int:
        return self.max_pages * settings.seen_cap_factor

    @property
    def queue_cap(self) -> int:
        return self.max_pages * settings.queue_cap_factor

    @property
    def is_full(self) -> bool:
        return len(self.results) >= self.max_pages

    def _is_candidate(self, url: str) -> bool:
        return (
            is_http_url(url)
            and host_of(url) == self.host
            and url not in self.seen
            and not has_denied_extension(url)
        )

    def _enqueue(self, url: str) -> bool:
        if not self._is_candidate(url):
            return False
        if len(self.seen) >= self.seen_cap or len(self.queue) >= self.queue_cap:
            return False
        self.seen.add(url)
        self.queue.append(url)
        return True

    async def _process_url(self, url: str) -> None:
        log.debug("Processing URL: %s", url)
        outcome = await fetch_with_retry(self.client, url)
        if not outcome.ok:
            log.info("Skipping %s: %s", url, outcome.error)
            return
        if not outcome.is_html:
            log.warning("Skipping non-HTML content at %s (Content-Type: %s)", url, outcome.content_type)
            return
        html = outcome.body or ""
        if len(html) < settings.min_content_length:
            log.warning("Skipping invalid or too short HTML content at %s", url)
            return

        title, description, soup = parse_page_metadata(html)

        if self.is_full:
            log.info("Reached max pages limit (%d); discarding %s", self.max_pages, url)
            return
        self.results.append(
            CrawlPageRecord(
                url=url,
                title=title,
                description=description,
                status=outcome.status_code or 0,
            )
        )
        log.info("Collected (%d/%d): %s (%s)", len(self.results), self.max_pages, url, title)

        added = sum(1 for link in extract_links(soup, url) if self._enqueue(link))
        if added:
            log.debug(
                "Found %d new link(s) on %s. Queue: %d, seen: %d",
                added, url, len(self.queue), len(self.seen),
            )

    async def _run_one(self, url: str) -> None:
        try:
            await self._process_url(url)
        except Exception:  # noqa: BLE001
            log.exception("Failed to process URL %s", url)

    async def crawl(self) -> List[CrawlPageRecord]:
        """Run the traversal and return the recorded pages in completion order."""
        log.info("Starting URL collection. Seed: %s, max pages: %d", self.normalized_seed, self.max_pages)
        started = time.monotonic()

        self.queue.clear()
        self.seen.clear()
        self.results.clear()
        self.seen.add(self.normalized_seed)
        self.queue.append(self.normalized_seed)

        in_flight: Set[asyncio.Task] = set()
        try:
            while not self.is_full:
                remaining = self.deadline - (time.monotonic() - started)
                if remaining <= 0:
                    log.warning(
                        "URL collection deadline reached after %.2fs. Collected %d page(s).",
                        time.monotonic() - started, len(self.results),
                    )
                    break

                if self.queue and len(in_flight) < self.concurrency:
                    url = self.queue.popleft()
                    in_flight.add(asyncio.create_task(self._run_one(url)))
                    continue

                if not in_flight:
                    break  # frontier exhausted

                done, _ = await asyncio.wait(
                    in_flight, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                in_flight -= done
        finally:
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

        log.info("URL collection finished. Collected %d page(s).", len(self.results))
        return list(self.results)


async def collect_urls(
    client: httpx.AsyncClient | None,
    seed_url: str,
    max_pages: int,
    *,
    deadline: float | None = None,
) -> List[CrawlPageRecord]:
    """Collect up to *max_pages* HTML pages reachable from *seed_url* on its host.

    Raises:
        InvalidSeedError: If *seed_url* is not an absolute http(s) URL.
    """
    if client is None:
        async with build_client() as own_client:
            return await collect_urls(own_client, seed_url, max_pages, deadline=deadline)
    crawler = FrontierCrawler(client=client, seed_url=seed_url, max_pages=max_pages, deadline=deadline)
    return await crawler.crawl()

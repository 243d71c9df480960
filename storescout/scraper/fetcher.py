"""HTTP fetcher with bounded retry and exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping

import httpx

from storescout.config import settings
from storescout.scraper.models import FetchOutcome, FetchStatus

log = logging.getLogger(__name__)


def default_headers() -> dict[str, str]:
    """Browser-like request headers used for every page fetch."""
    return {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": settings.accept_language,
    }


def build_client(**kwargs) -> httpx.AsyncClient:
    """Return an ``httpx.AsyncClient`` configured for crawling.

    Redirects are followed, so a 3xx only reaches the classifier when it
    cannot be resolved.
    """
    kwargs.setdefault("headers", default_headers())
    kwargs.setdefault("timeout", settings.request_timeout)
    kwargs.setdefault("follow_redirects", True)
    return httpx.AsyncClient(**kwargs)


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
    retries: int | None = None,
    delay: float | None = None,
    _attempt: int = 1,
) -> FetchOutcome:
    """GET *url* and classify the response, retrying transient failures.

    Every HTTP status is treated as a normal response: 2xx is success, 429
    and 5xx are retried after sleeping *delay* seconds (growing by
    ``settings.retry_backoff_factor`` each time) while *retries* remain, and
    anything else is a terminal failure.  Transport errors (timeouts, refused
    connections) are terminal and never retried.

    Args:
        client: Shared async HTTP client.
        url: Absolute URL to fetch.
        timeout: Per-call timeout override in seconds.
        headers: Extra headers merged over the client defaults.
        retries: Retries remaining; defaults to ``settings.max_retries``.
        delay: Seconds to sleep before the next retry; defaults to
            ``settings.retry_initial_delay``.

    Returns:
        A terminal :class:`FetchOutcome`.  This function does not raise for
        HTTP or transport failures.
    """
    if retries is None:
        retries = settings.max_retries
    if delay is None:
        delay = settings.retry_initial_delay

    log.debug("Fetching URL: %s (retries left: %d)", url, retries)
    try:
        response = await client.get(
            url,
            headers=dict(headers) if headers else None,
            timeout=timeout if timeout is not None else settings.request_timeout,
        )
    except httpx.HTTPError as exc:
        log.warning("Error fetching %s: %s", url, exc)
        return FetchOutcome(
            status=FetchStatus.NON_RETRYABLE,
            error=f"{type(exc).__name__}: {exc}",
            attempts=_attempt,
        )

    status_code = response.status_code
    content_type = response.headers.get("content-type")
    log.debug("Response from %s: status %d, %d bytes", url, status_code, len(response.content))

    if 200 <= status_code < 300:
        return FetchOutcome(
            status=FetchStatus.SUCCESS,
            status_code=status_code,
            body=response.text,
            content_type=content_type,
            attempts=_attempt,
        )

    reason = f"HTTP {status_code} {response.reason_phrase}".strip()
    if not _is_retryable(status_code):
        log.warning("Error fetching %s: %s - not retrying", url, reason)
        return FetchOutcome(
            status=FetchStatus.NON_RETRYABLE,
            status_code=status_code,
            content_type=content_type,
            error=reason,
            attempts=_attempt,
        )

    if retries <= 0:
        log.error("Failed to fetch %s after %d attempt(s): %s", url, _attempt, reason)
        return FetchOutcome(
            status=FetchStatus.RETRIES_EXHAUSTED,
            status_code=status_code,
            content_type=content_type,
            error=reason,
            attempts=_attempt,
        )

    log.warning("Error fetching %s: %s - retrying in %.2fs", url, reason, delay)
    await asyncio.sleep(delay)
    return await fetch_with_retry(
        client,
        url,
        timeout=timeout,
        headers=headers,
        retries=retries - 1,
        delay=delay * settings.retry_backoff_factor,
        _attempt=_attempt + 1,
    )

"""Batch content extraction: turns a slice of the caller's URL list into text.

The extractor is stateless.  Each call processes exactly one slice of the
list, ``pages[batch_index * batch_size : (batch_index + 1) * batch_size]``,
and returns a :class:`BatchProgress` cursor; the caller keeps the URL list and
replays the cursor's ``next`` index on its following call.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

import httpx
import trafilatura
from bs4 import BeautifulSoup

from storescout.config import settings
from storescout.scraper.fetcher import fetch_with_retry
from storescout.scraper.models import BatchProgress, ExtractionResult, PageRef

log = logging.getLogger(__name__)

EMPTY_CONTENT_ERROR = "Extraction service returned empty content"


class ExtractionError(Exception):
    """Raised by an extraction service when it cannot produce text for a URL."""


# ---------------------------------------------------------------------------
# Extraction services
# ---------------------------------------------------------------------------

class ExtractionService(ABC):
    """Turns one page URL into plain readable text."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable service name."""

    @abstractmethod
    async def extract(self, url: str) -> str:
        """Return the page text (possibly empty).  Raise on failure."""


class ReaderExtractionService(ExtractionService):
    """Remote reader service: ``GET {base_url}{target}`` returns plain text."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url if base_url is not None else settings.reader_base_url
        self._api_key = api_key if api_key is not None else settings.reader_api_key
        self._timeout = timeout if timeout is not None else settings.extraction_timeout

    @property
    def name(self) -> str:
        return "reader"

    async def extract(self, url: str) -> str:
        headers = {"Accept": "text/plain"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        outcome = await fetch_with_retry(
            self._client,
            f"{self._base_url}{url}",
            headers=headers,
            timeout=self._timeout,
        )
        if not outcome.ok:
            raise ExtractionError(outcome.error or "Extraction request failed")
        return (outcome.body or "").strip()


def _bs4_fallback(html: str) -> str:
    """Extract readable text using BeautifulSoup ``<main>``/``<article>`` heuristics."""
    soup = BeautifulSoup(html, "html.parser")
    # Strip non-content elements
    for tag in soup(["script", "style", "nav", "footer", "header"]):
        tag.decompose()
    container = soup.find("main") or soup.find("article") or soup.body
    if container is None:
        return soup.get_text(separator=" ", strip=True)
    return container.get_text(separator=" ", strip=True)


def html_to_text(html: str, url: str | None = None) -> str:
    """Readable text of *html*: trafilatura first, BeautifulSoup heuristic second."""
    text: str | None = trafilatura.extract(
        html,
        include_links=False,
        include_images=False,
        include_tables=True,
        no_fallback=False,
        url=url,
    )
    if not text:
        text = _bs4_fallback(html)
    return (text or "").strip()


class LocalExtractionService(ExtractionService):
    """Fetches the page directly and extracts text in-process."""

    def __init__(self, client: httpx.AsyncClient, timeout: float | None = None) -> None:
        self._client = client
        self._timeout = timeout if timeout is not None else settings.request_timeout

    @property
    def name(self) -> str:
        return "local"

    async def extract(self, url: str) -> str:
        outcome = await fetch_with_retry(self._client, url, timeout=self._timeout)
        if not outcome.ok:
            raise ExtractionError(outcome.error or "Page request failed")
        if not outcome.is_html:
            raise ExtractionError(f"Unsupported content type: {outcome.content_type}")
        # trafilatura parses with lxml; keep it off the event loop.
        return await asyncio.to_thread(html_to_text, outcome.body or "", url)


def get_extraction_service(client: httpx.AsyncClient, provider: str | None = None) -> ExtractionService:
    """Return the extraction service named by *provider* (default from settings)."""
    provider = (provider or settings.extraction_provider).lower()
    if provider == "local":
        return LocalExtractionService(client)
    if provider == "reader":
        return ReaderExtractionService(client)
    raise ValueError(f"Unknown extraction provider: {provider!r}")


# ---------------------------------------------------------------------------
# Batch processing
# ---------------------------------------------------------------------------

def clamp_batch_size(batch_size: int | None) -> int:
    if not batch_size or batch_size < 1:
        batch_size = settings.default_batch_size
    return max(1, min(int(batch_size), settings.max_batch_size))


async def _extract_one(
    service: ExtractionService,
    page: PageRef,
    semaphore: asyncio.Semaphore,
) -> ExtractionResult:
    async with semaphore:
        log.debug("Requesting content from %s service for %s", service.name, page.url)
        try:
            text = await service.extract(page.url)
        except Exception as exc:  # noqa: BLE001
            log.error("Failed to extract content for %s: %s", page.url, exc)
            return ExtractionResult.failed(page, str(exc) or type(exc).__name__)

    if not text:
        log.warning("Empty content returned for %s", page.url)
        return ExtractionResult.failed(page, EMPTY_CONTENT_ERROR)

    log.debug("Extracted %d chars for %s", len(text), page.url)
    return ExtractionResult.ok(page, text)


async def extract_batch(
    pages: Sequence[PageRef],
    batch_index: int,
    batch_size: int,
    *,
    service: ExtractionService,
) -> tuple[List[ExtractionResult], BatchProgress]:
    """Extract one batch of *pages* and report where the job stands.

    Args:
        pages: The full, caller-owned URL list.
        batch_index: 0-based index of the batch to process.
        batch_size: URLs per batch, clamped to ``settings.max_batch_size``.
        service: Extraction backend to use.

    Returns:
        ``(results, progress)``.  Per-URL failures are reported as failed
        :class:`ExtractionResult` entries; this function does not raise for
        them.
    """
    batch_index = max(0, int(batch_index))
    batch_size = clamp_batch_size(batch_size)
    total = len(pages)

    start = batch_index * batch_size
    end = min(start + batch_size, total)
    log.info(
        "Starting content extraction. Batch index: %d, batch size: %d, total URLs: %d",
        batch_index, batch_size, total,
    )

    if start >= total:
        log.warning("No URLs to process in batch %d.", batch_index)
        return [], BatchProgress.for_slice(batch_index, total, total)

    log.info("Processing URLs %d to %d of %d", start + 1, end, total)
    semaphore = asyncio.Semaphore(max(1, settings.extraction_concurrency))
    results: List[ExtractionResult] = list(
        await asyncio.gather(*(_extract_one(service, page, semaphore) for page in pages[start:end]))
    )

    success_count = sum(1 for r in results if r.success)
    log.info(
        "Content extraction finished for batch %d. Success: %d/%d",
        batch_index, success_count, end - start,
    )
    return results, BatchProgress.for_slice(batch_index, end, total)


async def extract_all(
    pages: Sequence[PageRef],
    batch_size: int,
    *,
    service: ExtractionService,
    start: int = 0,
) -> tuple[List[ExtractionResult], BatchProgress]:
    """Drive :func:`extract_batch` from batch *start* to the end by following the cursor."""
    collected: List[ExtractionResult] = []
    batch_index = max(0, start)
    while True:
        results, progress = await extract_batch(pages, batch_index, batch_size, service=service)
        collected.extend(results)
        if progress.is_complete:
            return collected, progress
        batch_index = progress.next

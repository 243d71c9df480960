"""Single-invocation pipeline for small sites.

``process_all`` chains the three stages inside one call:

    collect URLs → extract every collected page → analyse the extracted text

It caps the crawl at ``settings.process_all_max_pages`` so that all three
stages fit one invocation's time budget.  Larger sites should drive the
stages separately through the API.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from storescout.analysis.analyzer import analyze_content, get_llm
from storescout.config import settings
from storescout.errors import InvalidSeedError
from storescout.scraper.crawler import collect_urls
from storescout.scraper.extractor import ExtractionService, extract_all, get_extraction_service
from storescout.scraper.models import PageRef, utc_now_iso
from storescout.scraper.urls import is_http_url

log = logging.getLogger(__name__)


async def process_all(
    client: httpx.AsyncClient,
    seed_url: str,
    max_pages: int | None = None,
    store_type: str | None = None,
    *,
    service: ExtractionService | None = None,
    llm: Any = None,
) -> dict[str, Any]:
    """Crawl, extract and analyse *seed_url* in one go.

    Returns a dict with ``storeInfo``, ``processedUrls``, ``urlCount``,
    ``durationMs`` and ``timestamp``, or a dict carrying ``error`` and the
    counts reached when a stage produced nothing usable for the next one.

    Raises:
        InvalidSeedError: If *seed_url* is not an absolute http(s) URL.
        ConfigurationError: If the analysis model is not configured.
    """
    cap = settings.process_all_max_pages
    max_pages = min(max_pages or settings.process_all_default_pages, cap)
    store_type = store_type or settings.default_store_type
    log.info(
        "Starting all-in-one process. URL: %s, max pages: %d, store type: %s",
        seed_url, max_pages, store_type,
    )
    if not is_http_url(seed_url):
        raise InvalidSeedError(f"Invalid seed URL provided: {seed_url!r}")
    # Fail on missing model configuration before spending time on the crawl.
    if llm is None:
        llm = get_llm()
    started = time.monotonic()

    # ------------------------------------------------------------------
    # 1. Collect URLs
    # ------------------------------------------------------------------
    collected = await collect_urls(client, seed_url, max_pages)
    if not collected:
        log.warning("No URLs collected. Aborting process-all.")
        return {"error": "No URLs were collected from the seed URL.", "urlCount": {"collected": 0}}

    # ------------------------------------------------------------------
    # 2. Extract every collected page, one cursor step at a time
    # ------------------------------------------------------------------
    if service is None:
        service = get_extraction_service(client)
    pages = [PageRef.from_record(record) for record in collected]
    results, _ = await extract_all(pages, settings.max_batch_size, service=service)

    valid = [r for r in results if r.success and r.content]
    if not valid:
        log.warning("No valid content could be extracted from the collected URLs.")
        return {
            "error": "Failed to extract content from any URL.",
            "urlCount": {
                "collected": len(collected),
                "processed": len(results),
                "successfulExtraction": 0,
            },
        }
    log.info("Extracted content from %d/%d page(s).", len(valid), len(results))

    # ------------------------------------------------------------------
    # 3. Analyse
    # ------------------------------------------------------------------
    record = await analyze_content(valid, store_type, llm=llm)

    duration_ms = int((time.monotonic() - started) * 1000)
    log.info("All-in-one process completed in %.2fs.", duration_ms / 1000)
    return {
        "storeInfo": record.to_dict(),
        "processedUrls": [r.url for r in valid],
        "urlCount": {
            "collected": len(collected),
            "processedForExtraction": len(results),
            "successfulExtraction": len(valid),
            "analyzed": len(valid),
        },
        "durationMs": duration_ms,
        "timestamp": utc_now_iso(),
    }

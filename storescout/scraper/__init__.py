"""Scraper package — fetch, crawl and content extraction."""

from storescout.scraper.crawler import FrontierCrawler, collect_urls
from storescout.scraper.extractor import extract_all, extract_batch, get_extraction_service
from storescout.scraper.fetcher import build_client, fetch_with_retry
from storescout.scraper.models import (
    BatchProgress,
    CrawlPageRecord,
    ExtractionResult,
    FetchOutcome,
    FetchStatus,
    PageRef,
)
from storescout.scraper.urls import normalize_url

__all__ = [
    "BatchProgress",
    "CrawlPageRecord",
    "ExtractionResult",
    "FetchOutcome",
    "FetchStatus",
    "FrontierCrawler",
    "PageRef",
    "build_client",
    "collect_urls",
    "extract_all",
    "extract_batch",
    "fetch_with_retry",
    "get_extraction_service",
    "normalize_url",
]

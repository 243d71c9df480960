"""Scraper endpoint — one POST route dispatched by ``operationType``.

Routes
------
POST /                  Body: {"operationType": "...", ...}
POST /api/webscraper    Same endpoint under the serverless function path.
OPTIONS (both paths)    CORS preflight, 204.
Other methods           405.

Operations
----------
collect-urls      {"url", "maxPages"?}                      → urls, count, seedUrl
extract-content   {"urls": [{url, title?}], "batchIndex"?,
                   "batchSize"?}                             → contentResults, batchInfo
analyze-info      {"contentItems": [...], "storeType"?}     → storeInfo
process-all       {"url", "maxPages"?, "storeType"?}        → storeInfo, processedUrls,
                                                               urlCount, durationMs, timestamp

Every response carries ``success`` and ``requestId``.  ``"debug": true`` adds
the request's log entries as ``logs``.
"""

from __future__ import annotations

import logging
import math
import re
import sys
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from storescout.analysis.analyzer import analyze_content
from storescout.config import settings
from storescout.errors import ConfigurationError, InvalidSeedError
from storescout.logging_utils import capture_request_logs, new_request_id
from storescout.pipeline import process_all
from storescout.scraper.crawler import collect_urls
from storescout.scraper.extractor import clamp_batch_size, extract_batch, get_extraction_service
from storescout.scraper.models import ExtractionResult, PageRef

log = logging.getLogger(__name__)

router = APIRouter()

_HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_URL_ERROR = 'Valid "url" parameter starting with http:// or https:// is required.'


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

def _lenient_int(value: Any) -> Optional[int]:
    """Coerce numbers and numeric strings; anything else means "use the default".

    Positive infinity (JSON ``1e400``) becomes a huge number so the caller's clamp
    applies; NaN and negative infinity fall back to the default.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number):
        return None
    if math.isinf(number):
        return sys.maxsize if number > 0 else None
    return int(number)


def _lenient_str(value: Any) -> Optional[str]:
    """Strings pass through; anything else means "use the default"."""
    return value if isinstance(value, str) else None


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CollectUrlsRequest(_Request):
    url: str
    maxPages: Optional[int] = None

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        if not _HTTP_URL_RE.match(value):
            raise ValueError(_URL_ERROR)
        return value

    @field_validator("maxPages", mode="before")
    @classmethod
    def _pages(cls, value: Any) -> Optional[int]:
        return _lenient_int(value)


class UrlItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = Field(min_length=1)
    title: Optional[str] = None


class ExtractContentRequest(_Request):
    urls: list[UrlItem] = Field(min_length=1)
    batchIndex: Optional[int] = None
    batchSize: Optional[int] = None

    @field_validator("batchIndex", "batchSize", mode="before")
    @classmethod
    def _ints(cls, value: Any) -> Optional[int]:
        return _lenient_int(value)


class ContentItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    success: bool
    title: Optional[str] = None
    content: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[str] = None


class AnalyzeInfoRequest(_Request):
    contentItems: list[ContentItem] = Field(min_length=1)
    storeType: Optional[str] = None

    @field_validator("storeType", mode="before")
    @classmethod
    def _store_type(cls, value: Any) -> Optional[str]:
        return _lenient_str(value)


class ProcessAllRequest(CollectUrlsRequest):
    storeType: Optional[str] = None

    @field_validator("storeType", mode="before")
    @classmethod
    def _store_type(cls, value: Any) -> Optional[str]:
        return _lenient_str(value)


_VALIDATION_ERRORS: dict[type[BaseModel], str] = {
    CollectUrlsRequest: _URL_ERROR,
    ProcessAllRequest: _URL_ERROR,
    ExtractContentRequest: (
        'A non-empty array of URL objects (each with a "url" property) is required for "urls".'
    ),
    AnalyzeInfoRequest: (
        'A non-empty array of content item objects (each with "url" and "success" '
        'properties) is required for "contentItems".'
    ),
}


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def _collect_urls(request: Request, body: CollectUrlsRequest) -> dict[str, Any]:
    max_pages = body.maxPages if body.maxPages and body.maxPages > 0 else settings.default_max_pages
    max_pages = min(max_pages, settings.max_allowed_pages)
    records = await collect_urls(request.app.state.http, body.url, max_pages)
    return {
        "urls": [r.to_dict() for r in records],
        "count": len(records),
        "seedUrl": body.url,
    }


async def _extract_content(request: Request, body: ExtractContentRequest) -> dict[str, Any]:
    pages = [PageRef(url=item.url, title=item.title or "") for item in body.urls]
    batch_index = max(0, body.batchIndex or 0)
    batch_size = clamp_batch_size(body.batchSize)
    service = get_extraction_service(request.app.state.http)
    results, progress = await extract_batch(pages, batch_index, batch_size, service=service)
    return {
        "contentResults": [r.to_dict() for r in results],
        "batchInfo": progress.to_dict(),
    }


async def _analyze_info(request: Request, body: AnalyzeInfoRequest) -> dict[str, Any]:
    items = [ExtractionResult.from_dict(item.model_dump()) for item in body.contentItems]
    record = await analyze_content(items, body.storeType or settings.default_store_type)
    return {"storeInfo": record.to_dict()}


async def _process_all(request: Request, body: ProcessAllRequest) -> dict[str, Any]:
    max_pages = (
        body.maxPages if body.maxPages and body.maxPages > 0 else settings.process_all_default_pages
    )
    return await process_all(
        request.app.state.http,
        body.url,
        min(max_pages, settings.process_all_max_pages),
        body.storeType or settings.default_store_type,
    )


_Handler = Callable[[Request, Any], Awaitable[dict[str, Any]]]

OPERATIONS: dict[str, tuple[type[_Request], _Handler]] = {
    "collect-urls": (CollectUrlsRequest, _collect_urls),
    "extract-content": (ExtractContentRequest, _extract_content),
    "analyze-info": (AnalyzeInfoRequest, _analyze_info),
    "process-all": (ProcessAllRequest, _process_all),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _cors_headers() -> dict[str, str]:
    if "*" in settings.cors_allow_origins:
        return {"Access-Control-Allow-Origin": "*", "Access-Control-Allow-Headers": "Content-Type"}
    return {}


def _json_response(
    status_code: int,
    body: dict[str, Any],
    request_id: str,
    logs: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    if logs is not None:
        body["logs"] = logs
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Request-ID": request_id, **_cors_headers()},
    )


def _error(message: str, request_id: str) -> dict[str, Any]:
    return {"success": False, "requestId": request_id, "error": message}


async def _dispatch(request: Request, request_id: str) -> tuple[int, dict[str, Any], bool]:
    """Run the requested operation; return ``(status, body, debug)``."""
    try:
        payload = await request.json()
    except ValueError:
        log.error("Failed to parse request body as JSON.")
        return 400, _error("Invalid JSON format in request body.", request_id), False
    if not isinstance(payload, dict):
        log.error("Request body is not a JSON object.")
        return 400, _error("Request body must be a JSON object.", request_id), False

    debug = payload.get("debug") is True
    operation = payload.get("operationType")
    if not operation:
        log.error("Missing required parameter: operationType")
        return 400, _error("Missing required parameter: operationType", request_id), debug
    if operation not in OPERATIONS:
        log.error("Unknown operationType received: %s", operation)
        valid = ", ".join(OPERATIONS)
        return 400, _error(f"Invalid operationType: {operation}. Valid types are: {valid}.", request_id), debug

    schema, handler = OPERATIONS[operation]
    try:
        body = schema.model_validate(payload)
    except ValidationError as exc:
        log.error("Invalid parameters for %s: %s", operation, exc.errors(include_url=False))
        return 400, _error(_VALIDATION_ERRORS.get(schema, "Invalid request parameters."), request_id), debug

    log.info("Processing operationType: %s", operation)
    try:
        result = await handler(request, body)
    except InvalidSeedError as exc:
        log.error("Invalid seed for %s: %s", operation, exc)
        return 400, _error(str(exc), request_id), debug
    except ConfigurationError as exc:
        log.error("Configuration error during %s: %s", operation, exc)
        return 500, _error(f"Service is not configured: {exc}", request_id), debug
    except Exception:  # noqa: BLE001
        log.exception("Unhandled error during operation %s.", operation)
        message = (
            f"An internal server error occurred during operation {operation}. "
            "Please check logs for details."
        )
        return 500, _error(message, request_id), debug

    log.info("Operation %s completed.", operation)
    return 200, {"success": "error" not in result, "requestId": request_id, **result}, debug


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/")
@router.post("/api/webscraper")
async def scrape(request: Request) -> JSONResponse:
    """Run one pipeline operation selected by ``operationType``."""
    request_id = new_request_id()
    with capture_request_logs(request_id) as collector:
        log.info("Request received. Path: %s, Method: %s", request.url.path, request.method)
        try:
            status_code, body, debug = await _dispatch(request, request_id)
        except Exception:  # noqa: BLE001
            log.exception("Unhandled error while handling request.")
            status_code, debug = 500, False
            body = _error("An internal server error occurred. Please check logs for details.", request_id)
    logs = collector.entries if debug and settings.debug_logs_enabled else None
    return _json_response(status_code, body, request_id, logs)


@router.options("/")
@router.options("/api/webscraper")
async def preflight() -> Response:
    """CORS preflight for clients that reach the route directly."""
    return Response(
        status_code=204,
        headers={
            **_cors_headers(),
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Max-Age": "86400",
        },
    )


@router.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"])
@router.api_route("/api/webscraper", methods=["GET", "PUT", "PATCH", "DELETE"])
async def method_not_allowed() -> JSONResponse:
    request_id = new_request_id()
    return _json_response(
        405,
        _error("Method Not Allowed. Only POST is accepted.", request_id),
        request_id,
    )

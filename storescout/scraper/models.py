"""Data models for the crawl and extraction stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

# ``BatchProgress.next`` value once every batch has been processed.
NO_NEXT_BATCH = -1


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FetchStatus(str, Enum):
    SUCCESS = "success"
    NON_RETRYABLE = "non-retryable-error"
    RETRIES_EXHAUSTED = "retryable-error-exhausted"


@dataclass
class FetchOutcome:
    """Terminal result of one fetch-with-retry attempt chain."""

    status: FetchStatus
    status_code: int | None = None
    body: str | None = None
    content_type: str | None = None
    error: str | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.SUCCESS

    @property
    def is_html(self) -> bool:
        return "text/html" in (self.content_type or "").lower()


@dataclass(frozen=True)
class CrawlPageRecord:
    """One HTML page recorded during a crawl run."""

    url: str
    title: str
    description: str
    status: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "status": self.status,
        }


@dataclass(frozen=True)
class PageRef:
    """A caller-owned entry of the URL list handed to extraction."""

    url: str
    title: str = ""

    @classmethod
    def from_record(cls, record: CrawlPageRecord) -> "PageRef":
        return cls(url=record.url, title=record.title)


@dataclass
class ExtractionResult:
    """Outcome of extracting the readable text of one URL."""

    url: str
    title: str = ""
    success: bool = False
    content: str = ""
    error: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        if not self.content:
            self.success = False

    @property
    def content_length(self) -> int:
        return len(self.content)

    @classmethod
    def ok(cls, page: PageRef, content: str) -> "ExtractionResult":
        return cls(url=page.url, title=page.title, success=True, content=content)

    @classmethod
    def failed(cls, page: PageRef, error: str) -> "ExtractionResult":
        return cls(url=page.url, title=page.title, success=False, error=error)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExtractionResult":
        """Rebuild a result from its wire shape (as echoed back by callers)."""
        return cls(
            url=str(data.get("url", "")),
            title=str(data.get("title") or ""),
            success=bool(data.get("success", False)),
            content=str(data.get("content") or ""),
            error=data.get("error"),
            timestamp=str(data.get("timestamp") or utc_now_iso()),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "success": self.success,
            "content": self.content,
            "contentLength": self.content_length,
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class BatchProgress:
    """Cursor handed back to the caller after each extraction batch.

    ``is_complete`` holds exactly when ``processed_count >= total_count`` and
    ``next`` is :data:`NO_NEXT_BATCH` exactly when ``is_complete``.
    """

    current: int
    next: int
    is_complete: bool
    processed_count: int
    total_count: int

    @classmethod
    def for_slice(cls, batch_index: int, end: int, total: int) -> "BatchProgress":
        is_complete = end >= total
        return cls(
            current=batch_index,
            next=NO_NEXT_BATCH if is_complete else batch_index + 1,
            is_complete=is_complete,
            processed_count=end,
            total_count=total,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "next": self.next,
            "isComplete": self.is_complete,
            "processedCount": self.processed_count,
            "totalCount": self.total_count,
        }

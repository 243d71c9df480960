"""Data model for the final analysis record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from storescout.scraper.models import utc_now_iso


@dataclass
class AnalysisMeta:
    analyzed_urls: int
    total_urls_provided: int
    store_type: str
    model_used: str | None = None
    finish_reason: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "analyzedUrls": self.analyzed_urls,
            "totalUrlsProvided": self.total_urls_provided,
            "storeType": self.store_type,
            "timestamp": self.timestamp,
        }
        if self.model_used is not None:
            data["modelUsed"] = self.model_used
        if self.finish_reason is not None:
            data["finishReason"] = self.finish_reason
        return data


@dataclass
class AnalysisRecord:
    """Structured store information, or an error plus whatever the model said.

    On success ``fields`` holds the parsed attributes.  On failure ``error``
    is set and ``raw_response`` keeps the unparsed reply when there was one.
    """

    meta: AnalysisMeta
    fields: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    raw_response: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.fields)
        if self.error is not None:
            data["error"] = self.error
        if self.raw_response is not None:
            data["rawResponse"] = self.raw_response
        data["_meta"] = self.meta.to_dict()
        return data

"""
Pipeline-level exceptions.

Per-page and per-item failures are reported as values (``FetchOutcome``,
``ExtractionResult``, ``AnalysisRecord.error``); only the conditions below
escape as exceptions.
"""

from __future__ import annotations


class StoreScoutError(Exception):
    """Base exception for pipeline failures."""


class InvalidSeedError(StoreScoutError, ValueError):
    """Raised when a crawl seed is not an absolute http(s) URL."""


class ConfigurationError(StoreScoutError):
    """Raised when a required external service is not configured."""

"""Shared fixtures: pin the settings the tests depend on, whatever the environment says."""

from __future__ import annotations

import pytest

from storescout.config import settings


@pytest.fixture(autouse=True)
def _pinned_settings(monkeypatch):
    monkeypatch.setattr(settings, "log_level", "INFO")
    monkeypatch.setattr(settings, "reader_base_url", "https://r.jina.ai/")
    monkeypatch.setattr(settings, "reader_api_key", "")
    monkeypatch.setattr(settings, "extraction_provider", "reader")
    monkeypatch.setattr(settings, "llm_provider", "openai")
    monkeypatch.setattr(settings, "openai_api_key", "")
    monkeypatch.setattr(settings, "cors_allow_origins", ["*"])
    monkeypatch.setattr(settings, "debug_logs_enabled", True)
    monkeypatch.setattr(settings, "default_max_pages", 30)
    monkeypatch.setattr(settings, "max_allowed_pages", 50)
    monkeypatch.setattr(settings, "process_all_default_pages", 5)
    monkeypatch.setattr(settings, "default_batch_size", 5)
    monkeypatch.setattr(settings, "max_batch_size", 10)
    monkeypatch.setattr(settings, "max_retries", 2)
    monkeypatch.setattr(settings, "retry_initial_delay", 1.0)
    monkeypatch.setattr(settings, "retry_backoff_factor", 1.5)
    monkeypatch.setattr(settings, "crawl_concurrency", 3)
    monkeypatch.setattr(settings, "collection_timeout", 8.5)
    monkeypatch.setattr(settings, "min_content_length", 50)
    monkeypatch.setattr(settings, "analysis_max_content_length", 18000)
    monkeypatch.setattr(settings, "default_store_type", "general")

"""Centralised settings for the Store Scout service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from the package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )

    # ------------------------------------------------------------------
    # HTTP fetching
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
        )
    )
    accept_language: str = field(
        default_factory=lambda: os.environ.get(
            "ACCEPT_LANGUAGE", "ja-JP,ja;q=0.9,en-US;q=0.8,en;q=0.7"
        )
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "8.0"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.environ.get("MAX_RETRIES", "2"))
    )
    retry_initial_delay: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_INITIAL_DELAY", "1.0"))
    )
    retry_backoff_factor: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_BACKOFF_FACTOR", "1.5"))
    )

    # ------------------------------------------------------------------
    # URL collection (crawler)
    # ------------------------------------------------------------------
    default_max_pages: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_MAX_PAGES", "30"))
    )
    max_allowed_pages: int = field(
        default_factory=lambda: int(os.environ.get("MAX_ALLOWED_PAGES", "50"))
    )
    process_all_default_pages: int = field(
        default_factory=lambda: int(os.environ.get("PROCESS_ALL_DEFAULT_PAGES", "5"))
    )
    collection_timeout: float = field(
        default_factory=lambda: float(os.environ.get("COLLECTION_TIMEOUT", "8.5"))
    )
    crawl_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_CONCURRENCY", "3"))
    )
    min_content_length: int = field(
        default_factory=lambda: int(os.environ.get("MIN_CONTENT_LENGTH", "50"))
    )
    description_max_length: int = 250
    # Frontier bounds, as multiples of the requested page count.
    seen_cap_factor: int = field(
        default_factory=lambda: int(os.environ.get("SEEN_CAP_FACTOR", "5"))
    )
    queue_cap_factor: int = field(
        default_factory=lambda: int(os.environ.get("QUEUE_CAP_FACTOR", "3"))
    )

    # ------------------------------------------------------------------
    # Content extraction
    # ------------------------------------------------------------------
    extraction_provider: str = field(
        default_factory=lambda: os.environ.get("EXTRACTION_PROVIDER", "reader")
    )
    reader_base_url: str = field(
        default_factory=lambda: os.environ.get("READER_BASE_URL", "https://r.jina.ai/")
    )
    reader_api_key: str = field(
        default_factory=lambda: os.environ.get("READER_API_KEY", "")
    )
    extraction_timeout: float = field(
        default_factory=lambda: float(os.environ.get("EXTRACTION_TIMEOUT", "10.0"))
    )
    extraction_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("EXTRACTION_CONCURRENCY", "3"))
    )
    default_batch_size: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_BATCH_SIZE", "5"))
    )
    max_batch_size: int = field(
        default_factory=lambda: int(os.environ.get("MAX_BATCH_SIZE", "10"))
    )

    # ------------------------------------------------------------------
    # Analysis model
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "openai")
    )
    openai_api_key: str = field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY", "")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    analysis_max_content_length: int = field(
        default_factory=lambda: int(os.environ.get("ANALYSIS_MAX_CONTENT_LENGTH", "18000"))
    )
    analysis_max_output_tokens: int = field(
        default_factory=lambda: int(os.environ.get("ANALYSIS_MAX_OUTPUT_TOKENS", "4096"))
    )
    analysis_temperature: float = field(
        default_factory=lambda: float(os.environ.get("ANALYSIS_TEMPERATURE", "0.2"))
    )
    analysis_timeout: float = field(
        default_factory=lambda: float(os.environ.get("ANALYSIS_TIMEOUT", "24.0"))
    )
    default_store_type: str = field(
        default_factory=lambda: os.environ.get("DEFAULT_STORE_TYPE", "general")
    )

    # ------------------------------------------------------------------
    # HTTP API
    # ------------------------------------------------------------------
    cors_allow_origins: list[str] = field(
        default_factory=lambda: [
            o.strip()
            for o in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",")
            if o.strip()
        ]
    )
    debug_logs_enabled: bool = field(
        default_factory=lambda: _env_bool("DEBUG_LOGS_ENABLED", "true")
    )

    @property
    def process_all_max_pages(self) -> int:
        """Page cap for the single-invocation pipeline (half the platform cap)."""
        return max(1, self.max_allowed_pages // 2)


# Module-level singleton, import this everywhere:
#   from storescout.config import settings
settings = Settings()

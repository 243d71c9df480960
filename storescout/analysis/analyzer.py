"""Store analysis: combine extracted pages and ask the LLM for one JSON record.

``analyze_content`` never raises for upstream problems.  An unusable reply,
a timeout or a transport error comes back as an :class:`AnalysisRecord` with
``error`` set (and the raw reply kept when there was one).  The only
exception it lets through is :class:`ConfigurationError`, raised before any
work when the model provider is not configured.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Sequence

from storescout.analysis.categories import StoreCategory
from storescout.analysis.models import AnalysisMeta, AnalysisRecord
from storescout.analysis.prompt import build_analysis_prompt, build_combined_content
from storescout.config import settings
from storescout.errors import ConfigurationError
from storescout.scraper.models import ExtractionResult

log = logging.getLogger(__name__)

NO_CONTENT_ERROR = "No valid content provided for analysis."
PARSE_ERROR = "Failed to parse structured data from analysis response."
EMPTY_REPLY_ERROR = "Analysis service did not return any content."

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n(?P<body>.*?)\n?```$", re.DOTALL)


# ---------------------------------------------------------------------------
# LLM helper
# ---------------------------------------------------------------------------

def _model_name() -> str:
    if settings.llm_provider.lower() == "ollama":
        return settings.ollama_chat_model
    return settings.openai_chat_model


def get_llm() -> Any:
    """Return a LangChain chat model that replies with a JSON object.

    Raises:
        ConfigurationError: If the configured provider is unknown or lacks
            its credential.
    """
    provider = settings.llm_provider.lower()
    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not configured. Cannot perform analysis."
            )
        from langchain_openai import ChatOpenAI

        llm = ChatOpenAI(
            model=settings.openai_chat_model,
            api_key=settings.openai_api_key,
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_output_tokens,
            timeout=settings.analysis_timeout,
            max_retries=0,
        )
        return llm.bind(response_format={"type": "json_object"})

    if provider == "ollama":
        if not settings.ollama_base_url:
            raise ConfigurationError("OLLAMA_BASE_URL is not configured. Cannot perform analysis.")
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=settings.ollama_chat_model,
            base_url=settings.ollama_base_url,
            temperature=settings.analysis_temperature,
            num_predict=settings.analysis_max_output_tokens,
            format="json",
        )

    raise ConfigurationError(f"Unknown LLM_PROVIDER {settings.llm_provider!r}.")


def _message_text(response: Any) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        # Content blocks: keep the text parts.
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content or "")


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse *text* as one JSON object, tolerating a surrounding Markdown fence.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        stripped = match.group("body").strip()
    parsed = json.loads(stripped)
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def analyze_content(
    items: Sequence[ExtractionResult],
    store_type: str | None = None,
    *,
    llm: Any = None,
) -> AnalysisRecord:
    """Analyse extracted pages and return one structured store record.

    Args:
        items: Extraction results; only successful, non-blank ones are used.
        store_type: Category name selecting extra schema fields.  Unknown
            names use the base schema.
        llm: Chat model to call.  Defaults to the provider configured in
            ``settings``.

    Raises:
        ConfigurationError: If no *llm* is given and the configured provider
            cannot be built.
    """
    if llm is None:
        llm = get_llm()

    store_type = store_type or settings.default_store_type
    category = StoreCategory.parse(store_type)
    log.info("Starting content analysis. Store type: %s, items: %d", store_type, len(items))

    valid = [item for item in items if item.success and item.content and item.content.strip()]

    def _meta(**extra: Any) -> AnalysisMeta:
        return AnalysisMeta(
            analyzed_urls=len(valid),
            total_urls_provided=len(items),
            store_type=store_type,
            **extra,
        )

    if not valid:
        log.warning("No valid content items found for analysis.")
        return AnalysisRecord(meta=_meta(), error=NO_CONTENT_ERROR)

    content = build_combined_content(valid)
    prompt = build_analysis_prompt(category, content)
    log.debug("Analysis prompt: %d chars from %d page(s)", len(prompt), len(valid))

    from langchain_core.messages import HumanMessage

    try:
        response = await asyncio.wait_for(
            llm.ainvoke([HumanMessage(content=prompt)]),
            timeout=settings.analysis_timeout,
        )
    except Exception as exc:  # noqa: BLE001
        log.error("Analysis request failed: %r", exc)
        return AnalysisRecord(
            meta=_meta(), error=f"Analysis service request failed: {str(exc) or type(exc).__name__}"
        )

    raw = _message_text(response)
    metadata = getattr(response, "response_metadata", None) or {}
    model_used = metadata.get("model_name") or metadata.get("model") or _model_name()
    finish_reason = metadata.get("finish_reason") or metadata.get("done_reason")

    if not raw.strip():
        log.error("Analysis service returned an empty reply (finish reason: %s)", finish_reason)
        return AnalysisRecord(
            meta=_meta(model_used=model_used, finish_reason=finish_reason),
            error=EMPTY_REPLY_ERROR,
            raw_response=raw,
        )

    try:
        fields = parse_json_object(raw)
    except ValueError as exc:
        log.error("Failed to parse JSON from analysis response: %s", exc)
        log.debug("Raw analysis response:\n%s", raw)
        return AnalysisRecord(
            meta=_meta(model_used=model_used, finish_reason=finish_reason),
            error=PARSE_ERROR,
            raw_response=raw,
        )

    log.info("Parsed analysis response with %d field(s).", len(fields))
    return AnalysisRecord(
        meta=_meta(model_used=model_used, finish_reason=finish_reason),
        fields=fields,
    )

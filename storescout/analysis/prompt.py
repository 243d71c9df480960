"""Prompt construction for store analysis."""

from __future__ import annotations

import json
import logging
from typing import Sequence

from storescout.analysis.categories import StoreCategory
from storescout.config import settings
from storescout.scraper.models import ExtractionResult

log = logging.getLogger(__name__)

ITEM_TRUNCATION_MARKER = "...[truncated]"
COMBINED_TRUNCATION_MARKER = "\n\n...[Combined content truncated]"
ITEM_SEPARATOR = "\n\n---\n\n"

_INSTRUCTIONS = """\
You are an expert at extracting store information from websites. Read the \
content of the web pages below and extract the store's details into the JSON \
object described at the end.

Extraction rules:
1. Accuracy first: when several pages mention the same fact, use the most \
explicit and detailed statement. If a field is not clearly stated, use null, \
an empty string "" or an empty array []. Never guess or invent values.
2. Coverage: look for every field of the schema.
3. Consistency: keep phone numbers, addresses and opening hours in one format.
4. Output: reply with a single JSON object that follows the schema. Do not \
add any text outside the JSON object.

Website content:
--- BEGIN CONTENT ---
{content}
--- END CONTENT ---

Output format (JSON):
"""


def build_combined_content(items: Sequence[ExtractionResult], budget: int | None = None) -> str:
    """Join page texts into one block no longer than *budget* (plus markers).

    The budget is split evenly between pages; each page is cut to its share
    first, then the joined text is hard-truncated if it still overflows.
    """
    if budget is None:
        budget = settings.analysis_max_content_length
    if not items:
        return ""

    share = budget // len(items)
    parts: list[str] = []
    for item in items:
        text = item.content
        if len(text) > share:
            text = text[:share] + ITEM_TRUNCATION_MARKER
        parts.append(f"## Page URL: {item.url}\n## Page Title: {item.title or 'N/A'}\n\n{text}")

    combined = ITEM_SEPARATOR.join(parts)
    if len(combined) > budget:
        log.warning(
            "Combined content length (%d) exceeds limit (%d). Truncating.", len(combined), budget
        )
        combined = combined[:budget] + COMBINED_TRUNCATION_MARKER
    return combined


def build_analysis_prompt(category: StoreCategory, content: str) -> str:
    """Full instruction payload: extraction rules, content, and the JSON schema."""
    schema = json.dumps(category.schema(), ensure_ascii=False, indent=2)
    return _INSTRUCTIONS.format(content=content) + f"```json\n{schema}\n```"

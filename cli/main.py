"""Store Scout CLI — drive the pipeline stages from the command line.

Usage:
    python cli/main.py --help

Each sub-command maps to one pipeline stage:
    collect   → crawl a site and list its pages
    extract   → extract page text, one batch per call (cursor kept in a state file)
    analyze   → turn extracted text into one store record
    run       → all three stages in one go (small sites)
    serve     → start the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from storescout.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import Any, Optional

import typer

from storescout.analysis.analyzer import analyze_content
from storescout.config import settings
from storescout.errors import StoreScoutError
from storescout.logging_utils import configure_logging
from storescout.pipeline import process_all
from storescout.scraper.crawler import collect_urls
from storescout.scraper.extractor import (
    clamp_batch_size,
    extract_all,
    extract_batch,
    get_extraction_service,
)
from storescout.scraper.fetcher import build_client
from storescout.scraper.models import NO_NEXT_BATCH, ExtractionResult, PageRef

app = typer.Typer(
    name="storescout",
    help="Store Scout pipeline CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level."),
) -> None:
    configure_logging(log_level.upper())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _emit(data: Any, output: Optional[Path]) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"Wrote {output}", err=True)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(1)
    except json.JSONDecodeError as exc:
        typer.echo(f"Invalid JSON in {path}: {exc}", err=True)
        raise typer.Exit(1)


def _items(data: Any, key: str) -> list[dict[str, Any]]:
    """Accept either a bare list or an API response object holding *key*."""
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict) and item.get("url")]


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except StoreScoutError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


def _load_cursor(state_file: Path) -> int:
    if not state_file.exists():
        return 0
    state = _read_json(state_file)
    return int(state.get("batchIndex", 0)) if isinstance(state, dict) else 0


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("collect")
def collect(
    url: str = typer.Option(..., help="Seed URL (http or https)."),
    max_pages: int = typer.Option(settings.default_max_pages, help="Maximum pages to record."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
) -> None:
    """Crawl one site breadth-first and print its pages as JSON."""
    max_pages = min(max(1, max_pages), settings.max_allowed_pages)

    async def _collect() -> list[Any]:
        async with build_client() as client:
            return await collect_urls(client, url, max_pages)

    records = _run(_collect())
    typer.echo(f"Collected {len(records)} page(s) from {url}", err=True)
    _emit({"urls": [r.to_dict() for r in records], "count": len(records), "seedUrl": url}, output)


@app.command("extract")
def extract(
    urls_file: Path = typer.Option(..., help="JSON list of {url, title} (or `collect` output)."),
    state_file: Path = typer.Option(
        Path(".storescout-extract.json"), help="Cursor state between invocations."
    ),
    batch_size: int = typer.Option(settings.default_batch_size, help="Pages per batch."),
    all_batches: bool = typer.Option(False, "--all", help="Keep going until every page is done."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
) -> None:
    """Extract page text for the next batch of URLs.

    The batch cursor is read from and written back to --state-file, so
    repeated invocations walk the list one batch at a time.
    """
    pages = [
        PageRef(url=item["url"], title=item.get("title") or "")
        for item in _items(_read_json(urls_file), "urls")
    ]
    if not pages:
        typer.echo(f"No URLs found in {urls_file}", err=True)
        raise typer.Exit(1)

    batch_size = clamp_batch_size(batch_size)
    batch_index = _load_cursor(state_file)
    if batch_index == NO_NEXT_BATCH:
        typer.echo("All batches already processed. Delete the state file to start over.", err=True)
        return

    async def _extract() -> tuple[list[ExtractionResult], Any]:
        async with build_client(timeout=settings.extraction_timeout) as client:
            service = get_extraction_service(client)
            if all_batches:
                return await extract_all(pages, batch_size, service=service, start=batch_index)
            return await extract_batch(pages, batch_index, batch_size, service=service)

    results, progress = _run(_extract())
    state_file.write_text(json.dumps({"batchIndex": progress.next}) + "\n", encoding="utf-8")

    ok = sum(1 for r in results if r.success)
    typer.echo(
        f"Extracted {ok}/{len(results)} page(s); "
        f"{progress.processed_count}/{progress.total_count} processed.",
        err=True,
    )
    _emit({"contentResults": [r.to_dict() for r in results], "batchInfo": progress.to_dict()}, output)


@app.command("analyze")
def analyze(
    input_file: Path = typer.Option(..., "--input", help="JSON extraction results."),
    store_type: str = typer.Option(settings.default_store_type, help="Store category."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
) -> None:
    """Analyse extracted page text into one structured store record."""
    items = [
        ExtractionResult.from_dict(item)
        for item in _items(_read_json(input_file), "contentResults")
    ]
    record = _run(analyze_content(items, store_type))
    if record.error:
        typer.echo(f"Analysis failed: {record.error}", err=True)
    _emit({"storeInfo": record.to_dict()}, output)
    if record.error:
        raise typer.Exit(1)


@app.command("run")
def run(
    url: str = typer.Option(..., help="Seed URL (http or https)."),
    max_pages: int = typer.Option(settings.process_all_default_pages, help="Maximum pages."),
    store_type: str = typer.Option(settings.default_store_type, help="Store category."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here."),
) -> None:
    """Collect, extract and analyse a small site in one go."""

    async def _process() -> dict[str, Any]:
        async with build_client() as client:
            return await process_all(client, url, max_pages, store_type)

    result = _run(_process())
    _emit(result, output)
    if "error" in result:
        typer.echo(f"Process failed: {result['error']}", err=True)
        raise typer.Exit(1)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Start the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("storescout.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()

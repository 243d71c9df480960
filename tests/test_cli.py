"""Tests for the Typer CLI.

Pipeline stages are patched at ``cli.main``; JSON results are written with
``--output`` so assertions read files rather than mixed console output.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from cli.main import app
from storescout.analysis.models import AnalysisMeta, AnalysisRecord
from storescout.errors import InvalidSeedError
from storescout.scraper.extractor import ExtractionService
from storescout.scraper.models import CrawlPageRecord

runner = CliRunner()


class FakeService(ExtractionService):
    name = "fake"

    async def extract(self, url: str) -> str:
        return f"Text of {url}"


@pytest.fixture
def urls_file(tmp_path: Path) -> Path:
    path = tmp_path / "urls.json"
    urls = [{"url": f"https://shop.example/p{i}", "title": f"P{i}"} for i in range(7)]
    path.write_text(json.dumps({"urls": urls, "count": 7}), encoding="utf-8")
    return path


def test_collect_writes_records(tmp_path: Path) -> None:
    out = tmp_path / "collected.json"
    records = [CrawlPageRecord(url="https://shop.example/", title="Home", description="", status=200)]
    collect = AsyncMock(return_value=records)
    with patch("cli.main.collect_urls", collect):
        result = runner.invoke(app, ["collect", "--url", "https://shop.example/", "--max-pages", "99", "-o", str(out)])

    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["count"] == 1
    assert data["urls"][0]["title"] == "Home"
    assert collect.await_args.args[2] == 50


def test_collect_invalid_seed_exits_nonzero() -> None:
    with patch("cli.main.collect_urls", AsyncMock(side_effect=InvalidSeedError("Invalid seed URL"))):
        result = runner.invoke(app, ["collect", "--url", "ftp://shop.example/"])

    assert result.exit_code == 1
    assert "Invalid seed URL" in result.output


def test_extract_walks_the_cursor(tmp_path: Path, urls_file: Path) -> None:
    state = tmp_path / "state.json"
    out = tmp_path / "batch.json"
    args = ["extract", "--urls-file", str(urls_file), "--state-file", str(state), "--batch-size", "5", "-o", str(out)]

    with patch("cli.main.get_extraction_service", return_value=FakeService()):
        first = runner.invoke(app, args)
        first_batch = json.loads(out.read_text(encoding="utf-8"))
        assert json.loads(state.read_text(encoding="utf-8")) == {"batchIndex": 1}

        second = runner.invoke(app, args)
        second_batch = json.loads(out.read_text(encoding="utf-8"))
        assert json.loads(state.read_text(encoding="utf-8")) == {"batchIndex": -1}

        third = runner.invoke(app, args)

    assert first.exit_code == second.exit_code == third.exit_code == 0
    assert len(first_batch["contentResults"]) == 5
    assert len(second_batch["contentResults"]) == 2
    assert second_batch["batchInfo"]["isComplete"] is True
    assert "already processed" in third.output


def test_extract_all_batches(tmp_path: Path, urls_file: Path) -> None:
    out = tmp_path / "all.json"
    with patch("cli.main.get_extraction_service", return_value=FakeService()):
        result = runner.invoke(
            app,
            [
                "extract", "--urls-file", str(urls_file),
                "--state-file", str(tmp_path / "state.json"),
                "--batch-size", "3", "--all", "-o", str(out),
            ],
        )

    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert len(data["contentResults"]) == 7
    assert data["batchInfo"]["next"] == -1


def test_extract_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["extract", "--urls-file", str(tmp_path / "nope.json"), "--state-file", str(tmp_path / "s.json")]
    )
    assert result.exit_code == 1


def test_analyze(tmp_path: Path) -> None:
    source = tmp_path / "content.json"
    source.write_text(
        json.dumps({"contentResults": [{"url": "https://shop.example/", "success": True, "content": "Pan"}]}),
        encoding="utf-8",
    )
    out = tmp_path / "store.json"
    record = AnalysisRecord(
        meta=AnalysisMeta(analyzed_urls=1, total_urls_provided=1, store_type="general"),
        fields={"storeName": "Pan"},
    )
    analyze = AsyncMock(return_value=record)
    with patch("cli.main.analyze_content", analyze):
        result = runner.invoke(app, ["analyze", "--input", str(source), "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert json.loads(out.read_text(encoding="utf-8"))["storeInfo"]["storeName"] == "Pan"
    items, store_type = analyze.await_args.args
    assert items[0].content == "Pan"
    assert store_type == "general"


def test_analyze_error_record_exits_nonzero(tmp_path: Path) -> None:
    source = tmp_path / "content.json"
    source.write_text(json.dumps([{"url": "https://shop.example/", "success": False}]), encoding="utf-8")
    record = AnalysisRecord(
        meta=AnalysisMeta(analyzed_urls=0, total_urls_provided=1, store_type="general"),
        error="No valid content provided for analysis.",
    )
    with patch("cli.main.analyze_content", AsyncMock(return_value=record)):
        result = runner.invoke(app, ["analyze", "--input", str(source)])

    assert result.exit_code == 1
    assert "No valid content" in result.output


def test_run(tmp_path: Path) -> None:
    out = tmp_path / "run.json"
    run = AsyncMock(return_value={"storeInfo": {"storeName": "Pan"}, "urlCount": {"collected": 1}})
    with patch("cli.main.process_all", run):
        result = runner.invoke(
            app, ["run", "--url", "https://shop.example/", "--store-type", "retail", "-o", str(out)]
        )

    assert result.exit_code == 0, result.output
    assert json.loads(out.read_text(encoding="utf-8"))["storeInfo"]["storeName"] == "Pan"
    assert run.await_args.args[1:] == ("https://shop.example/", 5, "retail")


def test_run_short_circuit_exits_nonzero() -> None:
    run = AsyncMock(return_value={"error": "No URLs were collected from the seed URL.", "urlCount": {"collected": 0}})
    with patch("cli.main.process_all", run):
        result = runner.invoke(app, ["run", "--url", "https://shop.example/"])

    assert result.exit_code == 1

"""Tests for fetch-with-retry.

``respx`` patches ``httpx`` at the transport layer; ``asyncio.sleep`` inside
the fetcher is replaced by an ``AsyncMock`` so backoff delays are recorded
rather than waited out.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, call, patch

import httpx
import pytest
import respx

from storescout.scraper.fetcher import build_client, default_headers, fetch_with_retry
from storescout.scraper.models import FetchStatus

URL = "https://shop.example/"
_HTML = {"content-type": "text/html; charset=utf-8"}


@pytest.fixture
def sleep():
    with patch("storescout.scraper.fetcher.asyncio.sleep", new_callable=AsyncMock) as mocked:
        yield mocked


@respx.mock
async def test_success_returns_body_and_content_type(sleep) -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, text="<html>ok</html>", headers=_HTML))
    async with httpx.AsyncClient() as client:
        outcome = await fetch_with_retry(client, URL)

    assert outcome.status is FetchStatus.SUCCESS
    assert outcome.ok
    assert outcome.is_html
    assert outcome.status_code == 200
    assert outcome.body == "<html>ok</html>"
    assert outcome.attempts == 1
    sleep.assert_not_awaited()


@respx.mock
async def test_retryable_status_exhausts_after_three_attempts(sleep) -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(503))
    async with httpx.AsyncClient() as client:
        outcome = await fetch_with_retry(client, URL)

    assert outcome.status is FetchStatus.RETRIES_EXHAUSTED
    assert outcome.status_code == 503
    assert outcome.attempts == 3
    assert outcome.error == "HTTP 503 Service Unavailable"
    assert route.call_count == 3
    assert sleep.await_args_list == [call(1.0), call(1.5)]


@respx.mock
async def test_retry_recovers(sleep) -> None:
    route = respx.get(URL).mock(
        side_effect=[
            httpx.Response(429),
            httpx.Response(200, text="fine", headers=_HTML),
        ]
    )
    async with httpx.AsyncClient() as client:
        outcome = await fetch_with_retry(client, URL)

    assert outcome.ok
    assert outcome.attempts == 2
    assert route.call_count == 2
    sleep.assert_awaited_once_with(1.0)


@respx.mock
async def test_client_error_is_not_retried(sleep) -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(404))
    async with httpx.AsyncClient() as client:
        outcome = await fetch_with_retry(client, URL)

    assert outcome.status is FetchStatus.NON_RETRYABLE
    assert outcome.status_code == 404
    assert "404" in outcome.error
    assert route.call_count == 1
    sleep.assert_not_awaited()


@respx.mock
async def test_transport_error_is_terminal(sleep) -> None:
    route = respx.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))
    async with httpx.AsyncClient() as client:
        outcome = await fetch_with_retry(client, URL)

    assert outcome.status is FetchStatus.NON_RETRYABLE
    assert outcome.status_code is None
    assert outcome.error.startswith("ConnectError")
    assert route.call_count == 1
    sleep.assert_not_awaited()


@respx.mock
async def test_zero_retries_means_single_attempt(sleep) -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(500))
    async with httpx.AsyncClient() as client:
        outcome = await fetch_with_retry(client, URL, retries=0)

    assert outcome.status is FetchStatus.RETRIES_EXHAUSTED
    assert route.call_count == 1


@respx.mock
async def test_extra_headers_are_sent(sleep) -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(200, text="x"))
    async with httpx.AsyncClient() as client:
        await fetch_with_retry(client, URL, headers={"Accept": "text/plain"})

    assert route.calls.last.request.headers["accept"] == "text/plain"


async def test_build_client_uses_browser_headers() -> None:
    async with build_client() as client:
        assert client.headers["user-agent"] == default_headers()["User-Agent"]
        assert client.follow_redirects is True

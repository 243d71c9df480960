"""Tests for the breadth-first URL collector.

The fixture site lives at ``https://shop.example`` and is served through
``respx``:

    /        → /about, /menu/, #top, /logo.png, mailto:, https://other.example/
    /about   → /, /access
    /menu    → /about
    /access  → (no links)
"""

from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from storescout.config import settings
from storescout.errors import InvalidSeedError
from storescout.scraper.crawler import FrontierCrawler, collect_urls, extract_links, parse_page_metadata

SEED = "https://shop.example/"
_HTML = {"content-type": "text/html; charset=utf-8"}
_FILLER = "<p>" + "Fresh bread and pastries baked every morning. " * 3 + "</p>"


def _page(title: str, links: list[str], head: str = "") -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in links)
    return f"<html><head><title>{title}</title>{head}</head><body>{_FILLER}{anchors}</body></html>"


_SITE = {
    "/": _page(
        "Home",
        ["/about", "/menu/", "#top", "/logo.png", "mailto:owner@shop.example", "https://other.example/"],
        head='<meta name="description" content="A small bakery.">',
    ),
    "/about": _page("About", ["/", "/access"]),
    "/menu": _page("Menu", ["/about"]),
    "/access": _page("Access", []),
}


@pytest.fixture
def site():
    with respx.mock(base_url="https://shop.example", assert_all_called=False) as router:
        routes = {
            path: router.get(path).mock(return_value=httpx.Response(200, text=html, headers=_HTML))
            for path, html in _SITE.items()
        }
        yield router, routes


@pytest.fixture
def no_retries(monkeypatch):
    monkeypatch.setattr(settings, "max_retries", 0)


# ---------------------------------------------------------------------------
# Metadata helpers
# ---------------------------------------------------------------------------

class TestParsePageMetadata:
    def test_title_and_description(self) -> None:
        title, description, _ = parse_page_metadata(_SITE["/"])
        assert title == "Home"
        assert description == "A small bakery."

    def test_og_description_fallback(self) -> None:
        html = '<html><head><meta property="og:description" content="From OG"></head></html>'
        title, description, _ = parse_page_metadata(html)
        assert title == ""
        assert description == "From OG"

    def test_description_is_truncated(self) -> None:
        html = f'<html><head><meta name="description" content="{"x" * 400}"></head></html>'
        _, description, _ = parse_page_metadata(html)
        assert len(description) == 250

    def test_extract_links_resolves_and_normalises(self) -> None:
        _, _, soup = parse_page_metadata('<a href="/A/">a</a><a href="b#frag">b</a><a href="">c</a>')
        assert extract_links(soup, "https://shop.example/dir/page") == [
            "https://shop.example/A",
            "https://shop.example/dir/b",
        ]


# ---------------------------------------------------------------------------
# Crawl behaviour
# ---------------------------------------------------------------------------

async def test_collects_every_in_domain_page(site) -> None:
    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 10)

    assert {r.url for r in records} == {
        "https://shop.example/",
        "https://shop.example/about",
        "https://shop.example/menu",
        "https://shop.example/access",
    }
    assert all(r.status == 200 for r in records)
    assert records[0].url == SEED
    assert records[0].description == "A small bakery."


async def test_each_page_fetched_once(site) -> None:
    _, routes = site
    async with httpx.AsyncClient() as client:
        await collect_urls(client, SEED, 10)

    assert all(route.call_count == 1 for route in routes.values())


async def test_never_exceeds_max_pages(site) -> None:
    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 2)

    assert len(records) == 2
    assert records[0].url == SEED


async def test_urls_are_unique(site) -> None:
    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 50)

    urls = [r.url for r in records]
    assert len(urls) == len(set(urls))


async def test_result_set_is_deterministic(site) -> None:
    async with httpx.AsyncClient() as client:
        first = {r.url for r in await collect_urls(client, SEED, 10)}
        second = {r.url for r in await collect_urls(client, SEED, 10)}

    assert first == second


@pytest.mark.parametrize("seed", ["ftp://shop.example/", "/relative", "", "shop.example"])
async def test_invalid_seed_raises(seed: str) -> None:
    async with httpx.AsyncClient() as client:
        with pytest.raises(InvalidSeedError):
            await collect_urls(client, seed, 5)


def test_invalid_seed_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        FrontierCrawler(client=None, seed_url="javascript:alert(1)", max_pages=5)  # type: ignore[arg-type]


@respx.mock
async def test_non_html_seed_yields_nothing() -> None:
    respx.get(SEED).mock(
        return_value=httpx.Response(200, json={"hello": "world" * 20})
    )
    async with httpx.AsyncClient() as client:
        assert await collect_urls(client, SEED, 5) == []


@respx.mock
async def test_short_body_is_skipped() -> None:
    respx.get(SEED).mock(return_value=httpx.Response(200, text="<html></html>", headers=_HTML))
    async with httpx.AsyncClient() as client:
        assert await collect_urls(client, SEED, 5) == []


@respx.mock
async def test_failed_page_is_skipped(no_retries) -> None:
    respx.get(SEED).mock(
        return_value=httpx.Response(200, text=_page("Home", ["/broken", "/ok"]), headers=_HTML)
    )
    respx.get("https://shop.example/broken").mock(return_value=httpx.Response(500))
    respx.get("https://shop.example/ok").mock(
        return_value=httpx.Response(200, text=_page("OK", []), headers=_HTML)
    )
    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 5)

    assert {r.url for r in records} == {SEED, "https://shop.example/ok"}


async def test_expired_deadline_returns_empty(site) -> None:
    router, _ = site
    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 5, deadline=0)

    assert records == []
    assert router.calls.call_count == 0


async def test_frontier_caps_scale_with_max_pages() -> None:
    crawler = FrontierCrawler(client=None, seed_url=SEED, max_pages=4)  # type: ignore[arg-type]
    assert crawler.seen_cap == 20
    assert crawler.queue_cap == 12
    assert crawler.host == "shop.example"


# ---------------------------------------------------------------------------
# Concurrency, frontier bounds and deadline
# ---------------------------------------------------------------------------

_LEAF_RE = r"https://shop\.example/leaf\d+$"


def _hub(count: int) -> str:
    return _page("Hub", [f"/leaf{i}" for i in range(count)])


@respx.mock
async def test_in_flight_fetches_never_exceed_concurrency() -> None:
    in_flight = 0
    peak = 0

    async def slow_leaf(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.02)
        in_flight -= 1
        return httpx.Response(200, text=_page("Leaf", []), headers=_HTML)

    respx.get(SEED).mock(return_value=httpx.Response(200, text=_hub(10), headers=_HTML))
    leaves = respx.get(url__regex=_LEAF_RE).mock(side_effect=slow_leaf)

    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 20)

    assert len(records) == 11
    assert leaves.call_count == 10
    assert 1 < peak <= settings.crawl_concurrency


@respx.mock
async def test_link_dense_page_is_bounded_by_frontier_caps() -> None:
    respx.get(SEED).mock(return_value=httpx.Response(200, text=_hub(200), headers=_HTML))
    leaves = respx.get(url__regex=_LEAF_RE).mock(
        return_value=httpx.Response(200, text=_page("Leaf", []), headers=_HTML)
    )

    async with httpx.AsyncClient() as client:
        crawler = FrontierCrawler(client=client, seed_url=SEED, max_pages=4)
        records = await crawler.crawl()

    assert len(records) == 4
    # The seed plus one full queue: the other links were never admitted.
    assert len(crawler.seen) == 1 + crawler.queue_cap
    assert len(crawler.seen) <= crawler.seen_cap
    assert leaves.call_count <= crawler.queue_cap


def test_seen_set_stops_growing_at_its_cap() -> None:
    crawler = FrontierCrawler(client=None, seed_url=SEED, max_pages=2)  # type: ignore[arg-type]
    for i in range(100):
        crawler._enqueue(f"https://shop.example/page{i}")
        crawler.queue.clear()  # keep the queue cap out of the way

    assert len(crawler.seen) == crawler.seen_cap == 10


@respx.mock
async def test_deadline_stops_dispatch_but_drains_in_flight_pages() -> None:
    async def slow_leaf(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.6)
        return httpx.Response(200, text=_page("Leaf", []), headers=_HTML)

    respx.get(SEED).mock(return_value=httpx.Response(200, text=_hub(10), headers=_HTML))
    leaves = respx.get(url__regex=_LEAF_RE).mock(side_effect=slow_leaf)

    async with httpx.AsyncClient() as client:
        records = await collect_urls(client, SEED, 20, deadline=0.3)

    # Only the first wave was dispatched before the deadline; it still completes.
    assert leaves.call_count == settings.crawl_concurrency
    assert len(records) == 1 + settings.crawl_concurrency

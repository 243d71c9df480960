"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging and opens a single
``httpx.AsyncClient`` (shared across all requests via
``request.app.state.http``).  On shutdown it closes the client cleanly.

Routers
-------
The scraper router serves ``/`` and, for clients of the serverless
deployment, ``/api/webscraper``.  ``GET /health`` is a liveness probe.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storescout.config import settings
from storescout.logging_utils import configure_logging
from storescout.scraper.fetcher import build_client

from storescout.api.routers import scraper as scraper_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared HTTP client on startup and close it on shutdown."""
    configure_logging(settings.log_level)
    client = build_client()
    app.state.http = client
    try:
        yield
    finally:
        await client.aclose()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Store Scout API",
        description=(
            "Crawls a store's website, extracts readable page text through a "
            "reader service, and analyses it into one structured store record. "
            "All operations share one POST endpoint dispatched by operationType."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID"],
        max_age=86400,
    )

    app.include_router(scraper_router.router, tags=["scraper"])

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn storescout.api.app:app --reload
app = create_app()

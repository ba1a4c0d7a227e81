"""Explicitly constructed runtime context shared by providers and services."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from media_catalog import __version__
from media_catalog.cache import ResponseCache
from media_catalog.config import Settings
from media_catalog.services.genres import GenreResolver
from media_catalog.services.streaming import StreamingResolver

USER_AGENT = f"media-catalog/{__version__}"


@dataclass
class CatalogContext:
    """Everything an adapter needs, built once at startup and passed explicitly."""

    settings: Settings
    http: httpx.AsyncClient
    cache: ResponseCache
    genres: GenreResolver
    streaming: StreamingResolver

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        http: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
    ) -> CatalogContext:
        client = http or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=settings.request_timeout,
        )
        response_cache = cache or ResponseCache(
            settings.cache_dir,
            ttl_ms=settings.cache_ttl_hours * 60 * 60 * 1000,
        )
        return cls(
            settings=settings,
            http=client,
            cache=response_cache,
            genres=GenreResolver(client, settings, response_cache),
            streaming=StreamingResolver(
                settings.fallback_sources,
                http=client,
                enabled=settings.streaming_enabled,
                probe_timeout=settings.probe_timeout,
            ),
        )

    async def close(self) -> None:
        await self.genres.close()
        await self.http.aclose()

    async def __aenter__(self) -> CatalogContext:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()


@asynccontextmanager
async def catalog_context(
    settings: Settings,
    *,
    http: httpx.AsyncClient | None = None,
    cache: ResponseCache | None = None,
    warm_genres: bool = True,
) -> AsyncIterator[CatalogContext]:
    context = CatalogContext.build(settings, http=http, cache=cache)
    if warm_genres:
        context.genres.start()
    try:
        yield context
    finally:
        await context.close()


__all__ = ["CatalogContext", "USER_AGENT", "catalog_context"]

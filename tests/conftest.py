"""Shared fixtures: settings, an isolated cache directory and a catalog context."""

import httpx
import pytest

from media_catalog.cache import ResponseCache
from media_catalog.config import Settings
from media_catalog.context import CatalogContext
from media_catalog.models import MediaType

MOVIE_GENRES = {28: "Action", 16: "Animation", 878: "Science Fiction"}
TV_GENRES = {16: "Animation", 18: "Drama", 10765: "Sci-Fi & Fantasy"}


@pytest.fixture
def settings(tmp_path):
    """Settings with a TMDB key and a throwaway cache directory."""
    return Settings(tmdb_api_key="test-tmdb-key", cache_dir=tmp_path / "cache")


@pytest.fixture
def cache(tmp_path):
    return ResponseCache(tmp_path / "cache")


@pytest.fixture
def http_client():
    return httpx.AsyncClient()


@pytest.fixture
def context(settings, http_client, cache):
    """Catalog context whose genre taxonomy is already loaded."""
    ctx = CatalogContext.build(settings, http=http_client, cache=cache)
    ctx.genres._maps = {MediaType.MOVIE: dict(MOVIE_GENRES), MediaType.TV: dict(TV_GENRES)}
    ctx.genres._ready = True
    return ctx


@pytest.fixture
def keyless_context(tmp_path, http_client):
    """Catalog context without any provider credentials."""
    settings = Settings(cache_dir=tmp_path / "cache")
    return CatalogContext.build(settings, http=http_client, cache=ResponseCache(tmp_path / "cache"))

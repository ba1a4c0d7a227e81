"""Lazily loaded TMDB genre taxonomy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from media_catalog.cache import ResponseCache
from media_catalog.config import Settings
from media_catalog.models import MediaType

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
_TAXONOMIES = (MediaType.MOVIE, MediaType.TV)


class GenreResolver:
    """Maps TMDB numeric genre ids to names for movies and TV.

    ``start()`` kicks off loading in the background at process start; anything
    that needs the maps before that finishes awaits ``ensure_initialized()``,
    which shares the same one-time work.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        cache: ResponseCache | None = None,
    ) -> None:
        self._http = http
        self._settings = settings
        self._cache = cache
        self._maps: dict[MediaType, dict[int, str]] = {kind: {} for kind in _TAXONOMIES}
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def start(self) -> asyncio.Task[None]:
        """Schedule initialization on the running loop and return its task."""
        if self._task is None:
            self._task = asyncio.create_task(self.ensure_initialized())
        return self._task

    async def ensure_initialized(self) -> None:
        if self._ready:
            return
        async with self._lock:
            if self._ready:
                return
            if not self._settings.tmdb_api_key:
                logger.warning("[GENRES] TMDB API key not set; genre names unavailable")
                self._ready = True
                return
            try:
                loaded = {kind: await self._load(kind) for kind in _TAXONOMIES}
            except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
                logger.warning(f"[GENRES] Error initializing genres: {exc}")
                return
            self._maps = loaded
            self._ready = True
            logger.info(
                f"[GENRES] Loaded {len(loaded[MediaType.MOVIE])} movie and "
                f"{len(loaded[MediaType.TV])} TV genres"
            )

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def map_genres(self, genre_ids: Iterable[Any] | None, media_type: MediaType) -> list[str]:
        if not genre_ids:
            return []
        table = self._maps.get(_taxonomy_for(media_type), {})
        names: list[str] = []
        for raw in genre_ids:
            try:
                genre_id = int(raw)
            except (TypeError, ValueError):
                continue
            names.append(table.get(genre_id) or f"Genre {genre_id}")
        return names

    def names(self, media_type: MediaType) -> list[str]:
        return list(self._maps.get(_taxonomy_for(media_type), {}).values())

    def all_genres(self) -> list[str]:
        combined = set(self.names(MediaType.MOVIE)) | set(self.names(MediaType.TV))
        return sorted(combined)

    async def _load(self, media_type: MediaType) -> dict[int, str]:
        cache_key = f"tmdb_genres_{media_type.value}_{self._settings.language}"
        cached = await self._cache.get(cache_key) if self._cache else None
        if cached is not None:
            try:
                return _genre_table(cached)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"[GENRES] Ignoring unreadable cached {media_type.value} genres: {exc}")

        payload = await self._fetch_taxonomy(media_type)
        table = _genre_table(payload)
        if self._cache:
            await self._cache.set(cache_key, payload)
        return table

    async def _fetch_taxonomy(self, media_type: MediaType) -> dict[str, Any]:
        async for attempt in _retry_policy():
            with attempt:
                response = await self._http.get(
                    f"{TMDB_BASE_URL}/genre/{media_type.value}/list",
                    params={
                        "api_key": self._settings.tmdb_api_key,
                        "language": self._settings.language,
                    },
                    timeout=self._settings.request_timeout,
                )
                response.raise_for_status()
                return response.json()
        raise RuntimeError("Unable to load genre taxonomy after retries")


def _genre_table(payload: Any) -> dict[int, str]:
    if not isinstance(payload, dict):
        raise ValueError(f"genre list is a {type(payload).__name__}, expected an object")
    return {int(entry["id"]): str(entry["name"]) for entry in payload.get("genres") or []}


def _taxonomy_for(media_type: MediaType) -> MediaType:
    return MediaType.TV if media_type == MediaType.TV else MediaType.MOVIE


def _is_transient(exc: BaseException) -> bool:
    if not isinstance(exc, httpx.HTTPStatusError):
        return False
    status = exc.response.status_code
    return status == 429 or status >= 500


def _retry_policy() -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )


__all__ = ["GenreResolver"]

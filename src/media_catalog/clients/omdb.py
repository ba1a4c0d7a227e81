from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from media_catalog.cache import ResponseCache
from media_catalog.config import Settings

logger = logging.getLogger(__name__)

OMDB_BASE_URL = "https://www.omdbapi.com/"
_MISSING = "N/A"


class OMDbTitle(BaseModel):
    """One OMDb title record with ``"N/A"`` placeholders turned into ``None``."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    imdb_id: str | None = Field(default=None, alias="imdbID")
    title: str | None = Field(default=None, alias="Title")
    year: str | None = Field(default=None, alias="Year")
    rated: str | None = Field(default=None, alias="Rated")
    runtime: str | None = Field(default=None, alias="Runtime")
    genre: str | None = Field(default=None, alias="Genre")
    director: str | None = Field(default=None, alias="Director")
    writer: str | None = Field(default=None, alias="Writer")
    actors: str | None = Field(default=None, alias="Actors")
    plot: str | None = Field(default=None, alias="Plot")
    language: str | None = Field(default=None, alias="Language")
    country: str | None = Field(default=None, alias="Country")
    awards: str | None = Field(default=None, alias="Awards")
    poster: str | None = Field(default=None, alias="Poster")
    metascore: str | None = Field(default=None, alias="Metascore")
    imdb_rating: float | None = Field(default=None, alias="imdbRating")
    box_office: str | None = Field(default=None, alias="BoxOffice")
    ratings: dict[str, str] = Field(default_factory=dict, alias="Ratings")

    @field_validator("*", mode="before")
    @classmethod
    def _drop_placeholder(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() in {"", _MISSING}:
            return None
        return value

    @field_validator("ratings", mode="before")
    @classmethod
    def _ratings_by_source(cls, value: Any) -> dict[str, str]:
        if not value:
            return {}
        if isinstance(value, dict):
            return value
        if not isinstance(value, list):
            raise ValueError("Ratings must be a list")
        return {
            str(entry["Source"]): str(entry["Value"])
            for entry in value
            if isinstance(entry, dict) and entry.get("Source") and entry.get("Value")
        }

    @property
    def genres(self) -> list[str]:
        if not self.genre:
            return []
        return [name.strip() for name in self.genre.split(",") if name.strip()]


class OMDbClient:
    """Cached lookups against the OMDb API using the shared HTTP client."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        cache: ResponseCache | None = None,
    ) -> None:
        self._http = http
        self._settings = settings
        self._cache = cache

    def is_configured(self) -> bool:
        return bool(self._settings.omdb_api_key)

    async def by_imdb_id(self, imdb_id: str) -> OMDbTitle | None:
        return await self._lookup(f"omdb_imdb_{imdb_id}", {"i": imdb_id, "plot": "full"})

    async def by_title(
        self,
        title: str,
        year: str | int | None = None,
        media_type: str | None = None,
    ) -> OMDbTitle | None:
        params: dict[str, Any] = {"t": title, "plot": "full"}
        if year:
            params["y"] = str(year)
        if media_type in {"movie", "series"}:
            params["type"] = media_type
        key = f"omdb_title_{title.lower()}_{year or ''}_{media_type or ''}"
        return await self._lookup(key, params)

    async def _lookup(self, key: str, params: dict[str, Any]) -> OMDbTitle | None:
        if not self.is_configured():
            logger.debug("[OMDB] API key not set; skipping lookup")
            return None

        cached = await self._cache.get(key) if self._cache else None
        if cached is not None:
            try:
                return _title_from(key, cached)
            except ValidationError as exc:
                logger.warning(f"[OMDB] Ignoring unreadable cached entry {key}: {exc}")

        try:
            payload = await self._get(params)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[OMDB] Lookup failed for {params}: {exc!r}")
            return None
        try:
            title = _title_from(key, payload)
        except ValidationError as exc:
            logger.warning(f"[OMDB] Unexpected payload for {params}: {exc}")
            return None

        if self._cache:
            await self._cache.set(key, payload)
        return title

    async def _get(self, params: dict[str, Any]) -> Any:
        async for attempt in _retry_policy():
            with attempt:
                response = await self._http.get(
                    OMDB_BASE_URL,
                    params={"apikey": self._settings.omdb_api_key, **params},
                    timeout=self._settings.request_timeout,
                )
                response.raise_for_status()
                return response.json()
        raise RuntimeError("Unable to reach OMDb after retries")


def _title_from(key: str, payload: Any) -> OMDbTitle | None:
    if not isinstance(payload, dict) or payload.get("Response") == "False":
        logger.debug(f"[OMDB] No match for {key}")
        return None
    return OMDbTitle.model_validate(payload)


def _retry_policy() -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )


def _is_transient(exc: BaseException) -> bool:
    if not isinstance(exc, httpx.HTTPStatusError):
        return False
    return exc.response.status_code >= 500


__all__ = ["OMDB_BASE_URL", "OMDbClient", "OMDbTitle"]

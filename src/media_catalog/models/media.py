from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"
    ANIME = "anime"


class MediaRecord(BaseModel):
    """Provider-agnostic catalog entry emitted by every adapter.

    Records are immutable; enrichment and merging produce new instances via
    ``model_copy``. Fields that only one provider knows about live in
    ``extras`` so that deduplication and stream resolution depend on the
    stable base fields alone.
    """

    id: str
    title: str = ""
    original_title: str | None = None
    overview: str | None = None
    type: MediaType = MediaType.MOVIE  # local files without a declared type count as movies
    source: str | None = None

    release_date: str | None = None
    year: str | None = None

    poster_url: str | None = None
    backdrop_url: str | None = None
    rating: float | None = None
    popularity: float | None = None
    genres: list[str] = Field(default_factory=list)
    genre_ids: list[int] = Field(default_factory=list)

    streaming_url: str | None = None
    has_streaming: bool = False
    subtitles: list[str] = Field(default_factory=list)

    tmdb_id: int | None = None
    mal_id: int | None = None
    anilist_id: int | None = None
    tvmaze_id: int | None = None
    imdb_id: str | None = None

    extras: dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "alias_generator": to_camel,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _derive_year(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("year") in (None, ""):
            release = data.get("release_date") or data.get("releaseDate")
            if isinstance(release, str) and len(release) >= 4 and release[:4].isdigit():
                data = {**data, "year": release[:4]}
        return data

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def is_local(self) -> bool:
        """Records without a provider tag come from the local library."""
        return not self.source

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TVEpisode(BaseModel):
    episode_number: int
    name: str
    overview: str | None = None
    air_date: str | None = None
    still_url: str | None = None
    runtime: int | None = None

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class TVSeason(BaseModel):
    season_number: int
    name: str
    episode_count: int | None = None
    overview: str | None = None
    poster_url: str | None = None
    episodes: list[TVEpisode] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


__all__ = ["MediaRecord", "MediaType", "TVEpisode", "TVSeason"]

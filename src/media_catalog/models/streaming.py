from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class AnimeVariant(str, Enum):
    SUB = "sub"
    DUB = "dub"
    HINDI = "hindi"


class FallbackSource(BaseModel):
    """One embed provider in the ordered fallback list."""

    name: str
    base_url: str
    priority: int = 100
    enabled: bool = True

    model_config = {"populate_by_name": True, "extra": "ignore"}


class StreamOptions(BaseModel):
    season: int = Field(default=1, ge=0)
    episode: int = Field(default=1, ge=0)
    language: str = "english"
    variant: AnimeVariant = AnimeVariant.SUB

    model_config = {"populate_by_name": True, "extra": "ignore"}


class StreamStatus(str, Enum):
    AVAILABLE = "available"
    UNVERIFIED = "unverified"
    NOT_CONFIGURED = "not_configured"
    MISSING_CROSS_REFERENCE = "missing_cross_reference"
    INVALID_ID = "invalid_id"


class StreamLink(BaseModel):
    """Outcome of resolving a playable embed URL for one catalog entry."""

    status: StreamStatus
    url: str | None = None
    source: str | None = None
    media_id: str | None = None
    language: str | None = None
    reason: str | None = None

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    @property
    def playable(self) -> bool:
        return self.url is not None


__all__ = ["AnimeVariant", "FallbackSource", "StreamLink", "StreamOptions", "StreamStatus"]

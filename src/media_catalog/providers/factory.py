from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from media_catalog.models import MediaType
from media_catalog.providers.anilist import AniListProvider
from media_catalog.providers.base import CatalogProvider, ProviderError
from media_catalog.providers.jikan import JikanProvider
from media_catalog.providers.tmdb import ANIMATION_GENRE_ID, TMDBProvider
from media_catalog.providers.tvmaze import TVMazeProvider

if TYPE_CHECKING:
    from media_catalog.context import CatalogContext

MAX_BULK_PAGES = 20


@dataclass(frozen=True)
class BulkPreset:
    """Provider list and pacing for one bulk category."""

    category: str
    batch_size: int
    delay_ms: int
    default_pages: int = MAX_BULK_PAGES


BULK_PRESETS: dict[str, BulkPreset] = {
    "movies": BulkPreset("movies", batch_size=2, delay_ms=100),
    "tv": BulkPreset("tv", batch_size=2, delay_ms=150),
    "anime": BulkPreset("anime", batch_size=2, delay_ms=200),
    "cartoons": BulkPreset("cartoons", batch_size=3, delay_ms=100, default_pages=10),
}


def build_providers(context: CatalogContext, category: str) -> list[CatalogProvider]:
    """Construct the provider list for a bulk category."""

    category = category.lower()
    if category == "movies":
        return _build_movie_providers(context)
    if category == "tv":
        return _build_tv_providers(context)
    if category == "anime":
        return _build_anime_providers(context)
    if category == "cartoons":
        return _build_cartoon_providers(context)

    raise ProviderError(
        "factory",
        f"Bulk category '{category}' is not implemented. "
        f"Valid categories: {', '.join(BULK_PRESETS)}",
    )


def get_preset(category: str) -> BulkPreset:
    try:
        return BULK_PRESETS[category.lower()]
    except KeyError as exc:
        raise ProviderError("factory", f"Unknown bulk category '{category}'") from exc


def _build_movie_providers(context: CatalogContext) -> list[CatalogProvider]:
    listings = ["popular", "trending", "top_rated", "now_playing", "upcoming"]
    return [TMDBProvider(context, media_type=MediaType.MOVIE, listing=name) for name in listings]


def _build_tv_providers(context: CatalogContext) -> list[CatalogProvider]:
    return [
        TMDBProvider(context, media_type=MediaType.TV, listing="popular"),
        TMDBProvider(context, media_type=MediaType.TV, listing="top_rated"),
        TVMazeProvider(context),
    ]


def _build_anime_providers(context: CatalogContext) -> list[CatalogProvider]:
    return [JikanProvider(context), AniListProvider(context)]


def _build_cartoon_providers(context: CatalogContext) -> list[CatalogProvider]:
    """Animation genre listings from TMDB plus popular AniList titles."""
    providers: list[CatalogProvider] = []
    for listing in ("discover", "top_rated_genre"):
        for media_type in (MediaType.MOVIE, MediaType.TV):
            providers.append(
                TMDBProvider(
                    context,
                    media_type=media_type,
                    listing=listing,
                    genre_id=ANIMATION_GENRE_ID,
                )
            )
    providers.append(AniListProvider(context))
    return providers


__all__ = ["BULK_PRESETS", "BulkPreset", "MAX_BULK_PAGES", "build_providers", "get_preset"]

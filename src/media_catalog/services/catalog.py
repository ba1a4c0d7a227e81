"""Catalog façade: bulk listings, search, details and streaming links."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from media_catalog.clients.omdb import OMDbClient
from media_catalog.models import (
    MediaRecord,
    MediaType,
    StreamLink,
    StreamOptions,
    StreamStatus,
    TVEpisode,
    TVSeason,
)
from media_catalog.providers.anilist import AniListProvider
from media_catalog.providers.factory import MAX_BULK_PAGES, build_providers, get_preset
from media_catalog.providers.jikan import JikanProvider
from media_catalog.providers.tmdb import TMDBProvider
from media_catalog.services.aggregator import BulkAggregator
from media_catalog.services.dedup import Deduplicator
from media_catalog.services.enrichment import EnrichmentService

if TYPE_CHECKING:
    from media_catalog.context import CatalogContext

logger = logging.getLogger(__name__)

_MEDIA_ID = re.compile(r"^(tmdb|jikan|anilist|tvmaze)_(movie|tv|anime)_(\w+)$")
_LEGACY_ANIME_ID = re.compile(r"^anime_(\d+)$")


class MediaIdError(ValueError):
    """Raised when a media id does not follow the ``{provider}_{type}_{id}`` scheme."""


def parse_media_id(media_id: str) -> tuple[str, MediaType, str]:
    """Split a catalog id into ``(provider, media type, native id)``.

    Legacy ``anime_<malId>`` ids are read as Jikan anime ids.
    """
    media_id = (media_id or "").strip()
    legacy = _LEGACY_ANIME_ID.match(media_id)
    if legacy:
        return "jikan", MediaType.ANIME, legacy.group(1)

    match = _MEDIA_ID.match(media_id)
    if not match:
        raise MediaIdError(f"Invalid media id '{media_id}'")
    provider, kind, native_id = match.groups()
    return provider, MediaType(kind), native_id


def relevance(record: MediaRecord) -> float:
    return (record.popularity or 0.0) + (record.rating or 0.0) * 10


class CatalogService:
    """High-level operations over a :class:`CatalogContext`."""

    def __init__(
        self,
        context: CatalogContext,
        *,
        aggregator: BulkAggregator | None = None,
        deduplicator: Deduplicator | None = None,
        enrichment: EnrichmentService | None = None,
        rng: random.Random | None = None,
        debug: bool = False,
    ) -> None:
        self._context = context
        self._aggregator = aggregator or BulkAggregator()
        self._dedup = deduplicator or Deduplicator()
        self._enrichment = enrichment or EnrichmentService(
            OMDbClient(context.http, context.settings, context.cache),
            debug=debug,
        )
        self._rng = rng or random.Random()

    async def bulk_movies(self, start: int = 1, pages: int | None = None) -> list[MediaRecord]:
        return await self._bulk("movies", start, pages)

    async def bulk_tv(self, start: int = 1, pages: int | None = None) -> list[MediaRecord]:
        return await self._bulk("tv", start, pages)

    async def bulk_anime(self, start: int = 1, pages: int | None = None) -> list[MediaRecord]:
        return await self._bulk("anime", start, pages)

    async def bulk_cartoons(self, start: int = 1, pages: int | None = None) -> list[MediaRecord]:
        records = await self._bulk("cartoons", start, pages)
        return [record for record in records if record.poster_url or record.backdrop_url]

    async def bulk(self, category: str, start: int = 1, pages: int | None = None) -> list[MediaRecord]:
        if category == "cartoons":
            return await self.bulk_cartoons(start, pages)
        return await self._bulk(category, start, pages)

    async def _bulk(self, category: str, start: int, pages: int | None) -> list[MediaRecord]:
        preset = get_preset(category)
        page_count = min(pages if pages is not None else preset.default_pages, MAX_BULK_PAGES)
        start_page = max(start, 1)
        providers = build_providers(self._context, category)

        raw = await self._aggregator.bulk_load(
            providers,
            start_page,
            page_count,
            batch_size=preset.batch_size,
            inter_batch_delay_ms=preset.delay_ms,
        )
        unique = self._dedup.merge(raw)
        logger.info(f"[BULK] {category}: {len(unique)} unique of {len(raw)} loaded")
        return unique

    async def popular_anime(self, page: int = 1) -> list[MediaRecord]:
        jikan, anilist = await asyncio.gather(
            JikanProvider(self._context).fetch_page(page),
            AniListProvider(self._context).fetch_page(page),
        )
        return self._dedup.merge([*jikan, *anilist])

    async def universal_search(
        self,
        query: str,
        page: int = 1,
        *,
        include_movies: bool = True,
        include_tv: bool = True,
        include_anime: bool = True,
        limit: int | None = None,
    ) -> list[MediaRecord]:
        """Search movies, TV and anime together, most relevant first."""
        query = (query or "").strip()
        if not query:
            return []

        searches = []
        if include_movies:
            searches.append(TMDBProvider(self._context, media_type=MediaType.MOVIE, listing="search"))
        if include_tv:
            searches.append(TMDBProvider(self._context, media_type=MediaType.TV, listing="search"))
        if include_anime:
            searches.append(JikanProvider(self._context, listing="search"))
        if not searches:
            return []

        pages = await asyncio.gather(
            *(provider.fetch_page(page, query=query) for provider in searches)
        )
        combined = self._dedup.merge(record for records in pages for record in records)
        ranked = sorted(combined, key=relevance, reverse=True)
        if limit is not None:
            ranked = ranked[: max(limit, 0)]
        return ranked

    async def featured(self, limit_per_source: int = 4) -> list[MediaRecord]:
        movies, anime = await asyncio.gather(
            TMDBProvider(self._context, media_type=MediaType.MOVIE).fetch_page(1),
            JikanProvider(self._context).fetch_page(1),
        )
        picks = self._dedup.merge([*movies[:limit_per_source], *anime[:limit_per_source]])
        self._rng.shuffle(picks)
        return picks

    async def genres(self) -> dict[str, list[str]]:
        resolver = self._context.genres
        await resolver.ensure_initialized()
        return {
            "genres": resolver.all_genres(),
            "movieGenres": resolver.names(MediaType.MOVIE),
            "tvGenres": resolver.names(MediaType.TV),
        }

    async def media_details(self, media_id: str) -> MediaRecord | None:
        """TMDB details for a title, enriched with OMDb data when available."""
        try:
            provider, media_type, native_id = parse_media_id(media_id)
        except MediaIdError as exc:
            logger.warning(f"[DETAILS] {exc}")
            return None
        if provider != "tmdb":
            logger.debug(f"[DETAILS] No detail lookup for {provider} ids ({media_id})")
            return None

        record = await TMDBProvider(self._context, media_type=media_type).details(native_id)
        if record is None:
            return None
        return await self._enrichment.enrich(record)

    async def tv_details(self, media_id: str) -> list[TVSeason]:
        native_id = self._tmdb_tv_id(media_id)
        if native_id is None:
            return []
        return await TMDBProvider(self._context, media_type=MediaType.TV).seasons(native_id)

    async def season_episodes(self, media_id: str, season: int) -> list[TVEpisode]:
        native_id = self._tmdb_tv_id(media_id)
        if native_id is None:
            return []
        result = await TMDBProvider(self._context, media_type=MediaType.TV).season(native_id, season)
        return list(result.episodes) if result else []

    def _tmdb_tv_id(self, media_id: str) -> str | None:
        try:
            provider, media_type, native_id = parse_media_id(media_id)
        except MediaIdError as exc:
            logger.warning(f"[DETAILS] {exc}")
            return None
        if provider != "tmdb" or media_type != MediaType.TV:
            logger.debug(f"[DETAILS] {media_id} is not a TMDB TV id")
            return None
        return native_id

    async def stream_link(
        self,
        media_id: str,
        options: StreamOptions | None = None,
        *,
        verify: bool = True,
        anilist_id: int | str | None = None,
    ) -> StreamLink:
        options = options or StreamOptions()
        try:
            provider, media_type, native_id = parse_media_id(media_id)
        except MediaIdError as exc:
            return StreamLink(status=StreamStatus.INVALID_ID, media_id=media_id, reason=str(exc))

        streaming = self._context.streaming
        if not streaming.sources:
            return StreamLink(
                status=StreamStatus.NOT_CONFIGURED,
                media_id=media_id,
                reason="Streaming is disabled or no fallback source is enabled",
            )

        target_id = await self._streaming_id(provider, media_type, native_id, anilist_id)
        if target_id is None:
            reason = (
                "AniList id not found for this anime"
                if media_type == MediaType.ANIME
                else f"{provider} ids cannot be streamed without a TMDB id"
            )
            return StreamLink(
                status=StreamStatus.MISSING_CROSS_REFERENCE,
                media_id=media_id,
                reason=reason,
            )

        if verify:
            source, url, live = await streaming.resolve_with_source(target_id, media_type, options)
        else:
            candidates = streaming.candidates(target_id, media_type, options)
            source, url = candidates[0] if candidates else (None, None)
            live = False

        if url is None:
            return StreamLink(
                status=StreamStatus.NOT_CONFIGURED,
                media_id=media_id,
                reason=f"No enabled source serves {media_type.value}",
            )
        return StreamLink(
            status=StreamStatus.AVAILABLE if live else StreamStatus.UNVERIFIED,
            url=url,
            source=source.name if source else None,
            media_id=media_id,
            language=options.language,
        )

    async def check_stream(self, media_id: str, options: StreamOptions | None = None) -> bool:
        """Strict availability: True only when a source answered as live."""
        try:
            provider, media_type, native_id = parse_media_id(media_id)
        except MediaIdError:
            return False
        if provider == "tmdb" or provider == "anilist":
            return await self._context.streaming.check_availability(native_id, media_type, options)
        return False

    async def _streaming_id(
        self,
        provider: str,
        media_type: MediaType,
        native_id: str,
        anilist_id: int | str | None,
    ) -> str | None:
        if media_type != MediaType.ANIME:
            return native_id if provider == "tmdb" else None
        if provider == "anilist":
            return native_id
        if anilist_id:
            return str(anilist_id)
        return await self._anilist_from_jikan(native_id)

    async def _anilist_from_jikan(self, mal_id: str) -> str | None:
        records = await JikanProvider(self._context).fetch_page(1)
        for record in records:
            if str(record.mal_id) == mal_id and record.anilist_id is not None:
                return str(record.anilist_id)
        logger.info(f"[STREAM] No AniList cross-reference for MAL id {mal_id}")
        return None

    def combine(
        self,
        local: Iterable[MediaRecord],
        remote: Iterable[MediaRecord],
        media_type: MediaType | str | None = None,
        genre: str | None = None,
    ) -> list[MediaRecord]:
        return combine_media(local, remote, media_type=media_type, genre=genre, dedup=self._dedup)


def combine_media(
    local: Iterable[MediaRecord],
    remote: Iterable[MediaRecord],
    *,
    media_type: MediaType | str | None = None,
    genre: str | None = None,
    dedup: Deduplicator | None = None,
) -> list[MediaRecord]:
    """Merge local files with API records, optionally filtered by type and genre.

    The movie filter also keeps local items that carry no explicit type.
    Genre matching is a case-insensitive substring match.
    """
    combined: list[MediaRecord] = [*local, *remote]

    kind = media_type.value if isinstance(media_type, MediaType) else media_type
    if kind and kind != "all":
        combined = [record for record in combined if _matches_type(record, kind)]

    if genre and genre != "all":
        needle = genre.lower()
        combined = [
            record
            for record in combined
            if any(needle in name.lower() for name in record.genres)
        ]

    return (dedup or Deduplicator()).merge(combined)


def _matches_type(record: MediaRecord, kind: str) -> bool:
    return record.type.value == kind


__all__ = ["CatalogService", "MediaIdError", "combine_media", "parse_media_id", "relevance"]

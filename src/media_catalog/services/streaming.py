"""Fallback embed-source resolution for playable streaming URLs."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx

from media_catalog.models import FallbackSource, MediaType, StreamOptions

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 3.0


class UrlBuilder(Protocol):
    """Builds one embed provider's URL for a title, or ``None`` if unsupported."""

    def build(
        self,
        base_url: str,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions,
    ) -> str | None: ...


class CinetaroUrlBuilder:
    """Cinetaro scheme: TMDB ids for movies and TV, AniList ids for anime."""

    def build(
        self,
        base_url: str,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions,
    ) -> str | None:
        base = base_url.rstrip("/")
        if media_type == MediaType.MOVIE:
            return f"{base}/movie/{native_id}/{options.language}"
        if media_type == MediaType.TV:
            return f"{base}/tv/{native_id}/{options.season}/{options.episode}/{options.language}"
        if media_type == MediaType.ANIME:
            return (
                f"{base}/anime/anilist/{options.variant.value}/{native_id}"
                f"/{options.season}/{options.episode}"
            )
        return None


@dataclass(frozen=True)
class PathTemplateUrlBuilder:
    """Embed providers that only differ by their path layout."""

    movie: str | None = None
    tv: str | None = None
    anime: str | None = None

    def build(
        self,
        base_url: str,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions,
    ) -> str | None:
        template = {
            MediaType.MOVIE: self.movie,
            MediaType.TV: self.tv,
            MediaType.ANIME: self.anime,
        }.get(media_type)
        if template is None:
            return None
        path = template.format(
            id=native_id,
            season=options.season,
            episode=options.episode,
            language=options.language,
            variant=options.variant.value,
        )
        return f"{base_url.rstrip('/')}{path}"


URL_BUILDERS: dict[str, UrlBuilder] = {
    "cinetaro": CinetaroUrlBuilder(),
    "vidsrc": PathTemplateUrlBuilder(
        movie="/embed/movie/{id}",
        tv="/embed/tv/{id}/{season}/{episode}",
    ),
    "embedsu": PathTemplateUrlBuilder(
        movie="/embed/movie/{id}",
        tv="/embed/tv/{id}/{season}/{episode}",
    ),
    "vidlink": PathTemplateUrlBuilder(
        movie="/movie/{id}",
        tv="/tv/{id}/{season}/{episode}",
    ),
}


class ProbeOutcome(str, Enum):
    LIVE = "live"
    INCONCLUSIVE = "inconclusive"
    DEAD = "dead"


class StreamingResolver:
    """Resolves a playable embed URL by walking fallback sources in priority order.

    ``resolve_fast`` never touches the network and is meant for bulk listing
    paths. ``resolve`` probes each candidate and returns the first live one,
    falling back to the top-priority URL when nothing answers so the player
    can surface its own error.
    """

    def __init__(
        self,
        sources: Iterable[FallbackSource],
        *,
        http: httpx.AsyncClient | None = None,
        enabled: bool = True,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        builders: Mapping[str, UrlBuilder] | None = None,
    ) -> None:
        self._http = http
        self._enabled = enabled
        self._probe_timeout = probe_timeout
        self._builders = dict(builders if builders is not None else URL_BUILDERS)
        ordered = sorted(
            (source for source in sources if source.enabled),
            key=lambda source: source.priority,
        )
        self._sources: list[FallbackSource] = []
        for source in ordered:
            if source.name not in self._builders:
                logger.warning(f"[STREAM] No URL builder registered for source '{source.name}'")
                continue
            self._sources.append(source)

    @property
    def sources(self) -> list[FallbackSource]:
        """Enabled sources, highest priority first."""
        return list(self._sources) if self._enabled else []

    def supports(self, media_type: MediaType) -> bool:
        """Whether any enabled source can build a URL for this media type."""
        probe_options = StreamOptions()
        return any(
            self._build(source, "0", media_type, probe_options) is not None
            for source in self.sources
        )

    def candidates(
        self,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions | None = None,
    ) -> list[tuple[FallbackSource, str]]:
        """Every (source, url) pair in priority order, skipping unsupported types."""
        resolved_options = options or StreamOptions()
        pairs: list[tuple[FallbackSource, str]] = []
        for source in self.sources:
            url = self._build(source, native_id, media_type, resolved_options)
            if url:
                pairs.append((source, url))
        return pairs

    def resolve_fast(
        self,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions | None = None,
    ) -> str | None:
        candidates = self.candidates(native_id, media_type, options)
        return candidates[0][1] if candidates else None

    async def resolve(
        self,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions | None = None,
    ) -> str | None:
        _, url, _ = await self._resolve_verified(native_id, media_type, options)
        return url

    async def check_availability(
        self,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions | None = None,
    ) -> bool:
        _, _, live = await self._resolve_verified(native_id, media_type, options)
        return live

    async def resolve_with_source(
        self,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions | None = None,
    ) -> tuple[FallbackSource | None, str | None, bool]:
        """Like ``resolve`` but also reports the chosen source and whether it was live."""
        return await self._resolve_verified(native_id, media_type, options)

    async def probe(self, url: str) -> ProbeOutcome:
        """Cheap HEAD request used as a liveness heuristic for an embed URL."""
        if self._http is None:
            return ProbeOutcome.DEAD
        try:
            response = await self._http.head(
                url,
                timeout=self._probe_timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            logger.debug(f"[STREAM] Probe failed for {url}: {exc}")
            return ProbeOutcome.DEAD

        status = response.status_code
        if 200 <= status < 300:
            return ProbeOutcome.LIVE
        if status < 500:
            return ProbeOutcome.INCONCLUSIVE
        return ProbeOutcome.DEAD

    async def _resolve_verified(
        self,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions | None,
    ) -> tuple[FallbackSource | None, str | None, bool]:
        candidates = self.candidates(native_id, media_type, options)
        if not candidates:
            return None, None, False

        for source, url in candidates:
            outcome = await self.probe(url)
            if outcome == ProbeOutcome.LIVE:
                logger.info(f"[STREAM] {source.name} is live for {media_type.value} {native_id}")
                return source, url, True
            logger.debug(f"[STREAM] {source.name} {outcome.value} for {url}; trying next source")

        best_source, best_effort = candidates[0]
        logger.info(
            f"[STREAM] No live source verified for {media_type.value} {native_id}; "
            f"returning {best_source.name}"
        )
        return best_source, best_effort, False

    def _build(
        self,
        source: FallbackSource,
        native_id: str | int,
        media_type: MediaType,
        options: StreamOptions,
    ) -> str | None:
        builder = self._builders.get(source.name)
        if builder is None:
            return None
        try:
            return builder.build(source.base_url, native_id, media_type, options)
        except (KeyError, ValueError) as exc:
            logger.warning(f"[STREAM] Could not build {source.name} URL: {exc}")
            return None


__all__ = [
    "CinetaroUrlBuilder",
    "PathTemplateUrlBuilder",
    "ProbeOutcome",
    "StreamingResolver",
    "URL_BUILDERS",
    "UrlBuilder",
]

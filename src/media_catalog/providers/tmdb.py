"""TMDB adapter: movie and TV listings, search, discover and detail lookups."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from media_catalog.models import MediaRecord, MediaType, StreamOptions, TVEpisode, TVSeason
from media_catalog.providers.base import CatalogProvider, EndOfResults, ProviderError, first_year

if TYPE_CHECKING:
    from media_catalog.context import CatalogContext

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w1280"
STREAM_SUBTITLES = ["english", "spanish", "french", "german"]
ANIMATION_GENRE_ID = 16
TOP_RATED_MIN_VOTES = 100

LISTING_PATHS: dict[tuple[MediaType, str], str] = {
    (MediaType.MOVIE, "popular"): "/movie/popular",
    (MediaType.MOVIE, "trending"): "/trending/movie/week",
    (MediaType.MOVIE, "top_rated"): "/movie/top_rated",
    (MediaType.MOVIE, "now_playing"): "/movie/now_playing",
    (MediaType.MOVIE, "upcoming"): "/movie/upcoming",
    (MediaType.MOVIE, "discover"): "/discover/movie",
    (MediaType.MOVIE, "top_rated_genre"): "/discover/movie",
    (MediaType.MOVIE, "search"): "/search/movie",
    (MediaType.TV, "popular"): "/tv/popular",
    (MediaType.TV, "trending"): "/trending/tv/week",
    (MediaType.TV, "top_rated"): "/tv/top_rated",
    (MediaType.TV, "discover"): "/discover/tv",
    (MediaType.TV, "top_rated_genre"): "/discover/tv",
    (MediaType.TV, "search"): "/search/tv",
}


class TMDBProvider(CatalogProvider):
    """Primary metadata provider. Every call requires ``TMDB_API_KEY``."""

    source = "tmdb"

    def __init__(
        self,
        context: CatalogContext,
        *,
        media_type: MediaType = MediaType.MOVIE,
        listing: str = "popular",
        genre_id: int | None = None,
    ) -> None:
        super().__init__(context)
        if (media_type, listing) not in LISTING_PATHS:
            raise ProviderError(
                "tmdb",
                f"Listing '{listing}' is not available for {media_type.value}",
            )
        if listing in {"discover", "top_rated_genre"} and genre_id is None:
            raise ProviderError("tmdb", f"Listing '{listing}' requires a genre id")

        self.media_type = media_type
        self.listing = listing
        self.genre_id = genre_id
        suffix = f"_{genre_id}" if genre_id is not None else ""
        self.name = f"tmdb_{media_type.value}_{listing}{suffix}"

    def is_configured(self) -> bool:
        return bool(self.settings.tmdb_api_key)

    async def prepare(self) -> None:
        await self._context.genres.ensure_initialized()

    async def request(self, page: int, **params: Any) -> Any:
        query_params: dict[str, Any] = {
            "api_key": self.settings.tmdb_api_key,
            "page": page,
            "language": self.settings.language,
        }
        if self.listing == "search":
            query = params.get("query")
            if not query:
                raise EndOfResults()
            query_params["query"] = query
        elif self.listing == "discover":
            query_params["with_genres"] = self.genre_id
            query_params["sort_by"] = "popularity.desc"
        elif self.listing == "top_rated_genre":
            query_params["with_genres"] = self.genre_id
            query_params["sort_by"] = "vote_average.desc"
            query_params["vote_count.gte"] = TOP_RATED_MIN_VOTES

        path = LISTING_PATHS[(self.media_type, self.listing)]
        return await self._get_json(f"{TMDB_BASE_URL}{path}", params=query_params)

    def parse(self, payload: Any, **params: Any) -> list[MediaRecord]:
        return [self.map_item(item) for item in payload.get("results", [])]

    def map_item(self, item: dict[str, Any]) -> MediaRecord:
        """Map one TMDB list or search result."""
        is_tv = self.media_type == MediaType.TV
        tmdb_id = item["id"]
        release_date = item.get("first_air_date") if is_tv else item.get("release_date")
        genre_ids = [int(genre_id) for genre_id in item.get("genre_ids") or []]
        streaming_url = self._streaming_url(tmdb_id)

        return MediaRecord(
            id=f"tmdb_{self.media_type.value}_{tmdb_id}",
            title=(item.get("name") if is_tv else item.get("title")) or "",
            original_title=item.get("original_name") if is_tv else item.get("original_title"),
            overview=item.get("overview"),
            release_date=release_date or None,
            year=first_year(release_date),
            poster_url=_image_url(POSTER_BASE_URL, item.get("poster_path")),
            backdrop_url=_image_url(BACKDROP_BASE_URL, item.get("backdrop_path")),
            rating=item.get("vote_average"),
            popularity=item.get("popularity"),
            type=self.media_type,
            source=self.source,
            tmdb_id=tmdb_id,
            genres=self._context.genres.map_genres(genre_ids, self.media_type),
            genre_ids=genre_ids,
            streaming_url=streaming_url,
            has_streaming=streaming_url is not None,
            subtitles=list(STREAM_SUBTITLES) if streaming_url else [],
            extras={"hasThumbnail": bool(item.get("poster_path"))},
        )

    async def details(self, tmdb_id: int | str) -> MediaRecord | None:
        """Full record for one title, with credits, external ids and videos."""
        if not self.is_configured():
            logger.warning(f"[{self.name}] TMDB API key not set; details unavailable")
            return None

        kind = self.media_type.value
        append = "external_ids,videos"
        if self.media_type == MediaType.MOVIE:
            append = f"credits,{append}"
        item = await self._cached_lookup(
            f"tmdb_{kind}_details_{tmdb_id}",
            f"{TMDB_BASE_URL}/{kind}/{tmdb_id}",
            {"append_to_response": append},
        )
        if not item:
            return None

        try:
            base = self.map_item({**item, "genre_ids": []})
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(f"[{self.name}] Unexpected details payload for {tmdb_id}: {exc}")
            return None

        extras: dict[str, Any] = dict(base.extras)
        credits = item.get("credits") or {}
        director = next(
            (member.get("name") for member in credits.get("crew", []) if member.get("job") == "Director"),
            None,
        )
        if director:
            extras["director"] = director
        cast = [member.get("name") for member in credits.get("cast", [])[:10] if member.get("name")]
        if cast:
            extras["actors"] = ", ".join(cast)

        runtime = item.get("runtime")
        if not runtime and item.get("episode_run_time"):
            runtime = item["episode_run_time"][0]
        if runtime:
            extras["runtime"] = f"{runtime} min"
        trailer = _trailer_url(item.get("videos") or {})
        if trailer:
            extras["trailerUrl"] = trailer
        if self.media_type == MediaType.TV:
            extras["totalSeasons"] = item.get("number_of_seasons")
            extras["totalEpisodes"] = item.get("number_of_episodes")

        imdb_id = (item.get("external_ids") or {}).get("imdb_id") or item.get("imdb_id")
        return base.model_copy(
            update={
                "genres": [genre["name"] for genre in item.get("genres", []) if genre.get("name")],
                "genre_ids": [genre["id"] for genre in item.get("genres", []) if "id" in genre],
                "imdb_id": imdb_id or None,
                "extras": extras,
            }
        )

    async def seasons(self, tmdb_id: int | str) -> list[TVSeason]:
        """Season summaries for a TV show, specials included."""
        payload = await self._cached_lookup(
            f"tmdb_tv_seasons_{tmdb_id}",
            f"{TMDB_BASE_URL}/tv/{tmdb_id}",
            {"append_to_response": "episode_groups"},
        )
        if not payload:
            return []
        return [
            TVSeason(
                season_number=season["season_number"],
                name=season.get("name") or f"Season {season['season_number']}",
                episode_count=season.get("episode_count"),
                overview=season.get("overview"),
                poster_url=_image_url(POSTER_BASE_URL, season.get("poster_path")),
            )
            for season in payload.get("seasons", [])
            if season.get("season_number", -1) >= 0
        ]

    async def season(self, tmdb_id: int | str, season_number: int) -> TVSeason | None:
        payload = await self._cached_lookup(
            f"tmdb_tv_season_{tmdb_id}_{season_number}",
            f"{TMDB_BASE_URL}/tv/{tmdb_id}/season/{season_number}",
            {},
        )
        if not payload:
            return None
        episodes = [
            TVEpisode(
                episode_number=episode["episode_number"],
                name=episode.get("name") or f"Episode {episode['episode_number']}",
                overview=episode.get("overview"),
                air_date=episode.get("air_date"),
                still_url=_image_url(POSTER_BASE_URL, episode.get("still_path")),
                runtime=episode.get("runtime"),
            )
            for episode in payload.get("episodes", [])
        ]
        return TVSeason(
            season_number=payload.get("season_number", season_number),
            name=payload.get("name") or f"Season {season_number}",
            episode_count=len(episodes),
            overview=payload.get("overview"),
            poster_url=_image_url(POSTER_BASE_URL, payload.get("poster_path")),
            episodes=episodes,
        )

    async def _cached_lookup(self, key: str, url: str, params: dict[str, Any]) -> dict[str, Any] | None:
        if not self.is_configured():
            logger.warning(f"[{self.name}] TMDB API key not set; skipping {url}")
            return None

        cached = await self._context.cache.get(key)
        if cached is not None:
            return cached
        try:
            payload = await self._get_json(
                url,
                params={
                    "api_key": self.settings.tmdb_api_key,
                    "language": self.settings.language,
                    **params,
                },
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[{self.name}] Lookup failed for {url}: {exc!r}")
            return None
        if not isinstance(payload, dict):
            return None
        await self._context.cache.set(key, payload)
        return payload

    def _streaming_url(self, tmdb_id: int) -> str | None:
        options = StreamOptions()
        return self._context.streaming.resolve_fast(tmdb_id, self.media_type, options)


def _image_url(base: str, path: str | None) -> str | None:
    return f"{base}{path}" if path else None


def _trailer_url(videos: dict[str, Any]) -> str | None:
    for video in videos.get("results", []):
        if video.get("site") == "YouTube" and video.get("type") == "Trailer" and video.get("key"):
            return f"https://www.youtube.com/watch?v={video['key']}"
    return None


__all__ = ["ANIMATION_GENRE_ID", "LISTING_PATHS", "TMDBProvider"]

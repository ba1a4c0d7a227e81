"""Jikan (MyAnimeList) anime adapter."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from media_catalog.models import MediaRecord, MediaType, StreamOptions
from media_catalog.providers.base import (
    CatalogProvider,
    EndOfResults,
    ProviderError,
    first_year,
    scaled_rating,
)

if TYPE_CHECKING:
    from media_catalog.context import CatalogContext

JIKAN_BASE_URL = "https://api.jikan.moe/v4"
PAGE_SIZE = 20
ANIME_SUBTITLES = ["sub", "dub", "hindi"]
_ANILIST_ID = re.compile(r"/(\d+)")

LISTINGS = {"top": "/top/anime", "search": "/anime"}


def extract_anilist_id(item: dict[str, Any]) -> int | None:
    """AniList id from Jikan's ``external`` links, when the entry lists one."""
    for link in item.get("external") or []:
        if link.get("name") != "AniList":
            continue
        match = _ANILIST_ID.search(link.get("url") or "")
        if match:
            return int(match.group(1))
    return None


class JikanProvider(CatalogProvider):
    """Secondary anime provider keyed by MyAnimeList ids; no credential needed."""

    source = "jikan"
    media_type = MediaType.ANIME

    def __init__(self, context: CatalogContext, *, listing: str = "top") -> None:
        super().__init__(context)
        if listing not in LISTINGS:
            raise ProviderError("jikan", f"Unknown listing '{listing}'")
        self.listing = listing
        self.name = f"jikan_{listing}"

    async def request(self, page: int, **params: Any) -> Any:
        query_params: dict[str, Any] = {"page": page, "limit": PAGE_SIZE}
        if self.listing == "search":
            query = params.get("query")
            if not query:
                raise EndOfResults()
            query_params["q"] = query
        return await self._get_json(f"{JIKAN_BASE_URL}{LISTINGS[self.listing]}", params=query_params)

    def parse(self, payload: Any, **params: Any) -> list[MediaRecord]:
        return [self.map_item(item) for item in payload.get("data", [])]

    def map_item(self, item: dict[str, Any]) -> MediaRecord:
        mal_id = item["mal_id"]
        anilist_id = extract_anilist_id(item)
        images = (item.get("images") or {}).get("jpg") or {}
        aired_from = (item.get("aired") or {}).get("from")
        release_date = aired_from.split("T")[0] if aired_from else None

        streaming_url = None
        if anilist_id is not None:
            streaming_url = self._context.streaming.resolve_fast(
                anilist_id, MediaType.ANIME, StreamOptions()
            )
        has_streaming = streaming_url is not None
        if streaming_url is None:
            streaming_url = (item.get("trailer") or {}).get("url")

        studios = [studio.get("name") for studio in item.get("studios") or [] if studio.get("name")]
        return MediaRecord(
            id=f"jikan_anime_{mal_id}",
            title=item.get("title") or "",
            original_title=item.get("title_english") or item.get("title_japanese") or item.get("title"),
            overview=item.get("synopsis") or "",
            release_date=release_date,
            year=first_year(release_date),
            poster_url=images.get("large_image_url") or images.get("image_url"),
            backdrop_url=images.get("large_image_url"),
            rating=scaled_rating(item.get("score")),
            popularity=item.get("popularity"),
            type=MediaType.ANIME,
            source=self.source,
            mal_id=mal_id,
            anilist_id=anilist_id,
            genres=[genre["name"] for genre in item.get("genres") or [] if genre.get("name")],
            streaming_url=streaming_url,
            has_streaming=has_streaming,
            subtitles=list(ANIME_SUBTITLES) if has_streaming else [],
            extras={
                "episodes": item.get("episodes"),
                "status": item.get("status"),
                "studio": studios[0] if studios else None,
                "hasThumbnail": bool(images.get("image_url")),
            },
        )


__all__ = ["JikanProvider", "extract_anilist_id"]

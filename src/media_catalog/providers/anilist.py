"""AniList GraphQL anime adapter."""

from __future__ import annotations

import re
from typing import Any

from media_catalog.models import MediaRecord, MediaType, StreamOptions
from media_catalog.providers.base import CatalogProvider, scaled_rating

ANILIST_URL = "https://graphql.anilist.co"
PAGE_SIZE = 20
ANIME_SUBTITLES = ["sub", "dub", "hindi"]
_TAGS = re.compile(r"<[^>]+>")

POPULAR_ANIME_QUERY = """
query ($page: Int, $perPage: Int, $search: String) {
  Page(page: $page, perPage: $perPage) {
    pageInfo { currentPage hasNextPage }
    media(type: ANIME, sort: POPULARITY_DESC, search: $search, isAdult: false) {
      id
      idMal
      title { romaji english native }
      description(asHtml: false)
      startDate { year month day }
      coverImage { extraLarge large }
      bannerImage
      averageScore
      popularity
      genres
      episodes
      status
      format
      studios(isMain: true) { nodes { name } }
    }
  }
}
"""


class AniListProvider(CatalogProvider):
    """GraphQL anime provider whose native ids feed the anime embed scheme directly."""

    name = "anilist"
    source = "anilist"
    media_type = MediaType.ANIME

    async def request(self, page: int, **params: Any) -> Any:
        variables: dict[str, Any] = {"page": page, "perPage": PAGE_SIZE}
        if params.get("query"):
            variables["search"] = params["query"]

        response = await self._context.http.post(
            ANILIST_URL,
            json={"query": POPULAR_ANIME_QUERY, "variables": variables},
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=self.settings.request_timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict) and payload.get("errors"):
            message = "; ".join(str(error.get("message")) for error in payload["errors"])
            raise ValueError(f"GraphQL errors: {message}")
        return payload

    def parse(self, payload: Any, **params: Any) -> list[MediaRecord]:
        media = ((payload.get("data") or {}).get("Page") or {}).get("media") or []
        return [self.map_item(item) for item in media]

    def map_item(self, item: dict[str, Any]) -> MediaRecord:
        anilist_id = item["id"]
        titles = item.get("title") or {}
        cover = item.get("coverImage") or {}
        release_date = _start_date(item.get("startDate") or {})
        streaming_url = self._context.streaming.resolve_fast(
            anilist_id, MediaType.ANIME, StreamOptions()
        )
        studios = ((item.get("studios") or {}).get("nodes")) or []
        description = item.get("description")

        return MediaRecord(
            id=f"anilist_anime_{anilist_id}",
            title=titles.get("romaji") or titles.get("english") or "",
            original_title=titles.get("english") or titles.get("native"),
            overview=_TAGS.sub("", description).strip() if description else "",
            release_date=release_date,
            year=str((item.get("startDate") or {}).get("year") or "") or None,
            poster_url=cover.get("extraLarge") or cover.get("large"),
            backdrop_url=item.get("bannerImage") or cover.get("extraLarge"),
            rating=scaled_rating(item.get("averageScore"), scale=100.0),
            popularity=item.get("popularity"),
            type=MediaType.ANIME,
            source=self.source,
            anilist_id=anilist_id,
            mal_id=item.get("idMal"),
            genres=list(item.get("genres") or []),
            streaming_url=streaming_url,
            has_streaming=streaming_url is not None,
            subtitles=list(ANIME_SUBTITLES) if streaming_url else [],
            extras={
                "episodes": item.get("episodes"),
                "status": item.get("status"),
                "format": item.get("format"),
                "studio": studios[0].get("name") if studios else None,
            },
        )


def _start_date(start: dict[str, Any]) -> str | None:
    year = start.get("year")
    if not year:
        return None
    month = start.get("month") or 1
    day = start.get("day") or 1
    return f"{int(year):04d}-{int(month):02d}-{int(day):02d}"


__all__ = ["AniListProvider", "POPULAR_ANIME_QUERY"]

"""TVMaze adapter: full show index and show search."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import httpx

from media_catalog.models import MediaRecord, MediaType
from media_catalog.providers.base import CatalogProvider, EndOfResults, ProviderError, first_year

if TYPE_CHECKING:
    from media_catalog.context import CatalogContext

TVMAZE_BASE_URL = "https://api.tvmaze.com"
_TAGS = re.compile(r"<[^>]+>")

LISTINGS = {"index": "/shows", "search": "/search/shows"}


class TVMazeProvider(CatalogProvider):
    """Keyless TV listings provider.

    The show index is 0-indexed and answers 404 once the requested page is
    past the end, which is an empty page rather than a failure. Search has a
    single page of results.
    """

    source = "tvmaze"
    media_type = MediaType.TV

    def __init__(self, context: CatalogContext, *, listing: str = "index") -> None:
        super().__init__(context)
        if listing not in LISTINGS:
            raise ProviderError("tvmaze", f"Unknown listing '{listing}'")
        self.listing = listing
        self.name = f"tvmaze_{listing}"

    async def request(self, page: int, **params: Any) -> Any:
        url = f"{TVMAZE_BASE_URL}{LISTINGS[self.listing]}"
        if self.listing == "search":
            query = params.get("query")
            if not query or page > 1:
                raise EndOfResults()
            return await self._get_json(url, params={"q": query})

        try:
            return await self._get_json(url, params={"page": max(page - 1, 0)})
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise EndOfResults() from exc
            raise

    def parse(self, payload: Any, **params: Any) -> list[MediaRecord]:
        shows = payload
        if self.listing == "search":
            shows = [entry.get("show") or {} for entry in payload]
        return [self.map_item(show) for show in shows if show.get("id") is not None]

    def map_item(self, show: dict[str, Any]) -> MediaRecord:
        tvmaze_id = show["id"]
        image = show.get("image") or {}
        externals = show.get("externals") or {}
        summary = show.get("summary")
        premiered = show.get("premiered")
        network = show.get("network") or show.get("webChannel") or {}

        return MediaRecord(
            id=f"tvmaze_tv_{tvmaze_id}",
            title=show.get("name") or "",
            original_title=show.get("name"),
            overview=_TAGS.sub("", summary).strip() if summary else "",
            release_date=premiered,
            year=first_year(premiered),
            poster_url=image.get("original") or image.get("medium"),
            backdrop_url=image.get("original"),
            rating=(show.get("rating") or {}).get("average"),
            popularity=show.get("weight"),
            type=MediaType.TV,
            source=self.source,
            tvmaze_id=tvmaze_id,
            imdb_id=externals.get("imdb"),
            genres=list(show.get("genres") or []),
            streaming_url=None,
            has_streaming=False,
            extras={
                "status": show.get("status"),
                "network": network.get("name"),
                "thetvdbId": externals.get("thetvdb"),
            },
        )


__all__ = ["TVMazeProvider"]

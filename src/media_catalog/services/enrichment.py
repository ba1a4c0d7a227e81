"""Enrichment service for filling media records with OMDb details."""

from __future__ import annotations

import logging
from typing import Any

from media_catalog.clients.omdb import OMDbClient, OMDbTitle
from media_catalog.models import MediaRecord, MediaType

logger = logging.getLogger(__name__)

# OMDb attribute -> extras key; OMDb values replace existing ones when present
DETAIL_FIELDS = {
    "director": "director",
    "writer": "writer",
    "actors": "actors",
    "awards": "awards",
    "box_office": "boxOffice",
    "rated": "rated",
    "runtime": "runtime",
    "country": "country",
    "language": "language",
    "metascore": "metascore",
}


class EnrichmentService:
    """Service for enriching media records with OMDb data.

    Existing data is only overwritten with better data: a longer overview,
    a rating or poster where the record has none, and the union of genres.
    Records pass through unchanged when OMDb is not configured or has no match.
    """

    def __init__(self, client: OMDbClient, *, debug: bool = False) -> None:
        self._client = client
        self._debug = debug

    async def enrich(self, record: MediaRecord) -> MediaRecord:
        if not self._client.is_configured():
            return record

        omdb = await self._lookup(record)
        if omdb is None:
            if self._debug:
                logger.info(f"[ENRICH] No OMDb match for: {record.title}")
            return record

        enriched = merge_omdb(record, omdb)
        if self._debug:
            rating = omdb.imdb_rating if omdb.imdb_rating is not None else "N/A"
            logger.info(f"[ENRICH] {record.title}: IMDb {rating}, {len(enriched.genres)} genres")
        return enriched

    async def enrich_many(self, records: list[MediaRecord]) -> list[MediaRecord]:
        return [await self.enrich(record) for record in records]

    async def _lookup(self, record: MediaRecord) -> OMDbTitle | None:
        if record.imdb_id:
            return await self._client.by_imdb_id(record.imdb_id)
        if record.title and record.year:
            omdb_type = "series" if record.type == MediaType.TV else "movie"
            return await self._client.by_title(record.title, record.year, omdb_type)
        return None


def merge_omdb(record: MediaRecord, omdb: OMDbTitle) -> MediaRecord:
    """Combine a record with its OMDb counterpart without degrading either."""
    update: dict[str, Any] = {}

    current_overview = record.overview or ""
    if omdb.plot and len(omdb.plot) > len(current_overview):
        update["overview"] = omdb.plot
    if record.rating is None and omdb.imdb_rating is not None:
        update["rating"] = omdb.imdb_rating
    if not record.poster_url and omdb.poster:
        update["poster_url"] = omdb.poster
    if not record.imdb_id and omdb.imdb_id:
        update["imdb_id"] = omdb.imdb_id

    genres = list(record.genres)
    for name in omdb.genres:
        if name not in genres:
            genres.append(name)
    update["genres"] = genres

    extras = dict(record.extras)
    for attribute, key in DETAIL_FIELDS.items():
        value = getattr(omdb, attribute)
        if value:
            extras[key] = value
    if omdb.imdb_rating is not None:
        extras["imdbRating"] = omdb.imdb_rating
    if omdb.ratings:
        extras["omdbRatings"] = dict(omdb.ratings)
    extras["enrichedWithOMDb"] = True
    update["extras"] = extras

    return record.model_copy(update=update)


__all__ = ["EnrichmentService", "merge_omdb"]

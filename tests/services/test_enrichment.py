"""Tests for OMDb enrichment."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from media_catalog.clients.omdb import OMDbClient, OMDbTitle
from media_catalog.models import MediaRecord, MediaType
from media_catalog.services.enrichment import EnrichmentService, merge_omdb
from tests.fixtures.omdb_responses import INCEPTION_RESPONSE


@pytest.fixture
def omdb_title():
    return OMDbTitle.model_validate(INCEPTION_RESPONSE)


@pytest.fixture
def mock_omdb_client(omdb_title):
    """OMDb client double that always finds Inception."""
    client = MagicMock(spec=OMDbClient)
    client.is_configured.return_value = True
    client.by_imdb_id = AsyncMock(return_value=omdb_title)
    client.by_title = AsyncMock(return_value=omdb_title)
    return client


@pytest.fixture
def tmdb_record():
    return MediaRecord(
        id="tmdb_movie_27205",
        title="Inception",
        year="2010",
        source="tmdb",
        overview="Dreams within dreams.",
        rating=8.4,
        poster_url="https://image.tmdb.org/t/p/w500/inception.jpg",
        genres=["Action", "Science Fiction"],
    )


class TestMergeOMDb:
    """Only better data replaces what the record already has."""

    def test_longer_plot_replaces_overview(self, tmdb_record, omdb_title):
        merged = merge_omdb(tmdb_record, omdb_title)
        assert merged.overview == omdb_title.plot

    def test_shorter_plot_keeps_overview(self, tmdb_record, omdb_title):
        long_overview = "x" * 500
        record = tmdb_record.model_copy(update={"overview": long_overview})

        assert merge_omdb(record, omdb_title).overview == long_overview

    def test_existing_rating_and_poster_kept(self, tmdb_record, omdb_title):
        merged = merge_omdb(tmdb_record, omdb_title)

        assert merged.rating == 8.4
        assert merged.poster_url == tmdb_record.poster_url
        assert merged.extras["imdbRating"] == 8.8

    def test_missing_values_filled(self, omdb_title):
        bare = MediaRecord(id="local_1", title="Inception", year="2010")

        merged = merge_omdb(bare, omdb_title)

        assert merged.rating == 8.8
        assert merged.poster_url == "https://m.media-amazon.com/images/M/inception.jpg"
        assert merged.imdb_id == "tt1375666"

    def test_genres_are_unioned_in_order(self, tmdb_record, omdb_title):
        merged = merge_omdb(tmdb_record, omdb_title)
        assert merged.genres == ["Action", "Science Fiction", "Adventure", "Sci-Fi"]

    def test_details_added_to_extras(self, tmdb_record, omdb_title):
        extras = merge_omdb(tmdb_record, omdb_title).extras

        assert extras["director"] == "Christopher Nolan"
        assert extras["rated"] == "PG-13"
        assert extras["omdbRatings"]["Metacritic"] == "74/100"
        assert extras["enrichedWithOMDb"] is True
        assert "boxOffice" not in extras

    def test_original_record_untouched(self, tmdb_record, omdb_title):
        merge_omdb(tmdb_record, omdb_title)
        assert tmdb_record.extras == {}


class TestEnrichmentService:
    """Test cases for EnrichmentService."""

    @pytest.mark.asyncio
    async def test_prefers_imdb_lookup(self, mock_omdb_client, tmdb_record):
        record = tmdb_record.model_copy(update={"imdb_id": "tt1375666"})

        enriched = await EnrichmentService(mock_omdb_client).enrich(record)

        mock_omdb_client.by_imdb_id.assert_awaited_once_with("tt1375666")
        mock_omdb_client.by_title.assert_not_awaited()
        assert enriched.extras["enrichedWithOMDb"] is True

    @pytest.mark.asyncio
    async def test_title_lookup_uses_series_for_tv(self, mock_omdb_client):
        record = MediaRecord(id="tmdb_tv_1399", title="Game of Thrones", year="2011", type=MediaType.TV)

        await EnrichmentService(mock_omdb_client).enrich(record)

        mock_omdb_client.by_title.assert_awaited_once_with("Game of Thrones", "2011", "series")

    @pytest.mark.asyncio
    async def test_unconfigured_is_noop(self, mock_omdb_client, tmdb_record):
        mock_omdb_client.is_configured.return_value = False

        result = await EnrichmentService(mock_omdb_client).enrich(tmdb_record)

        assert result is tmdb_record
        mock_omdb_client.by_title.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_match_is_noop(self, mock_omdb_client, tmdb_record):
        mock_omdb_client.by_title.return_value = None

        result = await EnrichmentService(mock_omdb_client, debug=True).enrich(tmdb_record)

        assert result is tmdb_record

    @pytest.mark.asyncio
    async def test_without_year_or_imdb_id_skips_lookup(self, mock_omdb_client):
        record = MediaRecord(id="local_2", title="Untitled")

        assert await EnrichmentService(mock_omdb_client).enrich(record) is record
        mock_omdb_client.by_title.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enrich_many_keeps_order(self, mock_omdb_client, tmdb_record):
        other = MediaRecord(id="local_3", title="Nothing")

        results = await EnrichmentService(mock_omdb_client).enrich_many([tmdb_record, other])

        assert [record.id for record in results] == ["tmdb_movie_27205", "local_3"]

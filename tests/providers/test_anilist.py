"""Tests for the AniList GraphQL provider."""

import json

import httpx
import pytest
import respx

from media_catalog.providers.anilist import ANILIST_URL, AniListProvider
from tests.fixtures.anilist_responses import GRAPHQL_ERROR_RESPONSE, POPULAR_ANIME_RESPONSE


class TestAniListProvider:
    """Test cases for AniListProvider."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_query_with_paging(self, context):
        route = respx.post(ANILIST_URL).mock(
            return_value=httpx.Response(200, json=POPULAR_ANIME_RESPONSE)
        )

        await AniListProvider(context).fetch_page(2)

        body = json.loads(route.calls.last.request.content)
        assert body["variables"] == {"page": 2, "perPage": 20}
        assert "POPULARITY_DESC" in body["query"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_variable(self, context):
        route = respx.post(ANILIST_URL).mock(
            return_value=httpx.Response(200, json=POPULAR_ANIME_RESPONSE)
        )

        await AniListProvider(context).fetch_page(1, query="titan")

        body = json.loads(route.calls.last.request.content)
        assert body["variables"]["search"] == "titan"

    @pytest.mark.asyncio
    @respx.mock
    async def test_mapping(self, context):
        respx.post(ANILIST_URL).mock(return_value=httpx.Response(200, json=POPULAR_ANIME_RESPONSE))

        aot, fma = await AniListProvider(context).fetch_page(1)

        assert aot.id == "anilist_anime_16498"
        assert aot.title == "Shingeki no Kyojin"
        assert aot.original_title == "Attack on Titan"
        assert aot.rating == 8.5
        assert aot.release_date == "2013-04-07"
        assert aot.year == "2013"
        assert aot.overview.endswith("(Source: Crunchyroll)")
        assert "<br>" not in aot.overview
        assert aot.anilist_id == 16498
        assert aot.has_streaming is True
        assert aot.streaming_url.endswith("/anime/anilist/sub/16498/1/1")
        assert aot.extras["studio"] == "Wit Studio"

        assert fma.poster_url == "https://s4.anilist.co/fma.jpg"
        assert fma.rating is None
        assert fma.release_date == "2009-04-01"

    @pytest.mark.asyncio
    @respx.mock
    async def test_graphql_errors_become_failed_result(self, context):
        respx.post(ANILIST_URL).mock(return_value=httpx.Response(200, json=GRAPHQL_ERROR_RESPONSE))

        result = await AniListProvider(context).fetch(1)

        assert not result.ok
        assert "Too Many Requests" in str(result.error)
        assert result.records == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_streaming_disabled(self, context):
        context.streaming._enabled = False
        respx.post(ANILIST_URL).mock(return_value=httpx.Response(200, json=POPULAR_ANIME_RESPONSE))

        aot, _ = await AniListProvider(context).fetch_page(1)

        assert aot.has_streaming is False
        assert aot.streaming_url is None
        assert aot.subtitles == []

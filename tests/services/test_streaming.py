"""Tests for fallback streaming resolution."""

import httpx
import pytest
import respx

from media_catalog.config.settings import DEFAULT_FALLBACK_SOURCES
from media_catalog.models import AnimeVariant, FallbackSource, MediaType, StreamOptions
from media_catalog.services.streaming import (
    URL_BUILDERS,
    PathTemplateUrlBuilder,
    ProbeOutcome,
    StreamingResolver,
)

CINETARO = "https://apicinetaro.falex43350.workers.dev"


@pytest.fixture
def resolver(http_client):
    return StreamingResolver(DEFAULT_FALLBACK_SOURCES, http=http_client)


class TestUrlBuilding:
    def test_cinetaro_movie_tv_anime(self, resolver):
        options = StreamOptions(season=2, episode=5, language="spanish", variant=AnimeVariant.DUB)

        movie = resolver.resolve_fast(27205, MediaType.MOVIE, options)
        tv = resolver.resolve_fast(1399, MediaType.TV, options)

        assert movie == f"{CINETARO}/movie/27205/spanish"
        assert tv == f"{CINETARO}/tv/1399/2/5/spanish"
        assert resolver.resolve_fast(16498, MediaType.ANIME, options) == (
            f"{CINETARO}/anime/anilist/dub/16498/2/5"
        )

    def test_candidates_follow_priority(self, resolver):
        urls = [url for _, url in resolver.candidates(1399, MediaType.TV)]
        assert urls == [
            f"{CINETARO}/tv/1399/1/1/english",
            "https://vidsrc.xyz/embed/tv/1399/1/1",
            "https://embed.su/embed/tv/1399/1/1",
            "https://vidlink.pro/tv/1399/1/1",
        ]

    def test_anime_only_served_by_cinetaro(self, resolver):
        assert len(resolver.candidates(1, MediaType.ANIME)) == 1

    def test_priority_order_independent_of_input_order(self, http_client):
        sources = list(reversed(DEFAULT_FALLBACK_SOURCES))
        resolver = StreamingResolver(sources, http=http_client)
        assert [source.name for source in resolver.sources] == [
            "cinetaro",
            "vidsrc",
            "embedsu",
            "vidlink",
        ]

    def test_disabled_source_skipped(self, http_client):
        sources = [
            source.model_copy(update={"enabled": source.name != "cinetaro"})
            for source in DEFAULT_FALLBACK_SOURCES
        ]
        resolver = StreamingResolver(sources, http=http_client)

        assert resolver.resolve_fast(603, MediaType.MOVIE) == "https://vidsrc.xyz/embed/movie/603"
        assert resolver.resolve_fast(1, MediaType.ANIME) is None
        assert resolver.supports(MediaType.MOVIE)
        assert not resolver.supports(MediaType.ANIME)

    def test_unknown_source_name_ignored(self, http_client):
        sources = [FallbackSource(name="mystery", base_url="https://m.example", priority=0)]
        resolver = StreamingResolver(sources, http=http_client)
        assert resolver.sources == []

    def test_custom_builder_table(self, http_client):
        builders = {**URL_BUILDERS, "mirror": PathTemplateUrlBuilder(movie="/m/{id}")}
        sources = [FallbackSource(name="mirror", base_url="https://mirror.example/", priority=1)]
        resolver = StreamingResolver(sources, http=http_client, builders=builders)

        assert resolver.resolve_fast(7, MediaType.MOVIE) == "https://mirror.example/m/7"


class TestVerifiedResolution:
    """Liveness checks behind resolve and check_availability."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_live_top_source_short_circuits(self, resolver):
        top = respx.head(f"{CINETARO}/movie/27205/english").mock(return_value=httpx.Response(200))

        url = await resolver.resolve(27205, MediaType.MOVIE)

        assert url == f"{CINETARO}/movie/27205/english"
        assert top.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.respx(assert_all_called=False)
    async def test_falls_through_dead_and_inconclusive(self, resolver, respx_mock):
        respx_mock.head(f"{CINETARO}/movie/603/english").mock(return_value=httpx.Response(502))
        respx_mock.head("https://vidsrc.xyz/embed/movie/603").mock(return_value=httpx.Response(403))
        respx_mock.head("https://embed.su/embed/movie/603").mock(return_value=httpx.Response(204))
        vidlink = respx_mock.head("https://vidlink.pro/movie/603").mock(return_value=httpx.Response(200))

        assert await resolver.resolve(603, MediaType.MOVIE) == "https://embed.su/embed/movie/603"
        assert await resolver.check_availability(603, MediaType.MOVIE) is True
        assert vidlink.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_nothing_live_returns_top_priority_url(self, resolver):
        respx.head(f"{CINETARO}/movie/603/english").mock(side_effect=httpx.ConnectTimeout("slow"))
        respx.head("https://vidsrc.xyz/embed/movie/603").mock(return_value=httpx.Response(404))
        respx.head("https://embed.su/embed/movie/603").mock(return_value=httpx.Response(500))
        respx.head("https://vidlink.pro/movie/603").mock(side_effect=httpx.ConnectError("refused"))

        assert await resolver.resolve(603, MediaType.MOVIE) == f"{CINETARO}/movie/603/english"
        assert await resolver.check_availability(603, MediaType.MOVIE) is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolve_with_source_reports_winner(self, resolver):
        respx.head(f"{CINETARO}/tv/1399/1/1/english").mock(return_value=httpx.Response(200))

        source, url, live = await resolver.resolve_with_source(1399, MediaType.TV)

        assert source.name == "cinetaro"
        assert url.endswith("/tv/1399/1/1/english")
        assert live is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_liveness_outcomes(self, resolver):
        respx.head("https://mirror.example/ok").mock(return_value=httpx.Response(200))
        respx.head("https://mirror.example/gone").mock(return_value=httpx.Response(410))
        respx.head("https://mirror.example/down").mock(return_value=httpx.Response(503))

        assert await resolver.probe("https://mirror.example/ok") == ProbeOutcome.LIVE
        assert await resolver.probe("https://mirror.example/gone") == ProbeOutcome.INCONCLUSIVE
        assert await resolver.probe("https://mirror.example/down") == ProbeOutcome.DEAD


class TestNoSources:
    """With no enabled source every operation degrades quietly."""

    @pytest.mark.asyncio
    async def test_all_sources_disabled(self, http_client):
        sources = [source.model_copy(update={"enabled": False}) for source in DEFAULT_FALLBACK_SOURCES]
        resolver = StreamingResolver(sources, http=http_client)

        with respx.mock:
            assert resolver.resolve_fast(1, MediaType.MOVIE) is None
            assert await resolver.resolve(1, MediaType.MOVIE) is None
            assert await resolver.check_availability(1, MediaType.MOVIE) is False

    @pytest.mark.asyncio
    async def test_streaming_switched_off(self, http_client):
        resolver = StreamingResolver(DEFAULT_FALLBACK_SOURCES, http=http_client, enabled=False)

        with respx.mock:
            assert resolver.sources == []
            assert await resolver.resolve(1, MediaType.TV) is None
            assert await resolver.check_availability(1, MediaType.TV) is False

"""Tests for batched multi-provider bulk loading."""

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from media_catalog.models import MediaRecord
from media_catalog.providers.base import ProviderError, ProviderResult
from media_catalog.providers.jikan import JikanProvider
from media_catalog.providers.tmdb import TMDBProvider
from media_catalog.services.aggregator import BulkAggregator
from tests.fixtures.jikan_responses import TOP_ANIME_RESPONSE


class FakeProvider:
    """Serves one record per page and records which pages were requested."""

    def __init__(self, name: str, *, failing: set[int] | None = None, raising: set[int] | None = None):
        self.name = name
        self.requested: list[int] = []
        self._failing = failing or set()
        self._raising = raising or set()

    async def fetch(self, page: int = 1) -> ProviderResult:
        self.requested.append(page)
        if page in self._raising:
            raise RuntimeError(f"boom on page {page}")
        if page in self._failing:
            return ProviderResult.failure(self.name, page, ProviderError(self.name, "HTTP 500"))
        record = MediaRecord(id=f"{self.name}_{page}", title=f"{self.name} {page}")
        return ProviderResult(provider=self.name, page=page, records=[record])


@pytest.fixture
def sleep():
    return AsyncMock()


class TestBulkAggregator:
    """Test cases for BulkAggregator.bulk_load."""

    @pytest.mark.asyncio
    async def test_scenario_batches_and_pauses(self, sleep):
        """Five pages in batches of two means three batches and two pauses per provider."""
        first = FakeProvider("a")
        second = FakeProvider("b")

        records = await BulkAggregator(sleep=sleep).bulk_load(
            [first, second], start_page=1, page_count=5, batch_size=2, inter_batch_delay_ms=100
        )

        assert sorted(first.requested) == [1, 2, 3, 4, 5]
        assert sorted(second.requested) == [1, 2, 3, 4, 5]
        assert sleep.await_count == 4
        assert all(call.args == (0.1,) for call in sleep.await_args_list)
        assert len(records) == 10

    @pytest.mark.asyncio
    async def test_provider_then_page_order(self, sleep):
        records = await BulkAggregator(sleep=sleep).bulk_load(
            [FakeProvider("a"), FakeProvider("b")], start_page=3, page_count=3, batch_size=2
        )

        assert [record.id for record in records] == ["a_3", "a_4", "a_5", "b_3", "b_4", "b_5"]

    @pytest.mark.asyncio
    async def test_failures_count_as_empty_pages(self, sleep):
        provider = FakeProvider("a", failing={2}, raising={3})

        records = await BulkAggregator(sleep=sleep).bulk_load(
            [provider], start_page=1, page_count=4, batch_size=2
        )

        assert [record.id for record in records] == ["a_1", "a_4"]

    @pytest.mark.asyncio
    async def test_single_batch_never_sleeps(self, sleep):
        await BulkAggregator(sleep=sleep).bulk_load(
            [FakeProvider("a")], start_page=1, page_count=2, batch_size=3
        )

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_pages_requested(self, sleep):
        provider = FakeProvider("a")

        assert await BulkAggregator(sleep=sleep).bulk_load([provider], 1, 0) == []
        assert provider.requested == []

    @pytest.mark.asyncio
    async def test_custom_delay(self, sleep):
        await BulkAggregator(sleep=sleep).bulk_load(
            [FakeProvider("a")], start_page=1, page_count=3, batch_size=1, inter_batch_delay_ms=250
        )

        assert [call.args for call in sleep.await_args_list] == [(0.25,), (0.25,)]


class TestBulkAggregatorWithAdapters:
    """Real adapters behind mocked upstreams."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_timed_out_provider_leaves_the_other_intact(self, context, sleep):
        tmdb = respx.get("https://api.themoviedb.org/3/movie/popular").mock(
            side_effect=httpx.ConnectTimeout("slow")
        )
        jikan = respx.get("https://api.jikan.moe/v4/top/anime").mock(
            return_value=httpx.Response(200, json=TOP_ANIME_RESPONSE)
        )

        records = await BulkAggregator(sleep=sleep).bulk_load(
            [TMDBProvider(context), JikanProvider(context)], start_page=1, page_count=2, batch_size=2
        )

        assert [record.id for record in records] == ["jikan_anime_5114", "jikan_anime_9253"] * 2
        assert {record.source for record in records} == {"jikan"}
        assert tmdb.call_count == 2
        assert jikan.call_count == 2
        sleep.assert_not_awaited()

"""Tests for the disk-backed response cache."""

import json

import pytest

from media_catalog.cache import DEFAULT_TTL_MS, ResponseCache


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def response_cache(tmp_path, clock):
    return ResponseCache(tmp_path / "api", clock=clock)


class TestResponseCache:
    """Test cases for ResponseCache."""

    @pytest.mark.asyncio
    async def test_round_trip_within_ttl(self, response_cache):
        """A freshly written entry is served back."""
        await response_cache.set("tmdb_movie_popular_1", {"results": [1, 2, 3]})

        assert await response_cache.get("tmdb_movie_popular_1") == {"results": [1, 2, 3]}

    @pytest.mark.asyncio
    async def test_missing_key_is_a_miss(self, response_cache):
        assert await response_cache.get("never_written") is None

    @pytest.mark.asyncio
    async def test_ttl_boundary(self, response_cache, clock):
        """Hit one millisecond before expiry, miss one millisecond after."""
        written_at = clock.now
        await response_cache.set("jikan_top_1", {"data": []})

        clock.now = written_at + DEFAULT_TTL_MS - 1
        assert await response_cache.get("jikan_top_1") == {"data": []}

        clock.now = written_at + DEFAULT_TTL_MS + 1
        assert await response_cache.get("jikan_top_1") is None

    @pytest.mark.asyncio
    async def test_entry_format_on_disk(self, response_cache, clock):
        """Entries are stored as {timestamp, data} JSON documents."""
        await response_cache.set("anilist_1", ["a"])

        stored = json.loads(response_cache.path_for("anilist_1").read_text(encoding="utf-8"))
        assert stored == {"timestamp": clock.now, "data": ["a"]}

    @pytest.mark.asyncio
    async def test_corrupt_file_is_a_miss(self, response_cache):
        """Unparseable files degrade to a miss instead of raising."""
        path = response_cache.path_for("tvmaze_index_1")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")

        assert await response_cache.get("tvmaze_index_1") is None

    @pytest.mark.asyncio
    async def test_entry_without_timestamp_is_a_miss(self, response_cache):
        path = response_cache.path_for("broken")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"data": {"x": 1}}), encoding="utf-8")

        assert await response_cache.get("broken") is None

    @pytest.mark.asyncio
    async def test_overwrite_refreshes_timestamp(self, response_cache, clock):
        await response_cache.set("key", 1)
        clock.now += DEFAULT_TTL_MS - 10
        await response_cache.set("key", 2)
        clock.now += DEFAULT_TTL_MS - 10

        assert await response_cache.get("key") == 2

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, tmp_path, clock):
        """A cache root that cannot be created only logs a warning."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        cache = ResponseCache(blocker / "nested", clock=clock)

        await cache.set("key", {"a": 1})

        assert await cache.get("key") is None

    @pytest.mark.asyncio
    async def test_unserializable_payload_is_swallowed(self, response_cache):
        await response_cache.set("bad", {"value": object()})

    def test_safe_keys_map_to_their_own_file(self, response_cache):
        assert response_cache.path_for("tmdb_movie_popular_1").name == "tmdb_movie_popular_1.json"

    def test_unsafe_keys_do_not_collide(self, response_cache):
        """Keys that sanitize to the same text still get distinct files."""
        first = response_cache.path_for("omdb_title_the matrix_1999_movie")
        second = response_cache.path_for("omdb_title_the/matrix_1999_movie")

        assert first != second
        assert first.parent == response_cache.root
        assert "/" not in first.name and " " not in first.name

    def test_long_keys_are_shortened(self, response_cache):
        path = response_cache.path_for("k" * 500)
        assert len(path.name) < 150

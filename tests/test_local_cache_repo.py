"""Tests for the on-device cache tier."""

from conftest import make_restaurant

from dinecache.models.restaurant_model import Coordinates
from dinecache.repos.kv_store import JsonFileKeyValueStore
from dinecache.repos.local_cache_repo import LocalCacheStore
from dinecache.services.spatial_key import local_cache_key


class TestLocalCacheStore:
    async def test_miss_when_empty(self, local_cache, coord) -> None:
        assert await local_cache.get(coord, 5000) is None

    async def test_put_then_get(self, local_cache, coord) -> None:
        places = [make_restaurant("1"), make_restaurant("2")]
        assert await local_cache.put(coord, 5000, places) is True
        assert await local_cache.get(coord, 5000) == places

    async def test_nearby_coordinate_within_rounding_hits(self, local_cache, coord) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        nearby = Coordinates(latitude=37.77492, longitude=-122.41938)
        assert await local_cache.get(nearby, 5000) is not None

    async def test_different_radius_misses(self, local_cache, coord) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        assert await local_cache.get(coord, 4000) is None

    async def test_put_overwrites(self, local_cache, coord) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        await local_cache.put(coord, 5000, [make_restaurant("9")])
        assert [r.id for r in await local_cache.get(coord, 5000)] == ["9"]

    async def test_expired_entry_is_purged(self, local_cache, kv_store, coord, clock) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        clock.advance(hours=4, seconds=1)

        assert await local_cache.get(coord, 5000) is None
        assert await kv_store.get(local_cache_key(coord, 5000)) is None

    async def test_entry_inside_ttl_is_valid(self, local_cache, coord, clock) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        clock.advance(hours=3, minutes=59, seconds=59)
        assert await local_cache.get(coord, 5000) is not None

    async def test_corrupt_entry_is_a_miss_and_purged(self, local_cache, kv_store, coord) -> None:
        key = local_cache_key(coord, 5000)
        await kv_store.set(key, "{not json")

        assert await local_cache.get(coord, 5000) is None
        assert await kv_store.get(key) is None

    async def test_keys_and_clear_all_only_touch_cache_entries(self, local_cache, kv_store, coord) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        await local_cache.put(coord, 8000, [make_restaurant("2")])
        await kv_store.set("restaurant_blacklist", "[]")

        assert len(await local_cache.keys()) == 2
        assert await local_cache.clear_all() == 2
        assert await local_cache.keys() == []
        assert await kv_store.get("restaurant_blacklist") == "[]"

    async def test_delete(self, local_cache, coord) -> None:
        await local_cache.put(coord, 5000, [make_restaurant("1")])
        await local_cache.delete(coord, 5000)
        assert await local_cache.get(coord, 5000) is None


class TestJsonFileKeyValueStore:
    async def test_round_trip_and_keys(self, tmp_path) -> None:
        store = JsonFileKeyValueStore(tmp_path / "store")
        await store.set("restaurants_cache_37.775_-122.419_5000", '{"a": 1}')

        assert await store.get("restaurants_cache_37.775_-122.419_5000") == '{"a": 1}'
        assert await store.keys() == ["restaurants_cache_37.775_-122.419_5000"]

        await store.delete("restaurants_cache_37.775_-122.419_5000")
        assert await store.get("restaurants_cache_37.775_-122.419_5000") is None
        # Deleting a missing key is a no-op
        await store.delete("restaurants_cache_37.775_-122.419_5000")

    async def test_local_cache_over_files(self, tmp_path, coord, clock) -> None:
        cache = LocalCacheStore(JsonFileKeyValueStore(tmp_path), clock=clock)
        await cache.put(coord, 5000, [make_restaurant("1")])
        assert [r.id for r in await cache.get(coord, 5000)] == ["1"]

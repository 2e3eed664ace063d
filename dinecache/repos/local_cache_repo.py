"""
On-device cache of restaurant lists.

Single writer (one device), so there is no merge at this tier: put
overwrites, and an expired or unreadable entry is purged on read.
"""
from datetime import timedelta
from typing import List, Optional

from pydantic import ValidationError

from dinecache.core.clock import Clock, as_utc, utc_now
from dinecache.core.config import settings
from dinecache.core.errors import LocalStoreError
from dinecache.core.logger import logs
from dinecache.models.cache_model import LocalCacheEntry
from dinecache.models.restaurant_model import Coordinates, Restaurant
from dinecache.repos.kv_store import KeyValueStore
from dinecache.services.spatial_key import LOCAL_KEY_PREFIX, local_cache_key
import logging


class LocalCacheStore:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = settings.LOCAL_CACHE_TTL_SECONDS,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    async def _read_entry(self, key: str) -> Optional[LocalCacheEntry]:
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            return LocalCacheEntry.model_validate_json(raw)
        except ValidationError as e:
            raise LocalStoreError(key, f"corrupt cache entry: {e.error_count()} validation errors")

    async def get(self, coord: Coordinates, radius_meters: float) -> Optional[List[Restaurant]]:
        """Returns the cached list, or None if missing, expired or unreadable."""
        key = local_cache_key(coord, radius_meters)
        try:
            entry = await self._read_entry(key)
            if entry is None:
                return None

            if self.clock() - as_utc(entry.timestamp) > self.ttl:
                logs.log(logging.INFO, f"Local cache expired for {key}, removing")
                await self.store.delete(key)
                return None

            logs.log(logging.INFO, f"✓ Local cache HIT for {key} ({len(entry.restaurants)} restaurants)")
            return entry.restaurants
        except LocalStoreError as e:
            logs.log(logging.WARNING, f"Purging unreadable local cache entry: {str(e)}")
            await self._purge(key)
            return None
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to read local cache: {str(e)}")
            return None

    async def put(self, coord: Coordinates, radius_meters: float, restaurants: List[Restaurant]) -> bool:
        """Overwrites any existing entry for this exact key."""
        key = local_cache_key(coord, radius_meters)
        try:
            entry = LocalCacheEntry(timestamp=self.clock(), restaurants=restaurants)
            await self.store.set(key, entry.model_dump_json())
            logs.log(logging.INFO, f"Cached {len(restaurants)} restaurants locally under {key}")
            return True
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to write local cache: {str(e)}")
            return False

    async def delete(self, coord: Coordinates, radius_meters: float) -> None:
        await self._purge(local_cache_key(coord, radius_meters))

    async def keys(self) -> list[str]:
        try:
            return [k for k in await self.store.keys() if k.startswith(LOCAL_KEY_PREFIX)]
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to list local cache keys: {str(e)}")
            return []

    async def clear_all(self) -> int:
        keys = await self.keys()
        for key in keys:
            await self._purge(key)
        logs.log(logging.INFO, f"Cleared {len(keys)} local cache entries")
        return len(keys)

    async def _purge(self, key: str) -> None:
        try:
            await self.store.delete(key)
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to delete local cache entry {key}: {str(e)}")

import asyncio
from datetime import timedelta
from typing import List, NamedTuple, Optional

from pydantic import ValidationError
from pymongo import DESCENDING

from dinecache.core.clock import Clock, as_utc, utc_now
from dinecache.core.config import settings
from dinecache.core.db_connection import SharedStoreClient
from dinecache.core.logger import logs
from dinecache.models.cache_model import CacheStats, SharedCacheBucket
from dinecache.models.restaurant_model import Coordinates, Restaurant
from dinecache.services.merge_engine import merge_bucket
from dinecache.services.spatial_key import SpatialKey, quantize
import logging


class SharedCacheHit(NamedTuple):
    restaurants: List[Restaurant]
    contributors: int


class SharedCacheStore:
    """
    Buckets shared by every device, keyed by SpatialKey.

    Expiry is lazy: a reader that finds a bucket past its TTL deletes it.
    Writers merge into whatever bucket is present, stale or not, and commit
    with a single upsert keyed on the bucket id. There is no lock, so two
    concurrent writers can each drop the other's contribution.
    """

    def __init__(
        self,
        client: SharedStoreClient,
        ttl_seconds: int = settings.SHARED_CACHE_TTL_SECONDS,
        timeout_seconds: float = settings.SHARED_STORE_TIMEOUT_SECONDS,
        clock: Clock = utc_now,
    ):
        self.client = client
        self.ttl = timedelta(seconds=ttl_seconds)
        self.timeout = timeout_seconds
        self.clock = clock

    async def _with_timeout(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    @staticmethod
    def _to_document(bucket: SharedCacheBucket) -> dict:
        doc = bucket.model_dump(mode="python")
        doc["_id"] = bucket.id
        return doc

    @staticmethod
    def _from_document(doc: dict) -> SharedCacheBucket:
        data = dict(doc)
        data["id"] = str(data.pop("_id", data.get("id")))
        return SharedCacheBucket.model_validate(data)

    async def _find_document(self, key: SpatialKey) -> Optional[dict]:
        """Non-destructive read of the newest stored document for this key, ignoring TTL."""
        cursor = (
            self.client.cache_collection()
            .find(key.as_filter())
            .sort("updated_at", DESCENDING)
            .limit(1)
        )
        docs = await self._with_timeout(cursor.to_list(length=1))
        return docs[0] if docs else None

    def _is_expired(self, bucket: SharedCacheBucket) -> bool:
        return self.clock() - as_utc(bucket.updated_at) > self.ttl

    async def get(self, coord: Coordinates, radius_meters: float) -> Optional[SharedCacheHit]:
        if not self.client.is_configured:
            logs.log(logging.INFO, "Shared store not configured, skipping shared cache")
            return None

        key = quantize(coord, radius_meters)
        try:
            doc = await self._find_document(key)
            if doc is None:
                logs.log(logging.INFO, f"✗ Shared cache MISS for {key.bucket_id}")
                return None

            try:
                bucket = self._from_document(doc)
            except ValidationError as e:
                logs.log(logging.WARNING, f"Shared cache {doc.get('_id')} is malformed, removing: {e.error_count()} errors")
                await self._delete(doc.get("_id"))
                return None

            if self._is_expired(bucket):
                logs.log(logging.INFO, f"Shared cache {bucket.id} expired, cleaning up")
                await self._delete(bucket.id)
                return None

            logs.log(
                logging.INFO,
                f"✓ Shared cache HIT for {bucket.id}: {len(bucket.restaurants)} restaurants "
                f"from {bucket.contributors} contributors",
            )
            return SharedCacheHit(restaurants=bucket.restaurants, contributors=bucket.contributors)
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching shared cache: {str(e)}")
            return None

    async def put(
        self, coord: Coordinates, radius_meters: float, restaurants: List[Restaurant]
    ) -> Optional[SharedCacheBucket]:
        """Merges restaurants into the bucket and upserts it. Returns the written bucket."""
        if not self.client.is_configured:
            logs.log(logging.INFO, "Shared store not configured, skipping shared cache update")
            return None

        key = quantize(coord, radius_meters)
        try:
            doc = await self._find_document(key)
            existing = None
            if doc is not None:
                try:
                    existing = self._from_document(doc)
                except ValidationError as e:
                    # Unusable merge base; the upsert below replaces it
                    logs.log(logging.WARNING, f"Overwriting malformed shared cache {doc.get('_id')}: {e.error_count()} errors")

            bucket = merge_bucket(existing, restaurants, key, coord, self.clock())
            if existing is not None:
                logs.log(
                    logging.INFO,
                    f"Merging {len(restaurants)} restaurants into {len(existing.restaurants)} existing ones",
                )

            await self._with_timeout(
                self.client.cache_collection().replace_one(
                    {"_id": bucket.id}, self._to_document(bucket), upsert=True
                )
            )
            if doc is not None and existing is None and doc.get("_id") != bucket.id:
                await self._delete(doc.get("_id"))
            logs.log(
                logging.INFO,
                f"Shared cache {bucket.id} updated with {len(bucket.restaurants)} restaurants "
                f"(contributors={bucket.contributors})",
            )
            return bucket
        except Exception as e:
            logs.log(logging.ERROR, f"Error updating shared cache: {str(e)}")
            return None

    async def _delete(self, bucket_id: str) -> None:
        try:
            await self._with_timeout(self.client.cache_collection().delete_one({"_id": bucket_id}))
        except Exception as e:
            logs.log(logging.ERROR, f"Error cleaning up shared cache {bucket_id}: {str(e)}")

    async def recent(self, limit: int = 10) -> List[SharedCacheBucket]:
        if not self.client.is_configured:
            return []
        try:
            cursor = self.client.cache_collection().find({}).sort("updated_at", DESCENDING).limit(limit)
            docs = await self._with_timeout(cursor.to_list(length=limit))
        except Exception as e:
            logs.log(logging.ERROR, f"Error listing recent shared caches: {str(e)}")
            return []

        buckets = []
        for doc in docs:
            try:
                buckets.append(self._from_document(doc))
            except ValidationError:
                logs.log(logging.WARNING, f"Skipping malformed shared cache {doc.get('_id')}")
        return buckets

    async def stats(self) -> Optional[CacheStats]:
        if not self.client.is_configured:
            return None
        try:
            cursor = self.client.cache_collection().find({}, {"restaurants": 1, "contributors": 1})
            docs = await self._with_timeout(cursor.to_list(length=None))
            total = len(docs)
            if total == 0:
                return CacheStats(total_caches=0, total_restaurants=0, average_contributors=0.0)
            return CacheStats(
                total_caches=total,
                total_restaurants=sum(len(doc.get("restaurants", [])) for doc in docs),
                average_contributors=round(sum(doc.get("contributors", 0) for doc in docs) / total, 1),
            )
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching cache stats: {str(e)}")
            return None

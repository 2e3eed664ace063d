from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from dinecache.core.config import Settings, settings as default_settings
from dinecache.core.errors import SharedStoreUnavailable
from dinecache.core.logger import logs
import logging


class SharedStoreClient:
    """
    Handle on the shared (multi-writer) table store.

    Built explicitly and passed into the stores. An unconfigured client is a
    valid, permanent state: every store checks `is_configured` and degrades
    to its local-only or no-op path.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase | None = None,
        client: AsyncIOMotorClient | None = None,
        cache_collection: str = "restaurant_cache",
        blacklist_collection: str = "restaurant_blacklist",
    ):
        self._database = database
        self._client = client
        self.cache_collection_name = cache_collection
        self.blacklist_collection_name = blacklist_collection

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "SharedStoreClient":
        config = config or default_settings
        if not config.shared_store_enabled:
            logs.log(logging.INFO, "Shared store disabled - STORAGE_MODE is not 'mongodb'")
            return cls.unconfigured()

        # Motor client is non-blocking; connection happens lazily on first use
        timeout_ms = int(config.SHARED_STORE_TIMEOUT_SECONDS * 1000)
        client = AsyncIOMotorClient(
            config.MONGO_URI,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            tz_aware=True,
        )
        logs.log(logging.INFO, "MongoDB shared store client initialized")
        return cls(
            database=client[config.MONGO_DB_NAME],
            client=client,
            cache_collection=config.SHARED_CACHE_COLLECTION,
            blacklist_collection=config.BLACKLIST_COLLECTION,
        )

    @classmethod
    def unconfigured(cls) -> "SharedStoreClient":
        return cls(database=None)

    @property
    def is_configured(self) -> bool:
        return self._database is not None

    def collection(self, name: str):
        if self._database is None:
            raise SharedStoreUnavailable("Shared store is not configured")
        return self._database[name]

    def cache_collection(self):
        return self.collection(self.cache_collection_name)

    def blacklist_collection(self):
        return self.collection(self.blacklist_collection_name)

    async def ensure_indexes(self) -> bool:
        """Creates the bucket lookup and recency indexes. Returns False if skipped."""
        if not self.is_configured:
            return False
        try:
            cache = self.cache_collection()
            await cache.create_index(
                [("grid_lat", ASCENDING), ("grid_lng", ASCENDING), ("radius_meters", ASCENDING)]
            )
            await cache.create_index([("updated_at", DESCENDING)])
            # Blacklist documents are keyed by _id = restaurant id, which is unique already
            await self.blacklist_collection().create_index([("reported_at", DESCENDING)])
            return True
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to create shared store indexes: {str(e)}")
            return False

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

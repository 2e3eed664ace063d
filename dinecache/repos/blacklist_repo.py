"""
Community blacklist of reported restaurants.

Reports go to the shared table first and fall back to a local table on any
shared-tier failure. Reads union both tables, with shared entries taking
priority for an id present in both. Nothing here raises past its own
boundary: an unavailable blacklist means results go out unfiltered.
"""
import asyncio
from datetime import timedelta
from typing import List, Literal, Optional, Protocol, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError
from pymongo.errors import DuplicateKeyError

from dinecache.core.clock import Clock, as_utc, utc_now
from dinecache.core.config import settings
from dinecache.core.db_connection import SharedStoreClient
from dinecache.core.logger import logs
from dinecache.models.blacklist_model import DEFAULT_REPORT_REASON, BlacklistEntry, BlacklistStats
from dinecache.repos.kv_store import KeyValueStore
import logging

BLACKLIST_KEY = "restaurant_blacklist"
RECENT_WINDOW = timedelta(days=30)

ReportTier = Literal["shared", "local"]


class HasId(Protocol):
    @property
    def id(self) -> str: ...


T = TypeVar("T", bound=HasId)

_entries_adapter = TypeAdapter(List[BlacklistEntry])


class BlacklistStore:
    def __init__(
        self,
        client: SharedStoreClient,
        local_store: KeyValueStore,
        timeout_seconds: float = settings.SHARED_STORE_TIMEOUT_SECONDS,
        clock: Clock = utc_now,
    ):
        self.client = client
        self.local_store = local_store
        self.timeout = timeout_seconds
        self.clock = clock

    async def _with_timeout(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    # ===== Reporting =====

    async def report(
        self, restaurant_id: str, restaurant_name: str, reason: str = DEFAULT_REPORT_REASON
    ) -> Optional[ReportTier]:
        """Records a report. Returns the tier that took it, or None if both failed."""
        if self.client.is_configured:
            try:
                await self._report_shared(restaurant_id, restaurant_name, reason)
                logs.log(logging.INFO, f"Restaurant {restaurant_name} ({restaurant_id}) has been reported")
                return "shared"
            except Exception as e:
                logs.log(logging.ERROR, f"Error reporting to shared blacklist, falling back to local: {str(e)}")

        try:
            await self._report_local(restaurant_id, restaurant_name, reason)
            return "local"
        except Exception as e:
            logs.log(logging.ERROR, f"Error reporting restaurant {restaurant_id} locally: {str(e)}")
            return None

    async def _report_shared(self, restaurant_id: str, restaurant_name: str, reason: str) -> None:
        collection = self.client.blacklist_collection()
        existing = await self._with_timeout(collection.find_one({"_id": restaurant_id}))
        if existing:
            await self._increment_shared(restaurant_id)
            return

        now = self.clock()
        try:
            await self._with_timeout(
                collection.insert_one({
                    "_id": restaurant_id,
                    "restaurant_name": restaurant_name,
                    "reason": reason,
                    "reports_count": 1,
                    "first_reported_at": now,
                    "reported_at": now,
                })
            )
            logs.log(logging.INFO, f"Added {restaurant_name} to shared blacklist")
        except DuplicateKeyError:
            # Another device inserted the same id between our read and insert
            logs.log(logging.INFO, f"Blacklist entry {restaurant_id} already exists, incrementing instead")
            await self._increment_shared(restaurant_id)

    async def _increment_shared(self, restaurant_id: str) -> None:
        await self._with_timeout(
            self.client.blacklist_collection().update_one(
                {"_id": restaurant_id},
                {"$inc": {"reports_count": 1}, "$set": {"reported_at": self.clock()}},
            )
        )
        logs.log(logging.INFO, f"Incremented report count for {restaurant_id}")

    async def _report_local(self, restaurant_id: str, restaurant_name: str, reason: str) -> None:
        entries = await self._local_entries()
        now = self.clock()
        for i, entry in enumerate(entries):
            if entry.id == restaurant_id:
                entries[i] = entry.model_copy(
                    update={"reports_count": entry.reports_count + 1, "reported_at": now}
                )
                break
        else:
            entries.append(
                BlacklistEntry(
                    id=restaurant_id,
                    name=restaurant_name,
                    reason=reason,
                    reports_count=1,
                    first_reported_at=now,
                    reported_at=now,
                )
            )
        await self._save_local(entries)
        logs.log(logging.INFO, f"Added {restaurant_name} to local blacklist")

    # ===== Reading =====

    async def _shared_entries(self) -> List[BlacklistEntry]:
        if not self.client.is_configured:
            return []
        try:
            cursor = self.client.blacklist_collection().find({})
            docs = await self._with_timeout(cursor.to_list(length=None))
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching shared blacklist: {str(e)}")
            return []

        # Parsed per row; malformed rows are skipped
        entries = []
        for doc in docs:
            try:
                entries.append(self._from_document(doc))
            except (KeyError, ValidationError) as e:
                logs.log(logging.WARNING, f"Skipping malformed blacklist row {doc.get('_id')}: {str(e)}")
        return entries

    async def _shared_ids(self) -> set[str]:
        """Ids only, so a row with broken metadata still blacklists its id."""
        if not self.client.is_configured:
            return set()
        try:
            cursor = self.client.blacklist_collection().find({}, {"_id": 1})
            docs = await self._with_timeout(cursor.to_list(length=None))
            return {str(doc["_id"]) for doc in docs if doc.get("_id") is not None}
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching shared blacklist ids: {str(e)}")
            return set()

    @staticmethod
    def _from_document(doc: dict) -> BlacklistEntry:
        reported_at = doc["reported_at"]
        return BlacklistEntry(
            id=str(doc["_id"]),
            name=doc.get("restaurant_name", ""),
            reason=doc.get("reason", DEFAULT_REPORT_REASON),
            reports_count=doc.get("reports_count", 1),
            first_reported_at=doc.get("first_reported_at", reported_at),
            reported_at=reported_at,
        )

    async def _local_entries(self) -> List[BlacklistEntry]:
        try:
            raw = await self.local_store.get(BLACKLIST_KEY)
            if not raw:
                return []
            return _entries_adapter.validate_json(raw)
        except ValidationError as e:
            logs.log(logging.WARNING, f"Local blacklist unreadable, ignoring it: {str(e)}")
            return []
        except Exception as e:
            logs.log(logging.ERROR, f"Error reading local blacklist: {str(e)}")
            return []

    async def _save_local(self, entries: List[BlacklistEntry]) -> None:
        await self.local_store.set(BLACKLIST_KEY, _entries_adapter.dump_json(entries).decode("utf-8"))

    async def list(self) -> List[BlacklistEntry]:
        """Shared entries, then local entries for ids the shared table does not have."""
        shared, local = await asyncio.gather(self._shared_entries(), self._local_entries())
        shared_ids = {entry.id for entry in shared}
        return shared + [entry for entry in local if entry.id not in shared_ids]

    async def blacklisted_ids(self) -> set[str]:
        shared, local = await asyncio.gather(self._shared_ids(), self._local_entries())
        return shared | {entry.id for entry in local}

    async def is_blacklisted(self, restaurant_id: str) -> bool:
        return restaurant_id in await self.blacklisted_ids()

    async def filter(self, items: Sequence[T]) -> List[T]:
        """Drops blacklisted items, keeping the order of the rest."""
        try:
            blacklisted = await self.blacklisted_ids()
        except Exception as e:
            logs.log(logging.ERROR, f"Error filtering blacklisted restaurants: {str(e)}")
            return list(items)

        kept = [item for item in items if item.id not in blacklisted]
        removed = len(items) - len(kept)
        if removed > 0:
            logs.log(logging.INFO, f"Filtered out {removed} blacklisted restaurants")
        return kept

    # ===== Administration =====

    async def remove(self, restaurant_id: str) -> None:
        if self.client.is_configured:
            try:
                await self._with_timeout(
                    self.client.blacklist_collection().delete_one({"_id": restaurant_id})
                )
                logs.log(logging.INFO, f"Restaurant {restaurant_id} removed from shared blacklist")
            except Exception as e:
                logs.log(logging.ERROR, f"Error removing from shared blacklist: {str(e)}")

        try:
            entries = await self._local_entries()
            await self._save_local([entry for entry in entries if entry.id != restaurant_id])
        except Exception as e:
            logs.log(logging.ERROR, f"Error removing from local blacklist: {str(e)}")

    async def clear_local(self) -> None:
        """Empties the local table only, so the next read resyncs from the shared table."""
        try:
            await self.local_store.delete(BLACKLIST_KEY)
            logs.log(logging.INFO, "Local blacklist cleared - will resync from shared database")
        except Exception as e:
            logs.log(logging.ERROR, f"Error clearing local blacklist: {str(e)}")

    async def clear_all(self) -> None:
        if self.client.is_configured:
            try:
                await self._with_timeout(self.client.blacklist_collection().delete_many({}))
                logs.log(logging.INFO, "Shared blacklist cleared")
            except Exception as e:
                logs.log(logging.ERROR, f"Error clearing shared blacklist: {str(e)}")
        await self.clear_local()

    async def stats(self) -> BlacklistStats:
        shared, local = await asyncio.gather(self._shared_entries(), self._local_entries())
        shared_ids = {entry.id for entry in shared}
        merged = shared + [entry for entry in local if entry.id not in shared_ids]
        cutoff = self.clock() - RECENT_WINDOW
        return BlacklistStats(
            total_blacklisted=len(merged),
            recently_blacklisted=sum(1 for entry in merged if as_utc(entry.reported_at) > cutoff),
            shared_blacklisted=len(shared),
            local_blacklisted=len(local),
        )

"""Shared fixtures: a controllable clock, in-memory stores and a fake motor database."""

import copy
from datetime import datetime, timedelta, timezone

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from dinecache.core.db_connection import SharedStoreClient
from dinecache.models.restaurant_model import Coordinates, Restaurant
from dinecache.repos.blacklist_repo import BlacklistStore
from dinecache.repos.kv_store import MemoryKeyValueStore
from dinecache.repos.local_cache_repo import LocalCacheStore
from dinecache.repos.shared_cache_repo import SharedCacheStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class _UpdateResult:
    def __init__(self, matched_count: int):
        self.matched_count = matched_count
        self.modified_count = matched_count


class _DeleteResult:
    def __init__(self, deleted_count: int):
        self.deleted_count = deleted_count


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs
        self._limit = None

    def sort(self, key: str, direction: int = 1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs
        for cap in (self._limit, length):
            if cap:
                docs = docs[:cap]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """The subset of AsyncIOMotorCollection the stores use."""

    def __init__(self):
        self.docs: dict = {}
        self.fail = False
        self.calls: list[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail:
            raise ServerSelectionTimeoutError("shared store unreachable")

    @staticmethod
    def _matches(doc: dict, flt: dict | None) -> bool:
        return all(doc.get(k) == v for k, v in (flt or {}).items())

    def find(self, flt=None, projection=None):
        self._check("find")
        return FakeCursor([d for d in self.docs.values() if self._matches(d, flt)])

    async def find_one(self, flt):
        self._check("find_one")
        for doc in self.docs.values():
            if self._matches(doc, flt):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, doc):
        self._check("insert_one")
        if doc["_id"] in self.docs:
            raise DuplicateKeyError("E11000 duplicate key error")
        self.docs[doc["_id"]] = copy.deepcopy(doc)

    async def replace_one(self, flt, doc, upsert=False):
        self._check("replace_one")
        key = flt["_id"]
        if key in self.docs or upsert:
            self.docs[key] = copy.deepcopy(doc)
            return _UpdateResult(1)
        return _UpdateResult(0)

    async def update_one(self, flt, update):
        self._check("update_one")
        for doc in self.docs.values():
            if self._matches(doc, flt):
                for field, amount in update.get("$inc", {}).items():
                    doc[field] = doc.get(field, 0) + amount
                doc.update(update.get("$set", {}))
                return _UpdateResult(1)
        return _UpdateResult(0)

    async def delete_one(self, flt):
        self._check("delete_one")
        for key, doc in list(self.docs.items()):
            if self._matches(doc, flt):
                del self.docs[key]
                return _DeleteResult(1)
        return _DeleteResult(0)

    async def delete_many(self, flt):
        self._check("delete_many")
        removed = [k for k, d in self.docs.items() if self._matches(d, flt)]
        for key in removed:
            del self.docs[key]
        return _DeleteResult(len(removed))

    async def create_index(self, keys, **kwargs):
        self._check("create_index")
        return "_".join(k for k, _ in keys)


class FakeDatabase:
    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


def make_restaurant(restaurant_id: str, name: str | None = None, **overrides) -> Restaurant:
    data = {
        "id": restaurant_id,
        "name": name or f"Restaurant {restaurant_id}",
        "cuisine": "Italian",
        "latitude": 37.7749,
        "longitude": -122.4194,
    }
    data.update(overrides)
    return Restaurant(**data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def coord() -> Coordinates:
    return Coordinates(latitude=37.7749, longitude=-122.4194)


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def shared_client(fake_db: FakeDatabase) -> SharedStoreClient:
    return SharedStoreClient(database=fake_db)


@pytest.fixture
def cache_collection(fake_db: FakeDatabase) -> FakeCollection:
    return fake_db["restaurant_cache"]


@pytest.fixture
def blacklist_collection(fake_db: FakeDatabase) -> FakeCollection:
    return fake_db["restaurant_blacklist"]


@pytest.fixture
def local_cache(kv_store, clock) -> LocalCacheStore:
    return LocalCacheStore(kv_store, ttl_seconds=4 * 3600, clock=clock)


@pytest.fixture
def shared_cache(shared_client, clock) -> SharedCacheStore:
    return SharedCacheStore(shared_client, ttl_seconds=6 * 3600, timeout_seconds=1.0, clock=clock)


@pytest.fixture
def blacklist(shared_client, kv_store, clock) -> BlacklistStore:
    return BlacklistStore(shared_client, kv_store, timeout_seconds=1.0, clock=clock)

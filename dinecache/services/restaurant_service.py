import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from dinecache.core.config import Settings, settings as default_settings
from dinecache.core.db_connection import SharedStoreClient
from dinecache.core.errors import ProviderError
from dinecache.core.logger import logs
from dinecache.models.restaurant_model import Coordinates, Restaurant, RestaurantsResponse, ResponseSource
from dinecache.repos.blacklist_repo import BlacklistStore
from dinecache.repos.kv_store import JsonFileKeyValueStore, KeyValueStore
from dinecache.repos.local_cache_repo import LocalCacheStore
from dinecache.repos.shared_cache_repo import SharedCacheStore
from dinecache.services.placeholder_data import placeholder_restaurants
from dinecache.services.provider_client import GeoapifyClient
from dinecache.services.spatial_key import haversine_km

FRESH_EXPANDED_CAP = 10000
FRESH_OUTER_CAP = 15000
FRESH_MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class RadiusLadder:
    """Strictly increasing search radii for fetch_fresh, at most FRESH_MAX_ATTEMPTS rungs."""
    rungs: tuple

    @classmethod
    def for_radius(cls, radius_meters: float) -> "RadiusLadder":
        candidates = [radius_meters, min(radius_meters * 1.5, FRESH_EXPANDED_CAP), FRESH_OUTER_CAP]
        rungs = []
        for radius in candidates:
            if not rungs or radius > rungs[-1]:
                rungs.append(radius)
        return cls(rungs=tuple(rungs[:FRESH_MAX_ATTEMPTS]))

    def result_cap(self, attempt: int, max_results: int) -> int:
        # Ask for more each rung so there is room left after dropping seen ids
        return max_results * (attempt + 1)


class RestaurantService:
    """
    Read path over the cache tiers: local, then shared, then the provider,
    with the placeholder set as the last resort. Every list handed back has
    been through the blacklist filter exactly once, and no exception escapes.
    """

    def __init__(
        self,
        local_cache: LocalCacheStore,
        shared_cache: SharedCacheStore,
        blacklist: BlacklistStore,
        provider: GeoapifyClient,
        config: Settings = default_settings,
    ):
        self.local_cache = local_cache
        self.shared_cache = shared_cache
        self.blacklist = blacklist
        self.provider = provider
        self.config = config
        self._pending_writes: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        config: Settings | None = None,
        shared_client: SharedStoreClient | None = None,
        local_store: KeyValueStore | None = None,
    ) -> "RestaurantService":
        config = config or default_settings
        shared_client = shared_client or SharedStoreClient.from_settings(config)
        local_store = local_store or JsonFileKeyValueStore(config.LOCAL_STORE_DIR)
        return cls(
            local_cache=LocalCacheStore(local_store, ttl_seconds=config.LOCAL_CACHE_TTL_SECONDS),
            shared_cache=SharedCacheStore(
                shared_client,
                ttl_seconds=config.SHARED_CACHE_TTL_SECONDS,
                timeout_seconds=config.SHARED_STORE_TIMEOUT_SECONDS,
            ),
            blacklist=BlacklistStore(
                shared_client, local_store, timeout_seconds=config.SHARED_STORE_TIMEOUT_SECONDS
            ),
            provider=GeoapifyClient(
                api_key=config.GEOAPIFY_API_KEY,
                base_url=config.GEOAPIFY_BASE_URL,
                categories=config.PROVIDER_CATEGORIES,
                timeout_seconds=config.PROVIDER_TIMEOUT_SECONDS,
            ),
            config=config,
        )

    # ===== Read path =====

    async def fetch_nearby(
        self,
        coord: Coordinates,
        radius_meters: float | None = None,
        max_results: int | None = None,
        force_refresh: bool = False,
    ) -> RestaurantsResponse:
        radius_meters = radius_meters or self.config.DEFAULT_RADIUS_METERS
        max_results = max_results or self.config.DEFAULT_MAX_RESULTS
        try:
            return await self._fetch_nearby(coord, radius_meters, max_results, force_refresh)
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching nearby restaurants: {str(e)}")
            return await self._placeholder_response()

    async def _fetch_nearby(
        self, coord: Coordinates, radius_meters: float, max_results: int, force_refresh: bool
    ) -> RestaurantsResponse:
        # 1. Caches, unless the caller wants fresh data
        if not force_refresh:
            local = await self.local_cache.get(coord, radius_meters)
            if local:
                logs.log(logging.INFO, "Using local cache")
                return await self._respond(local, "local_cache")

            shared = await self.shared_cache.get(coord, radius_meters)
            if shared and shared.restaurants:
                logs.log(logging.INFO, "Using shared cache, updating local cache")
                filtered = await self.blacklist.filter(shared.restaurants)
                await asyncio.shield(self.local_cache.put(coord, radius_meters, filtered))
                return RestaurantsResponse(restaurants=filtered, source="shared_cache")

        # 2. Upstream provider
        if not self.provider.is_configured:
            logs.log(logging.WARNING, "Places provider API key not configured, using placeholder data")
            return await self._placeholder_response()

        try:
            fetched = await self.provider.search_nearby(coord, radius_meters, max_results)
        except ProviderError as e:
            logs.log(logging.ERROR, f"Places provider failed: {str(e)}")
            return await self._placeholder_response()

        if fetched:
            filtered = await self.blacklist.filter(fetched)
            await self._store(coord, radius_meters, filtered)
            return RestaurantsResponse(restaurants=filtered, source="api")

        # 3. Provider had nothing
        if force_refresh:
            cached = await self.local_cache.get(coord, radius_meters)
            if cached:
                logs.log(logging.INFO, "No new restaurants found, returning cached data")
                return await self._respond(cached, "local_cache")

        logs.log(logging.WARNING, "No restaurants found, using placeholder data")
        return await self._placeholder_response()

    async def fetch_fresh(
        self,
        coord: Coordinates,
        radius_meters: float | None = None,
        max_results: int | None = None,
        seen_ids: Iterable[str] = (),
    ) -> RestaurantsResponse:
        """Walks a widening radius ladder looking for restaurants not in seen_ids."""
        radius_meters = radius_meters or self.config.DEFAULT_RADIUS_METERS
        max_results = max_results or self.config.DEFAULT_MAX_RESULTS
        seen = set(seen_ids)
        try:
            if self.provider.is_configured:
                ladder = RadiusLadder.for_radius(radius_meters)
                for attempt, search_radius in enumerate(ladder.rungs):
                    response = await self._fresh_attempt(
                        coord, radius_meters, search_radius, ladder.result_cap(attempt, max_results), seen, max_results
                    )
                    if response is not None:
                        return response
            else:
                logs.log(logging.WARNING, "Places provider API key not configured, skipping fresh search")
            return await self._fresh_fallback(coord, radius_meters, seen)
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching fresh restaurants: {str(e)}")
            return await self._placeholder_response()

    async def _fresh_attempt(
        self,
        coord: Coordinates,
        cache_radius: float,
        search_radius: float,
        limit: int,
        seen: set[str],
        max_results: int,
    ) -> Optional[RestaurantsResponse]:
        try:
            fetched = await self.provider.search_nearby(coord, search_radius, limit)
        except ProviderError as e:
            logs.log(logging.ERROR, f"Fresh search at {int(search_radius)}m failed: {str(e)}")
            return None

        filtered = await self.blacklist.filter(fetched)
        unseen = [r for r in filtered if r.id not in seen]
        if not unseen:
            logs.log(logging.INFO, f"No unseen restaurants within {int(search_radius)}m")
            return None

        # Cached under the caller's radius so the next fetch_nearby finds them
        await self._store(coord, cache_radius, filtered)
        return RestaurantsResponse(restaurants=unseen[:max_results], source="api")

    async def _fresh_fallback(self, coord: Coordinates, radius_meters: float, seen: set[str]) -> RestaurantsResponse:
        cached = await self.local_cache.get(coord, radius_meters)
        if cached:
            filtered = await self.blacklist.filter(cached)
            unseen = [r for r in filtered if r.id not in seen]
            # Repeat already seen restaurants rather than show nothing
            return RestaurantsResponse(restaurants=unseen or filtered, source="local_cache")

        filtered = await self.blacklist.filter(placeholder_restaurants())
        unseen = [r for r in filtered if r.id not in seen]
        return RestaurantsResponse(restaurants=unseen or filtered, source="placeholder")

    async def fetch_details(
        self, restaurant_id: str, user_location: Coordinates | None = None
    ) -> Optional[Restaurant]:
        """Richer single record from the provider; None if unavailable or blacklisted.

        With a user_location the record carries its distance from it in km.
        """
        if not self.provider.is_configured:
            logs.log(logging.WARNING, "Places provider API key not configured, cannot fetch details")
            return None
        try:
            if await self.blacklist.is_blacklisted(restaurant_id):
                logs.log(logging.INFO, f"Restaurant {restaurant_id} is blacklisted, not fetching details")
                return None
            restaurant = await self.provider.fetch_details(restaurant_id)
            if restaurant is None or user_location is None:
                return restaurant
            place = Coordinates(latitude=restaurant.latitude, longitude=restaurant.longitude)
            return restaurant.model_copy(update={"distance_km": round(haversine_km(user_location, place), 2)})
        except Exception as e:
            logs.log(logging.ERROR, f"Error fetching restaurant details: {str(e)}")
            return None

    # ===== Community edits =====

    async def update_restaurant_image(
        self, restaurant_id: str, image_url: str, coord: Coordinates, radius_meters: float | None = None
    ) -> bool:
        radius_meters = radius_meters or self.config.DEFAULT_RADIUS_METERS
        try:
            cached = await self.local_cache.get(coord, radius_meters)
            if not cached:
                logs.log(logging.INFO, "No cached restaurants found to update")
                return False

            index = next((i for i, r in enumerate(cached) if r.id == restaurant_id), None)
            if index is None:
                logs.log(logging.INFO, f"Restaurant with ID {restaurant_id} not found in cache")
                return False

            updated = list(cached)
            updated[index] = cached[index].model_copy(
                update={"image": image_url, "data_source": "user-contributed"}
            )
            await asyncio.shield(
                asyncio.gather(
                    self.local_cache.put(coord, radius_meters, updated),
                    self.shared_cache.put(coord, radius_meters, updated),
                )
            )
            logs.log(logging.INFO, f"Updated restaurant {restaurant_id} with user-provided image")
            return True
        except Exception as e:
            logs.log(logging.ERROR, f"Error updating restaurant image: {str(e)}")
            return False

    async def clear_api_restaurants(self, coord: Coordinates, radius_meters: float | None = None) -> int:
        """Drops provider-sourced records from the local entry, keeping community edits."""
        radius_meters = radius_meters or self.config.DEFAULT_RADIUS_METERS
        cached = await self.local_cache.get(coord, radius_meters)
        if not cached:
            return 0

        kept = [r for r in cached if r.data_source == "user-contributed"]
        removed = len(cached) - len(kept)
        if kept:
            await self.local_cache.put(coord, radius_meters, kept)
        else:
            await self.local_cache.delete(coord, radius_meters)
        logs.log(logging.INFO, f"Cleared {removed} API restaurants, kept {len(kept)} user-contributed ones")
        return removed

    # ===== Helpers =====

    async def _respond(self, restaurants: List[Restaurant], source: ResponseSource) -> RestaurantsResponse:
        filtered = await self.blacklist.filter(restaurants)
        return RestaurantsResponse(restaurants=filtered, source=source)

    async def _placeholder_response(self) -> RestaurantsResponse:
        logs.log(logging.INFO, "Using placeholder restaurant data")
        return await self._respond(placeholder_restaurants(), "placeholder")

    async def _store(self, coord: Coordinates, radius_meters: float, restaurants: List[Restaurant]) -> None:
        """Local write is awaited; the shared write runs in the background."""
        task = asyncio.create_task(self._write_shared(coord, radius_meters, restaurants))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        # Shielded so a caller that gives up does not abort the write
        await asyncio.shield(self.local_cache.put(coord, radius_meters, restaurants))

    async def _write_shared(self, coord: Coordinates, radius_meters: float, restaurants: List[Restaurant]) -> None:
        bucket = await self.shared_cache.put(coord, radius_meters, restaurants)
        if bucket is None:
            logs.log(logging.WARNING, "Shared cache write skipped or failed")

    async def drain(self) -> None:
        """Waits for background shared-cache writes to finish."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

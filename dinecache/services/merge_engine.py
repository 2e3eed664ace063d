"""
Folds a newly fetched result set into a shared bucket.

merge_restaurants is right-biased: for a duplicated id the incoming record
replaces the stored one wholesale, and its position in the existing list is
kept. Ids only present on the incoming side are appended in their incoming
order. The id set of the result is therefore independent of merge order;
only the winning variant of a duplicated id depends on it.

The contributor counter is bumped on every merge, so re-merging the same
result set over-counts. Two writers that read the same base concurrently
each produce a bucket missing the other's contribution and the last upsert
wins; the next writer's merge picks up whatever survived.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from dinecache.models.cache_model import SharedCacheBucket
from dinecache.models.restaurant_model import Coordinates, Restaurant
from dinecache.services.spatial_key import SpatialKey


def merge_restaurants(
    existing: Iterable[Restaurant], incoming: Iterable[Restaurant]
) -> List[Restaurant]:
    merged: dict[str, Restaurant] = {}
    for restaurant in existing:
        merged[restaurant.id] = restaurant
    for restaurant in incoming:
        merged[restaurant.id] = restaurant
    return list(merged.values())


def merge_bucket(
    existing: Optional[SharedCacheBucket],
    incoming: List[Restaurant],
    key: SpatialKey,
    location: Coordinates,
    now: datetime,
) -> SharedCacheBucket:
    if existing is None:
        return SharedCacheBucket(
            id=key.bucket_id,
            grid_lat=key.grid_lat,
            grid_lng=key.grid_lng,
            radius_meters=key.normalized_radius,
            restaurants=merge_restaurants([], incoming),
            location=location,
            contributors=1,
            created_at=now,
            updated_at=now,
        )

    return SharedCacheBucket(
        id=key.bucket_id,
        grid_lat=key.grid_lat,
        grid_lng=key.grid_lng,
        radius_meters=key.normalized_radius,
        restaurants=merge_restaurants(existing.restaurants, incoming),
        location=location,
        contributors=existing.contributors + 1,
        created_at=existing.created_at,
        updated_at=now,
    )

from pydantic import BaseModel, Field
from typing import List
from datetime import datetime

from dinecache.models.restaurant_model import Coordinates, Restaurant

class LocalCacheEntry(BaseModel):
    """One on-device entry; overwritten wholesale on every put."""
    timestamp: datetime
    restaurants: List[Restaurant] = Field(default_factory=list)

class SharedCacheBucket(BaseModel):
    """Merged result set shared by every device whose query lands in the same grid cell."""
    id: str
    grid_lat: float
    grid_lng: float
    radius_meters: int
    restaurants: List[Restaurant] = Field(default_factory=list)
    location: Coordinates
    # Counts successful writes, not distinct devices
    contributors: int = 1
    created_at: datetime
    updated_at: datetime

class CacheStats(BaseModel):
    total_caches: int
    total_restaurants: int
    average_contributors: float

"""
Coordinate quantization for the two cache tiers.

The shared tier groups queries by a coarse grid cell (~1 km) plus a
normalized radius tier so nearby devices land on the same bucket. The local
tier uses a finer ~100 m key with the radius taken verbatim.
"""
import math
from dataclasses import dataclass

from dinecache.models.restaurant_model import Coordinates

GRID_STEP = 0.01  # ~1km at most latitudes
RADIUS_TIERS = (3000, 5000, 8000, 10000)
LOCAL_KEY_PREFIX = "restaurants_cache_"
LOCAL_KEY_DECIMALS = 3  # ~100m


@dataclass(frozen=True)
class SpatialKey:
    grid_lat: float
    grid_lng: float
    normalized_radius: int

    @property
    def bucket_id(self) -> str:
        return f"{self.grid_lat:.2f}_{self.grid_lng:.2f}_{self.normalized_radius}"

    def as_filter(self) -> dict:
        """Equality filter on the three key fields."""
        return {
            "grid_lat": self.grid_lat,
            "grid_lng": self.grid_lng,
            "radius_meters": self.normalized_radius,
        }


def _grid(value: float) -> float:
    # Cells are anchored on multiples of GRID_STEP; every point inside a
    # cell maps to the cell's corner.
    # The epsilon keeps exact grid values (37.78 / 0.01 == 3777.9999...) in their own cell.
    index = math.floor(value / GRID_STEP + 1e-9)
    return round(index * GRID_STEP, 2)


def normalize_radius(radius_meters: float) -> int:
    for tier in RADIUS_TIERS:
        if radius_meters <= tier:
            return tier
    return RADIUS_TIERS[-1]


def quantize(coord: Coordinates, radius_meters: float) -> SpatialKey:
    return SpatialKey(
        grid_lat=_grid(coord.latitude),
        grid_lng=_grid(coord.longitude),
        normalized_radius=normalize_radius(radius_meters),
    )


def _round_half_up(value: float, decimals: int) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _format_radius(radius_meters: float) -> str:
    if float(radius_meters).is_integer():
        return str(int(radius_meters))
    return str(radius_meters)


def local_cache_key(coord: Coordinates, radius_meters: float) -> str:
    lat = _round_half_up(coord.latitude, LOCAL_KEY_DECIMALS)
    lng = _round_half_up(coord.longitude, LOCAL_KEY_DECIMALS)
    return f"{LOCAL_KEY_PREFIX}{lat}_{lng}_{_format_radius(radius_meters)}"


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    radius_km = 6371.0
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(dlon / 2) ** 2
    )
    return radius_km * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

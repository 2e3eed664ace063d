from pydantic import BaseModel
from typing import List, Literal, Optional

PriceRange = Literal["$", "$$", "$$$", "$$$$"]
DataSource = Literal["api", "user-contributed"]
ResponseSource = Literal["local_cache", "shared_cache", "api", "placeholder"]

class Coordinates(BaseModel):
    latitude: float
    longitude: float

class Restaurant(BaseModel):
    id: str
    name: str
    cuisine: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    phone_number: Optional[str] = None
    hours: Optional[str] = None
    price_range: Optional[PriceRange] = None
    is_open: Optional[bool] = None
    image: Optional[str] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    data_source: DataSource = "api"
    # Set only when a caller location is known
    distance_km: Optional[float] = None

class RestaurantsResponse(BaseModel):
    restaurants: List[Restaurant]
    source: ResponseSource

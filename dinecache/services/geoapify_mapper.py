"""Converts Geoapify place features into Restaurant records."""
import hashlib
from typing import Optional

from dinecache.models.restaurant_model import Restaurant

# Checked in order; first keyword found in the lower-cased name wins
NAME_INDICATORS = (
    ("pizza", "Italian"), ("pizzeria", "Italian"), ("pasta", "Italian"),
    ("italiano", "Italian"), ("trattoria", "Italian"), ("ristorante", "Italian"),
    ("china", "Chinese"), ("chinese", "Chinese"), ("dragon", "Chinese"),
    ("panda", "Chinese"), ("wok", "Chinese"), ("szechuan", "Chinese"), ("hunan", "Chinese"),
    ("sushi", "Japanese"), ("ramen", "Japanese"), ("hibachi", "Japanese"),
    ("sakura", "Japanese"), ("yamato", "Japanese"), ("tokyo", "Japanese"),
    ("taco", "Mexican"), ("burrito", "Mexican"), ("mexican", "Mexican"),
    ("cantina", "Mexican"), ("casa", "Mexican"), ("el ", "Mexican"), ("la ", "Mexican"),
    ("indian", "Indian"), ("curry", "Indian"), ("tandoor", "Indian"),
    ("masala", "Indian"), ("spice", "Indian"),
    ("thai", "Thai"), ("pad", "Thai"), ("bangkok", "Thai"),
    ("bistro", "French"), ("cafe", "French"), ("brasserie", "French"), ("le ", "French"),
    ("burger", "American"), ("bbq", "American"), ("grill", "American"),
    ("diner", "American"), ("steakhouse", "American"),
)

CUISINE_MAP = {
    "chinese": "Chinese",
    "italian": "Italian",
    "japanese": "Japanese",
    "mexican": "Mexican",
    "indian": "Indian",
    "french": "French",
    "thai": "Thai",
    "korean": "Korean",
    "vietnamese": "Vietnamese",
    "mediterranean": "Mediterranean",
    "american": "American",
    "seafood": "Seafood",
    "pizza": "Pizza",
    "burger": "American",
    "sushi": "Japanese",
}

_UNSPLASH = "https://images.unsplash.com/photo-{}?w=400&h=300&fit=crop"

CUISINE_IMAGES = {
    "Italian": ["1565299624946-b28f40a0ca4b", "1621996346565-e3dbc353d2e5", "1551183053-bf91a1d81141"],
    "Japanese": ["1579584425555-c3ce17fd4351", "1569718212165-3a8278d5f624", "1617196034796-73dfa7b1fd56"],
    "Mexican": ["1551504734-5ee1c4a1479b", "1565299585323-38174c26efe4", "1624300629840-b5d88c8e7b8b"],
    "Chinese": ["1526318896980-cf78c088247c", "1512058564366-18510be2db19", "1596797038530-2c107229654b"],
    "Indian": ["1565557623262-b51c2513a641", "1567188040759-fb8a883dc6d8", "1585937421612-70a008356fbe"],
    "American": ["1568901346375-23c9450c58cd", "1594212699903-ec8a3eca50f5", "1571091718767-18b5b1457add"],
    "French": ["1414235077428-338989a2e8c0", "1559847844-5315695dadae", "1604908176997-125f25cc6f3d"],
    "Thai": ["1559314809-0f31657faf33", "1582878826629-29b7ad1cdc43", "1604263439201-171fb4d1b13c"],
    "Korean": ["1565299507177-b0ac66763828", "1512621776951-a57141f2eefd", "1598515214211-89d3c73ae83b"],
    "Mediterranean": ["1546833999-b9f581a1996d", "1554200876-56c2f25224fa", "1578662996442-48f60103fc96"],
    "Vegetarian": ["1540420773420-3366772f4999", "1512621776951-a57141f2eefd", "1511690743698-d9d85f2fbf38"],
    "Fast Food": ["1568901346375-23c9450c58cd", "1594212699903-ec8a3eca50f5", "1586190848861-99aa4a171e90"],
    "Cafe": ["1501339847302-ac426a4a7cbb", "1559056199-641a0ac8b55e", "1554118811-1e0d58224f24"],
    "Bar & Grill": ["1544148103-0773bf10d330", "1572952829653-51ee360afe6c", "1595295333158-4742f28fbd85"],
}
DEFAULT_IMAGES = ["1540420773420-3366772f4999", "1414235077428-338989a2e8c0", "1551504734-5ee1c4a1479b"]

GENERIC_CUISINE = "Restaurant"


def normalize_cuisine(cuisine: str) -> str:
    # Geoapify/OSM use "a;b" for multi-cuisine places; the first one is primary
    primary = cuisine.split(";")[0].strip()
    mapped = CUISINE_MAP.get(primary.lower())
    if mapped:
        return mapped
    return primary[:1].upper() + primary[1:]


def infer_cuisine_from_name(name: str) -> Optional[str]:
    lowered = name.lower()
    for indicator, cuisine in NAME_INDICATORS:
        if indicator in lowered:
            return cuisine
    return None


def extract_cuisine(properties: dict) -> str:
    catering_cuisine = (properties.get("catering") or {}).get("cuisine")
    if catering_cuisine:
        return normalize_cuisine(catering_cuisine)

    raw = (properties.get("datasource") or {}).get("raw") or {}
    if raw.get("cuisine"):
        return normalize_cuisine(raw["cuisine"])

    from_name = infer_cuisine_from_name(properties.get("name") or "")
    if from_name:
        return from_name

    categories = properties.get("categories") or []
    if "catering.fast_food" in categories:
        return "Fast Food"
    if "catering.cafe" in categories:
        return "Cafe"
    if "catering.bar" in categories:
        return "Bar & Grill"
    return GENERIC_CUISINE


def cuisine_image(cuisine: str, restaurant_id: str) -> str:
    """Picks an image for the cuisine; stable for a given restaurant id."""
    images = CUISINE_IMAGES.get(cuisine, DEFAULT_IMAGES)
    digest = hashlib.md5(restaurant_id.encode()).hexdigest()
    return _UNSPLASH.format(images[int(digest, 16) % len(images)])


def format_address(properties: dict) -> Optional[str]:
    if properties.get("formatted"):
        return properties["formatted"]
    if properties.get("address_line1") and properties.get("address_line2"):
        return f"{properties['address_line1']}, {properties['address_line2']}"
    parts = [
        properties.get(field)
        for field in ("housenumber", "street", "city", "state", "postcode", "country")
    ]
    parts = [str(p) for p in parts if p]
    return ", ".join(parts) if parts else None


def describe(name: str, cuisine: str) -> str:
    description = f"Discover {name}"
    if cuisine != GENERIC_CUISINE:
        description += f" serving {cuisine} cuisine"
    return description + ". A local dining spot in your neighborhood with great food and atmosphere."


def feature_to_restaurant(feature: dict, fallback_id: Optional[str] = None) -> Restaurant:
    """Raises KeyError/ValueError/TypeError on a feature missing id or geometry."""
    properties = feature["properties"]
    longitude, latitude = feature["geometry"]["coordinates"][:2]
    raw = (properties.get("datasource") or {}).get("raw") or {}

    place_id = properties.get("place_id") or fallback_id
    if not place_id:
        raise KeyError("place_id")
    restaurant_id = str(place_id)
    name = properties.get("name") or "Restaurant"
    cuisine = extract_cuisine(properties)

    return Restaurant(
        id=restaurant_id,
        name=name,
        cuisine=cuisine,
        latitude=float(latitude),
        longitude=float(longitude),
        address=format_address(properties),
        phone_number=raw.get("phone"),
        hours=raw.get("opening_hours"),
        image=cuisine_image(cuisine, restaurant_id),
        description=describe(name, cuisine),
        data_source="api",
    )

"""
Fixed sample restaurants served when no upstream key is configured or
every other tier came back empty. Order is stable.
"""
from typing import List

from dinecache.models.restaurant_model import Restaurant
from dinecache.services.geoapify_mapper import cuisine_image

_PLACEHOLDERS = [
    {
        "id": "1",
        "name": "Giuseppe's Italian Kitchen",
        "cuisine": "Italian",
        "rating": 4.5,
        "latitude": 37.7849,
        "longitude": -122.4094,
        "description": "Authentic Italian cuisine with fresh pasta made daily. Family-owned restaurant serving traditional recipes passed down through generations.",
        "address": "123 Main Street, Downtown",
        "phone_number": "(555) 123-4567",
        "price_range": "$$",
        "is_open": True,
        "hours": "11:00 AM - 10:00 PM",
    },
    {
        "id": "2",
        "name": "Sakura Sushi & Ramen",
        "cuisine": "Japanese",
        "rating": 4.8,
        "latitude": 37.7869,
        "longitude": -122.4076,
        "description": "Fresh sushi and authentic ramen bowls. Our chefs trained in Tokyo bring you the most authentic Japanese dining experience.",
        "address": "456 Oak Avenue, Midtown",
        "phone_number": "(555) 234-5678",
        "price_range": "$$$",
        "is_open": True,
        "hours": "12:00 PM - 11:00 PM",
    },
    {
        "id": "3",
        "name": "Taco Libre",
        "cuisine": "Mexican",
        "rating": 4.2,
        "latitude": 37.7899,
        "longitude": -122.4089,
        "description": "Street-style tacos with house-made salsas and fresh ingredients. Don't miss our famous fish tacos and craft margaritas!",
        "address": "789 Pine Street, Arts District",
        "phone_number": "(555) 345-6789",
        "price_range": "$",
        "is_open": False,
        "hours": "4:00 PM - 12:00 AM",
    },
    {
        "id": "4",
        "name": "The Burger Joint",
        "cuisine": "American",
        "rating": 4.0,
        "latitude": 37.7829,
        "longitude": -122.4058,
        "description": "Gourmet burgers made with locally sourced beef and artisanal buns. Try our signature truffle fries!",
        "address": "321 Elm Street, University District",
        "phone_number": "(555) 456-7890",
        "price_range": "$$",
        "is_open": True,
        "hours": "11:00 AM - 2:00 AM",
    },
    {
        "id": "5",
        "name": "Green Garden Cafe",
        "cuisine": "Vegetarian",
        "rating": 4.6,
        "latitude": 37.7879,
        "longitude": -122.4102,
        "description": "Plant-based cuisine that doesn't compromise on flavor. Organic, locally-sourced ingredients in every dish.",
        "address": "654 Maple Drive, Green Valley",
        "phone_number": "(555) 567-8901",
        "price_range": "$$",
        "is_open": True,
        "hours": "8:00 AM - 9:00 PM",
    },
    {
        "id": "6",
        "name": "Le Petit Bistro",
        "cuisine": "French",
        "rating": 4.7,
        "latitude": 37.7919,
        "longitude": -122.4112,
        "description": "Classic French bistro fare in an intimate setting. Our wine selection features over 200 bottles from French vineyards.",
        "address": "987 Boulevard Street, Historic Quarter",
        "phone_number": "(555) 678-9012",
        "price_range": "$$$",
        "is_open": True,
        "hours": "5:00 PM - 11:00 PM",
    },
    {
        "id": "7",
        "name": "Spice Route",
        "cuisine": "Indian",
        "rating": 4.4,
        "latitude": 37.7969,
        "longitude": -122.4142,
        "description": "Aromatic Indian cuisine with both traditional and modern interpretations. Our tandoor oven creates the perfect naan and kebabs.",
        "address": "147 Curry Lane, Little India",
        "phone_number": "(555) 789-0123",
        "price_range": "$$",
        "is_open": True,
        "hours": "11:30 AM - 10:30 PM",
    },
    {
        "id": "8",
        "name": "Dragon Palace",
        "cuisine": "Chinese",
        "rating": 4.1,
        "latitude": 37.7939,
        "longitude": -122.4122,
        "description": "Authentic Szechuan and Cantonese dishes. Family recipes that have been perfected over decades.",
        "address": "258 Dynasty Road, Chinatown",
        "phone_number": "(555) 890-1234",
        "price_range": "$$",
        "is_open": False,
        "hours": "12:00 PM - 10:00 PM",
    },
]


def placeholder_restaurants() -> List[Restaurant]:
    return [
        Restaurant(**data, image=cuisine_image(data["cuisine"], data["id"]), data_source="api")
        for data in _PLACEHOLDERS
    ]

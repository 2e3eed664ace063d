import httpx
import logging
from typing import List, Optional

from dinecache.core.config import settings
from dinecache.core.errors import ProviderError, ProviderNotConfigured
from dinecache.core.logger import logs
from dinecache.models.restaurant_model import Coordinates, Restaurant
from dinecache.services.geoapify_mapper import feature_to_restaurant


class GeoapifyClient:
    """
    Upstream places provider. Raises ProviderError on any failure; the
    orchestrator decides what to fall back to.
    """

    def __init__(
        self,
        api_key: str = settings.GEOAPIFY_API_KEY,
        base_url: str = settings.GEOAPIFY_BASE_URL,
        categories: str = settings.PROVIDER_CATEGORIES,
        timeout_seconds: float = settings.PROVIDER_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.categories = categories
        self.timeout = timeout_seconds
        self.http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_json(self, path: str, params: dict) -> dict:
        if not self.is_configured:
            raise ProviderNotConfigured()

        url = f"{self.base_url}{path}"
        params = {**params, "apiKey": self.api_key}
        try:
            if self.http_client is not None:
                resp = await self.http_client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise ProviderError(f"Geoapify request failed: {str(e)}")

        if resp.status_code != 200:
            raise ProviderError(f"Geoapify API error: {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            raise ProviderError("Geoapify returned a non-JSON payload")
        if not isinstance(data, dict) or not isinstance(data.get("features", []), list):
            raise ProviderError("Geoapify payload has no feature list")
        return data

    def _convert(self, features: list) -> List[Restaurant]:
        restaurants = []
        for feature in features:
            if not isinstance(feature, dict) or not isinstance(feature.get("properties"), dict):
                logs.log(logging.WARNING, "Skipping Geoapify feature without a properties object")
                continue
            if not feature["properties"].get("name"):
                continue
            try:
                restaurants.append(feature_to_restaurant(feature))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logs.log(logging.WARNING, f"Skipping malformed Geoapify feature: {str(e)}")
        return restaurants

    async def search_nearby(
        self, coord: Coordinates, radius_meters: float, max_results: int = settings.DEFAULT_MAX_RESULTS
    ) -> List[Restaurant]:
        lng, lat = coord.longitude, coord.latitude
        params = {
            "categories": self.categories,
            "filter": f"circle:{lng},{lat},{int(radius_meters)}",
            "bias": f"proximity:{lng},{lat}",
            "limit": max_results,
        }
        logs.log(logging.INFO, f"Calling Geoapify places for {lat}, {lng} within {int(radius_meters)}m")
        data = await self._get_json("/v2/places", params)
        restaurants = self._convert(data.get("features", []))
        logs.log(logging.INFO, f"Geoapify returned {len(restaurants)} named restaurants")
        return restaurants

    async def fetch_details(self, restaurant_id: str) -> Optional[Restaurant]:
        data = await self._get_json("/v2/place-details", {"id": restaurant_id})
        features = data.get("features", [])
        if not features:
            return None
        try:
            return feature_to_restaurant(features[0], fallback_id=restaurant_id)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ProviderError(f"Malformed Geoapify place details: {str(e)}")

"""Google Maps service for nearby store lookups and geocoding.

Responses are cached through the file cache: derive a key from the operation
and its parameters, try the cache, call Google on a miss, then store the
parsed result with the ``maps`` TTL.
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from core.cache import FileCacheService
from core.config import Settings
from core.logging import get_logger, log_execution_time

logger = get_logger(__name__)

STORE_KEYWORDS = {
    "electronics": "electronics store mobile phone computer laptop",
    "fashion": "clothing store fashion boutique shopping mall",
    "food": "restaurant cafe food delivery grocery store supermarket",
    "shoes": "shoe store footwear boutique",
    "accessories": "jewelry store watch store accessory shop boutique",
}

FALLBACK_STORES = {
    "electronics": [
        {"id": "fallback_electronics_1", "name": "Croma", "address": "Connaught Place, New Delhi",
         "rating": 4.2, "category": "electronics", "source": "fallback"},
        {"id": "fallback_electronics_2", "name": "Reliance Digital", "address": "Karol Bagh, New Delhi",
         "rating": 4.0, "category": "electronics", "source": "fallback"},
    ],
    "fashion": [
        {"id": "fallback_fashion_1", "name": "Pantaloons", "address": "Rajouri Garden, New Delhi",
         "rating": 4.1, "category": "fashion", "source": "fallback"},
        {"id": "fallback_fashion_2", "name": "Westside", "address": "DLF Mall, New Delhi",
         "rating": 4.3, "category": "fashion", "source": "fallback"},
    ],
}

STORE_DETAIL_FIELDS = "name,formatted_address,formatted_phone_number,opening_hours,website,rating,reviews,photos"


class MapsServiceError(Exception):
    """Raised internally when Google returns an unusable response."""


# Transport failures, non-OK statuses and malformed bodies all degrade the same way
REQUEST_ERRORS = (httpx.HTTPError, MapsServiceError, ValueError, KeyError, TypeError)


class MapsService:
    """Google Maps Places, Geocoding and Distance Matrix wrapper."""

    def __init__(self, cache: FileCacheService, settings: Settings,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.cache = cache
        self.settings = settings
        self._transport = transport

    def validate_coordinates(self, lat: float, lng: float) -> bool:
        """Validate latitude and longitude."""
        return -90 <= lat <= 90 and -180 <= lng <= 180

    def get_store_keyword(self, category: str) -> str:
        return STORE_KEYWORDS.get(category, "store shop")

    def get_fallback_stores(self, category: str) -> List[Dict[str, Any]]:
        return [dict(store) for store in FALLBACK_STORES.get(category, [])]

    async def get_nearby_stores(self, lat: float, lng: float, category: str,
                                radius: int = 5000) -> List[Dict[str, Any]]:
        """Nearby stores for a category, falling back to static data on failure."""
        if not self.validate_coordinates(lat, lng):
            raise ValueError("Invalid coordinates")

        cache_key = self.cache.generate_key(
            "stores", {"lat": lat, "lng": lng, "category": category, "radius": radius}
        )
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        start_time = time.time()
        try:
            response = await self._request("/place/nearbysearch/json", {
                "location": f"{lat},{lng}",
                "radius": radius,
                "keyword": self.get_store_keyword(category),
                "type": "store",
            })
            stores = self.parse_places_response(response, category)
        except REQUEST_ERRORS as e:
            logger.error("Google Places request failed", category=category, error=str(e))
            return self.get_fallback_stores(category)

        log_execution_time(logger, "nearby_stores", start_time, time.time(), count=len(stores))
        await self.cache.set(cache_key, stores, self.cache.get_ttl("maps"))
        return stores

    async def get_store_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Place details for a store, or None when unavailable."""
        cache_key = self.cache.generate_key("store_details", {"place_id": place_id})
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            response = await self._request("/place/details/json", {
                "place_id": place_id,
                "fields": STORE_DETAIL_FIELDS,
            })
            details = self.parse_store_details(response)
        except REQUEST_ERRORS as e:
            logger.error("Store details request failed", place_id=place_id, error=str(e))
            return None

        if details is not None:
            await self.cache.set(cache_key, details, self.cache.get_ttl("maps"))
        return details

    async def geocode_address(self, address: str) -> Optional[Dict[str, Any]]:
        """First geocoding match for an address, or None."""
        address = (address or "").strip()
        if not address:
            raise ValueError("Address is required for geocoding")

        cache_key = self.cache.generate_key("geocode", {"address": address})
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            response = await self._request("/geocode/json", {"address": address})
            result = self.parse_geocode_response(response)
        except REQUEST_ERRORS as e:
            logger.error("Geocoding request failed", address=address, error=str(e))
            return None

        if result is not None:
            await self.cache.set(cache_key, result, self.cache.get_ttl("maps"))
        return result

    async def get_distance_matrix(self, origins: List[str], destinations: List[str],
                                  mode: str = "driving") -> Optional[List[Dict[str, Any]]]:
        """Distance and travel time from the first origin to each destination."""
        if not origins or not destinations:
            raise ValueError("Origins and destinations are required")

        try:
            response = await self._request("/distancematrix/json", {
                "origins": "|".join(origins),
                "destinations": "|".join(destinations),
                "mode": mode,
                "units": "metric",
            })
            return self.parse_distance_matrix(response)
        except REQUEST_ERRORS as e:
            logger.error("Distance Matrix request failed", mode=mode, error=str(e))
            return None

    @staticmethod
    def parse_places_response(response: Dict[str, Any], category: str) -> List[Dict[str, Any]]:
        stores = []
        for place in response.get("results") or []:
            location = place["geometry"]["location"]
            stores.append({
                "id": place.get("place_id"),
                "name": place.get("name"),
                "address": place.get("vicinity"),
                "rating": place.get("rating") or 0,
                "user_ratings_total": place.get("user_ratings_total") or 0,
                "price_level": place.get("price_level"),
                "location": {"lat": location["lat"], "lng": location["lng"]},
                "photos": [
                    {"photo_reference": p.get("photo_reference"), "width": p.get("width"), "height": p.get("height")}
                    for p in place.get("photos") or []
                ],
                "types": place.get("types") or [],
                "category": category,
                "source": "google_maps",
                "open_now": (place.get("opening_hours") or {}).get("open_now"),
                "permanently_closed": place.get("permanently_closed", False),
            })
        return stores

    @staticmethod
    def parse_store_details(response: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = response.get("result")
        if not result:
            return None

        opening_hours = result.get("opening_hours") or {}
        return {
            "name": result.get("name"),
            "address": result.get("formatted_address"),
            "phone": result.get("formatted_phone_number"),
            "website": result.get("website"),
            "rating": result.get("rating"),
            "reviews": [
                {"author": r.get("author_name"), "rating": r.get("rating"),
                 "text": r.get("text"), "time": r.get("time")}
                for r in result.get("reviews") or []
            ],
            "opening_hours": opening_hours.get("weekday_text") or [],
            "photos": [p.get("photo_reference") for p in result.get("photos") or []],
            "is_open": opening_hours.get("open_now"),
        }

    @staticmethod
    def parse_geocode_response(response: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        results = response.get("results") or []
        if not results:
            return None

        first = results[0]
        location = first["geometry"]["location"]
        return {
            "address": first.get("formatted_address"),
            "location": {"lat": location["lat"], "lng": location["lng"]},
            "place_id": first.get("place_id"),
            "types": first.get("types") or [],
        }

    @staticmethod
    def parse_distance_matrix(response: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        rows = response.get("rows") or []
        if not rows:
            return None

        return [
            {
                "destination_index": index,
                "distance": (element.get("distance") or {}).get("text"),
                "distance_value": (element.get("distance") or {}).get("value"),
                "duration": (element.get("duration") or {}).get("text"),
                "duration_value": (element.get("duration") or {}).get("value"),
                "status": element.get("status"),
            }
            for index, element in enumerate(rows[0].get("elements") or [])
        ]

    async def _request(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        api_key = self.settings.google_maps_api_key
        if not api_key:
            raise MapsServiceError("Google Maps API key is not configured")

        async with httpx.AsyncClient(
            base_url=self.settings.google_maps_base_url,
            timeout=self.settings.maps_timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(path, params={**params, "key": api_key})
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise MapsServiceError("Unexpected response body")
        status = data.get("status")
        if status not in ("OK", "ZERO_RESULTS"):
            raise MapsServiceError(data.get("error_message") or f"Google Maps status {status}")
        return data

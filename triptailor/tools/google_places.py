"""
Google Places client: Nearby Search (Places API v1) plus the legacy
Text Search, Details and Autocomplete endpoints.

Every public method degrades to an empty result when Google fails; callers
never see an exception from here. Transient failures (timeouts, 429, 5xx)
are retried with exponential backoff first.
"""

import hashlib
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..schemas.suggestions import Coordinates
from ..storage.cache import CacheBackend, MemoryCache
from ..utils.exceptions import GooglePlacesError, TripTailorError
from ..utils.logger import get_logger
from ..utils.retry import (
    raise_for_upstream_status,
    retry_with_exponential_backoff,
    wrap_transport_errors,
)
from .categories import google_types_for, resolve_internal_category

logger = get_logger(__name__)

NEARBY_URL_V1 = "https://places.googleapis.com/v1/places:searchNearby"
TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
AUTOCOMPLETE_URL = "https://maps.googleapis.com/maps/api/place/autocomplete/json"

NEARBY_FIELD_MASK = ",".join([
    "places.id",
    "places.displayName",
    "places.location",
    "places.types",
    "places.rating",
    "places.userRatingCount",
    "places.formattedAddress",
])

DETAILS_FIELDS = (
    "place_id,name,geometry,types,rating,user_ratings_total,vicinity,"
    "formatted_address,opening_hours,website,international_phone_number"
)

DEFAULT_TYPES = [
    "tourist_attraction", "museum", "art_gallery", "park",
    "cafe", "restaurant", "bar", "night_club",
    "zoo", "amusement_park", "lodging",
    "church", "mosque", "hindu_temple", "synagogue",
    "campground",
    "airport", "train_station", "subway_station", "bus_station", "transit_station",
    "tourist_information_center",
    "bakery",
]

# Accepted by the legacy API but rejected in v1 `includedTypes`
UNSUPPORTED_INCLUDED_TYPES_V1 = {"point_of_interest", "pub"}

NEARBY_MAX_RESULTS = 20
NEARBY_CACHE_TTL = 6 * 3600
DETAILS_CACHE_TTL = 24 * 3600


def sanitize_included_types(types: Iterable[Any]) -> List[str]:
    """Lowercase, trim, drop empties/unsupported, dedupe and sort; default list when nothing is left."""
    cleaned = []
    for raw in types or []:
        if not isinstance(raw, str):
            continue
        value = raw.strip().lower()
        if not value or value in UNSUPPORTED_INCLUDED_TYPES_V1 or value in cleaned:
            continue
        cleaned.append(value)

    if not cleaned:
        cleaned = [t for t in DEFAULT_TYPES if t not in UNSUPPORTED_INCLUDED_TYPES_V1]

    return sorted(cleaned)


def nearby_cache_key(lat: float, lon: float, radius: int, language: str, types: List[str]) -> str:
    types_key = hashlib.md5(",".join(types).encode("utf-8")).hexdigest() if types else "ALL"
    return f"google:places:v1:{lat:.4f}:{lon:.4f}:{int(radius)}:{language}:{types_key}"


def _map_nearby_place(place: Dict[str, Any]) -> Dict[str, Any]:
    google_types = place.get("types") or []
    location = place.get("location") or {}
    rating = place.get("rating")
    return {
        "place_id": place.get("id"),
        "google_place_id": place.get("id"),
        "name": (place.get("displayName") or {}).get("text", "Unknown"),
        "lat": float(location.get("latitude", 0) or 0),
        "lon": float(location.get("longitude", 0) or 0),
        "rating": float(rating) if rating is not None else None,
        "category_slug": resolve_internal_category(google_types),
        "opening_hours": None,
        "meta": {
            "address": place.get("formattedAddress"),
            "types": google_types,
            "user_ratings_total": place.get("userRatingCount", 0),
            "business_status": None,
            "icon": None,
        },
    }


class GooglePlacesClient:
    """Thin, cached wrapper around the Google Places endpoints used by TripTailor."""

    def __init__(
        self,
        api_key: str,
        cache: Optional[CacheBackend] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 10,
        referer: str = "",
        language: str = "pl",
    ):
        self.api_key = api_key or ""
        self.cache = cache if cache is not None else MemoryCache()
        self.session = session or requests.Session()
        self.timeout = timeout
        self.referer = referer
        self.language = language

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @retry_with_exponential_backoff(max_attempts=3, base_delay=0.5)
    @wrap_transport_errors
    def _request(self, method: str, url: str, timeout: Optional[int] = None, **kwargs) -> Dict[str, Any]:
        response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        raise_for_upstream_status(response, GooglePlacesError, "google_places")
        try:
            data = response.json()
        except ValueError as e:
            raise GooglePlacesError("Google Places returned invalid JSON", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise GooglePlacesError("Google Places returned unexpected payload", status_code=response.status_code)
        return data

    # ------------------------------------------------------------------
    # Nearby Search (v1)
    # ------------------------------------------------------------------

    def fetch_nearby(self, lat: float, lon: float, radius: int = 3000, language: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.fetch_nearby_by_types(lat, lon, radius, DEFAULT_TYPES, language)

    def fetch_nearby_by_preferred_categories(
        self,
        lat: float,
        lon: float,
        preferred_category_slugs: Iterable[str],
        radius: int = 1500,
        limit: int = 20,
        language: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Nearby places for canonical categories, first `limit` in Google's order."""
        types = google_types_for(preferred_category_slugs)
        places = self.fetch_nearby_by_types(lat, lon, radius, types, language)
        return places[:max(0, int(limit))]

    def fetch_nearby_ranked(
        self,
        lat: float,
        lon: float,
        category_slugs: Iterable[str],
        radius: int = 1500,
        limit: int = 20,
        min_rating: float = 0.0,
        min_reviews: int = 0,
        language: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Nearby places above a quality floor, best rated first.

        Ties on rating are broken by review count. Places without a rating
        count as 0.
        """
        types = google_types_for(category_slugs)
        places = self.fetch_nearby_by_types(lat, lon, radius, types, language)

        kept = [
            p for p in places
            if float(p.get("rating") or 0.0) >= min_rating
            and int(p["meta"].get("user_ratings_total") or 0) >= min_reviews
        ]
        kept.sort(
            key=lambda p: (float(p.get("rating") or 0.0), int(p["meta"].get("user_ratings_total") or 0)),
            reverse=True,
        )
        return kept[:max(0, int(limit))]

    def fetch_nearby_by_types(
        self,
        lat: float,
        lon: float,
        radius: int,
        types: Iterable[str],
        language: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Places within `radius` meters of (lat, lon) matching any of `types`.

        Successful responses are cached for 6 hours; failures are not cached.
        """
        language = language or self.language
        sanitized = sanitize_included_types(types)
        cache_key = nearby_cache_key(lat, lon, radius, language, sanitized)

        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        if not self.enabled:
            logger.warning("google_places_disabled", reason="missing_api_key")
            return []

        body: Dict[str, Any] = {
            "maxResultCount": NEARBY_MAX_RESULTS,
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": float(lat), "longitude": float(lon)},
                    "radius": float(radius),
                },
            },
            "languageCode": language,
        }
        if sanitized:
            body["includedTypes"] = sanitized

        headers = {
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": NEARBY_FIELD_MASK,
            "Referer": self.referer,
        }

        try:
            data = self._request("POST", NEARBY_URL_V1, json=body, headers=headers)
        except TripTailorError as e:
            logger.warning(
                "google_nearby_failed",
                error=e.message,
                error_type=type(e).__name__,
                types=sanitized,
                context=e.context,
            )
            return []

        places = [
            _map_nearby_place(p)
            for p in data.get("places") or []
            if isinstance(p, dict) and p.get("id")
        ]

        self.cache.set(cache_key, places, NEARBY_CACHE_TTL)
        logger.info("google_nearby_fetched", count=len(places), radius=radius, types=len(sanitized))
        return places

    # ------------------------------------------------------------------
    # Legacy endpoints
    # ------------------------------------------------------------------

    def geocode_text(self, query: str, language: str = "en") -> Optional[Coordinates]:
        """Coordinates of the best Text Search match for a free-text query."""
        query = (query or "").strip()
        if not query or not self.enabled:
            return None

        params = {"query": query, "key": self.api_key, "language": language}
        try:
            data = self._request("GET", TEXT_SEARCH_URL, params=params)
        except TripTailorError as e:
            logger.warning("google_geocode_failed", query=query, error=e.message, error_type=type(e).__name__)
            return None

        results = data.get("results") or []
        if not results:
            return None
        location = ((results[0] or {}).get("geometry") or {}).get("location") or {}
        if "lat" not in location or "lng" not in location:
            return None
        return Coordinates(lat=float(location["lat"]), lon=float(location["lng"]))

    def get_place_details(
        self,
        google_place_id: str,
        language: Optional[str] = None,
        session_token: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        google_place_id = (google_place_id or "").strip()
        if not google_place_id:
            return None
        language = language or self.language

        cache_key = f"google:place_details_full:{google_place_id}:{language}"
        return self.cache.remember(
            cache_key,
            DETAILS_CACHE_TTL,
            lambda: self._fetch_place_details(google_place_id, language, session_token),
        )

    def _fetch_place_details(self, google_place_id: str, language: str, session_token: Optional[str]) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None

        params = {
            "place_id": google_place_id,
            "language": language,
            "fields": DETAILS_FIELDS,
            "key": self.api_key,
        }
        if session_token:
            params["sessiontoken"] = session_token

        try:
            data = self._request("GET", DETAILS_URL, params=params, timeout=8)
        except TripTailorError as e:
            logger.warning("google_details_failed", pid=google_place_id, error=e.message)
            return None

        if data.get("status") != "OK":
            logger.info("google_details_status", status=data.get("status", "unknown"), pid=google_place_id)
            return None

        result = data.get("result")
        if not result:
            return None

        location = (result.get("geometry") or {}).get("location") or {}
        lat, lon = location.get("lat"), location.get("lng")
        if lat is None or lon is None:
            return None

        google_types = result.get("types") or []
        rating = result.get("rating")
        return {
            "google_place_id": result.get("place_id", google_place_id),
            "place_id": result.get("place_id", google_place_id),
            "name": result.get("name", "Unknown place"),
            "lat": float(lat),
            "lon": float(lon),
            "category_slug": resolve_internal_category(google_types),
            "types": google_types,
            "rating": float(rating) if rating is not None else None,
            "opening_hours": result.get("opening_hours"),
            "meta": {
                "address": result.get("formatted_address") or result.get("vicinity"),
                "user_ratings_total": result.get("user_ratings_total", 0),
                "website": result.get("website"),
                "phone": result.get("international_phone_number"),
                "types": google_types,
            },
        }

    def autocomplete(
        self,
        query: str,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        radius: Optional[int] = None,
        language: Optional[str] = None,
        session_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = (query or "").strip()
        if not query or not self.enabled:
            return []

        params: Dict[str, Any] = {
            "input": query,
            "language": language or self.language,
            "key": self.api_key,
        }
        if lat is not None and lon is not None:
            params["location"] = f"{lat},{lon}"
            if radius is not None:
                params["radius"] = radius
        if session_token:
            params["sessiontoken"] = session_token

        try:
            data = self._request("GET", AUTOCOMPLETE_URL, params=params, timeout=5)
        except TripTailorError as e:
            logger.warning("google_autocomplete_failed", error=e.message)
            return []

        status = data.get("status", "unknown")
        if status != "OK":
            if status != "ZERO_RESULTS":
                logger.info("google_autocomplete_status", status=status)
            return []

        predictions = []
        for p in data.get("predictions") or []:
            if not p.get("place_id"):
                continue
            formatting = p.get("structured_formatting") or {}
            predictions.append({
                "google_place_id": p.get("place_id"),
                "description": p.get("description"),
                "main_text": formatting.get("main_text"),
                "secondary_text": formatting.get("secondary_text"),
                "types": p.get("types") or [],
            })
        return predictions

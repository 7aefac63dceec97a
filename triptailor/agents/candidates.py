"""
Candidate retrieval for place suggestions.

Candidates come from two sources:
1. the internal place store (radius query around the origin), and
2. Google Places Nearby Search, when external retrieval is enabled.

Both lists are merged with internal records winning over Google ones that
point at the same Google place, then deduplicated.
"""

from typing import Any, Dict, List, Optional

from ..schemas.records import TripRecord
from ..schemas.suggestions import Candidate, PlaceSuggestionQuery, SuggestionContext
from ..storage.base import PlaceStore
from ..tools.categories import PREFERRED_RECOMMENDABLE, CategoryNormalizer, preferred_recommendable
from ..tools.geo import haversine_meters
from ..tools.google_places import GooglePlacesClient
from ..utils.config import settings as default_settings
from ..utils.exceptions import TripTailorError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Internal rows are over-fetched so filtering still leaves enough to rank
DB_OVERFETCH_FACTOR = 12


class DatabasePlacesCandidateProvider:
    """Collects internal and Google candidates around the suggestion origin."""

    def __init__(
        self,
        store: PlaceStore,
        google_places: GooglePlacesClient,
        categories: CategoryNormalizer = None,
        settings=None,
    ):
        self.store = store
        self.google_places = google_places
        self.categories = categories or CategoryNormalizer()
        self.settings = settings or default_settings

    def get_candidates(
        self,
        trip: TripRecord,
        query: PlaceSuggestionQuery,
        preferences: Dict[str, Any],
        context: SuggestionContext,
    ) -> List[Candidate]:
        origin = context.origin
        if origin is None or not origin.lat or not origin.lon:
            return []

        preferred = preferred_recommendable(preferences)
        if not preferred:
            logger.info("candidates_no_preferred_categories", trip_id=trip.id)
            return []

        try:
            db_candidates = self._db_candidates(trip, query, context, preferred)
        except TripTailorError as e:
            logger.error("candidates_store_failed", trip_id=trip.id, error=e.message, error_type=type(e).__name__)
            db_candidates = []

        if not self.settings.ai_suggestions_external_enabled:
            return db_candidates

        try:
            google_candidates = self._google_candidates(query, context, preferred)
        except TripTailorError as e:
            logger.warning("candidates_google_failed", trip_id=trip.id, error=e.message, error_type=type(e).__name__)
            return db_candidates

        merged = merge_prefer_internal(db_candidates, google_candidates)
        logger.info(
            "candidates_collected",
            trip_id=trip.id,
            internal=len(db_candidates),
            google=len(google_candidates),
            merged=len(merged),
        )
        return merged

    def _db_candidates(
        self,
        trip: TripRecord,
        query: PlaceSuggestionQuery,
        context: SuggestionContext,
        preferred: List[str],
    ) -> List[Candidate]:
        limit = max(1, min(self.settings.ai_suggestions_max_limit, query.limit * DB_OVERFETCH_FACTOR))
        existing = self.store.trip_place_ids(trip.id)
        rows = self.store.nearby_places(context.origin, query.radius_m, preferred, existing, limit)

        out: List[Candidate] = []
        for row in rows:
            canonical = row.category_slug or "other"
            if canonical not in PREFERRED_RECOMMENDABLE or row.lat is None or row.lon is None:
                continue
            out.append(Candidate(
                source="internal_db",
                internal_place_id=row.id,
                external_id=f"google:{row.google_place_id}" if row.google_place_id else None,
                name=row.name,
                category=canonical,
                rating=row.rating,
                reviews_count=row.reviews_count,
                lat=row.lat,
                lon=row.lon,
                distance_m=int(round(row.distance_m)) if row.distance_m is not None else None,
            ))
        return out

    def _google_candidates(
        self,
        query: PlaceSuggestionQuery,
        context: SuggestionContext,
        preferred: List[str],
    ) -> List[Candidate]:
        origin = context.origin
        raw = self.google_places.fetch_nearby_by_preferred_categories(
            origin.lat,
            origin.lon,
            preferred,
            radius=query.radius_m,
            limit=self.settings.ai_suggestions_external_max_candidates,
        )
        if not raw:
            return []

        try:
            known = self.store.known_google_place_ids()
        except TripTailorError as e:
            logger.error("candidates_known_ids_failed", error=e.message, error_type=type(e).__name__)
            known = set()

        out: List[Candidate] = []
        for place in raw:
            pid = place.get("place_id")
            if not pid or pid in known:
                continue
            if place.get("lat") is None or place.get("lon") is None:
                continue

            canonical = self._canonical_category(place)
            if canonical is None or canonical not in PREFERRED_RECOMMENDABLE or canonical not in preferred:
                continue

            lat, lon = float(place["lat"]), float(place["lon"])
            meta = place.get("meta") or {}
            out.append(Candidate(
                source="google",
                external_id=f"google:{pid}",
                name=str(place.get("name") or "Unknown place"),
                category=canonical,
                rating=float(place["rating"]) if place.get("rating") is not None else None,
                reviews_count=int(meta.get("user_ratings_total") or 0),
                lat=lat,
                lon=lon,
                distance_m=haversine_meters(origin.lat, origin.lon, lat, lon),
                meta=meta,
            ))
        return out

    def _canonical_category(self, place: Dict[str, Any]) -> Optional[str]:
        canonical = self.categories.canonical_from_types((place.get("meta") or {}).get("types") or [])
        if canonical:
            return canonical

        # category_slug from the client is usually canonical already
        fallback = place.get("category_slug")
        if isinstance(fallback, str):
            canonical = fallback if self.categories.is_recommendable(fallback) else self.categories.normalize(fallback)
            if self.categories.is_recommendable(canonical):
                return canonical
        return None


def merge_prefer_internal(internal: List[Candidate], google: List[Candidate]) -> List[Candidate]:
    """
    Internal candidates first, then Google ones not already covered.

    A Google candidate whose external id matches an internal one is dropped;
    the result is then deduplicated by `Candidate.dedupe_key`, first wins.
    """
    internal_external_ids = {c.external_id for c in internal if c.external_id}
    merged = list(internal)
    merged.extend(g for g in google if not (g.external_id and g.external_id in internal_external_ids))

    seen = set()
    unique: List[Candidate] = []
    for candidate in merged:
        key = candidate.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique

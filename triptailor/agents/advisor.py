"""
Place advisor: the suggestion pipeline for a single trip.

Flow of `suggest_for_trip`:
1. clamp the query and aggregate group preferences
2. resolve the search origin (chosen place, last added place, trip start,
   trip destination, geocoded destination name)
3. collect candidates, score them, keep recommendable categories
4. let Gemini rewrite the reasons of the best few
5. drop low scores, truncate, cache the whole payload
"""

import hashlib
import json
import re
from typing import Any, Dict, List, Optional

from ..schemas.records import TripRecord
from ..schemas.suggestions import (
    Candidate,
    PlaceSuggestionQuery,
    Reasoning,
    SuggestedPlace,
    SuggestedPlaceCollection,
    SuggestionContext,
)
from ..storage.base import PlaceStore
from ..storage.cache import CacheBackend
from ..tools.categories import CategoryNormalizer
from ..tools.geo import is_valid_coordinate
from ..tools.google_places import GooglePlacesClient
from ..utils.config import settings as default_settings
from ..utils.exceptions import TripTailorError
from ..utils.logger import get_logger
from .candidates import DatabasePlacesCandidateProvider
from .enhancer import GeminiEnhancer, clean_place_id
from .preferences import PreferenceAggregator
from .reasoner import DEFAULT_RADIUS_M, HeuristicPlaceReasoner

logger = get_logger(__name__)

CACHE_KEY_VERSION = "v16"
LOADING_PLACEHOLDER = "Loading AI recommendation..."
MISSING_REASON = "Recommended based on your trip context."
LOCATION_WARNING = "Location not determined"

DEFAULT_REASONS = {
    "en": "Recommended based on your preferences and location.",
    "pl": "Polecane na podstawie Twoich preferencji i lokalizacji.",
}


def normalize_locale(locale: Optional[str]) -> str:
    """Language part of a locale tag, lowercased: "pl-PL" -> "pl"."""
    language = re.split(r"[-_]", (locale or "").strip().lower())[0]
    return language or "en"


def preferences_hash(preferences: Dict[str, Any]) -> str:
    encoded = json.dumps(preferences, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def build_add_payload(candidate: Candidate) -> Dict[str, Any]:
    """What the client sends back to attach this suggestion to the trip."""
    if candidate.source == "internal_db" and candidate.internal_place_id is not None:
        return {"source": "internal_db", "place_id": int(candidate.internal_place_id)}
    return {
        "source": candidate.source or "external",
        "external_id": candidate.external_id,
        "name": candidate.name,
        "category": candidate.category,
        "rating": candidate.rating,
        "lat": float(candidate.lat),
        "lon": float(candidate.lon),
    }


class AiPlaceAdvisor:
    """Suggests places for a trip. Every dependency failure degrades, never raises."""

    def __init__(
        self,
        store: PlaceStore,
        cache: CacheBackend,
        google_places: GooglePlacesClient,
        preferences: PreferenceAggregator = None,
        candidates: DatabasePlacesCandidateProvider = None,
        reasoner: HeuristicPlaceReasoner = None,
        enhancer: GeminiEnhancer = None,
        categories: CategoryNormalizer = None,
        settings=None,
    ):
        self.settings = settings or default_settings
        self.store = store
        self.cache = cache
        self.google_places = google_places
        self.categories = categories or CategoryNormalizer()
        self.preferences = preferences or PreferenceAggregator(store)
        self.candidates = candidates or DatabasePlacesCandidateProvider(
            store, google_places, self.categories, self.settings
        )
        self.reasoner = reasoner or HeuristicPlaceReasoner()
        self.enhancer = enhancer or GeminiEnhancer()

    def suggest_for_trip(self, trip: TripRecord, query: PlaceSuggestionQuery) -> SuggestedPlaceCollection:
        if not self.settings.ai_suggestions_enabled:
            return SuggestedPlaceCollection(items=[], meta={"trip_id": trip.id, "disabled": True})

        query = self.clamp_query(query)
        try:
            prefs = self.preferences.get_group_preferences(trip)
        except TripTailorError as e:
            logger.error("preferences_failed", trip_id=trip.id, error=e.message)
            prefs = {}
        prefs_hash = preferences_hash(prefs)
        context = self.build_context(trip, query)

        cache_key = self.cache_key(trip.id, query, prefs_hash, context)
        ttl = int(self.settings.ai_suggestions_cache_ttl_minutes) * 60

        payload = self.cache.remember(
            cache_key,
            ttl,
            lambda: self._compute(trip, query, prefs, context),
        )
        return SuggestedPlaceCollection(**payload)

    def clamp_query(self, query: PlaceSuggestionQuery) -> PlaceSuggestionQuery:
        s = self.settings
        limit = max(1, min(s.ai_suggestions_max_limit, int(query.limit)))
        radius = max(s.ai_suggestions_min_radius_m, min(s.ai_suggestions_max_radius_m, int(query.radius_m)))
        return PlaceSuggestionQuery(
            based_on_place_id=query.based_on_place_id,
            limit=limit,
            radius_m=radius,
            locale=normalize_locale(query.locale),
        )

    def build_context(self, trip: TripRecord, query: PlaceSuggestionQuery) -> SuggestionContext:
        """Resolve the point suggestions are searched around; first source that yields one wins."""
        if query.based_on_place_id:
            try:
                place = self.store.get_place(query.based_on_place_id)
            except TripTailorError as e:
                logger.error("context_manual_place_failed", trip_id=trip.id, error=e.message)
                place = None
            if place is not None and is_valid_coordinate(place.coordinates):
                return SuggestionContext(
                    origin=place.coordinates, origin_source="manual_place_id", radius_m=query.radius_m
                )

        try:
            last = self.store.last_added_place_coordinates(trip.id)
        except TripTailorError as e:
            logger.error("context_last_place_failed", trip_id=trip.id, error=e.message)
            last = None
        if last is not None:
            return SuggestionContext(origin=last, origin_source="last_added_place", radius_m=query.radius_m)

        if trip.start_coordinates is not None:
            return SuggestionContext(
                origin=trip.start_coordinates, origin_source="trip_start_location", radius_m=query.radius_m
            )

        if trip.destination_coordinates is not None:
            return SuggestionContext(
                origin=trip.destination_coordinates, origin_source="trip_destination", radius_m=query.radius_m
            )

        search_text = trip.destination or trip.name
        if search_text:
            found = self.google_places.geocode_text(search_text)
            if found is not None:
                return SuggestionContext(
                    origin=found,
                    origin_source="geocoded_text_search",
                    radius_m=query.radius_m or DEFAULT_RADIUS_M,
                )

        logger.info("context_origin_missing", trip_id=trip.id)
        return SuggestionContext(origin=None, origin_source="none", radius_m=query.radius_m)

    @staticmethod
    def cache_key(trip_id: int, query: PlaceSuggestionQuery, prefs_hash: str, context: SuggestionContext) -> str:
        origin = context.origin
        orig = f"{round(origin.lat, 4)},{round(origin.lon, 4)}" if origin else "x"
        return (
            f"ai:suggestions:{CACHE_KEY_VERSION}:trip:{trip_id}"
            f":lang:{query.locale}"
            f":src={context.origin_source}"
            f":orig={orig}"
            f":p={prefs_hash[:10]}"
        )

    def _compute(
        self,
        trip: TripRecord,
        query: PlaceSuggestionQuery,
        prefs: Dict[str, float],
        context: SuggestionContext,
    ) -> Dict[str, Any]:
        if context.origin is None:
            meta = self._meta(trip, query, context, empty=True)
            meta["warning"] = LOCATION_WARNING
            return {"items": [], "meta": meta}

        candidates = self.candidates.get_candidates(trip, query, prefs, context)
        if not candidates:
            return {"items": [], "meta": self._meta(trip, query, context, empty=True)}

        reasonings = self.reasoner.rank_and_explain(candidates, prefs, context, query.locale)

        items: List[SuggestedPlace] = []
        for idx, candidate in enumerate(candidates):
            reasoning = reasonings[idx] if idx < len(reasonings) else Reasoning()
            canonical = candidate.category or "other"
            if not self.categories.is_recommendable(canonical):
                continue
            items.append(SuggestedPlace(
                source=candidate.source,
                internal_place_id=candidate.internal_place_id,
                external_id=candidate.external_id,
                name=candidate.name,
                category=canonical,
                rating=candidate.rating,
                reviews_count=candidate.reviews_count,
                lat=candidate.lat,
                lon=candidate.lon,
                distance_m=candidate.distance_m,
                estimated_visit_minutes=reasoning.estimated_visit_minutes,
                score=max(0.0, min(1.0, float(reasoning.score))),
                reason=reasoning.reason or MISSING_REASON,
                add_payload=build_add_payload(candidate),
            ))

        # sorted() is stable, equal scores keep candidate order
        items = sorted(items, key=lambda item: item.score, reverse=True)
        items = self._enhance_top_items(items, trip, prefs, query.locale)

        min_score = float(self.settings.ai_suggestions_min_score)
        items = [item for item in items if item.score >= min_score][:query.limit]

        logger.info(
            "suggestions_computed",
            trip_id=trip.id,
            candidates=len(candidates),
            returned=len(items),
            origin_source=context.origin_source,
        )
        return {
            "items": [item.model_dump() for item in items],
            "meta": self._meta(trip, query, context, empty=not items),
        }

    def _enhance_top_items(
        self,
        items: List[SuggestedPlace],
        trip: TripRecord,
        prefs: Dict[str, float],
        locale: str,
    ) -> List[SuggestedPlace]:
        top = items[:max(0, int(self.settings.ai_suggestions_enhance_top_n))]
        if not top:
            return items

        payload = [
            {
                "external_id": item.enhancement_key,
                "name": item.name,
                "category": item.category,
                "distance": item.distance_m,
                "rating": item.rating,
            }
            for item in top
        ]
        trip_context = f"Trip to {trip.destination}" if trip.destination else f"Trip ID: {trip.id}"
        reasons = self.enhancer.enhance_places(payload, prefs, trip_context, locale)

        cleaned: Dict[str, str] = {clean_place_id(k): v for k, v in (reasons or {}).items()}
        default_reason = DEFAULT_REASONS.get(locale, DEFAULT_REASONS["en"])

        enhanced: List[SuggestedPlace] = []
        for item in items:
            new_reason: Optional[str] = cleaned.get(clean_place_id(item.enhancement_key))
            if new_reason or item.reason == LOADING_PLACEHOLDER:
                item = item.model_copy(update={"reason": str(new_reason or default_reason)})
            enhanced.append(item)
        return enhanced

    @staticmethod
    def _meta(
        trip: TripRecord,
        query: PlaceSuggestionQuery,
        context: SuggestionContext,
        empty: bool,
    ) -> Dict[str, Any]:
        return {
            "trip_id": trip.id,
            "origin_source": context.origin_source,
            "radius_m": query.radius_m,
            "empty": empty,
        }

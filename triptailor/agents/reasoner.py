"""
Heuristic scoring and explanation of place candidates.

Scores blend rating, popularity (log of review count) and proximity, plus
a fixed boost for categories the group prefers. The reason text is a short
template; the advisor may later swap it for an LLM-written one.
"""

import math
from typing import Any, Dict, List, Optional

from ..schemas.suggestions import Candidate, Reasoning, SuggestionContext
from ..tools.categories import is_number, preferred_recommendable

RATING_WEIGHT = 0.45
POPULARITY_WEIGHT = 0.30
DISTANCE_WEIGHT = 0.25
PREFERENCE_BOOST = 0.12

DEFAULT_RADIUS_M = 5000

VISIT_MINUTES = {
    "museum": 120,
    "nature": 90,
    "attraction": 60,
    "food": 75,
    "nightlife": 120,
}
DEFAULT_VISIT_MINUTES = 60

PHRASES = {
    "en": {
        "matches": "Matches your preferences",
        "fits": "Fits your trip context",
        "close": "Close to your current area",
        "popular": "Highly popular",
    },
    "pl": {
        "matches": "Pasuje do Twoich preferencji",
        "fits": "Pasuje do kontekstu podróży",
        "close": "Blisko Twojej obecnej okolicy",
        "popular": "Bardzo popularne",
    },
}


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _phrase(locale: str, key: str) -> str:
    table = PHRASES.get((locale or "en").lower()[:2], PHRASES["en"])
    return table[key]


def _is_weights_map(preferences: Dict[str, Any]) -> bool:
    # Decided by the first entry only; legacy shapes have a list there
    for key, value in preferences.items():
        return isinstance(key, str) and is_number(value)
    return False


def extract_preferred_categories(preferences: Dict[str, Any]) -> List[str]:
    """
    Preferred categories from either preference shape.

    Current shape is a weights map ({"food": 1.17, "museum": 0.33}); older
    clients send {"categories": [...]} or {"preferred_categories": [...]}
    with strings or {"key": ...} dicts.
    """
    preferences = preferences or {}
    if _is_weights_map(preferences):
        return preferred_recommendable(preferences)

    raw = preferences.get("categories")
    if raw is None:
        raw = preferences.get("preferred_categories")
    if not isinstance(raw, list):
        return []

    categories: List[str] = []
    for item in raw:
        if isinstance(item, dict):
            item = item.get("key")
        if isinstance(item, str) and item.lower() not in categories:
            categories.append(item.lower())
    return categories


class HeuristicPlaceReasoner:
    """Deterministic scorer; no network access."""

    def rank_and_explain(
        self,
        candidates: List[Candidate],
        preferences: Dict[str, Any],
        context: SuggestionContext,
        locale: str = "en",
    ) -> List[Reasoning]:
        """Score and explain each candidate. The result is index-aligned with `candidates`."""
        preferred = extract_preferred_categories(preferences)
        radius = int(context.radius_m or DEFAULT_RADIUS_M) if context else DEFAULT_RADIUS_M

        return [self._reason(c, preferred, radius, locale) for c in candidates]

    def _reason(self, candidate: Candidate, preferred: List[str], radius: int, locale: str) -> Reasoning:
        rating = float(candidate.rating or 0.0)
        rating_score = min(1.0, rating / 5.0) if rating > 0 else 0.35

        reviews = candidate.reviews_count
        popularity = _clamp(math.log10(max(1, reviews)) / 5.0) if reviews is not None else 0.4

        distance = candidate.distance_m
        distance_score = _clamp(1.0 - distance / max(1, radius)) if distance is not None else 0.5

        category = candidate.category
        boost = PREFERENCE_BOOST if category and category in preferred else 0.0

        score = _clamp(
            RATING_WEIGHT * rating_score
            + POPULARITY_WEIGHT * popularity
            + DISTANCE_WEIGHT * distance_score
            + boost
        )

        return Reasoning(
            score=score,
            reason=self._build_reason(candidate, preferred, distance, reviews, locale),
            estimated_visit_minutes=VISIT_MINUTES.get(category, DEFAULT_VISIT_MINUTES),
        )

    @staticmethod
    def _build_reason(
        candidate: Candidate,
        preferred: List[str],
        distance: Optional[int],
        reviews: Optional[int],
        locale: str,
    ) -> str:
        name = candidate.name or "This place"
        matched = candidate.category and candidate.category in preferred
        parts = [_phrase(locale, "matches" if matched else "fits")]

        if distance is not None:
            parts.append(f"{_phrase(locale, 'close')} ({int(distance)}m)")
        if reviews is not None:
            parts.append(f"{_phrase(locale, 'popular')} ({int(reviews)})")

        return f"{name}: {'. '.join(parts)}."

"""
Canonical place categories and their mapping to/from Google place types.
"""

from typing import Any, Dict, Iterable, List, Optional

# Google type -> canonical category
GOOGLE_CATEGORY_MAP: Dict[str, str] = {
    # food
    "restaurant": "food",
    "cafe": "food",
    "meal_takeaway": "food",
    "meal_delivery": "food",
    "bakery": "food",
    "bar": "food",
    "food": "food",

    # nightlife
    "night_club": "nightlife",
    "pub": "nightlife",

    # museum & culture
    "museum": "museum",
    "art_gallery": "museum",
    "library": "museum",

    # nature
    "park": "nature",
    "natural_feature": "nature",
    "campground": "nature",
    "tourist_attraction": "nature",

    # attractions
    "point_of_interest": "attraction",
    "tourist_information_center": "attraction",

    # lodging
    "lodging": "hotel",
    "hotel": "hotel",
    "hostel": "hotel",
    "motel": "hotel",
    "guest_house": "hotel",
    "apartment": "hotel",

    # transport
    "airport": "airport",
    "train_station": "station",
    "subway_station": "station",
    "bus_station": "station",
    "transit_station": "station",

    # worship
    "church": "religion",
    "mosque": "religion",
    "synagogue": "religion",
    "hindu_temple": "religion",

    "other": "other",
}

# Canonical category -> Google types to search for
CATEGORY_GOOGLE_TYPES: Dict[str, List[str]] = {
    "museum": ["museum", "art_gallery"],
    "nature": ["park", "zoo", "campground", "tourist_attraction"],
    "food": ["restaurant", "cafe", "bakery", "bar"],
    "nightlife": ["bar", "night_club"],
    "attraction": ["tourist_attraction", "tourist_information_center"],
    "hotel": ["lodging"],
    "airport": ["airport"],
    "station": ["train_station", "subway_station", "bus_station", "transit_station"],
    "religion": ["church", "mosque", "synagogue", "hindu_temple"],
    "accommodation": ["lodging"],
}

RECOMMENDABLE = frozenset({
    "food", "nightlife", "museum", "nature", "attraction",
    "park", "cafe", "restaurant", "zoo", "aquarium", "gallery", "other",
})

TECHNICAL = frozenset({"hotel", "airport", "station", "transport", "lodging"})

# Categories that preference-driven retrieval is allowed to target
PREFERRED_RECOMMENDABLE = ("food", "nightlife", "museum", "nature", "attraction")


class CategoryNormalizer:
    """Maps raw category strings (usually Google types) onto canonical slugs."""

    def __init__(self, category_map: Optional[Dict[str, str]] = None):
        self.category_map = category_map if category_map is not None else GOOGLE_CATEGORY_MAP

    def normalize(self, raw: Optional[str]) -> str:
        key = raw.strip().lower() if raw else "other"
        return self.category_map.get(key, self.category_map.get("other", "other"))

    def is_recommendable(self, canonical: Optional[str]) -> bool:
        return canonical in RECOMMENDABLE

    def is_technical(self, canonical: Optional[str]) -> bool:
        return canonical in TECHNICAL

    def canonical_from_types(self, types: Iterable[Any]) -> Optional[str]:
        """First recommendable canonical category among the mapped `types`, if any."""
        for google_type in types or []:
            if not isinstance(google_type, str):
                continue
            if google_type.strip().lower() not in self.category_map:
                continue
            canonical = self.normalize(google_type)
            if self.is_recommendable(canonical):
                return canonical
        return None


def google_types_for(category_slugs: Iterable[Any]) -> List[str]:
    """Google types to search for the given canonical categories (deduped, ordered)."""
    types: List[str] = []
    for slug in category_slugs or []:
        for google_type in CATEGORY_GOOGLE_TYPES.get(str(slug).lower(), []):
            if google_type not in types:
                types.append(google_type)
    return types


def resolve_internal_category(google_types: Iterable[str]) -> str:
    """Canonical category of the first mapped Google type, else "other"."""
    for google_type in google_types or []:
        if google_type in GOOGLE_CATEGORY_MAP:
            return GOOGLE_CATEGORY_MAP[google_type]
    return "other"


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def preferred_from_weights(preferences: Dict[str, Any]) -> List[str]:
    """Lowercased category keys whose weight is a positive number."""
    preferred: List[str] = []
    for key, weight in (preferences or {}).items():
        if not isinstance(key, str) or not is_number(weight):
            continue
        if float(weight) > 0.0:
            preferred.append(key.lower())
    return preferred


def preferred_recommendable(preferences: Dict[str, Any]) -> List[str]:
    """Positive-weight categories restricted to PREFERRED_RECOMMENDABLE, unique, in input order."""
    result: List[str] = []
    for slug in preferred_from_weights(preferences):
        if slug in PREFERRED_RECOMMENDABLE and slug not in result:
            result.append(slug)
    return result

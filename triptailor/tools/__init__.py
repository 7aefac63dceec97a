"""
Tools package for place discovery.

This package contains utility functions for:
- Category normalization between Google types and internal slugs
- Great-circle distance and WKT point parsing
- The Google Places client (nearby search, geocoding, details, autocomplete)
"""

from .categories import (
    CategoryNormalizer,
    google_types_for,
    preferred_recommendable,
    resolve_internal_category,
)
from .geo import haversine_meters, is_valid_coordinate, parse_wkt_point
from .google_places import GooglePlacesClient

__all__ = [
    "CategoryNormalizer",
    "google_types_for",
    "preferred_recommendable",
    "resolve_internal_category",
    "haversine_meters",
    "is_valid_coordinate",
    "parse_wkt_point",
    "GooglePlacesClient",
]

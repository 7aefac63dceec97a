"""
Pydantic schemas for the TripTailor API
"""
from .suggestions import (
    Candidate,
    Coordinates,
    PlaceSuggestionQuery,
    Reasoning,
    SuggestedPlace,
    SuggestedPlaceCollection,
    SuggestionContext,
)
from .records import NearbyPlace, PlaceRecord, TripRecord
from .responses import SuggestedPlaceResponse, SuggestionsResponse

__all__ = [
    # Pipeline models
    "Candidate",
    "Coordinates",
    "PlaceSuggestionQuery",
    "Reasoning",
    "SuggestedPlace",
    "SuggestedPlaceCollection",
    "SuggestionContext",
    # Store rows
    "NearbyPlace",
    "PlaceRecord",
    "TripRecord",
    # API response models
    "SuggestedPlaceResponse",
    "SuggestionsResponse",
]

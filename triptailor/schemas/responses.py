"""
Pydantic schemas for API responses
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .suggestions import SuggestedPlace


class Location(BaseModel):
    lat: float
    lon: float


class SuggestionActions(BaseModel):
    """What the client posts back to add the suggestion to the trip."""
    add_payload: Dict[str, Any] = Field(default_factory=dict)


class SuggestedPlaceResponse(BaseModel):
    """A single suggestion as sent to the frontend"""
    source: str = Field(..., description="internal_db or google", example="internal_db")
    internal_place_id: Optional[int] = None
    external_id: Optional[str] = Field(default=None, example="google:ChIJLU7jZClu5kcR4PcOOO6p3I0")
    name: str = Field(..., example="National Museum")
    category: Optional[str] = Field(default=None, example="museum")
    rating: Optional[float] = None
    reviews_count: Optional[int] = None
    location: Location
    distance_m: Optional[int] = None
    estimated_visit_minutes: Optional[int] = None
    score: float = Field(..., ge=0.0, le=1.0)
    reason: str
    actions: SuggestionActions

    @classmethod
    def from_suggestion(cls, item: SuggestedPlace) -> "SuggestedPlaceResponse":
        return cls(
            source=item.source,
            internal_place_id=item.internal_place_id,
            external_id=item.external_id,
            name=item.name,
            category=item.category,
            rating=item.rating,
            reviews_count=item.reviews_count,
            location=Location(lat=item.lat, lon=item.lon),
            distance_m=item.distance_m,
            estimated_visit_minutes=item.estimated_visit_minutes,
            score=item.score,
            reason=item.reason,
            actions=SuggestionActions(add_payload=item.add_payload),
        )


class SuggestionsResponse(BaseModel):
    """Envelope returned by the suggestions endpoint"""
    data: List[SuggestedPlaceResponse]
    meta: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "data": [
                    {
                        "source": "internal_db",
                        "internal_place_id": 42,
                        "external_id": None,
                        "name": "National Museum",
                        "category": "museum",
                        "rating": 4.6,
                        "reviews_count": 12000,
                        "location": {"lat": 52.2319, "lon": 21.0249},
                        "distance_m": 850,
                        "estimated_visit_minutes": 120,
                        "score": 0.87,
                        "reason": "A quiet treasure trove for a rainy afternoon!",
                        "actions": {"add_payload": {"source": "internal_db", "place_id": 42}},
                    }
                ],
                "meta": {
                    "trip_id": 7,
                    "origin_source": "last_added_place",
                    "radius_m": 10000,
                    "empty": False,
                },
            }
        }

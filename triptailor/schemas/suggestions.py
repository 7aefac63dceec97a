"""
Pydantic models flowing through the place-suggestion pipeline.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


OriginSource = Literal[
    "manual_place_id",
    "last_added_place",
    "trip_start_location",
    "trip_destination",
    "geocoded_text_search",
    "none",
]


class Coordinates(BaseModel):
    """WGS84 point."""
    lat: float
    lon: float

    class Config:
        frozen = True


class PlaceSuggestionQuery(BaseModel):
    """Validated parameters of a suggestion request."""
    based_on_place_id: Optional[int] = None
    limit: int
    radius_m: int
    locale: str = "en"

    class Config:
        frozen = True

    @classmethod
    def from_params(cls, data: Dict[str, Any], settings) -> "PlaceSuggestionQuery":
        """Build a query from raw request params, falling back to configured defaults."""
        limit = data.get("limit")
        radius = data.get("radius_m")
        return cls(
            based_on_place_id=data.get("based_on_place_id"),
            limit=int(limit if limit is not None else settings.ai_suggestions_default_limit),
            radius_m=int(radius if radius is not None else settings.ai_suggestions_default_radius_m),
            locale=str(data.get("locale") or "en"),
        )


class SuggestionContext(BaseModel):
    """Where suggestions are searched around, and how that point was found."""
    origin: Optional[Coordinates] = None
    origin_source: OriginSource = "none"
    radius_m: int


class Candidate(BaseModel):
    """A place that may be suggested, before scoring."""
    source: Literal["internal_db", "google"]
    internal_place_id: Optional[int] = None
    external_id: Optional[str] = None
    name: str
    category: Optional[str] = None
    rating: Optional[float] = None
    reviews_count: Optional[int] = None
    lat: float
    lon: float
    distance_m: Optional[int] = None
    meta: Dict[str, Any] = Field(default_factory=dict)

    @property
    def dedupe_key(self) -> str:
        return self.external_id or f"internal:{self.internal_place_id or 0}"


class Reasoning(BaseModel):
    """Reasoner output for a single candidate (index-aligned with the input)."""
    score: float = 0.0
    reason: str = "Context match."
    estimated_visit_minutes: Optional[int] = None


class SuggestedPlace(BaseModel):
    """A scored, explained suggestion ready to be returned to the client."""
    source: str
    internal_place_id: Optional[int] = None
    external_id: Optional[str] = None

    name: str
    category: Optional[str] = None
    rating: Optional[float] = None
    reviews_count: Optional[int] = None

    lat: float
    lon: float
    distance_m: Optional[int] = None

    estimated_visit_minutes: Optional[int] = None
    score: float = Field(..., ge=0.0, le=1.0)
    reason: str

    add_payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def enhancement_key(self) -> str:
        """Identifier used to match LLM-written reasons back to this item."""
        return str(self.external_id or self.internal_place_id or "")


class SuggestedPlaceCollection(BaseModel):
    items: List[SuggestedPlace] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)

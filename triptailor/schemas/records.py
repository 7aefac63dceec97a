"""
Pydantic schemas for rows read from the place store.
"""
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .suggestions import Coordinates


class TripRecord(BaseModel):
    """The subset of a trip the suggestion pipeline needs."""
    id: int
    name: str = ""
    owner_id: int
    destination: Optional[str] = None
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    destination_latitude: Optional[float] = None
    destination_longitude: Optional[float] = None

    @property
    def start_coordinates(self) -> Optional[Coordinates]:
        # Zero is treated as "not set", the way the trip form stores blanks
        if self.start_latitude and self.start_longitude:
            return Coordinates(lat=float(self.start_latitude), lon=float(self.start_longitude))
        return None

    @property
    def destination_coordinates(self) -> Optional[Coordinates]:
        if self.destination_latitude and self.destination_longitude:
            return Coordinates(lat=float(self.destination_latitude), lon=float(self.destination_longitude))
        return None


class PlaceRecord(BaseModel):
    """A stored place. `lat`/`lon` are None when the row has no location."""
    id: int
    name: str
    category_slug: Optional[str] = None
    rating: Optional[float] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    google_place_id: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @field_validator("meta", mode="before")
    @classmethod
    def _decode_meta(cls, value):
        # jsonb may come back as text depending on the driver
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except ValueError:
                return {}
            return decoded if isinstance(decoded, dict) else {}
        return value

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.lat is None or self.lon is None:
            return None
        return Coordinates(lat=self.lat, lon=self.lon)

    @property
    def reviews_count(self) -> Optional[int]:
        value = self.meta.get("user_ratings_total", self.meta.get("reviews_count"))
        if value is None:
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


class NearbyPlace(PlaceRecord):
    """A place returned by a radius search, with its distance to the origin."""
    distance_m: Optional[float] = None

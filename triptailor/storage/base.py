"""
Read interface of the place store used by the suggestion pipeline.
"""

from typing import Dict, Iterable, List, Optional, Protocol, Set

from ..schemas.records import NearbyPlace, PlaceRecord, TripRecord
from ..schemas.suggestions import Coordinates

# Membership status that makes a user part of the planning group
ACCEPTED = "accepted"


class PlaceStore(Protocol):
    """Everything the advisor reads about trips, places and preferences."""

    def get_trip(self, trip_id: int) -> Optional[TripRecord]: ...

    def get_place(self, place_id: int) -> Optional[PlaceRecord]: ...

    def last_added_place_coordinates(self, trip_id: int) -> Optional[Coordinates]:
        """Location of the most recently attached trip place that has one."""
        ...

    def trip_place_ids(self, trip_id: int) -> List[int]: ...

    def nearby_places(
        self,
        origin: Coordinates,
        radius_m: int,
        categories: Iterable[str],
        exclude_ids: Iterable[int],
        limit: int,
    ) -> List[NearbyPlace]:
        """Places within `radius_m` in `categories`, nearest first, at most `limit`."""
        ...

    def known_google_place_ids(self) -> Set[str]: ...

    def group_member_ids(self, trip_id: int) -> List[int]:
        """Owner plus accepted members, unique."""
        ...

    def average_preferences(self, user_ids: Iterable[int]) -> Dict[str, float]:
        """Mean preference score per category slug over `user_ids`."""
        ...

"""
Dict-backed place store.

Used by the test-suite and for local development without PostGIS
(`STORE_BACKEND=memory`). Distances are haversine, which is what
PostGIS' geography type computes up to a few meters.
"""

import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..schemas.records import NearbyPlace, PlaceRecord, TripRecord
from ..schemas.suggestions import Coordinates
from ..tools.geo import haversine_meters
from .base import ACCEPTED


class InMemoryPlaceStore:
    """Thread-safe in-memory implementation of `PlaceStore`."""

    def __init__(self):
        self._lock = threading.RLock()
        self._trips: Dict[int, TripRecord] = {}
        self._places: Dict[int, PlaceRecord] = {}
        # (trip_place_id, trip_id, place_id); trip_place_id grows monotonically
        self._trip_places: List[Tuple[int, int, int]] = []
        self._members: Dict[int, Dict[int, str]] = defaultdict(dict)
        self._preferences: Dict[int, Dict[str, float]] = defaultdict(dict)
        self._next_trip_place_id = 1
        self._next_place_id = 1

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_trip(self, trip: TripRecord) -> TripRecord:
        with self._lock:
            self._trips[trip.id] = trip
        return trip

    def add_place(self, place: Optional[PlaceRecord] = None, **fields: Any) -> PlaceRecord:
        with self._lock:
            if place is None:
                fields.setdefault("id", self._next_place_id)
                place = PlaceRecord(**fields)
            self._places[place.id] = place
            self._next_place_id = max(self._next_place_id, place.id + 1)
        return place

    def attach_place(self, trip_id: int, place_id: int) -> int:
        """Attach a place to a trip; re-attaching is a no-op (unique trip/place)."""
        with self._lock:
            for tp_id, t_id, p_id in self._trip_places:
                if t_id == trip_id and p_id == place_id:
                    return tp_id
            tp_id = self._next_trip_place_id
            self._next_trip_place_id += 1
            self._trip_places.append((tp_id, trip_id, place_id))
            return tp_id

    def add_member(self, trip_id: int, user_id: int, status: str = ACCEPTED) -> None:
        with self._lock:
            self._members[trip_id][user_id] = status

    def set_preference(self, user_id: int, category_slug: str, score: float) -> None:
        with self._lock:
            self._preferences[user_id][category_slug] = float(score)

    # ------------------------------------------------------------------
    # PlaceStore
    # ------------------------------------------------------------------

    def get_trip(self, trip_id: int) -> Optional[TripRecord]:
        return self._trips.get(trip_id)

    def get_place(self, place_id: int) -> Optional[PlaceRecord]:
        return self._places.get(place_id)

    def last_added_place_coordinates(self, trip_id: int) -> Optional[Coordinates]:
        with self._lock:
            rows = sorted(
                (row for row in self._trip_places if row[1] == trip_id),
                key=lambda row: row[0],
                reverse=True,
            )
            for _, _, place_id in rows:
                place = self._places.get(place_id)
                if place is None or place.coordinates is None:
                    continue
                coords = place.coordinates
                # Only the latest located place counts, even if it sits on (0, 0)
                return coords if abs(coords.lat) > 0.0001 and abs(coords.lon) > 0.0001 else None
        return None

    def trip_place_ids(self, trip_id: int) -> List[int]:
        with self._lock:
            return [p_id for _, t_id, p_id in self._trip_places if t_id == trip_id]

    def nearby_places(
        self,
        origin: Coordinates,
        radius_m: int,
        categories: Iterable[str],
        exclude_ids: Iterable[int],
        limit: int,
    ) -> List[NearbyPlace]:
        wanted = set(categories)
        excluded = set(exclude_ids)
        found: List[NearbyPlace] = []

        with self._lock:
            for place in self._places.values():
                if place.id in excluded or place.category_slug not in wanted:
                    continue
                coords = place.coordinates
                if coords is None:
                    continue
                distance = haversine_meters(origin.lat, origin.lon, coords.lat, coords.lon)
                if distance > radius_m:
                    continue
                found.append(NearbyPlace(**place.model_dump(), distance_m=float(distance)))

        found.sort(key=lambda p: p.distance_m)
        return found[:max(0, int(limit))]

    def known_google_place_ids(self) -> Set[str]:
        with self._lock:
            return {p.google_place_id for p in self._places.values() if p.google_place_id}

    def group_member_ids(self, trip_id: int) -> List[int]:
        trip = self._trips.get(trip_id)
        with self._lock:
            ids = [uid for uid, status in self._members.get(trip_id, {}).items() if status == ACCEPTED]
        if trip is not None and trip.owner_id not in ids:
            ids.append(trip.owner_id)
        return ids

    def average_preferences(self, user_ids: Iterable[int]) -> Dict[str, float]:
        totals: Dict[str, List[float]] = defaultdict(list)
        with self._lock:
            for uid in set(user_ids):
                for slug, score in self._preferences.get(uid, {}).items():
                    totals[slug].append(score)
        return {slug: sum(scores) / len(scores) for slug, scores in totals.items()}

    def upsert_place(self, place: Dict[str, Any]) -> int:
        """Insert a place or update the one with the same `google_place_id`."""
        with self._lock:
            gid = place.get("google_place_id")
            existing = next(
                (p for p in self._places.values() if gid and p.google_place_id == gid),
                None,
            )
            fields = {
                k: place[k]
                for k in ("name", "category_slug", "rating", "meta", "google_place_id", "lat", "lon")
                if k in place
            }
            if existing is not None:
                self._places[existing.id] = PlaceRecord(**{**existing.model_dump(), **fields})
                return existing.id
            return self.add_place(**fields).id

"""
Copy Google nearby places into the place store.

Every synced place is upserted by its Google id, so repeated syncs of the
same area update rows instead of duplicating them. This is what fills the
internal store the suggestion pipeline reads candidates from.
"""

from typing import Any, Dict, Iterable, List, Optional

from ..storage.base import PlaceStore
from ..utils.exceptions import TripTailorError
from ..utils.logger import get_logger
from .categories import CategoryNormalizer, google_types_for
from .google_places import DEFAULT_TYPES, GooglePlacesClient

logger = get_logger(__name__)


class PlaceSync:
    """Fetches Google places around a point and stores them."""

    def __init__(
        self,
        store: PlaceStore,
        google_places: GooglePlacesClient,
        categories: CategoryNormalizer = None,
    ):
        self.store = store
        self.google_places = google_places
        self.categories = categories or CategoryNormalizer()

    def fetch_and_store(
        self,
        lat: float,
        lon: float,
        radius: int = 3000,
        category_slugs: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
    ) -> Dict[str, int]:
        """
        Upsert the Google places near (lat, lon) into the store.

        Args:
            category_slugs: internal categories to fetch; all default types when empty
            language: results language, the client's default when None

        Returns:
            {"added": n, "updated": n, "failed": n}
        """
        slugs = list(category_slugs or [])
        types = google_types_for(slugs) if slugs else DEFAULT_TYPES
        places = self.google_places.fetch_nearby_by_types(lat, lon, radius, types, language)

        summary = {"added": 0, "updated": 0, "failed": 0}
        if not places:
            return summary

        try:
            known = self.store.known_google_place_ids()
        except TripTailorError as e:
            logger.error("place_sync_store_failed", error=e.message, error_type=type(e).__name__)
            summary["failed"] = len(places)
            return summary

        for item in places:
            # Zero coordinates come from incomplete Google payloads
            if not item.get("place_id") or not item.get("lat") or not item.get("lon"):
                continue

            record = self.to_record(item)
            try:
                self.store.upsert_place(record)
            except TripTailorError as e:
                logger.warning("place_sync_upsert_failed", pid=record["google_place_id"], error=e.message)
                summary["failed"] += 1
                continue

            if record["google_place_id"] in known:
                summary["updated"] += 1
            else:
                summary["added"] += 1
                known.add(record["google_place_id"])

        logger.info("place_sync_completed", lat=lat, lon=lon, radius=radius, **summary)
        return summary

    def to_record(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Shape one mapped Google place as an `upsert_place` record."""
        meta = item.get("meta") if isinstance(item.get("meta"), dict) else {}

        raw_types: List[Any] = []
        if item.get("category_slug"):
            raw_types.append(item["category_slug"])
        if isinstance(meta.get("types"), list):
            raw_types.extend(meta["types"])

        google_types: List[str] = []
        for t in raw_types:
            t = str(t).strip().lower()
            if t and t not in google_types:
                google_types.append(t)

        category = next(
            (self.categories.category_map[t] for t in google_types if t in self.categories.category_map),
            "other",
        )

        return {
            "name": str(item.get("name") or "Unknown place"),
            "category_slug": category,
            "rating": float(item["rating"]) if item.get("rating") is not None else None,
            "meta": {**meta, "source": meta.get("source", "google"), "google_types": google_types},
            "google_place_id": str(item["place_id"]),
            "lat": float(item["lat"]),
            "lon": float(item["lon"]),
        }

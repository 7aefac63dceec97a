"""
Group preference aggregation.
"""

from typing import Dict

from ..schemas.records import TripRecord
from ..storage.base import PlaceStore


class PreferenceAggregator:
    """Averages category preference scores over everyone planning a trip."""

    def __init__(self, store: PlaceStore):
        self.store = store

    def get_group_preferences(self, trip: TripRecord) -> Dict[str, float]:
        """
        Average preference score per category across owner and accepted members.

        Returns:
            e.g. {"museum": 1.8, "food": 2.0}, scores rounded to 2 decimals
        """
        user_ids = set(self.store.group_member_ids(trip.id))
        user_ids.add(trip.owner_id)
        if not user_ids:
            return {}

        averages = self.store.average_preferences(user_ids)
        return {slug: round(float(score), 2) for slug, score in averages.items()}

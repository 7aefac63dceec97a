"""
API routes for AI place suggestions
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from triptailor.agents.advisor import AiPlaceAdvisor
from triptailor.schemas import PlaceSuggestionQuery, SuggestedPlaceResponse, SuggestionsResponse
from triptailor.storage.base import PlaceStore
from triptailor.utils.config import Settings
from triptailor.utils.exceptions import NotFoundError, ValidationError
from triptailor.utils.logger import bind_trip_context, clear_trip_context, get_logger
from triptailor.routes.deps import get_advisor, get_settings, get_store

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["suggestions"])


def _invalid(field: str, message: str) -> ValidationError:
    # Same detail shape as FastAPI's own query validation errors
    return ValidationError(
        f"Invalid query parameter: {field}",
        validation_errors=[{"loc": ["query", field], "msg": message, "type": "value_error"}],
    )


@router.get("/trips/{trip_id}/places/suggestions", response_model=SuggestionsResponse)
def suggest_places(
    trip_id: int,
    based_on_place_id: Optional[int] = Query(None, ge=1, description="Search around this stored place"),
    limit: Optional[int] = Query(None, ge=1),
    radius_m: Optional[int] = Query(None, ge=1),
    locale: Optional[str] = Query(None, max_length=10),
    store: PlaceStore = Depends(get_store),
    advisor: AiPlaceAdvisor = Depends(get_advisor),
    settings: Settings = Depends(get_settings),
):
    """
    Suggest places for a trip.

    Results are ranked by score and cached per trip, locale, origin and
    group preferences.
    """
    if limit is not None and limit > settings.ai_suggestions_max_limit:
        raise _invalid("limit", f"must be at most {settings.ai_suggestions_max_limit}")
    if radius_m is not None and not (
        settings.ai_suggestions_min_radius_m <= radius_m <= settings.ai_suggestions_max_radius_m
    ):
        raise _invalid(
            "radius_m",
            f"must be between {settings.ai_suggestions_min_radius_m} and {settings.ai_suggestions_max_radius_m}",
        )

    trip = store.get_trip(trip_id)
    if trip is None:
        raise NotFoundError(f"Trip {trip_id} not found", context={"trip_id": trip_id})

    if based_on_place_id is not None and store.get_place(based_on_place_id) is None:
        raise _invalid("based_on_place_id", "selected place does not exist")

    query = PlaceSuggestionQuery.from_params(
        {"based_on_place_id": based_on_place_id, "limit": limit, "radius_m": radius_m, "locale": locale},
        settings,
    )

    bind_trip_context(trip.id, locale=query.locale)
    try:
        collection = advisor.suggest_for_trip(trip, query)
        logger.info("suggestions_served", count=len(collection.items), meta=collection.meta)
    finally:
        clear_trip_context()

    return SuggestionsResponse(
        data=[SuggestedPlaceResponse.from_suggestion(item) for item in collection.items],
        meta=collection.meta,
    )

"""
API routes for Google-backed place lookup
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from triptailor.routes.deps import get_google_places, get_settings, get_store
from triptailor.storage.base import PlaceStore
from triptailor.tools.categories import PREFERRED_RECOMMENDABLE
from triptailor.tools.google_places import GooglePlacesClient
from triptailor.tools.place_sync import PlaceSync
from triptailor.utils.config import Settings
from triptailor.utils.exceptions import NotFoundError

router = APIRouter(prefix="/api/v1/places", tags=["places"])


@router.get("/google/{google_place_id}")
def place_details(
    google_place_id: str,
    language: Optional[str] = Query(None, max_length=10),
    session_token: Optional[str] = Query(None, max_length=128),
    google_places: GooglePlacesClient = Depends(get_google_places),
):
    """Normalized Google place details"""
    details = google_places.get_place_details(google_place_id, language, session_token)
    if details is None:
        raise NotFoundError("Place not found", context={"google_place_id": google_place_id})
    return {"data": details}


@router.get("/autocomplete")
def autocomplete(
    q: str = Query(..., min_length=1, max_length=200),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[int] = Query(None, ge=1, le=50000),
    language: Optional[str] = Query(None, max_length=10),
    session_token: Optional[str] = Query(None, max_length=128),
    google_places: GooglePlacesClient = Depends(get_google_places),
):
    """Place predictions for a partially typed name"""
    predictions = google_places.autocomplete(q, lat, lon, radius, language, session_token)
    return {"data": predictions}


@router.get("/nearby")
def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: int = Query(1500, ge=1, le=50000),
    categories: Optional[str] = Query(None, description="Comma-separated category slugs"),
    limit: int = Query(20, ge=1, le=20),
    language: Optional[str] = Query(None, max_length=10),
    google_places: GooglePlacesClient = Depends(get_google_places),
    store: PlaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Best-rated Google places around a point.

    The fetched places are first upserted into the place store; `summary`
    counts how many were added and updated. Places below the configured
    rating or review-count floor are left out of `data`.
    """
    slugs = [c.strip().lower() for c in (categories or "").split(",") if c.strip()] or list(PREFERRED_RECOMMENDABLE)

    # Same area, types and language as the ranking below, so that call is a cache hit
    summary = PlaceSync(store, google_places).fetch_and_store(lat, lon, radius, slugs, language)

    places = google_places.fetch_nearby_ranked(
        lat,
        lon,
        slugs,
        radius=radius,
        limit=limit,
        min_rating=settings.ai_suggestions_min_rating,
        min_reviews=settings.ai_suggestions_min_reviews,
        language=language,
    )
    return {"data": places, "summary": summary}

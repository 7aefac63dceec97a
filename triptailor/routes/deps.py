"""
FastAPI dependency providers.

Long-lived collaborators (store, cache, Google client) are built once per
process. Tests swap any of them through `app.dependency_overrides`.
"""
from functools import lru_cache

from fastapi import Depends

from triptailor.agents.advisor import AiPlaceAdvisor
from triptailor.agents.enhancer import GeminiEnhancer
from triptailor.agents.llm_config import LLMProvider
from triptailor.storage import build_cache, build_store
from triptailor.storage.base import PlaceStore
from triptailor.storage.cache import CacheBackend
from triptailor.tools.google_places import GooglePlacesClient
from triptailor.utils.config import Settings, settings as app_settings


def get_settings() -> Settings:
    return app_settings


@lru_cache(maxsize=1)
def get_cache() -> CacheBackend:
    return build_cache(app_settings)


@lru_cache(maxsize=1)
def get_store() -> PlaceStore:
    return build_store(app_settings)


@lru_cache(maxsize=1)
def get_google_places() -> GooglePlacesClient:
    return GooglePlacesClient(
        api_key=app_settings.google_maps_server_key,
        cache=get_cache(),
        timeout=app_settings.request_timeout,
        referer=app_settings.app_url,
        language=app_settings.google_places_language,
    )


@lru_cache(maxsize=1)
def get_enhancer() -> GeminiEnhancer:
    return GeminiEnhancer(LLMProvider(app_settings))


def get_advisor(
    store: PlaceStore = Depends(get_store),
    cache: CacheBackend = Depends(get_cache),
    google_places: GooglePlacesClient = Depends(get_google_places),
    enhancer: GeminiEnhancer = Depends(get_enhancer),
    settings: Settings = Depends(get_settings),
) -> AiPlaceAdvisor:
    return AiPlaceAdvisor(
        store=store,
        cache=cache,
        google_places=google_places,
        enhancer=enhancer,
        settings=settings,
    )

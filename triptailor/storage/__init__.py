"""
Persistence layer: the place store and the response cache.
"""
from .base import ACCEPTED, PlaceStore
from .cache import CacheBackend, MemoryCache, RedisCache, build_cache
from .in_memory import InMemoryPlaceStore
from ..utils.exceptions import ConfigurationError


def build_store(settings) -> PlaceStore:
    """Instantiate the place store selected by `settings.store_backend`."""
    backend = (settings.store_backend or "memory").lower()
    if backend == "memory":
        return InMemoryPlaceStore()
    if backend in ("postgres", "postgis"):
        # psycopg2 is only needed when a database is configured
        from .postgis import PostgisPlaceStore
        return PostgisPlaceStore.from_settings(settings)
    raise ConfigurationError(f"Unknown store backend: {settings.store_backend}", context={"backend": backend})


__all__ = [
    "ACCEPTED",
    "CacheBackend",
    "InMemoryPlaceStore",
    "MemoryCache",
    "PlaceStore",
    "RedisCache",
    "build_cache",
    "build_store",
]

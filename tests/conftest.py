"""
Shared fixtures: an in-memory place store seeded with one trip in Kraków,
a scripted HTTP session standing in for Google, and a scripted chat model
standing in for Gemini.
"""
from types import SimpleNamespace

import pytest

from triptailor.agents.enhancer import GeminiEnhancer
from triptailor.agents.llm_config import LLMProvider
from triptailor.schemas import TripRecord
from triptailor.storage.cache import MemoryCache
from triptailor.storage.in_memory import InMemoryPlaceStore
from triptailor.tools.google_places import GooglePlacesClient
from triptailor.utils.config import Settings

KRAKOW = (50.0614, 19.9366)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.headers = headers or {}
        self.text = text if text is not None else str(self._payload)

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """
    Routes requests by URL substring to queued responses.

    The last queued response for a route keeps being served. Exception
    instances are raised instead of returned.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, url_part, *responses):
        self.routes.setdefault(url_part, []).extend(responses)
        return self

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        for part, queue in self.routes.items():
            if part in url:
                response = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"Unexpected request: {method} {url}")

    def calls_to(self, url_part):
        return [c for c in self.calls if url_part in c["url"]]


class FakeChatModel:
    """Records prompts; replies with `reply` or raises `error`."""

    def __init__(self, reply="{}", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def invoke(self, messages, **kwargs):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.reply)


def google_place(pid, name, types, lat, lon, rating=4.5, reviews=1000):
    """A Places API v1 nearby-search entry."""
    return {
        "id": pid,
        "displayName": {"text": name},
        "location": {"latitude": lat, "longitude": lon},
        "types": types,
        "rating": rating,
        "userRatingCount": reviews,
        "formattedAddress": f"{name}, Kraków",
    }


def nearby_response(*places):
    return FakeResponse(200, {"places": list(places)})


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch):
    monkeypatch.setattr("triptailor.utils.retry.time.sleep", lambda seconds: None)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        google_maps_server_key="test-key",
        gemini_api_key="",
        cache_backend="memory",
        store_backend="memory",
        ai_suggestions_min_score=0.10,
    )


@pytest.fixture
def store():
    store = InMemoryPlaceStore()
    store.add_trip(TripRecord(
        id=1,
        name="Weekend in Kraków",
        owner_id=10,
        destination="Kraków",
        start_latitude=KRAKOW[0],
        start_longitude=KRAKOW[1],
    ))
    store.add_trip(TripRecord(id=2, name="Somewhere", owner_id=20, destination="Gdańsk"))

    store.add_place(id=1, name="Rynek Underground", category_slug="museum", rating=4.7,
                    meta={"user_ratings_total": 15000}, google_place_id="g-rynek",
                    lat=50.0617, lon=19.9373)
    store.add_place(id=2, name="Pod Wawelem", category_slug="food", rating=4.4,
                    meta='{"reviews_count": 800}', lat=50.0570, lon=19.9380)
    store.add_place(id=3, name="Hotel Stary", category_slug="hotel", rating=4.8,
                    lat=50.0620, lon=19.9360)
    store.add_place(id=4, name="Wawel Castle", category_slug="attraction", rating=4.8,
                    meta={"user_ratings_total": 50000}, google_place_id="g-wawel",
                    lat=50.0540, lon=19.9354)
    store.add_place(id=5, name="Far Museum", category_slug="museum", rating=4.0,
                    lat=52.2297, lon=21.0122)

    store.attach_place(1, 4)

    store.add_member(1, 11)
    store.add_member(1, 12, status="pending")
    store.set_preference(10, "museum", 2)
    store.set_preference(11, "museum", 1)
    store.set_preference(10, "food", 1)
    store.set_preference(12, "nightlife", 2)
    return store


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def google(session, cache):
    return GooglePlacesClient(api_key="test-key", cache=cache, session=session, timeout=3, language="en")


@pytest.fixture
def chat_model():
    return FakeChatModel()


@pytest.fixture
def enhancer(settings, chat_model):
    return GeminiEnhancer(LLMProvider(settings, model=chat_model))

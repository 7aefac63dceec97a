import pytest
from fastapi.testclient import TestClient

from conftest import FakeResponse, google_place, nearby_response
from triptailor.main import app
from triptailor.routes import deps
from triptailor.tools.google_places import AUTOCOMPLETE_URL, DETAILS_URL, NEARBY_URL_V1


@pytest.fixture
def client(store, cache, google, enhancer, settings):
    settings.ai_suggestions_external_enabled = False
    app.dependency_overrides[deps.get_settings] = lambda: settings
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_cache] = lambda: cache
    app.dependency_overrides[deps.get_google_places] = lambda: google
    app.dependency_overrides[deps.get_enhancer] = lambda: enhancer
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "suggestions_enabled" in response.json()


def test_suggestions_response_shape(client):
    response = client.get("/api/v1/trips/1/places/suggestions", params={"based_on_place_id": 1, "limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["origin_source"] == "manual_place_id"
    first = body["data"][0]
    assert first["name"] == "Rynek Underground"
    assert first["location"] == {"lat": 50.0617, "lon": 19.9373}
    assert first["actions"] == {"add_payload": {"source": "internal_db", "place_id": 1}}
    assert 0.0 <= first["score"] <= 1.0


def test_defaults_come_from_settings(client):
    body = client.get("/api/v1/trips/1/places/suggestions").json()

    assert body["meta"]["radius_m"] == 10000
    assert body["meta"]["origin_source"] == "last_added_place"


def test_unknown_trip_is_404(client):
    response = client.get("/api/v1/trips/999/places/suggestions")

    assert response.status_code == 404
    assert response.json() == {"detail": "Trip 999 not found"}


def test_unknown_based_on_place_is_422(client):
    response = client.get("/api/v1/trips/1/places/suggestions", params={"based_on_place_id": 404})

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["query", "based_on_place_id"]


@pytest.mark.parametrize("params,field", [
    ({"limit": 21}, "limit"),
    ({"limit": 0}, "limit"),
    ({"radius_m": 100}, "radius_m"),
    ({"radius_m": 60000}, "radius_m"),
    ({"locale": "x" * 11}, "locale"),
])
def test_invalid_query_params_are_422(client, params, field):
    response = client.get("/api/v1/trips/1/places/suggestions", params=params)

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["query", field]


def test_place_details(client, session):
    session.add(DETAILS_URL, FakeResponse(200, {
        "status": "OK",
        "result": {
            "place_id": "g-mnk",
            "name": "National Museum",
            "geometry": {"location": {"lat": 50.06, "lng": 19.92}},
            "types": ["museum"],
            "rating": 4.6,
        },
    }))

    response = client.get("/api/v1/places/google/g-mnk")

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "National Museum"
    assert response.json()["data"]["category_slug"] == "museum"


def test_missing_place_details_is_404(client, session):
    session.add(DETAILS_URL, FakeResponse(200, {"status": "NOT_FOUND"}))

    assert client.get("/api/v1/places/google/nope").status_code == 404


def test_autocomplete(client, session):
    session.add(AUTOCOMPLETE_URL, FakeResponse(200, {
        "status": "OK",
        "predictions": [{
            "place_id": "g-wawel",
            "description": "Wawel, Kraków",
            "structured_formatting": {"main_text": "Wawel", "secondary_text": "Kraków"},
            "types": ["tourist_attraction"],
        }],
    }))

    response = client.get("/api/v1/places/autocomplete", params={"q": "Waw"})

    assert response.status_code == 200
    assert response.json()["data"][0]["google_place_id"] == "g-wawel"
    assert session.calls_to(AUTOCOMPLETE_URL)[0]["params"]["input"] == "Waw"


def test_nearby_ranks_by_rating(client, session, store):
    session.add(NEARBY_URL_V1, nearby_response(
        google_place("g-1", "Okay Museum", ["museum"], 50.06, 19.93, rating=4.1),
        google_place("g-2", "Great Museum", ["museum"], 50.06, 19.94, rating=4.8),
        google_place("g-3", "Bad Museum", ["museum"], 50.06, 19.95, rating=2.0),
    ))

    response = client.get("/api/v1/places/nearby", params={"lat": 50.06, "lon": 19.93, "categories": "museum"})

    assert response.status_code == 200
    assert [p["name"] for p in response.json()["data"]] == ["Great Museum", "Okay Museum"]
    assert response.json()["summary"] == {"added": 3, "updated": 0, "failed": 0}
    assert {"g-1", "g-2", "g-3"} <= store.known_google_place_ids()

    again = client.get("/api/v1/places/nearby", params={"lat": 50.06, "lon": 19.93, "categories": "museum"})
    assert again.json()["summary"] == {"added": 0, "updated": 3, "failed": 0}
    assert len(session.calls_to(NEARBY_URL_V1)) == 1


def test_nearby_requires_coordinates(client):
    assert client.get("/api/v1/places/nearby").status_code == 422

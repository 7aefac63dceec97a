import requests

from conftest import FakeResponse, google_place, nearby_response
from triptailor.tools.google_places import (
    AUTOCOMPLETE_URL,
    DETAILS_URL,
    NEARBY_URL_V1,
    TEXT_SEARCH_URL,
    GooglePlacesClient,
    nearby_cache_key,
    sanitize_included_types,
)


def test_sanitize_included_types():
    types = sanitize_included_types([" Museum", "", "pub", "point_of_interest", "museum", None, "cafe"])
    assert types == ["cafe", "museum"]


def test_sanitize_falls_back_to_default_types():
    types = sanitize_included_types([])
    assert types
    assert "point_of_interest" not in types
    assert types == sorted(types)


def test_nearby_cache_key_format():
    key = nearby_cache_key(50.06143, 19.93658, 1500, "en", [])
    assert key == "google:places:v1:50.0614:19.9366:1500:en:ALL"
    assert nearby_cache_key(50.0, 19.0, 1500, "en", ["museum"]) != nearby_cache_key(50.0, 19.0, 1500, "en", ["cafe"])


def test_fetch_nearby_by_types_sends_v1_request(google, session):
    session.add(NEARBY_URL_V1, nearby_response(
        google_place("p1", "MNK", ["museum", "point_of_interest"], 50.06, 19.93, 4.6, 3200),
    ))

    places = google.fetch_nearby_by_types(50.06, 19.93, 2000, ["museum"], language="pl")

    call = session.calls_to(NEARBY_URL_V1)[0]
    assert call["method"] == "POST"
    assert call["headers"]["X-Goog-Api-Key"] == "test-key"
    assert "places.userRatingCount" in call["headers"]["X-Goog-FieldMask"]
    body = call["json"]
    assert body["maxResultCount"] == 20
    assert body["includedTypes"] == ["museum"]
    assert body["languageCode"] == "pl"
    assert body["locationRestriction"]["circle"]["radius"] == 2000.0

    assert places == [{
        "place_id": "p1",
        "google_place_id": "p1",
        "name": "MNK",
        "lat": 50.06,
        "lon": 19.93,
        "rating": 4.6,
        "category_slug": "museum",
        "opening_hours": None,
        "meta": {
            "address": "MNK, Kraków",
            "types": ["museum", "point_of_interest"],
            "user_ratings_total": 3200,
            "business_status": None,
            "icon": None,
        },
    }]


def test_fetch_nearby_by_types_caches_success(google, session):
    session.add(NEARBY_URL_V1, nearby_response(google_place("p1", "MNK", ["museum"], 50.06, 19.93)))

    google.fetch_nearby_by_types(50.06, 19.93, 2000, ["museum"])
    google.fetch_nearby_by_types(50.06, 19.93, 2000, ["museum"])

    assert len(session.calls_to(NEARBY_URL_V1)) == 1


def test_fetch_nearby_drops_places_without_id(google, session):
    nameless = google_place(None, "Ghost", ["museum"], 50.0, 19.0)
    session.add(NEARBY_URL_V1, nearby_response(nameless, google_place("p2", "Real", ["museum"], 50.0, 19.0)))

    places = google.fetch_nearby_by_types(50.0, 19.0, 1000, ["museum"])
    assert [p["place_id"] for p in places] == ["p2"]


def test_fetch_nearby_retries_transient_errors(google, session):
    session.add(
        NEARBY_URL_V1,
        FakeResponse(503, {"error": "unavailable"}),
        requests.exceptions.Timeout("slow"),
        nearby_response(google_place("p1", "MNK", ["museum"], 50.06, 19.93)),
    )

    places = google.fetch_nearby_by_types(50.06, 19.93, 2000, ["museum"])

    assert len(places) == 1
    assert len(session.calls_to(NEARBY_URL_V1)) == 3


def test_fetch_nearby_failure_returns_empty_and_is_not_cached(google, session):
    session.add(NEARBY_URL_V1, FakeResponse(403, {"error": "denied"}))

    assert google.fetch_nearby_by_types(50.06, 19.93, 2000, ["museum"]) == []
    # 4xx is not retried
    assert len(session.calls_to(NEARBY_URL_V1)) == 1

    session.routes[NEARBY_URL_V1] = [nearby_response(google_place("p1", "MNK", ["museum"], 50.06, 19.93))]
    assert len(google.fetch_nearby_by_types(50.06, 19.93, 2000, ["museum"])) == 1


def test_fetch_nearby_gives_up_after_max_attempts(google, session):
    session.add(NEARBY_URL_V1, FakeResponse(429, {}, headers={"Retry-After": "1"}))

    assert google.fetch_nearby_by_types(50.06, 19.93, 2000, ["cafe"]) == []
    assert len(session.calls_to(NEARBY_URL_V1)) == 3


def test_without_api_key_nothing_is_requested(session, cache):
    client = GooglePlacesClient(api_key="", cache=cache, session=session)

    assert client.fetch_nearby(50.0, 19.0) == []
    assert client.geocode_text("Kraków") is None
    assert client.get_place_details("p1") is None
    assert client.autocomplete("Wawel") == []
    assert session.calls == []


def test_fetch_nearby_by_preferred_categories_maps_and_limits(google, session):
    session.add(NEARBY_URL_V1, nearby_response(
        *[google_place(f"p{i}", f"Cafe {i}", ["cafe"], 50.0, 19.0) for i in range(5)]
    ))

    places = google.fetch_nearby_by_preferred_categories(50.0, 19.0, ["food"], radius=800, limit=2)

    assert [p["place_id"] for p in places] == ["p0", "p1"]
    body = session.calls_to(NEARBY_URL_V1)[0]["json"]
    assert body["includedTypes"] == sorted(["restaurant", "cafe", "bakery", "bar"])


def test_fetch_nearby_ranked_applies_quality_floor(google, session):
    session.add(NEARBY_URL_V1, nearby_response(
        google_place("low", "Low", ["museum"], 50.0, 19.0, rating=2.5, reviews=900),
        google_place("few", "Few", ["museum"], 50.0, 19.0, rating=4.9, reviews=3),
        google_place("b", "B", ["museum"], 50.0, 19.0, rating=4.5, reviews=100),
        google_place("a", "A", ["museum"], 50.0, 19.0, rating=4.5, reviews=700),
        google_place("top", "Top", ["museum"], 50.0, 19.0, rating=4.8, reviews=50),
    ))

    places = google.fetch_nearby_ranked(50.0, 19.0, ["museum"], min_rating=3.0, min_reviews=10)

    assert [p["place_id"] for p in places] == ["top", "a", "b"]


def test_geocode_text_uses_first_result(google, session):
    session.add(TEXT_SEARCH_URL, FakeResponse(200, {"results": [
        {"geometry": {"location": {"lat": 50.0647, "lng": 19.9450}}},
        {"geometry": {"location": {"lat": 1.0, "lng": 1.0}}},
    ]}))

    coords = google.geocode_text("Kraków")

    assert (coords.lat, coords.lon) == (50.0647, 19.9450)
    assert session.calls_to(TEXT_SEARCH_URL)[0]["params"]["query"] == "Kraków"


def test_geocode_text_without_results(google, session):
    session.add(TEXT_SEARCH_URL, FakeResponse(200, {"results": []}))
    assert google.geocode_text("Nowhere") is None


def test_get_place_details_normalizes_and_caches(google, session):
    session.add(DETAILS_URL, FakeResponse(200, {"status": "OK", "result": {
        "place_id": "p1",
        "name": "Wawel",
        "geometry": {"location": {"lat": 50.054, "lng": 19.935}},
        "types": ["tourist_attraction", "point_of_interest"],
        "rating": 4.8,
        "user_ratings_total": 50000,
        "formatted_address": "Wawel 5, Kraków",
        "website": "https://wawel.krakow.pl",
    }}))

    details = google.get_place_details("p1", language="en", session_token="tok")
    again = google.get_place_details("p1", language="en")

    assert details == again
    assert details["name"] == "Wawel"
    assert details["category_slug"] == "nature"
    assert details["meta"]["user_ratings_total"] == 50000
    assert details["meta"]["address"] == "Wawel 5, Kraków"
    calls = session.calls_to(DETAILS_URL)
    assert len(calls) == 1
    assert calls[0]["params"]["sessiontoken"] == "tok"


def test_get_place_details_not_ok_status(google, session):
    session.add(DETAILS_URL, FakeResponse(200, {"status": "NOT_FOUND"}))
    assert google.get_place_details("missing") is None


def test_autocomplete_returns_predictions(google, session):
    session.add(AUTOCOMPLETE_URL, FakeResponse(200, {"status": "OK", "predictions": [
        {
            "place_id": "p1",
            "description": "Wawel, Kraków, Poland",
            "structured_formatting": {"main_text": "Wawel", "secondary_text": "Kraków, Poland"},
            "types": ["tourist_attraction"],
        },
        {"description": "no id"},
    ]}))

    predictions = google.autocomplete("Waw", lat=50.06, lon=19.93, radius=5000, session_token="s1")

    assert predictions == [{
        "google_place_id": "p1",
        "description": "Wawel, Kraków, Poland",
        "main_text": "Wawel",
        "secondary_text": "Kraków, Poland",
        "types": ["tourist_attraction"],
    }]
    params = session.calls_to(AUTOCOMPLETE_URL)[0]["params"]
    assert params["location"] == "50.06,19.93"
    assert params["radius"] == 5000


def test_autocomplete_zero_results_and_errors(google, session):
    session.add(AUTOCOMPLETE_URL, FakeResponse(200, {"status": "ZERO_RESULTS"}), FakeResponse(200, {"status": "REQUEST_DENIED"}))
    assert google.autocomplete("xyz") == []
    assert google.autocomplete("xyz") == []

import math

import pytest

from triptailor.agents.reasoner import HeuristicPlaceReasoner, extract_preferred_categories
from triptailor.schemas import Candidate, SuggestionContext


def _candidate(**overrides):
    fields = dict(source="internal_db", internal_place_id=1, name="MNK", category="museum",
                  rating=4.5, reviews_count=1000, lat=50.06, lon=19.93, distance_m=500)
    fields.update(overrides)
    return Candidate(**fields)


CONTEXT = SuggestionContext(radius_m=5000)


def test_score_blends_rating_popularity_distance_and_boost():
    [result] = HeuristicPlaceReasoner().rank_and_explain([_candidate()], {"museum": 2.0}, CONTEXT)

    expected = 0.45 * 0.9 + 0.30 * (math.log10(1000) / 5) + 0.25 * (1 - 500 / 5000) + 0.12
    assert result.score == pytest.approx(expected)
    assert result.estimated_visit_minutes == 120


def test_unknown_values_use_neutral_defaults():
    candidate = _candidate(rating=None, reviews_count=None, distance_m=None, category="food")
    [result] = HeuristicPlaceReasoner().rank_and_explain([candidate], {}, CONTEXT)

    assert result.score == pytest.approx(0.45 * 0.35 + 0.30 * 0.4 + 0.25 * 0.5)
    assert result.reason == "MNK: Fits your trip context."
    assert result.estimated_visit_minutes == 75


def test_score_is_clamped():
    candidate = _candidate(rating=5.0, reviews_count=10 ** 7, distance_m=0)
    [result] = HeuristicPlaceReasoner().rank_and_explain([candidate], {"museum": 1}, CONTEXT)
    assert result.score == 1.0

    far = _candidate(distance_m=50_000)
    [result] = HeuristicPlaceReasoner().rank_and_explain([far], {}, CONTEXT)
    assert 0.0 <= result.score <= 1.0


def test_results_are_index_aligned():
    candidates = [_candidate(name="A", category="nature"), _candidate(name="B", category="nightlife"), _candidate(name="C", category="other")]
    results = HeuristicPlaceReasoner().rank_and_explain(candidates, {}, CONTEXT)

    assert [r.reason.split(":")[0] for r in results] == ["A", "B", "C"]
    assert [r.estimated_visit_minutes for r in results] == [90, 120, 60]


def test_reason_mentions_distance_and_popularity():
    [result] = HeuristicPlaceReasoner().rank_and_explain([_candidate()], {"museum": 2.0}, CONTEXT)
    assert result.reason == "MNK: Matches your preferences. Close to your current area (500m). Highly popular (1000)."


def test_reason_is_localized_for_polish():
    [result] = HeuristicPlaceReasoner().rank_and_explain([_candidate()], {"museum": 2.0}, CONTEXT, locale="pl")
    assert result.reason.startswith("MNK: Pasuje do Twoich preferencji.")


def test_unknown_locale_falls_back_to_english():
    [result] = HeuristicPlaceReasoner().rank_and_explain([_candidate()], {}, CONTEXT, locale="xx")
    assert "Fits your trip context" in result.reason


def test_missing_radius_defaults_to_5000():
    [result] = HeuristicPlaceReasoner().rank_and_explain([_candidate(distance_m=2500)], {}, SuggestionContext(radius_m=0))
    expected = 0.45 * 0.9 + 0.30 * 0.6 + 0.25 * 0.5
    assert result.score == pytest.approx(expected)


@pytest.mark.parametrize("preferences, expected", [
    ({"museum": 1.2, "food": 0, "hotel": 3}, ["museum"]),
    ({"categories": ["Museum", "food", "museum"]}, ["museum", "food"]),
    ({"preferred_categories": [{"key": "nature"}, {"name": "x"}, 5]}, ["nature"]),
    ({"categories": "museum"}, []),
    ({}, []),
])
def test_extract_preferred_categories_shapes(preferences, expected):
    assert extract_preferred_categories(preferences) == expected

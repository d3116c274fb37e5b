"""
Tests for the catalogue-backed sample itinerary retriever.
"""

from datetime import datetime

import pytest

from itinerary_pipeline.data.catalogue import ACTIVITY_CATALOGUE
from itinerary_pipeline.data.schemas import Activity
from itinerary_pipeline.services.peak_hours import MANILA_TZ
from itinerary_pipeline.services.retriever import SampleItineraryRetriever

# 2024-03-06 09:00 is a Wednesday morning
FIXED_NOW = datetime(2024, 3, 6, 9, 0, tzinfo=MANILA_TZ)


def _activity(title, tags, peak_hours=""):
    return {
        "image": f"/images/{title}.jpg",
        "title": title,
        "time": "9:00 AM - 5:00 PM",
        "desc": title,
        "tags": tags,
        "peakHours": peak_hours,
    }


CATALOGUE = [
    _activity("Park", ["Nature & Scenery", "Outdoor-Friendly"]),
    _activity("Museum", ["Culture & Arts", "Indoor-Friendly"]),
    _activity("Market", ["Food & Culinary", "Indoor-Friendly"], "8 am - 10 am"),
    _activity("Cafe", ["Food & Culinary", "Nature & Scenery", "Indoor-Friendly"]),
    _activity("Gallery", ["Culture & Arts", "Indoor-Friendly"]),
]


def _retriever(catalogue=None):
    return SampleItineraryRetriever(catalogue or CATALOGUE, clock=lambda: FIXED_NOW)


def _titles(result):
    return [activity["title"] for activity in result["items"][0]["activities"]]


@pytest.mark.asyncio
async def test_interest_match_scores_and_filters():
    result = await _retriever().find_and_score_activities(
        "food and views", ["Food & Culinary", "Nature & Scenery"], "default", 1
    )

    # Market is in peak hours at 9 AM
    assert _titles(result) == ["Cafe", "Park"]
    scores = {a["title"]: a["relevanceScore"] for a in result["items"][0]["activities"]}
    assert scores == {"Cafe": 1.0, "Park": 0.5}
    assert all(a["isCurrentlyPeak"] is False for a in result["items"][0]["activities"])


@pytest.mark.asyncio
async def test_random_interest_keeps_everything_with_neutral_score():
    result = await _retriever().find_and_score_activities("anything", ["Random"], "default", 2)

    assert set(_titles(result)) == {"Park", "Museum", "Cafe", "Gallery"}
    assert {a["relevanceScore"] for a in result["items"][0]["activities"]} == {0.5}


@pytest.mark.asyncio
async def test_weather_filter_applies_with_enough_matches():
    result = await _retriever().find_and_score_activities("rainy day", [], "rainy", 2)

    assert "Park" not in _titles(result)
    assert set(_titles(result)) == {"Museum", "Cafe", "Gallery"}


@pytest.mark.asyncio
async def test_weather_filter_skipped_with_too_few_matches():
    result = await _retriever().find_and_score_activities("sunny day", [], "clear", 2)

    assert set(_titles(result)) == {"Park", "Museum", "Cafe", "Gallery"}


@pytest.mark.asyncio
async def test_all_peak_falls_back_to_every_match():
    catalogue = [_activity("Busy", ["Food & Culinary"], "8 am - 10 am")]

    result = await _retriever(catalogue).find_and_score_activities(
        "food", ["Food & Culinary"], "default", 1
    )

    assert _titles(result) == ["Busy"]


@pytest.mark.asyncio
async def test_selection_is_capped_by_duration():
    catalogue = [_activity(f"Spot {i}", ["Nature & Scenery"]) for i in range(30)]

    one_day = await _retriever(catalogue).find_and_score_activities("x", [], "default", 1)
    long_trip = await _retriever(catalogue).find_and_score_activities("x", [], "default", 5)

    assert len(_titles(one_day)) == 6
    assert len(_titles(long_trip)) == 18


@pytest.mark.asyncio
async def test_search_metadata():
    result = await _retriever().find_and_score_activities(
        "culture", ["Culture & Arts"], "cloudy", 1
    )

    metadata = result["searchMetadata"]
    assert metadata["allowedActivities"] == result["items"][0]["activities"]
    assert metadata["expandedQueries"] == ["culture", "Culture & Arts"]
    assert metadata["weatherCondition"] == "cloudy"
    assert metadata["generatedAt"] == FIXED_NOW.isoformat()


@pytest.mark.asyncio
async def test_catalogue_is_not_mutated():
    before = [dict(activity) for activity in CATALOGUE]

    await _retriever().find_and_score_activities("x", ["Culture & Arts"], "rainy", 1)

    assert CATALOGUE == before


def test_builtin_catalogue_entries_are_valid_activities():
    titles = [activity["title"] for activity in ACTIVITY_CATALOGUE]

    assert len(titles) == len(set(titles))
    for activity in ACTIVITY_CATALOGUE:
        Activity.model_validate(activity)

"""
Unit tests for the retrieval strategist stage.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from itinerary_pipeline.agents.retrieval_strategist import (
    RetrievalStrategistAgent,
    extract_candidates,
)
from itinerary_pipeline.data.models import (
    ContextPayload,
    RequestPreferences,
    SessionStatus,
    WeatherSnapshot,
)
from itinerary_pipeline.data.session_store import FATAL_STAGE
from itinerary_pipeline.utils.error_handling import RetrievalNotConfiguredError


def _retriever(result=None, **kwargs):
    retriever = MagicMock()
    retriever.find_and_score_activities = AsyncMock(return_value=result, **kwargs)
    return retriever


def test_extract_candidates_uses_relevance_scores(sample_itinerary):
    candidates = extract_candidates(sample_itinerary)

    assert [c.title for c in candidates] == [
        "Burnham Park",
        "Bencab Museum",
        "Baguio Night Market",
    ]
    assert [c.score for c in candidates] == [1.0, 0.5, 0.5]
    assert candidates[1].tags == ["Culture & Arts", "Indoor-Friendly"]


def test_extract_candidates_falls_back_to_position():
    """Test that activities without a numeric score are ranked by position."""
    sample = {
        "searchMetadata": {
            "allowedActivities": [{"title": "A"}, {"title": "B", "relevanceScore": "high"}]
        }
    }

    candidates = extract_candidates(sample)

    assert [c.score for c in candidates] == [1.0, 0.5]


def test_extract_candidates_without_metadata():
    assert extract_candidates({"items": []}) == []


@pytest.mark.asyncio
async def test_execute_writes_retrieval(store, sample_itinerary):
    session = store.create(
        "user-1",
        "weekend in Baguio",
        RequestPreferences(interests=["Nature & Scenery"], duration_days=2),
    )
    session = store.set_context(
        session.id,
        ContextPayload(
            weather=WeatherSnapshot(
                description="light rain",
                temperature_c=17,
                raw={"weather": [{"id": 500}], "main": {"temp": 17}},
            ),
            peak_hours_context="peak",
        ),
    )
    retriever = _retriever(sample_itinerary)
    agent = RetrievalStrategistAgent(store, retriever)

    updated = await agent.execute(session)

    retriever.find_and_score_activities.assert_awaited_once_with(
        "weekend in Baguio", ["Nature & Scenery"], "rainy", 2
    )
    assert len(updated.retrieval.candidates) == 3
    assert updated.retrieval.coverage_score == 3
    assert updated.retrieval.expanded_queries == ["weekend in Baguio", "Nature & Scenery"]
    assert updated.retrieval.metadata["sampleItinerary"] == sample_itinerary
    assert updated.status == SessionStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_missing_weather_resolves_to_default(store, sample_itinerary):
    session = store.create("user-1", "prompt")
    retriever = _retriever(sample_itinerary)

    await RetrievalStrategistAgent(store, retriever).execute(session)

    assert retriever.find_and_score_activities.await_args.args[2] == "default"


@pytest.mark.asyncio
async def test_unconfigured_retriever_fails_stage(store):
    session = store.create("user-1", "prompt")
    agent = RetrievalStrategistAgent(store, None)

    with pytest.raises(RetrievalNotConfiguredError):
        await agent.execute(session)

    stored = store.require(session.id)
    assert stored.status == SessionStatus.FAILED
    assert stored.retrieval is None
    assert stored.errors[-1].agent == "retrieval-strategist"
    assert stored.errors[-1].stage == FATAL_STAGE


@pytest.mark.asyncio
async def test_retriever_failure_is_recorded_and_raised(store):
    session = store.create("user-1", "prompt")
    agent = RetrievalStrategistAgent(
        store, _retriever(side_effect=RuntimeError("index unavailable"))
    )

    with pytest.raises(RuntimeError, match="index unavailable"):
        await agent.execute(session)

    stored = store.require(session.id)
    assert stored.errors[-1].message == "Failed to retrieve and score activities"
    assert stored.errors[-1].detail == {
        "type": "RuntimeError",
        "message": "index unavailable",
    }

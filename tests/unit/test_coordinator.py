"""
Tests for the pipeline coordinator.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from itinerary_pipeline.agents import (
    ConciergeAgent,
    ContextScoutAgent,
    ItineraryComposerAgent,
    RetrievalStrategistAgent,
)
from itinerary_pipeline.data.models import SessionStatus, TrafficLevel, TrafficReading
from itinerary_pipeline.orchestration.coordinator import PipelineCoordinator
from itinerary_pipeline.services.interfaces import (
    AuthSession,
    CreditBalance,
    IncomingRequest,
)
from itinerary_pipeline.utils.error_handling import (
    InsufficientCreditsError,
    SessionBusyError,
    UnknownStageFailure,
    UpstreamTimeout,
    ValidationError,
)

REQUEST_BODY = {
    "prompt": "A weekend of food and parks",
    "interests": ["Nature & Scenery", "Food & Culinary"],
    "duration": "2 days",
    "budget": "₱1,000 - ₱3,000",
    "pax": "2",
    "weatherData": {
        "weather": [{"id": 800, "description": "clear sky"}],
        "main": {"temp": 21.5},
    },
}


def _auth_provider():
    provider = MagicMock()
    provider.resolve_session = AsyncMock(return_value=AuthSession(user_id="user-1"))
    return provider


def _credit_service(remaining=5):
    service = MagicMock()
    service.get_balance = AsyncMock(
        return_value=CreditBalance(user_id="user-1", remaining_today=remaining, daily_limit=5)
    )
    service.consume = AsyncMock()
    return service


def _weather_provider(delay: float = 0):
    async def get_weather(payload):
        if delay:
            await asyncio.sleep(delay)
        return payload.get("weatherData")

    provider = MagicMock()
    provider.get_weather = get_weather
    return provider


def _traffic_provider():
    provider = MagicMock()
    provider.get_traffic_at = AsyncMock(
        return_value=TrafficReading(traffic_level=TrafficLevel.LOW, recommendation_score=85)
    )
    return provider


def _retriever(sample_itinerary, **kwargs):
    retriever = MagicMock()
    retriever.find_and_score_activities = AsyncMock(return_value=sample_itinerary, **kwargs)
    return retriever


def _coordinator(
    store,
    engine,
    sample_itinerary,
    *,
    credits=5,
    retriever=None,
    weather_delay=0.0,
    timeout_seconds=None,
):
    concierge = ConciergeAgent(store, _auth_provider(), _credit_service(credits))
    coordinator = PipelineCoordinator(
        store=store,
        concierge=concierge,
        context_scout=ContextScoutAgent(
            store, _weather_provider(weather_delay), _traffic_provider()
        ),
        retrieval_strategist=RetrievalStrategistAgent(
            store, retriever or _retriever(sample_itinerary)
        ),
        itinerary_composer=ItineraryComposerAgent(store, engine),
        timeout_seconds=timeout_seconds,
    )
    return coordinator


def _request(body=None) -> IncomingRequest:
    return IncomingRequest(body=body if body is not None else dict(REQUEST_BODY))


@pytest.mark.asyncio
async def test_handle_request_completes_session(store, engine, sample_itinerary):
    """Test a full run through every stage."""
    coordinator = _coordinator(store, engine, sample_itinerary)

    session = await coordinator.handle_request(_request())

    assert session.status == SessionStatus.COMPLETED
    assert session.preferences.duration_days == 2
    assert session.preferences.interests == ["Nature & Scenery", "Food & Culinary"]
    assert session.context.weather.description == "clear sky"
    assert len(session.context.traffic) == 3
    assert session.retrieval.metadata["sampleItinerary"] == sample_itinerary
    assert session.errors == []

    periods = [item["period"] for item in session.itinerary.json_["items"]]
    assert periods == [
        "Day 1 - Morning",
        "Day 1 - Afternoon",
        "Day 1 - Evening",
        "Day 2 - Morning",
        "Day 2 - Afternoon",
        "Day 2 - Evening",
    ]
    assert store.require(session.id).status == SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_stage_failure_fails_session_once(store, engine, sample_itinerary):
    """Test that a stage error is recorded by the stage and once by the coordinator."""
    retriever = _retriever(sample_itinerary, side_effect=RuntimeError("index down"))
    coordinator = _coordinator(store, engine, sample_itinerary, retriever=retriever)

    with pytest.raises(RuntimeError, match="index down"):
        await coordinator.handle_request(_request())

    (session_id,) = list(store._sessions)
    stored = store.require(session_id)
    assert stored.status == SessionStatus.FAILED
    assert stored.itinerary is None
    assert [error.agent for error in stored.errors] == ["retrieval-strategist", "concierge"]
    assert stored.errors[-1].message == "index down"


@pytest.mark.asyncio
async def test_no_credits_creates_no_session(store, engine, sample_itinerary):
    coordinator = _coordinator(store, engine, sample_itinerary, credits=0)

    with pytest.raises(InsufficientCreditsError):
        await coordinator.handle_request(_request())
    assert len(store) == 0


@pytest.mark.asyncio
async def test_invalid_request_creates_no_session(store, engine, sample_itinerary):
    coordinator = _coordinator(store, engine, sample_itinerary)

    with pytest.raises(ValidationError):
        await coordinator.handle_request(_request({"interests": ["Random"]}))
    assert len(store) == 0


@pytest.mark.asyncio
async def test_run_deadline_raises_upstream_timeout(store, engine, sample_itinerary):
    """Test that exceeding the run deadline fails the session with a timeout."""
    coordinator = _coordinator(
        store, engine, sample_itinerary, weather_delay=1.0, timeout_seconds=0.05
    )

    with pytest.raises(UpstreamTimeout):
        await coordinator.handle_request(_request())

    (session_id,) = list(store._sessions)
    stored = store.require(session_id)
    assert stored.status == SessionStatus.FAILED
    assert stored.context is None
    assert "deadline" in stored.errors[-1].message


@pytest.mark.asyncio
async def test_stage_timeout_is_reraised_unchanged(store, engine, sample_itinerary):
    """Test that a stage's own TimeoutError is not reported as the run deadline."""
    original = TimeoutError("retrieval backend timed out")
    retriever = _retriever(sample_itinerary, side_effect=original)
    coordinator = _coordinator(
        store, engine, sample_itinerary, retriever=retriever, timeout_seconds=30
    )

    with pytest.raises(TimeoutError) as exc_info:
        await coordinator.handle_request(_request())

    assert exc_info.value is original
    assert not isinstance(exc_info.value, UpstreamTimeout)
    (session_id,) = list(store._sessions)
    stored = store.require(session_id)
    assert stored.status == SessionStatus.FAILED
    assert stored.errors[-1].message == "retrieval backend timed out"


@pytest.mark.asyncio
async def test_composition_without_itinerary_fails_session(store, engine, sample_itinerary):
    coordinator = _coordinator(store, engine, sample_itinerary)
    coordinator.itinerary_composer.execute = AsyncMock(side_effect=lambda session: session)

    with pytest.raises(UnknownStageFailure):
        await coordinator.handle_request(_request())

    (session_id,) = list(store._sessions)
    stored = store.require(session_id)
    assert stored.status == SessionStatus.FAILED
    assert stored.errors[-1].message == "Composition finished without a completed itinerary"


@pytest.mark.asyncio
async def test_concurrent_run_for_same_session_is_refused(store, engine, sample_itinerary):
    coordinator = _coordinator(store, engine, sample_itinerary)
    session = store.create("user-1", "prompt", session_id="itin-busy")
    init = MagicMock(request_session=session, request_body={})
    coordinator.concierge.initialize = AsyncMock(return_value=init)

    with store.lease("itin-busy"):
        with pytest.raises(SessionBusyError):
            await coordinator.handle_request(_request())

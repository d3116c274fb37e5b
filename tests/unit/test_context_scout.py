"""
Unit tests for the context scout stage.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from itinerary_pipeline.agents.context_scout import (
    ContextScoutAgent,
    build_weather_snapshot,
)
from itinerary_pipeline.data.models import (
    ContextPayload,
    SessionStatus,
    TrafficLevel,
    TrafficReading,
)
from itinerary_pipeline.data.session_store import FATAL_STAGE
from itinerary_pipeline.services.peak_hours import MANILA_TZ
from itinerary_pipeline.utils.error_handling import SessionWriteConflictError

RAW_WEATHER = {
    "weather": [{"id": 500, "main": "Rain", "description": "light rain"}],
    "main": {"temp": 17.5},
}
LOCATIONS = ["Burnham Park", "Mines View Park", "Baguio Cathedral"]
FIXED_NOW = datetime(2024, 3, 4, 9, 30, tzinfo=MANILA_TZ)


def _weather_provider(raw=RAW_WEATHER):
    provider = MagicMock()
    provider.get_weather = AsyncMock(return_value=raw)
    return provider


def _traffic_provider(**kwargs):
    provider = MagicMock()
    provider.get_traffic_at = AsyncMock(**kwargs)
    return provider


def _scout(store, weather_provider, traffic_provider=None, **kwargs):
    return ContextScoutAgent(
        store,
        weather_provider,
        traffic_provider,
        traffic_locations=kwargs.pop("traffic_locations", LOCATIONS),
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


def test_build_weather_snapshot():
    snapshot = build_weather_snapshot(RAW_WEATHER)

    assert snapshot.description == "light rain"
    assert snapshot.temperature_c == 17.5
    assert snapshot.raw == RAW_WEATHER
    assert build_weather_snapshot(None) is None


def test_build_weather_snapshot_tolerates_partial_payload():
    snapshot = build_weather_snapshot({"main": "warm"})

    assert snapshot.description is None
    assert snapshot.temperature_c is None


@pytest.mark.asyncio
async def test_execute_writes_full_context(store):
    """Test that weather, traffic and peak hours all land on the session."""
    session = store.create("user-1", "prompt")
    traffic = _traffic_provider(
        return_value=TrafficReading(
            traffic_level=TrafficLevel.LOW, recommendation_score=80, raw={"congestionScore": 25}
        )
    )
    scout = _scout(store, _weather_provider(), traffic)

    updated = await scout.execute(session, {"prompt": "prompt", "weatherData": RAW_WEATHER})

    assert updated.status == SessionStatus.IN_PROGRESS
    assert updated.context.weather.description == "light rain"
    assert [snapshot.area for snapshot in updated.context.traffic] == LOCATIONS
    assert all(s.traffic_level == TrafficLevel.LOW for s in updated.context.traffic)
    assert updated.context.traffic[0].recommendation_score == 80
    assert "Current time: 9:30 AM on Monday" in updated.context.peak_hours_context
    assert traffic.get_traffic_at.await_count == 3


@pytest.mark.asyncio
async def test_traffic_fan_out_is_capped(store):
    session = store.create("user-1", "prompt")
    traffic = _traffic_provider(return_value=None)
    scout = _scout(store, _weather_provider(), traffic, max_traffic_locations=2)

    updated = await scout.execute(session, {})

    assert [snapshot.area for snapshot in updated.context.traffic] == LOCATIONS[:2]
    assert traffic.get_traffic_at.await_count == 2


@pytest.mark.asyncio
async def test_unresolvable_locations_are_skipped(store):
    session = store.create("user-1", "prompt")
    traffic = _traffic_provider(return_value=None)
    scout = _scout(
        store,
        _weather_provider(),
        traffic,
        traffic_locations=["Burnham Park", "Atlantis"],
    )

    updated = await scout.execute(session, {})

    assert [snapshot.area for snapshot in updated.context.traffic] == ["Burnham Park"]


@pytest.mark.asyncio
async def test_missing_traffic_data_is_unknown(store):
    session = store.create("user-1", "prompt")
    scout = _scout(store, _weather_provider(), _traffic_provider(return_value=None))

    updated = await scout.execute(session, {})

    for snapshot in updated.context.traffic:
        assert snapshot.traffic_level == TrafficLevel.UNKNOWN
        assert snapshot.raw is None


@pytest.mark.asyncio
async def test_failed_lookups_degrade_to_fallbacks(store):
    """Test that provider failures never fail the stage."""
    session = store.create("user-1", "prompt")
    weather = MagicMock()
    weather.get_weather = AsyncMock(side_effect=RuntimeError("weather down"))
    traffic = _traffic_provider(side_effect=ConnectionError("tomtom down"))
    scout = _scout(store, weather, traffic)

    updated = await scout.execute(session, {})

    assert updated.context.weather is None
    assert len(updated.context.traffic) == 3
    for snapshot in updated.context.traffic:
        assert snapshot.traffic_level == TrafficLevel.UNKNOWN
        assert snapshot.raw == {"error": "tomtom down"}
    assert updated.errors == []


@pytest.mark.asyncio
async def test_one_failed_location_does_not_affect_others(store):
    session = store.create("user-1", "prompt")
    reading = TrafficReading(traffic_level=TrafficLevel.MODERATE, recommendation_score=50)
    traffic = _traffic_provider(side_effect=[reading, RuntimeError("timeout"), reading])
    scout = _scout(store, _weather_provider(), traffic)

    updated = await scout.execute(session, {})

    levels = [snapshot.traffic_level for snapshot in updated.context.traffic]
    assert levels.count(TrafficLevel.MODERATE) == 2
    assert levels.count(TrafficLevel.UNKNOWN) == 1


@pytest.mark.asyncio
async def test_no_traffic_provider_means_no_traffic(store):
    session = store.create("user-1", "prompt")
    scout = _scout(store, _weather_provider())

    updated = await scout.execute(session, {})

    assert updated.context.traffic == []


@pytest.mark.asyncio
async def test_non_dict_weather_is_ignored(store):
    session = store.create("user-1", "prompt")
    scout = _scout(store, _weather_provider(raw="sunny"))

    updated = await scout.execute(session, {})

    assert updated.context.weather is None


@pytest.mark.asyncio
async def test_store_failure_is_recorded_and_raised(store):
    """Test that a failure outside the lookups fails the stage."""
    session = store.create("user-1", "prompt")
    store.set_context(session.id, ContextPayload(peak_hours_context="earlier run"))
    scout = _scout(store, _weather_provider())

    with pytest.raises(SessionWriteConflictError):
        await scout.execute(session, {})

    stored = store.require(session.id)
    assert stored.status == SessionStatus.FAILED
    assert stored.errors[-1].agent == "context-scout"
    assert stored.errors[-1].stage == FATAL_STAGE
    assert stored.errors[-1].message == "Failed to gather environmental context"

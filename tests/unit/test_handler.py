"""Tests for the Lambda-style handler."""

from unittest.mock import MagicMock

import pytest

import handler as handler_module
from itinerary_pipeline.config import config


@pytest.fixture
def pipeline(store, engine, monkeypatch):
    """Process pipeline wired to the mock text model."""
    monkeypatch.setattr(config.api, "tomtom_api_key", None)
    pipeline = handler_module.build_pipeline(store=store, engine=engine)
    monkeypatch.setattr(handler_module, "_pipeline", pipeline)
    return pipeline


def _generate_event(**overrides):
    event = {
        "action": "generate_itinerary",
        "userId": "USER#42",
        "prompt": "One relaxed day in Baguio",
        "interests": ["Nature & Scenery"],
        "duration": "1 day",
        "weatherData": {"weather": [{"id": 800, "description": "clear sky"}], "main": {"temp": 21.5}},
    }
    event.update(overrides)
    return event


def test_route_generate_from_top_level_fields():
    action, params = handler_module.route_event(_generate_event())

    assert action == "generate_itinerary"
    assert params["user_id"] == "42"
    assert params["body"]["prompt"] == "One relaxed day in Baguio"
    assert params["body"]["duration"] == "1 day"
    assert params["headers"] == {}
    assert params["deep"] is False


def test_route_prefers_explicit_body():
    action, params = handler_module.route_event(
        {"action": "generate_itinerary", "body": '{"prompt": "hi"}', "prompt": "ignored"}
    )

    assert params["body"] == '{"prompt": "hi"}'
    assert "user_id" not in params


def test_route_unknown_action():
    action, params = handler_module.route_event({})

    assert action == "unknown"


def test_extract_user_id():
    assert handler_module._extract_user_id("USER#123") == "123"
    assert handler_module._extract_user_id("123") == "123"


def test_handlers_registered():
    assert set(handler_module._HANDLERS) == {
        "generate_itinerary",
        "engine_health",
        "engine_metrics",
        "get_session",
    }


@pytest.mark.asyncio
async def test_unknown_action_response():
    response = await handler_module.async_handler({"action": "plan_trip"})

    assert response == {"status": "error", "error": "Unknown action: plan_trip"}


def test_sync_handler_entry_point():
    assert handler_module.handler({"action": "nope"})["status"] == "error"


@pytest.mark.asyncio
async def test_generate_itinerary(pipeline):
    """Test a full generation through the handler."""
    response = await handler_module.async_handler(_generate_event())

    assert response["status"] == "ok"
    assert response["data"]["title"] == "Baguio Highlights"
    assert [item["period"] for item in response["data"]["items"]] == [
        "Day 1 - Morning",
        "Day 1 - Afternoon",
        "Day 1 - Evening",
    ]

    usage = pipeline.concierge.credit_service.get_usage("42")
    assert usage["used"] == 1


@pytest.mark.asyncio
async def test_get_session_is_scoped_to_owner(pipeline):
    generated = await handler_module.async_handler(_generate_event())
    session_id = generated["sessionId"]

    own = await handler_module.async_handler(
        {"action": "get_session", "userId": "USER#42", "sessionId": session_id}
    )
    other = await handler_module.async_handler(
        {"action": "get_session", "userId": "USER#7", "sessionId": session_id}
    )
    missing = await handler_module.async_handler({"action": "get_session", "userId": "USER#42"})

    assert own["status"] == "ok"
    assert own["data"]["status"] == "completed"
    assert own["data"]["itinerary"]["json"]["title"] == "Baguio Highlights"
    assert other["status"] == "error"
    assert missing == {"status": "error", "error": "No sessionId provided"}


@pytest.mark.asyncio
async def test_validation_error_response(pipeline):
    event = _generate_event()
    del event["prompt"]

    response = await handler_module.async_handler(event)

    assert response["status"] == "error"
    assert response["errorType"] == "validation"
    assert response["retryable"] is False
    assert "prompt" in response["fieldErrors"]
    assert len(pipeline.store) == 0


@pytest.mark.asyncio
async def test_unauthenticated_response(pipeline):
    event = _generate_event()
    del event["userId"]

    response = await handler_module.async_handler(event)

    assert response["errorType"] == "auth"
    assert len(pipeline.store) == 0


@pytest.mark.asyncio
async def test_daily_limit_response(pipeline):
    """Test that the sixth request of the day is refused."""
    for _ in range(pipeline.concierge.credit_service.daily_limit):
        assert (await handler_module.async_handler(_generate_event()))["status"] == "ok"

    response = await handler_module.async_handler(_generate_event())

    assert response["errorType"] == "insufficient_credits"
    assert response["required"] == 1
    assert response["remaining"] == 0


@pytest.mark.asyncio
async def test_engine_metrics_and_health(pipeline):
    await handler_module.async_handler(_generate_event())

    metrics = await handler_module.async_handler({"action": "engine_metrics"})
    health = await handler_module.async_handler({"action": "engine_health"})
    deep = await handler_module.async_handler({"action": "engine_health", "deep": True})

    assert metrics["data"]["total_requests"] == 1
    assert metrics["data"]["first_pass_success"] == 1
    assert health["data"]["status"] == "healthy"
    assert deep["data"]["status"] == "healthy"


def test_get_pipeline_initializes_once(monkeypatch):
    """Test that configuration and logging are set up on the first build only."""
    built = MagicMock()
    load_config = MagicMock(return_value=config)
    configure_logging = MagicMock()
    monkeypatch.setattr(handler_module, "_pipeline", None)
    monkeypatch.setattr(handler_module, "initialize_config", load_config)
    monkeypatch.setattr(handler_module, "setup_logging", configure_logging)
    monkeypatch.setattr(handler_module, "build_pipeline", MagicMock(return_value=built))

    assert handler_module.get_pipeline() is built
    assert handler_module.get_pipeline() is built

    load_config.assert_called_once_with()
    configure_logging.assert_called_once_with(config.system.log_level)

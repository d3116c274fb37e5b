"""
Lambda-style event handler for the itinerary pipeline.

Routes events by their "action" field: itinerary generation, engine health,
engine metrics and session lookup.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from itinerary_pipeline.agents.concierge import ConciergeAgent
from itinerary_pipeline.agents.context_scout import ContextScoutAgent
from itinerary_pipeline.agents.itinerary_composer import ItineraryComposerAgent
from itinerary_pipeline.agents.retrieval_strategist import RetrievalStrategistAgent
from itinerary_pipeline.config import initialize_config
from itinerary_pipeline.data.session_store import SessionStore
from itinerary_pipeline.generation.engine import GuaranteedJsonEngine
from itinerary_pipeline.orchestration.coordinator import PipelineCoordinator
from itinerary_pipeline.services.auth import EventAuthProvider
from itinerary_pipeline.services.credit_service import DailyCreditService
from itinerary_pipeline.services.interfaces import IncomingRequest
from itinerary_pipeline.services.retriever import SampleItineraryRetriever
from itinerary_pipeline.services.traffic import TomTomTrafficProvider
from itinerary_pipeline.services.weather import RequestWeatherProvider
from itinerary_pipeline.utils.error_handling import (
    InsufficientCreditsError,
    PipelineError,
    ValidationError,
    classify_error,
)
from itinerary_pipeline.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class Pipeline:
    """Process-wide pipeline wiring."""

    store: SessionStore
    engine: GuaranteedJsonEngine
    concierge: ConciergeAgent
    coordinator: PipelineCoordinator


_pipeline: Pipeline | None = None


def build_pipeline(
    store: SessionStore | None = None,
    engine: GuaranteedJsonEngine | None = None,
) -> Pipeline:
    """Wire the default adapters into a coordinator."""
    store = store if store is not None else SessionStore()
    engine = engine or GuaranteedJsonEngine()
    concierge = ConciergeAgent(store, EventAuthProvider(), DailyCreditService())
    coordinator = PipelineCoordinator(
        store=store,
        concierge=concierge,
        context_scout=ContextScoutAgent(
            store, RequestWeatherProvider(), TomTomTrafficProvider()
        ),
        retrieval_strategist=RetrievalStrategistAgent(store, SampleItineraryRetriever()),
        itinerary_composer=ItineraryComposerAgent(store, engine),
    )
    return Pipeline(store=store, engine=engine, concierge=concierge, coordinator=coordinator)


def get_pipeline() -> Pipeline:
    """Build the pipeline on first use, loading configuration and logging."""
    global _pipeline
    if _pipeline is None:
        settings = initialize_config()
        setup_logging(settings.system.log_level)
        _pipeline = build_pipeline()
    return _pipeline


def _extract_user_id(user_id_raw: str) -> str:
    """Extract user ID from USER#123 format."""
    if user_id_raw.startswith("USER#"):
        return user_id_raw[5:]
    return user_id_raw


def route_event(event: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Parse event and extract action + parameters."""
    action = event.get("action", "unknown")
    params: dict[str, Any] = {}

    user_id_raw = event.get("userId", "")
    if user_id_raw:
        params["user_id"] = _extract_user_id(user_id_raw)

    body = event.get("body")
    if body is None:
        body = {
            key: event[key]
            for key in ("prompt", "interests", "duration", "budget", "pax", "weatherData")
            if key in event
        }
    params["body"] = body
    params["headers"] = event.get("headers") or {}
    params["session_id"] = event.get("sessionId")
    params["deep"] = bool(event.get("deep", False))

    return action, params


def _error_response(error: Exception) -> dict[str, Any]:
    details = classify_error(error)
    response: dict[str, Any] = {
        "status": "error",
        "error": str(error),
        "errorType": details.type,
        "retryable": details.retryable,
    }
    if isinstance(error, ValidationError):
        response["fieldErrors"] = error.field_errors
    if isinstance(error, InsufficientCreditsError):
        response["required"] = error.required
        response["remaining"] = error.remaining
    return response


async def _handle_generate_itinerary(params: dict[str, Any]) -> dict[str, Any]:
    pipeline = get_pipeline()
    request = IncomingRequest(
        body=params["body"],
        headers=params["headers"],
        user_id=params.get("user_id"),
    )
    session = await pipeline.coordinator.handle_request(request)
    await pipeline.concierge.consume_credit(session)

    return {
        "status": "ok",
        "sessionId": session.id,
        "data": session.itinerary.json_ if session.itinerary else None,
    }


async def _handle_engine_health(params: dict[str, Any]) -> dict[str, Any]:
    engine = get_pipeline().engine
    if params.get("deep"):
        return {"status": "ok", "data": await engine.deep_health_check()}
    return {"status": "ok", "data": engine.health_check()}


async def _handle_engine_metrics(params: dict[str, Any]) -> dict[str, Any]:
    return {"status": "ok", "data": get_pipeline().engine.get_metrics()}


async def _handle_get_session(params: dict[str, Any]) -> dict[str, Any]:
    session_id = params.get("session_id")
    if not session_id:
        return {"status": "error", "error": "No sessionId provided"}

    session = get_pipeline().store.get(session_id)
    if session is None or session.user_id != params.get("user_id"):
        return {"status": "error", "error": f"Session not found: {session_id}"}
    return {"status": "ok", "data": session.model_dump(mode="json", by_alias=True)}


# Action handlers map
_HANDLERS = {
    "generate_itinerary": _handle_generate_itinerary,
    "engine_health": _handle_engine_health,
    "engine_metrics": _handle_engine_metrics,
    "get_session": _handle_get_session,
}


async def async_handler(event: dict[str, Any]) -> dict[str, Any]:
    """Main async handler."""
    action, params = route_event(event)

    handler_fn = _HANDLERS.get(action)
    if not handler_fn:
        return {"status": "error", "error": f"Unknown action: {action}"}

    try:
        return await handler_fn(params)
    except PipelineError as e:
        logger.warning(f"Pipeline error handling {action}: {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error handling {action}: {e}")
        return _error_response(e)


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Lambda entry point (sync wrapper)."""
    return asyncio.run(async_handler(event))

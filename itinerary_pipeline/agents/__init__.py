"""
Agent modules for the itinerary pipeline.

Each agent implements one pipeline stage and records its own failures on the
session before re-raising.
"""

from itinerary_pipeline.agents.base import (
    AgentConfig,
    BaseAgent,
    InvalidConfigurationError,
)
from itinerary_pipeline.agents.concierge import (
    ConciergeAgent,
    ConciergeInitializeResult,
    ItineraryRequest,
)
from itinerary_pipeline.agents.context_scout import ContextScoutAgent
from itinerary_pipeline.agents.itinerary_composer import ItineraryComposerAgent
from itinerary_pipeline.agents.retrieval_strategist import RetrievalStrategistAgent

__all__ = [
    "AgentConfig",
    "BaseAgent",
    "ConciergeAgent",
    "ConciergeInitializeResult",
    "ContextScoutAgent",
    "InvalidConfigurationError",
    "ItineraryComposerAgent",
    "ItineraryRequest",
    "RetrievalStrategistAgent",
]

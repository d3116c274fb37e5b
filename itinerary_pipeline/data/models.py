"""
Data models for the itinerary pipeline.

This module defines the request session record that flows through the
pipeline stages, together with the context, retrieval and itinerary payloads
each stage writes onto it.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from itinerary_pipeline.utils.helpers import utc_now


class SessionStatus(str, Enum):
    """Lifecycle status of a request session."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        """Position in the forward-only lifecycle; terminal states share a rank."""
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


_STATUS_RANK = {
    SessionStatus.PENDING: 0,
    SessionStatus.IN_PROGRESS: 1,
    SessionStatus.COMPLETED: 2,
    SessionStatus.FAILED: 2,
}


class TrafficLevel(str, Enum):
    """Congestion level reported for a monitored location."""

    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    SEVERE = "SEVERE"
    UNKNOWN = "UNKNOWN"


class RequestPreferences(BaseModel):
    """Preferences captured from the request payload."""

    interests: list[str] = Field(default_factory=list)
    duration_days: int | None = None
    budget: str | None = None
    pax: str | None = None

    @field_validator("interests")
    @classmethod
    def dedupe_interests(cls, value: list[str]) -> list[str]:
        """Interests behave as a set; keep first occurrence order."""
        return list(dict.fromkeys(value))


class WeatherSnapshot(BaseModel):
    """Weather summary with the provider payload it was derived from."""

    description: str | None = None
    temperature_c: float | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class TrafficReading(BaseModel):
    """Result of a single traffic provider lookup."""

    traffic_level: TrafficLevel
    recommendation_score: float | None = None
    raw: Any = None


class TrafficSnapshot(BaseModel):
    """Traffic reading for one monitored area."""

    area: str
    traffic_level: TrafficLevel
    recommendation_score: float | None = None
    raw: Any = None


class ContextPayload(BaseModel):
    """Environmental context gathered by the context stage."""

    weather: WeatherSnapshot | None = None
    traffic: list[TrafficSnapshot] = Field(default_factory=list)
    peak_hours_context: str
    fetched_at: datetime = Field(default_factory=utc_now)


class RankedActivity(BaseModel):
    """Candidate activity selected by the retrieval stage."""

    title: str
    score: float
    tags: list[str] = Field(default_factory=list)
    traffic_analysis: Any = None
    raw: Any = None


class RetrievalResult(BaseModel):
    """Output of the retrieval stage."""

    candidates: list[RankedActivity] = Field(default_factory=list)
    expanded_queries: list[str] = Field(default_factory=list)
    coverage_score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)


class GeneratedItinerary(BaseModel):
    """Final itinerary written by the composition stage."""

    json_: dict[str, Any] = Field(alias="json")
    prompt: str
    raw_model_response: str

    model_config = {"populate_by_name": True}


class AgentError(BaseModel):
    """One entry of a session's append-only error log."""

    agent: str
    stage: str
    message: str
    detail: Any = None
    timestamp: datetime = Field(default_factory=utc_now)


class RequestSession(BaseModel):
    """The unit of work tracked from initialization to a terminal status."""

    id: str
    user_id: str
    prompt: str
    preferences: RequestPreferences = Field(default_factory=RequestPreferences)
    status: SessionStatus = SessionStatus.PENDING
    context: ContextPayload | None = None
    retrieval: RetrievalResult | None = None
    itinerary: GeneratedItinerary | None = None
    errors: list[AgentError] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

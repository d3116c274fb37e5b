"""
Collaborator interfaces consumed by the pipeline stages.

Each external dependency is reached through a narrow protocol so stages can
be wired to real adapters in production and to fakes in tests.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from itinerary_pipeline.data.models import TrafficReading


class IncomingRequest(BaseModel):
    """Raw request as received by the outer surface."""

    body: dict[str, Any] | str | bytes | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    user_id: str | None = None


class AuthSession(BaseModel):
    """Resolved caller identity."""

    user_id: str
    email: str | None = None


class CreditBalance(BaseModel):
    """Remaining usage allowance for a caller."""

    user_id: str
    remaining_today: int
    daily_limit: int
    used_today: int = 0
    resets_at: datetime | None = None


@runtime_checkable
class AuthProvider(Protocol):
    async def resolve_session(self, request: IncomingRequest) -> AuthSession | None: ...


@runtime_checkable
class CreditService(Protocol):
    async def get_balance(self, user_id: str) -> CreditBalance | None: ...

    async def consume(self, user_id: str, amount: int, service_tag: str) -> Any: ...


@runtime_checkable
class WeatherProvider(Protocol):
    async def get_weather(self, payload: dict[str, Any]) -> dict[str, Any] | None: ...


@runtime_checkable
class TrafficProvider(Protocol):
    async def get_traffic_at(self, lat: float, lon: float) -> TrafficReading | None: ...


@runtime_checkable
class TextModel(Protocol):
    async def generate(self, prompt: str, *, temperature: float) -> str: ...


@runtime_checkable
class ResponsePostProcessor(Protocol):
    def normalize(
        self,
        structured: dict[str, Any],
        prompt: str,
        duration_days: int | None,
        peak_hours_context: str,
    ) -> dict[str, Any]: ...


@runtime_checkable
class ActivityRetriever(Protocol):
    async def find_and_score_activities(
        self,
        prompt: str,
        interests: list[str],
        weather_condition: str,
        duration_days: int | None,
    ) -> dict[str, Any]: ...

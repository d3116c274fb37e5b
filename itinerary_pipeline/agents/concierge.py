"""
Concierge agent: request initialization and authorization.

Resolves the caller, validates the request payload, checks the caller's
remaining credits and only then creates the pending session. Any failure
here means no session exists.
"""

import json
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from itinerary_pipeline.agents.base import AgentConfig, BaseAgent
from itinerary_pipeline.config import config
from itinerary_pipeline.data.models import (
    AgentError,
    GeneratedItinerary,
    RequestPreferences,
    RequestSession,
    SessionStatus,
)
from itinerary_pipeline.data.session_store import FATAL_STAGE, SessionStore
from itinerary_pipeline.services.interfaces import (
    AuthProvider,
    AuthSession,
    CreditBalance,
    CreditService,
    IncomingRequest,
)
from itinerary_pipeline.utils.error_handling import (
    AuthenticationRequired,
    InsufficientCreditsError,
    ValidationError,
)
from itinerary_pipeline.utils.helpers import extract_first_int, safe_serialize

REQUIRED_CREDITS = 1

FiniteNumber = Annotated[float, Field(allow_inf_nan=False)]


class ItineraryRequest(BaseModel):
    """Request payload accepted by the pipeline; unknown keys pass through."""

    model_config = ConfigDict(extra="allow")

    prompt: StrictStr
    interests: list[StrictStr] | None = None
    duration: StrictStr | StrictInt | FiniteNumber | None = None
    budget: StrictStr | StrictInt | FiniteNumber | None = None
    pax: StrictStr | StrictInt | FiniteNumber | None = None
    weatherData: Any = None


class ConciergeInitializeResult(BaseModel):
    """Everything the coordinator needs after a successful initialization."""

    auth_session: AuthSession
    credit_balance: CreditBalance | None = None
    request_body: dict[str, Any]
    request_session: RequestSession


def format_field_errors(error: PydanticValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors to ``{field: [messages]}``."""
    field_errors: dict[str, list[str]] = {}
    for detail in error.errors():
        location = detail.get("loc") or ("body",)
        field_errors.setdefault(str(location[0]), []).append(detail["msg"])
    return field_errors


class ConciergeAgent(BaseAgent):
    """Entry stage that authorizes a request and creates its session."""

    def __init__(
        self,
        store: SessionStore,
        auth_provider: AuthProvider,
        credit_service: CreditService | None = None,
        service_tag: str | None = None,
    ):
        super().__init__(
            AgentConfig(name="concierge", failure_message="Pipeline run failed"), store
        )
        self.auth_provider = auth_provider
        self.credit_service = credit_service
        self.service_tag = service_tag or config.pipeline.credit_service_tag

    async def initialize(self, raw_request: IncomingRequest) -> ConciergeInitializeResult:
        """
        Authorize a request and create its pending session.

        Args:
            raw_request: Request as received by the outer surface

        Returns:
            The resolved caller, credit balance, validated body and new session

        Raises:
            AuthenticationRequired: If no caller identity can be resolved
            ValidationError: If the body is not valid JSON or fails the schema
            InsufficientCreditsError: If the caller has no credits left today
        """
        auth_session = await self.auth_provider.resolve_session(raw_request)
        if auth_session is None or not auth_session.user_id:
            raise AuthenticationRequired()

        payload = self._parse_body(raw_request.body)
        try:
            request = ItineraryRequest.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(format_field_errors(e)) from e

        credit_balance = await self._get_credit_balance(auth_session.user_id)
        if credit_balance is not None and credit_balance.remaining_today < REQUIRED_CREDITS:
            raise InsufficientCreditsError(
                REQUIRED_CREDITS, credit_balance.remaining_today, self.service_tag
            )

        session = self.store.create(
            user_id=auth_session.user_id,
            prompt=request.prompt,
            preferences=self.extract_preferences(request),
        )
        self.logger.for_session(session.id).info(
            f"Initialized session for user {auth_session.user_id}"
        )
        return ConciergeInitializeResult(
            auth_session=auth_session,
            credit_balance=credit_balance,
            request_body=request.model_dump(),
            request_session=session,
        )

    def mark_in_progress(self, session_id: str) -> RequestSession:
        return self.store.update_status(session_id, SessionStatus.IN_PROGRESS)

    def mark_completed(
        self, session_id: str, itinerary: GeneratedItinerary
    ) -> RequestSession:
        return self.store.set_itinerary(session_id, itinerary)

    def fail_session(
        self, session_id: str, message: str, detail: Any = None
    ) -> RequestSession:
        """Record a fatal pipeline error against the session."""
        self.logger.for_session(session_id).error(f"Session failed: {message}")
        return self.store.append_error(
            session_id,
            AgentError(
                agent=self.name,
                stage=FATAL_STAGE,
                message=message,
                detail=safe_serialize(detail),
            ),
        )

    async def consume_credit(self, session: RequestSession) -> None:
        """Charge the caller for a completed run; failures are only logged."""
        if self.credit_service is None:
            return
        log = self.logger.for_session(session.id)
        try:
            await self.credit_service.consume(
                session.user_id, REQUIRED_CREDITS, self.service_tag
            )
        except Exception as e:
            log.warning(f"Credit consumption failed: {e!s}")
            return
        log.debug(f"Consumed {REQUIRED_CREDITS} credit for {self.service_tag}")

    @staticmethod
    def extract_preferences(request: ItineraryRequest) -> RequestPreferences:
        """Derive session preferences from a validated request."""
        return RequestPreferences(
            interests=list(request.interests or []),
            duration_days=extract_first_int(request.duration),
            budget=str(request.budget) if request.budget is not None else None,
            pax=str(request.pax) if request.pax is not None else None,
        )

    async def _get_credit_balance(self, user_id: str) -> CreditBalance | None:
        if self.credit_service is None:
            return None
        try:
            return await self.credit_service.get_balance(user_id)
        except Exception as e:
            self.logger.warning(f"Credit check failed, continuing without it: {e!s}")
            return None

    @staticmethod
    def _parse_body(body: dict[str, Any] | str | bytes | None) -> Any:
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        if isinstance(body, str):
            try:
                return json.loads(body)
            except json.JSONDecodeError as e:
                raise ValidationError({"body": [f"Invalid JSON: {e.msg}"]}) from e
        if body is None:
            raise ValidationError({"body": ["Request body is required"]})
        return body

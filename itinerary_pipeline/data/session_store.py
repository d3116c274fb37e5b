"""
In-memory session store for itinerary requests.

The store owns every ``RequestSession`` for the process lifetime. All
mutations are atomic read-modify-write operations under a re-entrant lock,
readers always receive deep copies, and the lifecycle rules (forward-only
status, write-once stage payloads, append-only errors) are enforced here
rather than left to the callers.
"""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from itinerary_pipeline.data.models import (
    AgentError,
    ContextPayload,
    GeneratedItinerary,
    RequestPreferences,
    RequestSession,
    RetrievalResult,
    SessionStatus,
)
from itinerary_pipeline.utils.error_handling import (
    InvalidStatusTransitionError,
    SessionBusyError,
    SessionNotFoundError,
    SessionWriteConflictError,
)
from itinerary_pipeline.utils.helpers import generate_session_id, utc_now
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

FATAL_STAGE = "fatal"


class SessionStore:
    """Keyed, thread-safe store of request sessions."""

    def __init__(self):
        self._sessions: dict[str, RequestSession] = {}
        self._issued_ids: set[str] = set()
        self._active: set[str] = set()
        self._lock = threading.RLock()

    def create(
        self,
        user_id: str,
        prompt: str,
        preferences: RequestPreferences | None = None,
        session_id: str | None = None,
    ) -> RequestSession:
        """
        Create a new pending session.

        Args:
            user_id: Owner of the session
            prompt: Original free-text request
            preferences: Preferences parsed from the request
            session_id: Explicit id to use instead of a generated one

        Returns:
            A copy of the stored session

        Raises:
            SessionWriteConflictError: If the id has already been issued
        """
        with self._lock:
            new_id = session_id or generate_session_id()
            if new_id in self._issued_ids:
                raise SessionWriteConflictError(new_id, "id")

            session = RequestSession(
                id=new_id,
                user_id=user_id,
                prompt=prompt,
                preferences=preferences or RequestPreferences(),
            )
            self._issued_ids.add(new_id)
            self._sessions[new_id] = session
            logger.debug(f"Created session {new_id} for user {user_id}")
            return session.model_copy(deep=True)

    def get(self, session_id: str) -> RequestSession | None:
        """Return a copy of the session, or None if it does not exist."""
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def require(self, session_id: str) -> RequestSession:
        """
        Return a copy of the session.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def update_status(self, session_id: str, status: SessionStatus) -> RequestSession:
        """
        Move a session to a new status.

        Re-asserting the current status is a no-op. Moving backwards, or
        leaving a terminal status, raises InvalidStatusTransitionError.
        """

        def apply(session: RequestSession) -> None:
            self._advance(session, status)

        return self._mutate(session_id, apply)

    def set_context(self, session_id: str, context: ContextPayload) -> RequestSession:
        """Write the context payload once and re-assert ``in_progress``."""

        def apply(session: RequestSession) -> None:
            if session.context is not None:
                raise SessionWriteConflictError(session_id, "context")
            session.context = context.model_copy(deep=True)
            self._advance(session, SessionStatus.IN_PROGRESS)

        return self._mutate(session_id, apply)

    def set_retrieval(
        self, session_id: str, retrieval: RetrievalResult
    ) -> RequestSession:
        """Write the retrieval result once."""

        def apply(session: RequestSession) -> None:
            if session.retrieval is not None:
                raise SessionWriteConflictError(session_id, "retrieval")
            session.retrieval = retrieval.model_copy(deep=True)

        return self._mutate(session_id, apply)

    def set_itinerary(
        self, session_id: str, itinerary: GeneratedItinerary
    ) -> RequestSession:
        """Write the final itinerary once and mark the session completed."""

        def apply(session: RequestSession) -> None:
            if session.itinerary is not None:
                raise SessionWriteConflictError(session_id, "itinerary")
            self._advance(session, SessionStatus.COMPLETED)
            session.itinerary = itinerary.model_copy(deep=True)

        return self._mutate(session_id, apply)

    def append_error(self, session_id: str, error: AgentError) -> RequestSession:
        """
        Append an entry to the session's error log.

        A ``fatal`` entry also moves a non-terminal session to ``failed``.
        Sessions that are already completed or failed keep their status.
        """

        def apply(session: RequestSession) -> None:
            session.errors.append(error.model_copy(deep=True))
            if error.stage == FATAL_STAGE and not session.status.is_terminal:
                session.status = SessionStatus.FAILED

        return self._mutate(session_id, apply)

    @contextmanager
    def lease(self, session_id: str) -> Iterator[None]:
        """
        Hold exclusive processing rights for a session id.

        Raises:
            SessionBusyError: If another caller already holds the lease
        """
        with self._lock:
            if session_id in self._active:
                raise SessionBusyError(session_id)
            self._active.add(session_id)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(session_id)

    def reset(self) -> None:
        """Clear every session. Intended for tests and administrative use."""
        with self._lock:
            self._sessions.clear()
            self._issued_ids.clear()
            self._active.clear()
        logger.info("Session store reset")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _mutate(
        self, session_id: str, apply: Callable[[RequestSession], None]
    ) -> RequestSession:
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is None:
                raise SessionNotFoundError(session_id)

            # Work on a copy so a failed rule check leaves the record untouched
            updated = existing.model_copy(deep=True)
            apply(updated)
            updated.updated_at = utc_now()
            self._sessions[session_id] = updated
            return updated.model_copy(deep=True)

    @staticmethod
    def _advance(session: RequestSession, status: SessionStatus) -> None:
        current = session.status
        if status == current:
            return
        if current.is_terminal or status.rank < current.rank:
            raise InvalidStatusTransitionError(session.id, current.value, status.value)
        session.status = status

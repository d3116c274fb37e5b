"""
Base agent class for the itinerary pipeline stages.

Every stage reads and writes the shared session record through the session
store and reports its own failures to the session's error log before the
exception propagates to the coordinator.
"""

from dataclasses import dataclass
from typing import Any

from itinerary_pipeline.data.models import AgentError
from itinerary_pipeline.data.session_store import FATAL_STAGE, SessionStore
from itinerary_pipeline.utils.error_handling import PipelineError
from itinerary_pipeline.utils.helpers import safe_serialize
from itinerary_pipeline.utils.logging import AgentLogger


class InvalidConfigurationError(PipelineError):
    """Exception raised when agent configuration is invalid."""

    pass


@dataclass
class AgentConfig:
    """Configuration for a pipeline stage."""

    name: str
    failure_message: str = "Stage failed"


class BaseAgent:
    """
    Base class for pipeline stages.

    Provides the session store, a stage logger and the failure recording
    shared by all stages.
    """

    def __init__(self, config: AgentConfig, store: SessionStore):
        """
        Initialize a base agent.

        Args:
            config: Configuration for the agent
            store: Session store the stage reads and writes
        """
        self.config = config
        self.store = store
        self.logger = AgentLogger(config.name)
        self._validate_config()

    @property
    def name(self) -> str:
        """Get the name of the agent."""
        return self.config.name

    def _record_failure(
        self, session_id: str, error: Any, message: str | None = None
    ) -> None:
        """Append a fatal error entry for this stage to the session."""
        self.logger.for_session(session_id).error(
            f"{message or self.config.failure_message}: {error!s}"
        )
        self.store.append_error(
            session_id,
            AgentError(
                agent=self.name,
                stage=FATAL_STAGE,
                message=message or self.config.failure_message,
                detail=safe_serialize(error),
            ),
        )

    def _validate_config(self) -> bool:
        if not self.config.name:
            raise InvalidConfigurationError("Agent name cannot be empty")
        return True

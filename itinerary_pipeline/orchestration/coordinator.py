"""
Pipeline coordinator for itinerary requests.

Runs the stages in a fixed order: initialization, context, retrieval and
composition. Each stage records its own failure; the coordinator adds one
concierge entry for any failure after initialization and re-raises.
"""

import asyncio

from itinerary_pipeline.agents.concierge import ConciergeAgent
from itinerary_pipeline.agents.context_scout import ContextScoutAgent
from itinerary_pipeline.agents.itinerary_composer import ItineraryComposerAgent
from itinerary_pipeline.agents.retrieval_strategist import RetrievalStrategistAgent
from itinerary_pipeline.config import config
from itinerary_pipeline.data.models import RequestSession, SessionStatus
from itinerary_pipeline.data.session_store import SessionStore
from itinerary_pipeline.services.interfaces import IncomingRequest
from itinerary_pipeline.utils.error_handling import UnknownStageFailure, UpstreamTimeout
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineCoordinator:
    """Coordinates one pipeline run per request."""

    def __init__(
        self,
        store: SessionStore,
        concierge: ConciergeAgent,
        context_scout: ContextScoutAgent,
        retrieval_strategist: RetrievalStrategistAgent,
        itinerary_composer: ItineraryComposerAgent,
        timeout_seconds: float | None = None,
    ):
        self.store = store
        self.concierge = concierge
        self.context_scout = context_scout
        self.retrieval_strategist = retrieval_strategist
        self.itinerary_composer = itinerary_composer
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else config.pipeline.request_timeout_seconds
        )

    async def handle_request(self, raw_request: IncomingRequest) -> RequestSession:
        """
        Run the full pipeline for a request.

        Args:
            raw_request: Request as received by the outer surface

        Returns:
            The completed session

        Raises:
            AuthenticationRequired, ValidationError, InsufficientCreditsError:
                From initialization; no session is created
            UpstreamTimeout: If the run exceeds its deadline
            UnknownStageFailure: If composition returns without an itinerary
            Exception: Any stage failure, re-raised after the session is failed
        """
        init = await self.concierge.initialize(raw_request)
        session = init.request_session

        with self.store.lease(session.id):
            deadline = asyncio.timeout(self.timeout_seconds)
            try:
                async with deadline:
                    session = self.concierge.mark_in_progress(session.id)
                    session = await self.context_scout.execute(session, init.request_body)
                    session = await self.retrieval_strategist.execute(session)
                    session = await self.itinerary_composer.execute(session)
                    if session.status != SessionStatus.COMPLETED or session.itinerary is None:
                        raise UnknownStageFailure(
                            "Composition finished without a completed itinerary"
                        )
            except TimeoutError as e:
                if not deadline.expired():
                    # Raised by a stage, not by the run deadline
                    self.concierge.fail_session(session.id, str(e), e)
                    raise
                message = f"Pipeline run exceeded {self.timeout_seconds}s deadline"
                self.concierge.fail_session(session.id, message, e)
                raise UpstreamTimeout(message, e) from e
            except Exception as e:
                self.concierge.fail_session(session.id, str(e), e)
                raise

        logger.info(f"Session {session.id} completed")
        return session

"""
Itinerary composer agent: turns the session's context and retrieval into the
final itinerary through the guaranteed JSON engine.
"""

import json
from collections.abc import Callable
from datetime import datetime

from itinerary_pipeline.agents.base import AgentConfig, BaseAgent
from itinerary_pipeline.data.models import GeneratedItinerary, RequestSession
from itinerary_pipeline.data.session_store import SessionStore
from itinerary_pipeline.generation.engine import GuaranteedJsonEngine
from itinerary_pipeline.prompts.context import build_detailed_prompt
from itinerary_pipeline.services.interfaces import ResponsePostProcessor
from itinerary_pipeline.services.peak_hours import get_peak_hours_context
from itinerary_pipeline.services.response_handler import ItineraryResponseHandler
from itinerary_pipeline.utils.error_handling import SampleItineraryMissingError

DEFAULT_WEATHER_DESCRIPTION = "clear"
DEFAULT_TEMPERATURE_C = 20


def compose_weather_context(session: RequestSession) -> str:
    weather = session.context.weather if session.context else None
    description = weather.description if weather and weather.description else None
    temperature = weather.temperature_c if weather else None
    if temperature is None:
        temperature = DEFAULT_TEMPERATURE_C
    return f"Weather: {description or DEFAULT_WEATHER_DESCRIPTION}, {temperature}°C"


def compose_additional_context(session: RequestSession) -> str:
    preferences = session.preferences
    duration = preferences.duration_days if preferences.duration_days is not None else "unknown"
    return (
        f"Duration: {duration} days, "
        f"Budget: {preferences.budget or 'unspecified'}, "
        f"Pax: {preferences.pax or 'unspecified'}"
    )


class ItineraryComposerAgent(BaseAgent):
    """Final stage that writes the validated itinerary and completes the session."""

    def __init__(
        self,
        store: SessionStore,
        engine: GuaranteedJsonEngine,
        post_processor: ResponsePostProcessor | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(
            AgentConfig(name="itinerary-composer", failure_message="Failed to compose itinerary"),
            store,
        )
        self.engine = engine
        self.post_processor = post_processor or ItineraryResponseHandler()
        self._clock = clock

    async def execute(self, session: RequestSession) -> RequestSession:
        """
        Generate, normalize and store the itinerary.

        Args:
            session: Session with context and retrieval written

        Returns:
            The completed session

        Raises:
            SampleItineraryMissingError: If retrieval left no sample itinerary
        """
        log = self.logger.for_session(session.id)
        try:
            metadata = session.retrieval.metadata if session.retrieval else {}
            sample_itinerary = metadata.get("sampleItinerary")
            if not sample_itinerary:
                raise SampleItineraryMissingError()

            now = self._clock() if self._clock else None
            preferences = session.preferences
            raw_weather = (
                session.context.weather.raw
                if session.context and session.context.weather
                else None
            )
            detailed_prompt = build_detailed_prompt(
                session.prompt,
                sample_itinerary,
                raw_weather,
                list(preferences.interests),
                preferences.duration_days,
                preferences.budget,
                preferences.pax,
                now=now,
            )
            peak_hours_context = (
                session.context.peak_hours_context
                if session.context and session.context.peak_hours_context
                else get_peak_hours_context(now)
            )

            log.info("Generating itinerary")
            structured = await self.engine.generate_guaranteed_json(
                detailed_prompt,
                sample_itinerary,
                compose_weather_context(session),
                peak_hours_context,
                compose_additional_context(session),
                correlation_id=session.id,
            )
            structured_json = structured.model_dump(mode="json", exclude_none=True)
            final = self.post_processor.normalize(
                structured_json,
                session.prompt,
                preferences.duration_days,
                peak_hours_context,
            )

            updated = self.store.set_itinerary(
                session.id,
                GeneratedItinerary(
                    json=final,
                    prompt=detailed_prompt,
                    raw_model_response=json.dumps(structured_json, ensure_ascii=False),
                ),
            )
        except Exception as e:
            self._record_failure(session.id, e)
            raise

        log.info(f"Itinerary composed with {len(final.get('items') or [])} periods")
        return updated

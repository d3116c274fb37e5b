"""
Context scout agent: gathers the environmental context for a session.

Weather, traffic at each monitored location and the peak-hours guidance are
fetched concurrently. Each lookup degrades to a fallback value on failure,
so only a failure outside those lookups fails the stage.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from itinerary_pipeline.agents.base import AgentConfig, BaseAgent
from itinerary_pipeline.config import config
from itinerary_pipeline.data.coordinates import LocationCoordinates, get_location_coordinates
from itinerary_pipeline.data.models import (
    ContextPayload,
    RequestSession,
    TrafficLevel,
    TrafficSnapshot,
    WeatherSnapshot,
)
from itinerary_pipeline.data.session_store import SessionStore
from itinerary_pipeline.orchestration.parallel import TolerantBranch, gather_tolerant
from itinerary_pipeline.services.interfaces import TrafficProvider, WeatherProvider
from itinerary_pipeline.services.peak_hours import get_peak_hours_context


def build_weather_snapshot(raw: dict[str, Any] | None) -> WeatherSnapshot | None:
    """Summarize a raw weather payload; None stays None."""
    if raw is None:
        return None

    conditions = raw.get("weather")
    first = conditions[0] if isinstance(conditions, list) and conditions else {}
    main = raw.get("main") if isinstance(raw.get("main"), dict) else {}
    temperature = main.get("temp")
    return WeatherSnapshot(
        description=first.get("description") if isinstance(first, dict) else None,
        temperature_c=temperature if isinstance(temperature, int | float) else None,
        raw=raw,
    )


class ContextScoutAgent(BaseAgent):
    """Stage that writes weather, traffic and peak-hours context."""

    def __init__(
        self,
        store: SessionStore,
        weather_provider: WeatherProvider,
        traffic_provider: TrafficProvider | None = None,
        max_traffic_locations: int | None = None,
        traffic_locations: list[str] | None = None,
        resolve_coordinates: Callable[[str], LocationCoordinates | None] = get_location_coordinates,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(
            AgentConfig(
                name="context-scout",
                failure_message="Failed to gather environmental context",
            ),
            store,
        )
        self.weather_provider = weather_provider
        self.traffic_provider = traffic_provider
        self.max_traffic_locations = (
            max_traffic_locations
            if max_traffic_locations is not None
            else config.pipeline.max_traffic_locations
        )
        self.traffic_locations = list(
            traffic_locations
            if traffic_locations is not None
            else config.pipeline.traffic_locations
        )
        self.resolve_coordinates = resolve_coordinates
        self._clock = clock

    async def execute(
        self, session: RequestSession, request_body: dict[str, Any]
    ) -> RequestSession:
        """
        Gather context and write it onto the session.

        Args:
            session: Session in progress
            request_body: Validated request payload

        Returns:
            The updated session, status ``in_progress``
        """
        log = self.logger.for_session(session.id)
        log.info("Gathering environmental context")
        try:
            context = await self._build_context(request_body)
            updated = self.store.set_context(session.id, context)
        except Exception as e:
            self._record_failure(session.id, e)
            raise

        log.info(
            f"Context ready: weather={'yes' if context.weather else 'no'}, "
            f"traffic areas={len(context.traffic)}"
        )
        return updated

    async def _build_context(self, request_body: dict[str, Any]) -> ContextPayload:
        monitored = self._monitored_locations()

        branches: list[TolerantBranch[Any]] = [
            TolerantBranch(
                name="weather",
                operation=lambda: self.weather_provider.get_weather(request_body),
                fallback=lambda e: None,
            ),
            TolerantBranch(
                name="peak-hours",
                operation=lambda: get_peak_hours_context(self._now()),
                fallback=lambda e: "",
            ),
        ]
        branches.extend(self._traffic_branch(name, coords) for name, coords in monitored)

        outcomes = await gather_tolerant(branches)
        weather_raw, peak_hours_context = outcomes[0].value, outcomes[1].value
        return ContextPayload(
            weather=build_weather_snapshot(weather_raw if isinstance(weather_raw, dict) else None),
            traffic=[outcome.value for outcome in outcomes[2:]],
            peak_hours_context=peak_hours_context,
        )

    def _monitored_locations(self) -> list[tuple[str, LocationCoordinates]]:
        if self.traffic_provider is None:
            return []

        monitored = []
        for name in self.traffic_locations[: self.max_traffic_locations]:
            coords = self.resolve_coordinates(name)
            if coords is None:
                self.logger.debug(f"No coordinates for {name}, skipping traffic lookup")
                continue
            monitored.append((name, coords))
        return monitored

    def _traffic_branch(
        self, name: str, coords: LocationCoordinates
    ) -> TolerantBranch[TrafficSnapshot]:
        async def lookup() -> TrafficSnapshot:
            reading = await self.traffic_provider.get_traffic_at(coords.lat, coords.lon)
            if reading is None:
                return TrafficSnapshot(area=name, traffic_level=TrafficLevel.UNKNOWN)
            return TrafficSnapshot(
                area=name,
                traffic_level=reading.traffic_level,
                recommendation_score=reading.recommendation_score,
                raw=reading.raw,
            )

        return TolerantBranch(
            name=f"traffic:{name}",
            operation=lookup,
            fallback=lambda e: TrafficSnapshot(
                area=name, traffic_level=TrafficLevel.UNKNOWN, raw={"error": str(e)}
            ),
        )

    def _now(self) -> datetime | None:
        return self._clock() if self._clock else None

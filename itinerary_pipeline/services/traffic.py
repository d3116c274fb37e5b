"""
TomTom traffic provider.

Turns TomTom flow and incident data for a coordinate into a traffic level
and a 0-100 recommendation score (higher means a better time to visit).
"""

import time
from typing import Any

from itinerary_pipeline.config import config
from itinerary_pipeline.data.models import TrafficLevel, TrafficReading
from itinerary_pipeline.utils.error_handling import APIError
from itinerary_pipeline.utils.logging import get_logger
from itinerary_pipeline.utils.rate_limiting import APIClient, RateLimitConfig

logger = get_logger(__name__)

FLOW_ENDPOINT = "/traffic/services/4/flowSegmentData/absolute/10/json"
INCIDENTS_ENDPOINT = "/traffic/services/5/incidentDetails"
INCIDENT_FIELDS = (
    "{incidents{type,properties{id,iconCategory,magnitudeOfDelay,"
    "events{description,code,iconCategory},startTime,endTime,from,to,"
    "length,delay,roadNumbers}}}"
)
INCIDENT_BBOX_OFFSET = 0.005
DEFAULT_CONGESTION = 30
CACHE_SECONDS = 300

TOMTOM_RATE_LIMIT = RateLimitConfig(
    service_name="tomtom",
    requests_per_minute=120,
    max_retries=2,
    base_delay_ms=500,
    timeout_seconds=10.0,
)

_LEVEL_ADJUSTMENTS = {
    TrafficLevel.SEVERE: -30,
    TrafficLevel.HIGH: -20,
    TrafficLevel.MODERATE: -10,
    TrafficLevel.LOW: 10,
    TrafficLevel.VERY_LOW: 20,
}


def calculate_congestion_score(
    flow: dict[str, Any] | None, incidents: list[dict[str, Any]]
) -> int:
    """
    Score congestion from 0 (free flowing) to 100 (standstill).

    The base comes from the current/free-flow speed ratio, or 30 when no
    flow data is available; each incident adds up to 30 points.
    """
    current = (flow or {}).get("currentSpeed")
    free_flow = (flow or {}).get("freeFlowSpeed")
    if current and free_flow:
        score = max(0.0, (1 - current / free_flow) * 100)
    else:
        score = float(DEFAULT_CONGESTION)

    for incident in incidents:
        score += min(_magnitude(incident) * 10, 30)

    return min(100, max(0, round(score)))


def traffic_level_for(
    congestion_score: int, incidents: list[dict[str, Any]]
) -> TrafficLevel:
    """Map a congestion score to a level; any major incident is SEVERE."""
    if any(_magnitude(incident) >= 4 for incident in incidents):
        return TrafficLevel.SEVERE
    if congestion_score >= 80:
        return TrafficLevel.HIGH
    if congestion_score >= 50:
        return TrafficLevel.MODERATE
    if congestion_score >= 20:
        return TrafficLevel.LOW
    return TrafficLevel.VERY_LOW


def calculate_recommendation_score(
    congestion_score: int,
    level: TrafficLevel,
    incidents: list[dict[str, Any]],
) -> int:
    """Score how good a time it is to visit, from 0 (avoid) to 100."""
    score = 100 - congestion_score
    for incident in incidents:
        score -= min(_magnitude(incident) * 5, 20)
    score += _LEVEL_ADJUSTMENTS.get(level, 0)
    return min(100, max(0, round(score)))


def _magnitude(incident: dict[str, Any]) -> int:
    properties = incident.get("properties") or incident
    value = properties.get("magnitudeOfDelay") or 0
    return value if isinstance(value, int | float) else 0


class TomTomTrafficProvider:
    """Traffic provider backed by the TomTom Traffic API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: APIClient | None = None,
    ):
        self.api_key = api_key if api_key is not None else config.api.tomtom_api_key
        self.client = client or APIClient(
            base_url or config.api.tomtom_base_url,
            TOMTOM_RATE_LIMIT,
            api_key=self.api_key,
        )
        self._cache: dict[str, tuple[float, TrafficReading]] = {}

        if not self.api_key:
            logger.warning("TomTom API key not found. Traffic levels will be UNKNOWN.")

    async def get_traffic_at(self, lat: float, lon: float) -> TrafficReading | None:
        """
        Look up traffic at a coordinate.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            The traffic reading, or None when no API key is configured

        Raises:
            APIError: If the flow request fails after retries
        """
        if not self.api_key:
            return None

        cache_key = f"{lat:.4f},{lon:.4f}"
        cached = self._cache.get(cache_key)
        if cached and cached[0] > time.monotonic():
            logger.debug(f"Using cached traffic data for {cache_key}")
            return cached[1]

        flow_response = await self.client.request(
            "GET",
            FLOW_ENDPOINT,
            params={"point": f"{lat},{lon}", "unit": "KMPH", "thickness": "10"},
        )
        flow = flow_response.get("flowSegmentData")
        incidents = await self._get_incidents(lat, lon)

        congestion = calculate_congestion_score(flow, incidents)
        level = traffic_level_for(congestion, incidents)
        reading = TrafficReading(
            traffic_level=level,
            recommendation_score=calculate_recommendation_score(
                congestion, level, incidents
            ),
            raw={
                "lat": lat,
                "lon": lon,
                "congestionScore": congestion,
                "incidentCount": len(incidents),
                "flowSegmentData": flow,
            },
        )
        self._cache[cache_key] = (time.monotonic() + CACHE_SECONDS, reading)
        logger.debug(
            f"Traffic at {cache_key}: {level.value} "
            f"(congestion {congestion}, {len(incidents)} incidents)"
        )
        return reading

    async def _get_incidents(self, lat: float, lon: float) -> list[dict[str, Any]]:
        offset = INCIDENT_BBOX_OFFSET
        try:
            response = await self.client.request(
                "GET",
                INCIDENTS_ENDPOINT,
                params={
                    "bbox": f"{lon - offset},{lat - offset},{lon + offset},{lat + offset}",
                    "fields": INCIDENT_FIELDS,
                    "language": "en-US",
                },
            )
        except APIError as e:
            logger.info(f"Incidents unavailable, using flow data only: {e!s}")
            return []
        incidents = response.get("incidents") or []
        return [incident for incident in incidents if isinstance(incident, dict)]

"""
Sample itinerary retriever backed by the built-in activity catalogue.

Selects catalogue activities that match the requested interests, suit the
weather and are outside their peak hours, and returns them as a sample
itinerary for the composition stage.
"""

import copy
from collections.abc import Callable
from datetime import datetime
from typing import Any

from itinerary_pipeline.data.catalogue import ACTIVITY_CATALOGUE
from itinerary_pipeline.services.peak_hours import filter_low_traffic_activities
from itinerary_pipeline.services.weather import WEATHER_TAG_FILTERS
from itinerary_pipeline.utils.helpers import utc_now
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

RANDOM_INTEREST = "Random"
MIN_WEATHER_MATCHES = 3
ACTIVITIES_PER_DAY = 6
MAX_ACTIVITIES = 18


class SampleItineraryRetriever:
    """Interest and weather filter over a fixed activity catalogue."""

    def __init__(
        self,
        catalogue: list[dict[str, Any]] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.catalogue = catalogue if catalogue is not None else ACTIVITY_CATALOGUE
        self._clock = clock

    async def find_and_score_activities(
        self,
        prompt: str,
        interests: list[str],
        weather_condition: str,
        duration_days: int | None,
    ) -> dict[str, Any]:
        """
        Build a sample itinerary for a request.

        Args:
            prompt: Free-text request
            interests: Requested interests; empty or "Random" means any
            weather_condition: Weather type from ``classify_weather_condition``
            duration_days: Requested duration, used to size the selection

        Returns:
            Sample itinerary with ``items`` and ``searchMetadata``
        """
        wanted = {interest for interest in interests if interest != RANDOM_INTEREST}
        activities = [copy.deepcopy(activity) for activity in self.catalogue]

        for activity in activities:
            matches = len(wanted.intersection(activity["tags"]))
            activity["relevanceScore"] = round(matches / len(wanted), 3) if wanted else 0.5
        if wanted:
            activities = [activity for activity in activities if activity["relevanceScore"] > 0]

        weather_tags = WEATHER_TAG_FILTERS.get(weather_condition, ())
        if weather_tags:
            suitable = [
                activity for activity in activities
                if any(tag in activity["tags"] for tag in weather_tags)
            ]
            if len(suitable) >= MIN_WEATHER_MATCHES:
                activities = suitable

        now = self._clock() if self._clock else None
        low_traffic, currently_peak = filter_low_traffic_activities(activities, now)
        for activity in low_traffic:
            activity["isCurrentlyPeak"] = False
        selected = low_traffic or activities

        limit = min(MAX_ACTIVITIES, ACTIVITIES_PER_DAY * (duration_days or 1))
        selected = sorted(selected, key=lambda item: item["relevanceScore"], reverse=True)[:limit]

        logger.info(
            f"Selected {len(selected)} activities "
            f"({len(currently_peak)} in peak hours, weather={weather_condition})"
        )
        return {
            "title": "Baguio Activity Database",
            "subtitle": "Curated activities matching your preferences",
            "items": [{"period": "Anytime", "activities": selected}],
            "searchMetadata": {
                "allowedActivities": selected,
                "expandedQueries": [prompt, *sorted(wanted)],
                "weatherCondition": weather_condition,
                "generatedAt": (now or utc_now()).isoformat(),
            },
        }

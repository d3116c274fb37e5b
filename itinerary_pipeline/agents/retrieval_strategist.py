"""
Retrieval strategist agent: selects candidate activities for a session.
"""

from typing import Any

from itinerary_pipeline.agents.base import AgentConfig, BaseAgent
from itinerary_pipeline.data.models import RankedActivity, RequestSession, RetrievalResult
from itinerary_pipeline.data.session_store import SessionStore
from itinerary_pipeline.services.interfaces import ActivityRetriever
from itinerary_pipeline.services.weather import classify_weather_condition, weather_fields
from itinerary_pipeline.utils.error_handling import RetrievalNotConfiguredError


def extract_candidates(sample_itinerary: dict[str, Any]) -> list[RankedActivity]:
    """
    Rank the allowed activities of a sample itinerary.

    The score is the activity's ``relevanceScore`` when numeric, otherwise it
    decreases linearly with list position.
    """
    metadata = sample_itinerary.get("searchMetadata") or {}
    allowed = metadata.get("allowedActivities")
    if not isinstance(allowed, list):
        return []

    candidates = []
    for index, activity in enumerate(allowed):
        if not isinstance(activity, dict):
            continue
        relevance = activity.get("relevanceScore")
        if isinstance(relevance, int | float) and not isinstance(relevance, bool):
            score = float(relevance)
        else:
            score = max(0.0, 1 - index / len(allowed))
        tags = activity.get("tags")
        candidates.append(
            RankedActivity(
                title=str(activity.get("title") or ""),
                score=score,
                tags=tags if isinstance(tags, list) else [],
                traffic_analysis=activity.get("trafficAnalysis"),
                raw=activity,
            )
        )
    return candidates


class RetrievalStrategistAgent(BaseAgent):
    """Stage that writes the retrieval result and sample itinerary."""

    def __init__(self, store: SessionStore, retriever: ActivityRetriever | None):
        super().__init__(
            AgentConfig(
                name="retrieval-strategist",
                failure_message="Failed to retrieve and score activities",
            ),
            store,
        )
        self.retriever = retriever

    async def execute(self, session: RequestSession) -> RequestSession:
        """
        Retrieve candidate activities and write them onto the session.

        Raises:
            RetrievalNotConfiguredError: If no retriever is wired
        """
        log = self.logger.for_session(session.id)
        try:
            if self.retriever is None:
                raise RetrievalNotConfiguredError("Activity retriever not configured")

            weather_condition = self.resolve_weather_condition(session)
            log.info(f"Retrieving activities (weather={weather_condition})")
            sample_itinerary = await self.retriever.find_and_score_activities(
                session.prompt,
                list(session.preferences.interests),
                weather_condition,
                session.preferences.duration_days,
            )

            candidates = extract_candidates(sample_itinerary)
            metadata = sample_itinerary.get("searchMetadata") or {}
            expanded = metadata.get("expandedQueries")
            retrieval = RetrievalResult(
                candidates=candidates,
                expanded_queries=[str(q) for q in expanded] if isinstance(expanded, list) else [],
                coverage_score=float(len(candidates)),
                metadata={"sampleItinerary": sample_itinerary},
            )
            updated = self.store.set_retrieval(session.id, retrieval)
        except Exception as e:
            self._record_failure(session.id, e)
            raise

        log.info(f"Retrieved {len(candidates)} candidate activities")
        return updated

    @staticmethod
    def resolve_weather_condition(session: RequestSession) -> str:
        raw = session.context.weather.raw if session.context and session.context.weather else None
        weather_id, _, temperature = weather_fields(raw)
        return classify_weather_condition(weather_id, temperature)

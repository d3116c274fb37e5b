"""
Guaranteed JSON generation engine.

Drives an unreliable text model through a bounded generate, parse, validate
and repair loop. Whatever the model does, the caller receives a
``StructuredItinerary``: either validated model output or a schema-valid
fallback built from the sample itinerary.
"""

import asyncio
import json
import time
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from itinerary_pipeline.config import EngineConfig, config
from itinerary_pipeline.data.schemas import (
    StructuredItinerary,
    is_valid_itinerary,
    validation_messages,
)
from itinerary_pipeline.generation.cache import ResultCache
from itinerary_pipeline.generation.metrics import EngineMetrics
from itinerary_pipeline.generation.model import GeminiTextModel
from itinerary_pipeline.generation.repair import (
    DEFAULT_ACTIVITY_IMAGE,
    coerce_shape,
    parse_model_output,
)
from itinerary_pipeline.prompts.engine import GenerationPromptBuilder
from itinerary_pipeline.services.interfaces import TextModel
from itinerary_pipeline.utils.error_handling import (
    GenerationFailure,
    ParsingFailure,
    classify_error,
)
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TITLE = "Baguio City Itinerary"
FALLBACK_SUBTITLE = "Curated recommendations based on your preferences"
PLACEHOLDER_SUBTITLE = "Unable to generate custom itinerary - please try again"
FALLBACK_PERIODS = (
    (
        "Day 1 - Morning",
        "Tarana-AI suggests leaving this time slot open to avoid traffic. "
        "Perfect for a quiet local coffee before your afternoon plans.",
    ),
    (
        "Day 1 - Afternoon",
        "Tarana-AI suggests leaving this time slot open to avoid traffic. "
        "Ideal for a relaxing lunch break away from crowds.",
    ),
    (
        "Day 1 - Evening",
        "Tarana-AI suggests leaving this time slot open to avoid traffic. "
        "Great for a peaceful dinner experience.",
    ),
)
PLACEHOLDER_REASON = (
    "Tarana-AI is currently optimizing your itinerary. This time slot will be "
    "filled with personalized suggestions based on real-time traffic and "
    "weather conditions."
)
MAX_FALLBACK_ACTIVITIES = 6
ACTIVITIES_PER_PERIOD = 2
HEALTH_CHECK_PROMPT = "Generate a simple Baguio itinerary with one morning activity."


def _is_usable_activity(activity: Any) -> bool:
    return (
        isinstance(activity, dict)
        and isinstance(activity.get("title"), str)
        and bool(activity["title"].strip())
        and isinstance(activity.get("image"), str)
        and isinstance(activity.get("desc"), str)
    )


def extract_sample_activities(sample_itinerary: Any) -> list[dict[str, Any]]:
    """
    Pull up to six usable activities out of a sample itinerary.

    Args:
        sample_itinerary: Sample itinerary with ``items[].activities``

    Returns:
        Activities normalized to the output schema's required fields
    """
    if not isinstance(sample_itinerary, dict):
        return []

    activities: list[dict[str, Any]] = []
    for item in sample_itinerary.get("items") or []:
        if not isinstance(item, dict) or not isinstance(item.get("activities"), list):
            continue
        for activity in item["activities"]:
            if not _is_usable_activity(activity):
                continue
            tags = activity.get("tags")
            if isinstance(tags, list):
                tags = [tag for tag in tags if isinstance(tag, str)]
            else:
                tags = ["Baguio"]
            slot = activity.get("time")
            if not isinstance(slot, str) or not slot.strip():
                slot = "9:00-10:00AM"
            activities.append(
                {
                    "image": activity["image"] or DEFAULT_ACTIVITY_IMAGE,
                    "title": activity["title"].strip(),
                    "time": slot,
                    "desc": activity["desc"] or "Enjoy this activity with optimal timing.",
                    "tags": tags,
                }
            )
            if len(activities) >= MAX_FALLBACK_ACTIVITIES:
                return activities
    return activities


def build_fallback_itinerary(sample_itinerary: Any) -> StructuredItinerary:
    """
    Build a schema-valid itinerary without the model.

    Up to six sample activities are spread two per period over Day 1
    morning, afternoon and evening; empty periods carry a reason. With no
    usable activities a fixed three-period placeholder is returned.

    Args:
        sample_itinerary: Sample itinerary from retrieval, or None

    Returns:
        A validated itinerary
    """
    activities = extract_sample_activities(sample_itinerary)

    if activities:
        items = []
        for index, (period, reason) in enumerate(FALLBACK_PERIODS):
            start = index * ACTIVITIES_PER_PERIOD
            chunk = activities[start : start + ACTIVITIES_PER_PERIOD]
            entry: dict[str, Any] = {"period": period, "activities": chunk}
            if not chunk:
                entry["reason"] = reason
            items.append(entry)
        try:
            return StructuredItinerary.model_validate(
                {"title": FALLBACK_TITLE, "subtitle": FALLBACK_SUBTITLE, "items": items}
            )
        except PydanticValidationError as e:
            logger.warning(f"Sample-based fallback failed validation: {e!s}")

    return StructuredItinerary.model_validate(
        {
            "title": FALLBACK_TITLE,
            "subtitle": PLACEHOLDER_SUBTITLE,
            "items": [
                {"period": period, "activities": [], "reason": PLACEHOLDER_REASON}
                for period, _ in FALLBACK_PERIODS
            ],
        }
    )


class GuaranteedJsonEngine:
    """
    Generate itineraries that always satisfy the output schema.

    Each request runs at most ``max_attempts`` model calls. An attempt whose
    output cannot be parsed or validated is followed by a repair prompt that
    quotes the rejected output and the validation errors; model failures are
    followed by a short back-off and a simplified prompt. When attempts run
    out, or the model fails in a way retrying cannot fix, the fallback
    itinerary is returned.
    """

    def __init__(
        self,
        model: TextModel | None = None,
        engine_config: EngineConfig | None = None,
        metrics: EngineMetrics | None = None,
        cache: ResultCache | None = None,
        prompt_builder: GenerationPromptBuilder | None = None,
    ):
        self.config = engine_config or config.engine
        self.model = model or GeminiTextModel(self.config)
        self.metrics = metrics or EngineMetrics()
        self.cache = cache if cache is not None else ResultCache(ttl=self.config.cache_ttl)
        self.prompts = prompt_builder or GenerationPromptBuilder()

    async def generate_guaranteed_json(
        self,
        prompt: str,
        sample_itinerary: dict[str, Any] | None,
        weather_context: str,
        peak_hours_context: str,
        additional_context: str = "",
        correlation_id: str = "unknown",
    ) -> StructuredItinerary:
        """
        Generate a schema-valid itinerary.

        Args:
            prompt: Detailed generation prompt
            sample_itinerary: Candidate content the model must choose from
            weather_context: Short weather summary
            peak_hours_context: Peak-hours guidance
            additional_context: Duration, budget and party-size summary
            correlation_id: Id used in logs, usually the session id

        Returns:
            A validated itinerary; never raises for model or parsing failures
        """
        log = logger.bind(correlation_id=correlation_id)
        started = time.perf_counter()
        self.metrics.record_request()

        cache_key = ResultCache.make_key(
            self.config.model,
            prompt,
            sample_itinerary,
            weather_context,
            peak_hours_context,
            additional_context,
        )
        cached = self.cache.get(cache_key)
        if cached is not None:
            self.metrics.record_cache_hit()
            log.info(f"Cache hit for request {correlation_id}")
            return cached.model_copy(deep=True)

        base_prompt = self.prompts.build(
            prompt,
            sample_itinerary,
            weather_context,
            peak_hours_context,
            additional_context,
        )
        next_prompt = base_prompt
        attempts = 0

        for attempt in range(1, self.config.max_attempts + 1):
            attempts = attempt
            temperature = max(0.1, 0.3 - 0.05 * attempt)
            log.debug(
                f"Generation attempt {attempt}/{self.config.max_attempts} "
                f"(temperature {temperature:.2f})"
            )

            try:
                text = await self._call_model(next_prompt, temperature)
            except GenerationFailure as e:
                self.metrics.record_model_error()
                log.warning(f"Model call failed on attempt {attempt}: {e!s}")
                if not e.retryable:
                    log.error("Model failure is not retryable, using fallback")
                    break
                if attempt < self.config.max_attempts:
                    await asyncio.sleep(self._backoff_seconds(attempt))
                next_prompt = self.prompts.progressive(base_prompt, attempt + 1)
                continue

            itinerary, errors = self._parse_and_validate(text)
            if itinerary is not None:
                outcome = "first_pass" if attempt == 1 else "repaired"
                self.metrics.record_outcome(outcome, attempts, self._elapsed_ms(started))
                self.cache.set(cache_key, itinerary.model_copy(deep=True))
                log.info(f"Generation succeeded ({outcome}) on attempt {attempt}")
                return itinerary

            log.warning(
                f"Attempt {attempt} produced invalid output "
                f"({len(errors)} problem(s)): {'; '.join(errors[:3])}"
            )
            next_prompt = self.prompts.build_repair(
                base_prompt, errors, text, attempt + 1
            )

        log.warning(f"Using fallback itinerary for request {correlation_id}")
        self.metrics.record_outcome("fallback", attempts, self._elapsed_ms(started))
        return build_fallback_itinerary(sample_itinerary)

    async def _call_model(self, prompt: str, temperature: float) -> str:
        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                return await self.model.generate(prompt, temperature=temperature)
        except GenerationFailure:
            raise
        except TimeoutError as e:
            raise GenerationFailure(
                f"Generation timeout after {self.config.timeout_seconds}s",
                retryable=True,
                original_error=e,
            ) from e
        except Exception as e:
            details = classify_error(e)
            raise GenerationFailure(
                f"Model {details.type} error",
                retryable=details.retryable,
                original_error=e,
            ) from e

    @staticmethod
    def _parse_and_validate(
        text: str,
    ) -> tuple[StructuredItinerary | None, list[str]]:
        try:
            parsed = parse_model_output(text)
        except ParsingFailure as e:
            return None, [f"Invalid JSON: {e!s}"]

        candidate = coerce_shape(parsed.value)
        try:
            return StructuredItinerary.model_validate(candidate), []
        except PydanticValidationError as e:
            return None, validation_messages(e)

    def _backoff_seconds(self, attempt: int) -> float:
        base = self.config.retry_base_delay_ms
        return min(base * attempt, base * 3) / 1000

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000

    def get_metrics(self) -> dict[str, Any]:
        """Return engine counters and derived rates."""
        return self.metrics.snapshot()

    def reset_metrics(self) -> None:
        """Clear engine counters. Administrative use only."""
        self.metrics.reset()
        logger.info("Engine metrics reset")

    def clear_cache(self) -> None:
        self.cache.clear()

    def health_check(self) -> dict[str, Any]:
        """
        Cheap synchronous self-test.

        Reports whether a model is configured, whether the fallback path
        still produces schema-valid output, and the current metrics.

        Returns:
            Dictionary with ``status`` (healthy, degraded or unhealthy) and
            ``details``
        """
        is_configured = getattr(self.model, "is_configured", None)
        model_configured = bool(is_configured()) if callable(is_configured) else True
        fallback_valid = is_valid_itinerary(
            build_fallback_itinerary(None).model_dump(mode="json")
        )
        metrics = self.get_metrics()

        if not model_configured or not fallback_valid:
            status = "unhealthy"
        elif metrics["fallback_rate"] > self.config.degraded_fallback_rate * 100:
            status = "degraded"
        else:
            status = "healthy"

        return {
            "status": status,
            "details": {
                "model": self.config.model,
                "model_configured": model_configured,
                "fallback_schema_valid": fallback_valid,
                "metrics": metrics,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        }

    async def deep_health_check(self) -> dict[str, Any]:
        """
        Run a real small generation and report whether the model produced it.

        Returns:
            Dictionary with ``status`` and ``details``
        """
        fallbacks_before = self.metrics.snapshot()["fallback_used"]
        try:
            result = await self.generate_guaranteed_json(
                HEALTH_CHECK_PROMPT, None, "", "", "", "health-check"
            )
        except Exception as e:
            logger.error(f"Deep health check failed: {e!s}")
            return {
                "status": "unhealthy",
                "details": {
                    "error": str(e),
                    "timestamp": datetime.now(UTC).isoformat(),
                },
            }

        used_fallback = self.metrics.snapshot()["fallback_used"] > fallbacks_before
        valid = is_valid_itinerary(result.model_dump(mode="json"))
        return {
            "status": "healthy" if valid and not used_fallback else "degraded",
            "details": {
                "valid_output": valid,
                "used_fallback": used_fallback,
                "output_preview": json.dumps(result.model_dump(mode="json"))[:200],
                "metrics": self.get_metrics(),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        }

"""
Post-processing for generated itineraries.

Removes repeated activities, lays activities out as ``Day N - Morning /
Afternoon / Evening`` periods for the requested duration and explains every
empty slot.
"""

import copy
import re
from typing import Any

from itinerary_pipeline.config import config
from itinerary_pipeline.services.peak_hours import is_currently_peak_hours
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

SLOTS = ("Morning", "Afternoon", "Evening")
PLACEHOLDER_TITLES = {"no available activity", "activity"}

EMPTY_RESULT = {
    "title": "Could Not Generate Itinerary",
    "subtitle": "Please try adjusting your preferences",
    "items": [],
}

_SLOT_PRIORITY = {
    "Morning": ("Morning", "Flexible", "Afternoon", "Evening"),
    "Afternoon": ("Afternoon", "Flexible", "Morning", "Evening"),
    "Evening": ("Evening", "Flexible", "Afternoon", "Morning"),
}

_SLOT_MESSAGES = {
    "morning": (
        "Morning peak hours at popular viewpoints (6-8 AM) create crowded "
        "conditions. This flexible time lets you visit scenic spots after 9 AM "
        "when parking is easier and the atmosphere is calmer.",
        "Tour buses fill up Baguio's key attractions early. Use this window for "
        "a relaxing breakfast or a quiet stroll before tackling the main sights "
        "at off-peak hours.",
        "Traffic sensors show a short-lived morning rush. Holding this slot open "
        "keeps your day adaptable for weather or spontaneous discoveries later on.",
    ),
    "afternoon": (
        "Afternoon congestion around Session Road and SM Baguio peaks from "
        "12-3 PM. This buffer keeps your group rested before diving into "
        "late-day adventures.",
        "Mountain roads heading to panoramic viewpoints slow down after lunch. "
        "Stay flexible now so you can visit during clearer, late-afternoon windows.",
        "Cloud buildup is common mid-afternoon. Keeping this slot open lets you "
        "pivot to indoor cafés or museums until skies clear.",
    ),
    "evening": (
        "Dinner rush in Baguio spikes between 6-7 PM. Waiting it out means "
        "shorter queues and better service once the crowd thins.",
        "Night markets and cafés come alive later in the evening. This empty "
        "slot is your strategic buffer to explore them after peak traffic eases.",
        "Evening weather can turn misty. Keeping plans flexible allows you to "
        "choose between cozy indoor spots or a late-night stroll when "
        "conditions improve.",
    ),
}
_GENERIC_MESSAGE = (
    "This period stays open to adapt to real-time traffic and crowd conditions, "
    "giving your group room for spontaneous exploration."
)


def _title_key(activity: Any) -> str:
    if not isinstance(activity, dict):
        return ""
    title = activity.get("title")
    return title.strip().lower() if isinstance(title, str) else ""


def infer_slot(label: str | None) -> str:
    """Infer Morning/Afternoon/Evening from a period label, else Flexible."""
    text = (label or "").lower()
    if re.search(r"morning|\bam\b", text):
        return "Morning"
    if re.search(r"afternoon|\bpm\b", text):
        return "Afternoon"
    if re.search(r"evening|night", text):
        return "Evening"
    return "Flexible"


def empty_slot_reason(day_number: int, slot: str, duration_days: int) -> str:
    """Deterministic explanation for a period with no activities."""
    normalized = slot.lower()
    if day_number == duration_days and normalized == "evening":
        return (
            "This final evening is left unscheduled to allow for a stress-free "
            "departure. Use this time for last-minute shopping, a farewell "
            "dinner, or simply to reflect on your Baguio experience."
        )
    if day_number == 1 and normalized == "morning":
        return (
            "Your first morning is intentionally flexible. After arriving and "
            "getting settled, this time allows you to ease into Baguio's relaxed "
            "pace with a hearty breakfast or a light walk."
        )
    candidates = _SLOT_MESSAGES.get(normalized, (_GENERIC_MESSAGE,))
    return candidates[day_number % len(candidates)]


def remove_duplicate_activities(itinerary: dict[str, Any]) -> dict[str, Any]:
    """Drop activities whose title was already used earlier in the itinerary."""
    items = itinerary.get("items")
    if not isinstance(items, list):
        return itinerary

    seen: set[str] = set()
    result = dict(itinerary)
    result["items"] = []
    for period in items:
        if not isinstance(period, dict) or not isinstance(period.get("activities"), list):
            result["items"].append(period)
            continue
        kept = []
        for activity in period["activities"]:
            key = _title_key(activity)
            if not key or key in seen:
                continue
            seen.add(key)
            kept.append(activity)
        result["items"].append({**period, "activities": kept})
    return result


def organize_by_days(itinerary: dict[str, Any], duration_days: int | None) -> dict[str, Any]:
    """
    Redistribute activities into ``duration_days`` days of three slots,
    capped at the configured maximum duration.

    Each slot first receives at most one activity from its preferred pool,
    then leftovers are spread round-robin.

    Args:
        itinerary: Itinerary with ``items``
        duration_days: Requested number of days

    Returns:
        A new itinerary, or the input unchanged when no duration is known
    """
    items = itinerary.get("items")
    if not duration_days or duration_days <= 0 or not isinstance(items, list):
        return itinerary
    duration_days = min(duration_days, config.pipeline.max_duration_days)
    if duration_days <= 0:
        return itinerary

    queues: dict[str, list[dict[str, Any]]] = {
        "Morning": [], "Afternoon": [], "Evening": [], "Flexible": [],
    }
    for period in items:
        if not isinstance(period, dict):
            continue
        slot = infer_slot(period.get("period"))
        for activity in period.get("activities") or []:
            key = _title_key(activity)
            if key and key not in PLACEHOLDER_TITLES:
                queues[slot].append(activity)

    def take(slot: str, strict: bool) -> dict[str, Any] | None:
        order = _SLOT_PRIORITY[slot] if strict else (*_SLOT_PRIORITY[slot], "Flexible")
        for name in order:
            if queues[name]:
                return queues[name].pop(0)
        return None

    days = [{slot: [] for slot in SLOTS} for _ in range(duration_days)]
    for bucket in days:
        for slot in SLOTS:
            activity = take(slot, strict=True)
            if activity:
                bucket[slot].append(activity)

    while any(queues.values()):
        for bucket in days:
            for slot in SLOTS:
                activity = take(slot, strict=False)
                if activity:
                    bucket[slot].append(activity)

    result = dict(itinerary)
    result["items"] = [
        {"period": f"Day {index} - {slot}", "activities": bucket[slot]}
        for index, bucket in enumerate(days, start=1)
        for slot in SLOTS
    ]
    return result


def _resolve_duration(items: list[dict[str, Any]], duration_days: int | None) -> int:
    if duration_days:
        return min(duration_days, config.pipeline.max_duration_days)
    labels = {
        str(item.get("period") or "").split(" - ")[0].strip()
        for item in items
        if item.get("period")
    }
    return len(labels) or len(items) or 1


def _day_and_slot(label: str | None) -> tuple[int, str]:
    raw_day, _, raw_slot = (label or "").partition(" - ")
    match = re.search(r"(\d+)", raw_day)
    return (int(match.group(1)) if match else 1), (raw_slot or "Flexible")


class ItineraryResponseHandler:
    """Default post-processor applied to generated itineraries."""

    def normalize(
        self,
        structured: dict[str, Any],
        prompt: str,
        duration_days: int | None,
        peak_hours_context: str,
    ) -> dict[str, Any]:
        """
        Clean up a generated itinerary.

        Args:
            structured: Schema-valid itinerary as a dict
            prompt: Original user prompt
            duration_days: Requested duration, if known
            peak_hours_context: Peak hours guidance used for generation

        Returns:
            The normalized itinerary; a "Could Not Generate Itinerary"
            structure when nothing usable remains
        """
        processed = remove_duplicate_activities(copy.deepcopy(structured))
        processed = organize_by_days(processed, duration_days)

        items = [item for item in processed.get("items") or [] if isinstance(item, dict)]
        if not items:
            subtitle = str(processed.get("subtitle") or "")
            if "could not find" in subtitle.lower():
                return {**processed, "items": []}
            logger.warning(f"No itinerary periods generated for prompt: {prompt[:80]}")
            return copy.deepcopy(EMPTY_RESULT)

        duration = _resolve_duration(items, duration_days)
        peak_count = 0
        final_items = []
        for item in items:
            activities = [
                activity
                for activity in item.get("activities") or []
                if _title_key(activity) and _title_key(activity) not in PLACEHOLDER_TITLES
            ]
            peak_count += sum(
                1
                for activity in activities
                if is_currently_peak_hours(activity.get("peakHours"))
            )
            period = {**item, "activities": activities}
            if not activities and not period.get("reason"):
                day_number, slot = _day_and_slot(item.get("period"))
                period["reason"] = empty_slot_reason(day_number, slot, duration)
            final_items.append(period)

        if peak_count:
            logger.warning(f"{peak_count} activities are currently in peak hours")

        processed["items"] = final_items
        return processed

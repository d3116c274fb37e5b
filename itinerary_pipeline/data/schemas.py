"""
Target output schema for generated itineraries.

Every value returned by the generation engine validates against
``StructuredItinerary``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError


class Activity(BaseModel):
    """A single activity in an itinerary period."""

    model_config = ConfigDict(extra="allow")

    image: str = Field(min_length=1)
    title: str = Field(min_length=1)
    time: str = Field(min_length=1)
    desc: str
    tags: list[str]
    peakHours: str | None = None
    relevanceScore: float | None = None
    isCurrentlyPeak: bool | None = None


class ItineraryPeriod(BaseModel):
    """One period of the itinerary, such as ``Day 1 - Morning``."""

    period: str = Field(min_length=1)
    activities: list[Activity]
    reason: str | None = None


class StructuredItinerary(BaseModel):
    """The complete structured itinerary document."""

    title: str = Field(min_length=1)
    subtitle: str = Field(min_length=1)
    items: list[ItineraryPeriod] = Field(min_length=1)


def validation_messages(error: PydanticValidationError) -> list[str]:
    """
    Flatten a pydantic validation error into ``path: message`` strings.

    Args:
        error: The validation error to flatten

    Returns:
        One message per violation
    """
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        messages.append(f"{location}: {item['msg']}")
    return messages


def is_valid_itinerary(value: Any) -> bool:
    """Return True if ``value`` validates against the itinerary schema."""
    try:
        StructuredItinerary.model_validate(value)
    except PydanticValidationError:
        return False
    return True

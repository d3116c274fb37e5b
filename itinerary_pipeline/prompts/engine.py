"""
Prompts used by the guaranteed JSON engine.

Builds the strict JSON-only generation prompt, its progressively simpler
retry variants, and the repair prompt that feeds validation errors back to
the model.
"""

import json
from typing import Any

from itinerary_pipeline.utils.helpers import truncate_text

MAX_BAD_RESPONSE_CHARS = 2000

SIMPLIFICATIONS = (
    "",
    "SIMPLIFIED MODE: Focus on basic structure with minimal activities.",
    "MINIMAL MODE: Return simple itinerary with 1-2 activities maximum.",
    "FALLBACK MODE: Return basic structure even if activities are generic.",
)

EXAMPLE_OUTPUT = {
    "title": "Baguio City Adventure",
    "subtitle": "2-day cultural and nature exploration",
    "items": [
        {
            "period": "Day 1 - Morning",
            "activities": [
                {
                    "image": "/images/burnham_park.jpg",
                    "title": "Burnham Park",
                    "time": "8:00-10:00AM",
                    "desc": (
                        "Start your day at this iconic park with LOW traffic "
                        "conditions. Perfect time for peaceful walks and boat rides."
                    ),
                    "tags": ["Nature", "Family-friendly", "Iconic"],
                }
            ],
        }
    ],
}


def allowed_activity_titles(sample_itinerary: dict[str, Any] | None) -> list[str]:
    """
    Collect the distinct activity titles in a sample itinerary.

    Args:
        sample_itinerary: Sample itinerary with ``items[].activities[].title``

    Returns:
        Titles in first-seen order
    """
    if not isinstance(sample_itinerary, dict):
        return []

    titles: dict[str, None] = {}
    for item in sample_itinerary.get("items") or []:
        if not isinstance(item, dict):
            continue
        for activity in item.get("activities") or []:
            title = activity.get("title") if isinstance(activity, dict) else None
            if isinstance(title, str) and title.strip():
                titles[title.strip()] = None
    return list(titles)


class GenerationPromptBuilder:
    """Builds prompts for strict JSON itinerary generation."""

    def build(
        self,
        prompt: str,
        sample_itinerary: dict[str, Any] | None,
        weather_context: str,
        peak_hours_context: str,
        additional_context: str = "",
    ) -> str:
        """Build the full generation prompt."""
        sections: list[str] = [
            "<role>\n"
            "You are a professional travel itinerary generator. Your ONLY job is "
            "to return a valid JSON object that matches the schema provided. "
            "Never return explanatory text, markdown formatting, code blocks or "
            "comments.\n"
            "</role>",
            prompt.strip(),
        ]

        if sample_itinerary:
            sections.append(
                "EXCLUSIVE DATABASE: "
                + json.dumps(sample_itinerary, ensure_ascii=False, default=str)
            )

        titles = allowed_activity_titles(sample_itinerary)
        if titles:
            sections.append(
                "ALLOWED ACTIVITY TITLES (USE EXACTLY AS WRITTEN):\n"
                + "\n".join(f"- {title}" for title in titles)
                + "\n\nRULES:\n"
                "- Select activities only from the titles above.\n"
                "- Never invent new establishments, activities or locations.\n"
                "- If no suitable activity exists for a period, return an empty "
                '"activities" array for that period and explain why in "reason".'
            )

        context_lines = [
            line for line in (weather_context, peak_hours_context, additional_context)
            if line
        ]
        if context_lines:
            sections.append(
                "<context>\n" + "\n".join(context_lines) + "\n</context>"
            )

        sections.append(
            "EXAMPLE OUTPUT FORMAT:\n" + json.dumps(EXAMPLE_OUTPUT, indent=2)
        )
        sections.append(self._schema_section())
        sections.append(
            "FINAL INSTRUCTION: Return ONLY the JSON object. No explanations, "
            "no markdown, no code blocks. Just pure JSON."
        )
        return "\n\n".join(sections)

    def progressive(self, base_prompt: str, attempt: int) -> str:
        """
        Simplify a prompt for a later attempt.

        Args:
            base_prompt: Prompt built by :meth:`build`
            attempt: 1-based attempt number

        Returns:
            The base prompt with the simplification note for this attempt
        """
        level = min(max(attempt - 1, 0), len(SIMPLIFICATIONS) - 1)
        if level == 0:
            return base_prompt
        return f"{base_prompt}\n\n{SIMPLIFICATIONS[level]}"

    def build_repair(
        self,
        base_prompt: str,
        errors: list[str],
        bad_response: str,
        attempt: int,
    ) -> str:
        """
        Build a prompt asking the model to correct its previous output.

        Args:
            base_prompt: Prompt built by :meth:`build`
            errors: Parse or validation messages for the previous output
            bad_response: The previous raw output
            attempt: 1-based attempt number of the upcoming call

        Returns:
            The repair prompt
        """
        error_lines = "\n".join(f"- {error}" for error in errors[:20]) or "- unknown"
        return (
            f"{self.progressive(base_prompt, attempt)}\n\n"
            "<previous_output>\n"
            f"{truncate_text(bad_response, MAX_BAD_RESPONSE_CHARS)}\n"
            "</previous_output>\n\n"
            "Your previous output was rejected for these reasons:\n"
            f"{error_lines}\n\n"
            "Return a corrected JSON object that fixes every problem above and "
            "matches the schema exactly."
        )

    @staticmethod
    def _schema_section() -> str:
        return (
            "MANDATORY JSON SCHEMA:\n"
            "- title: non-empty string\n"
            "- subtitle: non-empty string\n"
            "- items: array with at least one period object\n"
            '  - period: string like "Day X - Morning/Afternoon/Evening"\n'
            "  - activities: array of activity objects (may be empty)\n"
            "  - reason: string explaining an empty period (optional)\n"
            "    - image: non-empty image path from the database\n"
            "    - title: exact activity title from the database\n"
            '    - time: non-empty time slot like "9:00-10:30AM"\n'
            "    - desc: description including traffic information\n"
            "    - tags: array of strings from the database"
        )

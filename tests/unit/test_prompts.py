"""
Tests for the generation and detailed prompt builders.
"""

from datetime import datetime

from itinerary_pipeline.prompts.context import (
    budget_category,
    build_detailed_prompt,
    build_traffic_aware_context,
    build_weather_context,
    pax_category,
)
from itinerary_pipeline.prompts.engine import (
    MAX_BAD_RESPONSE_CHARS,
    GenerationPromptBuilder,
    allowed_activity_titles,
)
from itinerary_pipeline.services.peak_hours import MANILA_TZ

FIXED_NOW = datetime(2024, 3, 9, 14, 5, tzinfo=MANILA_TZ)


def test_allowed_activity_titles_dedupes_in_order(sample_itinerary):
    sample_itinerary["items"].append(
        {"period": "Extra", "activities": [{"title": " Burnham Park "}, {"title": ""}, "bad"]}
    )

    assert allowed_activity_titles(sample_itinerary) == [
        "Burnham Park",
        "Bencab Museum",
        "Baguio Night Market",
    ]
    assert allowed_activity_titles(None) == []


def test_build_includes_database_and_context(sample_itinerary):
    prompt = GenerationPromptBuilder().build(
        "Plan a day", sample_itinerary, "Weather: clear, 20°C", "PEAK INFO", "Duration: 1 days"
    )

    assert prompt.index("<role>") < prompt.index("Plan a day")
    assert "EXCLUSIVE DATABASE" in prompt
    assert "- Bencab Museum" in prompt
    assert "<context>\nWeather: clear, 20°C\nPEAK INFO\nDuration: 1 days\n</context>" in prompt
    assert "MANDATORY JSON SCHEMA" in prompt
    assert prompt.rstrip().endswith("Just pure JSON.")


def test_build_without_sample_or_context():
    prompt = GenerationPromptBuilder().build("Plan a day", None, "", "")

    assert "EXCLUSIVE DATABASE" not in prompt
    assert "ALLOWED ACTIVITY TITLES" not in prompt
    assert "<context>" not in prompt


def test_progressive_levels():
    builder = GenerationPromptBuilder()

    assert builder.progressive("BASE", 1) == "BASE"
    assert "SIMPLIFIED MODE" in builder.progressive("BASE", 2)
    assert "MINIMAL MODE" in builder.progressive("BASE", 3)
    assert "FALLBACK MODE" in builder.progressive("BASE", 4)
    assert "FALLBACK MODE" in builder.progressive("BASE", 9)


def test_build_repair_quotes_errors_and_truncates_output():
    builder = GenerationPromptBuilder()
    bad = "x" * (MAX_BAD_RESPONSE_CHARS + 500)

    prompt = builder.build_repair("BASE", ["items: Field required"], bad, 2)

    assert prompt.startswith("BASE")
    assert "SIMPLIFIED MODE" in prompt
    assert "- items: Field required" in prompt
    assert "x" * (MAX_BAD_RESPONSE_CHARS + 1) not in prompt
    assert "..." in prompt


def test_weather_context_by_condition():
    rainy = build_weather_context(
        {"weather": [{"id": 501, "description": "moderate rain"}], "main": {"temp": 16}}
    )
    assert rainy.startswith("moderate rain (16°C)")
    assert "Indoor-Friendly" in rainy

    cold = build_weather_context({"main": {"temp": 9}})
    assert "warming options" in cold

    assert build_weather_context(None) == (
        "Weather:  at 20°C. Balance indoor/outdoor activities."
    )


def test_budget_and_pax_categories():
    assert budget_category(None) is None
    assert budget_category("custom") == "custom"
    assert pax_category(None) is None
    assert pax_category("2") == "Couple"
    assert pax_category("6+") == "Group"


def test_traffic_aware_context_counts_levels():
    activities = [
        {"trafficAnalysis": {"realTimeTraffic": {"trafficLevel": "LOW"}}},
        {"trafficAnalysis": {"realTimeTraffic": {"trafficLevel": "LOW"}}},
        {"trafficAnalysis": {"realTimeTraffic": {"trafficLevel": "MODERATE"}}},
        {"title": "no analysis"},
    ]

    context = build_traffic_aware_context(activities)

    assert "VERY_LOW: 0, LOW: 2, MODERATE: 1" in context
    assert "pre-filtered list (4 items)" in context
    assert "pre-filtered list" not in build_traffic_aware_context(activities, False)


def test_detailed_prompt_sections(sample_itinerary):
    """Test that the detailed prompt carries every directive block."""
    prompt = build_detailed_prompt(
        "Weekend food trip",
        sample_itinerary,
        {"weather": [{"id": 800, "description": "clear sky"}], "main": {"temp": 22}},
        ["Food & Culinary"],
        2,
        budget="₱1,000 - ₱3,000",
        pax="3-5",
        now=FIXED_NOW,
    )

    assert prompt.startswith("Weekend food trip")
    assert "EXCLUSIVE ACTIVITY LIST" in prompt
    assert "Baguio Night Market" in prompt
    assert "Outdoor-Friendly" in prompt
    assert "Current time: 2:05 PM on Saturday" in prompt
    assert "specific interest in: Food & Culinary" in prompt
    assert "This is a 2-day trip" in prompt
    assert "budget preference is ₱1,000 - ₱3,000" in prompt
    assert "The group size is 3-5" in prompt
    assert "1. Cover exactly 2 day(s)" in prompt


def test_detailed_prompt_without_activities():
    prompt = build_detailed_prompt("Anything", {"items": []}, None, ["Random"], None, now=FIXED_NOW)

    assert "ERROR: No activities found in database" in prompt
    assert "balanced mix of Baguio's highlights" in prompt
    assert "Cover exactly the requested day(s)" in prompt
    assert "budget preference" not in prompt

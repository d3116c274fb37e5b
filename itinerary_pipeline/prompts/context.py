"""
Detailed prompt builder for itinerary generation.

Combines the user's request with the curated activity list, weather and
peak-hours guidance, traffic summary and preference directives (interests,
duration, budget, party size).
"""

import json
from datetime import datetime
from typing import Any

from itinerary_pipeline.services.peak_hours import get_peak_hours_context
from itinerary_pipeline.services.weather import classify_weather_condition, weather_fields

MAX_CURATED_ACTIVITIES = 18
RANDOM_INTEREST = "Random"

WEATHER_CONTEXTS = {
    "thunderstorm": (
        'WARNING: {desc} ({temp}°C). ONLY indoor activities: Museums, malls, '
        'indoor dining. Select "Indoor-Friendly" tagged activities only.'
    ),
    "rainy": (
        '{desc} ({temp}°C). Prioritize "Indoor-Friendly" tagged activities: '
        "Museums, malls, covered dining."
    ),
    "snow": (
        '{desc} ({temp}°C)! Focus on "Indoor-Friendly" activities: warm venues, '
        "hot beverages, brief safe outdoor viewing."
    ),
    "foggy": (
        '{desc} ({temp}°C). Use "Indoor-Friendly" or "Weather-Flexible" '
        "activities. Avoid viewpoints."
    ),
    "cloudy": '{desc} ({temp}°C). Mix of "Weather-Flexible" activities. Good for photography.',
    "clear": (
        '{desc} ({temp}°C). Perfect for "Outdoor-Friendly" activities: hiking, '
        "parks, viewpoints."
    ),
    "cold": '{desc} ({temp}°C). Prioritize "Indoor-Friendly" activities with warming options.',
    "default": "Weather: {desc} at {temp}°C. Balance indoor/outdoor activities.",
}

INTEREST_DETAILS = {
    "Nature & Scenery": (
        "- Nature & Scenery: Burnham Park, Mines View Park, Wright Park, Camp John "
        "Hay, Botanical Garden, Mirador Heritage and Eco Park, Valley of Colors, "
        "Mt. Kalugong, Great wall of Baguio, Camp John Hay Yellow Trail, Lions "
        "Head, Baguio Cathedral, The Mansion, Diplomat Hotel"
    ),
    "Food & Culinary": (
        "- Food & Culinary: Baguio Night Market, SM City Baguio, Baguio Public "
        "Market, Good Shepherd Convent"
    ),
    "Culture & Arts": (
        "- Culture & Arts: Bencab Museum, Tam-Awan Village, Ili-Likha Artists "
        "Village, Baguio Cathedral, The Mansion, Diplomat Hotel, Philippine "
        "Military Academy, Mirador Heritage and Eco Park, Valley of Colors, "
        "Easter Weaving Room"
    ),
    "Shopping & Local Finds": (
        "- Shopping & Local Finds: Baguio Night Market, Baguio Public Market, SM "
        "City Baguio, Good Shepherd Convent, Easter Weaving Room, Ili-Likha "
        "Artists Village"
    ),
    "Adventure": (
        "- Adventure: Burnham Park, Wright Park, Camp John Hay, Tam-Awan Village, "
        "Great wall of Baguio, Camp John Hay Yellow Trail, Mt. Kalugong"
    ),
}

BUDGET_CATEGORIES = {
    "less than ₱3,000/day": "Budget",
    "₱3,000 - ₱5,000/day": "Budget",
    "₱5,000 - ₱10,000/day": "Mid-range",
    "₱10,000+/day": "Luxury",
}

BUDGET_GUIDANCE = {
    "Budget": (
        "From the sample itinerary database, prioritize activities with the "
        "'Budget-friendly' tag. Focus on affordable dining, free/low-cost "
        "attractions, public transportation, and budget accommodations."
    ),
    "Mid-range": (
        "From the sample itinerary database, select a mix of budget and premium "
        "activities. Include moderate restaurants, standard attraction fees, "
        "occasional taxis, and mid-range accommodations."
    ),
    "Luxury": (
        "From the sample itinerary database, include premium experiences where "
        "available. Recommend fine dining options, private transportation, and "
        "luxury accommodations."
    ),
}

PAX_CATEGORIES = {"1": "Solo", "2": "Couple", "3-5": "Family", "6+": "Group"}

PAX_GUIDANCE = {
    "Solo": (
        "From the sample itinerary database, select activities that are enjoyable "
        "for solo travelers. Include social opportunities and safety considerations."
    ),
    "Couple": (
        "From the sample itinerary database, prioritize activities suitable for "
        "couples. Include romantic settings and intimate dining options."
    ),
    "Family": (
        "From the sample itinerary database, prioritize activities with the "
        "'Family-friendly' tag if available. Include child-appropriate options "
        "and group dining venues."
    ),
    "Group": (
        "From the sample itinerary database, select activities that can "
        "accommodate larger parties, including group-friendly venues and dining."
    ),
}

DURATION_GUIDANCE = {
    1: (
        "Focus on must-see highlights and efficient time management. Select 2 "
        "activities per time period (morning, afternoon, evening) from the sample database."
    ),
    2: (
        "Balance major attractions with some deeper local experiences. Select 2 "
        "activities per time period per day from the sample database."
    ),
    3: (
        "Include major attractions and allow time to explore local neighborhoods. "
        "Select 2 activities per time period per day, allowing for more relaxed pacing."
    ),
}
LONG_TRIP_GUIDANCE = (
    "Include major attractions, local experiences, and some day trips to nearby "
    "areas. Select 1-2 activities per time period per day from the sample "
    "database, allowing for a very relaxed pace."
)


def budget_category(budget: str | None) -> str | None:
    """Map a budget option to Budget/Mid-range/Luxury; unknown values pass through."""
    if not budget:
        return None
    return BUDGET_CATEGORIES.get(budget, budget)


def pax_category(pax: str | None) -> str | None:
    """Map a party-size option to Solo/Couple/Family/Group; unknown values pass through."""
    if not pax:
        return None
    return PAX_CATEGORIES.get(pax, pax)


def build_weather_context(raw_weather: dict[str, Any] | None) -> str:
    """Weather guidance line for the detailed prompt."""
    weather_id, description, temperature = weather_fields(raw_weather)
    condition = classify_weather_condition(weather_id, temperature)
    return WEATHER_CONTEXTS[condition].format(desc=description, temp=temperature)


def build_traffic_aware_context(
    activities: list[dict[str, Any]], restrict_to_provided: bool = True
) -> str:
    """Summarize the traffic levels attached to the candidate activities."""
    counts = {"VERY_LOW": 0, "LOW": 0, "MODERATE": 0}
    for activity in activities:
        analysis = activity.get("trafficAnalysis") if isinstance(activity, dict) else None
        level = ((analysis or {}).get("realTimeTraffic") or {}).get("trafficLevel")
        if level in counts:
            counts[level] += 1

    lines = [
        "Traffic context: all activities already filtered to VERY_LOW/LOW/MODERATE levels.",
        f"Summary - VERY_LOW: {counts['VERY_LOW']}, LOW: {counts['LOW']}, "
        f"MODERATE: {counts['MODERATE']}.",
        "Emphasize the positive traffic outlook; high congestion items were removed upstream.",
    ]
    if restrict_to_provided:
        lines.append(
            f"Only use the pre-filtered list ({len(activities)} items). "
            "No new activities may be introduced."
        )
    return "\n".join(lines)


def _curated_activities(sample_itinerary: dict[str, Any] | None) -> list[dict[str, Any]]:
    sample = sample_itinerary or {}
    allowed = (sample.get("searchMetadata") or {}).get("allowedActivities")
    if not isinstance(allowed, list) or not allowed:
        allowed = [
            activity
            for item in sample.get("items") or []
            for activity in (item.get("activities") or [])
        ]
    return [
        {"title": activity.get("title"), "desc": activity.get("desc"), "tags": activity.get("tags")}
        for activity in allowed[:MAX_CURATED_ACTIVITIES]
        if isinstance(activity, dict)
    ]


def _interests_directive(interests: list[str]) -> str:
    chosen = [interest for interest in interests if interest != RANDOM_INTEREST]
    if not interests or RANDOM_INTEREST in interests or not chosen:
        return (
            "The visitor hasn't specified particular interests, so provide a balanced "
            "mix of Baguio's highlights across different categories."
        )
    details = "\n".join(
        INTEREST_DETAILS.get(
            interest, f"- {interest}: Select appropriate activities from the sample database"
        )
        for interest in chosen
    )
    return (
        f"The visitor has expressed specific interest in: {', '.join(chosen)}.\n"
        "From the sample itinerary database, prioritize activities that have tags "
        f"matching these interests:\n{details}\n"
        "Ensure these activities are also appropriate for the current weather conditions."
    )


def build_detailed_prompt(
    prompt: str,
    sample_itinerary: dict[str, Any] | None,
    raw_weather: dict[str, Any] | None,
    interests: list[str],
    duration_days: int | None,
    budget: str | None = None,
    pax: str | None = None,
    restrict_to_sample: bool = True,
    now: datetime | None = None,
) -> str:
    """
    Build the detailed generation prompt for a request.

    Args:
        prompt: User's free-text request
        sample_itinerary: Sample itinerary from the retrieval stage
        raw_weather: Raw weather payload, if any
        interests: Requested interests
        duration_days: Requested duration in days
        budget: Budget option
        pax: Party-size option
        restrict_to_sample: Whether to forbid activities outside the sample
        now: Override for the current time

    Returns:
        The prompt text
    """
    curated = _curated_activities(sample_itinerary)
    if curated:
        activity_context = (
            "EXCLUSIVE ACTIVITY LIST: "
            + json.dumps({"activities": curated}, ensure_ascii=False)
            + "\nRULE: Recommend only activities present in this list. Do not invent items."
        )
    else:
        activity_context = (
            "ERROR: No activities found in database. Return an error message "
            "stating insufficient data."
        )

    sample_activities = [
        activity
        for item in (sample_itinerary or {}).get("items") or []
        for activity in (item.get("activities") or [])
    ]

    directives = [
        "- Use only activities present in the exclusive list above. No improvisation.",
        "- Pre-filtering already removed high-traffic options; describe remaining "
        "picks with positive traffic framing.",
        f"- {_interests_directive(interests)}",
    ]
    if duration_days:
        directives.append(
            f"- This is a {duration_days}-day trip, so pace the itinerary accordingly: "
            + DURATION_GUIDANCE.get(duration_days, LONG_TRIP_GUIDANCE)
        )
    budget_kind = budget_category(budget)
    if budget_kind:
        directives.append(
            f"- The visitor's budget preference is {budget}. "
            + BUDGET_GUIDANCE.get(budget_kind, "")
        )
    pax_kind = pax_category(pax)
    if pax_kind:
        directives.append(
            f"- The group size is {pax}. " + PAX_GUIDANCE.get(pax_kind, "")
        )

    days_label = duration_days if duration_days else "the requested"
    requirements = [
        f"1. Cover exactly {days_label} day(s) with Morning (8-12), Afternoon (12-18), Evening (18+).",
        "2. Do not repeat any activity across periods or days.",
        "3. For each activity include: exact image URL, title, time window, concise "
        "description mentioning why timing is optimal, and tags from the database.",
        "4. If a slot cannot be filled, leave activities [] and add a traffic-aware reason.",
        '5. Respond with JSON object: { "title", "subtitle", "items": '
        '[ { "period", "activities": [...], "reason"? } ] }.',
        "6. Validate that every string (title, tags, image) exactly matches the "
        "provided database entry.",
    ]

    return "\n\n".join(
        [
            prompt.strip(),
            activity_context,
            build_weather_context(raw_weather),
            get_peak_hours_context(now),
            build_traffic_aware_context(sample_activities, restrict_to_sample),
            "Key directives:\n" + "\n".join(directive.rstrip() for directive in directives),
            "Output requirements:\n" + "\n".join(requirements),
        ]
    )

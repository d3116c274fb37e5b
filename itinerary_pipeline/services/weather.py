"""
Weather provider that reads weather data supplied with the request, plus
classification of OpenWeather-style condition codes.
"""

from typing import Any

WEATHER_TAG_FILTERS: dict[str, tuple[str, ...]] = {
    "thunderstorm": ("Indoor-Friendly",),
    "rainy": ("Indoor-Friendly",),
    "snow": ("Indoor-Friendly",),
    "foggy": ("Indoor-Friendly", "Weather-Flexible"),
    "cloudy": ("Outdoor-Friendly", "Weather-Flexible"),
    "clear": ("Outdoor-Friendly",),
    "cold": ("Indoor-Friendly",),
    "default": (),
}

DEFAULT_TEMPERATURE_C = 20


def classify_weather_condition(weather_id: int | None, temperature: float | None) -> str:
    """
    Classify an OpenWeather condition id into a coarse weather type.

    Args:
        weather_id: OpenWeather condition id (0 or None when unknown)
        temperature: Temperature in °C

    Returns:
        One of the keys of ``WEATHER_TAG_FILTERS``
    """
    code = weather_id or 0
    if 200 <= code <= 232:
        return "thunderstorm"
    if 300 <= code <= 321 or 500 <= code <= 531:
        return "rainy"
    if 600 <= code <= 622:
        return "snow"
    if 701 <= code <= 781:
        return "foggy"
    if code == 800:
        return "clear"
    if 801 <= code <= 804:
        return "cloudy"
    if temperature is not None and temperature < 15:
        return "cold"
    return "default"


def weather_fields(raw: dict[str, Any] | None) -> tuple[int, str, float]:
    """Extract ``(id, description, temperature)`` from a raw weather payload."""
    raw = raw or {}
    conditions = raw.get("weather") or [{}]
    first = conditions[0] if isinstance(conditions, list) and conditions else {}
    if not isinstance(first, dict):
        first = {}
    main = raw.get("main") if isinstance(raw.get("main"), dict) else {}
    temperature = main.get("temp")
    if not isinstance(temperature, int | float):
        temperature = DEFAULT_TEMPERATURE_C
    weather_id = first.get("id") if isinstance(first.get("id"), int) else 0
    return weather_id, str(first.get("description") or ""), temperature


class RequestWeatherProvider:
    """Use the ``weatherData`` object sent by the client, if any."""

    async def get_weather(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        weather = payload.get("weatherData")
        if isinstance(weather, dict):
            return weather
        return None

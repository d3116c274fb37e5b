"""
Coordinates for well-known Baguio City locations.

Used by the context stage to resolve monitored traffic locations to a
latitude/longitude pair.
"""

from pydantic import BaseModel


class LocationCoordinates(BaseModel):
    """Latitude/longitude of a named location."""

    name: str
    lat: float
    lon: float
    category: str


def _location(name: str, lat: float, lon: float, category: str) -> LocationCoordinates:
    return LocationCoordinates(name=name, lat=lat, lon=lon, category=category)


BAGUIO_COORDINATES: dict[str, LocationCoordinates] = {
    loc.name: loc
    for loc in (
        _location("Burnham Park", 16.4138, 120.5934, "park"),
        _location("Mines View Park", 16.4023, 120.5960, "viewpoint"),
        _location("Baguio Cathedral", 16.4156, 120.5923, "religious"),
        _location("Botanical Garden", 16.4167, 120.5889, "nature"),
        _location("The Mansion", 16.4108, 120.5969, "historical"),
        _location("Wright Park", 16.4089, 120.5978, "park"),
        _location("Camp John Hay", 16.4031, 120.5997, "recreational"),
        _location("Bencab Museum", 16.3567, 120.6123, "museum"),
        _location("Tam-Awan Village", 16.4234, 120.5678, "cultural"),
        _location("Baguio Night Market", 16.4134, 120.5945, "market"),
        _location("SM City Baguio", 16.4167, 120.5889, "mall"),
        _location("Baguio Public Market", 16.4145, 120.5923, "market"),
        _location("Good Shepherd Convent", 16.4089, 120.5834, "religious"),
        _location("Mirador Heritage and Eco Park", 16.4201, 120.5812, "nature"),
        _location("Diplomat Hotel", 16.4067, 120.5945, "historical"),
        _location("Lions Head", 16.3978, 120.5945, "viewpoint"),
        _location("Ili-Likha Artists Village", 16.4123, 120.5867, "cultural"),
        _location("Philippine Military Academy", 16.3889, 120.5823, "educational"),
        _location("Valley of Colors", 16.4567, 120.5923, "cultural"),
        _location("Mt. Kalugong", 16.4678, 120.5834, "mountain"),
    )
}


def get_location_coordinates(name: str) -> LocationCoordinates | None:
    """
    Resolve a location name to coordinates.

    Exact names match first; otherwise a case-insensitive containment match
    in either direction is accepted.

    Args:
        name: Location or activity name

    Returns:
        The matching coordinates, or None if the name is unknown
    """
    if name in BAGUIO_COORDINATES:
        return BAGUIO_COORDINATES[name]

    normalized = name.lower().strip()
    if not normalized:
        return None

    for key, coords in BAGUIO_COORDINATES.items():
        normalized_key = key.lower()
        if normalized in normalized_key or normalized_key in normalized:
            return coords

    return None

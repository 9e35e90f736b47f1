"""Pure geofence helpers.

Regions are circles (centre + radius) from configuration. Membership uses the
haversine great-circle distance, which is plenty accurate at the few hundred
metre radii used for home/work fences.
"""

import math

from app.core.config import GeofenceRegion
from app.helpers.errors import InvalidParameterError

EARTH_RADIUS_METRES = 6_371_000


def parse_coordinate(value: str | float | None, parameter: str) -> float:
    """
    Parse a latitude or longitude that may arrive as a query string.

    Raises:
        InvalidParameterError: If the value is empty, non-numeric or out of range
    """
    limit = 90 if parameter == "lat" else 180
    try:
        coordinate = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(parameter, value) from e
    if math.isnan(coordinate) or not -limit <= coordinate <= limit:
        raise InvalidParameterError(parameter, value)
    return coordinate


def distance_metres(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Example:
        >>> round(distance_metres(51.5007, -0.1246, 51.5033, -0.1196))
        451
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METRES * math.asin(math.sqrt(a))


def in_geofence(lat: float, long: float, region: GeofenceRegion) -> bool:
    """Return True if the point lies within ``region`` (boundary inclusive)."""
    return distance_metres(lat, long, region.latitude, region.longitude) <= region.radius_metres


def classify_location(lat: float, long: float, regions: list[GeofenceRegion]) -> dict[str, bool]:
    """
    Membership of a point in each named region.

    Example:
        >>> home = GeofenceRegion(name="home", latitude=51.44, longitude=0.03, radius_metres=200)
        >>> classify_location(51.44, 0.03, [home])
        {'home': True}
    """
    return {region.name: in_geofence(lat, long, region) for region in regions}

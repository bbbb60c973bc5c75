"""Great-circle distance and bearing utilities.

Canonical haversine implementation used by the normalizer to measure each
vessel's remaining distance to the destination.
"""
from __future__ import annotations

import math

from flotilla.errors import InvalidCoordinate

_EARTH_RADIUS_NM: float = 3440.065   # Earth mean radius in nautical miles

# Destination: Gaza coast
DEFAULT_TARGET: tuple[float, float] = (31.5, 34.45)


def _check_coordinate(lat: float, lon: float) -> tuple[float, float]:
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"Invalid coordinates: lat={lat!r}, lon={lon!r}") from None

    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise InvalidCoordinate(f"Non-finite coordinates: lat={lat_f}, lon={lon_f}")
    if not (-90 <= lat_f <= 90):
        raise InvalidCoordinate(f"Latitude out of range: {lat_f}")
    if not (-180 <= lon_f <= 180):
        raise InvalidCoordinate(f"Longitude out of range: {lon_f}")
    return lat_f, lon_f


def haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in nautical miles between two WGS-84 coordinates.

    Raises InvalidCoordinate for missing, non-finite, or out-of-range input.
    """
    lat1, lon1 = _check_coordinate(lat1, lon1)
    lat2, lon2 = _check_coordinate(lat2, lon2)
    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return _EARTH_RADIUS_NM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Forward azimuth from point 1 toward point 2, in degrees [0, 360)."""
    lat1, lon1 = _check_coordinate(lat1, lon1)
    lat2, lon2 = _check_coordinate(lat2, lon2)

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dlam = math.radians(lon2 - lon1)
    x = math.sin(dlam) * math.cos(phi2)
    y = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlam)
    return math.degrees(math.atan2(x, y)) % 360.0

"""
Coordinate and address helpers.

Distances use the haversine formula on a spherical Earth, which is well
within GPS error at the radii a proximity search uses.
"""

from __future__ import annotations

import math
import re

from core.constants import EARTH_RADIUS_METERS, SAME_LOCATION_THRESHOLD_METERS
from core.exceptions import ValidationException
from location.models import Coordinate

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """Return True when ``lat``/``lng`` are finite and inside WGS-84 bounds."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat_f) or math.isnan(lng_f):
        return False
    return -90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0


def make_coordinate(lat: float, lng: float) -> Coordinate:
    """Build a :class:`Coordinate`, rejecting out-of-range values."""
    if not is_valid_coordinate(lat, lng):
        msg = f"Invalid coordinate: lat={lat!r}, lng={lng!r}"
        raise ValidationException(msg, {"lat": lat, "lng": lng})
    return Coordinate(float(lat), float(lng))


def haversine_meters(a: Coordinate, b: Coordinate) -> float:
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_same_location(
    a: Coordinate,
    b: Coordinate,
    threshold_meters: float = SAME_LOCATION_THRESHOLD_METERS,
) -> bool:
    return haversine_meters(a, b) <= threshold_meters


def normalize_address(text: str) -> str:
    """Lower-case, strip punctuation, and collapse whitespace.

    >>> normalize_address("  DLF Mall, Noida!! ")
    'dlf mall noida'
    """
    lowered = (text or "").lower()
    stripped = _PUNCTUATION_RE.sub(" ", lowered)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


__all__ = [
    "haversine_meters",
    "is_same_location",
    "is_valid_coordinate",
    "make_coordinate",
    "normalize_address",
]

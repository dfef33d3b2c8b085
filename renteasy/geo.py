"""Parsing of free-text delivery locations such as ``"Lat: 12.9716, Lng: 77.5946"``."""

import re
from typing import Optional

from renteasy.types import GeoPoint

_NUMBER = r"([-+]?\d+(?:\.\d+)?)"
_LOCATION_RE = re.compile(
    rf"\blat(?:itude)?\s*[:=]?\s*{_NUMBER}\s*[,;]?\s*(?:lng|lon|long|longitude)\s*[:=]?\s*{_NUMBER}",
    re.IGNORECASE,
)


def parse_location(text: Optional[str]) -> Optional[GeoPoint]:
    """Extract coordinates from a ``Lat: x, Lng: y`` string.

    Labels are case-insensitive, ``Lon``/``Long``/``Longitude`` are accepted for the second coordinate and the
    separator between the pairs may be a comma or semicolon. Returns None when the text does not match or the
    values are outside the valid latitude/longitude ranges.
    """
    if not text:
        return None

    match = _LOCATION_RE.search(text)
    if match is None:
        return None

    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return GeoPoint(lat=lat, lng=lng)


def format_location(point: GeoPoint) -> str:
    """Inverse of `parse_location`, in the format the front-end displays."""
    return f"Lat: {point.lat}, Lng: {point.lng}"

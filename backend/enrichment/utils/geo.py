"""Coordinate and script helpers shared by the pipeline stages."""

import math
import re

from backend.enrichment.models.common import Coordinate

# Coverage box of the primary (domestic) map provider.
CHINA_LAT_RANGE = (3.5, 53.6)
CHINA_LNG_RANGE = (73.5, 134.8)

EARTH_RADIUS_METERS = 6_371_000

HAN_CHAR_RE = re.compile(r"[一-鿿]")


def is_coordinate_in_china(coordinate: Coordinate | None) -> bool:
    """Whether a coordinate falls inside the domestic provider's bounding box."""
    if coordinate is None:
        return False
    return (
        CHINA_LAT_RANGE[0] <= coordinate.lat <= CHINA_LAT_RANGE[1]
        and CHINA_LNG_RANGE[0] <= coordinate.lng <= CHINA_LNG_RANGE[1]
    )


def contains_han(value: str | None) -> bool:
    """Whether the text contains any CJK unified ideograph."""
    return bool(value and HAN_CHAR_RE.search(value))


def language_for(value: str | None) -> str:
    """Provider language code matching the script of the text."""
    return "zh-CN" if contains_han(value) else "en"


def append_note(base: str | None, addition: str) -> str | None:
    """Append an annotation in full-width parentheses, skipping duplicates."""
    if not addition:
        return base
    if not base:
        return addition
    if addition in base:
        return base
    return f"{base}（{addition}）"


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance between two coordinates."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_phi = math.radians(b.lat - a.lat)
    delta_lambda = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))

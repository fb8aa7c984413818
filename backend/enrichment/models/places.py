"""Ephemeral lookup results - never persisted, consumed inside the pipeline."""

import math
from typing import Any

from pydantic import BaseModel, Field, field_validator

from backend.enrichment.models.common import Coordinate


class Place(BaseModel):
    """Geocoding lookup result."""

    name: str
    address: str | None = None
    city: str | None = None
    lat: float | None = None
    lng: float | None = None
    provider: str
    confidence: float = Field(default=0.0, ge=0, le=1)
    place_id: str | None = None
    raw: Any = None

    @property
    def coordinate(self) -> Coordinate | None:
        """Valid coordinate pair, or None."""
        return to_coordinate(self.lat, self.lng)


class RecentActivity(BaseModel):
    """Already-located activity handed to the refinement oracle as context."""

    title: str
    address: str | None = None


class RefinementResult(BaseModel):
    """Secondary oracle answer for a poorly located activity.

    Coordinates are kept as-is; callers check them with ``coordinate``.
    """

    refined_name: str | None = None
    address_hint: str | None = None
    search_queries: list[str] = Field(default_factory=list)
    nearby_landmarks: list[str] = Field(default_factory=list)
    latitude: float | None = None
    longitude: float | None = None
    confidence: float | None = None
    reason: str | None = None

    @field_validator("search_queries", "nearby_landmarks", mode="before")
    @classmethod
    def coerce_string_list(cls, v: Any) -> Any:
        """Accept null and drop blank or non-string entries."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [item.strip() for item in v if isinstance(item, str) and item.strip()]
        return v

    @field_validator("latitude", "longitude", "confidence", mode="before")
    @classmethod
    def coerce_optional_number(cls, v: Any) -> Any:
        """Unparseable numbers become None rather than failing the whole result."""
        if v is None or isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @property
    def coordinate(self) -> Coordinate | None:
        """Usable (finite, in-range) coordinate pair, or None."""
        return to_coordinate(self.latitude, self.longitude)

    @property
    def usable_confidence(self) -> float | None:
        """Confidence clamped to [0, 1], or None when absent or non-finite."""
        if self.confidence is None or not math.isfinite(self.confidence):
            return None
        return min(max(self.confidence, 0.0), 1.0)

    def has_hints(self) -> bool:
        """Whether any geocodable hint was returned."""
        return bool(
            (self.refined_name and self.refined_name.strip())
            or (self.address_hint and self.address_hint.strip())
            or self.search_queries
        )


def to_coordinate(lat: float | None, lng: float | None) -> Coordinate | None:
    """Build a Coordinate when both parts are finite and in range."""
    if lat is None or lng is None:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if abs(lat) > 90 or abs(lng) > 180:
        return None
    return Coordinate(lat=lat, lng=lng)

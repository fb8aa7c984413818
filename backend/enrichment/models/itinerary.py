"""Itinerary models - final output for user consumption."""

from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator, model_validator

from backend.enrichment.models.common import ActivityKind

MAX_ACTIVITY_PHOTOS = 6


class StreetViewRequest(BaseModel):
    """Pending street-level imagery lookup for one activity."""

    lat: float | None = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: float | None = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    address_candidates: list[str] = Field(default_factory=list)
    min_confidence: float | None = Field(default=None, ge=0, le=1)


class PlacePhotosRequest(BaseModel):
    """Pending name-based photo search for one activity."""

    query: Annotated[str, Field(min_length=1)]
    destination: str | None = None
    language: str | None = None
    max_results: Annotated[int, Field(gt=0)] | None = None


class MediaRequests(BaseModel):
    """Deferred imagery instructions resolved by a downstream collaborator."""

    street_view: StreetViewRequest | None = None
    place_photos: PlacePhotosRequest | None = None

    def is_empty(self) -> bool:
        """True when neither request is pending."""
        return self.street_view is None and self.place_photos is None


class Activity(BaseModel):
    """Single activity in a day plan."""

    kind: ActivityKind
    title: Annotated[str, Field(min_length=1)]
    time_slot: str | None = None
    note: str | None = None
    address: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: float | None = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    cost_estimate: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    maps_confidence: float | None = Field(default=None, ge=0, le=1)
    photos: Annotated[list[str], Field(max_length=MAX_ACTIVITY_PHOTOS)] | None = None
    media_requests: MediaRequests | None = None

    @field_validator("photos")
    @classmethod
    def validate_photo_urls(cls, v: list[str] | None) -> list[str] | None:
        """Photos must be absolute http(s) URLs."""
        if v is None:
            return v
        for url in v:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"photo must be an http(s) URL, got {url!r}")
        return v

    @model_validator(mode="after")
    def validate_coordinate_pair(self) -> "Activity":
        """Latitude and longitude are set together or not at all."""
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must both be present or both absent")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class DailyPlan(BaseModel):
    """Plan for a single day."""

    day: Annotated[str, Field(min_length=1)]
    activities: list[Activity] = Field(default_factory=list)


class BudgetBreakdown(BaseModel):
    """Budget summary by category."""

    total: float = Field(..., ge=0, allow_inf_nan=False)
    currency: str | None = None
    accommodation: float | None = Field(default=None, ge=0)
    transport: float | None = Field(default=None, ge=0)
    food: float | None = Field(default=None, ge=0)
    activities: float | None = Field(default=None, ge=0)
    other: float | None = Field(default=None, ge=0)
    notes: str | None = None


class Itinerary(BaseModel):
    """Complete itinerary output."""

    destination: Annotated[str, Field(min_length=1)]
    days: Annotated[int, Field(gt=0)]
    budget_estimate: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    budget_breakdown: BudgetBreakdown | None = None
    party_size: Annotated[int, Field(gt=0)] | None = None
    preference_tags: list[str] = Field(default_factory=list)
    daily_plan: list[DailyPlan] = Field(default_factory=list)
    tips: str | None = None

    @field_validator("tips", mode="before")
    @classmethod
    def join_tip_list(cls, v: Any) -> Any:
        """Generators sometimes return tips as a list of lines."""
        if isinstance(v, list):
            return "\n".join(str(item) for item in v)
        return v

    def iter_activities(self) -> list[Activity]:
        """All activities in itinerary order."""
        return [activity for day in self.daily_plan for activity in day.activities]

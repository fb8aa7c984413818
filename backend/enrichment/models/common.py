"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False)


class ActivityKind(str, Enum):
    """Type of itinerary activity."""

    sight = "sight"
    food = "food"
    transport = "transport"
    hotel = "hotel"
    other = "other"


class BudgetCategory(str, Enum):
    """Budget breakdown category."""

    accommodation = "accommodation"
    transport = "transport"
    food = "food"
    activities = "activities"
    other = "other"


KIND_TO_CATEGORY: dict[ActivityKind, BudgetCategory] = {
    ActivityKind.hotel: BudgetCategory.accommodation,
    ActivityKind.transport: BudgetCategory.transport,
    ActivityKind.food: BudgetCategory.food,
    ActivityKind.sight: BudgetCategory.activities,
    ActivityKind.other: BudgetCategory.other,
}

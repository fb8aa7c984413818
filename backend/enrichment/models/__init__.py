"""Models package - re-exports for convenience."""

from backend.enrichment.models.common import (
    KIND_TO_CATEGORY,
    ActivityKind,
    BudgetCategory,
    Coordinate,
)
from backend.enrichment.models.itinerary import (
    Activity,
    BudgetBreakdown,
    DailyPlan,
    Itinerary,
    MediaRequests,
    PlacePhotosRequest,
    StreetViewRequest,
)
from backend.enrichment.models.places import Place, RecentActivity, RefinementResult
from backend.enrichment.models.request import GenerationRequest

__all__ = [
    # Common
    "Coordinate",
    "ActivityKind",
    "BudgetCategory",
    "KIND_TO_CATEGORY",
    # Request
    "GenerationRequest",
    # Itinerary
    "Itinerary",
    "DailyPlan",
    "Activity",
    "BudgetBreakdown",
    "MediaRequests",
    "StreetViewRequest",
    "PlacePhotosRequest",
    # Lookups
    "Place",
    "RecentActivity",
    "RefinementResult",
]

"""Protocols for the external collaborators the pipeline consumes."""

from typing import TYPE_CHECKING, Any, Protocol

from backend.enrichment.models.places import Place, RecentActivity, RefinementResult
from backend.enrichment.models.request import GenerationRequest

if TYPE_CHECKING:
    from backend.enrichment.adapters.google import StreetViewResult


class DraftGenerator(Protocol):
    """Produces an unvalidated candidate itinerary."""

    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        """Return the raw itinerary payload for a request.

        Raises:
            Exception: any failure; the pipeline treats it as fatal
        """
        ...


class Geocoder(Protocol):
    """Forward geocoding provider."""

    provider: str

    async def geocode(
        self,
        query: str,
        destination_hint: str | None = None,
        *,
        reference_name: str | None = None,
        min_confidence: float | None = None,
    ) -> Place | None:
        """Resolve a free-text query to the best matching place, or None."""
        ...


class PlaceFinder(Geocoder, Protocol):
    """Geocoder that can also resolve a free-text address to a single place."""

    async def find_place(
        self, query: str, language: str = "en", location_bias: str | None = None
    ) -> Place | None:
        """Best place for an address query, possibly without coordinates."""
        ...


class RefinementOracle(Protocol):
    """Secondary oracle that suggests better search terms or coordinates."""

    async def refine_location(
        self,
        *,
        destination: str,
        activity_title: str,
        kind: str | None = None,
        time_slot: str | None = None,
        existing_address: str | None = None,
        existing_note: str | None = None,
        day_label: str | None = None,
        recent_activities: list[RecentActivity] | None = None,
    ) -> RefinementResult | None:
        """Return refinement hints for one activity, or None."""
        ...


class InternationalityOracle(Protocol):
    """Optional classifier overriding the keyword heuristic."""

    async def classify(self, destination: str) -> bool | None:
        """True for international, False for domestic, None when unsure."""
        ...


class CacheStore(Protocol):
    """Key-value store with per-key TTL."""

    async def get(self, key: str) -> bytes | None:
        ...

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        ...


class ImageryProvider(Protocol):
    """Street-level stills and name-based place photos."""

    async def fetch_street_view(self, lat: float, lng: float) -> "StreetViewResult":
        ...

    async def search_place_photos(
        self,
        query: str,
        destination_hint: str | None = None,
        language: str = "en",
        max_results: int = 4,
    ) -> list[str]:
        ...

"""Fatal error types surfaced to callers of the pipeline.

Everything else (per-activity, per-day, cache, classifier failures) is
absorbed inside the pipeline.
"""


class ItineraryGenerationError(Exception):
    """Itinerary could not be generated."""

    pass


class DraftGenerationError(ItineraryGenerationError):
    """Draft generator failed or returned an unusable response."""

    pass


class DraftValidationError(ItineraryGenerationError):
    """Draft payload violates the itinerary contract."""

    def __init__(self, message: str, errors: list[dict[str, object]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

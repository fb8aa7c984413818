"""Location refinement for activities the geocoder could not place confidently.

For each activity that still needs it, the refinement oracle is asked for
better hints, then an ordered chain of strategies is tried until one yields
an updated activity:

1. accept the oracle's own coordinates
2. geocode the oracle's hints (address hint, refined name, search queries)
3. annotate the note only, with the address hint as a fallback address

Confidence never decreases here: any adopted location is lifted to at least
the refinement floor. Any oracle or geocoder failure leaves the activity
exactly as it entered.
"""

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from backend.enrichment.models.itinerary import Activity
from backend.enrichment.models.places import RecentActivity, RefinementResult
from backend.enrichment.ports import Geocoder, RefinementOracle
from backend.enrichment.utils.geo import append_note
from backend.enrichment.utils.logging import StructuredPipelineLogger
from backend.enrichment.utils.metrics import PipelineMetrics

LOW_CONFIDENCE_THRESHOLD = 0.45
REFINEMENT_CONFIDENCE_FLOOR = 0.35
MAX_CANDIDATE_QUERIES = 6
RECENT_CONTEXT_SIZE = 3

AI_LOCATION_DISCLAIMER = "位置由 AI 辅助推断，请出行前核实。"
LANDMARKS_LABEL = "附近地标："


def needs_refinement(activity: Activity, threshold: float = LOW_CONFIDENCE_THRESHOLD) -> bool:
    """No coordinates, no confidence, or confidence below the threshold."""
    if not activity.has_coordinates:
        return True
    if activity.maps_confidence is None:
        return True
    return activity.maps_confidence < threshold


@dataclass(frozen=True)
class RefinementContext:
    """Per-call inputs shared by the strategies."""

    destination: str
    geocoder: Geocoder
    confidence_floor: float = REFINEMENT_CONFIDENCE_FLOOR


RefinementStrategy = Callable[
    [Activity, RefinementResult, RefinementContext], Awaitable[Activity | None]
]


def lift_confidence(existing: float | None, candidate: float | None, floor: float) -> float:
    """max(existing, candidate, floor), capped at 1."""
    return min(max(existing or 0.0, candidate or 0.0, floor), 1.0)


def annotation_texts(result: RefinementResult) -> list[str]:
    """Landmark and reasoning annotations carried into the note."""
    texts: list[str] = []
    if result.nearby_landmarks:
        texts.append(LANDMARKS_LABEL + "、".join(result.nearby_landmarks))
    if result.reason and result.reason.strip():
        texts.append(result.reason.strip())
    return texts


def annotate(note: str | None, additions: Sequence[str]) -> str | None:
    for addition in additions:
        note = append_note(note, addition)
    return note


def build_candidate_queries(destination: str, result: RefinementResult) -> list[str]:
    """Geocodable terms from the oracle's hints, deduplicated and capped.

    Address hints are prefixed with the destination unless they already mention it.
    """
    destination = destination.strip()
    terms: list[str] = []

    hint = (result.address_hint or "").strip()
    if hint:
        terms.append(hint if not destination or destination in hint else f"{destination} {hint}")

    name = (result.refined_name or "").strip()
    if name:
        terms.append(name)

    terms.extend(query.strip() for query in result.search_queries)

    return list(dict.fromkeys(term for term in terms if term))[:MAX_CANDIDATE_QUERIES]


async def accept_oracle_coordinates(
    activity: Activity, result: RefinementResult, ctx: RefinementContext
) -> Activity | None:
    """Adopt coordinates the oracle was confident enough to return."""
    coordinate = result.coordinate
    if coordinate is None:
        return None

    update: dict[str, object] = {
        "lat": coordinate.lat,
        "lng": coordinate.lng,
        "maps_confidence": lift_confidence(
            activity.maps_confidence, result.usable_confidence, ctx.confidence_floor
        ),
        "note": annotate(activity.note, [AI_LOCATION_DISCLAIMER, *annotation_texts(result)]),
    }
    if not activity.address and result.address_hint and result.address_hint.strip():
        update["address"] = result.address_hint.strip()
    return activity.model_copy(update=update)


async def geocode_oracle_hints(
    activity: Activity, result: RefinementResult, ctx: RefinementContext
) -> Activity | None:
    """Retry geocoding with the oracle's hints; first valid match wins."""
    if not result.has_hints():
        return None

    reference = (result.refined_name or "").strip() or activity.title
    for term in build_candidate_queries(ctx.destination, result):
        place = await ctx.geocoder.geocode(term, ctx.destination, reference_name=reference)
        if place is None or place.coordinate is None:
            continue

        return activity.model_copy(
            update={
                "lat": place.coordinate.lat,
                "lng": place.coordinate.lng,
                "address": place.address or activity.address,
                "maps_confidence": lift_confidence(
                    activity.maps_confidence, place.confidence, ctx.confidence_floor
                ),
                "note": annotate(
                    activity.note, [AI_LOCATION_DISCLAIMER, *annotation_texts(result)]
                ),
            }
        )
    return None


async def annotate_only(
    activity: Activity, result: RefinementResult, ctx: RefinementContext
) -> Activity | None:
    """Carry landmark/reason text and the address hint; never invent coordinates."""
    update: dict[str, object] = {}

    note = annotate(activity.note, annotation_texts(result))
    if note != activity.note:
        update["note"] = note
    if not activity.address and result.address_hint and result.address_hint.strip():
        update["address"] = result.address_hint.strip()

    if not update:
        return None
    return activity.model_copy(update=update)


DEFAULT_STRATEGIES: tuple[RefinementStrategy, ...] = (
    accept_oracle_coordinates,
    geocode_oracle_hints,
    annotate_only,
)


class LocationRefiner:
    """Sequential, context-carrying refinement of one day's activities."""

    def __init__(
        self,
        oracle: RefinementOracle | None,
        geocoder: Geocoder,
        low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD,
        confidence_floor: float = REFINEMENT_CONFIDENCE_FLOOR,
        strategies: Sequence[RefinementStrategy] = DEFAULT_STRATEGIES,
        metrics: PipelineMetrics | None = None,
        stage_logger: StructuredPipelineLogger | None = None,
    ) -> None:
        self._oracle = oracle
        self._geocoder = geocoder
        self._threshold = low_confidence_threshold
        self._floor = confidence_floor
        self._strategies = tuple(strategies)
        self._metrics = metrics or PipelineMetrics()
        self._logger = stage_logger or StructuredPipelineLogger()

    @property
    def enabled(self) -> bool:
        return self._oracle is not None

    async def refine_day(
        self,
        destination: str,
        day_label: str | None,
        activities: list[Activity],
        fingerprint: str | None = None,
    ) -> list[Activity]:
        """Refine activities in order.

        Each oracle call sees up to the last three already-processed activities
        of the same day that carry a resolved location.
        """
        if self._oracle is None:
            return list(activities)

        refined: list[Activity] = []
        located: list[RecentActivity] = []

        for activity in activities:
            if needs_refinement(activity, self._threshold):
                activity = await self.refine_activity(
                    destination,
                    day_label,
                    activity,
                    recent=located[-RECENT_CONTEXT_SIZE:],
                    fingerprint=fingerprint,
                )
            refined.append(activity)
            if activity.has_coordinates:
                located.append(RecentActivity(title=activity.title, address=activity.address))

        return refined

    async def refine_activity(
        self,
        destination: str,
        day_label: str | None,
        activity: Activity,
        recent: list[RecentActivity] | None = None,
        fingerprint: str | None = None,
    ) -> Activity:
        """Run the oracle and the strategy chain for one activity."""
        if self._oracle is None:
            return activity

        start_time = time.monotonic()
        ctx = RefinementContext(
            destination=destination, geocoder=self._geocoder, confidence_floor=self._floor
        )

        try:
            result = await self._oracle.refine_location(
                destination=destination,
                activity_title=activity.title,
                kind=activity.kind.value,
                time_slot=activity.time_slot,
                existing_address=activity.address,
                existing_note=activity.note,
                day_label=day_label,
                recent_activities=list(recent or []),
            )
            if result is None:
                self._record(fingerprint, "no_result", start_time, activity)
                return activity

            for strategy in self._strategies:
                candidate = await strategy(activity, result, ctx)
                if candidate is not None:
                    # model_copy skips validation; re-check the coordinate invariants
                    refined = Activity.model_validate(candidate.model_dump())
                    self._record(fingerprint, strategy.__name__, start_time, activity)
                    return refined
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            self._metrics.inc_degradation("refinement", type(e).__name__)
            self._logger.log_stage(
                fingerprint,
                "refinement",
                "error",
                latency_ms=elapsed_ms,
                error_reason=type(e).__name__,
                activity=activity.title,
            )
            return activity

        self._record(fingerprint, "unchanged", start_time, activity)
        return activity

    def _record(
        self, fingerprint: str | None, outcome: str, start_time: float, activity: Activity
    ) -> None:
        elapsed_ms = (time.monotonic() - start_time) * 1000
        self._metrics.record_latency("refinement", outcome, elapsed_ms)
        self._logger.log_stage(
            fingerprint, "refinement", "success", latency_ms=elapsed_ms,
            strategy=outcome, activity=activity.title,
        )

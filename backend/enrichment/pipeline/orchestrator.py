"""Itinerary pipeline - draft, enrich, reconcile, cache.

Only draft generation and draft validation failures are fatal. Everything
downstream degrades per activity or per day.
"""

import logging
import time

from pydantic import ValidationError

from backend.enrichment.adapters.factory import create_geocoder, create_imagery_client
from backend.enrichment.cache.itinerary_cache import (
    ItineraryCache,
    create_cache_store,
    make_fingerprint,
)
from backend.enrichment.config import Settings, get_settings
from backend.enrichment.errors import (
    DraftGenerationError,
    DraftValidationError,
    ItineraryGenerationError,
)
from backend.enrichment.llm.client import get_draft_generator
from backend.enrichment.llm.oracles import (
    create_internationality_oracle,
    create_refinement_oracle,
)
from backend.enrichment.models.itinerary import DailyPlan, Itinerary
from backend.enrichment.models.request import GenerationRequest
from backend.enrichment.pipeline.budget import reconcile_budget
from backend.enrichment.pipeline.geocoding import enrich_activities
from backend.enrichment.pipeline.internationality import InternationalityClassifier
from backend.enrichment.pipeline.media import plan_media_requests
from backend.enrichment.pipeline.refinement import LocationRefiner
from backend.enrichment.ports import DraftGenerator, Geocoder
from backend.enrichment.utils.logging import StructuredPipelineLogger
from backend.enrichment.utils.metrics import PipelineMetrics, PrometheusPipelineMetrics

logger = logging.getLogger(__name__)


class ItineraryPipeline:
    """Turns a generation request into a grounded, budget-consistent itinerary."""

    def __init__(
        self,
        draft_generator: DraftGenerator,
        geocoder: Geocoder,
        cache: ItineraryCache | None = None,
        refiner: LocationRefiner | None = None,
        classifier: InternationalityClassifier | None = None,
        imagery_available: bool = False,
        settings: Settings | None = None,
        metrics: PipelineMetrics | None = None,
        stage_logger: StructuredPipelineLogger | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.metrics = metrics or PipelineMetrics()
        self.stage_logger = stage_logger or StructuredPipelineLogger(
            production=self.settings.is_production
        )

        self.draft_generator = draft_generator
        self.geocoder = geocoder
        self.cache = cache or ItineraryCache(
            None, metrics=self.metrics, stage_logger=self.stage_logger
        )
        self.refiner = refiner or LocationRefiner(
            None, geocoder, metrics=self.metrics, stage_logger=self.stage_logger
        )
        self.classifier = classifier or InternationalityClassifier()
        self.imagery_available = imagery_available

    async def generate(self, request: GenerationRequest) -> Itinerary:
        """Generate an enriched itinerary.

        Raises:
            DraftGenerationError: the draft generator failed
            DraftValidationError: the draft violates the itinerary contract,
                or its activity costs cannot be totalled
        """
        fingerprint = make_fingerprint(request)

        cached = await self.cache.get(fingerprint)
        if cached is not None:
            return cached

        draft = await self._generate_draft(fingerprint, request)
        is_international = await self.classifier.classify(draft.destination)

        days: list[DailyPlan] = []
        for day in draft.daily_plan:
            days.append(await self._enrich_day(fingerprint, draft.destination, day, is_international))

        start_time = time.monotonic()
        try:
            itinerary = reconcile_budget(
                draft.model_copy(update={"daily_plan": days}),
                default_currency=self.settings.default_currency,
            )
        except DraftValidationError:
            self._record(fingerprint, "budget", "invalid", start_time, error_reason="overflow")
            raise

        # Round trip so fresh and cached results serialize identically
        itinerary = Itinerary.model_validate_json(itinerary.model_dump_json())

        await self.cache.set(fingerprint, itinerary)
        return itinerary

    async def _generate_draft(self, fingerprint: str, request: GenerationRequest) -> Itinerary:
        start_time = time.monotonic()

        try:
            payload = await self.draft_generator.generate(request)
        except ItineraryGenerationError:
            self._record(fingerprint, "draft", "error", start_time, error_reason="generator")
            raise
        except Exception as e:
            self._record(fingerprint, "draft", "error", start_time, error_reason=type(e).__name__)
            raise DraftGenerationError(f"Draft generation failed: {e}") from e

        try:
            draft = Itinerary.model_validate(payload)
        except ValidationError as e:
            self._record(fingerprint, "draft", "invalid", start_time, error_reason="validation")
            raise DraftValidationError(
                f"Draft failed validation with {e.error_count()} error(s)",
                errors=e.errors(include_url=False, include_context=False),
            ) from e

        self._record(fingerprint, "draft", "success", start_time)
        return draft

    async def _enrich_day(
        self, fingerprint: str, destination: str, day: DailyPlan, is_international: bool
    ) -> DailyPlan:
        """Geocode, refine and plan media for one day; any failure keeps the draft day."""
        start_time = time.monotonic()

        try:
            activities = await enrich_activities(self.geocoder, destination, day.activities)
            activities = await self.refiner.refine_day(
                destination, day.day, activities, fingerprint=fingerprint
            )
            activities = plan_media_requests(
                destination,
                activities,
                is_international=is_international,
                imagery_available=self.imagery_available,
                confidence_threshold=self.settings.media_confidence_threshold,
                max_name_based_photos=self.settings.max_name_based_photos,
            )
            enriched = DailyPlan.model_validate(
                {"day": day.day, "activities": [a.model_dump() for a in activities]}
            )
        except Exception as e:
            self.metrics.inc_degradation("day_enrichment", type(e).__name__)
            self._record(
                fingerprint, "day_enrichment", "error", start_time,
                error_reason=type(e).__name__, day=day.day,
            )
            return day

        self._record(fingerprint, "day_enrichment", "success", start_time, day=day.day)
        return enriched

    def _record(
        self,
        fingerprint: str,
        stage: str,
        outcome: str,
        start_time: float,
        error_reason: str | None = None,
        **fields: object,
    ) -> None:
        elapsed_ms = (time.monotonic() - start_time) * 1000
        self.metrics.record_latency(stage, outcome, elapsed_ms)
        self.stage_logger.log_stage(
            fingerprint, stage, outcome, latency_ms=elapsed_ms, error_reason=error_reason, **fields
        )


def build_pipeline(settings: Settings | None = None) -> ItineraryPipeline:
    """Wire a pipeline from settings: providers, oracles, cache and metrics."""
    settings = settings or get_settings()
    metrics = PrometheusPipelineMetrics()
    stage_logger = StructuredPipelineLogger(production=settings.is_production)

    geocoder = create_geocoder(settings=settings)
    cache = ItineraryCache(
        create_cache_store(settings.redis_url),
        ttl_seconds=settings.itinerary_cache_ttl_seconds,
        metrics=metrics,
        stage_logger=stage_logger,
    )
    refiner = LocationRefiner(
        create_refinement_oracle(settings),
        geocoder,
        low_confidence_threshold=settings.low_confidence_threshold,
        confidence_floor=settings.refinement_confidence_floor,
        metrics=metrics,
        stage_logger=stage_logger,
    )
    imagery_available = create_imagery_client(settings) is not None

    logger.info(
        f"Pipeline ready: geocoder={geocoder.provider}, cache={'on' if cache.enabled else 'off'}, "
        f"refinement={'on' if refiner.enabled else 'off'}, imagery={'on' if imagery_available else 'off'}"
    )

    return ItineraryPipeline(
        draft_generator=get_draft_generator(settings=settings),
        geocoder=geocoder,
        cache=cache,
        refiner=refiner,
        classifier=InternationalityClassifier(create_internationality_oracle(settings)),
        imagery_available=imagery_available,
        settings=settings,
        metrics=metrics,
        stage_logger=stage_logger,
    )

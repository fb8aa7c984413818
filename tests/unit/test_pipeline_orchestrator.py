"""Tests for the itinerary pipeline orchestrator.

Tests cover:
1. End-to-end enrichment with fakes (geocoding, refinement, budget)
2. Idempotence through the cache
3. Degraded cache and per-day fallback
4. Fatal draft errors
"""

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from backend.enrichment.cache.itinerary_cache import (
    InMemoryCacheStore,
    ItineraryCache,
    make_fingerprint,
)
from backend.enrichment.config import Settings
from backend.enrichment.errors import DraftGenerationError, DraftValidationError
from backend.enrichment.llm.client import DeterministicStubDraftGenerator
from backend.enrichment.models.itinerary import Itinerary
from backend.enrichment.models.places import Place, RefinementResult
from backend.enrichment.models.request import GenerationRequest
from backend.enrichment.pipeline.internationality import InternationalityClassifier
from backend.enrichment.pipeline.orchestrator import ItineraryPipeline, build_pipeline
from backend.enrichment.pipeline.refinement import AI_LOCATION_DISCLAIMER, LocationRefiner
from tests.fakes import FailingCacheStore, FakeDraftGenerator, FakeGeocoder, FakeRefinementOracle


WEST_LAKE = Place(
    name="西湖",
    address="杭州市西湖区龙井路1号",
    lat=30.2419,
    lng=120.1487,
    provider="fake",
    confidence=0.9,
)


def _pipeline(
    settings: Settings,
    payload: Any,
    geocoder: FakeGeocoder | None = None,
    oracle: FakeRefinementOracle | None = None,
    store: Any = None,
    imagery_available: bool = False,
) -> tuple[ItineraryPipeline, FakeDraftGenerator]:
    generator = FakeDraftGenerator(payload)
    geocoder = geocoder or FakeGeocoder()
    pipeline = ItineraryPipeline(
        draft_generator=generator,
        geocoder=geocoder,
        cache=ItineraryCache(store) if store is not None else None,
        refiner=LocationRefiner(oracle, geocoder),
        imagery_available=imagery_available,
        settings=settings,
    )
    return pipeline, generator


def _assert_structurally_valid(itinerary: Itinerary) -> None:
    Itinerary.model_validate_json(itinerary.model_dump_json())
    costs = [a.cost_estimate or 0 for a in itinerary.iter_activities()]
    assert itinerary.budget_breakdown is not None
    assert itinerary.budget_breakdown.total == sum(costs) == itinerary.budget_estimate
    for activity in itinerary.iter_activities():
        assert (activity.lat is None) == (activity.lng is None)


@pytest.mark.asyncio
async def test_generate_enriches_and_reconciles(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    geocoder = FakeGeocoder({"杭州 西湖": WEST_LAKE})
    pipeline, _ = _pipeline(settings, sample_draft, geocoder=geocoder)

    itinerary = await pipeline.generate(sample_request)

    first = itinerary.daily_plan[0].activities[0]
    assert (first.lat, first.lng) == (30.2419, 120.1487)
    assert first.address == "杭州市西湖区龙井路1号"
    assert first.maps_confidence is None
    assert itinerary.budget_estimate == 1575
    assert itinerary.budget_breakdown.accommodation == 1200
    assert itinerary.budget_breakdown.notes == "含门票"
    assert itinerary.tips == "带伞\n避开节假日"
    _assert_structurally_valid(itinerary)


@pytest.mark.asyncio
async def test_refinement_applied_after_geocoding(
    settings: Settings, sample_request: GenerationRequest
) -> None:
    payload = {
        "destination": "杭州",
        "days": 1,
        "daily_plan": [
            {"day": "第1天", "activities": [{"kind": "sight", "title": "神秘小店", "maps_confidence": 0.2}]}
        ],
    }
    oracle = FakeRefinementOracle(
        {"神秘小店": RefinementResult(latitude=30.0, longitude=120.0, confidence=0.6)}
    )
    pipeline, _ = _pipeline(settings, payload, oracle=oracle)

    itinerary = await pipeline.generate(sample_request)

    activity = itinerary.daily_plan[0].activities[0]
    assert (activity.lat, activity.lng) == (30.0, 120.0)
    assert activity.maps_confidence == 0.6
    assert AI_LOCATION_DISCLAIMER in activity.note


@pytest.mark.asyncio
async def test_second_call_is_byte_identical_cache_hit(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    geocoder = FakeGeocoder({"杭州 西湖": WEST_LAKE})
    pipeline, generator = _pipeline(
        settings, sample_draft, geocoder=geocoder, store=InMemoryCacheStore()
    )

    first = await pipeline.generate(sample_request)
    second = await pipeline.generate(sample_request)

    assert first.model_dump_json() == second.model_dump_json()
    assert generator.calls == 1


@pytest.mark.asyncio
async def test_unreachable_cache_still_returns_itinerary(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    store = FailingCacheStore()
    pipeline, generator = _pipeline(settings, sample_draft, store=store)

    itinerary = await pipeline.generate(sample_request)

    _assert_structurally_valid(itinerary)
    assert store.get_calls == 1
    assert store.set_calls == 1
    assert generator.calls == 1


@pytest.mark.asyncio
async def test_corrupted_cache_entry_regenerates(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    store = InMemoryCacheStore()
    await store.set(make_fingerprint(sample_request), b'{"destination": ""}', 3600)
    pipeline, generator = _pipeline(settings, sample_draft, store=store)

    itinerary = await pipeline.generate(sample_request)

    assert itinerary.destination == "杭州"
    assert generator.calls == 1


@pytest.mark.asyncio
async def test_generator_failure_is_fatal(
    settings: Settings, sample_request: GenerationRequest
) -> None:
    pipeline = ItineraryPipeline(
        draft_generator=FakeDraftGenerator(error=TimeoutError("llm timed out")),
        geocoder=FakeGeocoder(),
        settings=settings,
    )

    with pytest.raises(DraftGenerationError, match="llm timed out"):
        await pipeline.generate(sample_request)


@pytest.mark.asyncio
async def test_generator_error_type_preserved(
    settings: Settings, sample_request: GenerationRequest
) -> None:
    pipeline = ItineraryPipeline(
        draft_generator=FakeDraftGenerator(error=DraftGenerationError("no key")),
        geocoder=FakeGeocoder(),
        settings=settings,
    )

    with pytest.raises(DraftGenerationError, match="no key"):
        await pipeline.generate(sample_request)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"destination": "", "days": 2},
        {"destination": "杭州", "days": 0},
        {"destination": "杭州", "days": 1, "daily_plan": [{"day": "D1", "activities": [{"kind": "x"}]}]},
        "not an object",
    ],
)
async def test_invalid_draft_is_fatal(
    settings: Settings, sample_request: GenerationRequest, payload: Any
) -> None:
    store = InMemoryCacheStore()
    pipeline, _ = _pipeline(settings, payload, store=store)

    with pytest.raises(DraftValidationError) as exc_info:
        await pipeline.generate(sample_request)

    assert exc_info.value.errors
    assert await store.get(make_fingerprint(sample_request)) is None


@pytest.mark.asyncio
async def test_failing_day_falls_back_to_draft_day(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    geocoder = FakeGeocoder({"杭州 西湖": WEST_LAKE, "杭州 灵隐寺": WEST_LAKE})
    pipeline, _ = _pipeline(settings, sample_draft, geocoder=geocoder)
    calls = {"count": 0}

    def plan_then_fail(destination: str, activities: list, **kwargs: Any) -> list:
        calls["count"] += 1
        if calls["count"] == 2:
            raise RuntimeError("media planner bug")
        return activities

    with patch(
        "backend.enrichment.pipeline.orchestrator.plan_media_requests", side_effect=plan_then_fail
    ):
        itinerary = await pipeline.generate(sample_request)

    day_one, day_two = itinerary.daily_plan
    assert day_one.activities[0].has_coordinates
    assert not day_two.activities[0].has_coordinates
    assert [a.title for a in day_two.activities] == ["灵隐寺", "西湖国宾馆"]
    _assert_structurally_valid(itinerary)


@pytest.mark.asyncio
async def test_classifier_called_once_per_request(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    oracle = AsyncMock()
    oracle.classify.return_value = None
    generator = FakeDraftGenerator(sample_draft)
    pipeline = ItineraryPipeline(
        draft_generator=generator,
        geocoder=FakeGeocoder(),
        classifier=InternationalityClassifier(oracle),
        settings=settings,
    )

    await pipeline.generate(sample_request)
    await pipeline.generate(sample_request.model_copy(update={"days": 3}))

    assert generator.calls == 2
    oracle.classify.assert_awaited_once_with("杭州")


@pytest.mark.asyncio
async def test_international_trip_gets_media_requests(
    settings: Settings,
) -> None:
    payload = {
        "destination": "东京",
        "days": 1,
        "daily_plan": [
            {
                "day": "Day 1",
                "activities": [
                    {
                        "kind": "sight",
                        "title": "Tokyo Tower",
                        "lat": 35.6586,
                        "lng": 139.7454,
                        "address": "4 Chome-2-8 Shibakoen",
                        "maps_confidence": 0.9,
                    }
                ],
            }
        ],
    }
    request = GenerationRequest(destination="东京", days=1)

    with_imagery, _ = _pipeline(settings, payload, imagery_available=True)
    without_imagery, _ = _pipeline(settings, payload, imagery_available=False)

    planned = (await with_imagery.generate(request)).daily_plan[0].activities[0]
    stripped = (await without_imagery.generate(request)).daily_plan[0].activities[0]

    assert planned.media_requests is not None
    assert planned.media_requests.street_view is not None
    assert stripped.media_requests is None


@pytest.mark.asyncio
async def test_build_pipeline_with_stub_providers(
    settings: Settings, sample_request: GenerationRequest
) -> None:
    pipeline = build_pipeline(settings)

    assert isinstance(pipeline.draft_generator, DeterministicStubDraftGenerator)
    assert not pipeline.cache.enabled
    assert not pipeline.refiner.enabled
    assert pipeline.imagery_available is False

    itinerary = await pipeline.generate(sample_request)

    assert itinerary.days == 2
    assert itinerary.budget_breakdown.currency == "CNY"
    _assert_structurally_valid(itinerary)


@pytest.mark.asyncio
async def test_overflowing_costs_are_a_validation_error(
    settings: Settings, sample_request: GenerationRequest
) -> None:
    payload = {
        "destination": "杭州",
        "days": 1,
        "daily_plan": [
            {
                "day": "第1天",
                "activities": [
                    {"kind": "hotel", "title": "宫殿", "cost_estimate": 1e308},
                    {"kind": "hotel", "title": "城堡", "cost_estimate": 1e308},
                ],
            }
        ],
    }
    store = InMemoryCacheStore()
    pipeline, _ = _pipeline(settings, payload, store=store)

    with pytest.raises(DraftValidationError) as exc_info:
        await pipeline.generate(sample_request)

    assert exc_info.value.errors[0]["loc"] == ("budget_breakdown", "total")
    assert await store.get(make_fingerprint(sample_request)) is None


@pytest.mark.asyncio
async def test_cached_entry_with_inconsistent_budget_regenerates(
    settings: Settings, sample_request: GenerationRequest, sample_draft: dict
) -> None:
    stale = {
        "destination": "杭州",
        "days": 1,
        "budget_estimate": 5,
        "budget_breakdown": {"total": 999, "currency": "CNY"},
        "daily_plan": [
            {"day": "第1天", "activities": [{"kind": "food", "title": "早餐", "cost_estimate": 7}]}
        ],
    }
    store = InMemoryCacheStore()
    await store.set(
        make_fingerprint(sample_request), Itinerary.model_validate(stale).model_dump_json().encode(), 3600
    )
    pipeline, generator = _pipeline(settings, sample_draft, store=store)

    itinerary = await pipeline.generate(sample_request)

    assert generator.calls == 1
    assert itinerary.budget_estimate == 1575
    _assert_structurally_valid(itinerary)

"""Tests for on-demand activity location from an address."""

import pytest

from backend.enrichment.models.common import Coordinate
from backend.enrichment.models.itinerary import Activity
from backend.enrichment.models.places import Place
from backend.enrichment.pipeline.locate import (
    ADDRESS_RESOLUTION_NOTE,
    location_bias,
    locate_activity,
    too_far_from_anchor,
)
from backend.enrichment.utils.address import generate_address_candidates
from backend.enrichment.utils.geo import distance_meters
from tests.fakes import FakePlaceFinder

ADDRESS = "杭州市西湖区龙井路1号"
HANGZHOU = Coordinate(lat=30.2741, lng=120.1551)


def _place(
    lat: float | None = 30.2419, lng: float | None = 120.1487, place_id: str | None = "pid-1"
) -> Place:
    return Place(
        name=ADDRESS,
        address="中国浙江省杭州市西湖区龙井路1号",
        lat=lat,
        lng=lng,
        provider="google",
        confidence=0.85,
        place_id=place_id,
    )


def _activity(**overrides) -> Activity:
    fields = {"kind": "sight", "title": "龙井村", "address": ADDRESS}
    fields.update(overrides)
    return Activity(**fields)


def test_distance_meters() -> None:
    beijing = Coordinate(lat=39.9042, lng=116.4074)
    shanghai = Coordinate(lat=31.2304, lng=121.4737)

    assert distance_meters(HANGZHOU, HANGZHOU) == 0
    assert distance_meters(beijing, shanghai) == pytest.approx(1_067_000, rel=0.01)
    assert distance_meters(beijing, shanghai) == pytest.approx(distance_meters(shanghai, beijing))


def test_anchor_helpers() -> None:
    assert location_bias(None) is None
    assert location_bias(HANGZHOU) == "point:30.2741,120.1551"
    assert not too_far_from_anchor(Coordinate(lat=30.2419, lng=120.1487), HANGZHOU)
    assert too_far_from_anchor(Coordinate(lat=31.2304, lng=121.4737), HANGZHOU)
    assert not too_far_from_anchor(Coordinate(lat=31.2304, lng=121.4737), None)


@pytest.mark.asyncio
async def test_existing_coordinates_echoed_without_lookup() -> None:
    finder = FakePlaceFinder()
    activity = _activity(lat=30.1, lng=120.1, note="已定位", maps_confidence=0.7)

    resolution = await locate_activity("杭州", activity, finder)

    assert resolution.model_dump(exclude_none=True) == {
        "lat": 30.1,
        "lng": 120.1,
        "address": ADDRESS,
        "note": "已定位",
        "maps_confidence": 0.7,
    }
    assert finder.find_calls == []
    assert finder.calls == []


@pytest.mark.asyncio
async def test_blank_address_is_empty() -> None:
    finder = FakePlaceFinder()

    resolution = await locate_activity("杭州", _activity(address="  "), finder)

    assert resolution.is_empty()
    assert finder.find_calls == []


@pytest.mark.asyncio
async def test_find_place_hit() -> None:
    finder = FakePlaceFinder(found={ADDRESS: _place()})

    resolution = await locate_activity("杭州", _activity(maps_confidence=0.3), finder, HANGZHOU)

    assert (resolution.lat, resolution.lng) == (30.2419, 120.1487)
    assert resolution.address == "中国浙江省杭州市西湖区龙井路1号"
    assert resolution.note == ADDRESS_RESOLUTION_NOTE
    assert resolution.maps_confidence == 0.85
    assert resolution.resolution == "address"
    assert resolution.place_id == "pid-1"
    assert finder.find_calls == [
        {"query": ADDRESS, "language": "zh-CN", "location_bias": "point:30.2741,120.1551"}
    ]
    assert finder.calls == []


@pytest.mark.asyncio
async def test_higher_confidence_and_existing_note_kept() -> None:
    finder = FakePlaceFinder(found={ADDRESS: _place()})
    activity = _activity(maps_confidence=0.95, note=ADDRESS_RESOLUTION_NOTE)

    resolution = await locate_activity("杭州", activity, finder)

    assert resolution.maps_confidence == 0.95
    assert resolution.note is None


@pytest.mark.asyncio
async def test_candidate_far_from_anchor_skipped() -> None:
    candidates = generate_address_candidates(ADDRESS)
    shanghai = _place(lat=31.2304, lng=121.4737, place_id="far")
    finder = FakePlaceFinder(
        found={candidates[0]: shanghai, candidates[1]: _place(place_id="near")}
    )

    resolution = await locate_activity("杭州", _activity(), finder, HANGZHOU)

    assert resolution.place_id == "near"
    assert [call["query"] for call in finder.find_calls] == candidates[:2]
    # A far Find Place hit does not fall back to geocoding the same variant
    assert finder.calls == []


@pytest.mark.asyncio
async def test_far_candidate_accepted_without_anchor() -> None:
    finder = FakePlaceFinder(found={ADDRESS: _place(lat=31.2304, lng=121.4737)})

    resolution = await locate_activity("杭州", _activity(), finder)

    assert (resolution.lat, resolution.lng) == (31.2304, 121.4737)


@pytest.mark.asyncio
async def test_geocode_completes_place_without_coordinates() -> None:
    finder = FakePlaceFinder(
        found={ADDRESS: _place(lat=None, lng=None, place_id="pid-found")},
        places={ADDRESS: _place(lat=30.25, lng=120.15, place_id=None)},
    )

    resolution = await locate_activity("杭州", _activity(), finder, HANGZHOU)

    assert (resolution.lat, resolution.lng) == (30.25, 120.15)
    assert resolution.place_id == "pid-found"
    assert finder.calls[0]["query"] == ADDRESS


@pytest.mark.asyncio
async def test_geocode_result_far_from_anchor_skipped() -> None:
    finder = FakePlaceFinder(places={ADDRESS: _place(lat=31.2304, lng=121.4737)})

    resolution = await locate_activity("杭州", _activity(), finder, HANGZHOU)

    assert resolution.is_empty()
    assert len(finder.calls) == len(generate_address_candidates(ADDRESS))


@pytest.mark.asyncio
async def test_lookup_error_moves_to_next_candidate() -> None:
    candidates = generate_address_candidates(ADDRESS)
    finder = FakePlaceFinder(
        found={candidates[1]: _place(place_id="second")},
        find_errors={candidates[0]: RuntimeError("quota exceeded")},
    )

    resolution = await locate_activity("杭州", _activity(), finder)

    assert resolution.place_id == "second"


@pytest.mark.asyncio
async def test_nothing_found_is_empty() -> None:
    finder = FakePlaceFinder()

    resolution = await locate_activity("杭州", _activity(), finder)

    assert resolution.is_empty()
    assert resolution.model_dump(exclude_none=True) == {}
    assert len(finder.find_calls) == len(generate_address_candidates(ADDRESS))

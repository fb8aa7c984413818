"""Tests for media request planning."""

import pytest

from backend.enrichment.models.itinerary import (
    Activity,
    MediaRequests,
    PlacePhotosRequest,
    StreetViewRequest,
)
from backend.enrichment.pipeline.media import (
    plan_media_requests,
    plan_place_photos,
    plan_street_view,
)


def test_street_view_for_foreign_coordinates() -> None:
    activity = Activity(
        kind="sight",
        title="Tokyo Tower",
        address="4 Chome-2-8 Shibakoen, Minato City",
        lat=35.6586,
        lng=139.7454,
        maps_confidence=0.9,
    )

    request = plan_street_view(activity, is_international=False)

    assert request is not None
    assert (request.lat, request.lng) == (35.6586, 139.7454)
    assert request.min_confidence == 0.9
    assert request.address_candidates[0] == "4 Chome-2-8 Shibakoen, Minato City"


def test_no_street_view_for_domestic_coordinates() -> None:
    activity = Activity(
        kind="sight", title="西湖", address="龙井路1号", lat=30.24, lng=120.15, maps_confidence=0.95
    )
    assert plan_street_view(activity, is_international=False) is None


def test_street_view_from_address_when_international() -> None:
    activity = Activity(
        kind="food", title="一兰拉面", note="地址：道顿堀1丁目路4号", maps_confidence=0.85
    )

    request = plan_street_view(activity, is_international=True)

    assert request is not None
    assert request.lat is None and request.lng is None
    assert request.address_candidates


def test_international_without_address_candidates_gets_no_street_view() -> None:
    activity = Activity(kind="food", title="一兰拉面", maps_confidence=0.85)
    assert plan_street_view(activity, is_international=True) is None


def test_street_view_requires_high_confidence() -> None:
    activity = Activity(
        kind="sight", title="Tokyo Tower", lat=35.6586, lng=139.7454, maps_confidence=0.79
    )
    unscored = activity.model_copy(update={"maps_confidence": None})

    assert plan_street_view(activity, is_international=True) is None
    assert plan_street_view(unscored, is_international=True) is None


def test_place_photos_for_latin_title_even_when_domestic() -> None:
    activity = Activity(kind="sight", title="Senso-ji", maps_confidence=0.85)

    request = plan_place_photos("东京", activity, is_international=False, max_name_based_photos=3)

    assert request == PlacePhotosRequest(
        query="Senso-ji", destination="东京", language="en", max_results=3
    )


def test_place_photos_for_han_title_only_when_international() -> None:
    activity = Activity(kind="sight", title="浅草寺", maps_confidence=0.85)

    assert plan_place_photos("东京", activity, is_international=False) is None
    request = plan_place_photos("东京", activity, is_international=True)
    assert request is not None
    assert request.language == "zh-CN"


@pytest.mark.parametrize(
    "update",
    [
        {"address": "Asakusa"},
        {"lat": 35.7, "lng": 139.8},
        {"photos": ["https://img.example.com/a.jpg"]},
        {"maps_confidence": 0.5},
    ],
)
def test_no_place_photos_when_activity_is_located_or_illustrated(update: dict) -> None:
    activity = Activity(kind="sight", title="Senso-ji", maps_confidence=0.9).model_copy(
        update=update
    )
    assert plan_place_photos("东京", activity, is_international=True) is None


def test_plan_media_requests_attaches_and_clears() -> None:
    activities = [
        Activity(kind="sight", title="Tokyo Tower", lat=35.6586, lng=139.7454, maps_confidence=0.9),
        Activity(kind="food", title="拉面", lat=35.0, lng=139.0, maps_confidence=0.3),
    ]

    planned = plan_media_requests("东京", activities, is_international=True, imagery_available=True)

    assert planned[0].media_requests is not None
    assert planned[0].media_requests.street_view is not None
    assert planned[0].media_requests.place_photos is None
    assert planned[1].media_requests is None


def test_all_requests_stripped_without_imagery_provider() -> None:
    stale = MediaRequests(street_view=StreetViewRequest(lat=35.0, lng=139.0))
    activities = [
        Activity(kind="sight", title="Tokyo Tower", lat=35.6586, lng=139.7454, maps_confidence=0.9),
        Activity(kind="sight", title="Senso-ji", maps_confidence=0.9, media_requests=stale),
    ]

    planned = plan_media_requests("东京", activities, is_international=True, imagery_available=False)

    assert all(activity.media_requests is None for activity in planned)
    assert [a.title for a in planned] == ["Tokyo Tower", "Senso-ji"]

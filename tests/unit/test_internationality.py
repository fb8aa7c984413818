"""Tests for the internationality classifier."""

from unittest.mock import AsyncMock

import pytest

from backend.enrichment.pipeline.internationality import (
    InternationalityClassifier,
    classify_by_keywords,
    matches_foreign_group,
    normalize_destination,
)


@pytest.mark.parametrize(
    "destination,expected",
    [
        ("东京", True),
        ("日本大阪", True),
        ("Kyoto, Japan", True),
        ("  PARIS ", True),
        ("首尔", True),
        ("杭州", False),
        ("中国上海", False),
        ("Beijing", False),
        ("云南省", False),
        ("香港", False),
        ("Atlantis", False),
        ("", False),
    ],
)
def test_keyword_heuristic(destination: str, expected: bool) -> None:
    assert classify_by_keywords(destination) is expected


def test_domestic_keywords_take_precedence() -> None:
    assert matches_foreign_group("东京") == "japan"
    assert classify_by_keywords("从上海去东京") is False


def test_normalize_destination() -> None:
    assert normalize_destination("  Tokyo ") == "tokyo"
    assert normalize_destination(None) == ""


@pytest.mark.asyncio
async def test_tokyo_is_international_without_oracle() -> None:
    classifier = InternationalityClassifier()
    assert await classifier.classify("东京") is True


@pytest.mark.asyncio
async def test_oracle_overrides_heuristic() -> None:
    oracle = AsyncMock()
    oracle.classify.return_value = True
    classifier = InternationalityClassifier(oracle)

    assert await classifier.classify("Atlantis") is True
    oracle.classify.assert_awaited_once_with("Atlantis")


@pytest.mark.asyncio
async def test_oracle_failure_falls_back_to_heuristic() -> None:
    oracle = AsyncMock()
    oracle.classify.side_effect = TimeoutError("slow")
    classifier = InternationalityClassifier(oracle)

    assert await classifier.classify("东京") is True
    assert await classifier.classify("杭州") is False


@pytest.mark.asyncio
async def test_oracle_unsure_falls_back_to_heuristic() -> None:
    oracle = AsyncMock()
    oracle.classify.return_value = None
    classifier = InternationalityClassifier(oracle)

    assert await classifier.classify("东京") is True


@pytest.mark.asyncio
async def test_result_memoized_per_normalized_destination() -> None:
    oracle = AsyncMock()
    oracle.classify.return_value = False
    classifier = InternationalityClassifier(oracle)

    assert await classifier.classify("Tokyo") is False
    assert await classifier.classify("  tokyo ") is False
    assert await classifier.classify("TOKYO") is False

    assert oracle.classify.await_count == 1


@pytest.mark.asyncio
async def test_memo_is_per_instance() -> None:
    oracle = AsyncMock()
    oracle.classify.return_value = False

    await InternationalityClassifier(oracle).classify("东京")
    await InternationalityClassifier(oracle).classify("东京")

    assert oracle.classify.await_count == 2


@pytest.mark.asyncio
async def test_empty_destination_is_domestic_and_not_memoized() -> None:
    oracle = AsyncMock()
    classifier = InternationalityClassifier(oracle)

    assert await classifier.classify("   ") is False
    assert await classifier.classify(None) is False
    oracle.classify.assert_not_awaited()

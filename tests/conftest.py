"""Shared pytest fixtures for all test suites."""

from typing import Any

import pytest

from backend.enrichment.config import Settings
from backend.enrichment.models.request import GenerationRequest


@pytest.fixture
def settings() -> Settings:
    """Settings with no providers configured."""
    return Settings(
        _env_file=None,
        environment="test",
        redis_url=None,
        openai_api_key=None,
        dashscope_api_key=None,
        amap_rest_key=None,
        google_maps_api_key=None,
    )


@pytest.fixture
def sample_request() -> GenerationRequest:
    return GenerationRequest(
        destination="杭州",
        days=2,
        budget=3000,
        party_size=2,
        preferences=["food", "culture"],
    )


@pytest.fixture
def sample_draft() -> dict[str, Any]:
    """Two-day draft with a self-reported budget that does not add up."""
    return {
        "destination": "杭州",
        "days": 2,
        "budget_estimate": 99999,
        "budget_breakdown": {"total": 99999, "currency": "CNY", "notes": "含门票"},
        "party_size": 2,
        "preference_tags": ["food", "culture"],
        "daily_plan": [
            {
                "day": "第1天",
                "activities": [
                    {"kind": "sight", "title": "西湖", "cost_estimate": 0},
                    {"kind": "food", "title": "楼外楼", "address": "孤山路30号", "cost_estimate": 300},
                ],
            },
            {
                "day": "第2天",
                "activities": [
                    {"kind": "sight", "title": "灵隐寺", "cost_estimate": 75},
                    {"kind": "hotel", "title": "西湖国宾馆", "cost_estimate": 1200},
                ],
            },
        ],
        "tips": ["带伞", "避开节假日"],
    }

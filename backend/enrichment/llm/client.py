"""Draft itinerary generation via OpenAI-compatible chat completions.

Security: Reads API keys from settings or the caller's request only, never hardcoded.
Provides a deterministic stub when no key is configured for local runs and tests.
"""

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from backend.enrichment.config import Settings, get_settings
from backend.enrichment.errors import DraftGenerationError
from backend.enrichment.llm.prompts import ITINERARY_SYSTEM_PROMPT, itinerary_user_prompt
from backend.enrichment.models.request import GenerationRequest
from backend.enrichment.ports import DraftGenerator

logger = logging.getLogger(__name__)

STUB_DEFAULT_DAYS = 3
STUB_MAX_DAYS = 14


def normalize_itinerary_payload(payload: Any) -> Any:
    """Smooth over common generator quirks before validation.

    - ``tips`` given as a list is joined with newlines
    - days without an ``activities`` list get an empty one
    """
    if not isinstance(payload, dict):
        return payload

    normalized = dict(payload)

    if isinstance(normalized.get("tips"), list):
        normalized["tips"] = "\n".join(str(tip) for tip in normalized["tips"])

    daily_plan = normalized.get("daily_plan")
    if isinstance(daily_plan, list):
        days = []
        for day in daily_plan:
            if isinstance(day, dict) and not isinstance(day.get("activities"), list):
                day = {**day, "activities": []}
            days.append(day)
        normalized["daily_plan"] = days

    return normalized


class DeterministicStubDraftGenerator:
    """Deterministic stub generator for testing (no API key required)."""

    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        """Generate a small deterministic draft from the request."""
        destination = request.destination
        days = _stub_day_count(request)

        daily_plan = []
        for index in range(1, days + 1):
            daily_plan.append(
                {
                    "day": f"Day {index}",
                    "activities": [
                        {
                            "kind": "sight",
                            "title": f"{destination} highlights walk {index}",
                            "time_slot": "09:00-12:00",
                            "cost_estimate": 100,
                        },
                        {
                            "kind": "food",
                            "title": f"{destination} local lunch {index}",
                            "time_slot": "12:00-13:30",
                            "cost_estimate": 80,
                        },
                        {
                            "kind": "hotel",
                            "title": f"{destination} central hotel",
                            "time_slot": "21:00",
                            "cost_estimate": 400,
                        },
                    ],
                }
            )

        return {
            "destination": destination,
            "days": days,
            "party_size": request.party_size,
            "preference_tags": list(request.preferences),
            "daily_plan": daily_plan,
            "tips": "This is a stub itinerary generated without an LLM.",
        }


def _stub_day_count(request: GenerationRequest) -> int:
    if request.days:
        return min(request.days, STUB_MAX_DAYS)
    if request.start_date and request.end_date:
        return min((request.end_date - request.start_date).days + 1, STUB_MAX_DAYS)
    return STUB_DEFAULT_DAYS


class OpenAIDraftGenerator:
    """Draft generator for any OpenAI-compatible chat endpoint (OpenAI, DashScope Qwen)."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str | None = None,
        temperature: float = 0.2,
        provider_name: str = "openai",
    ):
        """Initialize generator.

        Args:
            api_key: Default API key; a request's own key takes precedence
            model: Chat model name
            base_url: Endpoint override for OpenAI-compatible providers
            temperature: Sampling temperature
            provider_name: Label used in errors and logs
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.provider_name = provider_name
        self._default_client: AsyncOpenAI | None = None

    def _client_for(self, request: GenerationRequest) -> AsyncOpenAI:
        if request.user_api_key and request.user_api_key.get_secret_value():
            return AsyncOpenAI(api_key=request.user_api_key.get_secret_value(), base_url=self.base_url)

        if not self.api_key:
            raise DraftGenerationError(f"{self.provider_name} API key is required")

        if self._default_client is None:
            self._default_client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._default_client

    async def generate(self, request: GenerationRequest) -> dict[str, Any]:
        """Generate a raw itinerary payload.

        Raises:
            DraftGenerationError: missing key, API failure, empty or non-JSON content
        """
        client = self._client_for(request)

        try:
            response = await client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": ITINERARY_SYSTEM_PROMPT},
                    {"role": "user", "content": itinerary_user_prompt(request)},
                ],
            )
        except Exception as e:
            raise DraftGenerationError(f"{self.provider_name} request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise DraftGenerationError(f"{self.provider_name} response missing content")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise DraftGenerationError(f"{self.provider_name} returned invalid JSON") from e

        if not isinstance(parsed, dict):
            raise DraftGenerationError(f"{self.provider_name} returned a non-object payload")

        return normalize_itinerary_payload(parsed)


def get_draft_generator(provider: str | None = None, settings: Settings | None = None) -> DraftGenerator:
    """Factory function to get the draft generator for a provider name.

    Returns:
        OpenAIDraftGenerator for "openai" or "qwen" when a key is configured,
        DeterministicStubDraftGenerator otherwise
    """
    settings = settings or get_settings()
    selected = (provider or settings.ai_provider or "qwen").strip().lower()

    if selected == "openai":
        key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else ""
        if key:
            logger.info("Using OpenAI draft generator")
            return OpenAIDraftGenerator(api_key=key, model=settings.openai_model)
    else:
        key = settings.dashscope_api_key.get_secret_value() if settings.dashscope_api_key else ""
        if key:
            logger.info("Using Qwen draft generator")
            return OpenAIDraftGenerator(
                api_key=key,
                model=settings.qwen_model,
                base_url=settings.qwen_base_url,
                temperature=0.25,
                provider_name="qwen",
            )

    logger.warning(f"No API key configured for {selected!r}, using deterministic stub generator")
    return DeterministicStubDraftGenerator()

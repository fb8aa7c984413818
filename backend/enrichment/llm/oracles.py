"""Secondary LLM oracles: location refinement and internationality classification."""

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from backend.enrichment.config import Settings, get_settings
from backend.enrichment.llm.prompts import (
    INTERNATIONALITY_SYSTEM_PROMPT,
    LOCATION_REFINEMENT_SYSTEM_PROMPT,
    internationality_user_prompt,
    location_refinement_user_prompt,
)
from backend.enrichment.models.places import RecentActivity, RefinementResult

logger = logging.getLogger(__name__)


async def _complete_json(
    client: AsyncOpenAI, model: str, system_prompt: str, user_prompt: str, temperature: float
) -> dict[str, Any] | None:
    response = await client.chat.completions.create(
        model=model,
        temperature=temperature,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
    )
    content = response.choices[0].message.content if response.choices else None
    if not content or not content.strip():
        return None
    parsed = json.loads(content)
    return parsed if isinstance(parsed, dict) else None


class OpenAIRefinementOracle:
    """Refinement oracle asking an OpenAI-compatible model for location hints."""

    def __init__(self, client: AsyncOpenAI, model: str, temperature: float = 0.1):
        self.client = client
        self.model = model
        self.temperature = temperature

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
        """Return refinement hints; API and parse errors propagate to the caller."""
        user_prompt = location_refinement_user_prompt(
            destination=destination,
            activity_title=activity_title,
            kind=kind,
            time_slot=time_slot,
            existing_address=existing_address,
            existing_note=existing_note,
            day_label=day_label,
            recent_activities=recent_activities,
        )
        payload = await _complete_json(
            self.client, self.model, LOCATION_REFINEMENT_SYSTEM_PROMPT, user_prompt, self.temperature
        )
        if payload is None:
            return None
        return RefinementResult.model_validate(payload)


class OpenAIInternationalityOracle:
    """Internationality oracle; answers None whenever it cannot decide."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def classify(self, destination: str) -> bool | None:
        try:
            payload = await _complete_json(
                self.client,
                self.model,
                INTERNATIONALITY_SYSTEM_PROMPT,
                internationality_user_prompt(destination),
                temperature=0.0,
            )
        except Exception as e:
            logger.warning(f"Internationality oracle failed: {type(e).__name__}")
            return None

        answer = payload.get("international") if payload else None
        return answer if isinstance(answer, bool) else None


def _oracle_client(settings: Settings) -> tuple[AsyncOpenAI, str] | None:
    """Client and model for the configured provider, or None without a key."""
    if settings.ai_provider.strip().lower() == "openai":
        if settings.openai_api_key and settings.openai_api_key.get_secret_value():
            return (
                AsyncOpenAI(api_key=settings.openai_api_key.get_secret_value()),
                settings.openai_model,
            )
        return None

    if settings.dashscope_api_key and settings.dashscope_api_key.get_secret_value():
        return (
            AsyncOpenAI(
                api_key=settings.dashscope_api_key.get_secret_value(),
                base_url=settings.qwen_base_url,
            ),
            settings.qwen_model,
        )
    return None


def create_refinement_oracle(settings: Settings | None = None) -> OpenAIRefinementOracle | None:
    """Refinement oracle when enabled and credentialed, else None."""
    settings = settings or get_settings()
    if not settings.refinement_enabled:
        return None
    resolved = _oracle_client(settings)
    if resolved is None:
        logger.warning("No API key configured, location refinement disabled")
        return None
    client, model = resolved
    return OpenAIRefinementOracle(client=client, model=model)


def create_internationality_oracle(
    settings: Settings | None = None,
) -> OpenAIInternationalityOracle | None:
    """Internationality oracle when enabled and credentialed, else None."""
    settings = settings or get_settings()
    if not settings.internationality_oracle_enabled:
        return None
    resolved = _oracle_client(settings)
    if resolved is None:
        return None
    client, model = resolved
    return OpenAIInternationalityOracle(client=client, model=model)

"""Health check endpoints.

- /health: liveness, always 200
- /healthz: cache store reachability, 503 when a configured redis is down
"""

import json
from typing import Any

import redis.asyncio as redis_asyncio
from fastapi import APIRouter, Response

from backend.enrichment.config import Settings, get_settings

router = APIRouter()


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    client = redis_asyncio.from_url(settings.redis_url)
    try:
        await client.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")
    finally:
        await client.aclose()


def provider_status(settings: Settings) -> dict[str, str]:
    """Which providers are credentialed; never exposes the credentials."""
    provider = settings.ai_provider.strip().lower()
    llm_key = settings.openai_api_key if provider == "openai" else settings.dashscope_api_key
    maps_key = (
        settings.google_maps_api_key
        if settings.maps_provider.strip().lower() == "google"
        else settings.amap_rest_key
    )
    return {
        "llm": provider if llm_key else "stub",
        "maps": settings.maps_provider if maps_key else "not_configured",
        "imagery": "google" if settings.google_maps_api_key else "not_configured",
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Health check endpoint.

    Returns:
        200 with component status if the cache store is reachable
        503 if a configured redis cannot be reached
    """
    settings = get_settings()

    redis_ok, redis_status = await check_redis(settings)

    response_body = {
        "status": "ok" if redis_ok else "degraded",
        "components": {
            "redis": redis_status,
            **provider_status(settings),
        },
    }

    if not redis_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body

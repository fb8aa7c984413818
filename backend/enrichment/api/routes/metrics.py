"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - pipeline_stage_latency_ms{stage, outcome}
    - pipeline_degradations_total{stage, reason}
    - itinerary_cache_events_total{event}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

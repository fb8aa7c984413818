"""Structured logging for pipeline stage outcomes."""

import logging
from typing import Any

from backend.enrichment.config import get_settings

logger = logging.getLogger(__name__)

SUCCESS_OUTCOMES = ("success", "cache_hit", "cache_miss", "skipped")


class StructuredPipelineLogger:
    """Structured logger for pipeline stages.

    Degraded outcomes are warnings outside production and debug records in
    production, so absorbed failures stay visible during development only.
    """

    def __init__(self, production: bool | None = None) -> None:
        self._production = get_settings().is_production if production is None else production

    def log_stage(
        self,
        fingerprint: str | None,
        stage: str,
        outcome: str,
        latency_ms: float | None = None,
        error_reason: str | None = None,
        **fields: Any,
    ) -> None:
        """Log one stage outcome with structured data."""
        log_data: dict[str, Any] = {
            "fingerprint": fingerprint,
            "stage": stage,
            "outcome": outcome,
        }
        if latency_ms is not None:
            log_data["latency_ms"] = round(latency_ms, 2)
        if error_reason:
            log_data["error_reason"] = error_reason
        log_data.update(fields)

        log_msg = f"Pipeline stage: {stage} - {outcome}"

        if outcome in SUCCESS_OUTCOMES:
            logger.info(log_msg, extra={"structured": log_data})
        elif self._production:
            logger.debug(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

"""Structured logging for remote sync attempts."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredSyncLogger:
    """Structured logger for outbox sync attempts."""

    def log_attempt(
        self,
        outcome: str,
        latency_ms: float,
        *,
        entries: int,
        cursor: str | None,
        forced: bool = False,
        error_reason: str | None = None,
    ) -> None:
        """Log one sync attempt with structured data."""
        log_data: dict[str, Any] = {
            "outcome": outcome,
            "entries": entries,
            "cursor": cursor,
            "forced": forced,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Outbox sync: {outcome}"

        if outcome == "saved":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

"""
Structured logging for the rota service.

One JSON object per line on stdout. Request-scoped fields (request_id) are
merged from structlog context variables, and every entry carries the service
name so several deployments can share one log sink.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

SERVICE_NAME = "family-care-rota"


def setup_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines; False gives the console renderer for local runs
    """
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _drop_empty_fields,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Redis and uvicorn access logs duplicate our own request lines
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _add_service(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _drop_empty_fields(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in event_dict.items() if value is not None}


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_health_check(check: str, healthy: bool, latency_ms: float, error: str = None):
    """Log one readiness check result."""
    logger = get_logger("health")
    if healthy:
        logger.info("Health check passed", check=check, latency_ms=latency_ms)
    else:
        logger.error("Health check failed", check=check, latency_ms=latency_ms, error=error)


def log_request(method: str, path: str, status_code: int, duration_ms: float):
    """Log a finished HTTP request."""
    logger = get_logger("http")
    fields = {"method": method, "path": path, "status_code": status_code, "duration_ms": duration_ms}
    if status_code >= 400:
        logger.warning("HTTP request failed", **fields)
    else:
        logger.info("HTTP request completed", **fields)


def log_sync_status(previous: str, current: str, version: int, error: str = None):
    """Log a change of the live subscription status."""
    logger = get_logger("sync")
    if current == "sync_lost":
        logger.error("Sync lost, keeping last known rota", previous=previous, version=version, error=error)
    else:
        logger.info("Sync status changed", previous=previous, status=current, version=version)


def log_slot_toggle(slot_id: str, user_id: str, outcome: str, error: str = None):
    """Log the outcome of a claim/unclaim attempt."""
    logger = get_logger("claims")
    if outcome == "failed":
        logger.error("Slot toggle failed", slot_id=slot_id, user_id=user_id, error=error)
    elif outcome == "not_ready":
        logger.warning("Slot toggle rejected", slot_id=slot_id, user_id=user_id, reason=error)
    else:
        logger.info("Slot toggled", slot_id=slot_id, user_id=user_id, outcome=outcome)

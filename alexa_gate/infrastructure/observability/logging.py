"""
Structured logging setup for the skill request gateway.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            # Pull request_id and friends bound by RequestContextMiddleware
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _drop_body_fields,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _drop_body_fields(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Never ship raw request bodies or signatures to the log sink."""
    event_dict.pop("body", None)
    event_dict.pop("signature", None)
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_request(method: str, path: str, status_code: int, duration_ms: float):
    """Log HTTP requests with consistent fields."""
    logger = get_logger("http")

    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }

    if status_code >= 400:
        logger.warning("HTTP request failed", **log_data)
    else:
        logger.info("HTTP request completed", **log_data)


def log_verification(
    path: str,
    verified: bool,
    duration_ms: float,
    error_code: str = None,
    detail: str = None,
):
    """Log the outcome of a signed-request verification with consistent fields."""
    logger = get_logger("verification")

    log_data = {
        "path": path,
        "verified": verified,
        "duration_ms": duration_ms,
    }

    if error_code:
        log_data["error_code"] = error_code
    if detail:
        log_data["detail"] = detail

    if verified:
        logger.info("Request verification passed", **log_data)
    else:
        logger.warning("Request verification rejected", **log_data)

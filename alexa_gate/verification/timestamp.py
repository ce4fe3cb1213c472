"""Replay protection based on the request's declared creation time."""

import json
import re
from datetime import UTC, datetime

from alexa_gate.infrastructure.observability.logging import get_logger
from alexa_gate.verification.errors import TimestampInvalid, TimestampStale
from alexa_gate.verification.models import VerificationConfig

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
# The platform's reference parser tolerates a fractional-seconds field
TIMESTAMP_FORMAT_FRACTIONAL = "%Y-%m-%dT%H:%M:%S.%fZ"
# strptime alone accepts unpadded fields such as "2026-1-1T0:0:0Z"
TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?Z", re.ASCII)


def parse_timestamp(value: str) -> datetime:
    """Parse a `YYYY-MM-DDTHH:MM:SSZ` string into an aware UTC datetime."""
    if not TIMESTAMP_RE.fullmatch(value):
        raise ValueError(f"timestamp {value!r} does not match {TIMESTAMP_FORMAT}")
    fmt = TIMESTAMP_FORMAT_FRACTIONAL if "." in value else TIMESTAMP_FORMAT
    return datetime.strptime(value, fmt).replace(tzinfo=UTC)


def extract_timestamp(body: bytes) -> str:
    """Pull `request.timestamp` out of the body without keeping anything else."""
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise TimestampInvalid(f"could not decode body: {type(e).__name__}: {e}") from e

    request = payload.get("request") if isinstance(payload, dict) else None
    timestamp = request.get("timestamp") if isinstance(request, dict) else None
    if not isinstance(timestamp, str):
        raise TimestampInvalid("body has no request.timestamp string")
    return timestamp


def validate_timestamp(
    body: bytes, config: VerificationConfig, now: datetime | None = None
) -> datetime:
    """
    Reject requests whose declared timestamp is older than the tolerance.

    Args:
        body: Raw request bytes (only read, never modified)
        config: Verification settings (max_skew_seconds, reject_future_timestamps)
        now: Current time; defaults to the wall clock

    Returns:
        The parsed request timestamp

    Raises:
        TimestampInvalid: body or timestamp could not be decoded
        TimestampStale: timestamp is outside the tolerance window
    """
    raw = extract_timestamp(body)
    try:
        request_time = parse_timestamp(raw)
    except ValueError as e:
        raise TimestampInvalid(f"could not parse timestamp: {e}") from e

    now = now or datetime.now(UTC)
    age_seconds = (now - request_time).total_seconds()

    if age_seconds > config.max_skew_seconds:
        raise TimestampStale(
            f"timestamp is stale: {age_seconds:.0f}s old, limit {config.max_skew_seconds}s"
        )

    if -age_seconds > config.max_skew_seconds:
        if config.reject_future_timestamps:
            raise TimestampStale(f"timestamp is {-age_seconds:.0f}s in the future")
        logger.warning(
            "Request timestamp is ahead of server clock beyond tolerance",
            skew_seconds=round(-age_seconds, 1),
            max_skew_seconds=config.max_skew_seconds,
        )

    return request_time

"""Immutable verification settings and the result handed to downstream handlers."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime

from cryptography import x509

from alexa_gate.config import Settings


@dataclass(frozen=True, slots=True)
class VerificationConfig:
    """
    Trust constants for one verifier instance.

    Built once at startup (see `from_settings`) and never mutated, so tests can
    swap in a local root CA and hostname without touching globals.
    """

    trust_roots: bytes
    trusted_host: str = "s3.amazonaws.com"
    trusted_port: int = 443
    required_path_prefix: str = "/echo.api/"
    verify_hostname: str = "echo-api.amazon.com"
    max_skew_seconds: int = 150
    reject_future_timestamps: bool = False
    fetch_timeout_seconds: float = 5.0
    cache_ttl_seconds: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> VerificationConfig:
        return cls(
            trust_roots=settings.trust_roots_pem(),
            trusted_host=settings.ALEXA_TRUSTED_HOST,
            trusted_port=settings.ALEXA_TRUSTED_PORT,
            required_path_prefix=settings.ALEXA_REQUIRED_PATH_PREFIX,
            verify_hostname=settings.ALEXA_VERIFY_HOSTNAME,
            max_skew_seconds=settings.ALEXA_MAX_SKEW_SECONDS,
            reject_future_timestamps=settings.ALEXA_REJECT_FUTURE_TIMESTAMPS,
            fetch_timeout_seconds=settings.ALEXA_FETCH_TIMEOUT_SECONDS,
            cache_ttl_seconds=settings.ALEXA_CERT_CACHE_TTL_SECONDS,
        )


@dataclass(frozen=True, slots=True)
class VerifiedRequest:
    """A request body that cleared every gate, plus what proved it."""

    body: bytes
    certificate: x509.Certificate = field(repr=False)
    timestamp: datetime
    chain_url: str

    def stream(self) -> io.BytesIO:
        """Fresh readable view over the exact bytes that were verified."""
        return io.BytesIO(self.body)

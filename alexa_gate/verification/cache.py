"""
In-memory cache of already-validated signing certificates.

Disabled unless ALEXA_CERT_CACHE_TTL_SECONDS > 0. Entries are keyed by the
chain URL together with a SHA-256 digest of the fetched PEM, so the chain is
still fetched every request but chain verification is skipped only for the
exact bytes that were verified before. Entries never outlive the certificate
they hold: expiry is min(ttl, certificate not_valid_after).
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from datetime import UTC, datetime, timedelta

from cryptography import x509

from alexa_gate.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def chain_cache_key(chain_url: str, pem_data: bytes) -> str:
    """Cache key for one chain URL serving one exact PEM payload."""
    return f"{chain_url}#{hashlib.sha256(pem_data).hexdigest()}"


class CertificateCache:
    def __init__(self, ttl_seconds: int, max_entries: int = 32):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: OrderedDict[str, tuple[x509.Certificate, datetime]] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: str, now: datetime | None = None) -> x509.Certificate | None:
        if not self.enabled:
            return None
        now = now or datetime.now(UTC)
        entry = self._entries.get(key)
        if entry is None:
            return None

        certificate, expires_at = entry
        if now >= expires_at or now < certificate.not_valid_before_utc:
            self._entries.pop(key, None)
            logger.debug("Cached certificate expired", key=key)
            return None

        self._entries.move_to_end(key)
        return certificate

    def put(
        self, key: str, certificate: x509.Certificate, now: datetime | None = None
    ) -> None:
        if not self.enabled:
            return
        now = now or datetime.now(UTC)
        expires_at = min(
            now + timedelta(seconds=self.ttl_seconds),
            certificate.not_valid_after_utc,
        )
        if expires_at <= now:
            return

        self._entries[key] = (certificate, expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

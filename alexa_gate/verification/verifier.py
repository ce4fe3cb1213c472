"""
RequestVerifier - the four-gate pipeline for signed voice-platform requests.

Gate order:
    1. chain URL        (no network access if this fails)
    2. timestamp        (cheap, rejects replays before any fetch)
    3. certificate chain
    4. body signature

Every gate either passes or raises a VerificationError. There is no partial
pass and nothing is retried.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import httpx

from alexa_gate.infrastructure.observability.logging import get_logger
from alexa_gate.verification.cache import CertificateCache, chain_cache_key
from alexa_gate.verification.chain import CertificateChainValidator
from alexa_gate.verification.models import VerificationConfig, VerifiedRequest
from alexa_gate.verification.signature import verify_signature
from alexa_gate.verification.timestamp import validate_timestamp
from alexa_gate.verification.url import validate_chain_url

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RequestVerifier:
    """
    Verify that a raw request body was signed by the voice platform.

    Usage:
        verifier = RequestVerifier(VerificationConfig.from_settings(settings))
        verified = await verifier.verify(chain_url, signature, body)
        verified.stream().read() == body
    """

    def __init__(
        self,
        config: VerificationConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Args:
            config: Immutable trust settings
            transport: Optional httpx transport for the chain fetch (tests)
            clock: Source of "now"; injectable so tests can pin time
        """
        self.config = config
        self.clock = clock
        self.chain_validator = CertificateChainValidator(config, transport=transport)
        self.cache = CertificateCache(config.cache_ttl_seconds)

        logger.info(
            "Request verifier initialized",
            trusted_host=config.trusted_host,
            required_path_prefix=config.required_path_prefix,
            verify_hostname=config.verify_hostname,
            max_skew_seconds=config.max_skew_seconds,
            cache_enabled=self.cache.enabled,
        )

    async def verify(
        self, chain_url: str | None, signature: str | None, body: bytes
    ) -> VerifiedRequest:
        """
        Run all gates over one request.

        Args:
            chain_url: SignatureCertChainUrl header value
            signature: Signature header value (base64)
            body: The complete raw request body, owned by this call

        Returns:
            VerifiedRequest wrapping the same bytes

        Raises:
            VerificationError: the first gate that rejected the request
        """
        now = self.clock()

        validate_chain_url(chain_url, self.config)
        request_time = validate_timestamp(body, self.config, now=now)
        certificate = await self._trusted_certificate(chain_url, now)
        verify_signature(signature, certificate.public_key(), body)

        return VerifiedRequest(
            body=bytes(body),
            certificate=certificate,
            timestamp=request_time,
            chain_url=chain_url,
        )

    async def _trusted_certificate(self, chain_url: str, now: datetime):
        pem_data = await self.chain_validator.fetch_chain(chain_url)
        key = chain_cache_key(chain_url, pem_data)

        cached = self.cache.get(key, now=now)
        if cached is not None:
            logger.debug("Using cached signing certificate", chain_url=chain_url)
            return cached

        certificates = self.chain_validator.decode_chain(pem_data)
        certificate = self.chain_validator.verify_chain(certificates, now=now)
        self.cache.put(key, certificate, now=now)
        return certificate

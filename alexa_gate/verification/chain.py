"""
Certificate chain retrieval and trust validation.

The chain URL has already passed `validate_chain_url`. The fetched PEM file
carries the signing (leaf) certificate first, followed by its intermediates.
Trust anchors always come from configuration, never from the fetched file.
"""

from datetime import UTC, datetime

import httpx
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.verification import PolicyBuilder, Store
from cryptography.x509.verification import VerificationError as X509VerificationError

from alexa_gate.infrastructure.observability.logging import get_logger
from alexa_gate.verification.errors import ChainDecodeFailed, ChainVerifyFailed, FetchFailed
from alexa_gate.verification.models import VerificationConfig

logger = get_logger(__name__)

# A real chain file is a few KB; anything far larger is not a chain
MAX_CHAIN_BYTES = 64 * 1024


def load_trust_store(trust_roots: bytes) -> Store:
    """Build the verification store from PEM-encoded trust anchors."""
    try:
        return Store(x509.load_pem_x509_certificates(trust_roots))
    except ValueError as e:
        raise ChainVerifyFailed(f"no usable trust anchors configured: {e}") from e


class CertificateChainValidator:
    """
    Fetch a PEM certificate chain and validate its leaf certificate.

    One instance is shared by all requests; it holds only immutable state
    (config and the parsed trust store), so concurrent use is safe.
    """

    def __init__(
        self,
        config: VerificationConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Verification settings (timeout, trust roots, hostname)
            transport: Optional httpx transport, used by tests to stub the network
        """
        self.config = config
        self._transport = transport
        self._store = load_trust_store(config.trust_roots)

    async def fetch_chain(self, chain_url: str) -> bytes:
        """
        GET the chain file. No retries: any failure rejects the request.

        Raises:
            FetchFailed: transport error, timeout, non-2xx status or oversized body
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.config.fetch_timeout_seconds,
                transport=self._transport,
                follow_redirects=False,
            ) as client:
                response = await client.get(chain_url)
        except httpx.HTTPError as e:
            raise FetchFailed(f"could not get cert chain pem: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise FetchFailed(f"cert chain request returned HTTP {response.status_code}")

        if len(response.content) > MAX_CHAIN_BYTES:
            raise FetchFailed(f"cert chain is too large: {len(response.content)} bytes")

        return response.content

    def decode_chain(self, pem_data: bytes) -> list[x509.Certificate]:
        """
        Decode every certificate in the PEM payload, leaf first.

        Raises:
            ChainDecodeFailed: no PEM blocks, or a block is not a certificate
        """
        try:
            certificates = x509.load_pem_x509_certificates(pem_data)
        except ValueError as e:
            raise ChainDecodeFailed(f"could not decode cert chain: {e}") from e

        if not certificates:
            raise ChainDecodeFailed("cert chain contains no certificates")
        return certificates

    def verify_chain(
        self, certificates: list[x509.Certificate], now: datetime | None = None
    ) -> x509.Certificate:
        """
        Verify the leaf against the trust store and the pinned hostname.

        Checks validity period, chain of signatures up to a configured root,
        and that the leaf's SAN covers `verify_hostname`.

        Raises:
            ChainVerifyFailed: on any trust, validity or hostname failure
        """
        leaf, intermediates = certificates[0], certificates[1:]

        verifier = (
            PolicyBuilder()
            .store(self._store)
            .time(now or datetime.now(UTC))
            .build_server_verifier(x509.DNSName(self.config.verify_hostname))
        )
        try:
            verifier.verify(leaf, intermediates)
        except X509VerificationError as e:
            raise ChainVerifyFailed(f"could not verify cert chain: {e}") from e
        except ValueError as e:
            # Malformed extensions surface as ValueError from the parser
            raise ChainVerifyFailed(f"could not verify cert chain: {e}") from e

        if not isinstance(leaf.public_key(), rsa.RSAPublicKey):
            raise ChainVerifyFailed("signing certificate does not carry an RSA key")

        return leaf

    async def fetch_and_validate(
        self, chain_url: str, now: datetime | None = None
    ) -> x509.Certificate:
        """Fetch, decode and verify; returns the trusted leaf certificate."""
        pem_data = await self.fetch_chain(chain_url)
        certificates = self.decode_chain(pem_data)
        leaf = self.verify_chain(certificates, now=now)

        logger.debug(
            "Certificate chain verified",
            chain_url=chain_url,
            subject=leaf.subject.rfc4514_string(),
            not_valid_after=leaf.not_valid_after_utc.isoformat(),
            chain_length=len(certificates),
        )
        return leaf

import base64
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from alexa_gate.verification import RequestVerifier, VerificationConfig

PLATFORM_HOSTNAME = "echo-api.amazon.com"
CHAIN_URL = "https://s3.amazonaws.com/echo.api/echo-api-cert.pem"


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _key_usage(*, ca: bool) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=not ca,
        content_commitment=False,
        key_encipherment=not ca,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=ca,
        crl_sign=ca,
        encipher_only=False,
        decipher_only=False,
    )


def _new_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _issue(
    subject: str,
    key: rsa.RSAPrivateKey,
    issuer_cert: x509.Certificate | None,
    issuer_key: rsa.RSAPrivateKey,
    *,
    ca: bool,
    dns_name: str | None = None,
    not_before: datetime | None = None,
    not_after: datetime | None = None,
) -> x509.Certificate:
    now = datetime.now(UTC)
    issuer_name = issuer_cert.subject if issuer_cert is not None else _name(subject)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(_key_usage(ca=ca), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    if issuer_cert is not None:
        issuer_ski = issuer_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(issuer_ski),
            critical=False,
        )
    else:
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key()),
            critical=False,
        )
    if dns_name is not None:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(dns_name)]), critical=False
        ).add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
    return builder.sign(issuer_key, hashes.SHA256())


def to_pem(*certificates: x509.Certificate) -> bytes:
    return b"".join(c.public_bytes(serialization.Encoding.PEM) for c in certificates)


class TestPKI:
    """Throwaway root -> intermediate -> leaf hierarchy mirroring the platform's."""

    __test__ = False

    def __init__(self):
        self.root_key = _new_key()
        self.root = _issue("Test Root CA", self.root_key, None, self.root_key, ca=True)

        self.intermediate_key = _new_key()
        self.intermediate = _issue(
            "Test Intermediate CA", self.intermediate_key, self.root, self.root_key, ca=True
        )

        self.leaf_key = _new_key()
        self.leaf = _issue(
            PLATFORM_HOSTNAME,
            self.leaf_key,
            self.intermediate,
            self.intermediate_key,
            ca=False,
            dns_name=PLATFORM_HOSTNAME,
        )

        self.self_signed_key = _new_key()
        self.self_signed = _issue(
            PLATFORM_HOSTNAME,
            self.self_signed_key,
            None,
            self.self_signed_key,
            ca=False,
            dns_name=PLATFORM_HOSTNAME,
        )

    def issue_leaf(self, dns_name: str = PLATFORM_HOSTNAME, **kwargs) -> x509.Certificate:
        """Issue another leaf for the shared leaf key (wrong host, expired, ...)."""
        return _issue(
            dns_name,
            self.leaf_key,
            self.intermediate,
            self.intermediate_key,
            ca=False,
            dns_name=dns_name,
            **kwargs,
        )

    @property
    def root_pem(self) -> bytes:
        return to_pem(self.root)

    @property
    def chain_pem(self) -> bytes:
        return to_pem(self.leaf, self.intermediate)


class ChainServer:
    """httpx MockTransport handler that serves a PEM chain and counts fetches."""

    def __init__(self, pem: bytes = b"", status_code: int = 200, error: Exception | None = None):
        self.pem = pem
        self.status_code = status_code
        self.error = error
        self.requested_urls: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.requested_urls)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requested_urls.append(str(request.url))
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.pem)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def make_body(age_seconds: float = 0, timestamp: str | None = None) -> bytes:
    """Serialize a LaunchRequest envelope whose timestamp is `age_seconds` old."""
    if timestamp is None:
        timestamp = format_timestamp(datetime.now(UTC) - timedelta(seconds=age_seconds))
    payload = {
        "version": "1.0",
        "session": {
            "new": True,
            "sessionId": "amzn1.echo-api.session.test",
            "application": {"applicationId": "amzn1.ask.skill.test"},
            "user": {"userId": "amzn1.ask.account.test"},
        },
        "request": {
            "type": "LaunchRequest",
            "requestId": "amzn1.echo-api.request.test",
            "timestamp": timestamp,
            "locale": "en-US",
        },
    }
    return json.dumps(payload, separators=(",", ": ")).encode("utf-8")


def sign(body: bytes, key: rsa.RSAPrivateKey) -> str:
    """SHA-1 / PKCS#1 v1.5 signature, base64 encoded, as the platform sends it."""
    return base64.b64encode(key.sign(body, padding.PKCS1v15(), hashes.SHA1())).decode("ascii")


@pytest.fixture(scope="session")
def pki() -> TestPKI:
    return TestPKI()


@pytest.fixture
def verification_config(pki) -> VerificationConfig:
    return VerificationConfig(trust_roots=pki.root_pem)


@pytest.fixture
def chain_server(pki) -> ChainServer:
    return ChainServer(pki.chain_pem)


@pytest.fixture
def verifier(verification_config, chain_server) -> RequestVerifier:
    return RequestVerifier(verification_config, transport=chain_server.transport)


@pytest.fixture
def signed_request(pki):
    """(chain_url, signature, body) for a fresh, correctly signed request."""
    body = make_body(age_seconds=5)
    return CHAIN_URL, sign(body, pki.leaf_key), body

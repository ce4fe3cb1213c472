"""
Vetting of the caller-supplied SignatureCertChainUrl.

This runs before anything touches the network, so an attacker cannot make us
fetch from a host of their choosing.
"""

import posixpath
from urllib.parse import unquote, urlsplit

from alexa_gate.infrastructure.observability.logging import get_logger
from alexa_gate.verification.errors import InvalidChainURL
from alexa_gate.verification.models import VerificationConfig

logger = get_logger(__name__)


def _split_host_port(netloc: str) -> tuple[str, str | None]:
    """Return (host, port) from a netloc, keeping the host's original case."""
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        bracket_end = host.find("]")
        rest = host[bracket_end + 1 :]
        return host[: bracket_end + 1], rest[1:] if rest.startswith(":") else None
    if ":" in host:
        host, port = host.rsplit(":", 1)
        return host, port
    return host, None


def validate_chain_url(chain_url: str | None, config: VerificationConfig) -> None:
    """
    Check a certificate chain URL against the trusted distribution point.

    Checks, in order, stopping at the first failure:
        1. URL parses
        2. scheme is https
        3. an explicit port must be the trusted port, on exactly the trusted host
        4. host starts with the trusted host (case-insensitive)
        5. percent-decoded, normalized path starts with the required prefix

    Raises:
        InvalidChainURL: describing the first check that failed
    """
    if not chain_url:
        raise InvalidChainURL("missing SignatureCertChainUrl header")

    try:
        parts = urlsplit(chain_url)
        # Accessing .port validates it; a non-numeric port raises here
        parts.port
    except ValueError as e:
        raise InvalidChainURL(f"could not parse chain URL: {e}") from e

    if parts.scheme != "https":
        raise InvalidChainURL(f"scheme is not https: {parts.scheme!r}")

    host, port = _split_host_port(parts.netloc)
    if port is not None:
        if port != str(config.trusted_port) or host != config.trusted_host:
            raise InvalidChainURL(f"invalid hostname or port: {parts.netloc!r}")

    if not host.lower().startswith(config.trusted_host.lower()):
        raise InvalidChainURL(f"invalid hostname: {host!r}")

    # "/echo.api/../x", raw or percent-encoded, must not escape the prefix
    path = parts.path
    decoded = unquote(path)
    normalized = posixpath.normpath(decoded) + ("/" if decoded.endswith("/") else "")
    if not path.startswith(config.required_path_prefix) or not normalized.startswith(
        config.required_path_prefix
    ):
        raise InvalidChainURL(f"invalid path: {path!r}")

    logger.debug("Chain URL accepted", chain_url=chain_url)

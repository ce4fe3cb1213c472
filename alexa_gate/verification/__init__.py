"""
Verification of signed requests from the voice platform.

Gates: chain URL -> timestamp -> certificate chain -> body signature.
"""

from alexa_gate.verification.errors import (
    BodyReadFailed,
    ChainDecodeFailed,
    ChainVerifyFailed,
    FetchFailed,
    InvalidChainURL,
    SignatureDecodeFailed,
    SignatureVerifyFailed,
    TimestampInvalid,
    TimestampStale,
    VerificationError,
)
from alexa_gate.verification.models import VerificationConfig, VerifiedRequest
from alexa_gate.verification.verifier import RequestVerifier

__all__ = [
    "RequestVerifier",
    "VerificationConfig",
    "VerifiedRequest",
    "VerificationError",
    "InvalidChainURL",
    "FetchFailed",
    "ChainDecodeFailed",
    "ChainVerifyFailed",
    "BodyReadFailed",
    "TimestampInvalid",
    "TimestampStale",
    "SignatureDecodeFailed",
    "SignatureVerifyFailed",
]

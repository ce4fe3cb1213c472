"""
Rejection taxonomy for signed voice-platform requests.

Every failure is terminal for the request. The `code` is what gets logged;
callers only ever see a bare 400.
"""

__all__ = [
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


class VerificationError(Exception):
    """Base class for every reason a request can be rejected."""

    code = "VerificationError"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class InvalidChainURL(VerificationError):
    code = "InvalidChainURL"


class FetchFailed(VerificationError):
    code = "FetchFailed"


class ChainDecodeFailed(VerificationError):
    code = "ChainDecodeFailed"


class ChainVerifyFailed(VerificationError):
    code = "ChainVerifyFailed"


class BodyReadFailed(VerificationError):
    code = "BodyReadFailed"


class TimestampInvalid(VerificationError):
    code = "TimestampInvalid"


class TimestampStale(VerificationError):
    code = "TimestampStale"


class SignatureDecodeFailed(VerificationError):
    code = "SignatureDecodeFailed"


class SignatureVerifyFailed(VerificationError):
    code = "SignatureVerifyFailed"

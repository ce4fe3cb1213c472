"""
Alexa Verification Middleware - Reject requests not signed by the voice platform.

Every request under a protected path must clear the RequestVerifier gates:
- SignatureCertChainUrl points at the trusted distribution point
- request.timestamp is fresh
- the certificate chain is trusted and issued for the platform hostname
- the Signature header verifies over the exact body bytes

Behavior:
- Any failure: empty 400 response, handler never runs, reason logged server side
- Success: VerifiedRequest stored on request.state.alexa_verification and the
  handler runs once; `await request.body()` returns the identical bytes

Usage:
    from alexa_gate.middleware.alexa_verification import AlexaVerificationMiddleware

    app.add_middleware(
        AlexaVerificationMiddleware,
        verifier=RequestVerifier(VerificationConfig.from_settings(settings)),
        protected_paths=settings.protected_paths(),
    )
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response

from alexa_gate.infrastructure.observability.logging import get_logger, log_verification
from alexa_gate.verification.errors import BodyReadFailed, VerificationError
from alexa_gate.verification.verifier import RequestVerifier

logger = get_logger(__name__)

CHAIN_URL_HEADER = "SignatureCertChainUrl"
SIGNATURE_HEADER = "Signature"


class AlexaVerificationMiddleware(BaseHTTPMiddleware):
    """
    Gate protected routes behind platform request verification.

    Request.state Namespace Convention:
    - alexa_verification: VerifiedRequest, set only when every gate passed
    """

    def __init__(
        self,
        app,
        verifier: RequestVerifier,
        protected_paths: list[str] | None = None,
    ):
        """
        Initialize verification middleware.

        Args:
            app: FastAPI application
            verifier: Shared RequestVerifier (holds only immutable trust state)
            protected_paths: Path prefixes to guard; None guards every path
        """
        super().__init__(app)
        self.verifier = verifier
        self.protected_paths = tuple(protected_paths) if protected_paths is not None else None

        logger.info(
            "Alexa verification middleware initialized",
            protected_paths=self.protected_paths or "all",
        )

    def _is_protected(self, path: str) -> bool:
        if self.protected_paths is None:
            return True
        return any(path.startswith(prefix) for prefix in self.protected_paths)

    async def dispatch(self, request: Request, call_next):
        """
        Verify the request, then hand it to the next handler exactly once.

        Only VerificationError is turned into a 400. Anything else propagates
        so a bug can never be mistaken for a passed check.
        """
        if not self._is_protected(request.url.path):
            return await call_next(request)

        start_time = time.time()
        try:
            body = await self._read_body(request)
            verified = await self.verifier.verify(
                request.headers.get(CHAIN_URL_HEADER),
                request.headers.get(SIGNATURE_HEADER),
                body,
            )
        except VerificationError as e:
            log_verification(
                path=request.url.path,
                verified=False,
                duration_ms=round((time.time() - start_time) * 1000, 2),
                error_code=e.code,
                detail=e.detail,
            )
            return Response(status_code=400)

        log_verification(
            path=request.url.path,
            verified=True,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )

        request.state.alexa_verification = verified
        # BaseHTTPMiddleware replays the buffered body to the downstream app
        return await call_next(request)

    async def _read_body(self, request: Request) -> bytes:
        try:
            return await request.body()
        except ClientDisconnect as e:
            raise BodyReadFailed("client disconnected before body was read") from e

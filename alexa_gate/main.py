"""
Application entry point: skill webhook behind platform request verification.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from alexa_gate.config import settings
from alexa_gate.infrastructure.observability.logging import get_logger, log_request, setup_logging
from alexa_gate.middleware import AlexaVerificationMiddleware, RequestContextMiddleware
from alexa_gate.routes import skill
from alexa_gate.verification import RequestVerifier, VerificationConfig

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log application startup and shutdown."""
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        protected_paths=settings.protected_paths(),
    )
    yield
    logger.info("Application shutting down")


def create_app(verifier: RequestVerifier | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        verifier: Pre-built verifier; defaults to one built from settings
    """
    if verifier is None:
        verifier = RequestVerifier(VerificationConfig.from_settings(settings))

    app = FastAPI(
        title="Alexa Gate",
        description="Skill webhook with platform request signature verification",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(skill.router)

    # Middleware added last runs first: request context wraps verification
    app.add_middleware(
        AlexaVerificationMiddleware,
        verifier=verifier,
        protected_paths=settings.protected_paths(),
    )
    app.add_middleware(RequestContextMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time, 2),
        )
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

"""
Verifier Service - Main Application
===================================

FastAPI application that verifies Noir/UltraHonk proofs and returns
Ed25519-signed attestations for on-chain submission.

Endpoints:
- POST /verify   - verify a proof and get a signed attestation
- GET  /health   - health check and circuit status
- GET  /verifier - verifier public key

Version: 0.1.0
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.verifier import __version__
from services.verifier.context import VerifierContext
from services.verifier.routes import keys, verify
from shared.config import settings
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.zk.exceptions import AttestationEncodingError, ConfigurationError
from shared.zk.models import HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="vouch-verifier",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "verifier_service_starting",
        environment=settings.environment.value,
        port=settings.ports.verifier,
        engine_mode=settings.engine.mode.value,
        circuits_dir=str(settings.circuits.dir),
    )

    context: VerifierContext | None = getattr(app.state, "context", None)
    if context is None:
        context = VerifierContext.from_settings(settings)
        app.state.context = context

    try:
        await context.start()
    except Exception as e:
        logger.error("startup_failed", error=str(e), error_type=type(e).__name__)
        raise

    logger.info(
        "verifier_service_ready",
        verifier=context.signer.public_key,
        cors_origins=settings.cors.origins_list,
    )

    yield

    logger.info("verifier_service_shutting_down")
    await context.stop()


def _error_body(message: str) -> dict[str, Any]:
    return {"success": False, "error": message}


def create_app(context: VerifierContext | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        context: Pre-built context. When omitted the lifespan builds one
            from settings.
    """
    app = FastAPI(
        title="Vouch Verifier Service",
        description="ZK proof verification and signed attestations",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    if context is not None:
        app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        clear_context()
        bind_context(request_id=uuid.uuid4().hex[:12])
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response

    # ========================================================================
    # Health Check Endpoints
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> HealthResponse:
        """
        Service health check.

        Reports which circuits are cached and the engine status. The service
        is ``ok`` while at least one circuit is available.
        """
        ctx: VerifierContext = request.app.state.context
        circuits_loaded = ctx.backends.circuit_status()

        return HealthResponse(
            status="ok" if any(circuits_loaded.values()) else "error",
            version=__version__,
            verifier=ctx.signer.public_key,
            circuits_loaded=circuits_loaded,
            engine=await ctx.backends.health_check(),
        )

    # ========================================================================
    # Include Routers
    # ========================================================================

    app.include_router(verify.router, prefix="/verify", tags=["Verification"])
    app.include_router(keys.router, prefix="/verifier", tags=["Verifier"])

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Reject malformed submissions with the standard envelope."""
        messages = [
            str(error.get("msg", "invalid value")).removeprefix("Value error, ")
            for error in exc.errors()
        ]
        logger.warning("invalid_request", path=request.url.path, errors=messages)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(f"Invalid request: {', '.join(messages)}"),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
        )
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))

    @app.exception_handler(AttestationEncodingError)
    async def encoding_exception_handler(
        request: Request, exc: AttestationEncodingError
    ) -> JSONResponse:
        """Fields that cannot be encoded are the caller's fault."""
        logger.warning("attestation_encoding_error", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(str(exc)),
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_exception_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Misconfiguration surfaces as unavailability, not as a client error."""
        logger.error("configuration_error", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body("Verifier is not configured"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error"),
        )

    return app


app = create_app()


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.verifier.main:app",
        host="0.0.0.0",
        port=settings.ports.verifier,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )

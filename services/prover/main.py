"""
Prover Service - Main Application
=================================

FastAPI application for SHA-256 preimage proofs.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.prover.routes import proofs
from zkengine.config import settings
from zkengine.logging import get_logger, setup_logging
from zkengine.models import ErrorResponse, HealthResponse
from zkengine.zk import ProofService, SetupError


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="prover",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "prover_service_starting",
        environment=settings.environment.value,
        port=settings.ports.prover,
    )

    # Startup
    service = ProofService.from_settings(settings)
    app.state.proof_service = service
    try:
        artifacts = service.initialize()
        logger.info(
            "proof_system_ready",
            circuit=artifacts.verifying_key.circuit_type.value,
            k=artifacts.reference_string.k,
        )
    except SetupError as e:
        logger.error("startup_failed", error=e.message, code=e.code.value)
        raise

    yield

    # Shutdown
    logger.info("prover_service_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="zkengine Prover Service",
    description="Zero-knowledge proofs of SHA-256 preimage knowledge",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Service health check.

    Reports whether setup artifacts are loaded. Use /api/v1/zk/health
    for an end-to-end proof check.
    """
    service: ProofService | None = getattr(request.app.state, "proof_service", None)
    ready = service is not None and service.is_ready

    components = {
        "proof_system": {
            "status": "healthy" if ready else "unhealthy",
            "circuit": service.backend.kind.value if service else None,
        }
    }

    return HealthResponse(
        status="healthy" if ready else "degraded",
        service="prover",
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "zkengine Prover Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    proofs.router,
    prefix="/api/v1/zk",
    tags=["ZK Proofs"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    body = ErrorResponse(error=str(exc.detail), status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
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
    body = ErrorResponse(
        error="Internal server error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json", exclude_none=True),
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.prover.main:app",
        host="0.0.0.0",
        port=settings.ports.prover,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )

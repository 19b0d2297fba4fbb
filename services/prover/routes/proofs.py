"""
ZK Proof Routes
===============

API endpoints for generating and verifying SHA-256 preimage proofs.
"""

import base64
import binascii
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from zkengine.logging import get_logger
from zkengine.zk import (
    CircuitInfo,
    CircuitKind,
    InputTooLargeError,
    Proof,
    ProofService,
    ProverStatus,
    ServiceUnavailableError,
    SetupError,
    UnsupportedCircuitError,
    VerificationResult,
    ZKEngineError,
    get_backend,
)


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Dependencies
# ============================================================================


def get_proof_service(request: Request) -> ProofService:
    """Proof service held on the application state, created on first use."""
    service = getattr(request.app.state, "proof_service", None)
    if service is None:
        service = ProofService.from_settings()
        request.app.state.proof_service = service
    return service


def _decode_base64(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid base64 {field}",
        ) from e


def _http_error(e: ZKEngineError, event: str) -> HTTPException:
    """Map engine errors to HTTP statuses."""
    if isinstance(e, InputTooLargeError):
        logger.warning(event, error=e.message, code=e.code.value)
        return HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=e.message)
    if isinstance(e, UnsupportedCircuitError):
        logger.warning(event, error=e.message, code=e.code.value)
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, (SetupError, ServiceUnavailableError)):
        logger.error(event, error=e.message, code=e.code.value)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Proof system not available. Run artifact setup first.",
        )
    logger.error(event, error=e.message, code=e.code.value)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Proof generation failed",
    )


def _timeout_error(event: str, service: ProofService) -> HTTPException:
    logger.error(event, timeout_seconds=service.config.prover_timeout_seconds)
    return HTTPException(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        detail="Prover timed out",
    )


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateProofRequest(BaseModel):
    """Request to generate a preimage proof."""

    data: str = Field(..., description="Base64-encoded private preimage")
    circuit_type: str = Field(default=CircuitKind.SHA256.value, description="Circuit to prove with")

    model_config = {
        "json_schema_extra": {"examples": [{"data": "aGVsbG8=", "circuit_type": "sha256"}]}
    }


class ProofResponse(BaseModel):
    """Response containing a generated proof."""

    success: bool
    proof: Proof
    digest: str = Field(..., description="Hex SHA-256 digest the proof attests to")
    proof_size_bytes: int
    proving_time_ms: int


class VerifyProofRequest(BaseModel):
    """Request to verify a proof against the original data."""

    proof: Proof
    original_data: str = Field(..., description="Base64-encoded preimage")


class VerifyDigestRequest(BaseModel):
    """Request to verify a proof against a claimed digest only."""

    proof: Proof
    digest: str = Field(..., min_length=64, max_length=64, description="Hex SHA-256 digest")


class ZKHealthResponse(BaseModel):
    """Proof system health."""

    status: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


# ============================================================================
# Proof Endpoints
# ============================================================================


@router.post("/generate", response_model=ProofResponse)
async def generate_proof(
    request: GenerateProofRequest,
    service: ProofService = Depends(get_proof_service),
) -> ProofResponse:
    """
    Generate a zero-knowledge proof of SHA-256 preimage knowledge.

    The preimage never leaves the service and is never logged; only the
    digest and the proof are returned.
    """
    data = _decode_base64(request.data, "data")

    try:
        backend = get_backend(request.circuit_type)
    except UnsupportedCircuitError as e:
        logger.warning("unsupported_circuit_requested", circuit_type=request.circuit_type)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only SHA256 circuit is currently supported",
        ) from e

    if backend.kind != service.backend.kind:
        logger.warning(
            "circuit_not_served",
            circuit_type=backend.kind.value,
            served=service.backend.kind.value,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Circuit '{backend.kind.value}' is not served here",
        )

    logger.info("generating_proof", circuit_type=request.circuit_type, input_size=len(data))

    start_time = time.perf_counter()
    try:
        proof = await service.agenerate(data)
    except ZKEngineError as e:
        raise _http_error(e, "proof_generation_failed") from e
    except TimeoutError as e:
        raise _timeout_error("proof_generation_timed_out", service) from e

    return ProofResponse(
        success=True,
        proof=proof,
        digest=proof.digest_hex,
        proof_size_bytes=proof.size_bytes,
        proving_time_ms=int((time.perf_counter() - start_time) * 1000),
    )


@router.post("/verify", response_model=VerificationResult)
async def verify_proof(
    request: VerifyProofRequest,
    service: ProofService = Depends(get_proof_service),
) -> VerificationResult:
    """Verify a proof against the SHA-256 digest of the original data."""
    data = _decode_base64(request.original_data, "original data")

    start_time = time.perf_counter()
    try:
        valid = await service.averify(request.proof, data)
    except ZKEngineError as e:
        raise _http_error(e, "proof_verification_failed") from e
    except TimeoutError as e:
        raise _timeout_error("proof_verification_timed_out", service) from e

    return VerificationResult(
        valid=valid,
        circuit_type=request.proof.circuit_type,
        verification_time_ms=int((time.perf_counter() - start_time) * 1000),
        error=None if valid else "Proof does not match the data",
    )


@router.post("/verify-digest", response_model=VerificationResult)
async def verify_proof_digest(
    request: VerifyDigestRequest,
    service: ProofService = Depends(get_proof_service),
) -> VerificationResult:
    """Verify a proof against a claimed digest without the original data."""
    try:
        digest = bytes.fromhex(request.digest)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid hex digest",
        ) from e

    start_time = time.perf_counter()
    try:
        valid = await service.averify_digest(request.proof, digest)
    except ZKEngineError as e:
        raise _http_error(e, "proof_verification_failed") from e
    except TimeoutError as e:
        raise _timeout_error("proof_verification_timed_out", service) from e

    return VerificationResult(
        valid=valid,
        circuit_type=request.proof.circuit_type,
        verification_time_ms=int((time.perf_counter() - start_time) * 1000),
        error=None if valid else "Proof does not match the digest",
    )


# ============================================================================
# Metadata Endpoints
# ============================================================================


@router.get("/circuit/{circuit_name}", response_model=CircuitInfo)
async def get_circuit_info(
    circuit_name: str,
    service: ProofService = Depends(get_proof_service),
) -> CircuitInfo:
    """Get circuit parameters."""
    try:
        backend = get_backend(circuit_name)
    except UnsupportedCircuitError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Circuit '{circuit_name}' not found",
        ) from e

    if backend.kind != service.backend.kind:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Circuit '{circuit_name}' is not served here",
        )
    return service.circuit_info()


@router.get("/system/status", response_model=ProverStatus)
async def get_system_status(
    service: ProofService = Depends(get_proof_service),
) -> ProverStatus:
    """Get prover status, running a health check."""
    try:
        return await service.astatus()
    except TimeoutError as e:
        raise _timeout_error("prover_status_timed_out", service) from e


@router.get("/health", response_model=ZKHealthResponse)
async def zk_health_check(
    service: ProofService = Depends(get_proof_service),
) -> ZKHealthResponse:
    """End-to-end prove and verify on a fixed input."""
    try:
        healthy = await service.ahealth()
    except TimeoutError:
        logger.error("zk_health_check_timed_out")
        return ZKHealthResponse(status="error", message="ZK proof system timed out")

    if healthy:
        return ZKHealthResponse(status="healthy", message="ZK proof system is operational")
    return ZKHealthResponse(status="unhealthy", message="ZK proof system is not responding")

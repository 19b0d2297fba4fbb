"""
SHA-256 Preimage Proof Engine
=============================

Zero-knowledge proofs that a public digest is the SHA-256 of a private
preimage, plus the setup, verification and service layers around them.

Usage:
    from zkengine.zk import ProofService

    service = ProofService.from_settings()
    service.initialize()

    proof = service.generate(b"secret")
    is_valid = service.verify(proof, b"secret")

Version: 0.1.0
"""

from zkengine.zk.boundary import BoundaryCode, BoundaryResult, EngineBoundary, bytes_required
from zkengine.zk.circuit import CircuitShape, CircuitWitness, Sha256Circuit
from zkengine.zk.errors import (
    ArtifactsMissingError,
    ErrorCode,
    InputTooLargeError,
    MalformedProofError,
    ProofGenerationError,
    ServiceUnavailableError,
    SetupError,
    SetupNotReadyError,
    UnsupportedCircuitError,
    ZKEngineError,
)
from zkengine.zk.models import CircuitInfo, CircuitKind, Proof, ProverStatus, VerificationResult
from zkengine.zk.padding import PaddedBlock, pad_and_schedule
from zkengine.zk.prover import Sha256Prover, prove
from zkengine.zk.service import CIRCUIT_BACKENDS, CircuitBackend, ProofService, get_backend
from zkengine.zk.setup import (
    ArtifactPaths,
    ProvingKey,
    ReferenceString,
    SetupArtifacts,
    SetupManager,
    VerifyingKey,
)
from zkengine.zk.verifier import Sha256Verifier, verify


__all__ = [
    # Padding & circuit
    "PaddedBlock",
    "pad_and_schedule",
    "Sha256Circuit",
    "CircuitShape",
    "CircuitWitness",
    # Setup
    "SetupManager",
    "SetupArtifacts",
    "ArtifactPaths",
    "ReferenceString",
    "ProvingKey",
    "VerifyingKey",
    # Prover / verifier
    "Sha256Prover",
    "prove",
    "Sha256Verifier",
    "verify",
    # Service
    "ProofService",
    "CircuitBackend",
    "CIRCUIT_BACKENDS",
    "get_backend",
    # Boundary
    "EngineBoundary",
    "BoundaryCode",
    "BoundaryResult",
    "bytes_required",
    # Models
    "Proof",
    "CircuitKind",
    "CircuitInfo",
    "ProverStatus",
    "VerificationResult",
    # Errors
    "ErrorCode",
    "ZKEngineError",
    "SetupError",
    "ArtifactsMissingError",
    "SetupNotReadyError",
    "ServiceUnavailableError",
    "ProofGenerationError",
    "InputTooLargeError",
    "MalformedProofError",
    "UnsupportedCircuitError",
]

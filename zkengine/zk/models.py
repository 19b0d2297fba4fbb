"""
ZK Data Models
==============

Pydantic models for proofs, verification results and prover metadata.

Version: 0.1.0
"""

import base64
import binascii
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


DIGEST_BYTES = 32


class CircuitKind(str, Enum):
    """Supported circuit families."""

    SHA256 = "sha256"


class Proof(BaseModel):
    """
    A zero-knowledge proof of SHA-256 preimage knowledge.

    `proof_bytes` is opaque to callers. In JSON it is base64 encoded and
    `public_digest` is hex encoded, so the model round-trips through any
    JSON store without loss.
    """

    model_config = ConfigDict(frozen=True)

    proof_bytes: bytes = Field(..., description="Opaque proof transcript")
    public_digest: bytes = Field(..., description="Claimed SHA-256 digest (32 bytes)")
    circuit_type: CircuitKind = CircuitKind.SHA256
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("proof_bytes", mode="before")
    @classmethod
    def decode_proof_bytes(cls, v: object) -> object:
        if isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except binascii.Error as e:
                raise ValueError("proof_bytes is not valid base64") from e
        return v

    @field_validator("public_digest", mode="before")
    @classmethod
    def decode_public_digest(cls, v: object) -> object:
        if isinstance(v, str):
            return bytes.fromhex(v)
        return v

    @field_validator("public_digest")
    @classmethod
    def digest_must_be_32_bytes(cls, v: bytes) -> bytes:
        if len(v) != DIGEST_BYTES:
            raise ValueError(f"public_digest must be {DIGEST_BYTES} bytes, got {len(v)}")
        return v

    @field_serializer("proof_bytes", when_used="json")
    def serialize_proof_bytes(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")

    @field_serializer("public_digest", when_used="json")
    def serialize_public_digest(self, v: bytes) -> str:
        return v.hex()

    @property
    def digest_hex(self) -> str:
        """Hex form of the public digest."""
        return self.public_digest.hex()

    @property
    def size_bytes(self) -> int:
        """Size of the proof transcript."""
        return len(self.proof_bytes)


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    circuit_type: CircuitKind = CircuitKind.SHA256
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None


class CircuitInfo(BaseModel):
    """Static description of a circuit and its proof parameters."""

    name: str
    description: str
    max_input_size: int = Field(..., ge=0, description="Largest preimage in bytes")
    estimated_proof_time_ms: int = Field(..., ge=0)
    proof_size_bytes: int = Field(..., ge=0, description="Proof size for a single-block input")
    security_level: int = Field(..., ge=0, description="Soundness in bits")


class ProverStatus(BaseModel):
    """Operational status of the proving system."""

    available: bool
    circuit_size: str
    estimated_setup_time_ms: int = Field(default=0, ge=0)
    last_health_check: datetime = Field(default_factory=lambda: datetime.now(UTC))
    error: str | None = None

"""
Cross-Language Boundary
=======================

A narrow byte-level API for hosts that embed the engine from another
language (ctypes, cffi, a subprocess pipe).

Every buffer crossing the boundary is length-prefixed with an 8-byte
big-endian length and validated before use. Every call returns a tagged
`BoundaryResult` instead of raising:

    OK                 0   payload holds the result
    REJECTED           1   verification ran and the proof is invalid
    INVALID_ARGUMENT  -1   missing or malformed buffer
    NOT_READY         -2   setup artifacts are unavailable
    INPUT_TOO_LARGE   -3   preimage exceeds circuit capacity
    INTERNAL          -4   engine failure

Serialized results use a fixed header (signed 32-bit code, 8-byte
payload length) followed by the payload; `bytes_required()` is the size
of that header.

Version: 0.1.0
"""

import json
import struct
from dataclasses import dataclass
from enum import IntEnum

from pydantic import ValidationError

from zkengine.logging import get_logger
from zkengine.zk.errors import (
    InputTooLargeError,
    ServiceUnavailableError,
    SetupError,
    ZKEngineError,
)
from zkengine.zk.models import Proof
from zkengine.zk.service import ProofService


logger = get_logger(__name__)

LENGTH_PREFIX = struct.Struct(">Q")
RESULT_HEADER = struct.Struct(">iQ")


class BoundaryCode(IntEnum):
    """Return codes of boundary calls."""

    OK = 0
    REJECTED = 1
    INVALID_ARGUMENT = -1
    NOT_READY = -2
    INPUT_TOO_LARGE = -3
    INTERNAL = -4


@dataclass(frozen=True)
class BoundaryResult:
    """Tagged result of a boundary call."""

    code: BoundaryCode
    payload: bytes = b""

    @property
    def ok(self) -> bool:
        return self.code == BoundaryCode.OK

    def to_bytes(self) -> bytes:
        return RESULT_HEADER.pack(int(self.code), len(self.payload)) + self.payload

    @classmethod
    def from_bytes(cls, data: bytes) -> "BoundaryResult":
        if len(data) < RESULT_HEADER.size:
            raise ValueError("Result buffer is shorter than its header")
        code, length = RESULT_HEADER.unpack_from(data)
        payload = data[RESULT_HEADER.size :]
        if len(payload) != length:
            raise ValueError(f"Result payload is {len(payload)} bytes, header says {length}")
        return cls(code=BoundaryCode(code), payload=bytes(payload))


def bytes_required() -> int:
    """Size of the fixed result header."""
    return RESULT_HEADER.size


def frame(payload: bytes) -> bytes:
    """Prefix `payload` with its 8-byte big-endian length."""
    return LENGTH_PREFIX.pack(len(payload)) + payload


def unframe(buffer: bytes | bytearray | memoryview | None) -> bytes:
    """
    Validate a length-prefixed buffer and return its payload.

    Raises:
        ValueError: If the buffer is missing, short, or its length
                    prefix disagrees with its size.
        TypeError: If the buffer is not a bytes-like object.
    """
    if buffer is None:
        raise ValueError("Buffer is missing")
    if not isinstance(buffer, (bytes, bytearray, memoryview)):
        raise TypeError(f"Buffer must be bytes-like, got {type(buffer).__name__}")
    data = bytes(buffer)
    if len(data) < LENGTH_PREFIX.size:
        raise ValueError("Buffer is shorter than its length prefix")
    (length,) = LENGTH_PREFIX.unpack_from(data)
    payload = data[LENGTH_PREFIX.size :]
    if len(payload) != length:
        raise ValueError(f"Buffer holds {len(payload)} bytes, prefix says {length}")
    return payload


def _error_payload(error: Exception) -> bytes:
    if isinstance(error, ZKEngineError):
        body = error.to_dict()
    else:
        body = {"code": "invalid_argument", "message": str(error)}
    return json.dumps(body, default=str).encode("utf-8")


class EngineBoundary:
    """
    Byte-level entry points over a ProofService.

    Usage:
        boundary = EngineBoundary(service)
        result = boundary.generate_proof(frame(b"secret"))
        if result.ok:
            proof_json = result.payload
    """

    def __init__(self, service: ProofService) -> None:
        self.service = service

    def generate_proof(self, input_buffer: bytes | None) -> BoundaryResult:
        """Prove knowledge of the framed preimage; payload is the proof JSON."""
        try:
            data = unframe(input_buffer)
        except (ValueError, TypeError) as e:
            return BoundaryResult(BoundaryCode.INVALID_ARGUMENT, _error_payload(e))

        try:
            proof = self.service.generate(data)
        except ZKEngineError as e:
            return self._failure("generate_proof", e)

        return BoundaryResult(BoundaryCode.OK, proof.model_dump_json().encode("utf-8"))

    def verify_proof(self, input_buffer: bytes | None, proof_buffer: bytes | None) -> BoundaryResult:
        """Verify a framed proof JSON against the framed preimage."""
        try:
            data = unframe(input_buffer)
            proof = Proof.model_validate_json(unframe(proof_buffer))
        except (ValueError, TypeError, ValidationError) as e:
            return BoundaryResult(BoundaryCode.INVALID_ARGUMENT, _error_payload(e))

        try:
            valid = self.service.verify(proof, data)
        except ZKEngineError as e:
            return self._failure("verify_proof", e)

        return BoundaryResult(BoundaryCode.OK if valid else BoundaryCode.REJECTED)

    def verify_digest(self, digest_buffer: bytes | None, proof_buffer: bytes | None) -> BoundaryResult:
        """Verify a framed proof JSON against a framed 32-byte digest."""
        try:
            digest = unframe(digest_buffer)
            proof = Proof.model_validate_json(unframe(proof_buffer))
        except (ValueError, TypeError, ValidationError) as e:
            return BoundaryResult(BoundaryCode.INVALID_ARGUMENT, _error_payload(e))
        if len(digest) != 32:
            return BoundaryResult(
                BoundaryCode.INVALID_ARGUMENT,
                _error_payload(ValueError("digest must be 32 bytes")),
            )

        try:
            valid = self.service.verify_digest(proof, digest)
        except ZKEngineError as e:
            return self._failure("verify_digest", e)

        return BoundaryResult(BoundaryCode.OK if valid else BoundaryCode.REJECTED)

    @staticmethod
    def _failure(call: str, error: ZKEngineError) -> BoundaryResult:
        if isinstance(error, InputTooLargeError):
            code = BoundaryCode.INPUT_TOO_LARGE
        elif isinstance(error, (SetupError, ServiceUnavailableError)):
            code = BoundaryCode.NOT_READY
        else:
            code = BoundaryCode.INTERNAL

        logger.warning("zk_boundary_call_failed", call=call, code=code.name, error=error.message)
        return BoundaryResult(code, _error_payload(error))

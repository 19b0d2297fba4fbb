"""
Proving Engine Errors
=====================

Exception taxonomy for setup, proving and verification.

- Setup failures are fatal: the engine refuses work until reconfigured.
- Generation failures indicate an engine defect, never bad input.
- Input size violations are reported before any witness is built.
- Malformed proofs never escape the verifier; they become a `False` result.

Version: 0.1.0
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    SETUP_FAILED = "setup_failed"
    ARTIFACTS_MISSING = "artifacts_missing"
    NOT_READY = "not_ready"
    UNAVAILABLE = "service_unavailable"
    GENERATION_FAILED = "proof_generation_failed"
    INPUT_TOO_LARGE = "input_too_large"
    MALFORMED_PROOF = "malformed_proof"
    UNSUPPORTED_CIRCUIT = "unsupported_circuit"


class ZKEngineError(Exception):
    """Base class for all proving engine errors."""

    code: ErrorCode = ErrorCode.GENERATION_FAILED

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, object]:
        """Serialize for API error bodies."""
        return {"code": self.code.value, "message": self.message, **self.context}


class SetupError(ZKEngineError):
    """Reference string or key generation failed. Fatal at startup."""

    code = ErrorCode.SETUP_FAILED


class ArtifactsMissingError(SetupError):
    """Setup artifact files are absent and generation is not allowed."""

    code = ErrorCode.ARTIFACTS_MISSING


class SetupNotReadyError(SetupError):
    """Proving or verification was attempted without setup artifacts."""

    code = ErrorCode.NOT_READY


class ServiceUnavailableError(ZKEngineError):
    """A previous setup failure keeps the service from accepting work."""

    code = ErrorCode.UNAVAILABLE


class ProofGenerationError(ZKEngineError):
    """The witness did not satisfy the circuit."""

    code = ErrorCode.GENERATION_FAILED


class InputTooLargeError(ZKEngineError):
    """The preimage exceeds the circuit's capacity."""

    code = ErrorCode.INPUT_TOO_LARGE


class MalformedProofError(ZKEngineError):
    """Proof bytes could not be decoded."""

    code = ErrorCode.MALFORMED_PROOF


class UnsupportedCircuitError(ZKEngineError):
    """No backend is registered for the requested circuit kind."""

    code = ErrorCode.UNSUPPORTED_CIRCUIT

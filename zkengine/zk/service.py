"""
Proof Service
=============

Host-facing adapter around the prover and verifier.

Owns the setup manager and a single lazily initialized artifact handle.
Initialization happens at most once; a failed setup is remembered and
every later call fails fast with ServiceUnavailableError until the
process is reconfigured.

Usage:
    service = ProofService.from_settings()
    service.initialize()

    proof = service.generate(b"secret")
    assert service.verify(proof, b"secret")

    # From async code
    proof = await service.agenerate(b"secret")

Version: 0.1.0
"""

import asyncio
import hashlib
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from zkengine.config import Settings, ZKSettings, get_settings
from zkengine.logging import get_logger
from zkengine.zk.circuit import Sha256Circuit
from zkengine.zk.errors import (
    ArtifactsMissingError,
    ServiceUnavailableError,
    SetupError,
    SetupNotReadyError,
    UnsupportedCircuitError,
    ZKEngineError,
)
from zkengine.zk.models import CircuitInfo, CircuitKind, Proof, ProverStatus
from zkengine.zk.protocol import estimate_proof_size
from zkengine.zk.prover import Sha256Prover
from zkengine.zk.setup import (
    SOUNDNESS_BITS_PER_REPETITION,
    ArtifactPaths,
    SetupArtifacts,
    SetupManager,
)
from zkengine.zk.verifier import Sha256Verifier


logger = get_logger(__name__)


# =============================================================================
# Circuit registry
# =============================================================================


@dataclass(frozen=True)
class CircuitBackend:
    """Circuit, prover and verifier bound to one circuit kind."""

    kind: CircuitKind
    display_name: str
    description: str
    circuit_factory: Callable[[int], Sha256Circuit]
    prover_factory: Callable[[SetupArtifacts], Sha256Prover]
    verifier_factory: Callable[[SetupArtifacts], Sha256Verifier]


CIRCUIT_BACKENDS: dict[CircuitKind, CircuitBackend] = {
    CircuitKind.SHA256: CircuitBackend(
        kind=CircuitKind.SHA256,
        display_name="SHA256",
        description="SHA-256 preimage knowledge over an F2 arithmetized circuit (MPC-in-the-head)",
        circuit_factory=Sha256Circuit,
        prover_factory=Sha256Prover,
        verifier_factory=Sha256Verifier,
    ),
}


def get_backend(kind: CircuitKind | str) -> CircuitBackend:
    """
    Look up the backend for a circuit kind.

    Raises:
        UnsupportedCircuitError: If the kind is unknown.
    """
    try:
        return CIRCUIT_BACKENDS[CircuitKind(kind)]
    except (ValueError, KeyError) as e:
        supported = [k.value for k in CIRCUIT_BACKENDS]
        raise UnsupportedCircuitError(
            f"Circuit '{kind}' is not supported",
            supported=supported,
        ) from e


# =============================================================================
# Service
# =============================================================================


class ProofService:
    """
    Proof generation and verification for one circuit kind.

    Thread-safe. Synchronous methods are CPU-bound; async wrappers run
    them in a worker thread bounded by the configured timeout.
    """

    def __init__(
        self,
        config: ZKSettings | None = None,
        *,
        kind: CircuitKind | str = CircuitKind.SHA256,
        manager: SetupManager | None = None,
        artifacts: SetupArtifacts | None = None,
    ) -> None:
        self.config = config or get_settings().zk
        self.backend = get_backend(kind)
        self.manager = manager or SetupManager()
        self.circuit = self.backend.circuit_factory(self.config.max_input_size)

        self._lock = threading.Lock()
        self._artifacts: SetupArtifacts | None = None
        self._prover: Sha256Prover | None = None
        self._verifier: Sha256Verifier | None = None
        self._setup_error: SetupError | None = None

        self._setup_time_ms = 0
        self._last_proof_time_ms: int | None = None
        self._last_health_check: datetime | None = None
        self._last_health_error: str | None = None

        if artifacts is not None:
            self._install(artifacts)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ProofService":
        """Build a service from application settings."""
        return cls((settings or get_settings()).zk)

    @property
    def is_ready(self) -> bool:
        return self._artifacts is not None

    @property
    def artifacts(self) -> SetupArtifacts | None:
        return self._artifacts

    def _install(self, artifacts: SetupArtifacts) -> None:
        self._prover = self.backend.prover_factory(artifacts)
        self._verifier = self.backend.verifier_factory(artifacts)
        self._artifacts = artifacts

    def _ready_prover(self) -> Sha256Prover:
        self.initialize()
        if self._prover is None:
            raise SetupNotReadyError("Prover is not installed")
        return self._prover

    def _ready_verifier(self) -> Sha256Verifier:
        self.initialize()
        if self._verifier is None:
            raise SetupNotReadyError("Verifier is not installed")
        return self._verifier

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def initialize(self) -> SetupArtifacts:
        """
        Load or generate setup artifacts exactly once.

        Raises:
            SetupError: On the first failed attempt.
            ServiceUnavailableError: On every attempt after a failure.
        """
        artifacts = self._artifacts
        if artifacts is not None:
            return artifacts

        with self._lock:
            if self._artifacts is not None:
                return self._artifacts
            if self._setup_error is not None:
                raise ServiceUnavailableError(
                    f"Proof system unavailable: {self._setup_error.message}",
                    cause=self._setup_error.code.value,
                ) from self._setup_error

            start_time = time.perf_counter()
            try:
                artifacts = self._load_or_setup()
            except SetupError as e:
                self._setup_error = e
                logger.error("zk_setup_failed", error=e.message, code=e.code.value)
                raise

            self._install(artifacts)
            self._setup_time_ms = int((time.perf_counter() - start_time) * 1000)
            logger.info(
                "zk_service_ready",
                circuit=self.backend.kind.value,
                k=artifacts.reference_string.k,
                repetitions=artifacts.verifying_key.repetitions,
                setup_time_ms=self._setup_time_ms,
            )
            return artifacts

    def _load_or_setup(self) -> SetupArtifacts:
        paths = ArtifactPaths.from_settings(self.config)
        try:
            artifacts = self.manager.load(paths)
        except ArtifactsMissingError as e:
            if not self.config.auto_setup:
                raise
            logger.warning("zk_setup_generating", missing=e.context.get("missing"))
            reference_string = self.manager.generate_reference_string(self.config.srs_k, self.config.srs_seed)
            artifacts = self.manager.setup(self.circuit, reference_string, self.config.repetitions)
            if self.config.persist_artifacts:
                try:
                    self.manager.save(artifacts, paths)
                except OSError as save_error:
                    logger.warning("zk_setup_persist_failed", error=str(save_error))
            return artifacts

        if artifacts.shape != self.circuit.shape:
            raise SetupError(
                "Setup artifacts were generated for a different circuit capacity",
                artifact_max_input_size=artifacts.shape.max_input_size,
                configured_max_input_size=self.config.max_input_size,
            )
        if artifacts.verifying_key.repetitions != self.config.repetitions:
            raise SetupError(
                "Setup artifacts were generated for a different repetition count",
                artifact_repetitions=artifacts.verifying_key.repetitions,
                configured_repetitions=self.config.repetitions,
            )
        return artifacts

    # -------------------------------------------------------------------------
    # Proofs
    # -------------------------------------------------------------------------

    def generate(self, data: bytes) -> Proof:
        """
        Generate a proof that sha256(data) is known.

        Raises:
            InputTooLargeError: If `data` exceeds circuit capacity.
            SetupError / ServiceUnavailableError: If setup is unavailable.
            ProofGenerationError: On an internal inconsistency.
        """
        self.circuit.check_input_size(len(data))
        prover = self._ready_prover()

        start_time = time.perf_counter()
        proof = prover.prove(data)
        self._last_proof_time_ms = int((time.perf_counter() - start_time) * 1000)
        return proof

    def verify(self, proof: Proof, data: bytes) -> bool:
        """Verify `proof` against the SHA-256 digest of `data`."""
        return self.verify_digest(proof, hashlib.sha256(data).digest())

    def verify_digest(self, proof: Proof, digest: bytes) -> bool:
        """Verify `proof` against a claimed digest."""
        return self._ready_verifier().verify(proof, digest)

    # -------------------------------------------------------------------------
    # Health & metadata
    # -------------------------------------------------------------------------

    def health(self) -> bool:
        """End-to-end prove and verify on a fixed input."""
        probe = self.config.health_check_input.encode("utf-8")
        self._last_health_check = datetime.now(UTC)
        try:
            healthy = self.verify(self.generate(probe), probe)
        except ZKEngineError as e:
            self._last_health_error = e.message
            logger.warning("zk_health_check_failed", error=e.message, code=e.code.value)
            return False

        self._last_health_error = None if healthy else "Health check proof was rejected"
        if not healthy:
            logger.error("zk_health_check_rejected")
        return healthy

    def status(self) -> ProverStatus:
        """Run a health check and report the prover status."""
        available = self.health()
        artifacts = self._artifacts
        if artifacts is None:
            return ProverStatus(
                available=False,
                circuit_size="Unknown",
                last_health_check=self._last_health_check,
                error=self._last_health_error or "Prover system not responding",
            )

        k = artifacts.reference_string.k
        return ProverStatus(
            available=available,
            circuit_size=f"2^{k} = {1 << k} rows",
            estimated_setup_time_ms=self._setup_time_ms,
            last_health_check=self._last_health_check,
            error=self._last_health_error,
        )

    def circuit_info(self) -> CircuitInfo:
        """Static circuit parameters; does not require setup."""
        shape = self.circuit.shape
        repetitions = self.config.repetitions
        if self._artifacts is not None:
            repetitions = self._artifacts.verifying_key.repetitions

        return CircuitInfo(
            name=self.backend.display_name,
            description=self.backend.description,
            max_input_size=shape.max_input_size,
            estimated_proof_time_ms=self._last_proof_time_ms or self.config.estimated_proof_time_ms,
            proof_size_bytes=estimate_proof_size(shape, repetitions),
            security_level=int(repetitions * SOUNDNESS_BITS_PER_REPETITION),
        )

    # -------------------------------------------------------------------------
    # Async wrappers
    # -------------------------------------------------------------------------

    async def _offload(self, func: Callable, *args: object):
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args),
            timeout=self.config.prover_timeout_seconds,
        )

    async def agenerate(self, data: bytes) -> Proof:
        return await self._offload(self.generate, data)

    async def averify(self, proof: Proof, data: bytes) -> bool:
        return await self._offload(self.verify, proof, data)

    async def averify_digest(self, proof: Proof, digest: bytes) -> bool:
        return await self._offload(self.verify_digest, proof, digest)

    async def ahealth(self) -> bool:
        return await self._offload(self.health)

    async def astatus(self) -> ProverStatus:
        return await self._offload(self.status)

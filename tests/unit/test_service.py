"""
Unit Tests for the Proof Service
================================

Lazy initialization, failure memory, health and metadata.

Version: 0.1.0
"""

import hashlib
import threading
from collections.abc import Callable

import pytest

from zkengine.config import ZKSettings
from zkengine.zk.errors import (
    ArtifactsMissingError,
    InputTooLargeError,
    ServiceUnavailableError,
    SetupError,
    SetupNotReadyError,
    UnsupportedCircuitError,
)
from zkengine.zk.models import CircuitKind
from zkengine.zk.service import ProofService, get_backend
from zkengine.zk.setup import ArtifactPaths, SetupArtifacts, SetupManager


class TestRegistry:
    """Circuit kind registry."""

    def test_sha256_registered(self):
        """Test the SHA-256 backend is registered."""
        backend = get_backend("sha256")

        assert backend.kind == CircuitKind.SHA256
        assert backend.display_name == "SHA256"

    def test_unknown_circuit(self):
        """Test unknown kinds list the supported ones."""
        with pytest.raises(UnsupportedCircuitError) as exc_info:
            get_backend("poseidon")

        assert exc_info.value.context["supported"] == ["sha256"]


class TestProofServiceOperations:
    """Generate and verify through a preloaded service."""

    def test_generate_and_verify(self, proof_service: ProofService):
        """Test generating and verifying through the service."""
        proof = proof_service.generate(b"hello")

        assert proof_service.verify(proof, b"hello")
        assert not proof_service.verify(proof, b"world")

    def test_verify_digest(self, proof_service: ProofService):
        """Test verification against a digest."""
        proof = proof_service.generate(b"hello")

        assert proof_service.verify_digest(proof, hashlib.sha256(b"hello").digest())
        assert not proof_service.verify_digest(proof, hashlib.sha256(b"world").digest())

    def test_input_too_large(self, proof_service: ProofService):
        """Test oversized inputs raise InputTooLargeError."""
        with pytest.raises(InputTooLargeError):
            proof_service.generate(b"\x00" * 201)

    def test_health(self, proof_service: ProofService):
        """Test the end-to-end health check passes."""
        assert proof_service.health()

    def test_status(self, proof_service: ProofService):
        """Test status of a ready service."""
        status = proof_service.status()

        assert status.available
        assert status.circuit_size == "2^12 = 4096 rows"
        assert status.error is None

    def test_verify_non_proof(self, proof_service: ProofService):
        """Test verifying something that is not a proof returns False."""
        assert proof_service.verify(None, b"hello") is False
        assert proof_service.verify_digest("proof", hashlib.sha256(b"hello").digest()) is False

    def test_circuit_info(self, proof_service: ProofService):
        """Test circuit metadata for the test circuit."""
        info = proof_service.circuit_info()

        assert info.name == "SHA256"
        assert info.max_input_size == 200
        assert info.security_level == 4
        assert info.proof_size_bytes > 0


class TestInitialization:
    """Setup lifecycle."""

    def test_missing_artifacts_without_auto_setup(self, zk_config: Callable[..., ZKSettings]):
        """Test missing artifacts are fatal without auto setup."""
        service = ProofService(zk_config())

        with pytest.raises(ArtifactsMissingError):
            service.initialize()
        assert not service.is_ready

    def test_failure_is_remembered(self, zk_config: Callable[..., ZKSettings]):
        """Test later calls fail fast after a setup failure."""
        service = ProofService(zk_config())
        with pytest.raises(SetupError):
            service.initialize()

        with pytest.raises(ServiceUnavailableError):
            service.initialize()
        with pytest.raises(ServiceUnavailableError):
            service.generate(b"hello")

    def test_size_checked_before_setup(self, zk_config: Callable[..., ZKSettings]):
        """Test input size is checked before setup runs."""
        service = ProofService(zk_config())

        with pytest.raises(InputTooLargeError):
            service.generate(b"\x00" * 201)

    def test_unavailable_status(self, zk_config: Callable[..., ZKSettings]):
        """Test status of a service that cannot set up."""
        service = ProofService(zk_config())

        status = service.status()

        assert not status.available
        assert status.circuit_size == "Unknown"
        assert status.error
        assert not service.health()

    def test_auto_setup_persists_artifacts(self, zk_config: Callable[..., ZKSettings]):
        """Test auto setup writes artifacts that load later."""
        config = zk_config(auto_setup=True, persist_artifacts=True)
        service = ProofService(config)

        artifacts = service.initialize()

        paths = ArtifactPaths.from_settings(config)
        assert paths.missing() == []
        assert service.manager.setup_runs == 1

        reloaded = ProofService(zk_config()).initialize()
        assert reloaded.verifying_key == artifacts.verifying_key

    def test_loaded_artifacts_must_match_configuration(
        self,
        zk_config: Callable[..., ZKSettings],
        artifacts: SetupArtifacts,
    ):
        """Test loaded artifacts must match configured repetitions."""
        config = zk_config(repetitions=16)
        SetupManager.save(artifacts, ArtifactPaths.from_settings(config))

        with pytest.raises(SetupError, match="repetition"):
            ProofService(config).initialize()

    def test_reference_string_too_small(self, zk_config: Callable[..., ZKSettings]):
        """Test an undersized reference string disables the service."""
        service = ProofService(zk_config(auto_setup=True, srs_k=4))

        with pytest.raises(SetupError):
            service.initialize()
        with pytest.raises(ServiceUnavailableError):
            service.verify_digest(None, b"\x00" * 32)

    def test_concurrent_first_calls_set_up_once(self, zk_config: Callable[..., ZKSettings]):
        """Test concurrent first calls share a single setup run."""
        manager = SetupManager()
        service = ProofService(zk_config(auto_setup=True), manager=manager)
        barrier = threading.Barrier(8)
        results: list[bool] = []

        def worker() -> None:
            barrier.wait()
            results.append(service.verify(service.generate(b"hello"), b"hello"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert manager.setup_runs == 1
        assert len(results) == 8
        assert all(results)

    def test_missing_components_raise_not_ready(
        self,
        zk_config: Callable[..., ZKSettings],
        artifacts: SetupArtifacts,
    ):
        """Test a service without an installed prover or verifier reports not ready."""
        service = ProofService(zk_config(), artifacts=artifacts)
        service._prover = None
        service._verifier = None

        with pytest.raises(SetupNotReadyError):
            service.generate(b"hello")
        with pytest.raises(SetupNotReadyError):
            service.verify(None, b"hello")

    def test_unsupported_kind(self, zk_config: Callable[..., ZKSettings]):
        """Test services refuse unknown circuit kinds."""
        with pytest.raises(UnsupportedCircuitError):
            ProofService(zk_config(), kind="md5")


class TestAsyncWrappers:
    """Async offloading."""

    @pytest.mark.asyncio
    async def test_agenerate_and_averify(self, proof_service: ProofService):
        """Test the async wrappers."""
        proof = await proof_service.agenerate(b"async")

        assert await proof_service.averify(proof, b"async")
        assert not await proof_service.averify(proof, b"other")

    @pytest.mark.asyncio
    async def test_ahealth(self, proof_service: ProofService):
        """Test the async health check."""
        assert await proof_service.ahealth()

    @pytest.mark.asyncio
    async def test_timeout(self, zk_config: Callable[..., ZKSettings], artifacts: SetupArtifacts):
        """Test the async timeout is enforced."""
        service = ProofService(zk_config(prover_timeout_seconds=0), artifacts=artifacts)

        with pytest.raises(TimeoutError):
            await service.agenerate(b"\x00" * 200)

"""
Unit Tests for the Setup Manager
================================

Version: 0.1.0
"""

import json
import threading
from pathlib import Path

import pytest
from pydantic import ValidationError

from zkengine.zk.circuit import Sha256Circuit
from zkengine.zk.errors import ArtifactsMissingError, SetupError
from zkengine.zk.setup import ArtifactPaths, ReferenceString, SetupArtifacts, SetupManager


@pytest.fixture
def paths(tmp_path: Path) -> ArtifactPaths:
    return ArtifactPaths(
        reference_string=tmp_path / "srs.json",
        proving_key=tmp_path / "pk.json",
        verifying_key=tmp_path / "vk.json",
    )


class TestReferenceString:
    """Reference string generation."""

    def test_seeded_is_deterministic(self):
        """Test seeded reference strings are reproducible."""
        a = SetupManager.generate_reference_string(12, seed=b"seed")
        b = SetupManager.generate_reference_string(12, seed=b"seed")

        assert a == b
        assert a.digest == b.digest

    def test_hex_seed_matches_bytes_seed(self):
        """Test hex and raw seeds are equivalent."""
        assert SetupManager.generate_reference_string(12, seed="00ff") == (
            SetupManager.generate_reference_string(12, seed=b"\x00\xff")
        )

    def test_unseeded_is_random(self):
        """Test unseeded reference strings differ."""
        a = SetupManager.generate_reference_string(12)
        b = SetupManager.generate_reference_string(12)

        assert a.seed != b.seed

    def test_capacity(self):
        """Test row capacity is 2^k."""
        assert SetupManager.generate_reference_string(14, seed=b"s").max_rows == 16384

    def test_seed_length_validated(self):
        """Test reference string seeds must be 32 bytes."""
        with pytest.raises(ValidationError):
            ReferenceString(k=12, seed="00" * 16)


class TestSetup:
    """Key generation."""

    def test_setup_produces_consistent_keys(self, circuit: Sha256Circuit):
        """Test keys agree with the circuit and reference string."""
        manager = SetupManager()
        srs = manager.generate_reference_string(12, seed=b"s")

        artifacts = manager.setup(circuit, srs, 8)

        assert artifacts.verifying_key.shape == circuit.shape
        assert artifacts.verifying_key.srs_digest == srs.digest
        assert artifacts.proving_key.verifying_key == artifacts.verifying_key
        assert len(artifacts.verifying_key.digest) == 32

    def test_missing_reference_string(self, circuit: Sha256Circuit):
        """Test setup without a reference string fails."""
        with pytest.raises(SetupError, match="missing"):
            SetupManager().setup(circuit, None, 8)

    def test_reference_string_too_small(self, circuit: Sha256Circuit):
        """Test an undersized reference string fails before key generation."""
        manager = SetupManager()
        srs = manager.generate_reference_string(circuit.shape.min_k - 1, seed=b"s")

        with pytest.raises(SetupError) as exc_info:
            manager.setup(circuit, srs, 8)

        assert exc_info.value.context["min_k"] == circuit.shape.min_k
        assert manager.setup_runs == 0

    def test_reference_string_at_minimum(self, circuit: Sha256Circuit):
        """Test the smallest sufficient reference string works."""
        manager = SetupManager()
        srs = manager.generate_reference_string(circuit.shape.min_k, seed=b"s")

        assert manager.setup(circuit, srs, 8).reference_string.k == circuit.shape.min_k

    def test_zero_repetitions(self, circuit: Sha256Circuit):
        """Test zero repetitions are refused."""
        manager = SetupManager()

        with pytest.raises(SetupError):
            manager.setup(circuit, manager.generate_reference_string(12, seed=b"s"), 0)

    def test_setup_is_cached(self, circuit: Sha256Circuit):
        """Test repeated setup returns cached artifacts."""
        manager = SetupManager()
        srs = manager.generate_reference_string(12, seed=b"s")

        first = manager.setup(circuit, srs, 8)
        second = manager.setup(Sha256Circuit(circuit.max_input_size), srs, 8)

        assert first is second
        assert manager.setup_runs == 1

    def test_distinct_shapes_run_separately(self, circuit: Sha256Circuit):
        """Test each shape and repetition count gets its own setup."""
        manager = SetupManager()
        srs = manager.generate_reference_string(12, seed=b"s")

        manager.setup(circuit, srs, 8)
        manager.setup(Sha256Circuit(55), srs, 8)
        manager.setup(circuit, srs, 16)

        assert manager.setup_runs == 3

    def test_concurrent_setup_runs_once(self, circuit: Sha256Circuit):
        """Test concurrent setup calls run key generation once."""
        manager = SetupManager()
        srs = manager.generate_reference_string(12, seed=b"s")
        results: list[SetupArtifacts] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            results.append(manager.setup(circuit, srs, 8))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert manager.setup_runs == 1
        assert len(results) == 8
        assert all(r is results[0] for r in results)

    @pytest.mark.parametrize(("repetitions", "bits"), [(219, 128), (8, 4), (1, 0)])
    def test_security_level(self, circuit: Sha256Circuit, repetitions: int, bits: int):
        """Test soundness bits for a repetition count."""
        manager = SetupManager()
        artifacts = manager.setup(circuit, manager.generate_reference_string(12, seed=b"s"), repetitions)

        assert artifacts.verifying_key.security_level == bits


class TestPersistence:
    """Saving and loading artifact files."""

    def test_save_then_load(self, artifacts: SetupArtifacts, paths: ArtifactPaths):
        """Test saved artifacts load unchanged."""
        SetupManager.save(artifacts, paths)
        manager = SetupManager()

        loaded = manager.load(paths)

        assert loaded.verifying_key == artifacts.verifying_key
        assert loaded.proving_key == artifacts.proving_key
        assert loaded.reference_string == artifacts.reference_string
        assert manager.setup_runs == 1

    def test_files_are_json(self, artifacts: SetupArtifacts, paths: ArtifactPaths):
        """Test artifact files are JSON documents."""
        SetupManager.save(artifacts, paths)

        vk = json.loads(paths.verifying_key.read_text())

        assert vk["circuit_type"] == "sha256"
        assert vk["repetitions"] == artifacts.verifying_key.repetitions

    def test_missing_files(self, artifacts: SetupArtifacts, paths: ArtifactPaths):
        """Test missing files are listed in the error."""
        SetupManager.save(artifacts, paths)
        paths.proving_key.unlink()

        with pytest.raises(ArtifactsMissingError) as exc_info:
            SetupManager().load(paths)

        assert exc_info.value.context["missing"] == [str(paths.proving_key)]

    def test_missing_is_a_setup_error(self, paths: ArtifactPaths):
        """Test missing artifacts are a setup error."""
        with pytest.raises(SetupError):
            SetupManager().load(paths)

    def test_corrupted_file(self, artifacts: SetupArtifacts, paths: ArtifactPaths):
        """Test unparseable files are refused."""
        SetupManager.save(artifacts, paths)
        paths.verifying_key.write_text("{not json")

        with pytest.raises(SetupError, match="unreadable"):
            SetupManager().load(paths)

    def test_mismatched_keys(self, artifacts: SetupArtifacts, paths: ArtifactPaths, circuit: Sha256Circuit):
        """Test keys for different circuits are refused."""
        SetupManager.save(artifacts, paths)
        manager = SetupManager()
        other = manager.setup(circuit, artifacts.reference_string, 16)
        paths.verifying_key.write_text(other.verifying_key.model_dump_json())

        with pytest.raises(SetupError, match="different circuits"):
            manager.load(paths)

    def test_tampered_round_constants(self, artifacts: SetupArtifacts, paths: ArtifactPaths):
        """Test altered round constants are detected."""
        SetupManager.save(artifacts, paths)
        pk = json.loads(paths.proving_key.read_text())
        pk["round_constants"][0] ^= 1
        paths.proving_key.write_text(json.dumps(pk))

        with pytest.raises(SetupError, match="corrupted"):
            SetupManager().load(paths)

"""
Test Configuration
==================

Pytest fixtures for zkengine tests.

Proofs in tests use a small circuit (200-byte capacity) and few
repetitions so each prove/verify takes well under a second.
"""

import os
import tempfile
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
_ARTIFACTS_DIR = Path(tempfile.mkdtemp(prefix="zkengine-test-"))

os.environ["ENVIRONMENT"] = "testing"
os.environ["ZK_AUTO_SETUP"] = "true"
os.environ["ZK_PERSIST_ARTIFACTS"] = "false"
os.environ["ZK_SRS_K"] = "12"
os.environ["ZK_MAX_INPUT_SIZE"] = "200"
os.environ["ZK_REPETITIONS"] = "8"
os.environ["ZK_SRS_PATH"] = str(_ARTIFACTS_DIR / "sha256.srs.json")
os.environ["ZK_PROVING_KEY_PATH"] = str(_ARTIFACTS_DIR / "sha256.pk.json")
os.environ["ZK_VERIFYING_KEY_PATH"] = str(_ARTIFACTS_DIR / "sha256.vk.json")

from zkengine.config import ZKSettings  # noqa: E402
from zkengine.zk import ProofService, SetupArtifacts, SetupManager, Sha256Circuit  # noqa: E402


TEST_MAX_INPUT_SIZE = 200
TEST_REPETITIONS = 8
TEST_K = 12


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture(scope="session")
def circuit() -> Sha256Circuit:
    """Four-block test circuit."""
    return Sha256Circuit(TEST_MAX_INPUT_SIZE)


@pytest.fixture(scope="session")
def artifacts(circuit: Sha256Circuit) -> SetupArtifacts:
    """Deterministic setup artifacts shared by the whole session."""
    manager = SetupManager()
    reference_string = manager.generate_reference_string(TEST_K, seed=b"zkengine-tests")
    return manager.setup(circuit, reference_string, TEST_REPETITIONS)


@pytest.fixture(scope="session")
def proof_service(artifacts: SetupArtifacts) -> ProofService:
    """Service preloaded with the session artifacts."""
    return ProofService(artifacts=artifacts)


@pytest.fixture
def zk_config(tmp_path: Path) -> Callable[..., ZKSettings]:
    """Factory for settings whose artifact files live under tmp_path."""

    def _make(**overrides: object) -> ZKSettings:
        values: dict[str, object] = {
            "srs_path": tmp_path / "sha256.srs.json",
            "proving_key_path": tmp_path / "sha256.pk.json",
            "verifying_key_path": tmp_path / "sha256.vk.json",
            "srs_k": TEST_K,
            "srs_seed": "0011223344556677",
            "max_input_size": TEST_MAX_INPUT_SIZE,
            "repetitions": TEST_REPETITIONS,
            "auto_setup": False,
            "persist_artifacts": False,
        }
        values.update(overrides)
        return ZKSettings(**values)

    return _make


@pytest_asyncio.fixture
async def prover_client(proof_service: ProofService) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Prover Service."""
    from services.prover.main import app

    app.state.proof_service = proof_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

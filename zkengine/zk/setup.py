"""
Setup Manager
=============

Produces or loads the structured reference string, proving key and
verifying key for a circuit shape.

The reference string carries the row capacity (2^k) and 32 bytes of
public randomness that domain-separate every random tape, commitment
and transcript. Keys are derived from the circuit shape alone, so setup
is deterministic once the reference string is fixed.

Usage:
    manager = SetupManager()
    srs = manager.generate_reference_string(k=17)
    artifacts = manager.setup(Sha256Circuit(8192), srs, repetitions=219)
    manager.save(artifacts, ArtifactPaths.from_settings(settings.zk))

    # Later, in production
    artifacts = manager.load(ArtifactPaths.from_settings(settings.zk))

Version: 0.1.0
"""

import hashlib
import json
import math
import secrets
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from zkengine.logging import get_logger
from zkengine.zk.circuit import INITIAL_STATE, ROUND_CONSTANTS, CircuitShape, Sha256Circuit
from zkengine.zk.errors import ArtifactsMissingError, SetupError
from zkengine.zk.models import CircuitKind


if TYPE_CHECKING:
    from zkengine.config import ZKSettings


logger = get_logger(__name__)

SEED_BYTES = 32
# Each repetition catches a cheating prover with probability 1/3.
SOUNDNESS_BITS_PER_REPETITION = math.log2(3 / 2)


def _canonical_digest(payload: dict) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def constants_digest() -> str:
    """Digest of the circuit's fixed columns (IV and round constants)."""
    return _canonical_digest({"iv": list(INITIAL_STATE), "k": list(ROUND_CONSTANTS)})


class ReferenceString(BaseModel):
    """Public setup parameters shared by every circuit shape up to 2^k rows."""

    model_config = ConfigDict(frozen=True)

    k: int = Field(..., ge=1, le=32)
    seed: str = Field(..., description="Hex-encoded public randomness")

    @field_validator("seed")
    @classmethod
    def seed_must_be_32_bytes(cls, v: str) -> str:
        if len(bytes.fromhex(v)) != SEED_BYTES:
            raise ValueError(f"seed must be {SEED_BYTES} bytes")
        return v.lower()

    @property
    def max_rows(self) -> int:
        return 1 << self.k

    @property
    def digest(self) -> str:
        return _canonical_digest({"k": self.k, "seed": self.seed})


class VerifyingKey(BaseModel):
    """Everything a verifier needs; bound into every proof transcript."""

    model_config = ConfigDict(frozen=True)

    circuit_type: CircuitKind
    shape: CircuitShape
    repetitions: int = Field(..., ge=1)
    srs_digest: str
    constants_digest: str

    @property
    def digest(self) -> bytes:
        return bytes.fromhex(_canonical_digest(self.model_dump(mode="json")))

    @property
    def security_level(self) -> int:
        """Soundness of the repeated protocol in bits."""
        return int(self.repetitions * SOUNDNESS_BITS_PER_REPETITION)


class ProvingKey(BaseModel):
    """Verifying key plus the fixed columns the prover assigns."""

    model_config = ConfigDict(frozen=True)

    verifying_key: VerifyingKey
    initial_state: tuple[int, ...] = INITIAL_STATE
    round_constants: tuple[int, ...] = ROUND_CONSTANTS


@dataclass(frozen=True)
class SetupArtifacts:
    """Immutable handle shared by every prove and verify call."""

    reference_string: ReferenceString
    proving_key: ProvingKey
    verifying_key: VerifyingKey

    def __post_init__(self) -> None:
        if self.proving_key.verifying_key != self.verifying_key:
            raise SetupError("Proving key and verifying key describe different circuits")
        if self.verifying_key.srs_digest != self.reference_string.digest:
            raise SetupError("Verifying key was not derived from this reference string")

    @property
    def shape(self) -> CircuitShape:
        return self.verifying_key.shape


@dataclass(frozen=True)
class ArtifactPaths:
    """Filesystem locations of the three setup artifacts."""

    reference_string: Path
    proving_key: Path
    verifying_key: Path

    @classmethod
    def from_settings(cls, config: "ZKSettings") -> "ArtifactPaths":
        return cls(
            reference_string=Path(config.srs_path),
            proving_key=Path(config.proving_key_path),
            verifying_key=Path(config.verifying_key_path),
        )

    def all(self) -> tuple[Path, Path, Path]:
        return (self.reference_string, self.proving_key, self.verifying_key)

    def missing(self) -> list[Path]:
        return [p for p in self.all() if not p.exists()]


class SetupManager:
    """
    Generates, caches, loads and persists setup artifacts.

    Key generation runs at most once per (shape, reference string,
    repetitions) for the lifetime of the manager; later calls return the
    cached artifacts. `setup_runs` counts actual generations and loads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[tuple[CircuitShape, str, int], SetupArtifacts] = {}
        self.setup_runs = 0

    @staticmethod
    def generate_reference_string(k: int, seed: bytes | str | None = None) -> ReferenceString:
        """
        Create a reference string with capacity 2^k rows.

        Deterministic when `seed` is given, freshly random otherwise.
        """
        if seed is None:
            raw = secrets.token_bytes(SEED_BYTES)
        else:
            material = bytes.fromhex(seed) if isinstance(seed, str) else seed
            raw = hashlib.sha256(b"zkengine/srs/v1" + material).digest()
        return ReferenceString(k=k, seed=raw.hex())

    def setup(
        self,
        circuit: Sha256Circuit,
        reference_string: ReferenceString | None,
        repetitions: int,
    ) -> SetupArtifacts:
        """
        Derive proving and verifying keys for `circuit`.

        Raises:
            SetupError: If the reference string is missing or too small,
                        or the parameters are invalid.
        """
        if reference_string is None:
            raise SetupError("Structured reference string is missing")
        if repetitions < 1:
            raise SetupError("At least one repetition is required", repetitions=repetitions)

        shape = circuit.shape
        if shape.rows > reference_string.max_rows:
            raise SetupError(
                f"Reference string holds {reference_string.max_rows} rows, circuit needs {shape.rows}",
                k=reference_string.k,
                rows=shape.rows,
                min_k=shape.min_k,
            )

        key = (shape, reference_string.digest, repetitions)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            start_time = time.perf_counter()
            verifying_key = VerifyingKey(
                circuit_type=shape.circuit_type,
                shape=shape,
                repetitions=repetitions,
                srs_digest=reference_string.digest,
                constants_digest=constants_digest(),
            )
            artifacts = SetupArtifacts(
                reference_string=reference_string,
                proving_key=ProvingKey(verifying_key=verifying_key),
                verifying_key=verifying_key,
            )
            self._cache[key] = artifacts
            self.setup_runs += 1

            logger.info(
                "zk_setup_completed",
                circuit=shape.circuit_type.value,
                rows=shape.rows,
                k=reference_string.k,
                repetitions=repetitions,
                setup_time_ms=int((time.perf_counter() - start_time) * 1000),
            )
            return artifacts

    def load(self, paths: ArtifactPaths) -> SetupArtifacts:
        """
        Read previously saved artifacts.

        Raises:
            ArtifactsMissingError: If any artifact file is absent.
            SetupError: If a file is unreadable, corrupted or inconsistent.
        """
        missing = paths.missing()
        if missing:
            raise ArtifactsMissingError(
                "Setup artifacts not found",
                missing=[str(p) for p in missing],
            )

        try:
            reference_string = ReferenceString.model_validate_json(paths.reference_string.read_text())
            proving_key = ProvingKey.model_validate_json(paths.proving_key.read_text())
            verifying_key = VerifyingKey.model_validate_json(paths.verifying_key.read_text())
        except (OSError, ValidationError) as e:
            raise SetupError(f"Setup artifacts are unreadable: {e}") from e

        if verifying_key.constants_digest != constants_digest():
            raise SetupError("Verifying key was built for different circuit constants")
        if proving_key.initial_state != INITIAL_STATE or proving_key.round_constants != ROUND_CONSTANTS:
            raise SetupError("Proving key fixed columns are corrupted")

        circuit = Sha256Circuit(verifying_key.shape.max_input_size)
        if circuit.shape != verifying_key.shape:
            raise SetupError("Verifying key shape does not match the circuit")
        if verifying_key.shape.rows > reference_string.max_rows:
            raise SetupError(
                f"Reference string holds {reference_string.max_rows} rows, circuit needs {verifying_key.shape.rows}"
            )

        artifacts = SetupArtifacts(
            reference_string=reference_string,
            proving_key=proving_key,
            verifying_key=verifying_key,
        )

        key = (verifying_key.shape, reference_string.digest, verifying_key.repetitions)
        with self._lock:
            self._cache.setdefault(key, artifacts)
            self.setup_runs += 1

        logger.info(
            "zk_setup_loaded",
            circuit=verifying_key.circuit_type.value,
            rows=verifying_key.shape.rows,
            k=reference_string.k,
        )
        return artifacts

    @staticmethod
    def save(artifacts: SetupArtifacts, paths: ArtifactPaths) -> None:
        """Persist artifacts as three JSON documents."""
        for path in paths.all():
            path.parent.mkdir(parents=True, exist_ok=True)
        paths.reference_string.write_text(artifacts.reference_string.model_dump_json(indent=2))
        paths.proving_key.write_text(artifacts.proving_key.model_dump_json(indent=2))
        paths.verifying_key.write_text(artifacts.verifying_key.model_dump_json(indent=2))
        logger.info("zk_setup_saved", paths=[str(p) for p in paths.all()])

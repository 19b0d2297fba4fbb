"""
SHA-256 Preimage Prover
=======================

Generates zero-knowledge proofs that a public digest is the SHA-256 of a
private preimage.

The proof runs the arithmetized circuit "in the head" of three parties
holding XOR shares of the padded preimage, commits to each party's view,
derives challenges with Fiat-Shamir and opens two of the three views per
repetition. All repetitions are evaluated together as numpy lanes.

Usage:
    prover = Sha256Prover(artifacts)
    proof = prover.prove(b"secret preimage")

    # or
    proof = prove(b"secret preimage", artifacts)

Version: 0.1.0
"""

import hashlib
import secrets
import time

import numpy as np

from zkengine.logging import get_logger
from zkengine.zk.circuit import (
    DIGEST_ROWS,
    CircuitWitness,
    Sha256Circuit,
    digest_to_instance,
    synthesize,
)
from zkengine.zk.errors import ProofGenerationError, SetupNotReadyError
from zkengine.zk.models import Proof
from zkengine.zk.mpc import (
    PARTIES,
    SEED_BYTES,
    WORD,
    ProverChip,
    build_tapes,
    lane_bytes,
    tape_words,
    words_from_bytes,
)
from zkengine.zk.padding import WORDS_PER_BLOCK
from zkengine.zk.protocol import (
    Opening,
    ProofBody,
    commit,
    derive_challenges,
    opens_input_share,
)
from zkengine.zk.setup import SetupArtifacts


logger = get_logger(__name__)


class Sha256Prover:
    """
    Proof generator bound to one set of setup artifacts.

    Stateless between calls; safe to share across threads.
    """

    def __init__(self, artifacts: SetupArtifacts | None) -> None:
        if artifacts is None:
            raise SetupNotReadyError("Proving requires setup artifacts")
        self.artifacts = artifacts
        self.circuit = Sha256Circuit(artifacts.shape.max_input_size)
        self.repetitions = artifacts.verifying_key.repetitions
        self._domain = artifacts.verifying_key.digest

    def prove(self, data: bytes) -> Proof:
        """
        Prove knowledge of `data` for the digest sha256(data).

        Raises:
            InputTooLargeError: If `data` exceeds the circuit's capacity.
            ProofGenerationError: If the witness does not satisfy the circuit.
        """
        start_time = time.perf_counter()
        data = bytes(data)
        self.circuit.check_input_size(len(data))

        witness = self.circuit.assign_witness(data)
        digest = witness.digest
        if digest != hashlib.sha256(data).digest():
            raise ProofGenerationError("Circuit digest disagrees with SHA-256")

        failures = self.circuit.verify_witness(witness, digest_to_instance(digest))
        if failures:
            raise ProofGenerationError(
                "Witness does not satisfy the circuit",
                failed_constraints=failures[:10],
            )

        body = self._prove_witness(witness, digest)
        proof_bytes = body.encode()

        logger.info(
            "zk_proof_generated",
            circuit=self.artifacts.verifying_key.circuit_type.value,
            num_blocks=body.num_blocks,
            repetitions=body.repetitions,
            proof_size_bytes=len(proof_bytes),
            proving_time_ms=int((time.perf_counter() - start_time) * 1000),
        )

        return Proof(
            proof_bytes=proof_bytes,
            public_digest=digest,
            circuit_type=self.artifacts.verifying_key.circuit_type,
        )

    def _prove_witness(self, witness: CircuitWitness, digest: bytes) -> ProofBody:
        shape = self.artifacts.shape
        num_blocks = len(witness.blocks)
        reps = self.repetitions
        input_words = num_blocks * WORDS_PER_BLOCK

        seeds = [[secrets.token_bytes(SEED_BYTES) for _ in range(reps)] for _ in range(PARTIES)]
        tapes = build_tapes(seeds, tape_words(num_blocks, shape.rows_per_block), self._domain)

        # Parties 0 and 1 read their input shares off their tapes.
        x = np.array([w for block in witness.blocks for w in block.words], dtype=WORD)
        inputs = tapes[:, :input_words, :].copy()
        inputs[2] = x[:, None] ^ inputs[0] ^ inputs[1]

        chip = ProverChip(tapes, inputs, num_blocks)
        outputs = np.stack(synthesize(chip, num_blocks), axis=1)

        if chip.rows != num_blocks * shape.rows_per_block:
            raise ProofGenerationError("Row count disagrees with the verifying key", rows=chip.rows)
        recombined = outputs[0] ^ outputs[1] ^ outputs[2]
        if not np.array_equal(recombined, np.broadcast_to(words_from_bytes(digest)[:, None], recombined.shape)):
            raise ProofGenerationError("Output shares do not recombine to the digest")
        if outputs.shape[1] != DIGEST_ROWS:
            raise ProofGenerationError("Unexpected output width", width=outputs.shape[1])

        views = chip.view_array()
        view_bytes = [lane_bytes(views[party]) for party in range(PARTIES)]
        output_bytes = [lane_bytes(outputs[party]) for party in range(PARTIES)]
        share_bytes = lane_bytes(inputs[2])

        commitments = [
            [
                commit(
                    self._domain,
                    party,
                    seeds[party][r],
                    share_bytes[r] if party == 2 else b"",
                    view_bytes[party][r],
                )
                for party in range(PARTIES)
            ]
            for r in range(reps)
        ]
        outputs_by_rep = [[output_bytes[party][r] for party in range(PARTIES)] for r in range(reps)]
        challenges = derive_challenges(self._domain, digest, num_blocks, outputs_by_rep, commitments)

        openings = []
        for r, e in enumerate(challenges):
            a, b, c = e, (e + 1) % PARTIES, (e + 2) % PARTIES
            openings.append(
                Opening(
                    challenge=e,
                    seed_a=seeds[a][r],
                    seed_b=seeds[b][r],
                    input_share=share_bytes[r] if opens_input_share(e) else b"",
                    view_b=view_bytes[b][r],
                    commitment_c=commitments[r][c],
                )
            )

        return ProofBody(num_blocks=num_blocks, openings=tuple(openings))


def prove(data: bytes, artifacts: SetupArtifacts | None) -> Proof:
    """Convenience wrapper around `Sha256Prover`."""
    return Sha256Prover(artifacts).prove(data)

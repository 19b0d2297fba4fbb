"""
SHA-256 Preimage Verifier
=========================

Checks a proof against a claimed digest and the verifying key.

The verifier replays the two opened parties of every repetition,
recomputes their commitments and the third party's output share, rebuilds
the Fiat-Shamir transcript and accepts iff every challenge matches.

Invalid proofs never raise: malformed bytes, a mismatched digest or a
key for another circuit all produce `False`.

Version: 0.1.0
"""

import time

import numpy as np

from zkengine.logging import get_logger
from zkengine.zk.circuit import digest_to_instance, instance_to_words, synthesize
from zkengine.zk.errors import MalformedProofError, SetupNotReadyError, ZKEngineError
from zkengine.zk.models import Proof
from zkengine.zk.mpc import (
    PARTIES,
    VerifierChip,
    build_tapes,
    lane_bytes,
    tape_words,
    words_from_bytes,
)
from zkengine.zk.padding import WORDS_PER_BLOCK
from zkengine.zk.protocol import ProofBody, commit, derive_challenges
from zkengine.zk.setup import SetupArtifacts


logger = get_logger(__name__)


class Sha256Verifier:
    """Stateless proof verifier; safe to share across threads."""

    def __init__(self, artifacts: SetupArtifacts | None) -> None:
        if artifacts is None:
            raise SetupNotReadyError("Verification requires setup artifacts")
        self.artifacts = artifacts
        self._domain = artifacts.verifying_key.digest

    def verify(self, proof: Proof, claimed_digest: bytes) -> bool:
        """Return True iff `proof` shows knowledge of a preimage of `claimed_digest`."""
        start_time = time.perf_counter()
        try:
            reason = self._check(proof, claimed_digest)
        except (ZKEngineError, ValueError, TypeError) as e:
            reason = str(e)

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        if reason is not None:
            logger.info("zk_proof_rejected", reason=reason, verification_time_ms=elapsed_ms)
            return False

        logger.info("zk_proof_verified", verification_time_ms=elapsed_ms)
        return True

    def _check(self, proof: Proof, claimed_digest: bytes) -> str | None:
        """Return a rejection reason, or None when the proof is valid."""
        if not isinstance(proof, Proof):
            return f"expected a Proof, got {type(proof).__name__}"
        if not isinstance(claimed_digest, (bytes, bytearray, memoryview)):
            return f"expected digest bytes, got {type(claimed_digest).__name__}"
        claimed_digest = bytes(claimed_digest)

        vk = self.artifacts.verifying_key
        shape = vk.shape

        instance_to_words(digest_to_instance(claimed_digest))
        if proof.circuit_type != vk.circuit_type:
            return f"circuit type {proof.circuit_type.value} does not match {vk.circuit_type.value}"
        if proof.public_digest != claimed_digest:
            return "proof was generated for a different digest"

        body = ProofBody.decode(proof.proof_bytes, shape.rows_per_block)
        if body.repetitions != vk.repetitions:
            return f"expected {vk.repetitions} repetitions, got {body.repetitions}"
        if body.num_blocks > shape.max_blocks:
            return f"{body.num_blocks} blocks exceed circuit capacity of {shape.max_blocks}"

        expected = derive_challenges(
            self._domain,
            claimed_digest,
            body.num_blocks,
            *self._replay(body, claimed_digest),
        )
        if expected != [opening.challenge for opening in body.openings]:
            return "challenge mismatch"
        return None

    def _replay(self, body: ProofBody, digest: bytes) -> tuple[list[list[bytes]], list[list[bytes]]]:
        """Recompute every party's output share and commitment, per repetition."""
        rows_per_block = self.artifacts.shape.rows_per_block
        num_blocks = body.num_blocks
        openings = body.openings
        input_words = num_blocks * WORDS_PER_BLOCK

        seeds = [[o.seed_a for o in openings], [o.seed_b for o in openings]]
        tapes = build_tapes(seeds, tape_words(num_blocks, rows_per_block), self._domain)

        inputs = tapes[:, :input_words, :].copy()
        for r, opening in enumerate(openings):
            if opening.party_a == 2:
                inputs[0, :, r] = words_from_bytes(opening.input_share)
            elif opening.party_b == 2:
                inputs[1, :, r] = words_from_bytes(opening.input_share)

        opened_view = np.stack([words_from_bytes(o.view_b) for o in openings], axis=1)
        challenges = np.array([o.challenge for o in openings])

        chip = VerifierChip(tapes, inputs, opened_view, challenges, num_blocks)
        outputs = np.stack(synthesize(chip, num_blocks), axis=1)
        if chip.rows != num_blocks * rows_per_block:
            raise MalformedProofError("Replay row count mismatch", rows=chip.rows)

        third = words_from_bytes(digest)[:, None] ^ outputs[0] ^ outputs[1]
        out_a = lane_bytes(outputs[0])
        out_b = lane_bytes(outputs[1])
        out_c = lane_bytes(third)
        view_a = lane_bytes(chip.view_array())

        all_outputs: list[list[bytes]] = []
        all_commitments: list[list[bytes]] = []
        for r, o in enumerate(openings):
            outs = [b""] * PARTIES
            coms = [b""] * PARTIES
            outs[o.party_a], outs[o.party_b], outs[o.party_c] = out_a[r], out_b[r], out_c[r]

            share_a = o.input_share if o.party_a == 2 else b""
            share_b = o.input_share if o.party_b == 2 else b""
            coms[o.party_a] = commit(self._domain, o.party_a, o.seed_a, share_a, view_a[r])
            coms[o.party_b] = commit(self._domain, o.party_b, o.seed_b, share_b, o.view_b)
            coms[o.party_c] = o.commitment_c

            all_outputs.append(outs)
            all_commitments.append(coms)

        return all_outputs, all_commitments


def verify(proof: Proof, claimed_digest: bytes, artifacts: SetupArtifacts | None) -> bool:
    """Convenience wrapper around `Sha256Verifier`."""
    return Sha256Verifier(artifacts).verify(proof, claimed_digest)

"""
Proof Transcript Format
=======================

Binary layout of a proof body plus the commitment and challenge
functions shared by the prover and the verifier.

Layout (all integers big-endian):

    magic        4 bytes   b"ZKB1"
    version      u8
    num_blocks   u16       padded blocks in the private preimage
    repetitions  u16
    openings     repetitions x:
        challenge      u8        e in {0, 1, 2}
        seed_a         16 bytes  seed of party e
        seed_b         16 bytes  seed of party e+1
        input_share    64 * num_blocks bytes, only when party 2 is opened
        view_b         4 * rows bytes, multiplication outputs of party e+1
        commitment_c   32 bytes  commitment of the unopened party e+2

Version: 0.1.0
"""

import hashlib
import struct
from collections.abc import Sequence
from dataclasses import dataclass

from zkengine.zk.circuit import CircuitShape
from zkengine.zk.errors import MalformedProofError
from zkengine.zk.mpc import PARTIES, SEED_BYTES
from zkengine.zk.padding import BLOCK_BYTES
from zkengine.zk.transcript import Transcript


MAGIC = b"ZKB1"
VERSION = 1
HEADER = struct.Struct(">4sBHH")
COMMITMENT_BYTES = 32
PROTOCOL_LABEL = "zkengine/sha256-preimage/v1"

_COMMIT_DOMAIN = b"zkengine/commit/v1"


def opens_input_share(challenge: int) -> bool:
    """Party 2 is among the opened parties (e, e+1)."""
    return challenge in (1, 2)


@dataclass(frozen=True)
class Opening:
    """Response for one repetition."""

    challenge: int
    seed_a: bytes
    seed_b: bytes
    input_share: bytes
    view_b: bytes
    commitment_c: bytes

    @property
    def party_a(self) -> int:
        return self.challenge

    @property
    def party_b(self) -> int:
        return (self.challenge + 1) % PARTIES

    @property
    def party_c(self) -> int:
        return (self.challenge + 2) % PARTIES

    def encode(self) -> bytes:
        return b"".join(
            (
                bytes([self.challenge]),
                self.seed_a,
                self.seed_b,
                self.input_share,
                self.view_b,
                self.commitment_c,
            )
        )


@dataclass(frozen=True)
class ProofBody:
    """Decoded proof bytes."""

    num_blocks: int
    openings: tuple[Opening, ...]

    @property
    def repetitions(self) -> int:
        return len(self.openings)

    def encode(self) -> bytes:
        if not 1 <= self.num_blocks <= 0xFFFF or not 1 <= self.repetitions <= 0xFFFF:
            raise ValueError("Block and repetition counts must fit in 16 bits")
        header = HEADER.pack(MAGIC, VERSION, self.num_blocks, self.repetitions)
        return header + b"".join(opening.encode() for opening in self.openings)

    @classmethod
    def decode(cls, data: bytes, rows_per_block: int) -> "ProofBody":
        """
        Parse proof bytes.

        Raises:
            MalformedProofError: On any framing violation, including
                                 trailing bytes.
        """
        if len(data) < HEADER.size:
            raise MalformedProofError("Proof is shorter than its header", size=len(data))

        magic, version, num_blocks, repetitions = HEADER.unpack_from(data)
        if magic != MAGIC:
            raise MalformedProofError("Unknown proof format")
        if version != VERSION:
            raise MalformedProofError("Unsupported proof version", version=version)
        if num_blocks < 1 or repetitions < 1:
            raise MalformedProofError("Proof declares no blocks or no repetitions")

        share_len = BLOCK_BYTES * num_blocks
        view_len = 4 * rows_per_block * num_blocks

        offset = HEADER.size
        openings = []
        for _ in range(repetitions):
            if offset >= len(data):
                raise MalformedProofError("Proof is truncated", offset=offset)
            challenge = data[offset]
            if challenge >= PARTIES:
                raise MalformedProofError("Challenge out of range", challenge=challenge)
            offset += 1

            sizes = [SEED_BYTES, SEED_BYTES]
            sizes.append(share_len if opens_input_share(challenge) else 0)
            sizes += [view_len, COMMITMENT_BYTES]

            fields = []
            for size in sizes:
                chunk = data[offset : offset + size]
                if len(chunk) != size:
                    raise MalformedProofError("Proof is truncated", offset=offset)
                fields.append(chunk)
                offset += size

            openings.append(Opening(challenge, *fields))

        if offset != len(data):
            raise MalformedProofError("Trailing bytes after proof", extra=len(data) - offset)

        return cls(num_blocks=num_blocks, openings=tuple(openings))


def commit(domain: bytes, party: int, seed: bytes, input_share: bytes, view: bytes) -> bytes:
    """Hash commitment to one party's seed, explicit input share and view."""
    return hashlib.sha256(_COMMIT_DOMAIN + domain + bytes([party]) + seed + input_share + view).digest()


def derive_challenges(
    domain: bytes,
    digest: bytes,
    num_blocks: int,
    outputs: Sequence[Sequence[bytes]],
    commitments: Sequence[Sequence[bytes]],
) -> list[int]:
    """
    Fiat-Shamir challenges, one trit per repetition.

    `outputs[r][j]` and `commitments[r][j]` are party j's output share
    and commitment in repetition r.
    """
    transcript = Transcript(PROTOCOL_LABEL)
    transcript.append_message("verifying_key", domain)
    transcript.append_message("digest", digest)
    transcript.append_u64("num_blocks", num_blocks)
    transcript.append_u64("repetitions", len(outputs))

    for outs, coms in zip(outputs, commitments, strict=True):
        for party in range(PARTIES):
            transcript.append_message("output", outs[party])
            transcript.append_message("commitment", coms[party])

    return transcript.challenge_trits("challenge", len(outputs))


def estimate_proof_size(shape: CircuitShape, repetitions: int, num_blocks: int = 1) -> int:
    """Upper bound on proof size: every repetition carries an input share."""
    per_repetition = (
        1
        + 2 * SEED_BYTES
        + BLOCK_BYTES * num_blocks
        + 4 * shape.rows_per_block * num_blocks
        + COMMITMENT_BYTES
    )
    return HEADER.size + repetitions * per_repetition

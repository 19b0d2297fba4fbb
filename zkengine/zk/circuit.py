"""
SHA-256 Arithmetic Circuit
==========================

The SHA-256 compression function expressed over the prime field F2.

Every wire carries one field element (a bit) and a 32-bit word is its
explicit 32-wire bit decomposition, so words are range-constrained to
[0, 2^32) by construction. XOR is field addition and AND is field
multiplication. Rotations and shifts only permute wires. Modular addition
is a ripple-carry gadget that spends one multiplication per carry bit:

    c[i+1] = ((a[i] + c[i]) * (b[i] + c[i])) + c[i]

The circuit is written once against `Sha256Instructions` and synthesized
by different chips: native evaluation for witness assignment, gate
counting for key generation, and shared evaluation for proving and
verification (see zkengine.zk.mpc).

One row is one 32-bit nonlinear gadget (an AND word or an addition
carry word). A block needs 48 * 3 schedule additions, 64 * 7 round
additions, 64 Ch and 64 Maj products and 8 feed-forward additions.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from zkengine.zk.errors import InputTooLargeError
from zkengine.zk.models import DIGEST_BYTES, CircuitKind
from zkengine.zk.padding import (
    WORD_MASK,
    WORDS_PER_BLOCK,
    PaddedBlock,
    block_count,
    max_input_size,
    pad_and_schedule,
)


W = TypeVar("W")

# Block counts travel as u16 in the proof header.
MAX_BLOCKS = 0xFFFF
MAX_INPUT_SIZE = max_input_size(MAX_BLOCKS)
ROUNDS = 64
STATE_WORDS = 8
DIGEST_ROWS = STATE_WORDS

INITIAL_STATE: tuple[int, ...] = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
)

ROUND_CONSTANTS: tuple[int, ...] = (
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
)


# =============================================================================
# Public instance encoding
# =============================================================================


def digest_to_instance(digest: bytes) -> tuple[int, ...]:
    """Encode a digest as 32 byte-valued instance cells."""
    if len(digest) != DIGEST_BYTES:
        raise ValueError(f"digest must be {DIGEST_BYTES} bytes, got {len(digest)}")
    return tuple(digest)


def instance_to_words(instance: Sequence[int]) -> tuple[int, ...]:
    """Range-check 32 instance cells and recompose them into 8 state words."""
    if len(instance) != DIGEST_BYTES:
        raise ValueError(f"instance must have {DIGEST_BYTES} cells, got {len(instance)}")
    if any(not 0 <= cell <= 0xFF for cell in instance):
        raise ValueError("instance cells must be in [0, 255]")
    return tuple(
        int.from_bytes(bytes(instance[i : i + 4]), "big") for i in range(0, DIGEST_BYTES, 4)
    )


def words_to_digest(words: Sequence[int]) -> bytes:
    return b"".join(w.to_bytes(4, "big") for w in words)


# =============================================================================
# Gadget instructions
# =============================================================================


class Sha256Instructions(ABC, Generic[W]):
    """Word-level gadgets the SHA-256 circuit is written against."""

    @abstractmethod
    def constant(self, value: int) -> W:
        """A fixed (public) word."""

    @abstractmethod
    def load_block(self, index: int) -> list[W]:
        """The sixteen private message words of block `index`."""

    @abstractmethod
    def xor(self, a: W, b: W) -> W:
        """Bitwise field addition."""

    @abstractmethod
    def and_(self, a: W, b: W) -> W:
        """Bitwise field multiplication. Costs one row."""

    @abstractmethod
    def add(self, a: W, b: W) -> W:
        """Addition modulo 2^32. Costs one row."""

    @abstractmethod
    def rotr(self, a: W, n: int) -> W:
        """Right rotation by `n` wires."""

    @abstractmethod
    def shr(self, a: W, n: int) -> W:
        """Right shift by `n` wires."""

    def assign_schedule(self, block: int, schedule: Sequence[W]) -> None:
        """Hook called with the expanded message schedule of a block."""

    def assign_state(self, block: int, round_: int, state: Sequence[W]) -> None:
        """Hook called with the working state before round `round_` (64 = after the last)."""


def _big_sigma0(chip: Sha256Instructions[W], x: W) -> W:
    return chip.xor(chip.xor(chip.rotr(x, 2), chip.rotr(x, 13)), chip.rotr(x, 22))


def _big_sigma1(chip: Sha256Instructions[W], x: W) -> W:
    return chip.xor(chip.xor(chip.rotr(x, 6), chip.rotr(x, 11)), chip.rotr(x, 25))


def _small_sigma0(chip: Sha256Instructions[W], x: W) -> W:
    return chip.xor(chip.xor(chip.rotr(x, 7), chip.rotr(x, 18)), chip.shr(x, 3))


def _small_sigma1(chip: Sha256Instructions[W], x: W) -> W:
    return chip.xor(chip.xor(chip.rotr(x, 17), chip.rotr(x, 19)), chip.shr(x, 10))


def _choose(chip: Sha256Instructions[W], e: W, f: W, g: W) -> W:
    # (e & f) ^ (~e & g) with a single product
    return chip.xor(chip.and_(e, chip.xor(f, g)), g)


def _majority(chip: Sha256Instructions[W], a: W, b: W, c: W) -> W:
    # maj(a, b, c) with a single product
    return chip.xor(chip.and_(chip.xor(a, b), chip.xor(a, c)), a)


def schedule_word(chip: Sha256Instructions[W], w2: W, w7: W, w15: W, w16: W) -> W:
    """W[t] = sigma1(W[t-2]) + W[t-7] + sigma0(W[t-15]) + W[t-16]."""
    return chip.add(chip.add(chip.add(_small_sigma1(chip, w2), w7), _small_sigma0(chip, w15)), w16)


def message_schedule(chip: Sha256Instructions[W], words: Sequence[W]) -> list[W]:
    """Expand sixteen block words into the 64-word message schedule."""
    schedule = list(words)
    for t in range(WORDS_PER_BLOCK, ROUNDS):
        schedule.append(
            schedule_word(chip, schedule[t - 2], schedule[t - 7], schedule[t - 15], schedule[t - 16])
        )
    return schedule


def round_step(chip: Sha256Instructions[W], state: Sequence[W], k: W, w: W) -> list[W]:
    """One compression round."""
    a, b, c, d, e, f, g, h = state
    t1 = chip.add(h, _big_sigma1(chip, e))
    t1 = chip.add(t1, _choose(chip, e, f, g))
    t1 = chip.add(t1, k)
    t1 = chip.add(t1, w)
    t2 = chip.add(_big_sigma0(chip, a), _majority(chip, a, b, c))
    return [chip.add(t1, t2), a, b, c, chip.add(d, t1), e, f, g]


def compress(chip: Sha256Instructions[W], block: int, chaining: Sequence[W], words: Sequence[W]) -> list[W]:
    """Run one block through all 64 rounds and feed the result forward."""
    schedule = message_schedule(chip, words)
    chip.assign_schedule(block, schedule)

    state = list(chaining)
    for t in range(ROUNDS):
        chip.assign_state(block, t, state)
        state = round_step(chip, state, chip.constant(ROUND_CONSTANTS[t]), schedule[t])
    chip.assign_state(block, ROUNDS, state)

    return [chip.add(h, s) for h, s in zip(chaining, state, strict=True)]


def synthesize(chip: Sha256Instructions[W], num_blocks: int) -> list[W]:
    """Chain `num_blocks` compressions from the SHA-256 IV; returns the final state."""
    state = [chip.constant(v) for v in INITIAL_STATE]
    for block in range(num_blocks):
        state = compress(chip, block, state, chip.load_block(block))
    return state


# =============================================================================
# Native chips
# =============================================================================


class PlainChip(Sha256Instructions[int]):
    """Evaluates the circuit on native integers and records the witness."""

    def __init__(self, blocks: Sequence[PaddedBlock]) -> None:
        self.blocks = list(blocks)
        self.schedules: list[tuple[int, ...]] = []
        self.round_states: list[list[tuple[int, ...]]] = [[] for _ in self.blocks]

    def constant(self, value: int) -> int:
        return value & WORD_MASK

    def load_block(self, index: int) -> list[int]:
        return list(self.blocks[index].words)

    def xor(self, a: int, b: int) -> int:
        return a ^ b

    def and_(self, a: int, b: int) -> int:
        return a & b

    def add(self, a: int, b: int) -> int:
        return (a + b) & WORD_MASK

    def rotr(self, a: int, n: int) -> int:
        return ((a >> n) | (a << (32 - n))) & WORD_MASK

    def shr(self, a: int, n: int) -> int:
        return a >> n

    def assign_schedule(self, block: int, schedule: Sequence[int]) -> None:
        self.schedules.append(tuple(schedule))

    def assign_state(self, block: int, round_: int, state: Sequence[int]) -> None:
        self.round_states[block].append(tuple(state))


class CountingChip(PlainChip):
    """Counts rows while evaluating an all-zero witness."""

    def __init__(self, num_blocks: int) -> None:
        super().__init__([PaddedBlock(words=(0,) * WORDS_PER_BLOCK)] * num_blocks)
        self.rows = 0

    def and_(self, a: int, b: int) -> int:
        self.rows += 1
        return super().and_(a, b)

    def add(self, a: int, b: int) -> int:
        self.rows += 1
        return super().add(a, b)


# =============================================================================
# Circuit
# =============================================================================


class CircuitShape(BaseModel):
    """Preimage-independent dimensions of a circuit instance."""

    model_config = ConfigDict(frozen=True)

    circuit_type: CircuitKind = CircuitKind.SHA256
    max_input_size: int = Field(..., ge=0, le=MAX_INPUT_SIZE)
    max_blocks: int = Field(..., ge=1, le=MAX_BLOCKS)
    rows_per_block: int = Field(..., ge=1)
    digest_rows: int = DIGEST_ROWS

    @property
    def rows(self) -> int:
        """Total rows at full capacity."""
        return self.max_blocks * self.rows_per_block + self.digest_rows

    @property
    def min_k(self) -> int:
        """Smallest k such that 2^k rows hold the circuit."""
        return max(self.rows - 1, 1).bit_length()


@dataclass(frozen=True)
class CircuitWitness:
    """Every private value assigned during one proving run."""

    blocks: tuple[PaddedBlock, ...]
    schedules: tuple[tuple[int, ...], ...]
    round_states: tuple[tuple[tuple[int, ...], ...], ...]
    chaining_states: tuple[tuple[int, ...], ...]

    @property
    def digest(self) -> bytes:
        return words_to_digest(self.chaining_states[-1])


class Sha256Circuit:
    """
    SHA-256 digest-correctness circuit.

    A witness (padded blocks plus all intermediate values) satisfies the
    circuit for an instance (32 public bytes) iff chaining the compression
    function over the blocks from the IV yields exactly those bytes.
    """

    kind = CircuitKind.SHA256

    def __init__(self, max_input_size: int = 8192) -> None:
        if max_input_size < 0:
            raise ValueError("max_input_size must be non-negative")
        if max_input_size > MAX_INPUT_SIZE:
            raise ValueError(f"max_input_size must be at most {MAX_INPUT_SIZE} bytes ({MAX_BLOCKS} blocks)")
        self.max_input_size = max_input_size
        self.max_blocks = block_count(max_input_size)

    @cached_property
    def shape(self) -> CircuitShape:
        chip = CountingChip(1)
        synthesize(chip, 1)
        return CircuitShape(
            circuit_type=self.kind,
            max_input_size=self.max_input_size,
            max_blocks=self.max_blocks,
            rows_per_block=chip.rows,
        )

    def check_input_size(self, length: int) -> None:
        """Reject preimages beyond capacity before any witness is built."""
        if length > self.max_input_size:
            raise InputTooLargeError(
                f"Input of {length} bytes exceeds circuit capacity of {self.max_input_size} bytes",
                input_size=length,
                max_input_size=self.max_input_size,
            )

    def assign_witness(self, data: bytes) -> CircuitWitness:
        """Pad `data` and assign every private cell."""
        self.check_input_size(len(data))
        blocks = pad_and_schedule(data)
        chip = PlainChip(blocks)

        chaining = [tuple(INITIAL_STATE)]
        state = list(INITIAL_STATE)
        for index in range(len(blocks)):
            state = compress(chip, index, state, chip.load_block(index))
            chaining.append(tuple(state))

        return CircuitWitness(
            blocks=tuple(blocks),
            schedules=tuple(chip.schedules),
            round_states=tuple(tuple(states) for states in chip.round_states),
            chaining_states=tuple(chaining),
        )

    def verify_witness(self, witness: CircuitWitness, instance: Sequence[int]) -> list[str]:
        """
        Check every constraint and return the ones that fail.

        An empty list means the witness satisfies the circuit for `instance`.
        """
        failures: list[str] = []
        chip = PlainChip(witness.blocks)
        n = len(witness.blocks)

        if not 1 <= n <= self.max_blocks:
            return [f"block_count: {n} not in [1, {self.max_blocks}]"]
        if len(witness.schedules) != n or len(witness.round_states) != n:
            return ["layout: schedule or round state count does not match block count"]
        if len(witness.chaining_states) != n + 1:
            return ["layout: chaining state count does not match block count"]
        if witness.chaining_states[0] != INITIAL_STATE:
            failures.append("chaining[0]: initial state is not the SHA-256 IV")

        for b in range(n):
            schedule = witness.schedules[b]
            states = witness.round_states[b]
            if len(schedule) != ROUNDS or len(states) != ROUNDS + 1:
                failures.append(f"block[{b}]: incomplete schedule or round states")
                continue
            if any(not 0 <= v <= WORD_MASK for v in schedule):
                failures.append(f"block[{b}]: schedule word out of range")
            if schedule[:WORDS_PER_BLOCK] != witness.blocks[b].words:
                failures.append(f"block[{b}]: schedule does not start with the block words")
            for t in range(WORDS_PER_BLOCK, ROUNDS):
                expected = schedule_word(chip, schedule[t - 2], schedule[t - 7], schedule[t - 15], schedule[t - 16])
                if schedule[t] != expected:
                    failures.append(f"block[{b}].schedule[{t}]")

            if states[0] != witness.chaining_states[b]:
                failures.append(f"block[{b}].round[0]: does not start from the chaining state")
            for t in range(ROUNDS):
                if any(not 0 <= v <= WORD_MASK for v in states[t + 1]):
                    failures.append(f"block[{b}].round[{t + 1}]: state word out of range")
                    continue
                expected = tuple(round_step(chip, states[t], ROUND_CONSTANTS[t], schedule[t]))
                if states[t + 1] != expected:
                    failures.append(f"block[{b}].round[{t + 1}]")

            fed_forward = tuple(chip.add(h, s) for h, s in zip(witness.chaining_states[b], states[ROUNDS]))
            if witness.chaining_states[b + 1] != fed_forward:
                failures.append(f"chaining[{b + 1}]")

        try:
            expected_words = instance_to_words(instance)
        except ValueError as e:
            failures.append(f"instance: {e}")
        else:
            if witness.chaining_states[-1] != expected_words:
                failures.append("digest: final state does not match the instance")

        return failures

    def is_satisfied(self, witness: CircuitWitness, instance: Sequence[int]) -> bool:
        return not self.verify_witness(witness, instance)

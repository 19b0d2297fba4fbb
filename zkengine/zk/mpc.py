"""
Shared-Word Chips
=================

Evaluates the SHA-256 circuit on XOR-shared words, the way the proof
system simulates parties "in the head".

Every word is a numpy array of uint32 with shape (parties, repetitions):
all parallel repetitions of the protocol are evaluated at once, one lane
per repetition. XOR, rotations and shifts are local to each party.
Multiplications (AND words and addition carries) mix a party's shares
with its neighbour's and consume one word of that party's random tape:

    z[j] = a[j]b[j] + a[j+1]b[j] + a[j]b[j+1] + r[j] + r[j+1]

The output words of every multiplication form the party's view.

`ProverChip` runs all three parties. `VerifierChip` re-runs the two
opened parties of each repetition, reading the second party's outputs
from the proof.

Version: 0.1.0
"""

import hashlib
from collections.abc import Sequence

import numpy as np

from zkengine.zk.circuit import Sha256Instructions
from zkengine.zk.padding import WORDS_PER_BLOCK


PARTIES = 3
OPENED_PARTIES = 2
SEED_BYTES = 16

WORD = np.uint32
BE_WORD = np.dtype(">u4")

_TAPE_DOMAIN = b"zkengine/tape/v1"
_CARRY_BITS = tuple(np.uint32(1 << i) for i in range(31))
_NEXT_PARTY = np.array([1, 2, 0])


def tape_words(num_blocks: int, rows_per_block: int) -> int:
    """Tape length: sixteen input words per block, then one word per row."""
    return num_blocks * (WORDS_PER_BLOCK + rows_per_block)


def expand_tape(seed: bytes, words: int, domain: bytes) -> np.ndarray:
    """Stretch a seed into `words` pseudo-random 32-bit words with SHAKE-256."""
    stream = hashlib.shake_256(_TAPE_DOMAIN + domain + seed).digest(4 * words)
    return np.frombuffer(stream, dtype=BE_WORD).astype(WORD)


def build_tapes(seeds: Sequence[Sequence[bytes]], words: int, domain: bytes) -> np.ndarray:
    """Tapes for seeds[party][repetition], shaped (parties, words, repetitions)."""
    return np.stack(
        [np.stack([expand_tape(seed, words, domain) for seed in row], axis=1) for row in seeds]
    )


def words_from_bytes(data: bytes) -> np.ndarray:
    return np.frombuffer(data, dtype=BE_WORD).astype(WORD)


def lane_bytes(words: np.ndarray) -> list[bytes]:
    """Split a (count, repetitions) word array into big-endian bytes per repetition."""
    lanes = np.ascontiguousarray(words.T).astype(BE_WORD)
    return [lane.tobytes() for lane in lanes]


class _SharedChip(Sha256Instructions[np.ndarray]):
    """Local operations and tape bookkeeping common to both simulations."""

    def __init__(self, tapes: np.ndarray, inputs: np.ndarray, num_blocks: int) -> None:
        self._tapes = tapes
        self._inputs = inputs
        self._input_words = num_blocks * WORDS_PER_BLOCK
        self.parties, _, self.repetitions = tapes.shape
        self.rows = 0

    def _randomness(self) -> np.ndarray:
        r = self._tapes[:, self._input_words + self.rows, :]
        self.rows += 1
        return r

    def load_block(self, index: int) -> list[np.ndarray]:
        start = index * WORDS_PER_BLOCK
        return [self._inputs[:, start + i, :] for i in range(WORDS_PER_BLOCK)]

    def xor(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a ^ b

    def rotr(self, a: np.ndarray, n: int) -> np.ndarray:
        return (a >> n) | (a << (32 - n))

    def shr(self, a: np.ndarray, n: int) -> np.ndarray:
        return a >> n


class ProverChip(_SharedChip):
    """Three-party evaluation; records every party's view."""

    def __init__(self, tapes: np.ndarray, inputs: np.ndarray, num_blocks: int) -> None:
        super().__init__(tapes, inputs, num_blocks)
        self.views: list[np.ndarray] = []

    def constant(self, value: int) -> np.ndarray:
        shares = np.zeros((self.parties, self.repetitions), dtype=WORD)
        shares[0] = value
        return shares

    def and_(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        r = self._randomness()
        r = r ^ r[_NEXT_PARTY]
        z = (a & b) ^ (a[_NEXT_PARTY] & b) ^ (a & b[_NEXT_PARTY]) ^ r
        self.views.append(z)
        return z

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        r = self._randomness()
        r = r ^ r[_NEXT_PARTY]
        carry = np.zeros_like(a)
        for bit in _CARRY_BITS:
            ac = a ^ carry
            bc = b ^ carry
            t = (ac & bc) ^ (ac[_NEXT_PARTY] & bc) ^ (ac & bc[_NEXT_PARTY]) ^ r
            carry |= ((t ^ carry) & bit) << 1
        self.views.append(carry)
        return a ^ b ^ carry

    def view_array(self) -> np.ndarray:
        """All views, shaped (parties, rows, repetitions)."""
        return np.stack(self.views, axis=1)


class VerifierChip(_SharedChip):
    """
    Two-party replay of the opened parties (e, e+1) of every repetition.

    Row 0 of each word belongs to party e and is recomputed; row 1 belongs
    to party e+1 and its multiplication outputs come from the proof.
    """

    def __init__(
        self,
        tapes: np.ndarray,
        inputs: np.ndarray,
        opened_view: np.ndarray,
        challenges: np.ndarray,
        num_blocks: int,
    ) -> None:
        super().__init__(tapes, inputs, num_blocks)
        self._opened_view = opened_view
        # Party 0 holds public constants; it sits in row 0 when e == 0 and in row 1 when e == 2.
        self._holds_constants = np.stack([challenges == 0, challenges == 2])
        self.views: list[np.ndarray] = []

    def constant(self, value: int) -> np.ndarray:
        return np.where(self._holds_constants, WORD(value), WORD(0))

    def _opened_word(self) -> np.ndarray:
        return self._opened_view[self.rows - 1]

    def and_(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        r = self._randomness()
        z0 = (a[0] & b[0]) ^ (a[1] & b[0]) ^ (a[0] & b[1]) ^ r[0] ^ r[1]
        self.views.append(z0)
        return np.stack([z0, self._opened_word()])

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        r = self._randomness()
        rr = r[0] ^ r[1]
        c1 = self._opened_word()
        ac1 = a[1] ^ c1
        bc1 = b[1] ^ c1
        c0 = np.zeros_like(c1)
        for bit in _CARRY_BITS:
            ac0 = a[0] ^ c0
            bc0 = b[0] ^ c0
            t = (ac0 & bc0) ^ (ac1 & bc0) ^ (ac0 & bc1) ^ rr
            c0 |= ((t ^ c0) & bit) << 1
        self.views.append(c0)
        return a ^ b ^ np.stack([c0, c1])

    def view_array(self) -> np.ndarray:
        """Recomputed view of party e, shaped (rows, repetitions)."""
        return np.stack(self.views)

"""
SHA-256 Preimage Padding
========================

Pads an arbitrary byte string per RFC 6234 and splits it into 512-bit
blocks of sixteen big-endian 32-bit words, ready for the circuit.

Version: 0.1.0
"""

import struct
from dataclasses import dataclass


BLOCK_BYTES = 64
WORDS_PER_BLOCK = 16
LENGTH_FIELD_BYTES = 8
WORD_MASK = 0xFFFFFFFF

_BLOCK_STRUCT = struct.Struct(">16I")


@dataclass(frozen=True)
class PaddedBlock:
    """One 512-bit message block."""

    words: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.words) != WORDS_PER_BLOCK:
            raise ValueError(f"A block has {WORDS_PER_BLOCK} words, got {len(self.words)}")
        if any(not 0 <= w <= WORD_MASK for w in self.words):
            raise ValueError("Block words must be 32-bit unsigned integers")

    @classmethod
    def from_bytes(cls, chunk: bytes) -> "PaddedBlock":
        """Build a block from exactly 64 bytes."""
        if len(chunk) != BLOCK_BYTES:
            raise ValueError(f"A block is {BLOCK_BYTES} bytes, got {len(chunk)}")
        return cls(words=_BLOCK_STRUCT.unpack(chunk))

    def to_bytes(self) -> bytes:
        return _BLOCK_STRUCT.pack(*self.words)


def block_count(length: int) -> int:
    """Number of blocks the padded form of a `length`-byte message occupies."""
    if length < 0:
        raise ValueError("length must be non-negative")
    return (length + LENGTH_FIELD_BYTES) // BLOCK_BYTES + 1


def max_input_size(blocks: int) -> int:
    """Largest message (in bytes) whose padding fits in `blocks` blocks."""
    if blocks < 1:
        raise ValueError("at least one block is required")
    return blocks * BLOCK_BYTES - LENGTH_FIELD_BYTES - 1


def pad_message(data: bytes) -> bytes:
    """
    Apply SHA-256 padding.

    1. Append the byte 0x80.
    2. Append zero bytes until the length is 56 mod 64.
    3. Append the original length in bits as a 64-bit big-endian integer.
    """
    bit_length = (len(data) * 8) & 0xFFFFFFFFFFFFFFFF
    zeros = (BLOCK_BYTES - LENGTH_FIELD_BYTES - 1 - len(data)) % BLOCK_BYTES
    return bytes(data) + b"\x80" + b"\x00" * zeros + bit_length.to_bytes(LENGTH_FIELD_BYTES, "big")


def pad_and_schedule(data: bytes) -> list[PaddedBlock]:
    """
    Pad `data` and split it into message blocks.

    Total over every input length; the empty message yields one block.
    """
    padded = pad_message(data)
    return [
        PaddedBlock.from_bytes(padded[offset : offset + BLOCK_BYTES])
        for offset in range(0, len(padded), BLOCK_BYTES)
    ]

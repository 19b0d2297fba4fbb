"""
Unit Tests for Preimage Padding
===============================

Version: 0.1.0
"""

import pytest

from zkengine.zk.padding import (
    BLOCK_BYTES,
    PaddedBlock,
    block_count,
    max_input_size,
    pad_and_schedule,
    pad_message,
)


class TestPadMessage:
    """Tests for SHA-256 message padding."""

    def test_empty_message(self):
        """The empty message pads to a single block."""
        padded = pad_message(b"")

        assert padded == b"\x80" + b"\x00" * 63

    def test_abc_padding(self):
        """Known padding of 'abc' from the SHA-256 standard."""
        padded = pad_message(b"abc")

        assert len(padded) == 64
        assert padded[:4] == b"abc\x80"
        assert padded[4:56] == b"\x00" * 52
        assert padded[56:] == (24).to_bytes(8, "big")

    def test_padding_is_total(self):
        """Every length pads to a multiple of 64 that ends with the bit length."""
        for length in range(0, 200):
            data = bytes(i % 251 for i in range(length))
            padded = pad_message(data)

            assert len(padded) % BLOCK_BYTES == 0
            assert padded.startswith(data + b"\x80")
            assert padded[-8:] == (length * 8).to_bytes(8, "big")
            assert len(padded) // BLOCK_BYTES == block_count(length)

    @pytest.mark.parametrize(
        ("length", "blocks"),
        [(0, 1), (55, 1), (56, 2), (63, 2), (64, 2), (119, 2), (120, 3), (128, 3)],
    )
    def test_block_boundaries(self, length: int, blocks: int):
        """Messages spill into a new block once the length field no longer fits."""
        assert block_count(length) == blocks
        assert len(pad_and_schedule(b"\x00" * length)) == blocks

    def test_max_input_size_inverts_block_count(self):
        """max_input_size(n) is the largest length that fits in n blocks."""
        for blocks in range(1, 10):
            limit = max_input_size(blocks)
            assert block_count(limit) == blocks
            assert block_count(limit + 1) == blocks + 1

    def test_negative_length_rejected(self):
        """Test negative lengths are refused."""
        with pytest.raises(ValueError):
            block_count(-1)
        with pytest.raises(ValueError):
            max_input_size(0)


class TestPaddedBlock:
    """Tests for the block type."""

    def test_schedule_words_are_big_endian(self):
        """Words are read big-endian from the padded bytes."""
        blocks = pad_and_schedule(b"abc")

        assert len(blocks) == 1
        assert blocks[0].words[0] == 0x61626380
        assert blocks[0].words[15] == 24
        assert blocks[0].to_bytes() == pad_message(b"abc")

    def test_from_bytes_requires_64_bytes(self):
        """Test blocks are built from exactly 64 bytes."""
        with pytest.raises(ValueError, match="64 bytes"):
            PaddedBlock.from_bytes(b"\x00" * 63)

    def test_word_count_validated(self):
        """Test a block must have sixteen words."""
        with pytest.raises(ValueError):
            PaddedBlock(words=(0,) * 15)

    def test_word_range_validated(self):
        """Test block words must fit in 32 bits."""
        with pytest.raises(ValueError):
            PaddedBlock(words=(1 << 32,) + (0,) * 15)

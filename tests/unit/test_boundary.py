"""
Unit Tests for the Cross-Language Boundary
==========================================

Version: 0.1.0
"""

import json
from collections.abc import Callable

import pytest

from zkengine.config import ZKSettings
from zkengine.zk.boundary import (
    BoundaryCode,
    BoundaryResult,
    EngineBoundary,
    bytes_required,
    frame,
    unframe,
)
from zkengine.zk.service import ProofService


@pytest.fixture(scope="module")
def boundary(proof_service: ProofService) -> EngineBoundary:
    return EngineBoundary(proof_service)


@pytest.fixture(scope="module")
def hello_proof_json(boundary: EngineBoundary) -> bytes:
    result = boundary.generate_proof(frame(b"hello"))
    assert result.code == BoundaryCode.OK
    return result.payload


class TestFraming:
    """Length-prefixed buffers."""

    def test_frame_layout(self):
        """Test the 8-byte big-endian length prefix."""
        assert frame(b"abc") == b"\x00\x00\x00\x00\x00\x00\x00\x03abc"
        assert unframe(frame(b"")) == b""

    def test_unframe_rejects_bad_buffers(self):
        """Test missing, short and mislabelled buffers are refused."""
        with pytest.raises(ValueError, match="missing"):
            unframe(None)
        with pytest.raises(ValueError, match="shorter"):
            unframe(b"\x00\x00")
        with pytest.raises(ValueError, match="prefix says"):
            unframe(frame(b"abc") + b"d")
        with pytest.raises(ValueError, match="prefix says"):
            unframe(frame(b"abc")[:-1])
        with pytest.raises(TypeError, match="bytes-like"):
            unframe(8)

    def test_result_header(self):
        """Test result serialization and the fixed header size."""
        assert bytes_required() == 12

        result = BoundaryResult(BoundaryCode.INPUT_TOO_LARGE, b"payload")
        encoded = result.to_bytes()

        assert len(encoded) == bytes_required() + 7
        assert BoundaryResult.from_bytes(encoded) == result

    def test_result_from_short_buffer(self):
        """Test a result buffer shorter than its header."""
        with pytest.raises(ValueError):
            BoundaryResult.from_bytes(b"\x00")

    def test_codes(self):
        """Test the numeric boundary codes."""
        assert [c.value for c in BoundaryCode] == [0, 1, -1, -2, -3, -4]


class TestBoundaryCalls:
    """Tagged results from engine calls."""

    def test_generate_returns_proof_json(self, hello_proof_json: bytes):
        """Test a successful call returns the proof as JSON."""
        body = json.loads(hello_proof_json)

        assert body["circuit_type"] == "sha256"
        assert len(body["public_digest"]) == 64

    def test_verify_accepts(self, boundary: EngineBoundary, hello_proof_json: bytes):
        """Test a valid proof verifies against its preimage."""
        result = boundary.verify_proof(frame(b"hello"), frame(hello_proof_json))

        assert result.code == BoundaryCode.OK
        assert result.ok

    def test_verify_rejects(self, boundary: EngineBoundary, hello_proof_json: bytes):
        """Test a proof for other data is rejected, not failed."""
        result = boundary.verify_proof(frame(b"world"), frame(hello_proof_json))

        assert result.code == BoundaryCode.REJECTED

    def test_verify_digest(self, boundary: EngineBoundary, hello_proof_json: bytes):
        """Test verification against a framed digest."""
        digest = bytes.fromhex(json.loads(hello_proof_json)["public_digest"])

        assert boundary.verify_digest(frame(digest), frame(hello_proof_json)).ok
        assert boundary.verify_digest(frame(digest[:31]), frame(hello_proof_json)).code == (
            BoundaryCode.INVALID_ARGUMENT
        )

    def test_null_input(self, boundary: EngineBoundary):
        """Test a missing input buffer."""
        result = boundary.generate_proof(None)

        assert result.code == BoundaryCode.INVALID_ARGUMENT
        assert json.loads(result.payload)["code"] == "invalid_argument"

    def test_bad_length_prefix(self, boundary: EngineBoundary):
        """Test a length prefix that disagrees with the payload."""
        result = boundary.generate_proof(frame(b"hello")[:-1])

        assert result.code == BoundaryCode.INVALID_ARGUMENT

    def test_garbage_proof(self, boundary: EngineBoundary):
        """Test a proof buffer that is not proof JSON."""
        result = boundary.verify_proof(frame(b"hello"), frame(b"{not json"))

        assert result.code == BoundaryCode.INVALID_ARGUMENT

    def test_input_too_large(self, boundary: EngineBoundary):
        """Test oversized preimages map to their own code."""
        result = boundary.generate_proof(frame(b"\x00" * 201))

        assert result.code == BoundaryCode.INPUT_TOO_LARGE
        assert json.loads(result.payload)["code"] == "input_too_large"

    def test_not_ready(self, zk_config: Callable[..., ZKSettings]):
        """Test missing artifacts map to the not-ready code on every call."""
        boundary = EngineBoundary(ProofService(zk_config()))

        first = boundary.generate_proof(frame(b"hello"))
        second = boundary.generate_proof(frame(b"hello"))

        assert first.code == BoundaryCode.NOT_READY
        assert second.code == BoundaryCode.NOT_READY
        assert json.loads(second.payload)["code"] == "service_unavailable"

    @pytest.mark.parametrize("buffer", ["hello", 8, [1, 2, 3]], ids=["str", "int", "list"])
    def test_non_bytes_input(self, boundary: EngineBoundary, buffer: object):
        """Test non-bytes buffers are rejected instead of being coerced."""
        result = boundary.generate_proof(buffer)

        assert result.code == BoundaryCode.INVALID_ARGUMENT
        assert json.loads(result.payload)["code"] == "invalid_argument"

    def test_non_bytes_proof_buffer(self, boundary: EngineBoundary):
        """Test a non-bytes proof buffer yields a tagged error."""
        assert boundary.verify_proof(frame(b"hello"), "proof").code == BoundaryCode.INVALID_ARGUMENT
        assert boundary.verify_digest(64, frame(b"{}")).code == BoundaryCode.INVALID_ARGUMENT

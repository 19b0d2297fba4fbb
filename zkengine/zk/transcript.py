"""
Fiat-Shamir Transcript
======================

A SHA-256 sponge-like transcript with label- and length-tagged absorbs.

- append_message(label, data) / append_u64(label, value)
- challenge_bytes(label, n): squeezes n bytes in counter mode and binds
  them back into the transcript
- challenge_trits(label, n): n uniform values in {0, 1, 2} by rejection
  sampling 2-bit chunks

Version: 0.1.0
"""

import hashlib


class Transcript:
    """Non-interactive challenge derivation over SHA-256."""

    def __init__(self, protocol_label: str) -> None:
        self._state = hashlib.sha256()
        self._absorb(b"protocol", protocol_label.encode("utf-8"))

    def _absorb(self, label: bytes, data: bytes) -> None:
        self._state.update(len(label).to_bytes(4, "big") + label)
        self._state.update(len(data).to_bytes(8, "big") + data)

    def append_message(self, label: str, data: bytes) -> None:
        self._absorb(b"msg/" + label.encode("utf-8"), bytes(data))

    def append_u64(self, label: str, value: int) -> None:
        if not 0 <= value < 1 << 64:
            raise ValueError("u64 out of range")
        self._absorb(b"u64/" + label.encode("utf-8"), value.to_bytes(8, "big"))

    def challenge_bytes(self, label: str, n: int) -> bytes:
        self._absorb(b"challenge/" + label.encode("utf-8"), n.to_bytes(8, "big"))
        seed = self._state.copy().digest()

        out = bytearray()
        counter = 0
        while len(out) < n:
            out += hashlib.sha256(seed + counter.to_bytes(8, "big")).digest()
            counter += 1

        challenge = bytes(out[:n])
        self._absorb(b"squeezed", challenge)
        return challenge

    def challenge_trits(self, label: str, n: int) -> list[int]:
        trits: list[int] = []
        attempt = 0
        while len(trits) < n:
            for byte in self.challenge_bytes(f"{label}/{attempt}", n):
                for shift in (6, 4, 2, 0):
                    value = (byte >> shift) & 0b11
                    if value < 3:
                        trits.append(value)
            attempt += 1
        return trits[:n]

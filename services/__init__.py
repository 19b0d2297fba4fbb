"""
zkengine Services
=================

HTTP hosts for the zkengine proof engine.

Services:
- prover: SHA-256 preimage proof generation and verification
"""

__all__ = [
    "prover",
]

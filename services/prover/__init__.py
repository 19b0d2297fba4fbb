"""
Prover Service
==============

HTTP host for the SHA-256 preimage proof engine.

This service provides:
- Proof generation for base64-encoded preimages
- Verification against original data or a claimed digest
- Circuit metadata and prover status

Version: 0.1.0
"""

__version__ = "0.1.0"

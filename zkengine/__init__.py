"""
zkengine
========

SHA-256 preimage zero-knowledge proof engine.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - zk: Circuit, setup, prover, verifier and service adapter

Version: 0.1.0
"""

__version__ = "0.1.0"

from zkengine.config import settings
from zkengine.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]

"""
Shared Models
=============

Response models shared by the HTTP services.
"""

from zkengine.models.common import ErrorResponse, HealthResponse


__all__ = [
    "ErrorResponse",
    "HealthResponse",
]

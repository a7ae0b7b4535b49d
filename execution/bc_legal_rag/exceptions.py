"""
Error taxonomy for the BC legal retrieval core.

- DimensionMismatch: vector length disagrees with the index (caller bug)
- GatewayFailure: an embedding or fetch call failed upstream
- ConfigurationError: invalid parameters, fail fast
"""

from typing import Optional


class BCLegalRAGError(Exception):
    """Base class for all errors raised by the retrieval core."""


class DimensionMismatch(BCLegalRAGError):
    """Raised when a vector's length does not match the expected dimensionality."""

    def __init__(self, expected: int, actual: int, operation: str = "add"):
        super().__init__(
            f"Vector dimension mismatch on {operation}: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.operation = operation


class GatewayFailure(BCLegalRAGError):
    """Raised when an upstream embedding or document fetch call fails."""

    def __init__(self, message: str, service: str, target: Optional[str] = None):
        super().__init__(message)
        self.service = service
        self.target = target


class ConfigurationError(BCLegalRAGError):
    """Raised for invalid configuration such as chunk size <= overlap."""

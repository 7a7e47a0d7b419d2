"""
Error handling for qdata.

Every error raised by the data layer derives from QDataError and carries
an integer code. The concrete classes also derive from the matching
builtin exception so callers can catch them generically.
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# Error Codes
# =============================================================================

QDATA_OK = 0

# General errors (1-9)
QDATA_ERROR_UNKNOWN = 1
QDATA_ERROR_INTERNAL = 2

# Storage errors (10-19)
QDATA_ERROR_INVALID_BUFFER = 10
QDATA_ERROR_RELEASED_BUFFER = 11

# Type errors (20-29)
QDATA_ERROR_UNSUPPORTED_TYPE = 20

# Dispatch errors (30-39)
QDATA_ERROR_NO_DEFAULT = 30

# Conversion errors (40-49)
QDATA_ERROR_CONVERSION_INVARIANT = 40


_ERROR_MESSAGES = {
    QDATA_OK: "Success",
    QDATA_ERROR_UNKNOWN: "Unknown error",
    QDATA_ERROR_INTERNAL: "Internal error",
    QDATA_ERROR_INVALID_BUFFER: "Invalid buffer",
    QDATA_ERROR_RELEASED_BUFFER: "Buffer has been released",
    QDATA_ERROR_UNSUPPORTED_TYPE: "Unsupported data type",
    QDATA_ERROR_NO_DEFAULT: "No default implementation",
    QDATA_ERROR_CONVERSION_INVARIANT: "Conversion changed the shape",
}


# =============================================================================
# Exception Classes
# =============================================================================

class QDataError(Exception):
    """
    Base exception for all qdata errors.

    Attributes:
        code: Numeric error code (one of the QDATA_ERROR_* constants)
        message: Human readable message
    """

    code = QDATA_ERROR_UNKNOWN

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if code is not None:
            self.code = code
        if message is None:
            message = _ERROR_MESSAGES.get(self.code, f"Unknown error (code={self.code})")
        self.message = message
        super().__init__(message)

    @classmethod
    def from_code(cls, code: int, context: str = "") -> "QDataError":
        """Create exception from error code with optional context."""
        base_msg = _ERROR_MESSAGES.get(code, "Unknown error")
        msg = f"{context}: {base_msg}" if context else base_msg
        return cls(msg, code=code)


class InvalidBufferError(QDataError, ValueError):
    """Storage does not satisfy the layout declared for it."""

    code = QDATA_ERROR_INVALID_BUFFER


class UnsupportedTypeError(QDataError, TypeError):
    """Operand does not implement the mandatory data interface."""

    code = QDATA_ERROR_UNSUPPORTED_TYPE


class NoDefaultImplementationError(QDataError, NotImplementedError):
    """Operation has no reference implementation to fall back on."""

    code = QDATA_ERROR_NO_DEFAULT


class ConversionInvariantError(QDataError, RuntimeError):
    """A conversion produced a value whose shape differs from its input."""

    code = QDATA_ERROR_CONVERSION_INVARIANT


# =============================================================================
# Warnings
# =============================================================================

class DispatchEfficiencyWarning(UserWarning):
    """Emitted when an operation runs through the reference fallback path."""


__all__ = [
    "QDATA_OK",
    "QDATA_ERROR_UNKNOWN",
    "QDATA_ERROR_INTERNAL",
    "QDATA_ERROR_INVALID_BUFFER",
    "QDATA_ERROR_RELEASED_BUFFER",
    "QDATA_ERROR_UNSUPPORTED_TYPE",
    "QDATA_ERROR_NO_DEFAULT",
    "QDATA_ERROR_CONVERSION_INVARIANT",
    "QDataError",
    "InvalidBufferError",
    "UnsupportedTypeError",
    "NoDefaultImplementationError",
    "ConversionInvariantError",
    "DispatchEfficiencyWarning",
]

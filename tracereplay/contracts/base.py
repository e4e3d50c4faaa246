"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
Error states are enumerated data so they can be carried in results,
logged and asserted on in tests.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Error is a frozen dataclass; navigation results carry it as data
- Exceptions are reserved for programmer errors and run loading
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every recoverable condition of the replay engine is enumerated.
    """
    # Interpreter errors
    TARGET_NOT_FOUND = auto()
    UNKNOWN_OPERATION = auto()
    MALFORMED_STEP = auto()

    # Navigation errors
    STACK_EMPTY = auto()
    BOUNDARY_REACHED = auto()
    REENTRANT_CALL = auto()

    # Run loading errors
    RUN_NOT_FOUND = auto()
    MALFORMED_RUN = auto()

    # Session errors
    SESSION_NOT_FOUND = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        """Build an error stamped with the current UTC time."""
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple((key, str(value)) for key, value in context.items())
        )


# =============================================================================
# EXCEPTIONS (Programmer errors and loader failures only)
# =============================================================================

class ReplayError(Exception):
    """Base exception carrying an Error record."""

    def __init__(self, error: Error):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> ErrorCode:
        return self.error.code


class StackUsageError(ReplayError):
    """An inverse was pushed while no frame group was open."""


class RunNotFoundError(ReplayError):
    """Requested run file does not exist or has an invalid id."""


class RunFormatError(ReplayError):
    """Run file could not be decoded into metadata, graph and frames."""


class SessionNotFoundError(ReplayError):
    """Requested session slot is out of range or holds no session."""

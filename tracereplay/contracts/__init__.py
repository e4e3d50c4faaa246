"""
Contracts Module

Explicit types shared by every layer of the replay engine.
No layer may import implementation details from another layer
when a contract type exists for the exchange.

DESIGN PRINCIPLES:
==================
1. Graph items and log elements are immutable (frozen dataclasses)
2. Failures are explicit data (Error + ErrorCode), not silent fallbacks
3. Opcodes form a closed enum; unknown input maps to OpCode.UNKNOWN
"""

from .base import (
    ErrorCode,
    Error,
    ReplayError,
    StackUsageError,
    RunNotFoundError,
    RunFormatError,
    SessionNotFoundError,
)
from .graph import Node, Link, GraphSnapshot, scalar_value
from .log import OpCode, Step, Frame, Element, ANNOTATION_CODES

__all__ = [
    'ErrorCode',
    'Error',
    'ReplayError',
    'StackUsageError',
    'RunNotFoundError',
    'RunFormatError',
    'SessionNotFoundError',
    'Node',
    'Link',
    'GraphSnapshot',
    'scalar_value',
    'OpCode',
    'Step',
    'Frame',
    'Element',
    'ANNOTATION_CODES',
]

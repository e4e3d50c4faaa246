"""
Temporal Replay Layer
=====================

Bidirectional replay of recorded graph-mutation traces.

INVARIANTS:
- The trace log is immutable; replay only mutates the graph model
- Every forward step records its inverse at apply time
- Backward steps apply recorded inverses without recording new ones
- Replay is deterministic: same log + same navigation = same graph

Modules:
- trace_log: Frame/step parsing and position arithmetic
- interpreter: Opcode dispatch and inverse computation
- inverse_stack: Frame-partitioned undo storage
- cursor: Step/frame navigation state machine
- autoplay: Timed playback loop
"""

from .trace_log import TraceLog, Position, START, parse_element, parse_frame
from .interpreter import OperationInterpreter, StepOutcome
from .inverse_stack import InverseStack, InverseEntry
from .cursor import PlaybackCursor, NavigationResult
from .autoplay import AutoPlayer, Scheduler, AsyncioScheduler

__all__ = [
    'TraceLog',
    'Position',
    'START',
    'parse_element',
    'parse_frame',
    'OperationInterpreter',
    'StepOutcome',
    'InverseStack',
    'InverseEntry',
    'PlaybackCursor',
    'NavigationResult',
    'AutoPlayer',
    'Scheduler',
    'AsyncioScheduler',
]

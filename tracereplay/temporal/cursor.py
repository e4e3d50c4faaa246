"""
Playback Cursor
===============

Tracks the position reached in a static trace log and drives forward and
backward navigation at step or frame granularity.

POSITION SEMANTICS:
- (frame_index, step_index) is the most recently visited top-level element
- (-1, -1) is the position before the first frame
- has_frame() is False once no unvisited element remains (forward terminal)

INVARIANTS:
- step_count equals the number of entries on the inverse stack
- Elements that fail (deleting absent targets) are visited but not counted
  and record no inverse (drift-skip)
- The graph is passed in per call and never retained
- Calls do not nest: a navigation call issued while another one is
  running is rejected with REENTRANT_CALL
"""

from __future__ import annotations
import functools
import logging
from dataclasses import dataclass
from typing import Optional

from ..contracts.base import Error, ErrorCode
from ..graph.model import GraphModel
from .interpreter import OperationInterpreter
from .inverse_stack import InverseStack, InverseEntry
from .trace_log import TraceLog, Position, START

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationResult:
    """
    Outcome of one navigation call.

    success is False when nothing was applied or undone. at_boundary
    reports whether the cursor cannot move any further in the direction
    of the call.
    """
    success: bool
    applied: int
    step_count: int
    frame_index: int
    step_index: int
    at_boundary: bool = False
    error: Optional[Error] = None


def _exclusive(method):
    """Reject calls issued while another navigation call is in progress."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._busy:
            logger.warning("Ignoring reentrant call to %s", method.__name__)
            return self._result(
                False, 0,
                error=Error.create(
                    ErrorCode.REENTRANT_CALL,
                    f"{method.__name__} called while navigation was in progress"
                )
            )
        self._busy = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._busy = False
    return wrapper


class PlaybackCursor:
    """
    Forward/backward navigation over a TraceLog.

    Forward calls apply elements through the interpreter with inverse
    computation and push the inverses; backward calls pop inverses and
    apply them without computing further inverses.
    """

    def __init__(
        self,
        log: TraceLog,
        stack: Optional[InverseStack] = None,
        interpreter: Optional[OperationInterpreter] = None
    ):
        self._log = log
        self._stack = stack if stack is not None else InverseStack()
        self._interpreter = interpreter or OperationInterpreter()
        self._position: Position = START
        self._step_count = 0
        self._busy = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def log(self) -> TraceLog:
        return self._log

    @property
    def stack(self) -> InverseStack:
        return self._stack

    @property
    def position(self) -> Position:
        return self._position

    @property
    def frame_index(self) -> int:
        return self._position[0]

    @property
    def step_index(self) -> int:
        return self._position[1]

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def max_steps(self) -> int:
        return self._log.max_steps

    @property
    def is_busy(self) -> bool:
        return self._busy

    def has_frame(self) -> bool:
        """True while an unvisited element remains."""
        return self._log.next_position(self._position) is not None

    def has_previous(self) -> bool:
        """True while something can be undone."""
        return not self._stack.is_empty()

    def at_start(self) -> bool:
        return self._position == START

    def reset(self) -> None:
        """Return to the start; the inverse stack is cleared with the cursor."""
        self._position = START
        self._step_count = 0
        self._stack.reset()

    # =========================================================================
    # FORWARD
    # =========================================================================

    @_exclusive
    def do_step(self, graph: GraphModel) -> NavigationResult:
        """
        Apply the next element.

        A nested frame counts as a single step and records a single
        inverse entry. Failed elements are skipped until one succeeds.
        """
        position = self._log.next_position(self._position)
        while position is not None:
            outcome = self._interpreter.apply(graph, self._log.element(position), True)
            self._position = position
            if outcome.success:
                self._stack.open_frame(position[0])
                try:
                    self._stack.push_step(InverseEntry(position, outcome.inverse))
                finally:
                    self._stack.close_frame()
                self._step_count += 1
                return self._result(True, 1)
            logger.debug("Skipping element at %s: %s", position, outcome.error.message)
            position = self._log.next_position(position)
        return self._forward_terminal()

    @_exclusive
    def do_frame(self, graph: GraphModel) -> NavigationResult:
        """
        Apply the rest of the current frame, or the next frame if the
        current one is complete.

        A frame in which nothing succeeded is skipped and the next frame
        is played instead.
        """
        position = self._log.next_position(self._position)
        while position is not None:
            frame_index = position[0]
            applied = 0
            self._stack.open_frame(frame_index)
            try:
                while position is not None and position[0] == frame_index:
                    outcome = self._interpreter.apply(graph, self._log.element(position), True)
                    self._position = position
                    if outcome.success:
                        self._stack.push_step(InverseEntry(position, outcome.inverse))
                        applied += 1
                    position = self._log.next_position(position)
            finally:
                self._stack.close_frame()

            if applied:
                self._step_count += applied
                return self._result(True, applied)
            logger.debug("Frame %d had no effect, skipping", frame_index)
        return self._forward_terminal()

    # =========================================================================
    # BACKWARD
    # =========================================================================

    @_exclusive
    def prev_step(self, graph: GraphModel) -> NavigationResult:
        """Undo the most recent step."""
        entry = self._stack.pop_step()
        if entry is None:
            return self._backward_terminal()
        self._undo(graph, entry)
        self._step_count -= 1
        self._position = self._log.position_before(entry.position)
        return self._result(True, 1, forward=False)

    @_exclusive
    def prev_frame(self, graph: GraphModel) -> NavigationResult:
        """Undo everything recorded for the most recent frame."""
        entries = self._stack.pop_frame()
        if entries is None:
            return self._backward_terminal()
        for entry in entries:
            self._undo(graph, entry)
        self._step_count -= len(entries)
        frame_index = entries[-1].position[0]
        self._position = self._log.position_before((frame_index, 0))
        return self._result(True, len(entries), forward=False)

    # =========================================================================
    # REBUILD
    # =========================================================================

    @_exclusive
    def replay_to_position(self, graph: GraphModel) -> NavigationResult:
        """
        Re-apply every element up to the cursor onto a fresh graph.

        Used when the graph is rebuilt from its initial snapshot while the
        position is kept; counters and the inverse stack are untouched.
        """
        applied = 0
        for position in self._log.positions(self._position):
            if self._interpreter.apply(graph, self._log.element(position)).success:
                applied += 1
        return self._result(True, applied)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _undo(self, graph: GraphModel, entry: InverseEntry) -> None:
        if entry.inverse is None:
            return
        outcome = self._interpreter.apply(graph, entry.inverse)
        if not outcome.success:
            logger.warning(
                "Inverse for element at %s could not be applied: %s",
                entry.position, outcome.error.message
            )

    def _forward_terminal(self) -> NavigationResult:
        logger.debug("Forward terminal reached at %s", self._position)
        return self._result(
            False, 0,
            error=Error.create(ErrorCode.BOUNDARY_REACHED, "No unvisited element left")
        )

    def _backward_terminal(self) -> NavigationResult:
        self._position = START
        return self._result(
            False, 0,
            forward=False,
            error=Error.create(ErrorCode.STACK_EMPTY, "Nothing left to undo")
        )

    def _result(
        self,
        success: bool,
        applied: int,
        forward: bool = True,
        error: Optional[Error] = None
    ) -> NavigationResult:
        if error is not None and error.code is ErrorCode.REENTRANT_CALL:
            at_boundary = False
        elif forward:
            at_boundary = not self.has_frame()
        else:
            at_boundary = self._stack.is_empty()
        return NavigationResult(
            success=success,
            applied=applied,
            step_count=self._step_count,
            frame_index=self._position[0],
            step_index=self._position[1],
            at_boundary=at_boundary,
            error=error
        )

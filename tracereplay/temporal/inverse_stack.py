"""
Inverse Stack
=============

Frame-partitioned stack of inverse operations.

Forward navigation pushes one entry per successfully applied element into
the group of the log frame being played. Backward navigation pops single
entries (step granularity) or whole groups (frame granularity).

INVARIANTS:
- Each group belongs to exactly one log frame (tagged by frame index)
- The top group is the most recently touched, possibly partial, frame
- An empty group is never left on the stack
- Entries inside a group are stored oldest-first; pops hand them out
  most-recent-first, which is the order they must be applied to undo
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..contracts.base import Error, ErrorCode, StackUsageError
from ..contracts.log import Element
from .trace_log import Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InverseEntry:
    """
    Undo record for one forward element.

    inverse is None for elements that succeeded without changing the
    graph (annotations, setters on absent ids); undoing them is a no-op
    that still moves the cursor back by one step.
    """
    position: Position
    inverse: Optional[Element] = None


@dataclass
class _Group:
    frame_index: int
    entries: List[InverseEntry] = field(default_factory=list)


class InverseStack:
    """Stack of per-frame inverse groups."""

    def __init__(self):
        self._stack: List[_Group] = []
        self._open = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def frame_count(self) -> int:
        return len(self._stack)

    @property
    def steps_in_top_frame(self) -> int:
        return len(self._stack[-1].entries) if self._stack else 0

    @property
    def total_steps(self) -> int:
        return sum(len(group.entries) for group in self._stack)

    @property
    def top_frame_index(self) -> Optional[int]:
        return self._stack[-1].frame_index if self._stack else None

    @property
    def is_open(self) -> bool:
        return self._open

    def is_empty(self) -> bool:
        return not self._stack

    def reset(self) -> None:
        self._stack = []
        self._open = False

    # =========================================================================
    # FORWARD (PUSH)
    # =========================================================================

    def open_frame(self, frame_index: int) -> None:
        """
        Open the group for `frame_index`.

        Reopens the top group when it already belongs to that frame, so a
        frame played step by step accumulates into a single group.
        """
        if not self._stack or self._stack[-1].frame_index != frame_index:
            self._stack.append(_Group(frame_index=frame_index))
        self._open = True

    def push_step(self, entry: InverseEntry) -> None:
        if not self._open:
            raise StackUsageError(Error.create(
                ErrorCode.STACK_EMPTY,
                "push_step called without an open frame group",
                position=entry.position
            ))
        self._stack[-1].entries.append(entry)

    def close_frame(self) -> None:
        """Close the top group, dropping it if nothing was recorded."""
        if self._stack and not self._stack[-1].entries:
            self._stack.pop()
        self._open = False

    # =========================================================================
    # BACKWARD (POP)
    # =========================================================================

    def pop_step(self) -> Optional[InverseEntry]:
        """Pop the most recent entry; pops its group too once emptied."""
        if not self._stack:
            logger.info("pop_step on empty inverse stack")
            return None
        group = self._stack[-1]
        entry = group.entries.pop()
        if not group.entries:
            self._stack.pop()
        return entry

    def pop_frame(self) -> Optional[Tuple[InverseEntry, ...]]:
        """Pop the top group, entries in undo order (most recent first)."""
        if not self._stack:
            logger.info("pop_frame on empty inverse stack")
            return None
        group = self._stack.pop()
        return tuple(reversed(group.entries))

"""
Trace Log
=========

Immutable sequence of recorded frames, parsed from the run file format.

WIRE FORMAT:
- A frame is an array of elements
- An element whose first item is a string is a step: [op, [params...]]
- An element whose first item is an array is a nested frame

INVARIANTS:
- The log is never mutated by replay
- Malformed elements are reported and kept as UNKNOWN steps,
  so a bad log degrades to "nothing happens" instead of aborting
- Positions are (frame_index, step_index) over top-level elements;
  (-1, -1) is the position before the first frame
"""

from __future__ import annotations
import logging
from typing import Any, Iterator, Optional, Sequence, Tuple

from ..contracts.log import OpCode, Step, Frame, Element

logger = logging.getLogger(__name__)

Position = Tuple[int, int]

START: Position = (-1, -1)


def parse_element(raw: Any) -> Element:
    """Parse one wire element into a Step or a nested Frame."""
    if isinstance(raw, (Step, Frame)):
        return raw
    if isinstance(raw, (list, tuple)) and raw:
        head = raw[0]
        if isinstance(head, str):
            params = raw[1] if len(raw) > 1 else ()
            if not isinstance(params, (list, tuple)):
                params = (params,)
            return Step(op=head, params=tuple(params))
        if isinstance(head, (list, tuple, Step, Frame)):
            return Frame(tuple(parse_element(item) for item in raw))
    logger.warning("Malformed trace element %r kept as unknown step", raw)
    return Step(op=OpCode.UNKNOWN.value, params=(raw,))


def parse_frame(raw: Any) -> Frame:
    """Parse one top-level wire frame."""
    if isinstance(raw, Frame):
        return raw
    if not isinstance(raw, (list, tuple)):
        logger.warning("Malformed trace frame %r kept as unknown step", raw)
        return Frame((Step(op=OpCode.UNKNOWN.value, params=(raw,)),))
    return Frame(tuple(parse_element(item) for item in raw))


class TraceLog:
    """
    Static log of frames for one session.

    Navigation helpers work on top-level positions only; a nested
    frame occupies a single position.
    """

    def __init__(self, frames: Sequence[Frame] = ()):
        self._frames: Tuple[Frame, ...] = tuple(frames)
        self._max_steps = sum(len(frame) for frame in self._frames)

    @staticmethod
    def parse(raw_frames: Optional[Sequence[Any]]) -> TraceLog:
        return TraceLog(tuple(parse_frame(raw) for raw in (raw_frames or ())))

    @property
    def frames(self) -> Tuple[Frame, ...]:
        return self._frames

    @property
    def max_steps(self) -> int:
        """Number of top-level elements across all frames."""
        return self._max_steps

    @property
    def is_empty(self) -> bool:
        return self._max_steps == 0

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]

    def element(self, position: Position) -> Element:
        frame_index, step_index = position
        return self._frames[frame_index][step_index]

    def next_position(self, position: Position) -> Optional[Position]:
        """Position of the element after `position`, None when exhausted."""
        frame_index, step_index = position
        if frame_index >= 0 and step_index + 1 < len(self._frames[frame_index]):
            return frame_index, step_index + 1
        frame_index += 1
        while frame_index < len(self._frames) and self._frames[frame_index].is_empty:
            frame_index += 1
        if frame_index >= len(self._frames):
            return None
        return frame_index, 0

    def position_before(self, position: Position) -> Position:
        """Position of the element preceding `position` (START at the front)."""
        frame_index, step_index = position
        if step_index > 0:
            return frame_index, step_index - 1
        frame_index -= 1
        while frame_index >= 0 and self._frames[frame_index].is_empty:
            frame_index -= 1
        if frame_index < 0:
            return START
        return frame_index, len(self._frames[frame_index]) - 1

    def frame_end(self, frame_index: int) -> Position:
        """Position of the last element of a frame."""
        return frame_index, len(self._frames[frame_index]) - 1

    def positions(self, until: Position) -> Iterator[Position]:
        """All positions from the first element up to and including `until`."""
        position = self.next_position(START)
        while position is not None and position <= until:
            yield position
            position = self.next_position(position)

    def to_wire(self) -> list:
        return [frame.to_wire() for frame in self._frames]

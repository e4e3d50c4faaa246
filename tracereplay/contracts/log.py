"""
Trace Log Contracts

A trace is an ordered sequence of frames. A frame is an ordered sequence
of elements, each either a Step (opcode + parameters) or a nested Frame.

WHY A TAGGED VARIANT:
The wire format distinguishes steps from nested frames by the type of
the first item of an array. That inspection happens exactly once, at
parse time; everything downstream dispatches on Step vs Frame.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterator, List, Tuple, Union


class OpCode(Enum):
    """Closed set of recorded graph operations."""
    # Style classes
    NODE_CLASS = "nc"
    LINK_CLASS = "ec"

    # Values
    NODE_VALUE = "nw"
    LINK_VALUE = "ew"

    # Add / remove items
    ADD_NODE = "n"
    ADD_LINK = "e"
    DELETE_NODE = "N"
    DELETE_LINK = "E"

    # Whole graph
    CLEAR = "R"
    LOAD = "G"

    # Labels
    NODE_LABEL = "nl"
    LINK_LABEL = "el"

    # Link direction
    LINK_DIRECTION = "ed"
    TOGGLE_DIRECTION = "et"

    # Comments
    COMMENT = "c"
    COMMENT_SET = "cs"
    COMMENT_HIGHLIGHT = "ch"

    # Solution markers
    SOLUTION = "s"
    SOLUTION_FINAL = "S"

    # Node information
    NODE_ANNOTATION = "na"
    NODE_ANNOTATION_EXTEND = "nae"
    NODE_ANNOTATION_NUMBER = "nan"
    NODE_ANNOTATION_STRING = "nas"
    NODE_ANNOTATION_ALL = "nA"

    # Link information
    LINK_ANNOTATION = "ea"
    LINK_ANNOTATION_EXTEND = "eae"
    LINK_ANNOTATION_NUMBER = "ean"
    LINK_ANNOTATION_STRING = "eas"
    LINK_ANNOTATION_ALL = "eA"

    # Anything not listed above
    UNKNOWN = "?"

    @staticmethod
    def parse(op: Any) -> OpCode:
        """Map a raw opcode to its variant; unrecognized input is UNKNOWN."""
        if op == OpCode.UNKNOWN.value:
            return OpCode.UNKNOWN
        try:
            return OpCode(op)
        except ValueError:
            return OpCode.UNKNOWN


# Recognized operations that never mutate the graph.
ANNOTATION_CODES: FrozenSet[OpCode] = frozenset({
    OpCode.COMMENT, OpCode.COMMENT_SET, OpCode.COMMENT_HIGHLIGHT,
    OpCode.SOLUTION, OpCode.SOLUTION_FINAL,
    OpCode.NODE_ANNOTATION, OpCode.NODE_ANNOTATION_EXTEND,
    OpCode.NODE_ANNOTATION_NUMBER, OpCode.NODE_ANNOTATION_STRING,
    OpCode.NODE_ANNOTATION_ALL,
    OpCode.LINK_ANNOTATION, OpCode.LINK_ANNOTATION_EXTEND,
    OpCode.LINK_ANNOTATION_NUMBER, OpCode.LINK_ANNOTATION_STRING,
    OpCode.LINK_ANNOTATION_ALL,
})


@dataclass(frozen=True)
class Step:
    """One atomic recorded mutation."""
    op: str
    params: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.params, tuple):
            object.__setattr__(self, 'params', tuple(self.params))

    @property
    def code(self) -> OpCode:
        return OpCode.parse(self.op)

    @staticmethod
    def of(code: OpCode, *params: Any) -> Step:
        return Step(op=code.value, params=params)

    def to_wire(self) -> List[Any]:
        return [self.op, list(self.params)]


@dataclass(frozen=True)
class Frame:
    """Ordered group of steps and nested frames, navigated as one unit."""
    elements: Tuple[Element, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.elements, tuple):
            object.__setattr__(self, 'elements', tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Element]:
        return iter(self.elements)

    def __getitem__(self, index: int) -> Element:
        return self.elements[index]

    @property
    def is_empty(self) -> bool:
        return not self.elements

    def to_wire(self) -> List[Any]:
        return [element.to_wire() for element in self.elements]


Element = Union[Step, Frame]

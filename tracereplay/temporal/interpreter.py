"""
Operation Interpreter
=====================

Applies one trace element to a graph and, on request, returns the element
that exactly undoes it. The inverse is computed from the graph state at
apply time; it is never pre-recorded in the log.

CONTRACT:
    apply(graph, element, compute_inverse) -> StepOutcome(success, inverse)

FAILURE SEMANTICS:
- Only deleting an absent node (N) or link (E) fails; a nested frame fails
  when none of its children succeeded
- Setters on absent ids are no-ops that succeed without an inverse
- Annotation opcodes succeed without mutation and without an inverse
- Unknown or malformed steps are logged and succeed as no-ops so that
  replay never stalls

The interpreter holds no graph reference between calls.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..contracts.base import Error, ErrorCode
from ..contracts.graph import Node, Link, DEFAULT_LABEL
from ..contracts.log import OpCode, Step, Frame, Element, ANNOTATION_CODES
from ..graph.model import GraphModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    """Result of applying one element."""
    success: bool
    inverse: Optional[Element] = None
    error: Optional[Error] = None

    @staticmethod
    def applied(inverse: Optional[Element] = None) -> StepOutcome:
        return StepOutcome(success=True, inverse=inverse)

    @staticmethod
    def failed(error: Error) -> StepOutcome:
        return StepOutcome(success=False, error=error)


class MalformedStep(Exception):
    """Raised by handlers when a step lacks required parameters."""


Handler = Callable[[GraphModel, Tuple[Any, ...], bool], StepOutcome]


def _require(params: Tuple[Any, ...], count: int, op: OpCode) -> None:
    if len(params) < count:
        raise MalformedStep(
            f"'{op.value}' expects at least {count} parameter(s), got {len(params)}"
        )


def _param(params: Tuple[Any, ...], index: int, default: Any) -> Any:
    if index < len(params) and params[index] is not None:
        return params[index]
    return default


def node_step(node: Node) -> Step:
    """Step that recreates `node` exactly."""
    return Step.of(OpCode.ADD_NODE, node.id, node.value, node.label, node.style_class)


def link_step(link: Link) -> Step:
    """Step that recreates `link` exactly."""
    return Step.of(
        OpCode.ADD_LINK, link.id, link.source, link.target,
        link.value, link.direction, link.label, link.style_class
    )


class OperationInterpreter:
    """
    Dispatch table from OpCode to one handler per variant.

    Handlers mutate the graph and build the inverse only when asked;
    the forward effect is identical either way.
    """

    def __init__(self):
        self._handlers: Dict[OpCode, Handler] = {
            OpCode.NODE_CLASS: self._node_class,
            OpCode.LINK_CLASS: self._link_class,
            OpCode.NODE_VALUE: self._node_value,
            OpCode.LINK_VALUE: self._link_value,
            OpCode.ADD_NODE: self._add_node,
            OpCode.ADD_LINK: self._add_link,
            OpCode.DELETE_NODE: self._delete_node,
            OpCode.DELETE_LINK: self._delete_link,
            OpCode.CLEAR: self._clear,
            OpCode.LOAD: self._load,
            OpCode.NODE_LABEL: self._node_label,
            OpCode.LINK_LABEL: self._link_label,
            OpCode.LINK_DIRECTION: self._link_direction,
            OpCode.TOGGLE_DIRECTION: self._toggle_direction,
        }
        for code in ANNOTATION_CODES:
            self._handlers[code] = self._annotation

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def apply(
        self,
        graph: GraphModel,
        element: Element,
        compute_inverse: bool = False
    ) -> StepOutcome:
        """Apply a step or a nested frame."""
        if isinstance(element, Frame):
            return self.apply_frame(graph, element, compute_inverse)
        return self.apply_step(graph, element, compute_inverse)

    def apply_step(
        self,
        graph: GraphModel,
        step: Step,
        compute_inverse: bool = False
    ) -> StepOutcome:
        code = step.code
        if code is OpCode.UNKNOWN:
            logger.warning("Unknown operation %r ignored", step.op)
            return StepOutcome.applied()
        handler = self._handlers[code]
        try:
            return handler(graph, step.params, compute_inverse)
        except (MalformedStep, KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed step %r: %s", step.to_wire(), exc)
            return StepOutcome(
                success=True,
                error=Error.create(ErrorCode.MALFORMED_STEP, str(exc), op=step.op)
            )

    def apply_frame(
        self,
        graph: GraphModel,
        frame: Frame,
        compute_inverse: bool = False
    ) -> StepOutcome:
        """
        Apply every child in order.

        Succeeds if any child succeeded. The inverse is a frame of the
        children's inverses in reverse order, i.e. in undo order.
        """
        success = False
        inverses: List[Element] = []
        for element in frame:
            outcome = self.apply(graph, element, compute_inverse)
            if not outcome.success:
                continue
            success = True
            if outcome.inverse is not None:
                inverses.append(outcome.inverse)

        if not success:
            return StepOutcome.failed(Error.create(
                ErrorCode.TARGET_NOT_FOUND,
                "No element of nested frame could be applied",
                size=len(frame)
            ))
        if compute_inverse and inverses:
            return StepOutcome.applied(Frame(tuple(reversed(inverses))))
        return StepOutcome.applied()

    # =========================================================================
    # STYLE CLASSES
    # =========================================================================

    def _node_class(self, graph, params, compute_inverse):
        _require(params, 1, OpCode.NODE_CLASS)
        node_id = params[0]
        node = graph.node(node_id)
        if node is None:
            return StepOutcome.applied()
        graph.set_node_class(node_id, _param(params, 1, ""))
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.NODE_CLASS, node_id, node.style_class))
        return StepOutcome.applied()

    def _link_class(self, graph, params, compute_inverse):
        _require(params, 1, OpCode.LINK_CLASS)
        link_id = params[0]
        link = graph.link(link_id)
        if link is None:
            return StepOutcome.applied()
        graph.set_link_class(link_id, _param(params, 1, ""))
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.LINK_CLASS, link_id, link.style_class))
        return StepOutcome.applied()

    # =========================================================================
    # VALUES AND LABELS
    # =========================================================================

    def _node_value(self, graph, params, compute_inverse):
        _require(params, 2, OpCode.NODE_VALUE)
        node = graph.node(params[0])
        if node is None:
            return StepOutcome.applied()
        graph.set_node_value(node.id, params[1])
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.NODE_VALUE, node.id, node.value))
        return StepOutcome.applied()

    def _link_value(self, graph, params, compute_inverse):
        _require(params, 2, OpCode.LINK_VALUE)
        link = graph.link(params[0])
        if link is None:
            return StepOutcome.applied()
        graph.set_link_value(link.id, params[1])
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.LINK_VALUE, link.id, link.value))
        return StepOutcome.applied()

    def _node_label(self, graph, params, compute_inverse):
        _require(params, 2, OpCode.NODE_LABEL)
        node = graph.node(params[0])
        if node is None:
            return StepOutcome.applied()
        graph.set_node_label(node.id, params[1])
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.NODE_LABEL, node.id, node.label))
        return StepOutcome.applied()

    def _link_label(self, graph, params, compute_inverse):
        _require(params, 2, OpCode.LINK_LABEL)
        link = graph.link(params[0])
        if link is None:
            return StepOutcome.applied()
        graph.set_link_label(link.id, params[1])
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.LINK_LABEL, link.id, link.label))
        return StepOutcome.applied()

    # =========================================================================
    # ADD / DELETE
    # =========================================================================

    def _add_node(self, graph, params, compute_inverse):
        _require(params, 1, OpCode.ADD_NODE)
        node = Node(
            id=params[0],
            value=_param(params, 1, 1),
            label=_param(params, 2, DEFAULT_LABEL),
            style_class=_param(params, 3, "")
        )
        replaced = graph.add_node(node)
        if not compute_inverse:
            return StepOutcome.applied()
        if replaced is not None:
            return StepOutcome.applied(node_step(replaced))
        return StepOutcome.applied(Step.of(OpCode.DELETE_NODE, node.id))

    def _add_link(self, graph, params, compute_inverse):
        _require(params, 3, OpCode.ADD_LINK)
        link = Link(
            id=params[0],
            source=params[1],
            target=params[2],
            value=_param(params, 3, 1),
            direction=_param(params, 4, 0),
            label=_param(params, 5, DEFAULT_LABEL),
            style_class=_param(params, 6, "")
        )
        replaced = graph.add_link(link)
        if not compute_inverse:
            return StepOutcome.applied()
        if replaced is not None:
            return StepOutcome.applied(link_step(replaced))
        return StepOutcome.applied(Step.of(OpCode.DELETE_LINK, link.id))

    def _delete_node(self, graph, params, compute_inverse):
        _require(params, 1, OpCode.DELETE_NODE)
        removed = graph.remove_node(params[0])
        if removed is None:
            return StepOutcome.failed(Error.create(
                ErrorCode.TARGET_NOT_FOUND, "Node to delete does not exist", node_id=params[0]
            ))
        if not compute_inverse:
            return StepOutcome.applied()
        node, links = removed
        # Node first, then its incident links, so the links find their endpoints.
        group = (node_step(node),) + tuple(link_step(link) for link in links)
        return StepOutcome.applied(Frame(group))

    def _delete_link(self, graph, params, compute_inverse):
        _require(params, 1, OpCode.DELETE_LINK)
        link = graph.remove_link(params[0])
        if link is None:
            return StepOutcome.failed(Error.create(
                ErrorCode.TARGET_NOT_FOUND, "Link to delete does not exist", link_id=params[0]
            ))
        if compute_inverse:
            return StepOutcome.applied(link_step(link))
        return StepOutcome.applied()

    # =========================================================================
    # WHOLE GRAPH
    # =========================================================================

    def _clear(self, graph, params, compute_inverse):
        before = graph.snapshot()
        graph.clear()
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.LOAD, before.nodes, before.links))
        return StepOutcome.applied()

    def _load(self, graph, params, compute_inverse):
        before = graph.snapshot()
        graph.bulk_replace(_param(params, 0, ()), _param(params, 1, ()))
        if not compute_inverse:
            return StepOutcome.applied()
        if before.is_empty:
            return StepOutcome.applied(Step.of(OpCode.CLEAR))
        return StepOutcome.applied(Step.of(OpCode.LOAD, before.nodes, before.links))

    # =========================================================================
    # LINK DIRECTION
    # =========================================================================

    def _link_direction(self, graph, params, compute_inverse):
        _require(params, 2, OpCode.LINK_DIRECTION)
        link = graph.link(params[0])
        if link is None:
            return StepOutcome.applied()
        graph.set_link_direction(link.id, params[1])
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.LINK_DIRECTION, link.id, link.direction))
        return StepOutcome.applied()

    def _toggle_direction(self, graph, params, compute_inverse):
        _require(params, 1, OpCode.TOGGLE_DIRECTION)
        link = graph.link(params[0])
        if link is None:
            return StepOutcome.applied()
        graph.set_link_direction(link.id, 1 - link.direction)
        if compute_inverse:
            return StepOutcome.applied(Step.of(OpCode.LINK_DIRECTION, link.id, link.direction))
        return StepOutcome.applied()

    # =========================================================================
    # NO-OPS
    # =========================================================================

    def _annotation(self, graph, params, compute_inverse):
        logger.debug("Annotation operation with params %r", params)
        return StepOutcome.applied()

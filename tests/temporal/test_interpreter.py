"""
Operation Interpreter Tests
===========================

Tests for forward effects and computed inverses of every operation.

INVARIANTS TESTED:
1. Applying an element and then its inverse restores the prior state
2. Only deleting an absent target fails
3. Unknown and malformed steps never stall replay
"""

import pytest

from tracereplay.contracts.base import ErrorCode
from tracereplay.contracts.graph import Link, Node
from tracereplay.contracts.log import Frame, OpCode, Step
from tracereplay.graph.model import GraphModel
from tracereplay.temporal.interpreter import OperationInterpreter
from tracereplay.temporal.trace_log import parse_element

from tests.fixtures import triangle_graph


@pytest.fixture
def interpreter():
    return OperationInterpreter()


def assert_inverse_restores(interpreter, graph, raw):
    """Apply raw element with inverse, undo it, compare with the start."""
    before = graph.snapshot().canonical()
    outcome = interpreter.apply(graph, parse_element(raw), compute_inverse=True)
    assert outcome.success
    if outcome.inverse is not None:
        assert interpreter.apply(graph, outcome.inverse).success
    assert graph.snapshot().canonical() == before
    return outcome


# =============================================================================
# ADD / DELETE
# =============================================================================

class TestAddDelete:

    def test_add_node(self, interpreter):
        graph = GraphModel()
        outcome = interpreter.apply(graph, Step("n", (1, 3, "one", "start")), True)

        assert graph.node(1) == Node(1, value=3, label="one", style_class="start")
        assert outcome.inverse == Step.of(OpCode.DELETE_NODE, 1)

    def test_add_node_defaults(self, interpreter):
        graph = GraphModel()
        interpreter.apply(graph, Step("n", (1,)))
        assert graph.node(1) == Node(1)

    def test_add_existing_node_inverse_restores_previous(self, interpreter):
        graph = triangle_graph()
        outcome = assert_inverse_restores(interpreter, graph, ["n", [2, 9, "new"]])
        assert outcome.inverse.code is OpCode.ADD_NODE
        assert graph.node(2).label == "b"

    def test_add_link(self, interpreter):
        graph = triangle_graph()
        outcome = interpreter.apply(graph, Step("e", (20, 1, 3, 2, 1, "x", "hot")), True)

        assert graph.link(20) == Link(20, 1, 3, value=2, direction=1, label="x", style_class="hot")
        assert outcome.inverse == Step.of(OpCode.DELETE_LINK, 20)

    def test_add_existing_link_round_trip(self, interpreter):
        assert_inverse_restores(interpreter, triangle_graph(), ["e", [10, 2, 1, 5]])

    def test_delete_node_removes_incident_links(self, interpreter):
        graph = triangle_graph()
        outcome = interpreter.apply(graph, Step("N", (1,)), True)

        assert graph.node(1) is None
        assert [l.id for l in graph.links] == [11]
        assert isinstance(outcome.inverse, Frame)
        assert outcome.inverse[0].code is OpCode.ADD_NODE

    def test_delete_node_round_trip(self, interpreter):
        assert_inverse_restores(interpreter, triangle_graph(), ["N", [2]])

    def test_delete_link_round_trip(self, interpreter):
        assert_inverse_restores(interpreter, triangle_graph(), ["E", [11]])

    def test_delete_absent_targets_fail(self, interpreter):
        graph = triangle_graph()
        for raw in (["N", [99]], ["E", [99]]):
            outcome = interpreter.apply(graph, parse_element(raw), True)
            assert not outcome.success
            assert outcome.inverse is None
            assert outcome.error.code is ErrorCode.TARGET_NOT_FOUND


# =============================================================================
# WHOLE GRAPH
# =============================================================================

class TestWholeGraph:

    def test_clear_inverse_loads_prior_graph(self, interpreter):
        graph = triangle_graph()
        outcome = assert_inverse_restores(interpreter, graph, ["R"])
        assert outcome.inverse.code is OpCode.LOAD

    def test_load_on_empty_graph_inverts_to_clear(self, interpreter):
        graph = GraphModel()
        outcome = interpreter.apply(
            graph,
            parse_element(["G", [[{"id": 1}, {"id": 2}], [{"id": 5, "source": 1, "target": 2}]]]),
            True
        )
        assert graph.node_count == 2
        assert graph.link(5).target == 2
        assert outcome.inverse == Step.of(OpCode.CLEAR)

    def test_load_on_populated_graph_round_trip(self, interpreter):
        outcome = assert_inverse_restores(
            interpreter, triangle_graph(), ["G", [[{"id": 8}], []]]
        )
        assert outcome.inverse.code is OpCode.LOAD

    def test_load_with_incomplete_link_changes_nothing(self, interpreter):
        graph = triangle_graph()
        before = graph.snapshot()
        outcome = interpreter.apply(
            graph, parse_element(["G", [[{"id": 5}], [{"id": 9}]]]), True
        )

        assert outcome.success
        assert outcome.error.code is ErrorCode.MALFORMED_STEP
        assert outcome.inverse is None
        assert graph.snapshot() == before
        assert graph.node(2).label == "b"

    def test_load_with_repeated_id_round_trip(self, interpreter):
        graph = triangle_graph()
        assert_inverse_restores(
            interpreter, graph, ["G", [[{"id": 1}, {"id": 1, "label": "z"}], []]]
        )


# =============================================================================
# SETTERS
# =============================================================================

class TestSetters:

    @pytest.mark.parametrize("raw", [
        ["nc", [1, "hot"]],
        ["ec", [10, "cold"]],
        ["nw", [1, 7]],
        ["ew", [10, [1, 2]]],
        ["nl", [2, "renamed"]],
        ["el", [11, "renamed"]],
        ["ed", [12, 1]],
        ["et", [12]],
    ])
    def test_setter_round_trip(self, interpreter, raw):
        assert_inverse_restores(interpreter, triangle_graph(), raw)

    def test_class_without_value_clears_class(self, interpreter):
        graph = triangle_graph()
        interpreter.apply(graph, Step("nc", (1, "hot")))
        interpreter.apply(graph, Step("nc", (1,)))
        assert graph.node(1).style_class == ""

    def test_toggle_direction_twice(self, interpreter):
        graph = triangle_graph()
        first = interpreter.apply(graph, Step("et", (10,)), True)
        assert graph.link(10).direction == 1
        second = interpreter.apply(graph, Step("et", (10,)), True)
        assert graph.link(10).direction == 0

        assert first.inverse == Step.of(OpCode.LINK_DIRECTION, 10, 0)
        assert second.inverse == Step.of(OpCode.LINK_DIRECTION, 10, 1)

    def test_setters_on_absent_ids_succeed_without_inverse(self, interpreter):
        graph = triangle_graph()
        before = graph.snapshot()
        for raw in (["nc", [99, "x"]], ["nw", [99, 2]], ["el", [99, "x"]], ["et", [99]]):
            outcome = interpreter.apply(graph, parse_element(raw), True)
            assert outcome.success
            assert outcome.inverse is None
        assert graph.snapshot() == before


# =============================================================================
# NO-OPS
# =============================================================================

class TestNoOps:

    @pytest.mark.parametrize("raw", [
        ["c", ["a comment"]],
        ["s", []],
        ["nan", [1, "weight", 3]],
        ["eA", [10, {"k": "v"}]],
    ])
    def test_annotations_do_not_mutate(self, interpreter, raw):
        graph = triangle_graph()
        before = graph.snapshot()
        outcome = interpreter.apply(graph, parse_element(raw), True)

        assert outcome.success
        assert outcome.inverse is None
        assert graph.snapshot() == before

    def test_unknown_operation_is_ignored(self, interpreter):
        graph = triangle_graph()
        outcome = interpreter.apply(graph, Step("zz", (1,)), True)
        assert outcome.success
        assert outcome.inverse is None

    def test_malformed_step_is_reported_but_succeeds(self, interpreter):
        graph = triangle_graph()
        before = graph.snapshot()
        outcome = interpreter.apply(graph, Step("nw", (1,)), True)

        assert outcome.success
        assert outcome.error.code is ErrorCode.MALFORMED_STEP
        assert graph.snapshot() == before


# =============================================================================
# NESTED FRAMES
# =============================================================================

class TestNestedFrames:

    def test_nested_frame_round_trip(self, interpreter):
        raw = [["n", [4]], ["e", [13, 4, 1]], ["nw", [4, 6]], ["N", [2]]]
        assert_inverse_restores(interpreter, triangle_graph(), raw)

    def test_nested_inverse_is_in_undo_order(self, interpreter):
        graph = GraphModel()
        outcome = interpreter.apply(graph, parse_element([["n", [1]], ["n", [2]]]), True)
        assert outcome.inverse == Frame((
            Step.of(OpCode.DELETE_NODE, 2),
            Step.of(OpCode.DELETE_NODE, 1),
        ))

    def test_nested_frame_succeeds_if_any_child_succeeds(self, interpreter):
        graph = triangle_graph()
        outcome = interpreter.apply(graph, parse_element([["N", [99]], ["N", [1]]]), True)
        assert outcome.success
        assert graph.node(1) is None

    def test_nested_frame_fails_when_all_children_fail(self, interpreter):
        graph = triangle_graph()
        outcome = interpreter.apply(graph, parse_element([["N", [98]], ["E", [99]]]), True)
        assert not outcome.success
        assert outcome.error.code is ErrorCode.TARGET_NOT_FOUND

    def test_no_inverse_without_request(self, interpreter):
        graph = GraphModel()
        outcome = interpreter.apply(graph, parse_element([["n", [1]], ["n", [2]]]))
        assert outcome.success
        assert outcome.inverse is None
        assert graph.node_count == 2

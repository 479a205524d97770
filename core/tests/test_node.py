"""
Tests for the node model: NodeResponse invariants and the three node types.
"""

import dataclasses

import pytest

from sequencer.errors import InvalidDecisionError, InvalidGraphError
from sequencer.graph.node import (
    DecisionNode,
    InputNode,
    InputRequest,
    NodeContext,
    NodeResponse,
    NodeStatus,
    SimpleNode,
)
from sequencer.graph.strategy import DecisionStrategy, FixedIndexStrategy


def ctx_for(node_id: str, **kwargs) -> NodeContext:
    return NodeContext(sequence_id="seq-test", node_id=node_id, **kwargs)


# ---------------------------------------------------------------------------
# NodeResponse
# ---------------------------------------------------------------------------


class TestNodeResponse:
    def test_complete_has_no_successor(self):
        response = NodeResponse.complete({"k": 1})
        assert response.status == NodeStatus.COMPLETE
        assert response.payload == {"k": 1}
        assert response.chosen_successor is None

    def test_status_must_be_node_status(self):
        with pytest.raises(TypeError):
            NodeResponse(status="complete")
        with pytest.raises(TypeError):
            NodeResponse(status=None)

    def test_decision_requires_chosen_successor(self):
        with pytest.raises(ValueError):
            NodeResponse(NodeStatus.DECISION_REQUIRED)

    def test_only_decisions_carry_a_successor(self):
        target = SimpleNode("target")
        with pytest.raises(ValueError):
            NodeResponse(NodeStatus.COMPLETE, chosen_successor=target)
        with pytest.raises(ValueError):
            NodeResponse(NodeStatus.INPUT_REQUIRED, chosen_successor=target)

    def test_decision_constructor(self):
        target = SimpleNode("target")
        response = NodeResponse.decision(target)
        assert response.status == NodeStatus.DECISION_REQUIRED
        assert response.chosen_successor is target

    def test_decision_must_name_a_node(self):
        with pytest.raises(TypeError, match="must be a Node"):
            NodeResponse.decision("target")

    def test_is_immutable(self):
        response = NodeResponse.input_required("why")
        with pytest.raises(dataclasses.FrozenInstanceError):
            response.status = NodeStatus.COMPLETE


# ---------------------------------------------------------------------------
# SimpleNode
# ---------------------------------------------------------------------------


class TestSimpleNode:
    def test_execute_always_completes(self):
        node = SimpleNode("a")
        response = node.execute(ctx_for("a"))
        assert response.status == NodeStatus.COMPLETE
        assert response.payload is None

    def test_action_result_becomes_payload(self):
        node = SimpleNode("a", action=lambda ctx: f"ran {ctx.node_id}")
        assert node.execute(ctx_for("a")).payload == "ran a"

    def test_successor_and_terminal(self):
        end = SimpleNode("end")
        start = SimpleNode("start", end)
        assert start.successor() is end
        assert start.successor_ids() == ["end"]
        assert not start.is_terminal
        assert end.successor() is None
        assert end.successor_ids() == []
        assert end.is_terminal

    def test_action_errors_propagate(self):
        def explode(ctx):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            SimpleNode("a", action=explode).execute(ctx_for("a"))

    @pytest.mark.parametrize("bad_id", ["", None, 42])
    def test_id_must_be_non_empty_string(self, bad_id):
        with pytest.raises(InvalidGraphError):
            SimpleNode(bad_id)

    def test_link_rewires_until_frozen(self):
        a, b = SimpleNode("a"), SimpleNode("b")
        a.link(b)
        assert a.successor() is b
        a.freeze()
        with pytest.raises(InvalidGraphError):
            a.link(None)


# ---------------------------------------------------------------------------
# InputNode
# ---------------------------------------------------------------------------


class TestInputNode:
    def test_asks_for_input_first(self):
        node = InputNode("ask", prompt="Name?")
        response = node.execute(ctx_for("ask"))
        assert response.status == NodeStatus.INPUT_REQUIRED
        assert response.payload == InputRequest(node_id="ask", prompt="Name?")

    def test_completes_with_input_as_payload(self):
        node = InputNode("ask", prompt="Name?")
        response = node.execute(ctx_for("ask", input="Ada", attempt=2))
        assert response.status == NodeStatus.COMPLETE
        assert response.payload == "Ada"

    def test_rejects_value_outside_options(self):
        node = InputNode("ask", prompt="Proceed?", options=["yes", "no"])
        response = node.execute(ctx_for("ask", input="maybe"))
        assert response.status == NodeStatus.INPUT_REQUIRED
        assert response.payload.options == ("yes", "no")
        assert "maybe" in response.payload.error

    def test_validator(self):
        node = InputNode("age", prompt="Age?", validator=lambda v: str(v).isdigit())
        assert node.execute(ctx_for("age", input="abc")).status == NodeStatus.INPUT_REQUIRED
        assert node.execute(ctx_for("age", input="42")).status == NodeStatus.COMPLETE

    def test_request_to_dict(self):
        request = InputRequest(node_id="ask", prompt="Proceed?", options=("yes", "no"))
        assert request.to_dict() == {
            "node_id": "ask",
            "prompt": "Proceed?",
            "options": ["yes", "no"],
            "error": None,
        }


# ---------------------------------------------------------------------------
# DecisionNode
# ---------------------------------------------------------------------------


class TestDecisionNode:
    def test_returns_decision_with_strategy_choice(self):
        options = [SimpleNode("x"), SimpleNode("y"), SimpleNode("z")]
        node = DecisionNode("d", options, FixedIndexStrategy(2))
        response = node.execute(ctx_for("d"))
        assert response.status == NodeStatus.DECISION_REQUIRED
        assert response.chosen_successor is options[2]

    def test_successor_is_candidate_tuple(self):
        options = [SimpleNode("x"), SimpleNode("y")]
        node = DecisionNode("d", options, FixedIndexStrategy(0))
        assert node.successor() == tuple(options)
        assert node.successor_ids() == ["x", "y"]
        assert not node.is_terminal

    def test_empty_candidates_rejected(self):
        with pytest.raises(InvalidGraphError, match="no candidates"):
            DecisionNode("d", [], FixedIndexStrategy(0))

    def test_non_node_candidates_rejected(self):
        with pytest.raises(InvalidGraphError):
            DecisionNode("d", ["x"], FixedIndexStrategy(0))

    def test_strategy_returning_stranger_is_rejected(self):
        stranger = SimpleNode("x")

        class Liar(DecisionStrategy):
            def choose(self, candidates):
                return stranger

        node = DecisionNode("d", [SimpleNode("x")], Liar())
        with pytest.raises(InvalidDecisionError) as exc_info:
            node.execute(ctx_for("d"))
        assert exc_info.value.node_id == "d"

    def test_deferred_candidates_are_linked_later(self):
        node = DecisionNode("d", None, FixedIndexStrategy(0))
        assert node.candidates == ()
        target = SimpleNode("t")
        node.link([target])
        assert node.candidates == (target,)

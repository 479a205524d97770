"""
Graph Spec - declarative description of a sequence graph.

A GraphSpec names its nodes and wires them by id, so graphs can be
described as plain data (dicts, config) and turned into live Node objects by
``build_graph``:

    GraphSpec(
        id="support-flow",
        entry_node="triage",
        nodes=[
            NodeSpec(id="triage", node_type="decision",
                     candidates=["refund", "escalate"], strategy="round_robin"),
            NodeSpec(id="refund", successor="confirm"),
            NodeSpec(id="escalate"),
            NodeSpec(id="confirm", node_type="input", prompt="Refund issued?",
                     options=["yes", "no"]),
        ],
    )
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class NodeType(StrEnum):
    """Which Node class a NodeSpec builds."""

    SIMPLE = "simple"  # SimpleNode: one successor, always completes
    DECISION = "decision"  # DecisionNode: picks among candidates
    INPUT = "input"  # InputNode: suspends until the caller supplies a value


class NodeSpec(BaseModel):
    """Specification for one node."""

    id: str
    node_type: NodeType = NodeType.SIMPLE
    description: str = ""

    # SIMPLE / INPUT
    successor: str | None = Field(default=None, description="ID of the next node, None = end")

    # DECISION
    candidates: list[str] = Field(
        default_factory=list, description="Ordered candidate node IDs for decision nodes"
    )
    strategy: str | None = Field(
        default=None,
        description="Named strategy for decision nodes: index, node, round_robin, random",
    )
    strategy_args: dict[str, Any] = Field(
        default_factory=dict, description="Constructor arguments for the named strategy"
    )

    # INPUT
    prompt: str = ""
    options: list[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    def referenced_ids(self) -> list[str]:
        """IDs of every node this one points at."""
        if self.node_type == NodeType.DECISION:
            return list(self.candidates)
        return [self.successor] if self.successor else []


class GraphSpec(BaseModel):
    """Complete specification of a sequence graph."""

    id: str
    entry_node: str = Field(description="ID of the first node to execute")
    nodes: list[NodeSpec] = Field(default_factory=list, description="All node specifications")
    description: str = ""

    model_config = {"extra": "allow"}

    def get_node(self, node_id: str) -> NodeSpec | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def reachable_ids(self) -> set[str]:
        """IDs reachable from the entry node (cycles are fine)."""
        reachable: set[str] = set()
        to_visit = [self.entry_node]
        while to_visit:
            current = to_visit.pop()
            if current in reachable:
                continue
            node = self.get_node(current)
            if node is None:
                continue
            reachable.add(current)
            to_visit.extend(node.referenced_ids())
        return reachable

    def unreachable_ids(self) -> list[str]:
        reachable = self.reachable_ids()
        return [n.id for n in self.nodes if n.id not in reachable]

    def validate(self) -> list[str]:
        """Validate the graph structure. Returns a list of error messages."""
        errors = []

        if not self.get_node(self.entry_node):
            errors.append(f"Entry node '{self.entry_node}' not found")

        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_ids.add(node.id)

        for node in self.nodes:
            if node.node_type == NodeType.DECISION:
                if not node.candidates:
                    errors.append(f"Decision node '{node.id}' has no candidates")
                if node.successor:
                    errors.append(
                        f"Decision node '{node.id}' declares successor '{node.successor}'; "
                        "use candidates instead"
                    )
            elif node.candidates:
                errors.append(
                    f"Node '{node.id}' ({node.node_type}) declares candidates "
                    f"but is not a decision node"
                )

            if node.node_type == NodeType.INPUT and not node.prompt:
                errors.append(f"Input node '{node.id}' has no prompt")

            for target in node.referenced_ids():
                if target not in seen_ids:
                    errors.append(f"Node '{node.id}' references missing node '{target}'")

        return errors

"""
Graph - the validated, frozen set of nodes a Sequence walks.

A graph is built once, before any sequence starts, and never changes
afterwards: building it validates every reference and freezes each node so
it can be shared read-only by any number of concurrently running sequences.

Three ways to get one:

    # 1. Wire nodes directly, leaves first
    end = SimpleNode("end")
    graph = Graph(SimpleNode("start", end), id="tiny")

    # 2. Fluent builder (references by id, cycles allowed)
    graph = (
        GraphBuilder("review")
        .simple("draft", successor="check")
        .decision("check", candidates=["draft", "publish"], strategy="round_robin")
        .simple("publish")
        .build()
    )

    # 3. Declarative spec
    graph = build_graph({"id": "g", "entry_node": "a", "nodes": [{"id": "a"}]})
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from sequencer.errors import InvalidGraphError
from sequencer.graph.node import DecisionNode, InputNode, Node, NodeContext, SimpleNode
from sequencer.graph.spec import GraphSpec, NodeSpec, NodeType
from sequencer.graph.strategy import DecisionStrategy, get_strategy

logger = logging.getLogger(__name__)


class Graph:
    """
    Every node reachable from an entry node.

    Raises InvalidGraphError when two distinct nodes share an id, when a
    decision node has no candidates, or when a node points at something that
    is not a Node.
    """

    def __init__(self, entry: Node, id: str = "graph") -> None:
        if not isinstance(entry, Node):
            raise InvalidGraphError(f"Graph '{id}' entry must be a Node, got {entry!r}")
        self.id = id
        self.entry = entry

        nodes, errors = self._discover(entry)
        if errors:
            raise InvalidGraphError(f"Invalid graph '{id}': {'; '.join(errors)}", errors)

        self._nodes: Mapping[str, Node] = MappingProxyType(nodes)
        for node in nodes.values():
            node.freeze()

    @staticmethod
    def _discover(entry: Node) -> tuple[dict[str, Node], list[str]]:
        nodes: dict[str, Node] = {}
        errors: list[str] = []
        to_visit: list[Node] = [entry]

        while to_visit:
            node = to_visit.pop()
            known = nodes.get(node.id)
            if known is node:
                continue
            if known is not None:
                errors.append(f"Duplicate node ID: '{node.id}'")
                continue
            nodes[node.id] = node

            if isinstance(node, DecisionNode) and not node.candidates:
                errors.append(f"Decision node '{node.id}' has no candidates")

            for target in node.successor_nodes():
                if not isinstance(target, Node):
                    errors.append(f"Node '{node.id}' references non-node {target!r}")
                    continue
                to_visit.append(target)

        return nodes, errors

    @property
    def nodes(self) -> Mapping[str, Node]:
        """Read-only mapping of node id to node."""
        return self._nodes

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def terminal_nodes(self) -> list[Node]:
        """Nodes whose completion ends a sequence."""
        return [n for n in self._nodes.values() if n.is_terminal]

    def decision_nodes(self) -> list[DecisionNode]:
        return [n for n in self._nodes.values() if isinstance(n, DecisionNode)]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(id={self.id!r}, entry={self.entry.id!r}, nodes={len(self)})"


Action = Callable[[NodeContext], Any]
Validator = Callable[[Any], bool]


def build_graph(
    spec: GraphSpec | dict[str, Any],
    actions: Mapping[str, Action] | None = None,
    strategies: Mapping[str, DecisionStrategy] | None = None,
    validators: Mapping[str, Validator] | None = None,
) -> Graph:
    """
    Build a Graph from a GraphSpec (or a dict that validates into one).

    Args:
        spec: The graph specification
        actions: Callables for simple nodes, by node ID
        strategies: Strategy objects for decision nodes, by node ID. These win
            over the strategy named in the spec.
        validators: Input validators for input nodes, by node ID

    Returns:
        The built, frozen Graph

    Raises:
        InvalidGraphError: If the spec or the supplied callables don't line up
    """
    if not isinstance(spec, GraphSpec):
        spec = GraphSpec.model_validate(spec)
    actions = dict(actions or {})
    strategies = dict(strategies or {})
    validators = dict(validators or {})

    errors = spec.validate()
    errors.extend(_check_bindings(spec, actions, NodeType.SIMPLE, "Action"))
    errors.extend(_check_bindings(spec, strategies, NodeType.DECISION, "Strategy"))
    errors.extend(_check_bindings(spec, validators, NodeType.INPUT, "Validator"))
    for node_spec in spec.nodes:
        if (
            node_spec.node_type == NodeType.DECISION
            and node_spec.id not in strategies
            and not node_spec.strategy
        ):
            errors.append(f"Decision node '{node_spec.id}' has no strategy")
    if errors:
        raise InvalidGraphError(f"Invalid graph '{spec.id}': {'; '.join(errors)}", errors)

    unreachable = spec.unreachable_ids()
    if unreachable:
        logger.warning(
            f"Graph '{spec.id}': nodes unreachable from entry are dropped: {unreachable}"
        )

    nodes: dict[str, Node] = {}
    for node_spec in spec.nodes:
        nodes[node_spec.id] = _create_node(node_spec, actions, strategies, validators)

    # Link after creation so references may point forward or form cycles
    for node_spec in spec.nodes:
        node = nodes[node_spec.id]
        if isinstance(node, DecisionNode):
            node.link([nodes[c] for c in node_spec.candidates])
        elif isinstance(node, (SimpleNode, InputNode)):
            node.link(nodes[node_spec.successor] if node_spec.successor else None)

    graph = Graph(nodes[spec.entry_node], id=spec.id)
    logger.debug(f"Built graph '{spec.id}' with {len(graph)} nodes")
    return graph


def _check_bindings(
    spec: GraphSpec,
    bindings: Mapping[str, Any],
    node_type: NodeType,
    label: str,
) -> list[str]:
    errors = []
    for node_id in bindings:
        node_spec = spec.get_node(node_id)
        if node_spec is None:
            errors.append(f"{label} given for unknown node '{node_id}'")
        elif node_spec.node_type != node_type:
            errors.append(
                f"{label} given for node '{node_id}', which is {node_spec.node_type}, "
                f"not {node_type}"
            )
    return errors


def _create_node(
    node_spec: NodeSpec,
    actions: Mapping[str, Action],
    strategies: Mapping[str, DecisionStrategy],
    validators: Mapping[str, Validator],
) -> Node:
    if node_spec.node_type == NodeType.DECISION:
        strategy = strategies.get(node_spec.id)
        if strategy is None:
            try:
                strategy = get_strategy(node_spec.strategy or "", **node_spec.strategy_args)
            except (TypeError, ValueError) as e:
                raise InvalidGraphError(
                    f"Decision node '{node_spec.id}' has an unusable strategy: {e}"
                ) from e
        return DecisionNode(
            node_spec.id, None, strategy=strategy, description=node_spec.description
        )

    if node_spec.node_type == NodeType.INPUT:
        return InputNode(
            node_spec.id,
            prompt=node_spec.prompt,
            options=node_spec.options,
            validator=validators.get(node_spec.id),
            description=node_spec.description,
        )

    return SimpleNode(
        node_spec.id, action=actions.get(node_spec.id), description=node_spec.description
    )


class GraphBuilder:
    """
    Fluent helper that collects NodeSpecs and builds a Graph.

    The first node added is the entry unless ``entry()`` says otherwise.
    Strategies may be DecisionStrategy objects or strategy names.
    """

    def __init__(self, id: str = "graph", description: str = "") -> None:
        self.id = id
        self.description = description
        self._nodes: list[NodeSpec] = []
        self._entry: str | None = None
        self._actions: dict[str, Action] = {}
        self._strategies: dict[str, DecisionStrategy] = {}
        self._validators: dict[str, Validator] = {}

    def simple(
        self,
        id: str,
        successor: str | None = None,
        action: Action | None = None,
        description: str = "",
    ) -> GraphBuilder:
        self._nodes.append(NodeSpec(id=id, successor=successor, description=description))
        if action is not None:
            self._actions[id] = action
        return self

    def input(
        self,
        id: str,
        prompt: str,
        successor: str | None = None,
        options: Sequence[str] = (),
        validator: Validator | None = None,
        description: str = "",
    ) -> GraphBuilder:
        self._nodes.append(
            NodeSpec(
                id=id,
                node_type=NodeType.INPUT,
                successor=successor,
                prompt=prompt,
                options=list(options),
                description=description,
            )
        )
        if validator is not None:
            self._validators[id] = validator
        return self

    def decision(
        self,
        id: str,
        candidates: Sequence[str],
        strategy: DecisionStrategy | str,
        description: str = "",
        **strategy_args: Any,
    ) -> GraphBuilder:
        node_spec = NodeSpec(
            id=id,
            node_type=NodeType.DECISION,
            candidates=list(candidates),
            description=description,
        )
        if isinstance(strategy, DecisionStrategy):
            self._strategies[id] = strategy
        else:
            node_spec.strategy = strategy
            node_spec.strategy_args = strategy_args
        self._nodes.append(node_spec)
        return self

    def entry(self, id: str) -> GraphBuilder:
        self._entry = id
        return self

    def to_spec(self) -> GraphSpec:
        entry = self._entry or (self._nodes[0].id if self._nodes else "")
        return GraphSpec(
            id=self.id,
            entry_node=entry,
            nodes=list(self._nodes),
            description=self.description,
        )

    def build(self) -> Graph:
        return build_graph(
            self.to_spec(),
            actions=self._actions,
            strategies=self._strategies,
            validators=self._validators,
        )

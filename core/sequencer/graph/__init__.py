"""Graph structures: Nodes, Decision strategies, Specs and Graphs."""

from sequencer.graph.graph import Graph, GraphBuilder, build_graph
from sequencer.graph.node import (
    DecisionNode,
    InputNode,
    InputRequest,
    Node,
    NodeContext,
    NodeResponse,
    NodeStatus,
    SimpleNode,
)
from sequencer.graph.spec import GraphSpec, NodeSpec, NodeType
from sequencer.graph.strategy import (
    DecisionStrategy,
    FixedIndexStrategy,
    NodeIdStrategy,
    RandomStrategy,
    RoundRobinStrategy,
    RuleEvaluator,
    RuleStrategy,
    get_strategy,
)

__all__ = [
    # Node
    "Node",
    "SimpleNode",
    "InputNode",
    "DecisionNode",
    "NodeContext",
    "NodeResponse",
    "NodeStatus",
    "InputRequest",
    # Strategy
    "DecisionStrategy",
    "FixedIndexStrategy",
    "NodeIdStrategy",
    "RoundRobinStrategy",
    "RandomStrategy",
    "RuleStrategy",
    "RuleEvaluator",
    "get_strategy",
    # Spec
    "GraphSpec",
    "NodeSpec",
    "NodeType",
    # Graph
    "Graph",
    "GraphBuilder",
    "build_graph",
]

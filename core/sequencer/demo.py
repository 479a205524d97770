"""Reference graph used by ``sequencer demo``.

    node1 -> node2 -> decision1 -> [node3 -> node6 | node4 | node5]
"""

from sequencer.graph import DecisionStrategy, Graph, GraphBuilder, NodeContext

DEMO_CANDIDATES = ("node3", "node4", "node5")


def _announce(ctx: NodeContext) -> str:
    return f"executed {ctx.node_id}"


def build_demo_graph(strategy: DecisionStrategy | str = "random", **strategy_args) -> Graph:
    """Build the demo graph with the given decision strategy."""
    builder = GraphBuilder("demo", description="Linear prefix, one three-way branch")
    builder.simple("node1", successor="node2", action=_announce)
    builder.simple("node2", successor="decision1", action=_announce)
    builder.decision("decision1", candidates=DEMO_CANDIDATES, strategy=strategy, **strategy_args)
    builder.simple("node3", successor="node6", action=_announce)
    builder.simple("node4", action=_announce)
    builder.simple("node5", action=_announce)
    builder.simple("node6", action=_announce)
    return builder.build()

"""
Sequencer - a minimal workflow engine for node graphs.

A Sequence walks a graph of Nodes. Each node reports a status that makes the
sequence advance, branch, or hand control back to the caller until resumed.

    from sequencer import GraphBuilder, Sequence

    graph = (
        GraphBuilder("greeting")
        .input("ask", prompt="Your name?", successor="greet")
        .simple("greet", action=lambda ctx: "hello")
        .build()
    )
    sequence = Sequence(graph)
    outcome = sequence.run()          # suspended at "ask"
    outcome = sequence.resume("Ada")  # complete
"""

from sequencer.errors import (
    InvalidChoiceError,
    InvalidDecisionError,
    InvalidGraphError,
    NodeExecutionError,
    ResumeWithoutSuspensionError,
    SequenceAlreadyFinished,
    SequenceBusyError,
    SequenceError,
    SequencerError,
    SequenceSuspendedError,
    StepLimitExceeded,
)
from sequencer.graph import (
    DecisionNode,
    DecisionStrategy,
    FixedIndexStrategy,
    Graph,
    GraphBuilder,
    GraphSpec,
    InputNode,
    InputRequest,
    Node,
    NodeContext,
    NodeIdStrategy,
    NodeResponse,
    NodeSpec,
    NodeStatus,
    RandomStrategy,
    RoundRobinStrategy,
    RuleStrategy,
    SimpleNode,
    build_graph,
    get_strategy,
)
from sequencer.runtime import EventBus, EventType, Sequence, SequenceEvent, SequenceOutcome, start
from sequencer.schemas import DecisionRecord, SequenceState, SequenceStatus

__all__ = [
    # Graph
    "Node",
    "SimpleNode",
    "InputNode",
    "DecisionNode",
    "NodeContext",
    "NodeResponse",
    "NodeStatus",
    "InputRequest",
    "DecisionStrategy",
    "FixedIndexStrategy",
    "NodeIdStrategy",
    "RoundRobinStrategy",
    "RandomStrategy",
    "RuleStrategy",
    "get_strategy",
    "Graph",
    "GraphBuilder",
    "GraphSpec",
    "NodeSpec",
    "build_graph",
    # Runtime
    "Sequence",
    "SequenceOutcome",
    "start",
    "EventBus",
    "EventType",
    "SequenceEvent",
    # Schemas
    "SequenceStatus",
    "SequenceState",
    "DecisionRecord",
    # Errors
    "SequencerError",
    "InvalidGraphError",
    "NodeExecutionError",
    "InvalidDecisionError",
    "InvalidChoiceError",
    "StepLimitExceeded",
    "SequenceError",
    "SequenceAlreadyFinished",
    "ResumeWithoutSuspensionError",
    "SequenceSuspendedError",
    "SequenceBusyError",
]

"""
Node Protocol - One executable step in a sequence graph.

A node performs one unit of work and reports, through its NodeResponse,
what should happen next:

- COMPLETE: advance to the node's successor
- INPUT_REQUIRED: suspend the sequence until the caller resumes it with input
- DECISION_REQUIRED: move to the candidate the node chose (optionally gated
  behind caller confirmation)

Node Types:
- SimpleNode: runs an optional action, always COMPLETE, single successor
- InputNode: asks the caller for a value before completing
- DecisionNode: picks one of several candidates via a DecisionStrategy
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sequencer.errors import InvalidDecisionError, InvalidGraphError

if TYPE_CHECKING:
    from sequencer.graph.strategy import DecisionStrategy

logger = logging.getLogger(__name__)


class NodeStatus(StrEnum):
    """What a node reports after one execution."""

    COMPLETE = "complete"  # Advance to successor
    INPUT_REQUIRED = "input_required"  # Suspend until resume(input)
    DECISION_REQUIRED = "decision_required"  # Branch to the chosen candidate


@dataclass(frozen=True)
class NodeResponse:
    """
    Outcome of one node execution.

    The status is mandatory. ``chosen_successor`` is carried only by
    DECISION_REQUIRED responses, and those must carry it.
    """

    status: NodeStatus
    payload: Any = None
    chosen_successor: Node | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, NodeStatus):
            raise TypeError(f"NodeResponse status must be a NodeStatus, got {self.status!r}")
        if self.status == NodeStatus.DECISION_REQUIRED:
            if self.chosen_successor is None:
                raise ValueError("DECISION_REQUIRED response must name a chosen successor")
            if not isinstance(self.chosen_successor, Node):
                raise TypeError(
                    f"chosen_successor must be a Node, got {self.chosen_successor!r}"
                )
        elif self.chosen_successor is not None:
            raise ValueError(f"{self.status} response cannot carry a chosen successor")

    @classmethod
    def complete(cls, payload: Any = None) -> NodeResponse:
        return cls(NodeStatus.COMPLETE, payload)

    @classmethod
    def input_required(cls, payload: Any = None) -> NodeResponse:
        return cls(NodeStatus.INPUT_REQUIRED, payload)

    @classmethod
    def decision(cls, chosen: Node, payload: Any = None) -> NodeResponse:
        return cls(NodeStatus.DECISION_REQUIRED, payload, chosen)


@dataclass(frozen=True)
class NodeContext:
    """Everything a node learns about the run it is executing in."""

    sequence_id: str
    node_id: str
    input: Any = None  # Value passed to Sequence.resume(), None otherwise
    visit: int = 1  # How many times the sequence has entered this node
    attempt: int = 1  # Executions within the current visit (grows on resume)


@dataclass(frozen=True)
class InputRequest:
    """
    Payload of an INPUT_REQUIRED response.

    This is what the caller gets back when a sequence suspends for input.
    """

    node_id: str
    prompt: str
    options: tuple[str, ...] = field(default_factory=tuple)
    error: str | None = None  # Why the previous answer was rejected

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "node_id": self.node_id,
            "prompt": self.prompt,
            "options": list(self.options),
            "error": self.error,
        }


class Node(ABC):
    """
    Base class for every node in a sequence graph.

    Nodes are wired once, then frozen when a Graph is built around them;
    after that their successor references never change.
    """

    def __init__(self, id: str, description: str = "") -> None:
        if not isinstance(id, str) or not id:
            raise InvalidGraphError(f"Node id must be a non-empty string, got {id!r}")
        self.id = id
        self.description = description
        self._frozen = False

    @abstractmethod
    def execute(self, ctx: NodeContext) -> NodeResponse:
        """Perform this node's work. Must always return a NodeResponse."""

    @abstractmethod
    def successor(self) -> Node | tuple[Node, ...] | None:
        """The node (or candidate set) that follows this one."""

    def successor_ids(self) -> list[str]:
        """Ids of every node this node references."""
        succ = self.successor()
        if succ is None:
            return []
        if isinstance(succ, Node):
            return [succ.id]
        return [n.id for n in succ]

    def successor_nodes(self) -> list[Node]:
        succ = self.successor()
        if succ is None:
            return []
        if isinstance(succ, Node):
            return [succ]
        return list(succ)

    @property
    def is_terminal(self) -> bool:
        return self.successor() is None

    def freeze(self) -> None:
        """Called by Graph once wiring is validated; rewiring fails afterwards."""
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise InvalidGraphError(
                f"Node '{self.id}' belongs to a built graph and cannot be rewired"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class SimpleNode(Node):
    """
    Deterministic node with a single successor.

    The optional action receives the NodeContext; whatever it returns becomes
    the response payload. Terminal when it has no successor.
    """

    def __init__(
        self,
        id: str,
        successor: Node | None = None,
        action: Callable[[NodeContext], Any] | None = None,
        description: str = "",
    ) -> None:
        super().__init__(id, description)
        self._successor = successor
        self._action = action

    def execute(self, ctx: NodeContext) -> NodeResponse:
        logger.info(f"Executing node: {self.id}")
        payload = self._action(ctx) if self._action is not None else None
        return NodeResponse.complete(payload)

    def successor(self) -> Node | None:
        return self._successor

    def link(self, successor: Node | None) -> None:
        self._check_mutable()
        self._successor = successor


class InputNode(Node):
    """
    Pause point: asks the caller for a value before it completes.

    First execution of a visit returns INPUT_REQUIRED with an InputRequest.
    When resumed with input, the value is checked against ``options`` and
    ``validator`` (if given); a valid value completes the node with the value
    as payload, an invalid one asks again with the reason attached.
    """

    def __init__(
        self,
        id: str,
        prompt: str,
        successor: Node | None = None,
        options: Sequence[str] = (),
        validator: Callable[[Any], bool] | None = None,
        description: str = "",
    ) -> None:
        super().__init__(id, description)
        self.prompt = prompt
        self.options = tuple(options)
        self._successor = successor
        self._validator = validator

    def execute(self, ctx: NodeContext) -> NodeResponse:
        if ctx.input is None:
            logger.info(f"Node {self.id} waiting for input")
            return NodeResponse.input_required(self._request())

        error = self._check(ctx.input)
        if error:
            logger.info(f"Node {self.id} rejected input: {error}")
            return NodeResponse.input_required(self._request(error))

        logger.info(f"Node {self.id} accepted input")
        return NodeResponse.complete(ctx.input)

    def _request(self, error: str | None = None) -> InputRequest:
        return InputRequest(node_id=self.id, prompt=self.prompt, options=self.options, error=error)

    def _check(self, value: Any) -> str | None:
        if self.options and value not in self.options:
            return f"{value!r} is not one of {list(self.options)}"
        if self._validator is not None and not self._validator(value):
            return f"{value!r} failed validation"
        return None

    def successor(self) -> Node | None:
        return self._successor

    def link(self, successor: Node | None) -> None:
        self._check_mutable()
        self._successor = successor


class DecisionNode(Node):
    """
    Branching node: selects one successor from an ordered candidate set.

    Selection is delegated to the injected DecisionStrategy. The node never
    advances by itself; it reports DECISION_REQUIRED with the chosen candidate
    and lets the Sequence confirm the branch.
    """

    def __init__(
        self,
        id: str,
        candidates: Sequence[Node] | None,
        strategy: DecisionStrategy,
        description: str = "",
    ) -> None:
        super().__init__(id, description)
        # None defers wiring to link(); the graph builder needs that for cycles
        self._candidates: tuple[Node, ...] = ()
        if candidates is not None:
            self._candidates = self._validate_candidates(candidates)
        self.strategy = strategy

    def _validate_candidates(self, candidates: Sequence[Node]) -> tuple[Node, ...]:
        candidates = tuple(candidates)
        if not candidates:
            raise InvalidGraphError(f"Decision node '{self.id}' has no candidates")
        for candidate in candidates:
            if not isinstance(candidate, Node):
                raise InvalidGraphError(
                    f"Decision node '{self.id}' has a non-node candidate: {candidate!r}"
                )
        return candidates

    @property
    def candidates(self) -> tuple[Node, ...]:
        return self._candidates

    def execute(self, ctx: NodeContext) -> NodeResponse:
        logger.info(f"Executing decision node: {self.id}")
        chosen = self.strategy.choose(self._candidates)
        if not any(chosen is candidate for candidate in self._candidates):
            raise InvalidDecisionError(
                f"Strategy {type(self.strategy).__name__} chose {chosen!r}, "
                f"which is not a candidate of '{self.id}'",
                node_id=self.id,
            )
        logger.debug(f"Decision node {self.id} chose {chosen.id}")
        return NodeResponse.decision(chosen)

    def successor(self) -> tuple[Node, ...]:
        return self._candidates

    def link(self, candidates: Sequence[Node]) -> None:
        self._check_mutable()
        self._candidates = self._validate_candidates(candidates)

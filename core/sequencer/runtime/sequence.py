"""
Sequence - drives one walk through a graph.

The sequence:
1. Holds a pointer to the current node (None once it walks off the end)
2. Executes nodes one at a time, advancing on COMPLETE
3. Takes the chosen branch on DECISION_REQUIRED, or suspends for
   confirmation when a decision gate asks for it
4. Suspends on INPUT_REQUIRED and re-executes the same node on resume()
5. Fails terminally, recording the node, when a node raises

Suspension is a plain return to the caller. Nothing blocks waiting for
input; the caller calls resume() whenever it has what the node asked for,
from any thread, as long as calls on one sequence are not concurrent.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sequencer.errors import (
    InvalidChoiceError,
    InvalidDecisionError,
    NodeExecutionError,
    ResumeWithoutSuspensionError,
    SequenceAlreadyFinished,
    SequenceBusyError,
    SequencerError,
    SequenceSuspendedError,
    StepLimitExceeded,
)
from sequencer.graph.graph import Graph
from sequencer.graph.node import Node, NodeContext, NodeResponse, NodeStatus
from sequencer.observability import clear_trace_context, get_trace_context, set_trace_context
from sequencer.runtime.event_bus import EventBus, EventType, SequenceEvent
from sequencer.schemas.decision import DecisionRecord, DecisionSource
from sequencer.schemas.sequence_state import SequenceState, SequenceStatus, SequenceTimestamps

logger = logging.getLogger(__name__)

DecisionGate = Callable[[Node, Node], bool]


@dataclass
class SequenceOutcome:
    """What one run()/resume() call achieved."""

    status: SequenceStatus
    current_node_id: str | None = None
    payload: Any = None  # Payload of the last node response in this call
    path: list[str] = field(default_factory=list)  # Nodes entered during this call
    steps_executed: int = 0  # Node executions during this call
    pending_choice: str | None = None  # Proposed branch while SUSPENDED_DECISION
    candidates: list[str] = field(default_factory=list)  # Options while SUSPENDED_DECISION

    @property
    def is_complete(self) -> bool:
        return self.status == SequenceStatus.COMPLETE

    @property
    def is_suspended(self) -> bool:
        return self.status.is_suspended


@dataclass
class _CallProgress:
    path: list[str] = field(default_factory=list)
    steps: int = 0
    payload: Any = None


def _now() -> str:
    return datetime.now().isoformat()


class Sequence:
    """
    One execution of a graph, from its entry node to completion.

    Example:
        sequence = Sequence(graph)
        outcome = sequence.run()
        while outcome.status == SequenceStatus.SUSPENDED_INPUT:
            outcome = sequence.resume(ask_user(outcome.payload))

    A finished (COMPLETE or FAILED) sequence cannot be reused; start a new
    one on the same graph instead.
    """

    def __init__(
        self,
        start: Node | Graph,
        *,
        graph_id: str | None = None,
        sequence_id: str | None = None,
        decision_gate: bool | DecisionGate | None = None,
        max_steps: int | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """
        Create a sequence positioned at the graph's entry node.

        Args:
            start: A built Graph, or an entry Node to build one from
            graph_id: ID for the graph built from an entry node
            sequence_id: Explicit ID, generated when omitted
            decision_gate: None/False confirms every decision immediately;
                True suspends on every decision; a callable
                ``(decision_node, proposed_node) -> bool`` suspends when it
                returns True
            max_steps: Fail once this many node executions have happened.
                None (default) leaves cycles entirely to the graph author.
            event_bus: Optional bus receiving lifecycle events
        """
        if isinstance(start, Graph):
            self.graph = start
        else:
            self.graph = Graph(start, id=graph_id or "graph")
        self.id = sequence_id or f"seq_{uuid.uuid4().hex[:12]}"
        self.max_steps = max_steps
        self._decision_gate = decision_gate
        self._event_bus = event_bus

        self._status = SequenceStatus.RUNNING
        self._current: Node | None = self.graph.entry
        self._started = False
        self._attempt = 0
        self._pending_choice: Node | None = None
        self._lock = threading.Lock()

        self.path: list[str] = []
        self.visit_counts: dict[str, int] = {}
        self.decisions: list[DecisionRecord] = []
        self.steps_executed = 0
        self.failed_node_id: str | None = None
        self.error: str | None = None

        now = _now()
        self._timestamps = SequenceTimestamps(created_at=now, updated_at=now)

    # === PUBLIC API ===

    @property
    def graph_id(self) -> str:
        return self.graph.id

    @property
    def current_node(self) -> Node | None:
        return self._current

    def status(self) -> SequenceStatus:
        return self._status

    def current_node_id(self) -> str | None:
        return self._current.id if self._current is not None else None

    def run(self) -> SequenceOutcome:
        """
        Start walking the graph from the entry node.

        Returns when the sequence completes or suspends.

        Raises:
            SequenceAlreadyFinished: The sequence is COMPLETE or FAILED
            SequenceSuspendedError: The sequence was already started
            NodeExecutionError: A node failed; the sequence is now FAILED
        """
        with self._exclusive():
            self._check_not_finished()
            if self._started:
                raise SequenceSuspendedError(
                    f"Sequence '{self.id}' already started and is {self._status}; "
                    "use resume() to continue it"
                )

            self._started = True
            self._timestamps.started_at = _now()
            logger.info(f"Starting sequence at '{self.graph.entry.id}'")
            self._emit(EventType.SEQUENCE_STARTED, node_id=self.graph.entry.id)

            progress = _CallProgress()
            self._enter(self.graph.entry, progress)
            return self._drive(progress)

    def resume(self, value: Any = None) -> SequenceOutcome:
        """
        Continue a suspended sequence.

        Args:
            value: For SUSPENDED_INPUT, the input handed to the waiting node.
                For SUSPENDED_DECISION, the confirmed branch: None accepts the
                proposed candidate, otherwise a candidate Node or node ID.

        Raises:
            SequenceAlreadyFinished: The sequence is COMPLETE or FAILED
            ResumeWithoutSuspensionError: The sequence is not suspended
            InvalidChoiceError: The confirmed branch is not a candidate;
                the sequence stays SUSPENDED_DECISION and can be resumed again
            NodeExecutionError: A node failed; the sequence is now FAILED
        """
        with self._exclusive():
            self._check_not_finished()
            if not self._status.is_suspended:
                raise ResumeWithoutSuspensionError(
                    f"Sequence '{self.id}' is {self._status}, not suspended"
                )

            progress = _CallProgress()

            if self._status == SequenceStatus.SUSPENDED_DECISION:
                node = self._current
                proposed = self._pending_choice
                target = self._resolve_choice(node, proposed, value)
                self._resumed()
                self._pending_choice = None
                self._record_decision(node, proposed, target, DecisionSource.CALLER)
                self._advance(target, progress)
                return self._drive(progress)

            self._resumed()
            return self._drive(progress, value)

    def state(self) -> SequenceState:
        """Snapshot of the sequence for inspection."""
        return SequenceState(
            sequence_id=self.id,
            graph_id=self.graph_id,
            status=self._status,
            current_node=self.current_node_id(),
            pending_choice=self._pending_choice.id if self._pending_choice else None,
            path=list(self.path),
            visit_counts=dict(self.visit_counts),
            steps_executed=self.steps_executed,
            decisions=[d.model_copy() for d in self.decisions],
            failed_node_id=self.failed_node_id,
            error=self.error,
            timestamps=self._timestamps.model_copy(),
        )

    # === CONTROL LOOP ===

    def _drive(self, progress: _CallProgress, input: Any = None) -> SequenceOutcome:
        pending_input = input

        while True:
            node = self._current
            if node is None:
                return self._complete(progress)

            if self.max_steps is not None and self.steps_executed >= self.max_steps:
                error = StepLimitExceeded(
                    f"Sequence exceeded max_steps={self.max_steps} before entering '{node.id}'"
                )
                raise self._fail(node, error)

            self._attempt += 1
            ctx = NodeContext(
                sequence_id=self.id,
                node_id=node.id,
                input=pending_input,
                visit=self.visit_counts.get(node.id, 1),
                attempt=self._attempt,
            )
            pending_input = None

            response = self._execute(node, ctx)
            self.steps_executed += 1
            progress.steps += 1
            progress.payload = response.payload
            self._emit(
                EventType.NODE_COMPLETED,
                node_id=node.id,
                status=str(response.status),
                attempt=ctx.attempt,
            )

            try:
                outcome = self._transition(node, response, progress)
            except SequencerError:
                raise
            except Exception as e:
                raise self._fail(
                    node,
                    NodeExecutionError(
                        f"Transition after {response.status} failed: {type(e).__name__}: {e}"
                    ),
                ) from e
            if outcome is not None:
                return outcome

    def _transition(
        self, node: Node, response: NodeResponse, progress: _CallProgress
    ) -> SequenceOutcome | None:
        """Apply one response. Returns an outcome when the call should return."""
        if response.status == NodeStatus.COMPLETE:
            successor = node.successor()
            if successor is not None and not isinstance(successor, Node):
                raise self._fail(
                    node,
                    NodeExecutionError(
                        "Node reported COMPLETE but has several successors; "
                        "branching nodes must report DECISION_REQUIRED"
                    ),
                )
            self._advance(successor, progress)
            return None

        if response.status == NodeStatus.DECISION_REQUIRED:
            chosen = response.chosen_successor
            if not isinstance(chosen, Node) or self.graph.get_node(chosen.id) is not chosen:
                raise self._fail(
                    node,
                    InvalidDecisionError(f"Chosen node {chosen!r} is not part of the graph"),
                )
            if self._gate_requires_confirmation(node, chosen):
                self._pending_choice = chosen
                return self._suspend(SequenceStatus.SUSPENDED_DECISION, progress)
            self._record_decision(node, chosen, chosen, DecisionSource.STRATEGY)
            self._advance(chosen, progress)
            return None

        return self._suspend(SequenceStatus.SUSPENDED_INPUT, progress)

    def _execute(self, node: Node, ctx: NodeContext) -> NodeResponse:
        set_trace_context(node_id=node.id)
        self._emit(EventType.NODE_STARTED, node_id=node.id, attempt=ctx.attempt)
        try:
            response = node.execute(ctx)
        except NodeExecutionError as e:
            self._fail(node, e)
            raise
        except Exception as e:
            raise self._fail(node, NodeExecutionError(f"{type(e).__name__}: {e}")) from e

        if not isinstance(response, NodeResponse):
            raise self._fail(
                node,
                NodeExecutionError(
                    f"execute() returned {type(response).__name__}, expected a NodeResponse"
                ),
            )
        return response

    def _gate_requires_confirmation(self, node: Node, chosen: Node) -> bool:
        gate = self._decision_gate
        if not gate:
            return False
        if gate is True:
            return True
        try:
            return bool(gate(node, chosen))
        except Exception as e:
            raise self._fail(node, NodeExecutionError(f"Decision gate failed: {e}")) from e

    def _resolve_choice(self, node: Node, proposed: Node, value: Any) -> Node:
        if value is None:
            return proposed
        candidates = node.successor_nodes()
        for candidate in candidates:
            if candidate is value or candidate.id == value:
                return candidate
        raise InvalidChoiceError(
            f"{value!r} is not a candidate of '{node.id}'; "
            f"choose one of {[c.id for c in candidates]}"
        )

    # === STATE TRANSITIONS ===

    def _enter(self, node: Node, progress: _CallProgress) -> None:
        self.path.append(node.id)
        progress.path.append(node.id)
        self.visit_counts[node.id] = self.visit_counts.get(node.id, 0) + 1
        self._attempt = 0

    def _advance(self, target: Node | None, progress: _CallProgress) -> None:
        self._current = target
        if target is not None:
            self._enter(target, progress)

    def _resumed(self) -> None:
        logger.info(f"Resuming sequence from {self._status} at '{self.current_node_id()}'")
        self._emit(
            EventType.SEQUENCE_RESUMED,
            node_id=self.current_node_id(),
            from_status=str(self._status),
        )
        self._status = SequenceStatus.RUNNING
        self._touch()

    def _suspend(self, status: SequenceStatus, progress: _CallProgress) -> SequenceOutcome:
        self._status = status
        self._touch()
        logger.info(f"Sequence suspended ({status}) at '{self.current_node_id()}'")
        self._emit(EventType.SEQUENCE_SUSPENDED, node_id=self.current_node_id(), status=str(status))
        return self._outcome(progress)

    def _complete(self, progress: _CallProgress) -> SequenceOutcome:
        self._status = SequenceStatus.COMPLETE
        self._timestamps.completed_at = self._touch()
        logger.info(
            f"Sequence complete after {self.steps_executed} steps: {' -> '.join(self.path)}"
        )
        self._emit(EventType.SEQUENCE_COMPLETED, path=list(self.path))
        return self._outcome(progress)

    def _fail(self, node: Node, error: NodeExecutionError) -> NodeExecutionError:
        if error.node_id is None:
            error.node_id = node.id
        self._status = SequenceStatus.FAILED
        self._pending_choice = None
        self.failed_node_id = node.id
        self.error = str(error)
        self._timestamps.completed_at = self._touch()
        logger.error(f"Sequence failed at '{node.id}': {error}")
        self._emit(EventType.SEQUENCE_FAILED, node_id=node.id, error=self.error)
        return error

    def _record_decision(
        self,
        node: Node,
        proposed: Node,
        chosen: Node,
        source: DecisionSource,
    ) -> None:
        record = DecisionRecord(
            id=f"{node.id}_{len(self.decisions) + 1}",
            node_id=node.id,
            candidates=node.successor_ids(),
            proposed=proposed.id,
            chosen=chosen.id,
            confirmed_by=source,
        )
        self.decisions.append(record)
        logger.info(f"Decision at '{node.id}': taking '{chosen.id}' ({source})")
        self._emit(
            EventType.DECISION_MADE,
            node_id=node.id,
            proposed=proposed.id,
            chosen=chosen.id,
            confirmed_by=str(source),
        )

    # === HELPERS ===

    def _outcome(self, progress: _CallProgress) -> SequenceOutcome:
        pending = self._pending_choice
        return SequenceOutcome(
            status=self._status,
            current_node_id=self.current_node_id(),
            payload=progress.payload,
            path=list(progress.path),
            steps_executed=progress.steps,
            pending_choice=pending.id if pending is not None else None,
            candidates=self._current.successor_ids() if pending is not None else [],
        )

    def _check_not_finished(self) -> None:
        if self._status.is_terminal:
            raise SequenceAlreadyFinished(
                f"Sequence '{self.id}' is {self._status}; start a new sequence to run again"
            )

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise SequenceBusyError(f"Sequence '{self.id}' is already being driven")
        previous_context = get_trace_context()
        set_trace_context(sequence_id=self.id, graph_id=self.graph_id)
        try:
            yield
        finally:
            clear_trace_context()
            if previous_context:
                set_trace_context(**previous_context)
            self._lock.release()

    def _touch(self) -> str:
        now = _now()
        self._timestamps.updated_at = now
        return now

    def _emit(self, event_type: EventType, node_id: str | None = None, **data: Any) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            SequenceEvent(
                type=event_type,
                sequence_id=self.id,
                node_id=node_id,
                graph_id=self.graph_id,
                data=data,
            )
        )

    def __repr__(self) -> str:
        return (
            f"Sequence(id={self.id!r}, graph={self.graph_id!r}, status={self._status}, "
            f"current={self.current_node_id()!r})"
        )


def start(entry: Node | Graph, **kwargs: Any) -> Sequence:
    """Create a sequence positioned at the entry of ``entry``. Call run() on it."""
    return Sequence(entry, **kwargs)

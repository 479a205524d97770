"""
Sequence State Schema - a point-in-time view of one Sequence.

This is an introspection snapshot (status pages, logs, tests); it is not a
persistence format and a Sequence cannot be rebuilt from it.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from sequencer.schemas.decision import DecisionRecord


class SequenceStatus(StrEnum):
    """Lifecycle status of a sequence."""

    RUNNING = "running"  # Ready to run, or inside run()/resume()
    SUSPENDED_INPUT = "suspended_input"  # A node asked for input
    SUSPENDED_DECISION = "suspended_decision"  # A decision awaits confirmation
    COMPLETE = "complete"  # Walked off the end of the graph
    FAILED = "failed"  # A node raised

    @property
    def is_terminal(self) -> bool:
        return self in (SequenceStatus.COMPLETE, SequenceStatus.FAILED)

    @property
    def is_suspended(self) -> bool:
        return self in (SequenceStatus.SUSPENDED_INPUT, SequenceStatus.SUSPENDED_DECISION)


class SequenceTimestamps(BaseModel):
    """Timestamps tracking sequence lifecycle (ISO 8601)."""

    created_at: str
    updated_at: str
    started_at: str | None = None
    completed_at: str | None = None  # Set on COMPLETE or FAILED

    model_config = {"extra": "allow"}


class SequenceState(BaseModel):
    """Complete view of one sequence."""

    sequence_id: str
    graph_id: str = ""
    status: SequenceStatus = SequenceStatus.RUNNING

    current_node: str | None = None
    pending_choice: str | None = None  # Proposed branch while SUSPENDED_DECISION
    path: list[str] = Field(default_factory=list)  # Node IDs in the order entered
    visit_counts: dict[str, int] = Field(default_factory=dict)
    steps_executed: int = 0

    decisions: list[DecisionRecord] = Field(default_factory=list)

    failed_node_id: str | None = None
    error: str | None = None

    timestamps: SequenceTimestamps

    model_config = {"extra": "allow"}

    @computed_field
    @property
    def duration_ms(self) -> int:
        """Time from first run() to completion, 0 while unfinished."""
        if not self.timestamps.started_at or not self.timestamps.completed_at:
            return 0
        started = datetime.fromisoformat(self.timestamps.started_at)
        completed = datetime.fromisoformat(self.timestamps.completed_at)
        return int((completed - started).total_seconds() * 1000)

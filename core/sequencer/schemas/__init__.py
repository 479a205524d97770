"""Schema definitions for sequence runs."""

from sequencer.schemas.decision import DecisionRecord, DecisionSource
from sequencer.schemas.sequence_state import SequenceState, SequenceStatus, SequenceTimestamps

__all__ = [
    "DecisionRecord",
    "DecisionSource",
    "SequenceState",
    "SequenceStatus",
    "SequenceTimestamps",
]

"""Runtime: the Sequence driver and its lifecycle events."""

from sequencer.runtime.event_bus import EventBus, EventType, SequenceEvent
from sequencer.runtime.sequence import DecisionGate, Sequence, SequenceOutcome, start

__all__ = [
    "Sequence",
    "SequenceOutcome",
    "DecisionGate",
    "start",
    "EventBus",
    "EventType",
    "SequenceEvent",
]

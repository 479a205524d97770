"""
Event Bus - pub/sub for sequence lifecycle events.

Lets callers observe sequences without wrapping them:
- Subscribe to the event types you care about
- Optionally filter to one sequence or one node
- Inspect a bounded history for debugging

Delivery is synchronous, in the thread that runs the sequence. A failing
handler is logged and skipped; it never affects the sequence.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events a sequence publishes."""

    SEQUENCE_STARTED = "sequence_started"
    SEQUENCE_SUSPENDED = "sequence_suspended"
    SEQUENCE_RESUMED = "sequence_resumed"
    SEQUENCE_COMPLETED = "sequence_completed"
    SEQUENCE_FAILED = "sequence_failed"

    NODE_STARTED = "node_started"
    NODE_COMPLETED = "node_completed"

    DECISION_MADE = "decision_made"


@dataclass
class SequenceEvent:
    """An event in the life of a sequence."""

    type: EventType
    sequence_id: str
    node_id: str | None = None
    graph_id: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "sequence_id": self.sequence_id,
            "node_id": self.node_id,
            "graph_id": self.graph_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


EventHandler = Callable[[SequenceEvent], None]


@dataclass
class Subscription:
    """A subscription to events."""

    id: str
    event_types: set[EventType]
    handler: EventHandler
    filter_sequence: str | None = None  # Only receive events from this sequence
    filter_node: str | None = None  # Only receive events from this node


class EventBus:
    """
    Pub/sub event bus for sequence lifecycle events.

    One bus can serve many sequences, possibly on different threads, so
    subscription and history bookkeeping is lock-protected.

    Example:
        bus = EventBus()

        def on_suspended(event: SequenceEvent) -> None:
            print(f"{event.sequence_id} waiting at {event.node_id}")

        bus.subscribe([EventType.SEQUENCE_SUSPENDED], on_suspended)
        sequence = Sequence(graph, event_bus=bus)
    """

    def __init__(self, max_history: int = 1000) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._event_history: list[SequenceEvent] = []
        self._max_history = max_history
        self._subscription_counter = 0
        self._lock = threading.Lock()

    def subscribe(
        self,
        event_types: list[EventType],
        handler: EventHandler,
        filter_sequence: str | None = None,
        filter_node: str | None = None,
    ) -> str:
        """
        Subscribe to events.

        Args:
            event_types: Types of events to receive
            handler: Function called with each matching event
            filter_sequence: Only receive events from this sequence
            filter_node: Only receive events about this node

        Returns:
            Subscription ID (use to unsubscribe)
        """
        with self._lock:
            self._subscription_counter += 1
            sub_id = f"sub_{self._subscription_counter}"
            self._subscriptions[sub_id] = Subscription(
                id=sub_id,
                event_types=set(event_types),
                handler=handler,
                filter_sequence=filter_sequence,
                filter_node=filter_node,
            )
        logger.debug(f"Subscription {sub_id} registered for {event_types}")
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe from events.

        Returns:
            True if subscription was found and removed
        """
        with self._lock:
            removed = self._subscriptions.pop(subscription_id, None)
        if removed is not None:
            logger.debug(f"Subscription {subscription_id} removed")
            return True
        return False

    def publish(self, event: SequenceEvent) -> None:
        """Publish an event to all matching subscribers."""
        with self._lock:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history :]
            handlers = [
                sub.handler for sub in self._subscriptions.values() if self._matches(sub, event)
            ]

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler error for {event.type}: {e}")

    def _matches(self, subscription: Subscription, event: SequenceEvent) -> bool:
        """Check if a subscription matches an event."""
        if event.type not in subscription.event_types:
            return False

        if subscription.filter_sequence and subscription.filter_sequence != event.sequence_id:
            return False

        if subscription.filter_node and subscription.filter_node != event.node_id:
            return False

        return True

    def get_history(
        self,
        event_type: EventType | None = None,
        sequence_id: str | None = None,
        limit: int = 100,
    ) -> list[SequenceEvent]:
        """Most recent events, oldest first, optionally filtered."""
        with self._lock:
            events = list(self._event_history)
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        if sequence_id is not None:
            events = [e for e in events if e.sequence_id == sequence_id]
        return events[-limit:]

    def clear_history(self) -> None:
        with self._lock:
            self._event_history.clear()

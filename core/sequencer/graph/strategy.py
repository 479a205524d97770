"""
Decision strategies - how a DecisionNode picks its branch.

Every strategy honours one contract: given a non-empty candidate sequence C,
``choose(C)`` returns a member of C. Deterministic strategies (fixed index,
node id, round-robin, rules) and non-deterministic ones (random) are equally
valid; the sequence engine does not care which one it gets.

Strategies are attached to nodes, and a graph may be shared by many
sequences at once, so stateful strategies guard their state with a lock.
"""

from __future__ import annotations

import logging
import random
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sequencer.graph.node import Node

logger = logging.getLogger(__name__)


class DecisionStrategy(ABC):
    """Picks exactly one candidate from a non-empty set."""

    @abstractmethod
    def choose(self, candidates: Sequence[Node]) -> Node:
        """Return one member of ``candidates``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FixedIndexStrategy(DecisionStrategy):
    """Always the candidate at ``index`` (negative indexes count from the end)."""

    def __init__(self, index: int = 0) -> None:
        self.index = index

    def choose(self, candidates: Sequence[Node]) -> Node:
        if not -len(candidates) <= self.index < len(candidates):
            raise IndexError(
                f"Candidate index {self.index} out of range for {len(candidates)} candidates"
            )
        return candidates[self.index]

    def __repr__(self) -> str:
        return f"FixedIndexStrategy(index={self.index})"


class NodeIdStrategy(DecisionStrategy):
    """Always the candidate with the given node id."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id

    def choose(self, candidates: Sequence[Node]) -> Node:
        for candidate in candidates:
            if candidate.id == self.node_id:
                return candidate
        raise LookupError(
            f"No candidate with id '{self.node_id}' in {[c.id for c in candidates]}"
        )

    def __repr__(self) -> str:
        return f"NodeIdStrategy(node_id={self.node_id!r})"


class RoundRobinStrategy(DecisionStrategy):
    """Cycles through candidate positions, one step per call."""

    def __init__(self, start: int = 0) -> None:
        self._next = start
        self._lock = threading.Lock()

    def choose(self, candidates: Sequence[Node]) -> Node:
        with self._lock:
            position = self._next % len(candidates)
            self._next = position + 1
        return candidates[position]


class RandomStrategy(DecisionStrategy):
    """Uniform random choice. Pass ``seed`` (or an ``rng``) for repeatable runs."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)
        self._lock = threading.Lock()

    def choose(self, candidates: Sequence[Node]) -> Node:
        with self._lock:
            return self._rng.choice(list(candidates))


@runtime_checkable
class RuleEvaluator(Protocol):
    """Anything that can answer a yes/no question about a context."""

    def evaluate(self, context: Any) -> bool: ...


Rule = RuleEvaluator | Callable[[Any], bool]


class RuleStrategy(DecisionStrategy):
    """
    First candidate whose rule holds for the current context.

    Rules are keyed by candidate node id and may be RuleEvaluator objects or
    plain predicates. ``context`` is either a fixed value or a zero-argument
    callable evaluated on every decision. Candidates are tried in order;
    when none matches the fallback strategy decides, and without a fallback
    the decision fails.

    Example:
        RuleStrategy(
            rules={"refund": lambda ctx: ctx["amount"] < 100},
            context=lambda: order,
            fallback=NodeIdStrategy("manual_review"),
        )
    """

    def __init__(
        self,
        rules: Mapping[str, Rule],
        context: Any = None,
        fallback: DecisionStrategy | None = None,
    ) -> None:
        self.rules = dict(rules)
        self._context = context
        self.fallback = fallback

    def _resolve_context(self) -> Any:
        return self._context() if callable(self._context) else self._context

    def choose(self, candidates: Sequence[Node]) -> Node:
        context = self._resolve_context()
        for candidate in candidates:
            rule = self.rules.get(candidate.id)
            if rule is None:
                continue
            matched = rule.evaluate(context) if isinstance(rule, RuleEvaluator) else rule(context)
            if matched:
                logger.debug(f"Rule for '{candidate.id}' matched")
                return candidate
        if self.fallback is not None:
            return self.fallback.choose(candidates)
        raise LookupError(f"No rule matched any of {[c.id for c in candidates]}")


STRATEGIES: dict[str, type[DecisionStrategy]] = {
    "index": FixedIndexStrategy,
    "node": NodeIdStrategy,
    "round_robin": RoundRobinStrategy,
    "random": RandomStrategy,
}


def get_strategy(name: str, **kwargs: Any) -> DecisionStrategy:
    """
    Create a strategy by name.

    Args:
        name: One of "index", "node", "round_robin", "random"
        **kwargs: Constructor arguments (index=, node_id=, start=, seed=)

    Raises:
        ValueError: If the name is unknown
    """
    try:
        strategy_cls = STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown decision strategy '{name}'. Valid: {sorted(STRATEGIES)}"
        ) from None
    return strategy_cls(**kwargs)

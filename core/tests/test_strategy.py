"""
Tests for decision strategies.

Every strategy must return a member of the candidate set it was given; the
deterministic ones must also be repeatable.
"""

import random

import pytest

from sequencer.graph.node import SimpleNode
from sequencer.graph.strategy import (
    FixedIndexStrategy,
    NodeIdStrategy,
    RandomStrategy,
    RoundRobinStrategy,
    RuleEvaluator,
    RuleStrategy,
    get_strategy,
)


def make_candidates(n: int) -> list[SimpleNode]:
    return [SimpleNode(f"c{i}") for i in range(n)]


STRATEGY_FACTORIES = {
    "first": lambda: FixedIndexStrategy(0),
    "last": lambda: FixedIndexStrategy(-1),
    "by_id": lambda: NodeIdStrategy("c0"),
    "round_robin": lambda: RoundRobinStrategy(),
    "random": lambda: RandomStrategy(seed=3),
    "unseeded_random": lambda: RandomStrategy(),
    "rule_fallback": lambda: RuleStrategy(
        rules={"c0": lambda ctx: False}, fallback=RandomStrategy(seed=1)
    ),
}


@pytest.mark.parametrize("name", sorted(STRATEGY_FACTORIES))
@pytest.mark.parametrize("size", [1, 2, 3, 5])
def test_choice_is_always_a_candidate(name, size):
    strategy = STRATEGY_FACTORIES[name]()
    candidates = make_candidates(size)
    for _ in range(25):
        chosen = strategy.choose(candidates)
        assert any(chosen is c for c in candidates)


# ---------------------------------------------------------------------------
# Deterministic strategies
# ---------------------------------------------------------------------------


def test_fixed_index():
    candidates = make_candidates(3)
    assert FixedIndexStrategy(1).choose(candidates) is candidates[1]
    assert FixedIndexStrategy(-1).choose(candidates) is candidates[2]


def test_fixed_index_out_of_range():
    with pytest.raises(IndexError):
        FixedIndexStrategy(3).choose(make_candidates(3))


def test_node_id():
    candidates = make_candidates(3)
    assert NodeIdStrategy("c2").choose(candidates) is candidates[2]


def test_node_id_missing():
    with pytest.raises(LookupError, match="c9"):
        NodeIdStrategy("c9").choose(make_candidates(3))


def test_round_robin_cycles():
    candidates = make_candidates(3)
    strategy = RoundRobinStrategy()
    picks = [strategy.choose(candidates).id for _ in range(5)]
    assert picks == ["c0", "c1", "c2", "c0", "c1"]


def test_round_robin_adapts_to_smaller_sets():
    strategy = RoundRobinStrategy(start=4)
    assert strategy.choose(make_candidates(3)).id == "c1"


def test_seeded_random_is_repeatable():
    candidates = make_candidates(5)
    a, b = RandomStrategy(seed=42), RandomStrategy(seed=42)
    picks_a = [a.choose(candidates).id for _ in range(20)]
    picks_b = [b.choose(candidates).id for _ in range(20)]
    assert picks_a == picks_b


def test_random_accepts_rng():
    rng = random.Random(0)
    expected = random.Random(0).choice(["c0", "c1", "c2"])
    assert RandomStrategy(rng=rng).choose(make_candidates(3)).id == expected


# ---------------------------------------------------------------------------
# RuleStrategy
# ---------------------------------------------------------------------------


class AmountBelow:
    def __init__(self, limit):
        self.limit = limit

    def evaluate(self, context):
        return context["amount"] < self.limit


def test_rule_evaluator_protocol():
    assert isinstance(AmountBelow(10), RuleEvaluator)
    assert not isinstance(lambda ctx: True, RuleEvaluator)


def test_first_matching_rule_wins():
    candidates = make_candidates(3)
    strategy = RuleStrategy(
        rules={"c0": AmountBelow(10), "c1": AmountBelow(100), "c2": lambda ctx: True},
        context={"amount": 50},
    )
    assert strategy.choose(candidates).id == "c1"


def test_context_callable_is_evaluated_each_time():
    order = {"amount": 5}
    strategy = RuleStrategy(
        rules={"c0": AmountBelow(10)},
        context=lambda: order,
        fallback=NodeIdStrategy("c1"),
    )
    candidates = make_candidates(2)
    assert strategy.choose(candidates).id == "c0"
    order["amount"] = 500
    assert strategy.choose(candidates).id == "c1"


def test_no_match_without_fallback():
    strategy = RuleStrategy(rules={"c0": lambda ctx: False})
    with pytest.raises(LookupError):
        strategy.choose(make_candidates(2))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_get_strategy_by_name():
    assert isinstance(get_strategy("index", index=2), FixedIndexStrategy)
    assert isinstance(get_strategy("node", node_id="x"), NodeIdStrategy)
    assert isinstance(get_strategy("round_robin"), RoundRobinStrategy)
    assert isinstance(get_strategy("random", seed=1), RandomStrategy)


def test_get_strategy_unknown():
    with pytest.raises(ValueError, match="Unknown decision strategy"):
        get_strategy("coin_flip")

"""
Command-line interface for the sequencer.

Usage:
    sequencer demo
    sequencer demo --strategy index --index 1
    sequencer demo --strategy node --node node5 --log-format json
    sequencer demo --strategy random --seed 7 --confirm
"""

import argparse
import logging
import sys

from sequencer.config import RuntimeConfig
from sequencer.demo import build_demo_graph
from sequencer.errors import InvalidChoiceError, SequencerError
from sequencer.graph import DecisionStrategy, get_strategy
from sequencer.observability import configure_logging
from sequencer.runtime import Sequence, SequenceOutcome
from sequencer.schemas import SequenceStatus

logger = logging.getLogger(__name__)


def _strategy_from_args(args: argparse.Namespace) -> DecisionStrategy:
    if args.strategy == "index":
        return get_strategy("index", index=args.index)
    if args.strategy == "node":
        return get_strategy("node", node_id=args.node)
    if args.strategy == "random":
        return get_strategy("random", seed=args.seed)
    return get_strategy(args.strategy)


def _confirm(sequence: Sequence, outcome: SequenceOutcome) -> SequenceOutcome:
    """Ask on stdin until the pending decision is confirmed."""
    while outcome.status == SequenceStatus.SUSPENDED_DECISION:
        answer = input(
            f"Take '{outcome.pending_choice}'? "
            f"[enter to accept, or one of {', '.join(outcome.candidates)}] "
        ).strip()
        try:
            outcome = sequence.resume(answer or None)
        except InvalidChoiceError as e:
            print(e)
    return outcome


def cmd_demo(args: argparse.Namespace) -> int:
    config = RuntimeConfig()
    if args.max_steps is not None:
        config.max_steps = args.max_steps
    if args.confirm:
        config.confirm_decisions = True

    graph = build_demo_graph(_strategy_from_args(args))
    sequence = Sequence(graph, **config.sequence_kwargs())

    try:
        outcome = sequence.run()
        outcome = _confirm(sequence, outcome)
    except SequencerError as e:
        print(f"Sequence failed: {e}", file=sys.stderr)
        return 1
    except EOFError:
        print(
            f"No answer on stdin; decision at '{sequence.current_node_id()}' left unconfirmed",
            file=sys.stderr,
        )
        return 1

    print(f"Visited: {' -> '.join(sequence.path)}")
    print(f"Status: {outcome.status}")
    return 0 if outcome.status == SequenceStatus.COMPLETE else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sequencer",
        description="Sequencer - walk node graphs step by step",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument(
        "--log-format",
        choices=["auto", "human", "json"],
        default=None,
        help="Log output format (default: from configuration)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    demo = subparsers.add_parser("demo", help="Run the reference branching graph")
    demo.add_argument(
        "--strategy",
        choices=["random", "index", "node", "round_robin"],
        default="random",
        help="How decision1 picks its branch",
    )
    demo.add_argument("--index", type=int, default=0, help="Candidate index for --strategy index")
    demo.add_argument("--node", default="node4", help="Candidate id for --strategy node")
    demo.add_argument("--seed", type=int, default=None, help="Seed for --strategy random")
    demo.add_argument("--confirm", action="store_true", help="Confirm the decision on stdin")
    demo.add_argument("--max-steps", type=int, default=None, help="Fail after this many steps")
    demo.set_defaults(func=cmd_demo)

    args = parser.parse_args(argv)

    config = RuntimeConfig()
    configure_logging(
        level=args.log_level or config.log_level,
        format=args.log_format or config.log_format,
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

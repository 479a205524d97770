"""Sequencer error types.

Graph problems surface at construction time; node failures and lifecycle
misuse surface synchronously from ``Sequence.run()``/``Sequence.resume()``.
"""

from __future__ import annotations


class SequencerError(Exception):
    """Base error for everything raised by the sequencer."""


class InvalidGraphError(SequencerError):
    """The graph cannot be built.

    Raised when:
    - A successor or candidate references a node that does not exist
    - A decision node has no candidates
    - Two distinct nodes share the same id
    - The entry node is missing

    Never raised while a sequence is running.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = list(errors) if errors else [message]
        super().__init__(message)


class NodeExecutionError(SequencerError):
    """A node's action failed.

    The sequence attaches the id of the failing node before re-raising; the
    original exception, if any, is available as ``__cause__``.
    """

    def __init__(self, message: str, node_id: str | None = None) -> None:
        self.node_id = node_id
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.node_id:
            return f"[{self.node_id}] {message}"
        return message


class InvalidDecisionError(NodeExecutionError):
    """A strategy or node picked something that is not a candidate."""


class StepLimitExceeded(NodeExecutionError):
    """The sequence executed more nodes than its configured ``max_steps``."""


class SequenceError(SequencerError):
    """A sequence was driven in a way its lifecycle does not allow."""


class SequenceAlreadyFinished(SequenceError):
    """``run``/``resume`` called on a COMPLETE or FAILED sequence."""


class ResumeWithoutSuspensionError(SequenceError):
    """``resume`` called while the sequence is not suspended."""


class SequenceSuspendedError(SequenceError):
    """``run`` called on a sequence that was already started."""


class SequenceBusyError(SequenceError):
    """Another ``run``/``resume`` call is in progress on the same sequence."""


class InvalidChoiceError(SequenceError):
    """``resume`` confirmed a branch that is not one of the candidates.

    Unlike InvalidDecisionError this does not fail the sequence; it stays
    SUSPENDED_DECISION and can be resumed with a valid choice.
    """

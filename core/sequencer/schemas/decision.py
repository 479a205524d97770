"""
Decision Schema - a record of one branch taken by a sequence.

Every DECISION_REQUIRED response that a sequence resolves leaves one
DecisionRecord behind: which node decided, what the options were, what the
strategy proposed, what was actually taken and who confirmed it.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field


class DecisionSource(StrEnum):
    """Who settled a decision."""

    STRATEGY = "strategy"  # Auto-confirmed: the strategy's pick was taken as-is
    CALLER = "caller"  # Confirmed through Sequence.resume()


class DecisionRecord(BaseModel):
    """One resolved branch."""

    id: str
    node_id: str
    candidates: list[str] = Field(default_factory=list)
    proposed: str  # What the strategy picked
    chosen: str  # What the sequence actually moved to
    confirmed_by: DecisionSource = DecisionSource.STRATEGY
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"extra": "allow"}

    @computed_field
    @property
    def overridden(self) -> bool:
        """True when the caller took a different branch than the strategy proposed."""
        return self.proposed != self.chosen

"""Outcome of one pipeline stage applied to one message."""

from dataclasses import dataclass
from enum import Enum


class StageOutcome(Enum):
    """What a pipeline stage did to the message content."""

    UNCHANGED = "unchanged"
    TRANSFORMED = "transformed"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult:
    """Content leaving a stage, with the outcome and an optional reason.

    On ``FAILED`` the content is the original input, passed through unchanged.
    """

    outcome: StageOutcome
    content: str | None
    reason: str | None = None

    @classmethod
    def unchanged(cls, content: str | None, reason: str | None = None) -> "StageResult":
        return cls(StageOutcome.UNCHANGED, content, reason)

    @classmethod
    def transformed(cls, content: str) -> "StageResult":
        return cls(StageOutcome.TRANSFORMED, content)

    @classmethod
    def failed(cls, content: str | None, reason: str) -> "StageResult":
        return cls(StageOutcome.FAILED, content, reason)

    @property
    def is_transformed(self) -> bool:
        return self.outcome is StageOutcome.TRANSFORMED

    @property
    def is_failed(self) -> bool:
        return self.outcome is StageOutcome.FAILED

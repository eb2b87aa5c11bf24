from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


@dataclass(slots=True, frozen=True)
class ReplyPayload:
    """Structured auto-reply; encoding to the wire format happens at dispatch."""

    to: str
    subject_line: str
    body_text: str


class OutcomeKind(str, Enum):
    REPLIED = "replied"
    SKIPPED_ALREADY_REPLIED = "skipped_already_replied"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ProcessingOutcome:
    message_id: str
    kind: OutcomeKind
    reason: str | None = None
    # True when the reply went out but the message could not be marked.
    reply_sent: bool = False

    @property
    def duplicate_risk(self) -> bool:
        return self.kind is OutcomeKind.FAILED and self.reply_sent

    @classmethod
    def replied(cls, message_id: str) -> "ProcessingOutcome":
        return cls(message_id, OutcomeKind.REPLIED, reply_sent=True)

    @classmethod
    def skipped(cls, message_id: str) -> "ProcessingOutcome":
        return cls(message_id, OutcomeKind.SKIPPED_ALREADY_REPLIED)

    @classmethod
    def failed(cls, message_id: str, reason: str, reply_sent: bool = False) -> "ProcessingOutcome":
        return cls(message_id, OutcomeKind.FAILED, reason=reason, reply_sent=reply_sent)


@dataclass(slots=True)
class CycleReport:
    """Outcomes of one pass over the inbox, in processing order."""

    outcomes: List[ProcessingOutcome] = field(default_factory=list)
    aborted: bool = False
    abort_reason: str | None = None

    def add(self, outcome: ProcessingOutcome) -> None:
        self.outcomes.append(outcome)

    def abort(self, reason: str) -> None:
        self.aborted = True
        self.abort_reason = reason

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind is kind)

    @property
    def replied(self) -> int:
        return self.count(OutcomeKind.REPLIED)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeKind.SKIPPED_ALREADY_REPLIED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeKind.FAILED)

    @property
    def duplicate_risk(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.duplicate_risk)

    def failures(self) -> List[ProcessingOutcome]:
        return [outcome for outcome in self.outcomes if outcome.kind is OutcomeKind.FAILED]

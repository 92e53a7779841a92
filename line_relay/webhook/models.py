"""Data models for the LINE webhook pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class MessageEvent:
    """Actionable event: a user sent a text message."""

    reply_token: str
    source_user_id: str | None
    text: str
    message_id: str | None = None
    timestamp: int | None = None


@dataclass(frozen=True)
class OtherEvent:
    """Any event that does not call for a generated reply (follow, sticker, ...)."""

    event_type: str
    message_type: str | None = None


WebhookEvent = MessageEvent | OtherEvent


@dataclass(frozen=True)
class WebhookEnvelope:
    """Parsed webhook body: the ordered events of one delivery."""

    events: tuple[WebhookEvent, ...] = ()
    destination: str | None = None


@dataclass
class WebhookResponse:
    """HTTP response the handler returns to the platform."""

    status_code: int
    text: str


class HandlerState(str, Enum):
    RECEIVED = "received"
    VERIFYING = "verifying"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    PROCESSING = "processing"
    COMPLETED = "completed"


class EventOutcome(str, Enum):
    REPLIED = "replied"
    FALLBACK = "fallback"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class DispatchSummary:
    """Per-outcome counts for one dispatched envelope."""

    outcomes: list[EventOutcome] = field(default_factory=list)

    def count(self, outcome: EventOutcome) -> int:
        return sum(1 for o in self.outcomes if o is outcome)

    @property
    def replied(self) -> int:
        return self.count(EventOutcome.REPLIED)

    @property
    def fallback(self) -> int:
        return self.count(EventOutcome.FALLBACK)

    @property
    def failed(self) -> int:
        return self.count(EventOutcome.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(EventOutcome.SKIPPED)

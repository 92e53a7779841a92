"""Shared Pydantic data models for line-relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class EventType(str, Enum):
    AUTH_FAILURE = "auth_failure"
    DELIVERY_FAILURE = "delivery_failure"
    DISPATCH_ERROR = "dispatch_error"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Generation Models ---


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str


class GenerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    model: str | None = None
    finish_reason: str | None = None


# --- Event Log Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class EventRecord(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: EventType
    severity: Severity
    action: str
    result: str  # "rejected" | "failed" | "contained"
    source_ip: str | None = None
    details: dict[str, object] | None = None

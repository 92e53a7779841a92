"""LINE webhook pipeline.

This package provides:
- Signature verification
- Event parsing
- Concurrent dispatch with per-event fallback
- The request/response handler
"""

from line_relay.webhook.dispatcher import APOLOGY_REPLY, EventDispatcher
from line_relay.webhook.events import envelope_from_body, parse_envelope, parse_event
from line_relay.webhook.handler import WebhookHandler
from line_relay.webhook.models import (
    DispatchSummary,
    EventOutcome,
    HandlerState,
    MessageEvent,
    OtherEvent,
    WebhookEnvelope,
    WebhookEvent,
    WebhookResponse,
)
from line_relay.webhook.signature import (
    SIGNATURE_HEADER,
    SignatureVerifier,
    compute_signature,
    verify_signature,
)

__all__ = [
    # Components
    "EventDispatcher",
    "SignatureVerifier",
    "WebhookHandler",
    # Functions
    "compute_signature",
    "envelope_from_body",
    "parse_envelope",
    "parse_event",
    "verify_signature",
    # Models
    "DispatchSummary",
    "EventOutcome",
    "HandlerState",
    "MessageEvent",
    "OtherEvent",
    "WebhookEnvelope",
    "WebhookEvent",
    "WebhookResponse",
    # Constants
    "APOLOGY_REPLY",
    "SIGNATURE_HEADER",
]

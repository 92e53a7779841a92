"""Parsing of verified webhook bodies into typed events.

Only ``message`` events carrying a ``text`` message become MessageEvent.
Everything else, including shapes this module does not recognise, becomes an
inert OtherEvent. Parsing never raises on bad input.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from line_relay.errors import MalformedPayloadError
from line_relay.webhook.models import MessageEvent, OtherEvent, WebhookEnvelope, WebhookEvent

logger = logging.getLogger(__name__)


def parse_event(raw: Any) -> WebhookEvent:
    """Classify one raw event object."""
    if not isinstance(raw, dict):
        return OtherEvent(event_type="unknown")

    event_type = str(raw.get("type", "unknown"))
    message = raw.get("message")
    if event_type != "message" or not isinstance(message, dict):
        return OtherEvent(event_type=event_type)

    message_type = message.get("type")
    text = message.get("text")
    reply_token = raw.get("replyToken")
    if message_type != "text" or not isinstance(text, str) or not reply_token:
        return OtherEvent(event_type=event_type, message_type=message_type)

    source = raw.get("source") if isinstance(raw.get("source"), dict) else {}
    return MessageEvent(
        reply_token=str(reply_token),
        source_user_id=source.get("userId"),
        text=text,
        message_id=message.get("id"),
        timestamp=raw.get("timestamp"),
    )


def load_payload(body: bytes) -> dict[str, Any]:
    """Decode a webhook body strictly, raising MalformedPayloadError."""
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayloadError("Body is not valid JSON") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("events"), list):
        raise MalformedPayloadError("Body has no events list")
    return payload


def parse_envelope(payload: Any) -> WebhookEnvelope:
    """Build an envelope from a decoded payload; malformed input yields no events."""
    if not isinstance(payload, dict):
        return WebhookEnvelope()
    raw_events = payload.get("events")
    if not isinstance(raw_events, list):
        return WebhookEnvelope(destination=payload.get("destination"))
    return WebhookEnvelope(
        events=tuple(parse_event(e) for e in raw_events),
        destination=payload.get("destination"),
    )


def envelope_from_body(body: bytes) -> WebhookEnvelope:
    """Decode and parse a verified body, treating malformed bodies as empty batches."""
    try:
        payload = load_payload(body)
    except MalformedPayloadError as exc:
        logger.warning("Ignoring malformed webhook body: %s", exc)
        return WebhookEnvelope()
    return parse_envelope(payload)

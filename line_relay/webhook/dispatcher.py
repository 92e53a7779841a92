"""Event dispatcher: concurrent per-event generate-and-reply with isolation.

Each event runs in its own coroutine that catches its own failures, so the
join over all events only ever sees outcomes. A failed primary reply gets
exactly one fallback send with the same reply token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import assert_never

from line_relay.errors import DeliveryError
from line_relay.events_log import EventRecorder
from line_relay.generation.generator import ResponseGenerator
from line_relay.messaging.sender import ReplySender
from line_relay.models import EventRecord, EventType, Severity
from line_relay.webhook.models import (
    DispatchSummary,
    EventOutcome,
    MessageEvent,
    OtherEvent,
    WebhookEnvelope,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

APOLOGY_REPLY = (
    "Sorry, something went wrong while sending my reply. Please try again."
)


class EventDispatcher:
    """Fans an envelope out to the generator and sender, one task per event."""

    def __init__(
        self,
        generator: ResponseGenerator,
        sender: ReplySender,
        recorder: EventRecorder | None = None,
    ) -> None:
        self._generator = generator
        self._sender = sender
        self._recorder = recorder

    async def dispatch(self, envelope: WebhookEnvelope) -> DispatchSummary:
        outcomes = await asyncio.gather(
            *(self._process(event) for event in envelope.events)
        )
        summary = DispatchSummary(outcomes=list(outcomes))
        if envelope.events:
            logger.info(
                "Dispatched %d events: replied=%d fallback=%d failed=%d skipped=%d",
                len(outcomes), summary.replied, summary.fallback,
                summary.failed, summary.skipped,
            )
        return summary

    async def _process(self, event: WebhookEvent) -> EventOutcome:
        match event:
            case MessageEvent():
                return await self._reply(event)
            case OtherEvent():
                logger.debug(
                    "Skipping %s event (message type: %s)",
                    event.event_type, event.message_type,
                )
                return EventOutcome.SKIPPED
            case _:
                assert_never(event)

    async def _reply(self, event: MessageEvent) -> EventOutcome:
        logger.info("Received message from %s", event.source_user_id)
        try:
            text = await self._generator.generate(event.text)
            await self._sender.send(event.reply_token, text)
        except DeliveryError as exc:
            logger.warning("Primary reply failed, sending fallback: %s", exc)
        except Exception:
            logger.exception("Unexpected error while handling message event")
        else:
            return EventOutcome.REPLIED
        return await self._send_fallback(event)

    async def _send_fallback(self, event: MessageEvent) -> EventOutcome:
        try:
            await self._sender.send(event.reply_token, APOLOGY_REPLY)
        except Exception as exc:
            logger.error("Fallback reply failed for token %s: %s", event.reply_token, exc)
            self._record_failure(event, exc)
            return EventOutcome.FAILED
        return EventOutcome.FALLBACK

    def _record_failure(self, event: MessageEvent, exc: Exception) -> None:
        if self._recorder is None:
            return
        try:
            self._recorder.record(EventRecord(
                event_type=EventType.DELIVERY_FAILURE,
                severity=Severity.HIGH,
                action="fallback_reply",
                result="failed",
                details={
                    "reply_token": event.reply_token,
                    "source_user_id": event.source_user_id,
                    "error": str(exc),
                    "timed_out": isinstance(exc, DeliveryError) and exc.timed_out,
                },
            ))
        except Exception:
            logger.exception("Recording delivery failure failed")

"""Webhook handler: the request/response contract the platform requires.

Received -> Verifying -> Rejected (401) | Accepted -> Processing -> Completed (200).
Any non-authentication failure is contained here: the platform retries a
batch on non-200 and a retry would duplicate replies.
"""

from __future__ import annotations

import logging

from line_relay.errors import AuthenticationError
from line_relay.events_log import EventRecorder
from line_relay.models import EventRecord, EventType, Severity
from line_relay.webhook.dispatcher import EventDispatcher
from line_relay.webhook.events import envelope_from_body
from line_relay.webhook.models import HandlerState, WebhookResponse
from line_relay.webhook.signature import SignatureVerifier

logger = logging.getLogger(__name__)

OK_RESPONSE_TEXT = "OK"
REJECTED_RESPONSE_TEXT = "Invalid signature"


class WebhookHandler:
    """Verifies, dispatches and always answers 200 for authenticated requests."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        dispatcher: EventDispatcher,
        recorder: EventRecorder | None = None,
    ) -> None:
        self._verifier = verifier
        self._dispatcher = dispatcher
        self._recorder = recorder

    async def handle(
        self,
        body: bytes,
        signature: str | None,
        source_ip: str | None = None,
    ) -> WebhookResponse:
        self._transition(HandlerState.RECEIVED)
        self._transition(HandlerState.VERIFYING)
        try:
            self._verifier.require(body, signature)
        except AuthenticationError as exc:
            self._transition(HandlerState.REJECTED)
            logger.error("Invalid signature (%s)", exc)
            self._record(EventRecord(
                event_type=EventType.AUTH_FAILURE,
                severity=Severity.HIGH,
                action="verify_signature",
                result="rejected",
                source_ip=source_ip,
                details={"reason": str(exc)},
            ))
            return WebhookResponse(status_code=401, text=REJECTED_RESPONSE_TEXT)

        self._transition(HandlerState.ACCEPTED)
        self._transition(HandlerState.PROCESSING)
        try:
            envelope = envelope_from_body(body)
            await self._dispatcher.dispatch(envelope)
        except Exception as exc:
            logger.exception("Webhook processing error")
            self._record(EventRecord(
                event_type=EventType.DISPATCH_ERROR,
                severity=Severity.CRITICAL,
                action="dispatch",
                result="contained",
                source_ip=source_ip,
                details={"error": repr(exc)},
            ))

        self._transition(HandlerState.COMPLETED)
        return WebhookResponse(status_code=200, text=OK_RESPONSE_TEXT)

    def _record(self, event: EventRecord) -> None:
        if self._recorder is None:
            return
        try:
            self._recorder.record(event)
        except Exception:
            logger.exception("Recording %s event failed", event.event_type.value)

    @staticmethod
    def _transition(state: HandlerState) -> None:
        logger.debug("Webhook handler state: %s", state.value)

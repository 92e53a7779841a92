"""Reply sender: bounded-length, deadline-bounded text delivery."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from line_relay.errors import DeliveryError
from line_relay.messaging.client import text_message

logger = logging.getLogger(__name__)

# Platform ceiling is 5000 characters per text message.
MAX_TEXT_LENGTH = 4000
CONTINUATION_MARKER = "\n...(continued)"
REPLY_TIMEOUT_SECONDS = 10.0


class ReplyClient(Protocol):
    async def reply_message(
        self, reply_token: str, messages: list[dict[str, str]],
    ) -> dict[str, Any]: ...


def truncate_reply(text: str, limit: int = MAX_TEXT_LENGTH) -> str:
    """Cut text to limit characters and mark the cut; shorter text is unchanged."""
    if len(text) <= limit:
        return text
    return text[:limit] + CONTINUATION_MARKER


class ReplySender:
    """Delivers one text reply per call; every failure surfaces as DeliveryError.

    Cancellation is not a failure and propagates unchanged.
    """

    def __init__(
        self,
        client: ReplyClient,
        timeout: float = REPLY_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def send(self, reply_token: str, text: str) -> None:
        final_text = truncate_reply(text)
        logger.info(
            "Sending reply (token=%s, length=%d)", reply_token, len(final_text),
        )
        try:
            await asyncio.wait_for(
                self._client.reply_message(reply_token, [text_message(final_text)]),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            logger.error(
                "Reply timed out after %.1fs (token=%s)", self._timeout, reply_token,
            )
            raise DeliveryError(reply_token, "timeout", timed_out=True) from exc
        except Exception as exc:
            logger.error(
                "Reply failed (token=%s, length=%d): %s",
                reply_token, len(final_text), exc,
            )
            raise DeliveryError(reply_token, str(exc)) from exc
        logger.info("Reply delivered (token=%s)", reply_token)

"""Response generator: turns a user message into a displayable reply.

generate() never raises: every backend failure is mapped to a fixed
fallback sentence, with a distinct sentence for deadline expiry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence

from line_relay.generation.backend import GenerationBackend
from line_relay.generation.prompts import (
    STREAM_ERROR_REPLY,
    SYSTEM_PROMPT,
    TIMEOUT_REPLY,
    UNAVAILABLE_REPLY,
)
from line_relay.models import ChatMessage, ChatRole

logger = logging.getLogger(__name__)

GENERATION_TIMEOUT_SECONDS = 15.0


class ResponseGenerator:
    """Calls the generation backend with a fixed persona and a bounded deadline."""

    def __init__(
        self,
        backend: GenerationBackend,
        system_prompt: str = SYSTEM_PROMPT,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self._backend = backend
        self._system_prompt = system_prompt
        self._timeout = timeout

    def build_messages(
        self, user_message: str, history: Sequence[ChatMessage] = (),
    ) -> list[ChatMessage]:
        return [
            ChatMessage(role=ChatRole.SYSTEM, content=self._system_prompt),
            *history,
            ChatMessage(role=ChatRole.USER, content=user_message),
        ]

    async def generate(
        self, user_message: str, history: Sequence[ChatMessage] = (),
    ) -> str:
        messages = self.build_messages(user_message, history)
        try:
            result = await asyncio.wait_for(
                self._backend.complete(messages), timeout=self._timeout,
            )
        except TimeoutError:
            logger.warning("Generation exceeded %.1fs deadline", self._timeout)
            return TIMEOUT_REPLY
        except Exception:
            logger.exception("Generation backend failed")
            return UNAVAILABLE_REPLY
        return result.text

    async def stream(
        self, user_message: str, history: Sequence[ChatMessage] = (),
    ) -> AsyncIterator[str]:
        """Yield reply chunks; a failure ends the stream with one error chunk."""
        messages = self.build_messages(user_message, history)
        try:
            async for chunk in self._backend.stream(messages):
                yield chunk
        except Exception:
            logger.exception("Streaming generation failed")
            yield STREAM_ERROR_REPLY

"""Shared test fixtures for line-relay."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest

from line_relay.errors import LineApiError
from line_relay.events_log import EventLog
from line_relay.generation.backend import GenerationBackend
from line_relay.models import ChatMessage, GenerationResult
from line_relay.webhook.signature import compute_signature

CHANNEL_SECRET = "test-channel-secret"


class FakeBackend(GenerationBackend):
    """Backend returning a fixed reply, or raising/sleeping when configured."""

    def __init__(
        self,
        text: str = "hi there",
        error: Exception | None = None,
        delay: float = 0.0,
        chunks: Sequence[str] = (),
    ) -> None:
        self.text = text
        self.error = error
        self.delay = delay
        self.chunks = list(chunks)
        self.calls: list[list[ChatMessage]] = []
        self.closed = False

    async def complete(self, messages: Sequence[ChatMessage]) -> GenerationResult:
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return GenerationResult(text=self.text)

    async def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        self.calls.append(list(messages))
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class FakeMessagingClient:
    """Records reply calls; tokens listed in fail_tokens fail every time."""

    def __init__(
        self,
        fail_tokens: set[str] | None = None,
        fail_first: set[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.fail_tokens = fail_tokens or set()
        self.fail_first = set(fail_first or ())
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def reply_message(
        self, reply_token: str, messages: list[dict[str, str]],
    ) -> dict[str, Any]:
        self.calls.append({"replyToken": reply_token, "messages": messages})
        if reply_token in self.fail_tokens:
            raise self.error or LineApiError(500, "server error")
        if reply_token in self.fail_first:
            self.fail_first.discard(reply_token)
            raise self.error or LineApiError(500, "server error")
        return {"sentMessages": [{"id": "1"}]}

    def texts_for(self, reply_token: str) -> list[str]:
        return [
            m["text"]
            for call in self.calls if call["replyToken"] == reply_token
            for m in call["messages"]
        ]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def mock_recorder() -> MagicMock:
    return MagicMock(spec=EventLog)


# --- Factory functions for test data ---


def make_text_event(
    text: str = "hello",
    reply_token: str = "tok1",
    user_id: str = "U123",
) -> dict[str, Any]:
    return {
        "type": "message",
        "mode": "active",
        "timestamp": 1700000000000,
        "source": {"type": "user", "userId": user_id},
        "replyToken": reply_token,
        "message": {"id": "m1", "type": "text", "text": text},
    }


def make_sticker_event(reply_token: str = "tok-sticker") -> dict[str, Any]:
    return {
        "type": "message",
        "replyToken": reply_token,
        "source": {"type": "user", "userId": "U123"},
        "message": {"id": "m2", "type": "sticker", "packageId": "1", "stickerId": "1"},
    }


def make_follow_event(reply_token: str = "tok-follow") -> dict[str, Any]:
    return {
        "type": "follow",
        "replyToken": reply_token,
        "source": {"type": "user", "userId": "U123"},
    }


def make_body(*events: dict[str, Any]) -> bytes:
    return json.dumps({"destination": "Ubot", "events": list(events)}).encode()


def sign(body: bytes, secret: str = CHANNEL_SECRET) -> str:
    return compute_signature(body, secret.encode())

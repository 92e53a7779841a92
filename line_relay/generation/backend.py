"""Generation backend clients: ABC and an OpenAI-compatible implementation."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from line_relay.errors import GenerationError
from line_relay.models import ChatMessage, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"
DEFAULT_MODEL = "gemini-2.0-pro-exp-02-05"


class GenerationBackend(ABC):
    """Abstract text-generation backend. Shared by concurrent requests."""

    @abstractmethod
    async def complete(self, messages: Sequence[ChatMessage]) -> GenerationResult: ...

    @abstractmethod
    def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]: ...

    async def aclose(self) -> None:
        return None


def _to_wire(messages: Sequence[ChatMessage]) -> list[dict[str, str]]:
    return [{"role": m.role.value, "content": m.content} for m in messages]


class ChatCompletionsBackend(GenerationBackend):
    """Calls an OpenAI-compatible ``/chat/completions`` endpoint over httpx."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        # Caller deadlines are shorter; this only bounds abandoned calls.
        self._client = client or httpx.AsyncClient(timeout=60.0, verify=True)

    @property
    def model(self) -> str:
        return self._model

    def _request_body(
        self, messages: Sequence[ChatMessage], stream: bool = False,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"model": self._model, "messages": _to_wire(messages)}
        if stream:
            body["stream"] = True
        return body

    async def complete(self, messages: Sequence[ChatMessage]) -> GenerationResult:
        resp = await self._client.post(
            self._url, json=self._request_body(messages), headers=self._headers,
        )
        if resp.status_code >= 400:
            raise GenerationError(
                f"Backend returned {resp.status_code}: {resp.text[:200]}"
            )
        try:
            data = resp.json()
            choice = data["choices"][0]
            text = choice["message"]["content"]
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as exc:
            raise GenerationError("Malformed backend response") from exc
        return GenerationResult(
            text=text or "",
            model=data.get("model"),
            finish_reason=choice.get("finish_reason"),
        )

    async def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        request = self._client.build_request(
            "POST",
            self._url,
            json=self._request_body(messages, stream=True),
            headers=self._headers,
        )
        resp = await self._client.send(request, stream=True)
        try:
            if resp.status_code >= 400:
                await resp.aread()
                raise GenerationError(
                    f"Backend returned {resp.status_code}: {resp.text[:200]}"
                )
            async for line in resp.aiter_lines():
                chunk = _parse_sse_line(line)
                if chunk is None:
                    continue
                if chunk is _DONE:
                    break
                yield chunk
        finally:
            await resp.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()


_DONE = "\x00done"


def _parse_sse_line(line: str) -> str | None:
    """Extract the content delta from one server-sent event line."""
    if not line.startswith("data:"):
        return None
    data = line[5:].strip()
    if data == "[DONE]":
        return _DONE
    try:
        event = json.loads(data)
        delta = event["choices"][0].get("delta", {})
    except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError):
        logger.debug("Skipping unparseable stream line: %r", line[:100])
        return None
    content = delta.get("content") if isinstance(delta, dict) else None
    return content or None

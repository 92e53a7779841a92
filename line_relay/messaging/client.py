"""LINE Messaging API client for reply delivery.

One instance is created at startup and shared by all in-flight requests;
it holds only the channel access token and a pooled httpx.AsyncClient.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from line_relay.errors import LineApiError

logger = logging.getLogger(__name__)

LINE_API_BASE = "https://api.line.me"
_REPLY_PATH = "/v2/bot/message/reply"


def text_message(text: str) -> dict[str, str]:
    return {"type": "text", "text": text}


class LineMessagingClient:
    """Thin async wrapper over the reply endpoint of the Messaging API."""

    def __init__(
        self,
        channel_access_token: str,
        base_url: str = LINE_API_BASE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{_REPLY_PATH}"
        self._headers = {"Authorization": f"Bearer {channel_access_token}"}
        self._client = client or httpx.AsyncClient(timeout=30.0, verify=True)

    async def reply_message(
        self, reply_token: str, messages: list[dict[str, str]],
    ) -> dict[str, Any]:
        """Send messages for reply_token; raises LineApiError on non-2xx."""
        payload = {"replyToken": reply_token, "messages": messages}
        resp = await self._client.post(self._url, json=payload, headers=self._headers)
        if resp.status_code >= 400:
            raise LineApiError(resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError:
            return {}

    async def aclose(self) -> None:
        await self._client.aclose()

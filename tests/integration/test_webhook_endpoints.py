"""Integration tests for the HTTP surface of the relay app."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from line_relay.config import Settings
from line_relay.generation.backend import ChatCompletionsBackend
from line_relay.messaging.client import LineMessagingClient
from line_relay.server.app import build_components, create_app
from line_relay.webhook.dispatcher import APOLOGY_REPLY
from tests.conftest import (
    CHANNEL_SECRET,
    FakeBackend,
    FakeMessagingClient,
    make_body,
    make_follow_event,
    make_text_event,
    sign,
)


def _make_settings(**kwargs: Any) -> Settings:
    defaults: dict[str, Any] = {
        "channel_secret": CHANNEL_SECRET,
        "channel_access_token": "access-token",
        "generation_api_key": "api-key",
    }
    defaults.update(kwargs)
    return Settings(**defaults)


def _make_app(
    client: FakeMessagingClient | None = None,
    backend: FakeBackend | None = None,
    **settings_kwargs: Any,
) -> Any:
    settings = _make_settings(**settings_kwargs)
    components = build_components(
        settings,
        messaging_client=client or FakeMessagingClient(),  # type: ignore[arg-type]
        backend=backend or FakeBackend(text="hi there"),
    )
    return create_app(settings, components)


async def _post_webhook(app: Any, body: bytes, signature: str | None) -> httpx.Response:
    headers = {"content-type": "application/json"}
    if signature is not None:
        headers["x-line-signature"] = signature
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/webhook", content=body, headers=headers)


class TestAuxiliaryEndpoints:
    @pytest.mark.asyncio
    async def test_root_liveness(self) -> None:
        transport = ASGITransport(app=_make_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/")
            assert resp.status_code == 200
            assert "running" in resp.text

    @pytest.mark.asyncio
    async def test_health(self) -> None:
        transport = ASGITransport(app=_make_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health")
            assert resp.status_code == 200
            assert resp.text == "OK"


class TestWebhookEndpoint:
    @pytest.mark.asyncio
    async def test_end_to_end_reply(self) -> None:
        client = FakeMessagingClient()
        body = make_body(make_text_event(text="hello", reply_token="tok1"))
        resp = await _post_webhook(_make_app(client), body, sign(body))

        assert resp.status_code == 200
        assert resp.text == "OK"
        assert client.calls == [
            {"replyToken": "tok1", "messages": [{"type": "text", "text": "hi there"}]},
        ]

    @pytest.mark.asyncio
    async def test_missing_signature_401(self) -> None:
        resp = await _post_webhook(_make_app(), make_body(make_text_event()), None)
        assert resp.status_code == 401
        assert resp.text == "Invalid signature"

    @pytest.mark.asyncio
    async def test_invalid_signature_401(self) -> None:
        body = make_body(make_text_event())
        resp = await _post_webhook(_make_app(), body, sign(body, "wrong-secret"))
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_signature_checked_over_raw_bytes(self) -> None:
        """Re-serialising the JSON would change the bytes and break the signature."""
        client = FakeMessagingClient()
        body = b'{ "events" : [ ' + json.dumps(make_text_event()).encode() + b" ] }"
        resp = await _post_webhook(_make_app(client), body, sign(body))
        assert resp.status_code == 200
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_non_text_events_200_without_reply(self) -> None:
        client = FakeMessagingClient()
        body = make_body(make_follow_event())
        resp = await _post_webhook(_make_app(client), body, sign(body))
        assert resp.status_code == 200
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_malformed_json_200(self) -> None:
        body = b"{not json"
        resp = await _post_webhook(_make_app(), body, sign(body))
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_double_delivery_failure_200(self, tmp_path: Path) -> None:
        client = FakeMessagingClient(fail_tokens={"tok1"})
        log_path = tmp_path / "events.jsonl"
        body = make_body(make_text_event(reply_token="tok1"))
        app = _make_app(client, event_log_path=str(log_path))
        resp = await _post_webhook(app, body, sign(body))

        assert resp.status_code == 200
        assert client.texts_for("tok1") == ["hi there", APOLOGY_REPLY]
        entry = json.loads(log_path.read_text().strip())
        assert entry["event_type"] == "delivery_failure"


class TestOutboundWiring:
    @pytest.mark.asyncio
    async def test_real_clients_over_mock_transports(self) -> None:
        line_requests: list[httpx.Request] = []

        def llm_handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": "hi there"}}]})

        def line_handler(request: httpx.Request) -> httpx.Response:
            line_requests.append(request)
            return httpx.Response(200, json={})

        settings = _make_settings()
        components = build_components(
            settings,
            messaging_client=LineMessagingClient(
                "access-token",
                client=httpx.AsyncClient(transport=httpx.MockTransport(line_handler)),
            ),
            backend=ChatCompletionsBackend(
                api_key="api-key",
                client=httpx.AsyncClient(transport=httpx.MockTransport(llm_handler)),
            ),
        )
        body = make_body(make_text_event(text="hello", reply_token="tok1"))
        resp = await _post_webhook(create_app(settings, components), body, sign(body))

        assert resp.status_code == 200
        assert json.loads(line_requests[0].content) == {
            "replyToken": "tok1",
            "messages": [{"type": "text", "text": "hi there"}],
        }


class TestChatStreamEndpoint:
    def test_route_absent_without_token(self) -> None:
        routes = [r.path for r in _make_app().routes]
        assert "/chat/stream" not in routes

    def test_route_registered_with_token(self) -> None:
        routes = [r.path for r in _make_app(chat_api_token="chat-token").routes]
        assert "/chat/stream" in routes

    @pytest.mark.asyncio
    async def test_streams_sse_chunks(self) -> None:
        app = _make_app(backend=FakeBackend(chunks=["Hel", "lo\nworld"]), chat_api_token="chat-token")
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post(
                "/chat/stream",
                json={"message": "hi", "history": [{"role": "user", "content": "before"}]},
                headers={"Authorization": "Bearer chat-token"},
            )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.text == (
            "data: Hel\n\n"
            "data: lo\ndata: world\n\n"
            "data: [DONE]\n\n"
        )

    @pytest.mark.asyncio
    async def test_requires_bearer_token(self) -> None:
        app = _make_app(chat_api_token="chat-token")
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            missing = await client.post("/chat/stream", json={"message": "hi"})
            wrong = await client.post(
                "/chat/stream", json={"message": "hi"},
                headers={"Authorization": "Bearer nope"},
            )
        assert missing.status_code == 401
        assert wrong.status_code == 403

    @pytest.mark.asyncio
    async def test_webhook_unaffected_by_chat_token(self) -> None:
        body = make_body()
        resp = await _post_webhook(_make_app(chat_api_token="chat-token"), body, sign(body))
        assert resp.status_code == 200


class TestCreateAppFromEnv:
    def test_missing_env_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from line_relay.errors import ConfigError
        from line_relay.server.app import create_app_from_env

        for name in ("LINE_CHANNEL_SECRET", "LINE_CHANNEL_ACCESS_TOKEN",
                     "GENERATION_API_KEY", "GOOGLE_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        with pytest.raises(ConfigError):
            create_app_from_env()

    def test_builds_app_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from line_relay.server.app import create_app_from_env

        monkeypatch.setenv("LINE_CHANNEL_SECRET", "s")
        monkeypatch.setenv("LINE_CHANNEL_ACCESS_TOKEN", "t")
        monkeypatch.setenv("GENERATION_API_KEY", "k")
        app = create_app_from_env()
        assert "/webhook" in [r.path for r in app.routes]

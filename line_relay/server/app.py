"""FastAPI application exposing the LINE webhook."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import BaseModel, Field

from line_relay.config import Settings
from line_relay.events_log import EventLog, EventRecorder
from line_relay.generation.backend import ChatCompletionsBackend, GenerationBackend
from line_relay.generation.generator import ResponseGenerator
from line_relay.generation.prompts import load_system_prompt
from line_relay.messaging.client import LineMessagingClient
from line_relay.messaging.sender import ReplySender
from line_relay.models import ChatMessage
from line_relay.server.auth_middleware import BearerAuthMiddleware
from line_relay.webhook.dispatcher import EventDispatcher
from line_relay.webhook.handler import WebhookHandler
from line_relay.webhook.signature import SIGNATURE_HEADER, SignatureVerifier

logger = logging.getLogger(__name__)

CHAT_STREAM_PATH = "/chat/stream"


class ChatStreamRequest(BaseModel):
    message: str = Field(min_length=1)
    history: list[ChatMessage] = Field(default_factory=list)


@dataclass
class Components:
    """Long-lived collaborators built once per process."""

    handler: WebhookHandler
    generator: ResponseGenerator
    messaging_client: LineMessagingClient
    backend: GenerationBackend


def build_components(
    settings: Settings,
    messaging_client: LineMessagingClient | None = None,
    backend: GenerationBackend | None = None,
    recorder: EventRecorder | None = None,
) -> Components:
    """Wire the pipeline from settings; clients may be injected for tests."""
    messaging_client = messaging_client or LineMessagingClient(
        settings.channel_access_token, base_url=settings.line_api_base_url,
    )
    backend = backend or ChatCompletionsBackend(
        api_key=settings.generation_api_key,
        model=settings.generation_model,
        base_url=settings.generation_base_url,
    )
    if recorder is None and settings.event_log_path:
        recorder = EventLog.from_env(settings.event_log_path)

    generator = ResponseGenerator(
        backend,
        system_prompt=load_system_prompt(settings.system_prompt, settings.system_prompt_path),
        timeout=settings.generation_timeout,
    )
    sender = ReplySender(messaging_client, timeout=settings.reply_timeout)
    dispatcher = EventDispatcher(generator, sender, recorder=recorder)
    handler = WebhookHandler(
        SignatureVerifier(settings.channel_secret), dispatcher, recorder=recorder,
    )
    return Components(
        handler=handler,
        generator=generator,
        messaging_client=messaging_client,
        backend=backend,
    )


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    return create_app(Settings.from_env())


def create_app(
    settings: Settings,
    components: Components | None = None,
) -> FastAPI:
    """Create the webhook app; the stream route exists only with CHAT_API_TOKEN."""
    components = components or build_components(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("LINE relay started (model=%s)", settings.generation_model)
        yield
        await components.messaging_client.aclose()
        await components.backend.aclose()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.components = components

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "LINE relay bot is running"

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return "OK"

    @app.post("/webhook")
    async def webhook(request: Request) -> PlainTextResponse:
        body = await request.body()
        result = await components.handler.handle(
            body,
            request.headers.get(SIGNATURE_HEADER),
            source_ip=request.client.host if request.client else None,
        )
        return PlainTextResponse(result.text, status_code=result.status_code)

    if settings.chat_api_token:

        @app.post(CHAT_STREAM_PATH)
        async def chat_stream(payload: ChatStreamRequest) -> StreamingResponse:
            async def event_iterator() -> AsyncIterator[str]:
                async for chunk in components.generator.stream(
                    payload.message, payload.history,
                ):
                    yield _sse_event(chunk)
                yield _sse_event("[DONE]")

            return StreamingResponse(event_iterator(), media_type="text/event-stream")

        app.add_middleware(
            BearerAuthMiddleware,
            token=settings.chat_api_token,
            protected_paths=frozenset({CHAT_STREAM_PATH}),
        )

    return app


def _sse_event(data: str) -> str:
    """Encode data as one server-sent event, one ``data:`` line per text line."""
    return "".join(f"data: {line}\n" for line in data.split("\n")) + "\n"

"""Environment-driven configuration for the relay service."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from line_relay.errors import ConfigError
from line_relay.generation.backend import DEFAULT_BASE_URL, DEFAULT_MODEL
from line_relay.generation.generator import GENERATION_TIMEOUT_SECONDS
from line_relay.messaging.client import LINE_API_BASE
from line_relay.messaging.sender import REPLY_TIMEOUT_SECONDS


@dataclass(frozen=True)
class Settings:
    channel_secret: str
    channel_access_token: str
    generation_api_key: str
    line_api_base_url: str = LINE_API_BASE
    generation_base_url: str = DEFAULT_BASE_URL
    generation_model: str = DEFAULT_MODEL
    generation_timeout: float = GENERATION_TIMEOUT_SECONDS
    reply_timeout: float = REPLY_TIMEOUT_SECONDS
    system_prompt: str | None = None
    system_prompt_path: str | None = None
    event_log_path: str | None = None
    chat_api_token: str | None = None
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from the environment; all missing secrets are reported at once."""
        env = os.environ if environ is None else environ
        channel_secret = env.get("LINE_CHANNEL_SECRET", "")
        access_token = env.get("LINE_CHANNEL_ACCESS_TOKEN", "")
        api_key = env.get("GENERATION_API_KEY") or env.get("GOOGLE_API_KEY", "")

        missing = [
            name for name, value in (
                ("LINE_CHANNEL_SECRET", channel_secret),
                ("LINE_CHANNEL_ACCESS_TOKEN", access_token),
                ("GENERATION_API_KEY", api_key),
            ) if not value
        ]
        if missing:
            raise ConfigError(missing)

        try:
            return cls(
                channel_secret=channel_secret,
                channel_access_token=access_token,
                generation_api_key=api_key,
                line_api_base_url=env.get("LINE_API_BASE_URL", LINE_API_BASE),
                generation_base_url=env.get("GENERATION_BASE_URL", DEFAULT_BASE_URL),
                generation_model=env.get("GENERATION_MODEL", DEFAULT_MODEL),
                generation_timeout=float(
                    env.get("GENERATION_TIMEOUT", GENERATION_TIMEOUT_SECONDS),
                ),
                reply_timeout=float(env.get("REPLY_TIMEOUT", REPLY_TIMEOUT_SECONDS)),
                system_prompt=env.get("SYSTEM_PROMPT") or None,
                system_prompt_path=env.get("SYSTEM_PROMPT_PATH") or None,
                event_log_path=env.get("EVENT_LOG_PATH") or None,
                chat_api_token=env.get("CHAT_API_TOKEN") or None,
                port=int(env.get("PORT", "3000")),
                log_level=env.get("LOG_LEVEL", "INFO").upper(),
            )
        except ValueError as exc:
            raise ConfigError([f"invalid numeric value ({exc})"]) from exc

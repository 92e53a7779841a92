"""Exception hierarchy for the LINE relay pipeline."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class AuthenticationError(RelayError):
    """Webhook signature is missing or does not match the channel secret."""


class MalformedPayloadError(RelayError):
    """Webhook body is not JSON or does not carry an events list."""


class GenerationError(RelayError):
    """Generation backend failed or returned an unusable response."""


class DeliveryError(RelayError):
    """Reply could not be delivered to the messaging platform."""

    def __init__(self, reply_token: str, reason: str, *, timed_out: bool = False) -> None:
        self.reply_token = reply_token
        self.timed_out = timed_out
        super().__init__(f"Reply delivery failed: {reason}")


class LineApiError(RelayError):
    """Messaging API answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"LINE API returned {status_code}: {body[:200]}")

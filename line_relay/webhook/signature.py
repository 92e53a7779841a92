"""LINE webhook signature verification.

The platform signs every webhook body with HMAC-SHA256 keyed by the channel
secret and sends the base64 digest in the ``x-line-signature`` header.
Comparison is constant-time via hmac.compare_digest.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

from line_relay.errors import AuthenticationError

SIGNATURE_HEADER = "x-line-signature"


def compute_signature(body: bytes, channel_secret: bytes) -> str:
    """Return the base64 HMAC-SHA256 of body keyed by channel_secret."""
    digest = hmac.new(channel_secret, body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(
    body: bytes, signature: str | None, channel_secret: bytes,
) -> bool:
    """Return True only if signature is the correct digest of body.

    Fails closed: a missing signature or an empty secret is rejected without
    computing the HMAC.
    """
    if not signature or not channel_secret:
        return False
    expected = compute_signature(body, channel_secret)
    return hmac.compare_digest(signature.encode("ascii", "replace"), expected.encode("ascii"))


class SignatureVerifier:
    """Verifies webhook bodies against a channel secret held at construction."""

    def __init__(self, channel_secret: str | bytes) -> None:
        if isinstance(channel_secret, str):
            channel_secret = channel_secret.encode()
        self._channel_secret = channel_secret

    def verify(self, body: bytes, signature: str | None) -> bool:
        return verify_signature(body, signature, self._channel_secret)

    def require(self, body: bytes, signature: str | None) -> None:
        """Raise AuthenticationError unless signature matches body."""
        if not signature:
            raise AuthenticationError("missing")
        if not self.verify(body, signature):
            raise AuthenticationError("mismatch")

    def sign(self, body: bytes) -> str:
        return compute_signature(body, self._channel_secret)

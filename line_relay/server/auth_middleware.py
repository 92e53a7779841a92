"""ASGI middleware guarding selected paths with a Bearer token."""

from __future__ import annotations

import hmac
import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class BearerAuthMiddleware:
    """Validates Bearer tokens on protected paths using constant-time comparison.

    The webhook authenticates with its own signature, so only the paths
    listed in protected_paths are checked here.
    """

    def __init__(
        self,
        app: ASGIApp,
        token: str,
        protected_paths: frozenset[str],
    ) -> None:
        self.app = app
        self._token = token.encode()
        self._protected_paths = protected_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        path = request.url.path
        if path not in self._protected_paths:
            await self.app(scope, receive, send)
            return

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            logger.warning("Rejected %s %s: missing bearer token", request.method, path)
            response = JSONResponse({"error": "Authentication required"}, status_code=401)
            await response(scope, receive, send)
            return

        if not hmac.compare_digest(auth_header[7:].encode(), self._token):
            logger.warning("Rejected %s %s: invalid bearer token", request.method, path)
            response = JSONResponse({"error": "Access denied"}, status_code=403)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

"""
WebSocket handshake authentication middleware.

Looks for a bearer credential on the transport handshake and records the
outcome in the scope. The handshake result is informational: chat frames
are only authorized by the credential carried in the session's own
"connect" frame (see consumers.py), because proxies between the client
and this process may strip handshake headers.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Token Passing Methods (in order of precedence):
    1. Query string: ws://host/ws/chat/?token=<jwt_token>
    2. Header: Authorization: Bearer <jwt_token>
    3. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>

Scope keys set:
    handshake_auth: "verified", "anonymous" (no token; diagnostic use only)
        or "invalid" (token present but rejected)
    handshake_identity: VerifiedIdentity or None

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware

from authentication.identity import IdentityProvider
from core.helpers import extract_bearer_token

logger = logging.getLogger(__name__)


class HandshakeAuth:
    """Values of scope["handshake_auth"]."""

    VERIFIED = "verified"
    ANONYMOUS = "anonymous"
    INVALID = "invalid"


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket handshakes.

    Usage:
        # Client connection with query string
        ws = new WebSocket("ws://host/ws/chat/?token=eyJ...")

        # Client connection with subprotocol
        ws = new WebSocket("ws://host/ws/chat/", ["jwt", "eyJ..."])
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = (
            self._get_token_from_query(scope)
            or self._get_token_from_header(scope)
            or self._get_token_from_subprotocol(scope)
        )

        if token is None:
            scope["handshake_auth"] = HandshakeAuth.ANONYMOUS
            scope["handshake_identity"] = None
        else:
            result = await database_sync_to_async(IdentityProvider.verify)(token)
            if result.success:
                scope["handshake_auth"] = HandshakeAuth.VERIFIED
                scope["handshake_identity"] = result.data
            else:
                logger.warning(f"WebSocket handshake carried a rejected token: {result.error_code}")
                scope["handshake_auth"] = HandshakeAuth.INVALID
                scope["handshake_identity"] = None

        return await super().__call__(scope, receive, send)

    @staticmethod
    def _get_token_from_query(scope) -> str | None:
        """Extract token from query string."""
        query_string = scope.get("query_string", b"").decode("latin-1")
        token_list = parse_qs(query_string).get("token", [])
        return token_list[0] if token_list and token_list[0] else None

    @staticmethod
    def _get_token_from_header(scope) -> str | None:
        """Extract token from an Authorization: Bearer header."""
        for name, value in scope.get("headers", []):
            if name.lower() == b"authorization":
                return extract_bearer_token(value)
        return None

    @staticmethod
    def _get_token_from_subprotocol(scope) -> str | None:
        """
        Extract token from WebSocket subprotocol.

        Expects: Sec-WebSocket-Protocol: jwt, <token>
        """
        subprotocols = scope.get("subprotocols", [])
        if len(subprotocols) >= 2 and subprotocols[0] == "jwt":
            return subprotocols[1]
        return None

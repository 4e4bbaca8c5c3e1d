"""
ASGI middleware resolving ``?token=<DRF token>`` to ``scope["user"]``.

Browsers cannot set an ``Authorization`` header on a WebSocket handshake,
so the token travels in the query string.  Unknown or missing tokens leave
an ``AnonymousUser`` in the scope and the consumer closes the socket.
"""
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from core.authentication import user_for_token


@database_sync_to_async
def _resolve(key: str):
    return user_for_token(key) or AnonymousUser()


class TokenAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        if "user" not in scope:
            query = parse_qs((scope.get("query_string") or b"").decode("latin-1"))
            key = (query.get("token") or [""])[0]
            scope["user"] = await _resolve(key)
        return await super().__call__(scope, receive, send)

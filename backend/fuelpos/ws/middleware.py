# fuelpos/ws/middleware.py
import logging
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from django.contrib.auth.models import AnonymousUser

logger = logging.getLogger(__name__)


@database_sync_to_async
def get_user_from_token(raw_token):
    # imported at call time: the app registry is not ready when asgi.py imports this module
    from django.contrib.auth import get_user_model
    from rest_framework_simplejwt.exceptions import TokenError
    from rest_framework_simplejwt.tokens import AccessToken

    try:
        token = AccessToken(raw_token)
    except TokenError as exc:
        logger.debug("websocket token rejected: %s", exc)
        return AnonymousUser()
    User = get_user_model()
    user = User.objects.filter(pk=token.get("user_id"), is_active=True).first()
    return user or AnonymousUser()


def _token_from_scope(scope):
    query_string = scope.get("query_string", b"").decode()
    qs = parse_qs(query_string)
    token_list = qs.get("token") or qs.get("access_token")
    if token_list:
        return token_list[0]
    headers = {k.decode().lower(): v.decode() for k, v in scope.get("headers", [])}
    auth = headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return None


class TokenAuthMiddleware:
    """
    ASGI middleware that reads a simplejwt access token from ?token=... or
    an Authorization header and sets scope["user"]. Without a token the
    session user set by AuthMiddlewareStack is kept.
    """

    def __init__(self, inner):
        self.inner = inner

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = _token_from_scope(scope)
        if token:
            scope["user"] = await get_user_from_token(token)
        elif "user" not in scope:
            scope["user"] = AnonymousUser()
        return await self.inner(scope, receive, send)


def TokenAuthMiddlewareStack(inner):
    """Use in asgi.py as TokenAuthMiddlewareStack(URLRouter(...))."""
    return AuthMiddlewareStack(TokenAuthMiddleware(inner))

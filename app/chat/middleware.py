"""
WebSocket authentication middleware.

Provides JWT authentication for WebSocket connections using the same
simplejwt access tokens the REST API issues.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Token sources (in order of precedence):
    1. Auth cookie: the http-only cookie set by login/signup (browsers)
    2. Query string: ws://host/ws/chat/?token=<jwt_token> (other clients)

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
from http.cookies import SimpleCookie
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from chat.constants import PRESENCE_CONFIG

logger = logging.getLogger(__name__)


def get_token_from_cookie(scope) -> str | None:
    for name, value in scope.get("headers", []):
        if name == b"cookie":
            cookie = SimpleCookie()
            cookie.load(value.decode("latin-1"))
            morsel = cookie.get(settings.AUTH_COOKIE_NAME)
            if morsel is not None and morsel.value:
                return morsel.value
    return None


def get_token_from_query(scope) -> str | None:
    params = parse_qs(scope.get("query_string", b"").decode())
    token_list = params.get(PRESENCE_CONFIG.TOKEN_QUERY_PARAM, [])
    return token_list[0] if token_list else None


@database_sync_to_async
def get_user_from_token(token: str):
    """
    Validate a JWT access token and load its user.

    Returns:
        User instance if valid and active, AnonymousUser otherwise
    """
    from django.contrib.auth import get_user_model

    User = get_user_model()

    try:
        access_token = AccessToken(token)
    except TokenError as e:
        logger.warning(f"Invalid JWT token on websocket: {e}")
        return AnonymousUser()

    user_id = access_token.get(settings.SIMPLE_JWT.get("USER_ID_CLAIM", "user_id"))
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        logger.warning(f"Websocket token for unknown user {user_id}")
        return AnonymousUser()
    if not user.is_active:
        logger.warning(f"Inactive user attempted WebSocket connection: {user_id}")
        return AnonymousUser()
    return user


class JWTAuthMiddleware(BaseMiddleware):
    """
    Attaches scope["user"] from a JWT in the auth cookie or query string.

    Connections without a valid token get AnonymousUser; the consumer
    decides what to do with them.
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = get_token_from_cookie(scope) or get_token_from_query(scope)

        if token:
            scope["user"] = await get_user_from_token(token)
        else:
            scope["user"] = AnonymousUser()

        return await super().__call__(scope, receive, send)

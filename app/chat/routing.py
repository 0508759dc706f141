"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - The user's live connection (one per tab/device)

Authentication:
    JWTAuthMiddleware attaches the user from the auth cookie or the
    ?token=<jwt_access_token> query parameter.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]

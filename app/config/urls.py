"""
Root URL configuration.

URL Structure:
    /                       - ReDoc API documentation
    /schema/                - OpenAPI schema (YAML)
    /admin/                 - Django admin interface
    /health/                - Health check endpoint (load balancers, Docker)
    /api/v1/auth/           - Signup, login, password reset, profile
    /api/v1/users/          - User search, friend requests, friends
    /api/v1/conversations/  - Direct and group conversations
    /api/v1/messages/       - Messages and read receipts

WebSocket routes live in chat/routing.py and are mounted by config/asgi.py.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from chat.urls import conversation_urlpatterns, message_urlpatterns
from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("users/", include("friends.urls")),
    path(
        "conversations/",
        include((conversation_urlpatterns, "conversations")),
    ),
    path("messages/", include((message_urlpatterns, "messages"))),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Connectify Admin"
admin.site.site_title = "Connectify Admin"
admin.site.index_title = "Chat administration"

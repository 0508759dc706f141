"""
DRF authentication backed by the JWT auth cookie.

The login and signup endpoints set the access token as an http-only cookie
(settings.AUTH_COOKIE_NAME). Browser clients never see the token; API
clients and tests can still send "Authorization: Bearer <token>".

Usage (settings.py):
    REST_FRAMEWORK = {
        "DEFAULT_AUTHENTICATION_CLASSES": [
            "authentication.authentication.CookieJWTAuthentication",
        ],
    }
"""

from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication


class CookieJWTAuthentication(JWTAuthentication):
    """
    JWT authentication reading the auth cookie first, then the header.

    An invalid or expired cookie fails authentication (401) rather than
    silently falling back to anonymous access.
    """

    def authenticate(self, request):
        raw_token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
        if not raw_token:
            return super().authenticate(request)

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token

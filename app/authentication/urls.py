"""
URL configuration for authentication app.

URL structure (prefixed with /api/v1/auth/):
    signup/                  - Create account (POST)
    login/                   - Log in with email or username (POST)
    logout/                  - Clear the auth cookie (POST)
    check/                   - Current user (GET)
    update-profile/          - Profile picture / username (PUT)
    forgot-password/         - Request reset email (POST)
    reset-password/<token>/  - Redeem reset token (POST)
"""

from django.urls import path

from authentication.views import (
    CheckAuthView,
    ForgotPasswordView,
    LoginView,
    LogoutView,
    ResetPasswordView,
    SignupView,
    UpdateProfileView,
)

app_name = "authentication"

urlpatterns = [
    path("signup/", SignupView.as_view(), name="signup"),
    path("login/", LoginView.as_view(), name="login"),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("check/", CheckAuthView.as_view(), name="check"),
    path("update-profile/", UpdateProfileView.as_view(), name="update-profile"),
    path("forgot-password/", ForgotPasswordView.as_view(), name="forgot-password"),
    path(
        "reset-password/<str:token>/",
        ResetPasswordView.as_view(),
        name="reset-password",
    ),
]

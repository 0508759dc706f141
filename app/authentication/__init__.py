"""
Authentication app.

Users, credentials and profile management for the chat backend. Sessions
are JWT access tokens carried in an http-only cookie (see
authentication.authentication.CookieJWTAuthentication).
"""

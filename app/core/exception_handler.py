"""
DRF exception handler mapping every failure onto one error body.

Installed via REST_FRAMEWORK["EXCEPTION_HANDLER"]. Produces:

    {"message": str, "error_code": str, "details"?: {...}}

Mapping:
    BaseApplicationError subclasses -> their own status and code
    DRF ValidationError             -> 400 VALIDATION_ERROR with field details
    DRF NotAuthenticated / AuthenticationFailed -> 401 NOT_AUTHENTICATED
    DRF PermissionDenied            -> 403 NOT_AUTHORIZED
    Http404 / DRF NotFound          -> 404 NOT_FOUND
    Other DRF APIException          -> its status, code from exc.default_code
    Anything else                   -> 500 INTERNAL_ERROR (logged with traceback)
"""

from __future__ import annotations

import logging

from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def _flatten_detail(detail):
    """Turn a DRF ErrorDetail tree into plain strings."""
    if isinstance(detail, dict):
        return {key: _flatten_detail(value) for key, value in detail.items()}
    if isinstance(detail, list):
        return [_flatten_detail(item) for item in detail]
    return str(detail)


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key == "non_field_errors":
                return message
            return f"{key}: {message}"
        return "Invalid input"
    if isinstance(detail, list):
        return _first_message(detail[0]) if detail else "Invalid input"
    return str(detail)


def api_exception_handler(exc, context):
    """Build the error response for any exception raised inside a DRF view."""
    if isinstance(exc, BaseApplicationError):
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, drf_exceptions.ValidationError):
        details = _flatten_detail(exc.detail)
        body = {
            "message": _first_message(exc.detail),
            "error_code": "VALIDATION_ERROR",
        }
        if isinstance(details, dict):
            body["details"] = details
        return Response(body, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(
        exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)
    ):
        response = Response(
            {"message": str(exc.detail), "error_code": "NOT_AUTHENTICATED"},
            status=status.HTTP_401_UNAUTHORIZED,
        )
        auth_header = exc.auth_header if hasattr(exc, "auth_header") else None
        if auth_header:
            response["WWW-Authenticate"] = auth_header
        return response

    if isinstance(exc, drf_exceptions.PermissionDenied):
        return Response(
            {"message": str(exc.detail), "error_code": "NOT_AUTHORIZED"},
            status=status.HTTP_403_FORBIDDEN,
        )

    if isinstance(exc, (Http404, drf_exceptions.NotFound)):
        return Response(
            {"message": "Not found", "error_code": "NOT_FOUND"},
            status=status.HTTP_404_NOT_FOUND,
        )

    if isinstance(exc, drf_exceptions.APIException):
        response = Response(
            {
                "message": _first_message(exc.detail),
                "error_code": str(exc.default_code).upper(),
            },
            status=exc.status_code,
        )
        if getattr(exc, "wait", None):
            response["Retry-After"] = str(int(exc.wait))
        return response

    view = context.get("view")
    logger.exception(
        f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}"
    )
    return Response(
        {"message": "Internal Server Error", "error_code": "INTERNAL_ERROR"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

"""Application error taxonomy and the DRF exception handler that renders it.

Every error leaves the API as ``{"code": ..., "message": ...}`` (validation
errors additionally carry ``fields``).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors the API layer knows how to render."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"
    default_message = "Something went wrong."
    is_operational = True

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Validation failed."

    def __init__(self, message: Optional[str] = None, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}

    def as_payload(self) -> Dict[str, Any]:
        payload = super().as_payload()
        if self.fields:
            payload["fields"] = self.fields
        return payload


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_REQUIRED"
    default_message = "Authentication failed."


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Insufficient permissions."


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found."


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "The request conflicts with the current state of the resource."


class StorageError(AppError):
    """Failed write to durable storage (audit ledger, object storage)."""

    code = "STORAGE_ERROR"
    default_message = "Storage operation failed."

    def __init__(self, message: Optional[str] = None, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE if retryable else status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class DatabaseError(AppError):
    """System fault at the storage layer; not something a client can fix."""

    code = "DATABASE_ERROR"
    default_message = "Database operation failed."
    is_operational = False


_DRF_CODES = {
    drf_exceptions.NotAuthenticated: AuthenticationError.code,
    drf_exceptions.AuthenticationFailed: AuthenticationError.code,
    drf_exceptions.PermissionDenied: AuthorizationError.code,
    drf_exceptions.NotFound: NotFoundError.code,
    drf_exceptions.ValidationError: ValidationError.code,
}


def api_exception_handler(exc, context):
    """Render :class:`AppError` and DRF exceptions with one response shape."""

    if isinstance(exc, AppError):
        log = logger.warning if exc.is_operational else logger.error
        log(
            "Request failed",
            extra={"error_code": exc.code, "status_code": exc.status_code},
        )
        return Response(exc.as_payload(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        response.data = {
            "code": ValidationError.code,
            "message": ValidationError.default_message,
            "fields": _flatten_fields(exc.detail),
        }
        return response

    code = next((value for klass, value in _DRF_CODES.items() if isinstance(exc, klass)), None)
    detail = getattr(exc, "detail", None)
    response.data = {
        "code": code or str(getattr(detail, "code", "ERROR")).upper(),
        "message": str(detail) if detail is not None else str(exc),
    }
    return response


def _flatten_fields(detail: Any) -> Dict[str, str]:
    if isinstance(detail, dict):
        return {key: _first_message(value) for key, value in detail.items()}
    return {"non_field_errors": _first_message(detail)}


def _first_message(value: Any) -> str:
    if isinstance(value, list) and value:
        return _first_message(value[0])
    if isinstance(value, dict) and value:
        return _first_message(next(iter(value.values())))
    return str(value)

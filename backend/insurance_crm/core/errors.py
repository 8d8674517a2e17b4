"""
Domain exception hierarchy for the CRM.

All domain exceptions inherit from CRMError so the API layer can render
them uniformly as the JSON error envelope.  Each exception carries the
HTTP status it maps to and optional field-level errors.
"""

from __future__ import annotations

from fastapi import status


class CRMError(Exception):
    """Base exception for all CRM errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class ValidationFailed(CRMError):
    """Request data violates a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls(message, errors=[{"field": field, "message": message}])


class AuthenticationFailed(CRMError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(CRMError):
    """Requested record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CRMError):
    """Uniqueness or state conflict (duplicate email, policy number, ...)."""

    status_code = status.HTTP_409_CONFLICT


class ExternalServiceError(CRMError):
    """A third-party call (Cloudinary, MSG91, SMTP) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        service: str,
        response_body: str | None = None,
        **kwargs,
    ) -> None:
        self.service = service
        self.response_body = response_body
        super().__init__(message, **kwargs)

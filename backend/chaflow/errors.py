# Overview: Error taxonomy raised by services and mapped to HTTP responses by routes.

from __future__ import annotations


class ChaflowError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ChaflowError, ValueError):
    """400-level input problem."""

    status_code = 400


class WeakPasswordError(ValidationError):
    """Password shorter than the minimum length."""


class AuthenticationError(ChaflowError):
    """401: unknown credentials or missing session."""

    status_code = 401


class AccountDisabledError(AuthenticationError):
    pass


class AuthorizationError(ChaflowError):
    status_code = 403


class ForbiddenError(AuthorizationError):
    """Caller is authenticated but lacks the required role or ownership."""


class NotFoundError(ChaflowError, LookupError):
    status_code = 404


class NoActivePriceProfileError(NotFoundError):
    pass


class ProductNotPricedError(NotFoundError):
    pass


class ConflictError(ChaflowError, ValueError):
    """409-level business rule conflict (e.g., duplicate product name)."""

    status_code = 409


class InfrastructureError(ChaflowError):
    """503: the database or another collaborator is unreachable."""

    status_code = 503


def error_response(exc: ChaflowError) -> tuple[dict, int]:
    return exc.to_dict(), exc.status_code

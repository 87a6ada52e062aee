"""Application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(AppException):
    """Required setting is missing or invalid."""

    pass


class DatabaseError(AppException):
    """Database operation error."""

    pass


class ValidationError(AppException):
    """Request is well-formed but cannot be served as asked."""

    status_code = 400


class AuthenticationError(AppException):
    """Authentication error."""

    status_code = 401


class AuthorizationError(AppException):
    """Caller does not own the requested resource."""

    status_code = 403


class NotFoundError(AppException):
    """Requested record does not exist."""

    status_code = 404


class SignatureVerificationError(AuthenticationError):
    """Webhook signature is missing or does not match the body."""

    pass


class InvalidJobTransitionError(AppException):
    """Webhook job status change not allowed by the job state machine."""

    pass


class ExternalServiceError(AppException):
    """Error returned by a third-party API.

    The upstream HTTP status, when known, is part of the message so that
    substring-based retry classification can see codes like 429 and 503.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        provider: str,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.provider = provider
        self.upstream_status = upstream_status


class RetellAPIError(ExternalServiceError):
    """Retell API error."""

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "retell", upstream_status, details)


class RetellRateLimitError(RetellAPIError):
    """Retell rate limit exceeded."""

    pass


class TelephonyError(ExternalServiceError):
    """Twilio API error."""

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "twilio", upstream_status, details)


class PaymentError(ExternalServiceError):
    """Stripe API error."""

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "stripe", upstream_status, details)

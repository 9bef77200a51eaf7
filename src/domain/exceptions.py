"""
Domain exceptions - Semantic error types for identity verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each class carries the numeric status class the delivery layer reports.
"""


class AuthError(Exception):
    """Base class for identity and session domain errors."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AuthError):
    """Malformed or missing field, bad email or username pattern."""

    status_code = 400
    default_message = "Invalid input"


class InvalidOtp(InvalidInput):
    """OTP does not match, or there is nothing pending to match it against."""

    default_message = "Invalid OTP"


class Conflict(AuthError):
    """Uniqueness violation on email or username."""

    status_code = 409
    default_message = "Already exists"


class Unauthorized(AuthError):
    """Bad password, or a missing, expired or mismatched token."""

    status_code = 401
    default_message = "Unauthorized request"


class TokenInvalid(Unauthorized):
    """Token signature, structure or purpose is wrong."""

    default_message = "Invalid token"


class TokenExpired(Unauthorized):
    """Token is past its embedded expiry."""

    default_message = "Token has expired"


class NotFound(AuthError):
    """No such user or registration."""

    status_code = 404
    default_message = "Not found"


class Expired(AuthError):
    """OTP past its stored expiry."""

    status_code = 400
    default_message = "OTP has expired"


class UpstreamFailure(AuthError):
    """Credential store write or mail send failed."""

    status_code = 500
    default_message = "Upstream service failure"


class NotificationFailed(UpstreamFailure):
    """OTP was persisted but could not be delivered."""

    default_message = "Error while sending OTP email"

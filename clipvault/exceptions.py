"""Operational errors raised by the authentication core.

Every error defined here is expected: it carries an HTTP status code and a
message that is safe to show to the caller. Anything else that escapes a
route is treated as unexpected and rendered with a generic message.
"""

from fastapi import status


class AppError(Exception):
    """Base class for all operational errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when input is malformed and the caller can fix it."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ConflictError(AppError):
    """Raised when a unique field (email, username) is already taken."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Duplicate value. Already present"

    def __init__(self, field: str, value: str | None = None):
        self.field = field
        message = f"Duplicate value for field {field}"
        if value is not None:
            message = f"{message} :: {value}"
        super().__init__(f"{message}. Already registered")


class UnauthenticatedError(AppError):
    """Raised when a request carries no usable session."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "You are not logged in. Please log in"


class ForbiddenError(AppError):
    """Raised when an authenticated user lacks the required role."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    """Raised when a referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class TokenInvalidError(AppError):
    """Raised for a bad, tampered or unknown token.

    Session tokens render as 401; the password reset flow raises it with 400.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token. Please log in again"


class TokenExpiredError(AppError):
    """Raised when a session token is past its expiry."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Your token has expired. Please log in again"


class DeliveryError(AppError):
    """Raised when the mail collaborator fails to deliver a message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "There was an error sending the email. Try again later"

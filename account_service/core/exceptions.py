"""
Typed errors raised by the account lifecycle and mapped to HTTP responses
by the exception handlers in ``main``.
"""
from typing import Any, Dict, List, Optional

from fastapi import status


class AccountServiceError(Exception):
    """Base class for errors that carry an HTTP status and a public message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None
    ):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(status_code={self.status_code}, message={self.message!r})>"


class RequestValidationFailed(AccountServiceError):
    """Field-level input errors; raised only by the request validation gate."""

    status_code = 422
    default_message = "Received data is not valid"


class ConflictError(AccountServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "User with email or username already exists"


class NotFoundOrExpiredError(AccountServiceError):
    """
    A verification or reset token that is unknown, already consumed, or past
    its expiry. The three cases share one message so callers cannot tell
    them apart.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Token is invalid or expired"


class UnauthorizedError(AccountServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class InternalError(AccountServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"


__all__ = [
    "AccountServiceError",
    "RequestValidationFailed",
    "ConflictError",
    "NotFoundOrExpiredError",
    "UnauthorizedError",
    "InternalError",
]

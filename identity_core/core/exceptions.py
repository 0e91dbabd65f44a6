"""Exceptions raised by the identity core."""

from typing import Any


class IdentityError(Exception):
    """Base class for every error raised by the identity core."""

    default_message = "Identity operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(IdentityError):
    """The request failed self-consistency validation."""

    default_message = "The request was invalid"

    def __init__(
        self, message: str | None = None, errors: list[dict[str, Any]] | None = None
    ) -> None:
        super().__init__(message)
        self.errors = errors or []


class DuplicateUserError(IdentityError):
    """An account already exists for the requested email address."""

    default_message = "User already exists"


class AuthenticationError(IdentityError):
    """Credentials or social connection could not be authenticated."""

    default_message = "Authentication failed"


class AuthorizationError(IdentityError):
    """The requesting identity lacks permission for the operation."""

    default_message = "Not authorized"


class NotFoundError(IdentityError):
    """The target identifier does not resolve to a user."""

    default_message = "User not found"


class NoSessionError(IdentityError):
    """A user expected to hold a session token holds none."""

    default_message = "User has no session token"


class RepositoryError(IdentityError):
    """The persistence layer failed."""

    default_message = "Repository operation failed"

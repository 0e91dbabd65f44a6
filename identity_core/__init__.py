"""User identity core: accounts, passwords, sessions, social links and authorization."""

from identity_core.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateUserError,
    IdentityError,
    NoSessionError,
    NotFoundError,
    RepositoryError,
    ValidationError,
)
from identity_core.core.models import (
    CreateUserRequest,
    ExternalUser,
    LoginRequest,
    ProviderConnection,
    SocialProfile,
    UpdateUserRequest,
)
from identity_core.core.services.identity_service import IdentityService
from identity_core.entities.user import Role

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "CreateUserRequest",
    "DuplicateUserError",
    "ExternalUser",
    "IdentityError",
    "IdentityService",
    "LoginRequest",
    "NoSessionError",
    "NotFoundError",
    "ProviderConnection",
    "RepositoryError",
    "Role",
    "SocialProfile",
    "UpdateUserRequest",
    "ValidationError",
]

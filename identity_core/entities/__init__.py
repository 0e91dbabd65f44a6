"""Domain entities, their tables and repositories."""

from .social_user import SocialUser, SocialUserRepository, SocialUserTable
from .user import Role, SessionToken, SessionTokenTable, User, UserRepository, UserTable

__all__ = [
    "Role",
    "SessionToken",
    "SessionTokenTable",
    "SocialUser",
    "SocialUserRepository",
    "SocialUserTable",
    "User",
    "UserRepository",
    "UserTable",
]

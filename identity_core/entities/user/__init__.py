"""User entity module.

This module contains all User-related classes organized by responsibility:
- User, Role, SessionToken: Domain aggregate and its value objects
- UserTable, SessionTokenTable: Database persistence models
- UserRepository: Data access layer
"""

from .entity import Role, SessionToken, User
from .repository import UserRepository
from .table import SessionTokenTable, UserTable

__all__ = [
    "Role",
    "SessionToken",
    "SessionTokenTable",
    "User",
    "UserRepository",
    "UserTable",
]

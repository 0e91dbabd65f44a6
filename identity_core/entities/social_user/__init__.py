"""Social user entity module.

This module contains all SocialUser-related classes organized by responsibility:
- SocialUser: Domain entity linking provider accounts to internal users
- SocialUserTable: Database persistence model
- SocialUserRepository: Data access layer
"""

from .entity import SocialUser
from .repository import SocialUserRepository
from .table import SocialUserTable

__all__ = ["SocialUser", "SocialUserRepository", "SocialUserTable"]

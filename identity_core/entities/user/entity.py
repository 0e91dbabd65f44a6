"""User aggregate and the value objects it owns."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from identity_core.entities._base import Entity, utc_now


class Role(str, Enum):
    """Closed set of roles, ordered by privilege tier."""

    anonymous = "anonymous"
    authenticated = "authenticated"
    administrator = "administrator"

    @property
    def tier(self) -> int:
        return _ROLE_TIERS.index(self)

    @property
    def is_low_privilege(self) -> bool:
        """Anonymous and authenticated accounts may be deleted by an administrator."""
        return self in (Role.anonymous, Role.authenticated)

    def next_tier(self) -> "Role":
        """Return the role one tier up, saturating at the highest tier."""
        return _ROLE_TIERS[min(self.tier + 1, len(_ROLE_TIERS) - 1)]

    @classmethod
    def lowest(cls) -> "Role":
        return _ROLE_TIERS[0]


_ROLE_TIERS: tuple[Role, ...] = (Role.anonymous, Role.authenticated, Role.administrator)


class SessionToken(BaseModel):
    """One active login held by a user."""

    token: str = Field(description="Opaque session token value")
    created_at: datetime = Field(default_factory=utc_now, description="Issue time")
    last_updated: datetime = Field(
        default_factory=utc_now, description="Last activity time"
    )

    def is_expired(self, cutoff: datetime) -> bool:
        """A session is stale when its last activity is strictly before the cutoff."""
        return self.last_updated < cutoff


class User(Entity):
    """User aggregate: profile, credentials, role and owned sessions.

    Sessions are kept oldest first. ``active_session`` is the token the
    current request is bound to, if any.
    """

    first_name: str | None = Field(default=None, description="User's first name")
    last_name: str | None = Field(default=None, description="User's last name")
    email_address: str | None = Field(
        default=None, description="User's email address, unique when present"
    )
    verified: bool = Field(default=False, description="Email verified flag")
    hashed_password: str | None = Field(default=None, description="Password hash")
    salt: str | None = Field(default=None, description="Per-account password salt")
    role: Role = Field(default=Role.anonymous, description="Authorization role")
    sessions: list[SessionToken] = Field(
        default_factory=list, description="Session tokens, oldest first"
    )
    active_session: str | None = Field(
        default=None, description="Token currently attached to the user"
    )

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.first_name == other.first_name
            and self.last_name == other.last_name
            and self.email_address == other.email_address
            and self.verified == other.verified
            and self.role == other.role
        )

    def __hash__(self) -> int:
        """Hash based on identity, ignoring mutable state."""
        return hash(self.id)

"""User database table models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel

from identity_core.entities._base import EntityTable, utc_now


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    This represents how the User aggregate is stored in the database.
    Sessions live in their own table keyed by ``user_id``.
    """

    first_name: str | None = None
    last_name: str | None = None
    email_address: str | None = Field(
        default=None, sa_column=Column(String(320), nullable=True, unique=True)
    )
    verified: bool = False
    hashed_password: str | None = None
    salt: str | None = None
    role: str = Field(default="anonymous", max_length=32)
    active_session: str | None = None


class SessionTokenTable(SQLModel, table=True):
    """Database persistence model for session tokens owned by a user."""

    token: str = Field(primary_key=True, max_length=128)
    user_id: str = Field(foreign_key="usertable.id", index=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    last_updated: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )

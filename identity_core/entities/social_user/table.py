"""Social user database table model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlmodel import Field

from identity_core.entities._base import EntityTable


class SocialUserTable(EntityTable, table=True):
    """Database persistence model for provider links.

    An external account may be linked to several local users; each user holds
    it at most once, and a user's links to a provider are uniquely ranked.
    """

    __table_args__ = (
        UniqueConstraint(
            "user_id", "provider_id", "provider_user_id", name="uq_social_user_account"
        ),
        UniqueConstraint(
            "user_id", "provider_id", "rank", name="uq_social_user_provider_rank"
        ),
    )

    user_id: str = Field(foreign_key="usertable.id", index=True)
    provider_id: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    provider_user_id: str = Field(sa_column=Column(String(255), nullable=False))
    rank: int = Field(default=1)
    display_name: str | None = None
    profile_url: str | None = None
    image_url: str | None = None
    access_token: str | None = None
    secret: str | None = None
    refresh_token: str | None = None
    expire_time: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

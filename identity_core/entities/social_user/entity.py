"""Social user domain entity."""

from datetime import datetime

from pydantic import Field

from identity_core.entities._base import Entity


class SocialUser(Entity):
    """Link between a local user and an account at an external provider.

    ``provider_id`` and ``provider_user_id`` identify the external account.
    ``rank`` orders several links of one user to the same provider.
    """

    user_id: str = Field(description="Internal user ID this link belongs to")
    provider_id: str = Field(description="External provider, e.g. 'facebook'")
    provider_user_id: str = Field(description="Account ID at the provider")
    rank: int = Field(default=1, description="Order among links to the same provider")
    display_name: str | None = Field(default=None)
    profile_url: str | None = Field(default=None)
    image_url: str | None = Field(default=None)
    access_token: str | None = Field(default=None, repr=False)
    secret: str | None = Field(default=None, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expire_time: datetime | None = Field(default=None)

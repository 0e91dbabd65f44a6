"""Request, view and social profile models exchanged with callers."""

from pydantic import BaseModel, EmailStr, Field, field_validator

from identity_core.core.services.password_hasher import MAX_PASSWORD_BYTES
from identity_core.entities.user import Role, SessionToken, User


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class CreateUserRequest(BaseModel):
    """Profile fields and plaintext password for a new account."""

    email_address: EmailStr
    password: str = Field(min_length=8, repr=False)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Credentials for password login. ``username`` holds the email address."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        return _check_password_bytes(value)


class UpdateUserRequest(BaseModel):
    """Partial profile update. ``None`` fields are left untouched."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email_address: EmailStr | None = None


class ExternalUser(BaseModel):
    """Projection of a user that is safe to hand across the trust boundary."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email_address: str | None = None
    verified: bool = False
    role: Role = Role.anonymous
    active_session: str | None = None

    @classmethod
    def from_user(cls, user: User, session: SessionToken | None = None) -> "ExternalUser":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email_address=user.email_address,
            verified=user.verified,
            role=user.role,
            active_session=session.token if session is not None else None,
        )


class SocialProfile(BaseModel):
    """Profile data fetched from an external provider."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class ProviderConnection(BaseModel):
    """A completed provider handshake and the local users linked to it."""

    provider_id: str
    provider_user_id: str
    profile: SocialProfile = Field(default_factory=SocialProfile)
    user_ids: list[str] = Field(default_factory=list)

    def linked_user_ids(self) -> list[str]:
        return list(self.user_ids)

    def fetch_profile(self) -> SocialProfile:
        return self.profile

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from types import TracebackType
from typing import Protocol

from identity_core.core.models import SocialProfile
from identity_core.entities.social_user import SocialUser
from identity_core.entities.user import User


class UserStore(Protocol):
    """Abstract storage for user aggregates and their sessions."""

    def find_by_email(self, email_address: str) -> User | None:
        ...

    def find_by_id(self, user_id: str) -> User | None:
        ...

    def find_users_with_expired_sessions_before(self, cutoff: datetime) -> list[User]:
        ...

    def save(self, user: User) -> User:
        ...

    def save_all(self, users: Iterable[User]) -> list[User]:
        ...

    def delete(self, user: User) -> None:
        ...


class SocialUserStore(Protocol):
    """Abstract storage for provider links."""

    def find_user_ids_with_connection(
        self, provider_id: str, provider_user_id: str
    ) -> list[str]:
        ...

    def find_link(
        self, user_id: str, provider_id: str, provider_user_id: str
    ) -> SocialUser | None:
        ...

    def next_rank(self, user_id: str, provider_id: str) -> int:
        ...

    def link(self, social_user: SocialUser) -> SocialUser:
        ...

    def delete_for_user(self, user_id: str) -> int:
        ...


class UnitOfWork(Protocol):
    """One logical transaction spanning every repository call of an operation."""

    users: UserStore
    social_users: SocialUserStore

    def __enter__(self) -> UnitOfWork:
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class SocialConnection(Protocol):
    """A completed third-party handshake."""

    def linked_user_ids(self) -> list[str]:
        ...

    def fetch_profile(self) -> SocialProfile:
        ...

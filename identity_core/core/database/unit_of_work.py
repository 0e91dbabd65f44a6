"""Unit of work over a single SQLModel session."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from identity_core.core.exceptions import RepositoryError
from identity_core.entities.social_user import SocialUserRepository
from identity_core.entities.user import UserRepository


class SqlUnitOfWork:
    """Opens a session on enter, rolls back on error or if never committed.

    Nothing written through the repositories is visible to other sessions
    until ``commit`` succeeds.
    """

    users: UserRepository
    social_users: SocialUserRepository

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None
        self._committed = False

    def __enter__(self) -> SqlUnitOfWork:
        self._session = self._session_factory()
        self._committed = False
        self.users = UserRepository(self._session)
        self.social_users = SocialUserRepository(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        assert self._session is not None
        try:
            if exc_type is not None:
                logger.debug("Rolling back unit of work after {}", exc_type.__name__)
                self.rollback()
            elif not self._committed:
                self.rollback()
        finally:
            self._session.close()
            self._session = None

    def commit(self) -> None:
        assert self._session is not None, "unit of work is not open"
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            logger.error("Commit failed, rolling back: {}", e)
            self._session.rollback()
            raise RepositoryError("Failed to commit transaction") from e
        self._committed = True

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()


def sql_unit_of_work_factory(session_factory: Callable[[], Session]) -> Callable[[], SqlUnitOfWork]:
    """Return a zero-argument factory producing a fresh unit of work per call."""

    def factory() -> SqlUnitOfWork:
        return SqlUnitOfWork(session_factory)

    return factory

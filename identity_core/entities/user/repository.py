"""Data-access layer for the user aggregate."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from identity_core.core.exceptions import DuplicateUserError, RepositoryError
from identity_core.entities._base import as_utc, utc_now
from identity_core.entities.user.entity import Role, SessionToken, User
from identity_core.entities.user.table import SessionTokenTable, UserTable

_COLUMNS = (
    "first_name",
    "last_name",
    "email_address",
    "verified",
    "hashed_password",
    "salt",
    "role",
    "active_session",
)


@dataclass
class _Loaded:
    """What a unit of work read for one user: column values and held sessions."""

    values: dict[str, Any] = field(default_factory=dict)
    sessions: dict[str, datetime] = field(default_factory=dict)


class UserRepository:
    """Stores users and their session tokens through a SQLModel session.

    The repository never commits; the unit of work that owns the session does.

    ``save`` writes only what changed since the user was loaded through this
    repository. Session rows are inserted, refreshed or deleted one token at a
    time, so tokens written by another transaction in the meantime survive.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._loaded: dict[str, _Loaded] = {}

    def find_by_id(self, user_id: str) -> User | None:
        try:
            row = self._session.get(UserTable, user_id)
            if row is None:
                return None
            return self._to_entity(row)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load user {user_id}") from e

    def find_by_email(self, email_address: str) -> User | None:
        try:
            statement = select(UserTable).where(UserTable.email_address == email_address)
            row = self._session.exec(statement).first()
            if row is None:
                return None
            return self._to_entity(row)
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to look up user by email") from e

    def find_users_with_expired_sessions_before(self, cutoff: datetime) -> list[User]:
        """Users holding at least one session last updated before ``cutoff``."""
        try:
            user_ids = select(SessionTokenTable.user_id).where(
                SessionTokenTable.last_updated < cutoff
            )
            statement = (
                select(UserTable)
                .where(col(UserTable.id).in_(user_ids))
                .order_by(col(UserTable.created_at))
            )
            rows = self._session.exec(statement).all()
            return [self._to_entity(row) for row in rows]
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to load users with expired sessions") from e

    def save(self, user: User) -> User:
        try:
            loaded = self._loaded.get(user.id)
            row = self._lock_user(user.id)
            values = self._column_values(user)
            if row is None:
                if loaded is not None:
                    raise RepositoryError(f"User {user.id} was deleted by another transaction")
                row = UserTable(id=user.id, created_at=user.created_at)
                changed = values
            else:
                known = loaded.values if loaded is not None else {}
                changed = {
                    name: value
                    for name, value in values.items()
                    if name not in known or known[name] != value
                }

            clearing_marker = (
                "active_session" in changed and changed["active_session"] is None
            )
            if clearing_marker:
                del changed["active_session"]

            user.updated_at = utc_now()
            for name, value in changed.items():
                setattr(row, name, value)
            row.updated_at = user.updated_at
            self._session.add(row)
            self._sync_sessions(user, loaded)
            if clearing_marker:
                if self._may_clear_marker(user, row, loaded):
                    row.active_session = None
                else:
                    # Another transaction attached or refreshed that token meanwhile
                    user.active_session = row.active_session
            self._session.flush()
            self._remember(user)
            return user
        except IntegrityError as e:
            raise DuplicateUserError("Email address already registered") from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to save user {user.id}") from e

    def save_all(self, users: Iterable[User]) -> list[User]:
        return [self.save(user) for user in users]

    def delete(self, user: User) -> None:
        try:
            statement = select(SessionTokenTable).where(
                SessionTokenTable.user_id == user.id
            )
            for session_row in self._session.exec(statement).all():
                self._session.delete(session_row)
            row = self._session.get(UserTable, user.id)
            if row is not None:
                self._session.delete(row)
            self._session.flush()
            self._loaded.pop(user.id, None)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to delete user {user.id}") from e

    def _lock_user(self, user_id: str) -> UserTable | None:
        statement = (
            select(UserTable)
            .where(UserTable.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.exec(statement).first()

    def _lock_session(self, token: str) -> SessionTokenTable | None:
        statement = (
            select(SessionTokenTable)
            .where(SessionTokenTable.token == token)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.exec(statement).first()

    def _may_clear_marker(self, user: User, row: UserTable, loaded: _Loaded | None) -> bool:
        """Clear the stored marker only when its token is gone or explicitly detached."""
        current = row.active_session
        if current is None:
            return True
        loaded_marker = loaded.values.get("active_session") if loaded is not None else None
        if current == loaded_marker and any(s.token == current for s in user.sessions):
            return True
        return self._lock_session(current) is None

    def _sync_sessions(self, user: User, loaded: _Loaded | None) -> None:
        """Apply the session changes made to ``user`` since it was loaded."""
        known = loaded.sessions if loaded is not None else {}
        held = {session.token: session for session in user.sessions}

        for token, last_updated in known.items():
            if token in held:
                continue
            row = self._lock_session(token)
            if row is None:
                continue
            if as_utc(row.last_updated) == last_updated:
                self._session.delete(row)
            else:
                logger.debug("Session of user {} was refreshed concurrently; kept", user.id)

        for token, session in held.items():
            if token not in known:
                self._session.add(
                    SessionTokenTable(
                        token=token,
                        user_id=user.id,
                        created_at=session.created_at,
                        last_updated=session.last_updated,
                    )
                )
            elif session.last_updated != known[token]:
                row = self._lock_session(token)
                if row is None:
                    logger.debug("Session of user {} was removed concurrently", user.id)
                    continue
                if as_utc(row.last_updated) < session.last_updated:
                    row.last_updated = session.last_updated
                    self._session.add(row)

    def _remember(self, user: User) -> None:
        self._loaded[user.id] = _Loaded(
            values=self._column_values(user),
            sessions={session.token: session.last_updated for session in user.sessions},
        )

    @staticmethod
    def _column_values(user: User) -> dict[str, Any]:
        values = {name: getattr(user, name) for name in _COLUMNS}
        values["role"] = user.role.value
        return values

    def _to_entity(self, row: UserTable) -> User:
        statement = (
            select(SessionTokenTable)
            .where(SessionTokenTable.user_id == row.id)
            .order_by(col(SessionTokenTable.created_at), col(SessionTokenTable.token))
        )
        sessions = [
            SessionToken(
                token=session_row.token,
                created_at=as_utc(session_row.created_at),
                last_updated=as_utc(session_row.last_updated),
            )
            for session_row in self._session.exec(statement).all()
        ]
        user = User(
            id=row.id,
            first_name=row.first_name,
            last_name=row.last_name,
            email_address=row.email_address,
            verified=row.verified,
            hashed_password=row.hashed_password,
            salt=row.salt,
            role=Role(row.role),
            sessions=sessions,
            active_session=row.active_session,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )
        self._remember(user)
        return user

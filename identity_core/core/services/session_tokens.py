"""Session token lifecycle for user aggregates."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from loguru import logger

from identity_core.core.exceptions import NoSessionError
from identity_core.core.security import generate_secure_token
from identity_core.core.services.clock import Clock
from identity_core.entities.user import SessionToken, User


class SessionTokenManager:
    """Creates, attaches and expires session tokens held by users."""

    def __init__(self, clock: Clock, token_bytes: int = 32) -> None:
        self._clock = clock
        self._token_bytes = token_bytes

    @property
    def clock(self) -> Clock:
        return self._clock

    def issue_token(self, user: User) -> SessionToken:
        """Append a fresh token to the user's sessions and make it the active one."""
        now = self._clock.now()
        session = SessionToken(
            token=generate_secure_token(self._token_bytes),
            created_at=now,
            last_updated=now,
        )
        user.sessions.append(session)
        user.active_session = session.token
        logger.debug("Issued session token for user {}", user.id)
        return session

    def primary_session(self, user: User) -> SessionToken:
        """Return the earliest-issued session token.

        Raises:
            NoSessionError: If the user holds no session at all
        """
        if not user.sessions:
            logger.error("User {} holds no session token", user.id)
            raise NoSessionError(f"User {user.id} holds no session token")
        return min(user.sessions, key=lambda session: session.created_at)

    def find_session(self, user: User, token: str) -> SessionToken | None:
        for session in user.sessions:
            if session.token == token:
                return session
        return None

    def touch(self, user: User, token: str) -> SessionToken | None:
        """Refresh the last activity time of a token the user still holds."""
        session = self.find_session(user, token)
        if session is not None:
            session.last_updated = self._clock.now()
        return session

    def cutoff_for(self, staleness: timedelta) -> datetime:
        return self._clock.now() - staleness

    def sweep_expired(self, users: Iterable[User], cutoff: datetime) -> int:
        """Remove sessions last updated strictly before ``cutoff``.

        Returns:
            Total number of sessions removed across all users
        """
        removed = 0
        for user in users:
            stale = [session for session in user.sessions if session.is_expired(cutoff)]
            if not stale:
                continue
            user.sessions = [
                session for session in user.sessions if not session.is_expired(cutoff)
            ]
            stale_tokens = {session.token for session in stale}
            if user.active_session in stale_tokens:
                user.active_session = None
            removed += len(stale)
        return removed

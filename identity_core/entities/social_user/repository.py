"""Data-access layer for social user links."""

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from identity_core.core.exceptions import RepositoryError
from identity_core.entities._base import as_utc
from identity_core.entities.social_user.entity import SocialUser
from identity_core.entities.social_user.table import SocialUserTable


class SocialUserRepository:
    """Stores provider links through a SQLModel session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_user_ids_with_connection(
        self, provider_id: str, provider_user_id: str
    ) -> list[str]:
        """Local user IDs linked to one external account, oldest link first."""
        try:
            statement = (
                select(SocialUserTable.user_id)
                .where(
                    (SocialUserTable.provider_id == provider_id)
                    & (SocialUserTable.provider_user_id == provider_user_id)
                )
                .order_by(col(SocialUserTable.created_at), col(SocialUserTable.rank))
            )
            return list(self._session.exec(statement).all())
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to look up linked users") from e

    def find_link(
        self, user_id: str, provider_id: str, provider_user_id: str
    ) -> SocialUser | None:
        try:
            row = self._find_row(user_id, provider_id, provider_user_id)
            return self._to_entity(row) if row is not None else None
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to look up link") from e

    def next_rank(self, user_id: str, provider_id: str) -> int:
        try:
            statement = select(func.max(SocialUserTable.rank)).where(
                (SocialUserTable.user_id == user_id)
                & (SocialUserTable.provider_id == provider_id)
            )
            highest = self._session.exec(statement).one()
            return (highest or 0) + 1
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to compute link rank") from e

    def link(self, social_user: SocialUser) -> SocialUser:
        """Insert a link, or update the details of an existing one."""
        try:
            row = self._find_row(
                social_user.user_id, social_user.provider_id, social_user.provider_user_id
            )
            if row is None:
                row = SocialUserTable(
                    id=social_user.id,
                    user_id=social_user.user_id,
                    provider_id=social_user.provider_id,
                    provider_user_id=social_user.provider_user_id,
                    rank=social_user.rank,
                    created_at=social_user.created_at,
                )
            row.display_name = social_user.display_name
            row.profile_url = social_user.profile_url
            row.image_url = social_user.image_url
            row.access_token = social_user.access_token
            row.secret = social_user.secret
            row.refresh_token = social_user.refresh_token
            row.expire_time = social_user.expire_time
            row.updated_at = social_user.updated_at
            self._session.add(row)
            self._session.flush()
            return self._to_entity(row)
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to save link") from e

    def delete_for_user(self, user_id: str) -> int:
        try:
            statement = select(SocialUserTable).where(SocialUserTable.user_id == user_id)
            rows = self._session.exec(statement).all()
            for row in rows:
                self._session.delete(row)
            self._session.flush()
            return len(rows)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to delete links for user {user_id}") from e

    def _find_row(
        self, user_id: str, provider_id: str, provider_user_id: str
    ) -> SocialUserTable | None:
        statement = select(SocialUserTable).where(
            (SocialUserTable.user_id == user_id)
            & (SocialUserTable.provider_id == provider_id)
            & (SocialUserTable.provider_user_id == provider_user_id)
        )
        return self._session.exec(statement).first()

    def _to_entity(self, row: SocialUserTable) -> SocialUser:
        return SocialUser(
            id=row.id,
            user_id=row.user_id,
            provider_id=row.provider_id,
            provider_user_id=row.provider_user_id,
            rank=row.rank,
            display_name=row.display_name,
            profile_url=row.profile_url,
            image_url=row.image_url,
            access_token=row.access_token,
            secret=row.secret,
            refresh_token=row.refresh_token,
            expire_time=as_utc(row.expire_time) if row.expire_time else None,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

"""Unit tests for the user and social user repositories."""

from datetime import UTC, datetime, timedelta

import pytest

from identity_core.core.exceptions import DuplicateUserError
from identity_core.entities.social_user import SocialUser, SocialUserRepository
from identity_core.entities.user import Role, SessionToken, User, UserRepository

_T0 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def make_session(token: str, minutes: int) -> SessionToken:
    moment = _T0 + timedelta(minutes=minutes)
    return SessionToken(token=token, created_at=moment, last_updated=moment)


class TestUserRepository:
    def test_save_and_find_roundtrip(self, session):
        repo = UserRepository(session)
        user = User(
            email_address="ada@example.com",
            first_name="Ada",
            role=Role.authenticated,
            sessions=[make_session("a", 0), make_session("b", 5)],
            active_session="b",
        )

        repo.save(user)

        by_id = repo.find_by_id(user.id)
        by_email = repo.find_by_email("ada@example.com")
        assert by_id == user
        assert by_email == user
        assert [s.token for s in by_id.sessions] == ["a", "b"]
        assert by_id.sessions[0].created_at == _T0
        assert by_id.active_session == "b"

    def test_missing_user(self, session):
        repo = UserRepository(session)

        assert repo.find_by_id("missing") is None
        assert repo.find_by_email("nobody@example.com") is None

    def test_save_syncs_removed_and_touched_sessions(self, session):
        repo = UserRepository(session)
        user = User(sessions=[make_session("a", 0), make_session("b", 5)])
        repo.save(user)

        user.sessions = [user.sessions[1]]
        user.sessions[0].last_updated = _T0 + timedelta(minutes=30)
        repo.save(user)

        stored = repo.find_by_id(user.id)
        assert [s.token for s in stored.sessions] == ["b"]
        assert stored.sessions[0].last_updated == _T0 + timedelta(minutes=30)

    def test_duplicate_email_raises(self, session):
        repo = UserRepository(session)
        repo.save(User(email_address="ada@example.com"))

        with pytest.raises(DuplicateUserError):
            repo.save(User(email_address="ada@example.com"))

    def test_users_without_email_do_not_collide(self, session):
        repo = UserRepository(session)

        repo.save(User())
        repo.save(User())

    def test_find_users_with_expired_sessions(self, session):
        repo = UserRepository(session)
        stale = User(sessions=[make_session("old", 0), make_session("older", 1)])
        fresh = User(sessions=[make_session("new", 60)])
        repo.save_all([stale, fresh])

        found = repo.find_users_with_expired_sessions_before(_T0 + timedelta(minutes=30))

        assert [u.id for u in found] == [stale.id]

    def test_delete_removes_user_and_sessions(self, session):
        repo = UserRepository(session)
        user = User(sessions=[make_session("a", 0)])
        repo.save(user)

        repo.delete(user)

        assert repo.find_by_id(user.id) is None
        assert repo.find_users_with_expired_sessions_before(_T0 + timedelta(days=1)) == []


class TestSocialUserRepository:
    @pytest.fixture
    def owner(self, session) -> User:
        user = User(email_address="ada@example.com")
        UserRepository(session).save(user)
        return user

    def test_link_and_lookup(self, session, owner):
        repo = SocialUserRepository(session)

        linked = repo.link(
            SocialUser(
                user_id=owner.id,
                provider_id="github",
                provider_user_id="gh-1",
                display_name="ada",
                access_token="secret-token",
            )
        )

        assert repo.find_user_ids_with_connection("github", "gh-1") == [owner.id]
        assert repo.find_link(owner.id, "github", "gh-1") == linked
        assert repo.find_link(owner.id, "github", "gh-1").access_token == "secret-token"
        assert "secret-token" not in repr(linked)

    def test_next_rank(self, session, owner):
        repo = SocialUserRepository(session)
        assert repo.next_rank(owner.id, "github") == 1

        repo.link(SocialUser(user_id=owner.id, provider_id="github", provider_user_id="gh-1"))

        assert repo.next_rank(owner.id, "github") == 2
        assert repo.next_rank(owner.id, "google") == 1

    def test_unknown_connection_has_no_users(self, session):
        assert SocialUserRepository(session).find_user_ids_with_connection("github", "x") == []

    def test_delete_for_user(self, session, owner):
        repo = SocialUserRepository(session)
        repo.link(SocialUser(user_id=owner.id, provider_id="github", provider_user_id="gh-1"))
        repo.link(
            SocialUser(user_id=owner.id, provider_id="google", provider_user_id="g-1")
        )

        assert repo.delete_for_user(owner.id) == 2
        assert repo.find_link(owner.id, "github", "gh-1") is None
        assert repo.find_link(owner.id, "google", "g-1") is None


class TestOverlappingSaves:
    def test_save_keeps_sessions_written_by_another_session(self, file_db):
        user = User(sessions=[make_session("a", 0)], active_session="a")
        with file_db.get_session() as setup:
            UserRepository(setup).save(user)
            setup.commit()

        with file_db.get_session() as first:
            repo = UserRepository(first)
            stale = repo.find_by_id(user.id)

            with file_db.get_session() as second:
                other_repo = UserRepository(second)
                other = other_repo.find_by_id(user.id)
                other.sessions.append(make_session("b", 60))
                other.active_session = "b"
                other_repo.save(other)
                second.commit()

            stale.sessions = []
            stale.active_session = None
            repo.save(stale)
            first.commit()

        with file_db.get_session() as check:
            stored = UserRepository(check).find_by_id(user.id)
        assert [s.token for s in stored.sessions] == ["b"]
        assert stored.active_session == "b"

    def test_profile_save_leaves_other_columns_alone(self, file_db):
        user = User(
            email_address="ada@example.com",
            sessions=[make_session("a", 0)],
            active_session="a",
        )
        with file_db.get_session() as setup:
            UserRepository(setup).save(user)
            setup.commit()

        with file_db.get_session() as first:
            repo = UserRepository(first)
            stale = repo.find_by_id(user.id)

            with file_db.get_session() as second:
                other_repo = UserRepository(second)
                other = other_repo.find_by_id(user.id)
                other.sessions.append(make_session("b", 60))
                other.active_session = "b"
                other_repo.save(other)
                second.commit()

            stale.last_name = "King"
            repo.save(stale)
            first.commit()

        with file_db.get_session() as check:
            stored = UserRepository(check).find_by_id(user.id)
        assert stored.last_name == "King"
        assert [s.token for s in stored.sessions] == ["a", "b"]
        assert stored.active_session == "b"

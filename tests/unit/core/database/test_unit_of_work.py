"""Unit tests for the SQL unit of work."""

import pytest

from identity_core.entities.user import User


class TestSqlUnitOfWork:
    def test_commit_persists(self, uow_factory, count_users):
        with uow_factory() as uow:
            uow.users.save(User())
            uow.commit()

        assert count_users() == 1

    def test_uncommitted_work_is_rolled_back(self, uow_factory, count_users):
        with uow_factory() as uow:
            uow.users.save(User())

        assert count_users() == 0

    def test_exception_rolls_back(self, uow_factory, count_users):
        with pytest.raises(RuntimeError):
            with uow_factory() as uow:
                uow.users.save(User())
                raise RuntimeError("boom")

        assert count_users() == 0

    def test_each_call_opens_a_fresh_unit(self, uow_factory):
        assert uow_factory() is not uow_factory()


class TestDbSessionService:
    def test_health_check(self, db):
        assert db.health_check() is True


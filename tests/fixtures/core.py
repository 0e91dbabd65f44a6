from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy import StaticPool
from sqlmodel import Session, create_engine, func, select

from identity_core.core.database.db_session import DbSessionService
from identity_core.core.database.unit_of_work import SqlUnitOfWork, sql_unit_of_work_factory
from identity_core.core.services.clock import FrozenClock
from identity_core.core.services.identity_service import IdentityService
from identity_core.core.services.password_hasher import CredentialHasher
from identity_core.core.services.session_tokens import SessionTokenManager
from identity_core.entities.user import UserTable
from identity_core.runtime.config.config_data import ConfigData, DatabaseConfig

_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
_PASSWORD = "correct-horse-battery"


@pytest.fixture
def test_config() -> ConfigData:
    config = ConfigData()
    config.app.environment = "test"
    config.database.url = "sqlite://"
    config.security.password_hash_rounds = 4
    return config


@pytest.fixture
def password() -> str:
    return _PASSWORD


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(_START)


@pytest.fixture
def hasher() -> CredentialHasher:
    # Lowest bcrypt cost keeps the suite fast
    return CredentialHasher(rounds=4)


@pytest.fixture
def session_tokens(clock: FrozenClock) -> SessionTokenManager:
    return SessionTokenManager(clock)


@pytest.fixture
def db() -> Generator[DbSessionService]:
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    service = DbSessionService(engine=engine)
    service.create_tables()
    try:
        yield service
    finally:
        engine.dispose()


@pytest.fixture
def file_db(tmp_path) -> Generator[DbSessionService]:
    """SQLite file database; every session gets its own connection."""
    service = DbSessionService(DatabaseConfig(url=f"sqlite:///{tmp_path / 'identity.db'}"))
    service.create_tables()
    try:
        yield service
    finally:
        service.dispose()


@pytest.fixture
def session(db: DbSessionService) -> Generator[Session]:
    """Database session for repository tests."""
    with db.get_session() as session:
        try:
            yield session
        finally:
            session.rollback()


@pytest.fixture
def uow_factory(db: DbSessionService) -> Callable[[], SqlUnitOfWork]:
    return sql_unit_of_work_factory(db.get_session)


@pytest.fixture
def identity_service(
    uow_factory: Callable[[], SqlUnitOfWork],
    hasher: CredentialHasher,
    session_tokens: SessionTokenManager,
) -> IdentityService:
    return IdentityService(
        uow_factory=uow_factory, hasher=hasher, session_tokens=session_tokens
    )


@pytest.fixture
def create_request() -> Callable[..., dict[str, Any]]:
    def _make_request(**overrides: Any) -> dict[str, Any]:
        request = {
            "email_address": "ada@example.com",
            "password": _PASSWORD,
            "first_name": "Ada",
            "last_name": "Lovelace",
        }
        request.update(overrides)
        return request

    return _make_request


@pytest.fixture
def count_users(db: DbSessionService) -> Callable[[], int]:
    def _count() -> int:
        with db.get_session() as session:
            return session.exec(select(func.count()).select_from(UserTable)).one()

    return _count


__all__ = [
    "clock",
    "count_users",
    "create_request",
    "db",
    "file_db",
    "hasher",
    "identity_service",
    "password",
    "session",
    "session_tokens",
    "test_config",
    "uow_factory",
]

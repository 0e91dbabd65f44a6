"""Wiring of the identity service from configuration."""

from loguru import logger

from identity_core.core.database.db_session import DbSessionService
from identity_core.core.database.unit_of_work import sql_unit_of_work_factory
from identity_core.core.services.clock import Clock, SystemClock
from identity_core.core.services.identity_service import IdentityService
from identity_core.core.services.password_hasher import CredentialHasher
from identity_core.core.services.session_tokens import SessionTokenManager
from identity_core.runtime.config.config_data import ConfigData
from identity_core.runtime.context import get_config


def build_identity_service(
    config: ConfigData | None = None,
    db: DbSessionService | None = None,
    clock: Clock | None = None,
) -> IdentityService:
    """Build an ``IdentityService`` backed by the configured database."""
    main_config = config or get_config()
    db = db or DbSessionService(main_config.database)
    security = main_config.security

    logger.info(
        "Building identity service (bcrypt rounds {}, {} byte session tokens)",
        security.password_hash_rounds,
        security.session_token_bytes,
    )
    return IdentityService(
        uow_factory=sql_unit_of_work_factory(db.get_session),
        hasher=CredentialHasher(rounds=security.password_hash_rounds),
        session_tokens=SessionTokenManager(
            clock or SystemClock(), token_bytes=security.session_token_bytes
        ),
    )

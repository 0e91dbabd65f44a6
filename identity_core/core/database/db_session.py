"""Database engine and session factory used across the application."""

from loguru import logger
from sqlalchemy import Engine, StaticPool, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from identity_core.runtime.config.config_data import DatabaseConfig


class DbSessionService:
    def __init__(self, db_config: DatabaseConfig | None = None, engine: Engine | None = None):
        """Initialize the shared database engine and session factory."""
        self._config = db_config or DatabaseConfig()
        if engine is not None:
            self._engine = engine
            return

        logger.info("Setting up database engine and session factory")
        self._engine = create_engine(self._config.url, **self._engine_kwargs())

    @property
    def engine(self) -> Engine:
        return self._engine

    def _engine_kwargs(self) -> dict:
        """Get database-specific engine arguments."""
        db_config = self._config
        kwargs: dict = {"echo": db_config.echo}

        if db_config.is_sqlite:
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": 20,  # Lock timeout
            }
            if ":memory:" in db_config.url or db_config.url.rstrip("/") == "sqlite:":
                # One shared connection, otherwise each session sees an empty database
                kwargs["poolclass"] = StaticPool
            return kwargs

        kwargs.update(
            {
                "pool_size": db_config.pool_size,
                "max_overflow": db_config.max_overflow,
                "pool_timeout": db_config.pool_timeout,
                "pool_recycle": db_config.pool_recycle,
                "pool_pre_ping": True,  # Validate connections before use
            }
        )
        return kwargs

    def create_tables(self) -> None:
        """Create every table registered on the SQLModel metadata."""
        # Importing registers the tables with the metadata
        from identity_core.entities import SessionTokenTable, SocialUserTable, UserTable  # noqa: F401

        SQLModel.metadata.create_all(self._engine)
        logger.info("Database tables created")

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self._engine,
            expire_on_commit=False,  # Prevent lazy loading issues
            autoflush=True,
        )

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except SQLAlchemyError as e:
            logger.error("Database health check failed: {}: {}", type(e).__name__, e)
            return False

    def dispose(self) -> None:
        self._engine.dispose()

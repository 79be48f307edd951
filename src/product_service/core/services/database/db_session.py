"""Database engine and session factory used across the application."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from typing import Any

from loguru import logger
from sqlalchemy import Engine, text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from src.product_service.runtime.config.config_data import ConfigData
from src.product_service.runtime.context import get_config


class DbSessionService:
    def __init__(self, engine: Engine | None = None):
        """Initialize the shared database engine and session factory.

        Sessions may be opened from worker threads. On an engine whose pool is
        a single shared connection (in-memory SQLite) they are serialized.

        Args:
            engine: Pre-built engine to use instead of one built from configuration.
        """
        self._engine = engine if engine is not None else self._create_engine()
        self._session_lock = threading.Lock()
        self._shared_connection = isinstance(self._engine.pool, StaticPool)

    def _create_engine(self) -> Engine:
        logger.info("Setting up database engine and session factory")
        main_config = get_config()
        engine = create_engine(
            main_config.database.connection_string,
            **self._engine_kwargs(main_config),
        )

        if main_config.app.environment == "production":
            logger.info(
                "Database engine initialized",
                pool_size=main_config.database.pool_size,
                max_overflow=main_config.database.max_overflow,
                pool_timeout=main_config.database.pool_timeout,
                pool_recycle=main_config.database.pool_recycle,
            )
        return engine


    def _engine_kwargs(self, config: ConfigData) -> dict[str, Any]:
        db_config = config.database
        kwargs: dict[str, Any] = {
            "echo": False,
            "echo_pool": False,
            "connect_args": self._get_connect_args(config),
        }

        if db_config.is_sqlite:
            if config.app.environment == "production":
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider PostgreSQL for better performance and reliability."
                )
            # In-memory databases must share one connection
            if ":memory:" in db_config.url or db_config.url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
            return kwargs

        kwargs.update(
            {
                "pool_size": db_config.pool_size,
                "max_overflow": db_config.max_overflow,
                "pool_timeout": db_config.pool_timeout,
                "pool_recycle": db_config.pool_recycle,
                "pool_pre_ping": True,
                "pool_reset_on_return": "commit",
            }
        )
        return kwargs

    def _get_connect_args(self, config: ConfigData) -> dict:
        """Get database-specific connection arguments."""
        if config.database.is_sqlite:
            return {"check_same_thread": False, "timeout": 20}

        if "postgresql" in config.database.url:
            # psycopg2 takes server settings through 'options'
            return {
                "application_name": f"{config.app.environment}_product_service",
                "connect_timeout": 30,
                "options": "-c jit=off",
            }

        return {}

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self._engine,
            expire_on_commit=False,
            autoflush=True,
        )

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        guard = self._session_lock if self._shared_connection else nullcontext()
        with guard:
            db = self.get_session()
            try:
                yield db
                db.commit()
            except Exception as e:
                db.rollback()
                logger.error(
                    "Database transaction failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                raise
            finally:
                db.close()

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(
                "Database health check failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

    def get_pool_status(self) -> dict:
        """Get current connection pool status for monitoring."""
        pool = self._engine.pool
        return {
            "size": getattr(pool, "size", lambda: 0)(),
            "checked_in": getattr(pool, "checkedin", lambda: 0)(),
            "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            "overflow": getattr(pool, "overflow", lambda: 0)(),
        }

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator
from contextlib import contextmanager
import logging

from pydantic import SecretStr
from pydantic_settings import BaseSettings
from .base import StorageAdapter
from .models import Base

logger = logging.getLogger(__name__)

class PostgresConfig(BaseSettings):
    """Configuration for Postgres Storage."""
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "pivotflow"
    POSTGRES_POOL_SIZE: int = 5
    POSTGRES_MAX_OVERFLOW: int = 10
    POSTGRES_STATEMENT_TIMEOUT_MS: int = 30000

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def url(self) -> URL:
        return URL.create(
            "postgresql",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD.get_secret_value(),
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        )

class PostgresAdapter(StorageAdapter):
    """
    SQLAlchemy-based Postgres adapter.

    Sessions handed out by get_session() are one transaction each: allocation
    checks, writes and audit rows issued through the same session commit together.
    """

    def __init__(self, config: PostgresConfig):
        self.config = config
        self._engine: Engine | None = None
        self._session_factory = None

    @property
    def engine(self) -> Engine:
        if not self._engine:
            raise ConnectionError("Postgres is not connected. Call connect() first.")
        return self._engine

    def connect(self) -> None:
        if self._engine:
            return

        try:
            logger.info(f"Connecting to Postgres at {self.config.POSTGRES_HOST}:{self.config.POSTGRES_PORT}")

            self._engine = create_engine(
                self.config.url,
                pool_size=self.config.POSTGRES_POOL_SIZE,
                max_overflow=self.config.POSTGRES_MAX_OVERFLOW,
                pool_pre_ping=True,
                connect_args={"options": f"-c statement_timeout={self.config.POSTGRES_STATEMENT_TIMEOUT_MS}"},
            )

            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
            logger.info("Postgres connection pool established.")

        except Exception as e:
            logger.error(f"Failed to connect to Postgres: {e}")
            raise

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Postgres connection pool closed.")

    def health_check(self) -> bool:
        if not self._engine:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("postgres unhealthy")
            return False

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.
        """
        if not self._session_factory:
            raise ConnectionError("Postgres is not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create all tables. Local development only; deployments run the Alembic migrations."""
        # Register every mapped table on Base.metadata
        from pivotflow.storage import models_access_control, models_audit  # noqa: F401
        from pivotflow.allocations import models as allocation_models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("Database schema created.")

from typing import Generator
from sqlalchemy.orm import Session

from pivotflow.platform.config import settings
from pivotflow.platform.logging import clear_request_context, get_logger
from pivotflow.storage.postgres_adapter import PostgresAdapter, PostgresConfig

logger = get_logger(__name__)

# Singletons
_postgres_adapter: PostgresAdapter | None = None

def get_postgres_adapter() -> PostgresAdapter:
    """Process wide adapter, configured from the POSTGRES_* environment."""
    global _postgres_adapter
    if not _postgres_adapter:
        config = PostgresConfig()
        _postgres_adapter = PostgresAdapter(config)
    return _postgres_adapter

def init_database() -> PostgresAdapter:
    adapter = get_postgres_adapter()
    adapter.connect()
    if settings.DB_CREATE_SCHEMA:
        logger.warning("creating database schema from models; use the Alembic migrations outside development")
        adapter.create_schema()
    return adapter

def get_db() -> Generator[Session, None, None]:
    """
    One session per request. Allocation services commit their own mutations;
    whatever is left is committed or rolled back when the request ends.
    """
    adapter = get_postgres_adapter()
    try:
        with adapter.get_session() as session:
            yield session
    finally:
        # Organization and acting user were bound by the auth dependency
        clear_request_context()

def close_postgres_adapter():
    global _postgres_adapter
    if _postgres_adapter:
        _postgres_adapter.close()
        _postgres_adapter = None

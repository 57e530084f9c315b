"""
Database configuration and session management.
Supports SQLite (default) and PostgreSQL.
"""
import logging
import os

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from cio.core.config import settings, PROJECT_ROOT
from cio.core.logging_config import LogCategory, mask_secrets
from cio.middleware.request_logging import request_id_ctx, request_path_ctx

logger = logging.getLogger(LogCategory.DB)

database_url = settings.effective_database_url
database_type = settings.database_type

logger.info(f"Using {database_type} database: {mask_secrets(database_url)}")

if database_type == "sqlite":
    url = make_url(database_url)
    is_sqlite_memory = url.database in (None, "", ":memory:")

    engine_kwargs = {
        "echo": False,
        "connect_args": {"check_same_thread": False},
    }
    if is_sqlite_memory:
        engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **engine_kwargs)
    logger.info(f"Configured SQLite engine ({'in-memory' if is_sqlite_memory else 'file-based'})")

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Set SQLite pragmas."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not is_sqlite_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

else:
    engine = create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )
    logger.info("Configured PostgreSQL engine with connection pooling")


@event.listens_for(engine, "before_cursor_execute")
def _log_sql_statement(conn, cursor, statement, parameters, context, executemany):
    if not settings.log_sql_requests:
        return
    compact = " ".join(statement.split())
    if len(compact) > 800:
        compact = f"{compact[:800]}..."
    logger.info(
        "SQL statement path=%s request_id=%s: %s",
        request_path_ctx.get(),
        request_id_ctx.get(),
        compact,
    )


def create_db_and_tables():
    """Create database tables using Alembic migrations."""
    skip_db_init = os.getenv("SKIP_DB_INIT", "false").lower() in ("true", "1", "yes")
    if skip_db_init:
        logger.info("Skipping database initialization (SKIP_DB_INIT set)")
        return

    # Importing the models registers their tables on SQLModel.metadata
    import cio.models  # noqa: F401

    try:
        logger.info("Running database migrations...")
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
        alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)

        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")

    except Exception as exc:
        logger.error(exc)
        try:
            logger.info("Falling back to SQLModel create_all...")
            SQLModel.metadata.create_all(engine)
            logger.info("Database tables created successfully (fallback)")
        except Exception as e:
            logger.error(e)
            raise


def get_session():
    """Get database session."""
    with Session(engine) as session:
        yield session


def get_session_context():
    """
    Get database session as context manager.

    Use this for background jobs and the CLI.

    Example:
        with get_session_context() as session:
            RecordService(Company, session).list_all()
    """
    return Session(engine)


def init_db():
    """Initialize database tables."""
    logger.info("Initializing database...")
    create_db_and_tables()
    logger.info("Database initialization completed")

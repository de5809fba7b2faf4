"""Database configuration and session management"""

from contextlib import contextmanager
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator, Iterator
from health_reminder.config import settings
import logging

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "echo": settings.DEBUG}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "echo": settings.DEBUG,
    }


def create_db_engine(url: str) -> Engine:
    """
    Build an engine for url.

    pysqlite neither emits BEGIN before a SAVEPOINT nor keeps one open across
    RELEASE, so SQLite engines take over transaction control: the driver is
    put in autocommit mode and SQLAlchemy issues BEGIN itself.
    """
    db_engine = create_engine(url, **_engine_options(url))
    if db_engine.dialect.name == "sqlite":
        @event.listens_for(db_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(db_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return db_engine


engine = create_db_engine(settings.get_database_url())

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()

# Import models after Base is defined so metadata is populated.
from health_reminder import models  # noqa: E402,F401


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session

    Yields:
        Session: Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work around a single service operation.

    Commits when the block exits normally and rolls back on any exception,
    which is then re-raised unchanged.
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def init_db() -> None:
    """
    Prepare the schema according to DB_INIT_MODE.

    - migrate: expect Alembic to have run (alembic_version present)
    - create_all: build tables straight from ORM metadata, for local use and tests
    - off: do nothing
    """
    mode = settings.DB_INIT_MODE.lower().strip()
    if mode == "off":
        logger.info("DB initialization check skipped (DB_INIT_MODE=off)")
        return

    if mode == "create_all":
        Base.metadata.create_all(bind=engine)
        logger.warning("Tables created from ORM metadata; use Alembic migrations outside local development.")
        return

    if mode == "migrate":
        with engine.connect() as conn:
            migrated = inspect(conn).has_table("alembic_version")
        if not migrated and settings.DB_REQUIRE_HEAD:
            raise RuntimeError(
                "Migration table missing. Run `alembic upgrade head` before starting the API."
            )
        logger.info("Database schema is managed by Alembic (migrated=%s)", migrated)
        return

    raise RuntimeError(f"Unknown DB_INIT_MODE: {settings.DB_INIT_MODE}")

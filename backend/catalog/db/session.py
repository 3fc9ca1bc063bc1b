"""Engine and session factory configuration.

The API process builds one engine in its lifespan and hands sessions to the
services; Celery workers build their own through get_fresh_session().
"""

from collections.abc import Generator
from functools import lru_cache
import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from catalog.core.config import get_settings

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine tuned for the target database.

    PostgreSQL gets a pre-pinged, recycled connection pool with TCP
    keepalives. SQLite (tests, local runs) gets foreign keys switched on and,
    for in-memory URLs, a single shared connection.
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_pre_ping=True,  # Test connections before using
        pool_recycle=1800,  # Recycle connections after 30 minutes
        pool_size=5,
        max_overflow=10,
        connect_args={
            "connect_timeout": 10,
            "keepalives": 1,
            "keepalives_idle": 30,
            "keepalives_interval": 10,
            "keepalives_count": 5,
        },
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@lru_cache
def get_worker_session_factory() -> sessionmaker[Session]:
    """Session factory for processes without an application lifespan."""
    settings = get_settings()
    return build_session_factory(build_engine(settings.database_url, settings.database_echo))


def get_fresh_session() -> Session:
    """Get a fresh database session, handling connection errors.

    This is useful for worker tasks where pooled connections might be stale.
    """
    factory = get_worker_session_factory()
    try:
        return factory()
    except (OperationalError, DisconnectionError) as e:
        logger.warning(f"Connection error creating session: {e}, retrying...")
        factory.kw["bind"].dispose()
        return factory()


def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Yield a session that is rolled back on error and always closed."""
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import create_engine, pool, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from cinematch.exceptions import UpstreamUnavailableError
import os
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()

T = TypeVar("T")


def create_db_engine(database_url: str) -> Engine:
    """
    Build the SQLAlchemy engine for the catalog / profile datastore.

    SQLite (local development and tests) gets a thread-agnostic connection,
    everything else a QueuePool so connections are reused across requests.
    """
    echo = os.getenv("DB_ECHO", "false").lower() == "true"  # Set to true for SQL debugging

    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}, "echo": echo}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = pool.StaticPool
        engine = create_engine(database_url, **kwargs)
    else:
        engine = create_engine(
            database_url,
            poolclass=pool.QueuePool,
            pool_size=int(os.getenv("DB_POOL_SIZE", 5)),  # Number of connections to keep open
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),  # Max connections beyond pool_size
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", 30)),  # Seconds to wait for connection
            pool_recycle=int(os.getenv("DB_POOL_RECYCLE", 3600)),  # Recycle connections after 1 hour
            pool_pre_ping=True,  # Test connections before using them
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Log when a new connection is created"""
        logger.debug("Database connection established")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Transactional scope around a series of operations.

    Usage:
        with session_scope(SessionLocal) as db:
            db.add(obj)
        # committed here, rolled back on error
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


async def run_in_session(session_factory: sessionmaker, fn: Callable[..., T], *args: Any) -> T:
    """
    Run blocking ORM work in the thread pool with its own session.

    fn receives the session as first argument. Driver / connection errors
    surface as UpstreamUnavailableError so callers can tell "no rows" from
    "datastore down".
    """
    def _call() -> T:
        with session_scope(session_factory) as db:
            return fn(db, *args)

    try:
        return await run_in_threadpool(_call)
    except SQLAlchemyError as e:
        logger.error(f"Datastore error in {getattr(fn, '__name__', fn)}: {str(e)}")
        raise UpstreamUnavailableError("datastore", str(e)) from e

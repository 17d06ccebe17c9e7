import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .services.errors import StoreUnavailable

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SEC = 15


def build_engine(url: str) -> Engine:
    """
    Create an engine whose transactions are serialised for the single chair.

    SQLite: every transaction opens with BEGIN IMMEDIATE, so concurrent
    writers queue on the database lock instead of interleaving their
    check-then-insert sequences.
    Anything else: SERIALIZABLE isolation; a serialization failure comes back
    as OperationalError and is reported as StoreUnavailable.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, isolation_level="SERIALIZABLE", pool_pre_ping=True)

    # check_same_thread=False: FastAPI runs sync endpoints in a thread pool
    engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_SEC,
        },
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _):
        # Take transaction control away from pysqlite; BEGIN is emitted below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = build_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    One read-modify-write unit: commit on success, roll back on any error.

    Driver-level failures (lost connection, lock timeout, serialization
    failure) are re-raised as StoreUnavailable. Nothing is left behind.
    """
    try:
        yield db
        db.commit()
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        db.rollback()
        logger.warning("Store transaction failed: %s", e.__class__.__name__)
        raise StoreUnavailable("The booking store is temporarily unavailable") from e
    except Exception:
        db.rollback()
        raise

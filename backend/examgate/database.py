"""
Database connection and store management.

Uses SQLAlchemy for ORM operations. SQLite is the default backing file;
any SQLAlchemy URL (e.g. PostgreSQL) can be configured via DATABASE_URL.

The Store is created once by the application and injected into every
route through the `get_store` dependency. It owns the engine, the session
factory and one lock per collection.
"""

import threading
import time
from contextlib import contextmanager, ExitStack

from fastapi import Request
from sqlalchemy import create_engine, event, func
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

# Collections in lock acquisition order
COLLECTIONS = ("users", "results")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def build_engine(database_url: str):
    """Create an engine with the options appropriate for the database type."""
    engine_kwargs = {"echo": False}

    if database_url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif database_url.startswith("sqlite"):
        # Sync routes run in the threadpool, sessions cross threads
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


class Store:
    """
    Owned persistence object for users and test results.

    Every operation runs inside `transaction(...)`, naming the collections
    it writes. Locks are taken in COLLECTIONS order so two operations that
    touch both collections cannot deadlock.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = build_engine(database_url)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self._locks = {name: threading.Lock() for name in COLLECTIONS}

    def create_tables(self):
        """Create missing tables. Managed databases use Alembic instead."""
        # Register models with Base.metadata
        from examgate import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def transaction(self, *collections: str):
        """
        Yield a session holding the locks of `collections`.

        Commits when the block exits normally, rolls back and re-raises
        otherwise. Pass no collections for read-only work.
        """
        unknown = set(collections) - set(COLLECTIONS)
        if unknown:
            raise ValueError("Unknown collection(s): {}".format(", ".join(sorted(unknown))))

        with ExitStack() as stack:
            for name in COLLECTIONS:
                if name in collections:
                    stack.enter_context(self._locks[name])
            db = self.session_factory()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def dispose(self):
        self.engine.dispose()


def next_timestamp_id(db: Session, model) -> int:
    """
    Creation-time id in epoch milliseconds, bumped past the current
    maximum so ids stay unique when two rows land in the same millisecond.
    Callers must hold the collection lock.
    """
    db.flush()
    candidate = int(time.time() * 1000)
    latest = db.query(func.max(model.id)).scalar()
    if latest is not None and latest >= candidate:
        candidate = latest + 1
    return candidate


def get_store(request: Request) -> Store:
    """FastAPI dependency returning the application's Store."""
    return request.app.state.store

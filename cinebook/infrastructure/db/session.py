# cinebook/infrastructure/db/session.py

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class StorageUnavailableError(Exception):
    """
    Raised when the database cannot be reached or times out.
    Not part of the booking error taxonomy: callers treat it as fatal.
    """


# -----------------------------
# Base Class for Models
# -----------------------------
class Base(DeclarativeBase):
    pass


# -----------------------------
# Engine
# -----------------------------
def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Requests and the expiry sweeper share the pool across threads.
        connect_args["check_same_thread"] = False

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


# -----------------------------
# Session Factory
# -----------------------------
def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


def is_db_degraded(exc: Exception) -> bool:
    return isinstance(exc, (OperationalError, SQLAlchemyTimeoutError))


# -----------------------------
# Transactional scope
# -----------------------------
@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception as exc:
        session.rollback()
        if is_db_degraded(exc):
            raise StorageUnavailableError(str(exc)) from exc
        raise
    finally:
        session.close()

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from . import config
from .errors import StoreError

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str, timeout: float = 5.0) -> Engine:
    # For SQLite, enable check_same_thread=False for multithreading in FastAPI
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
    else:
        connect_args = {"connect_timeout": int(timeout)}
    engine = create_engine(database_url, connect_args=connect_args, future=True)
    if database_url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
    return engine


def enable_sqlite_foreign_keys(engine: Engine):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = make_engine(config.get().database_url, config.get().db_timeout)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Run the enclosed reads and writes as one transaction.

    Commits on success. On any exception the session is rolled back so no
    part of the composite change is visible; store failures are re-raised as
    a retryable ``StoreError``.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("transaction rolled back: %s", exc)
        raise StoreError("store transaction failed") from exc
    except BaseException:
        db.rollback()
        raise

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import get_settings


logger = logging.getLogger(__name__)


class StorageUnavailable(RuntimeError):
    """The ledger database could not be reached, was locked, or timed out."""


def _create_engine() -> Engine:
    settings = get_settings()
    connect_args: dict[str, object] = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    eng = create_engine(settings.database_url, connect_args=connect_args)
    if settings.database_url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_pragmas)
    return eng


def _enable_sqlite_pragmas(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


engine = _create_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


@contextmanager
def storage_guard(session: Optional[Session] = None) -> Iterator[None]:
    """Surface driver-level connectivity failures as ``StorageUnavailable``.

    The pending unit of work on ``session`` is rolled back so a failed call
    never leaves a partial write behind. No retry is attempted here.
    """
    try:
        yield
    except OperationalError as exc:
        logger.error(f"storage_unavailable: error={exc.orig!r}")
        if session is not None:
            session.rollback()
        raise StorageUnavailable("Ledger store unavailable") from exc


@contextmanager
def session_scope() -> Iterator[Session]:
    session: Session = SessionLocal()
    try:
        with storage_guard():
            yield session
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

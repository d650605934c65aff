from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from app.core.config import settings
from app.core.errors import ReadshelfError, StoreError
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs) -> Engine:
    eng = create_engine(url, pool_pre_ping=True, **kwargs)
    if eng.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(eng)
    return eng


def enable_sqlite_foreign_keys(eng: Engine) -> None:
    # SQLite ignores FOREIGN KEY clauses unless asked per connection.
    @event.listens_for(eng, "connect")
    def _fk_pragma(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(
    db: Session, operation: str, *, commit: bool = True, **context
) -> Iterator[Session]:
    """Run a unit of work and commit it, or roll all of it back.

    Database failures are logged with ``context`` and re-raised as StoreError so
    callers never see driver messages or SQL text. Reads pass ``commit=False``
    so the rows they return are not expired.
    """
    try:
        yield db
        if commit:
            db.commit()
    except ReadshelfError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "store operation failed", extra={"operation": operation, **context}
        )
        raise StoreError(f"{operation} failed") from exc

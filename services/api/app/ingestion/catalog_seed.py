from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from app.core.config import settings
from app.core.errors import FatalIngestionError, MalformedRecordError
from app.core.otel import get_tracer
from app.crud.catalog import insert_if_absent
from app.domain.normalize import clean_block, clean_genres, clean_text, parse_rating
from app.models.book import Book
from app.models.user_book import UserBook
from sqlalchemy import Integer, delete, inspect, text
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

REQUIRED = {"title", "author"}

SOURCE_ERRORS = (OSError, UnicodeDecodeError, csv.Error)


@dataclass
class IngestionError:
    record: int | None
    error: str


@dataclass
class IngestionReport:
    inserted: int = 0
    skipped_duplicates: int = 0
    skipped_malformed: int = 0
    errors: list[IngestionError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.inserted + self.skipped_duplicates + self.skipped_malformed


def _normalize_header(h: str | None) -> str:
    return "".join((h or "").strip().lower().split())


def normalize_record(
    raw: Mapping[str, object], *, display_order: int
) -> dict:
    """Turn one source record into Book column values.

    Raises MalformedRecordError when title or author is missing or longer
    than its column.
    """
    row = {_normalize_header(k): v for k, v in raw.items() if k is not None}

    title = clean_text(row.get("title"))
    author = clean_text(row.get("author"))
    if not title or not author:
        raise MalformedRecordError("missing title or author", record=display_order)
    for name, value in (("title", title), ("author", author)):
        limit = Book.__table__.c[name].type.length
        if len(value) > limit:
            raise MalformedRecordError(
                f"{name} longer than {limit} characters", record=display_order
            )

    return {
        "title": title,
        "author": author,
        "genre": clean_genres(row.get("genres")),
        "rating": parse_rating(row.get("rating")),
        "description": clean_block(row.get("description")),
        "cover_url": clean_text(row.get("coverimg")),
        "display_order": display_order,
    }


def ensure_schema(db: Session) -> None:
    """Create missing tables and add ``books.display_order`` if an older
    database lacks it. Never drops or rewrites anything."""
    conn = db.connection()
    Book.metadata.create_all(bind=conn, tables=[Book.__table__, UserBook.__table__])

    columns = {c["name"] for c in inspect(conn).get_columns(Book.__tablename__)}
    if "display_order" not in columns:
        type_sql = Integer().compile(dialect=conn.dialect)
        db.execute(text(f"ALTER TABLE books ADD COLUMN display_order {type_sql}"))
        logger.info("added books.display_order column")
    db.commit()


def clear_catalog(db: Session) -> int:
    """Delete every catalog row, library entries first. Returns books removed."""
    db.execute(delete(UserBook).execution_options(synchronize_session=False))
    removed = db.execute(
        delete(Book).execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    logger.info("cleared catalog", extra={"removed": removed})
    return removed


def run(
    db: Session,
    records: Iterable[Mapping[str, object]],
    *,
    commit_every: int | None = None,
) -> IngestionReport:
    """Reload the catalog from ``records``.

    The catalog is cleared first: this is a full replace, not a merge. Records
    are pulled one at a time and written one at a time, so memory stays flat and
    the store never sees more than one pending write from us. Duplicate
    (title, author) pairs keep the first occurrence. Each row is written under
    its own savepoint, so a row the store rejects is skipped like a malformed
    one. Any other store failure aborts the run with FatalIngestionError
    carrying the number of rows already committed.
    """
    batch_size = commit_every or settings.seed_commit_every
    report = IngestionReport()
    pending = 0

    try:
        ensure_schema(db)
        clear_catalog(db)

        for position, raw in enumerate(records, start=1):
            try:
                values = normalize_record(raw, display_order=position)
            except MalformedRecordError as exc:
                report.skipped_malformed += 1
                report.errors.append(IngestionError(record=exc.record, error=str(exc)))
                logger.warning("skipping record", extra={"record": position, "reason": str(exc)})
                continue

            try:
                with db.begin_nested():
                    written = insert_if_absent(db, values)
            except (DataError, IntegrityError) as exc:
                # The store refused this row only; the rest of the batch stands.
                report.skipped_malformed += 1
                report.errors.append(
                    IngestionError(record=position, error="rejected by the database")
                )
                logger.warning(
                    "skipping record",
                    extra={"record": position, "reason": exc.__class__.__name__},
                )
                continue

            if written:
                pending += 1
            else:
                report.skipped_duplicates += 1

            if pending >= batch_size:
                db.commit()
                report.inserted += pending
                pending = 0

        db.commit()
        report.inserted += pending
        pending = 0
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("catalog seed aborted", extra={"inserted": report.inserted})
        raise FatalIngestionError(
            "database error during catalog seed", inserted_count=report.inserted
        ) from exc
    except SOURCE_ERRORS as exc:
        db.rollback()
        logger.exception("catalog source unreadable", extra={"inserted": report.inserted})
        raise FatalIngestionError(
            f"cannot read catalog source: {exc}", inserted_count=report.inserted
        ) from exc

    logger.info(
        "catalog seed finished",
        extra={
            "inserted": report.inserted,
            "skipped_duplicates": report.skipped_duplicates,
            "skipped_malformed": report.skipped_malformed,
        },
    )
    return report


def _read_csv(path: Path) -> Iterator[dict]:
    with path.open("r", encoding="utf-8-sig", newline="") as fh:
        reader = csv.DictReader(fh)
        header = {_normalize_header(h) for h in (reader.fieldnames or [])}
        missing = REQUIRED - header
        if missing:
            raise FatalIngestionError(
                f"CSV is missing required column(s): {', '.join(sorted(missing))}"
            )
        yield from reader


def run_from_path(
    db: Session, path: str | Path, *, commit_every: int | None = None
) -> IngestionReport:
    """Seed the catalog from a CSV file (header on line 1)."""
    source = Path(path)
    if not source.is_file():
        raise FatalIngestionError(f"CSV source not found: {source}")

    records = _read_csv(source)
    try:
        # Validates the header before anything is cleared.
        first = next(records, None)
    except SOURCE_ERRORS as exc:
        raise FatalIngestionError(f"cannot read catalog source: {exc}") from exc

    def _stream() -> Iterator[dict]:
        if first is None:
            return
        yield first
        yield from records

    logger.info("seeding catalog", extra={"source": str(source)})
    with tracer.start_as_current_span("catalog_seed.run") as span:
        span.set_attribute("seed.source", str(source))
        report = run(db, _stream(), commit_every=commit_every)
        span.set_attribute("seed.inserted", report.inserted)
        span.set_attribute("seed.skipped_duplicates", report.skipped_duplicates)
        span.set_attribute("seed.skipped_malformed", report.skipped_malformed)
    return report

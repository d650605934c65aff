from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.core.errors import NotFoundError, ValidationError
from app.crud.catalog import find_or_create_book, title_or_author_matches
from app.db.session import atomic
from app.db.upsert import conflict_insert
from app.domain.normalize import clean_block, clean_text, parse_rating
from app.domain.status import ReadingStatus, coerce_status
from app.models.book import Book
from app.models.user_book import UserBook, utcnow
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


@dataclass
class LibraryEntry:
    book: Book
    status: ReadingStatus
    user_rating: float | None
    user_review: str | None
    updated_at: datetime


@dataclass(frozen=True)
class AddResult:
    book_id: int
    created: bool


def _require_user(user_id: str) -> str:
    uid = (user_id or "").strip() if isinstance(user_id, str) else ""
    if not uid:
        raise ValidationError("A user id is required")
    return uid


def upsert_status(
    db: Session,
    *,
    user_id: str,
    book_id: int,
    status: ReadingStatus | str | None,
    rating: float | str | None = None,
    review: str | None = None,
) -> ReadingStatus:
    """Set the user's status, rating and review for a book in one statement.

    Last write wins: an existing row is fully replaced (no merge with the old
    review) and its timestamp refreshed. Unknown statuses fall back to
    ``already_read``. Raises NotFoundError if the book does not exist.
    """
    uid = _require_user(user_id)
    resolved = coerce_status(status)

    stmt = conflict_insert(db, UserBook).values(
        user_id=uid,
        book_id=book_id,
        status=resolved.value,
        rating=parse_rating(rating),
        review=clean_block(review),
        created_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "book_id"],
        set_={
            "status": stmt.excluded.status,
            "rating": stmt.excluded.rating,
            "review": stmt.excluded.review,
            "created_at": stmt.excluded.created_at,
        },
    )

    with atomic(db, "upsert_status", user_id=uid, book_id=book_id):
        try:
            db.execute(stmt)
        except IntegrityError as exc:
            raise NotFoundError(f"Book {book_id} not found") from exc
    return resolved


def add_book(
    db: Session,
    *,
    user_id: str,
    title: str,
    author: str,
    genre: str | None = None,
    rating: float | str | None = None,
) -> AddResult:
    """Find or create the catalog book, then put it on the user's
    "already read" shelf unless it is already somewhere in their library.

    An existing entry is left as is; ``created`` tells the caller which case
    happened.
    """
    uid = _require_user(user_id)
    parsed_rating = parse_rating(rating)
    book_id = find_or_create_book(
        db, title=title, author=author, genre=genre, rating=parsed_rating
    )

    stmt = (
        conflict_insert(db, UserBook)
        .values(
            user_id=uid,
            book_id=book_id,
            status=ReadingStatus.ALREADY_READ.value,
            rating=parsed_rating,
            review=None,
            created_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "book_id"])
    )
    with atomic(db, "add_book", user_id=uid, book_id=book_id):
        try:
            created = db.execute(stmt).rowcount == 1
        except IntegrityError as exc:
            # The book was deleted between find_or_create and this insert.
            raise NotFoundError(f"Book {book_id} not found") from exc
    return AddResult(book_id=book_id, created=created)


def remove_book(db: Session, *, user_id: str, book_id: int) -> bool:
    """Drop the entry if present. Removing a missing entry is not an error."""
    uid = _require_user(user_id)
    with atomic(db, "remove_book", user_id=uid, book_id=book_id):
        result = db.execute(
            delete(UserBook)
            .where(UserBook.user_id == uid)
            .where(UserBook.book_id == book_id)
            .execution_options(synchronize_session="fetch")
        )
    return result.rowcount > 0


def list_by_status(
    db: Session,
    *,
    user_id: str,
    status: ReadingStatus | str | None,
    query: str | None = None,
) -> list[LibraryEntry]:
    """Books on one of the user's shelves, joined with their catalog rows.

    Ordered by the personal rating, highest first, unrated entries last, then
    by title so the order is the same on every backend.
    """
    uid = _require_user(user_id)
    resolved = coerce_status(status)

    stmt = (
        select(Book, UserBook)
        .join(UserBook, UserBook.book_id == Book.id)
        .where(UserBook.user_id == uid)
        .where(UserBook.status == resolved.value)
    )
    term = clean_text(query)
    if term:
        stmt = stmt.where(title_or_author_matches(term))
    stmt = stmt.order_by(
        UserBook.rating.desc().nulls_last(),
        Book.title.asc(),
        Book.id.asc(),
    )

    with atomic(db, "list_by_status", commit=False, user_id=uid):
        rows = db.execute(stmt).all()

    return [
        LibraryEntry(
            book=book,
            status=coerce_status(entry.status),
            user_rating=entry.rating,
            user_review=entry.review,
            updated_at=entry.created_at,
        )
        for book, entry in rows
    ]


def get_entry(db: Session, *, user_id: str, book_id: int) -> UserBook | None:
    uid = _require_user(user_id)
    with atomic(db, "get_entry", commit=False, user_id=uid, book_id=book_id):
        return db.get(UserBook, (uid, book_id))

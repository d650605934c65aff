from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from app.core.config import settings
from app.core.errors import ConflictError, StoreError, ValidationError
from app.db.session import atomic
from app.db.upsert import conflict_insert
from app.domain.normalize import clean_block, clean_genres, clean_text, parse_rating
from app.models.book import Book
from app.models.user_book import UserBook
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.expression import ColumnElement
from sqlalchemy.orm import Session


@dataclass(frozen=True)
class CatalogFilters:
    query: str | None = None
    genre: str | None = None
    min_rating: float | None = None


@dataclass
class CatalogPage:
    rows: list[Book] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size


PredicateBuilder = Callable[[CatalogFilters], Optional[ColumnElement[bool]]]


def title_or_author_matches(term: str) -> ColumnElement[bool]:
    return or_(
        Book.title.icontains(term, autoescape=True),
        Book.author.icontains(term, autoescape=True),
    )


def match_title_or_author(filters: CatalogFilters) -> ColumnElement[bool] | None:
    if not filters.query:
        return None
    return title_or_author_matches(filters.query)


def match_genre(filters: CatalogFilters) -> ColumnElement[bool] | None:
    if not filters.genre:
        return None
    return Book.genre.icontains(filters.genre, autoescape=True)


def match_min_rating(filters: CatalogFilters) -> ColumnElement[bool] | None:
    if filters.min_rating is None:
        return None
    return Book.rating >= filters.min_rating


# Each builder contributes one bound-parameter clause, or nothing.
CATALOG_PREDICATES: tuple[PredicateBuilder, ...] = (
    match_title_or_author,
    match_genre,
    match_min_rating,
)


def build_predicates(
    filters: CatalogFilters,
    builders: Sequence[PredicateBuilder] = CATALOG_PREDICATES,
) -> list[ColumnElement[bool]]:
    clauses = (build(filters) for build in builders)
    return [c for c in clauses if c is not None]


def _catalog_order():
    # Seeded rows in source order; hand-added rows (no order) go last.
    return (Book.display_order.asc().nulls_last(), Book.id.asc())


def list_books(
    db: Session,
    *,
    query: str | None = None,
    genre: str | None = None,
    min_rating: float | None = None,
    page: int | None = 1,
    page_size: int | None = None,
) -> CatalogPage:
    """Return one page of the catalog plus the total number of matches.

    Filters are combined with AND and each is skipped when empty. Pages below 1
    are clamped to 1; pages past the last one are empty.
    """
    size = settings.catalog_page_size if page_size is None else page_size
    if size < 1:
        raise ValidationError("page_size must be at least 1")
    current = max(1, page or 1)
    offset = (current - 1) * size

    filters = CatalogFilters(
        query=clean_text(query),
        genre=clean_text(genre),
        min_rating=parse_rating(min_rating),
    )
    predicates = build_predicates(filters)

    with atomic(db, "list_books", commit=False, page=current):
        total = db.execute(
            select(func.count()).select_from(Book).where(*predicates)
        ).scalar_one()
        # Out-of-range offsets never reach the driver, which may not fit them in a bigint.
        if offset >= total:
            rows = []
        else:
            rows = (
                db.execute(
                    select(Book)
                    .where(*predicates)
                    .order_by(*_catalog_order())
                    .limit(size)
                    .offset(offset)
                )
                .scalars()
                .all()
            )

    return CatalogPage(rows=list(rows), total=total, page=current, page_size=size)


def get_book(db: Session, book_id: int) -> Book | None:
    with atomic(db, "get_book", commit=False, book_id=book_id):
        return db.get(Book, book_id)


def find_first_match(db: Session, query: str | None) -> Book | None:
    """First catalog book whose title or author contains ``query``."""
    term = clean_text(query)
    if not term:
        return None
    with atomic(db, "find_first_match", commit=False):
        return (
            db.execute(
                select(Book)
                .where(title_or_author_matches(term))
                .order_by(*_catalog_order())
                .limit(1)
            )
            .scalars()
            .first()
        )


def _lookup_id(db: Session, title: str, author: str) -> int | None:
    return db.execute(
        select(Book.id)
        .where(func.lower(Book.title) == title.lower())
        .where(func.lower(Book.author) == author.lower())
    ).scalar_one_or_none()


def insert_if_absent(db: Session, values: dict) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING. True when a row was written.

    Does not commit; the caller owns the transaction.
    """
    stmt = conflict_insert(db, Book).values(**values).on_conflict_do_nothing()
    return db.execute(stmt).rowcount == 1


def _require_title_author(title: object, author: object) -> tuple[str, str]:
    t = clean_text(title)
    a = clean_text(author)
    if not t or not a:
        raise ValidationError("Title and author are required")
    return t, a


def find_or_create_book(
    db: Session,
    *,
    title: str,
    author: str,
    genre: str | None = None,
    rating: float | str | None = None,
    description: str | None = None,
) -> int:
    """Return the id of the book matching (title, author) case-insensitively,
    creating it if needed.

    Concurrent callers racing on the same pair all get the same id: the unique
    index decides the winner and the losers' inserts become no-ops.
    """
    t, a = _require_title_author(title, author)

    with atomic(db, "find_or_create_book"):
        book_id = _lookup_id(db, t, a)
        if book_id is None:
            insert_if_absent(
                db,
                {
                    "title": t,
                    "author": a,
                    "genre": clean_genres(genre),
                    "rating": parse_rating(rating),
                    "description": clean_block(description),
                },
            )
            book_id = _lookup_id(db, t, a)
        if book_id is None:
            # Inserted by someone else and deleted again before we could read it.
            raise StoreError("find_or_create_book failed")
    return book_id


def update_book(
    db: Session,
    book_id: int,
    *,
    title: str,
    author: str,
    genre: str | None = None,
    rating: float | str | None = None,
) -> bool:
    """Replace title, author, genre and rating. Returns False if no such book.

    description, cover_url and display_order are left untouched.
    """
    t, a = _require_title_author(title, author)

    with atomic(db, "update_book", book_id=book_id):
        try:
            result = db.execute(
                update(Book)
                .where(Book.id == book_id)
                .values(
                    title=t,
                    author=a,
                    genre=clean_genres(genre),
                    rating=parse_rating(rating),
                )
                .execution_options(synchronize_session="fetch")
            )
        except IntegrityError as exc:
            raise ConflictError("Another book already has this title and author") from exc
    return result.rowcount > 0


def delete_book(db: Session, book_id: int) -> bool:
    """Delete a book and every library entry pointing at it, atomically.

    Entries go first so no UserBook ever references a missing Book. Deleting a
    missing id is a no-op and returns False.
    """
    with atomic(db, "delete_book", book_id=book_id):
        db.execute(
            delete(UserBook)
            .where(UserBook.book_id == book_id)
            .execution_options(synchronize_session="fetch")
        )
        result = db.execute(
            delete(Book)
            .where(Book.id == book_id)
            .execution_options(synchronize_session="fetch")
        )
    return result.rowcount > 0

from __future__ import annotations

from app.api.deps import get_current_user_id
from app.api.rate_limit import rate_limiter
from app.core.config import settings
from app.crud.catalog import find_first_match
from app.crud.library import add_book, list_by_status, remove_book, upsert_status
from app.db.session import get_db
from app.domain.status import coerce_status
from app.schemas.books import BookOut
from app.schemas.library import (
    AddBookIn,
    AddBookOut,
    LibraryBookOut,
    MarkIn,
    MarkOut,
    ProfileOut,
)
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

router = APIRouter(prefix="/v1/library", tags=["library"])

_write_limit = rate_limiter(
    "library_write",
    limit=settings.rate_limit_writes_per_window,
    window_seconds=settings.rate_limit_window_seconds,
)


@router.get("", response_model=ProfileOut)
def get_profile(
    *,
    tab: str = Query("already"),
    query: str = Query(""),
    user_query: str = Query(""),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    status = coerce_status(tab)
    searched = find_first_match(db, query)
    entries = list_by_status(db, user_id=user_id, status=status, query=user_query)

    books = [
        LibraryBookOut(
            **BookOut.model_validate(e.book).model_dump(),
            status=e.status.value,
            user_rating=e.user_rating,
            user_review=e.user_review,
            updated_at=e.updated_at,
        )
        for e in entries
    ]
    return ProfileOut(
        tab=tab,
        status=status.value,
        query=query.strip(),
        searched_book=BookOut.model_validate(searched) if searched else None,
        books=books,
    )


@router.post("", response_model=AddBookOut, dependencies=[Depends(_write_limit)])
def add_to_library(
    payload: AddBookIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    result = add_book(
        db,
        user_id=user_id,
        title=payload.title,
        author=payload.author,
        genre=payload.genre,
        rating=payload.rating,
    )
    return AddBookOut(book_id=result.book_id, created=result.created)


@router.put("/{book_id}", response_model=MarkOut, dependencies=[Depends(_write_limit)])
def mark_book(
    book_id: int,
    payload: MarkIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    status = upsert_status(
        db,
        user_id=user_id,
        book_id=book_id,
        status=payload.status,
        rating=payload.rating,
        review=payload.review,
    )
    return MarkOut(book_id=book_id, status=status.value)


@router.delete("/{book_id}", status_code=204, dependencies=[Depends(_write_limit)])
def unmark_book(
    book_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    remove_book(db, user_id=user_id, book_id=book_id)
    return None

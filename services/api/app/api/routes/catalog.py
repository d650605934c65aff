from __future__ import annotations

from app.api.deps import get_current_user_id
from app.api.rate_limit import rate_limiter
from app.core.config import settings
from app.crud.catalog import delete_book, list_books, update_book
from app.db.session import get_db
from app.schemas.books import BookOut, BookUpdateIn, CatalogPageOut
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

router = APIRouter(prefix="/v1/books", tags=["catalog"])

MAX_PAGE = 1_000_000

_write_limit = rate_limiter(
    "catalog_write",
    limit=settings.rate_limit_writes_per_window,
    window_seconds=settings.rate_limit_window_seconds,
)


@router.get("", response_model=CatalogPageOut)
def list_catalog(
    *,
    query: str = Query(""),
    genre: str = Query(""),
    page: int = Query(1, le=MAX_PAGE),
    min_rating: float | None = Query(None),
    db: Session = Depends(get_db),
):
    result = list_books(db, query=query, genre=genre, min_rating=min_rating, page=page)
    return CatalogPageOut(
        items=[BookOut.model_validate(b) for b in result.rows],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
        query=query.strip(),
        genre=genre.strip(),
    )


@router.put("/{book_id}", status_code=204, dependencies=[Depends(_write_limit)])
def edit_book(
    book_id: int,
    payload: BookUpdateIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    found = update_book(
        db,
        book_id,
        title=payload.title,
        author=payload.author,
        genre=payload.genre,
        rating=payload.rating,
    )
    if not found:
        raise HTTPException(status_code=404, detail="Book not found")
    return None


@router.delete("/{book_id}", status_code=204, dependencies=[Depends(_write_limit)])
def remove_from_catalog(
    book_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    delete_book(db, book_id)
    return None

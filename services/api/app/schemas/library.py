from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.books import BookOut, Rating


class LibraryBookOut(BookOut):
    status: str
    user_rating: float | None
    user_review: str | None
    updated_at: datetime


class ProfileOut(BaseModel):
    tab: str
    status: str
    query: str = ""
    searched_book: BookOut | None = None
    books: list[LibraryBookOut] = Field(default_factory=list)


class AddBookIn(BaseModel):
    title: str
    author: str
    genre: str = ""
    rating: Rating = None


class AddBookOut(BaseModel):
    book_id: int
    created: bool


class MarkIn(BaseModel):
    # Free-form on purpose: unknown values fall back to "already_read".
    status: str | None = None
    rating: Rating = None
    review: str | None = None


class MarkOut(BaseModel):
    book_id: int
    status: str

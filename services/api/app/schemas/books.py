from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

# Star ratings, as in the seeded catalog. The columns hold Numeric(4, 2).
Rating = Annotated[float | None, Field(ge=0, le=5)]


class BookOut(BaseModel):
    id: int
    title: str
    author: str
    genre: str | None
    rating: float | None
    description: str | None
    cover_url: str | None
    display_order: int | None

    class Config:
        from_attributes = True


class CatalogPageOut(BaseModel):
    items: list[BookOut] = Field(default_factory=list)
    page: int
    page_size: int
    total: int
    total_pages: int
    query: str = ""
    genre: str = ""


class BookUpdateIn(BaseModel):
    title: str
    author: str
    genre: str | None = None
    rating: Rating = None

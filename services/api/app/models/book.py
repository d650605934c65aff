from __future__ import annotations

from app.models.base import Base
from sqlalchemy import Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(600), nullable=False)
    author: Mapped[str] = mapped_column(String(400), nullable=False)

    # Comma-joined, trimmed: "Fantasy, Fiction, Classics"
    genre: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Editorial rating from the catalog source, not a user's rating.
    rating: Mapped[float | None] = mapped_column(
        Numeric(4, 2, asdecimal=False), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Source position assigned by the seeder; hand-added books have none.
    display_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    entries = relationship(
        "UserBook", back_populates="book", passive_deletes=True
    )


# Natural key: one row per case-insensitive (title, author).
Index(
    "uq_books_title_author_ci",
    func.lower(Book.title),
    func.lower(Book.author),
    unique=True,
)

from __future__ import annotations

from datetime import datetime, timezone

from app.models.base import Base
from app.domain.status import ReadingStatus
from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserBook(Base):
    __tablename__ = "user_books"

    # Opaque id from the external auth service; no local users table.
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True
    )

    # already_read | recommend | save
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReadingStatus.ALREADY_READ.value
    )

    rating: Mapped[float | None] = mapped_column(
        Numeric(4, 2, asdecimal=False), nullable=True
    )
    review: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Refreshed on every upsert: this is "last modified", not "first added".
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    book = relationship("Book", back_populates="entries")


Index("ix_user_books_user_status", UserBook.user_id, UserBook.status)
Index("ix_user_books_book_id", UserBook.book_id)

from app.models.base import Base
from app.models.book import Book
from app.models.user_book import UserBook


__all__ = [
    "Base",
    "Book",
    "UserBook",
]

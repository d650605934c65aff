"""create books and user_books

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2025-11-02 18:12:44.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=600), nullable=False),
        sa.Column("author", sa.String(length=400), nullable=False),
        sa.Column("genre", sa.Text(), nullable=True),
        sa.Column("rating", sa.Numeric(precision=4, scale=2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_url", sa.String(length=1000), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_books_title_author_ci",
        "books",
        [sa.text("lower(title)"), sa.text("lower(author)")],
        unique=True,
    )

    op.create_table(
        "user_books",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("rating", sa.Numeric(precision=4, scale=2), nullable=True),
        sa.Column("review", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "book_id"),
    )
    op.create_index(
        "ix_user_books_user_status", "user_books", ["user_id", "status"], unique=False
    )
    op.create_index("ix_user_books_book_id", "user_books", ["book_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_user_books_book_id", table_name="user_books")
    op.drop_index("ix_user_books_user_status", table_name="user_books")
    op.drop_table("user_books")
    op.drop_index("uq_books_title_author_ci", table_name="books")
    op.drop_table("books")

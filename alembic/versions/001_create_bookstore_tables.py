"""Create bookstore person and book tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the Bookstore.Person and Bookstore.Book tables."""
    op.create_table(
        "bookstore_person",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "bookstore_book",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=10), nullable=True),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("number_of_pages", sa.Integer(), nullable=True),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["author_id"], ["bookstore_person.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index("ix_bookstore_book_author_id", "bookstore_book", ["author_id"])


def downgrade() -> None:
    """Drop the bookstore tables."""
    op.drop_index("ix_bookstore_book_author_id", table_name="bookstore_book")
    op.drop_table("bookstore_book")
    op.drop_table("bookstore_person")

"""
Book Model

The central model of the Bookstore API, representing catalog items.

The model only declares columns and indexes. Field constraints (length
limits, year range, ISBN shape) are checked by the standalone validation pass
in app.schemas.book before anything reaches the database; the only rules the
database itself enforces are NOT NULL and the unique isbn index.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


class Genre(str, Enum):
    """The fixed set of genres a book can belong to."""

    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SELF_HELP = "Self-Help"
    BUSINESS = "Business"
    CHILDREN = "Children"
    YOUNG_ADULT = "Young Adult"
    POETRY = "Poetry"
    DRAMA = "Drama"
    HORROR = "Horror"
    THRILLER = "Thriller"
    COMEDY = "Comedy"
    ADVENTURE = "Adventure"
    OTHER = "Other"


class BookStatus(str, Enum):
    """
    Lifecycle status of a book.

    - ACTIVE: listed and visible by default
    - INACTIVE: hidden from default listings
    - DISCONTINUED: soft-deleted, kept for history
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class Book(Base):
    """
    Book model representing items in the catalog.

    Table: books

    Indexes:
    - isbn: Unique index (normalized, hyphens and spaces removed)
    - title, author: For search
    - genre + published_year: Compound index for filtered listings
    - created_at: For the default newest-first ordering

    Example:
        book = Book(
            title="The Great Gatsby",
            author="F. Scott Fitzgerald",
            genre=Genre.FICTION.value,
            published_year=1925,
            isbn="9780743273565",
        )
    """

    __tablename__ = "books"
    __table_args__ = (
        Index("ix_books_genre_published_year", "genre", "published_year"),
    )

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    # Opaque string id; the API rejects anything that is not a UUID with 400
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # -------------------------------------------------------------------------
    # Catalog Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(200),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
        comment="Author name"
    )

    genre: Mapped[str] = mapped_column(
        String(50),
        index=True,
        nullable=False,
        comment="One of the Genre enum values"
    )

    published_year: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
        comment="Year of publication"
    )

    isbn: Mapped[str] = mapped_column(
        String(13),
        unique=True,
        index=True,
        nullable=False,
        comment="Normalized ISBN-10 or ISBN-13"
    )

    description: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
        comment="Book description or summary"
    )

    # -------------------------------------------------------------------------
    # Inventory Fields
    # -------------------------------------------------------------------------
    price: Mapped[float] = mapped_column(
        Float,
        default=0,
        nullable=False,
        comment="Unit price in USD"
    )

    stock: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Units in stock, never negative"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=BookStatus.ACTIVE.value,
        index=True,
        nullable=False,
        comment="active, inactive or discontinued"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    # Python-side defaults keep sub-second precision for newest-first sorting
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', isbn='{self.isbn}')"

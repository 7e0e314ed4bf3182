"""
Book Pydantic Schemas

These schemas are the standalone validation pass for books: request bodies
are checked here before any service touches the database, and
BookService.update_book re-runs BookBase over the merged record so partial
updates cannot leave a stored book in an invalid state.

Handles:
- ISBN normalization (hyphens/spaces stripped) and ISBN-10/ISBN-13 shape
- Published year range (1000 .. current year + 1)
- Genre and status enumerations
- Stock adjustment, statistics and deletion payloads
"""

import re
from datetime import datetime

from pydantic import ConfigDict, Field, computed_field, field_validator

from app.models.book import BookStatus, Genre
from app.schemas.common import CamelModel, UtcDatetime

ISBN_10_PATTERN = re.compile(r"^(?:\d{9}X|\d{10})$")
ISBN_13_PATTERN = re.compile(r"^97[89]\d{10}$")
MIN_PUBLISHED_YEAR = 1000


def normalize_isbn(value: str) -> str:
    """Remove hyphens and whitespace: "978-0-74-327356-5" -> "9780743273565"."""
    return re.sub(r"[-\s]", "", value)


def max_published_year() -> int:
    return datetime.now().year + 1


def _check_isbn(value: str) -> str:
    cleaned = normalize_isbn(value)
    if not (ISBN_10_PATTERN.match(cleaned) or ISBN_13_PATTERN.match(cleaned)):
        raise ValueError(
            "Invalid ISBN format. Please provide a valid ISBN-10 or ISBN-13"
        )
    return cleaned


def _check_published_year(value: int) -> int:
    if value > max_published_year():
        raise ValueError("Published year cannot be in the future")
    return value


class BookBase(CamelModel):
    """
    Base schema with every stored book field.

    Also used on its own to re-validate a merged record during updates.
    """

    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Book title",
        examples=["The Great Gatsby"],
    )

    author: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Author name",
        examples=["F. Scott Fitzgerald"],
    )

    genre: Genre = Field(
        ...,
        description="Book genre",
        examples=["Fiction"],
    )

    published_year: int = Field(
        ...,
        ge=MIN_PUBLISHED_YEAR,
        description="Year of publication (1000 to next year)",
        examples=[1925],
    )

    isbn: str = Field(
        ...,
        description="ISBN-10 or ISBN-13; hyphens and spaces are removed",
        examples=["978-0-7432-7356-5"],
    )

    description: str = Field(
        default="",
        max_length=2000,
        description="Book description or summary",
    )

    price: float = Field(
        default=0,
        ge=0,
        description="Unit price in USD",
        examples=[10.99],
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units in stock",
        examples=[25],
    )

    status: BookStatus = Field(
        default=BookStatus.ACTIVE,
        description="active, inactive or discontinued",
    )

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str) -> str:
        """Normalize and check the ISBN shape."""
        return _check_isbn(v)

    @field_validator("published_year")
    @classmethod
    def validate_published_year(cls, v: int) -> int:
        """The upper bound moves with the calendar, so it can't be a Field(le=...)."""
        return _check_published_year(v)


class BookCreate(BookBase):
    """
    Schema for creating a new book.

    Example request body:
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genre": "Fiction",
        "publishedYear": 1925,
        "isbn": "978-0-7432-7356-5",
        "price": 10.99,
        "stock": 25
    }
    """


class BookUpdate(CamelModel):
    """
    Schema for updating an existing book (PUT and PATCH).

    All fields are optional; only fields present in the body are applied.
    An explicit null for a required field is caught when the merged record
    is re-validated.
    """

    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)

    title: str | None = Field(default=None, min_length=1, max_length=200)
    author: str | None = Field(default=None, min_length=1, max_length=100)
    genre: Genre | None = None
    published_year: int | None = Field(default=None, ge=MIN_PUBLISHED_YEAR)
    isbn: str | None = None
    description: str | None = Field(default=None, max_length=2000)
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    status: BookStatus | None = None

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        """Validate ISBN if provided."""
        return v if v is None else _check_isbn(v)

    @field_validator("published_year")
    @classmethod
    def validate_published_year(cls, v: int | None) -> int | None:
        return v if v is None else _check_published_year(v)


class StockUpdate(CamelModel):
    """Signed stock delta: positive to receive stock, negative to sell."""

    quantity: int = Field(
        ...,
        strict=True,
        description="Quantity to add (positive) or remove (negative)",
        examples=[5, -2],
    )


class BookResponse(BookBase):
    """
    Schema for book responses.

    Adds the database fields and two derived, read-only values.
    """

    id: str = Field(..., description="Unique identifier")
    created_at: UtcDatetime = Field(..., description="When the book was created")
    updated_at: UtcDatetime = Field(..., description="When the book was last updated")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "0b6f2c1e-6a7b-4f64-9a55-5b8e3f3d2a10",
                "title": "The Great Gatsby",
                "author": "F. Scott Fitzgerald",
                "genre": "Fiction",
                "publishedYear": 1925,
                "isbn": "9780743273565",
                "description": "A story of the Jazz Age",
                "price": 10.99,
                "stock": 25,
                "status": "active",
                "formattedPrice": "$10.99",
                "isAvailable": True,
                "createdAt": "2024-01-15T10:30:00Z",
                "updatedAt": "2024-01-15T10:30:00Z",
            }
        },
    )

    @computed_field
    @property
    def formatted_price(self) -> str:
        return f"${self.price:.2f}"

    @computed_field
    @property
    def is_available(self) -> bool:
        return self.stock > 0 and self.status == BookStatus.ACTIVE.value


class DeletedBook(CamelModel):
    """Identity of a permanently removed book."""

    id: str
    title: str
    author: str


class BookCount(CamelModel):
    total: int = Field(..., ge=0, description="Books visible in the default listing")
    active: int = Field(..., ge=0, description="Active books")


class BookStatsOverview(CamelModel):
    total_books: int = 0
    active_books: int = 0
    total_value: float = 0
    avg_price: float = 0
    total_stock: int = 0


class GenreCount(CamelModel):
    genre: str
    count: int


class YearCount(CamelModel):
    year: int
    count: int


class BookStats(CamelModel):
    """
    Aggregate catalog statistics.

    - overview: counts and inventory value across all books
    - genre_distribution: active books per genre, most common first
    - year_distribution: active books per year, ten most recent years
    """

    overview: BookStatsOverview
    genre_distribution: list[GenreCount]
    year_distribution: list[YearCount]

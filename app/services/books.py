"""
Book Service

All catalog reads and writes go through BookService. Routers only parse HTTP
input and wrap results in the response envelope.

Responsibilities:
=================
1. Listing with filters, free-text search, sorting and pagination
2. Lookups by id and ISBN
3. Create / update with ISBN uniqueness and full-record re-validation
4. Soft delete (status → discontinued) and hard delete
5. Stock adjustment that never lets stock go negative
6. Catalog statistics

Store faults never leave this module as SQLAlchemy exceptions: a unique index
violation becomes ConflictError and anything else becomes InternalError,
after the session has been rolled back.
"""

import logging
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, case, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import (
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from app.models import Book, BookStatus
from app.schemas.book import BookBase, BookCreate, BookUpdate, normalize_isbn
from app.schemas.common import collect_violations
from app.services.query import (
    Pagination,
    PaginationConfig,
    SortField,
    build_search_query,
    calculate_pagination,
    filter_clauses,
    order_by_clauses,
    parse_filters,
    parse_sort,
    sort_to_dict,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------
# Allow-lists
# -------------------------------------------------------------------------
LIST_FILTER_FIELDS = ("genre", "author", "status", "publishedYear", "price")
LIST_SORT_FIELDS = ("title", "author", "genre", "publishedYear", "price", "createdAt", "updatedAt")
GENRE_SORT_FIELDS = ("title", "author", "publishedYear", "price", "createdAt")
AUTHOR_SORT_FIELDS = ("title", "genre", "publishedYear", "price", "createdAt")

# Columns a caller may write, in BookBase field order
EDITABLE_FIELDS = tuple(BookBase.model_fields)

BOOK_NOT_FOUND = "Book not found"
INVALID_BOOK_ID = "Invalid book ID format"
ISBN_CONFLICT = "A book with this ISBN already exists"
INSUFFICIENT_STOCK = "Insufficient stock"
EMPTY_UPDATE = "At least one field must be provided for update"


@dataclass
class BookPage:
    """One page of books plus the query that produced it."""

    items: list[Book]
    pagination: Pagination
    filters: dict[str, Any]
    sort: dict[str, str]


def validate_book_id(book_id: Any) -> str:
    """
    Check that book_id looks like a stored id before touching the database.

    Raises:
        BadRequestError: book_id is not a UUID
    """
    try:
        return str(uuid.UUID(str(book_id)))
    except ValueError:
        raise BadRequestError(INVALID_BOOK_ID)


class BookService:
    """
    Catalog operations bound to one database session.

    Args:
        db: Request-scoped SQLAlchemy session
        pagination: Default and maximum page size for list queries
    """

    def __init__(self, db: Session, pagination: PaginationConfig = PaginationConfig()):
        self.db = db
        self.pagination = pagination

    # =========================================================================
    # Internal helpers
    # =========================================================================
    @contextmanager
    def _store_errors(self, action: str) -> Iterator[None]:
        """Roll back and translate SQLAlchemy failures raised inside the block."""
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error while {action}: {e.orig}")
            raise ConflictError(ISBN_CONFLICT)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while {action}: {e}")
            raise InternalError(f"Error {action}", detail=str(e))

    def _find_by_isbn(self, isbn: str, exclude_id: str | None = None) -> Book | None:
        stmt = select(Book).where(Book.isbn == isbn)
        if exclude_id is not None:
            stmt = stmt.where(Book.id != exclude_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _paginate(
        self,
        clauses: list[ColumnElement[bool]],
        params: Mapping[str, Any],
        sort_fields: tuple[str, ...],
        applied_filters: dict[str, Any],
    ) -> BookPage:
        """Count, then fetch one ordered page of books matching clauses."""
        count_stmt = select(func.count()).select_from(Book).where(*clauses)
        total = self.db.execute(count_stmt).scalar() or 0

        pagination = calculate_pagination(
            params.get("page"),
            params.get("limit"),
            total,
            default_limit=self.pagination.default_limit,
            max_limit=self.pagination.max_limit,
        )
        sort: list[SortField] = parse_sort(params.get("sort"), sort_fields)

        stmt = (
            select(Book)
            .where(*clauses)
            .order_by(*order_by_clauses(sort))
            .offset(pagination.skip)
            .limit(pagination.items_per_page)
        )
        books = list(self.db.execute(stmt).scalars().all())

        return BookPage(
            items=books,
            pagination=pagination,
            filters=applied_filters,
            sort=sort_to_dict(sort),
        )

    # =========================================================================
    # Queries
    # =========================================================================
    def list_books(self, params: Mapping[str, Any]) -> BookPage:
        """
        List books with filtering, search, sorting and pagination.

        Controls read from params: page, limit, sort, search. Filters:
        genre, author, status, publishedYear[_gte|_lte], price[_gte|_lte].
        Only active books are listed unless a status filter is given.

        Example params:
            {"genre": "Fiction", "price_lte": "20", "sort": "-price", "page": "2"}
        """
        filters = parse_filters(params, LIST_FILTER_FIELDS)
        filters.setdefault("status", BookStatus.ACTIVE.value)

        clauses = filter_clauses(filters)
        search = params.get("search")
        if search and str(search).strip():
            clauses.append(build_search_query(search))
            filters["search"] = str(search).strip()

        with self._store_errors("fetching books"):
            return self._paginate(clauses, params, LIST_SORT_FIELDS, filters)

    def get_book(self, book_id: Any) -> Book:
        """
        Get a book by id, whatever its status.

        Raises:
            BadRequestError: Malformed id
            NotFoundError: No book with that id
        """
        book_id = validate_book_id(book_id)

        with self._store_errors("fetching book"):
            book = self.db.get(Book, book_id)

        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND)
        return book

    def get_book_by_isbn(self, isbn: str) -> Book:
        """Get a book by ISBN; hyphens and spaces in isbn are ignored."""
        with self._store_errors("fetching book"):
            book = self._find_by_isbn(normalize_isbn(isbn))

        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND)
        return book

    def isbn_exists(self, isbn: str) -> bool:
        try:
            self.get_book_by_isbn(isbn)
        except NotFoundError:
            return False
        return True

    def get_books_by_genre(self, genre: str, params: Mapping[str, Any]) -> BookPage:
        """Active books in one genre (exact match), honoring search/page/limit/sort."""
        clauses = [
            Book.genre == genre,
            Book.status == BookStatus.ACTIVE.value,
            build_search_query(params.get("search")),
        ]
        with self._store_errors("fetching books by genre"):
            return self._paginate(clauses, params, GENRE_SORT_FIELDS, {"genre": genre})

    def get_books_by_author(self, author: str, params: Mapping[str, Any]) -> BookPage:
        """Active books whose author contains author (case-insensitive)."""
        clauses = [
            Book.author.icontains(author, autoescape=True),
            Book.status == BookStatus.ACTIVE.value,
            build_search_query(params.get("search")),
        ]
        with self._store_errors("fetching books by author"):
            return self._paginate(clauses, params, AUTHOR_SORT_FIELDS, {"author": author})

    def count_books(self) -> dict[str, int]:
        """
        Size of the default listing.

        The default listing only contains active books, so total and active
        are the same number.
        """
        total = self.list_books({"limit": 1}).pagination.total_items
        return {"total": total, "active": total}

    def get_stats(self) -> dict[str, Any]:
        """
        Aggregate catalog statistics.

        Returns:
            {
                "overview": {total_books, active_books, total_value,
                             avg_price, total_stock},
                "genre_distribution": [{genre, count}, ...],   # active, count desc
                "year_distribution": [{year, count}, ...],     # active, 10 newest
            }
        """
        is_active = Book.status == BookStatus.ACTIVE.value

        overview_stmt = select(
            func.count(Book.id),
            func.sum(case((is_active, 1), else_=0)),
            func.sum(Book.price * Book.stock),
            func.avg(Book.price),
            func.sum(Book.stock),
        )

        genre_count = func.count(Book.id).label("count")
        genre_stmt = (
            select(Book.genre, genre_count)
            .where(is_active)
            .group_by(Book.genre)
            .order_by(genre_count.desc(), Book.genre.asc())
        )

        year_stmt = (
            select(Book.published_year, func.count(Book.id))
            .where(is_active)
            .group_by(Book.published_year)
            .order_by(Book.published_year.desc())
            .limit(10)
        )

        with self._store_errors("computing book statistics"):
            total, active, value, avg_price, stock = self.db.execute(overview_stmt).one()
            genres = self.db.execute(genre_stmt).all()
            years = self.db.execute(year_stmt).all()

        return {
            "overview": {
                "total_books": total or 0,
                "active_books": int(active or 0),
                "total_value": float(value or 0),
                "avg_price": float(avg_price or 0),
                "total_stock": int(stock or 0),
            },
            "genre_distribution": [
                {"genre": genre, "count": count} for genre, count in genres
            ],
            "year_distribution": [
                {"year": year, "count": count} for year, count in years
            ],
        }

    # =========================================================================
    # Mutations
    # =========================================================================
    def create_book(self, data: BookCreate) -> Book:
        """
        Create a book.

        Raises:
            ConflictError: Another book (any status) already has the ISBN
        """
        values = data.model_dump()

        with self._store_errors("creating book"):
            if self._find_by_isbn(values["isbn"]) is not None:
                raise ConflictError(ISBN_CONFLICT)

            book = Book(**values)
            self.db.add(book)
            self.db.commit()
            self.db.refresh(book)

        logger.info(f"Created book {book.id} (isbn {book.isbn})")
        return book

    def update_book(self, book_id: Any, data: BookUpdate) -> Book:
        """
        Apply the fields present in data to a book (PUT and PATCH).

        The merged record is validated as a whole before anything is written,
        so an explicit null or a now-invalid combination is rejected with
        field-level errors.

        Raises:
            ValidationError: Empty body, or the merged record is invalid
            BadRequestError / NotFoundError: See get_book
            ConflictError: ISBN belongs to a different book
        """
        book_id = validate_book_id(book_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError(EMPTY_UPDATE)

        book = self.get_book(book_id)

        merged = {field: getattr(book, field) for field in EDITABLE_FIELDS}
        merged.update(changes)

        violations = collect_violations(BookBase, merged)
        if violations:
            raise ValidationError(errors=violations)
        validated = BookBase.model_validate(merged).model_dump()

        with self._store_errors("updating book"):
            if "isbn" in changes and self._find_by_isbn(validated["isbn"], exclude_id=book.id):
                raise ConflictError(ISBN_CONFLICT)

            for field in changes:
                setattr(book, field, validated[field])
            self.db.commit()
            self.db.refresh(book)

        logger.info(f"Updated book {book.id}: {sorted(changes)}")
        return book

    def soft_delete_book(self, book_id: Any) -> Book:
        """Mark a book discontinued; nothing else changes."""
        book = self.get_book(book_id)

        with self._store_errors("deleting book"):
            book.status = BookStatus.DISCONTINUED.value
            self.db.commit()
            self.db.refresh(book)

        logger.info(f"Discontinued book {book.id}")
        return book

    def hard_delete_book(self, book_id: Any) -> dict[str, str]:
        """
        Remove a book permanently.

        Returns:
            {"id", "title", "author"} of the removed book
        """
        book = self.get_book(book_id)
        deleted = {"id": book.id, "title": book.title, "author": book.author}

        with self._store_errors("permanently deleting book"):
            self.db.delete(book)
            self.db.commit()

        logger.info(f"Permanently deleted book {deleted['id']}")
        return deleted

    def update_stock(self, book_id: Any, quantity: int) -> Book:
        """
        Add quantity (may be negative) to a book's stock.

        The new level is computed before anything is written; a result
        below zero is refused and the stored stock is left untouched.

        Raises:
            BadRequestError: Malformed id, or not enough stock
        """
        book = self.get_book(book_id)

        new_stock = book.stock + quantity
        if new_stock < 0:
            raise BadRequestError(INSUFFICIENT_STOCK)

        with self._store_errors("updating stock"):
            book.stock = new_stock
            self.db.commit()
            self.db.refresh(book)

        logger.info(f"Stock for book {book.id} changed by {quantity} to {new_stock}")
        return book

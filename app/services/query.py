"""
Query Construction Service

Turns raw request parameters into the pieces of a book query:

- calculate_pagination: page/limit → bounded Pagination descriptor
- parse_sort: "-createdAt,title" → ordered SortField list (allow-listed)
- parse_filters: query params → equality/range filters (allow-listed)
- build_search_query: free text → case-insensitive OR across text columns
- filter_clauses / order_by_clauses: translate the parsed pieces into
  SQLAlchemy expressions for the books table

None of the parsers raise. Malformed numbers fall back to defaults or are
dropped, and unknown fields are ignored, so a sloppy query string never fails
a request.

Usage:
    filters = parse_filters(params, ["genre", "price"])
    sort = parse_sort(params.get("sort"), ["title", "price"])
    stmt = (
        select(Book)
        .where(*filter_clauses(filters), build_search_query(params.get("search")))
        .order_by(*order_by_clauses(sort))
    )
"""

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, NamedTuple

from sqlalchemy import ColumnElement, UnaryExpression, or_, true

from app.models import Book

# =============================================================================
# Pagination
# =============================================================================
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class PaginationConfig:
    """Pagination bounds handed to services at construction time."""

    default_limit: int = DEFAULT_LIMIT
    max_limit: int = MAX_LIMIT


@dataclass(frozen=True)
class Pagination:
    """
    Normalized pagination descriptor.

    Recomputed for every list query from the requested page/limit and the
    number of matching records.
    """

    current_page: int
    items_per_page: int
    total_items: int
    total_pages: int
    skip: int
    has_next_page: bool
    has_previous_page: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_int(value: Any) -> int | None:
    """
    Read the leading integer of value ("12", " 7 ", "3abc" → 3).

    Returns None for anything without one (None, "", "abc", True).
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_float(value: Any) -> float | None:
    """Read the leading finite number of value, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    match = _LEADING_FLOAT.match(str(value))
    if not match:
        return None
    number = float(match.group(1))
    return number if math.isfinite(number) else None


def calculate_pagination(
    page: Any,
    limit: Any,
    total_items: int,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> Pagination:
    """
    Build the pagination descriptor for a list query.

    Args:
        page: Requested page (any value; < 1 or non-numeric → 1)
        limit: Requested page size (< 1 or non-numeric → default,
            above the maximum → maximum)
        total_items: Number of records matching the query
        default_limit: Page size used when no valid limit is given
        max_limit: Largest page size allowed

    Returns:
        Pagination with skip offset and next/previous flags

    Example:
        >>> p = calculate_pagination("2", "5", 12)
        >>> (p.current_page, p.total_pages, p.skip, p.has_next_page)
        (2, 3, 5, True)
    """
    requested_page = parse_int(page)
    current_page = requested_page if requested_page and requested_page >= 1 else DEFAULT_PAGE

    requested_limit = parse_int(limit)
    if not requested_limit or requested_limit < 1:
        items_per_page = default_limit
    else:
        items_per_page = min(requested_limit, max_limit)

    total_items = max(0, total_items)
    total_pages = math.ceil(total_items / items_per_page)

    return Pagination(
        current_page=current_page,
        items_per_page=items_per_page,
        total_items=total_items,
        total_pages=total_pages,
        skip=(current_page - 1) * items_per_page,
        has_next_page=current_page < total_pages,
        has_previous_page=current_page > 1,
    )


# =============================================================================
# Sorting
# =============================================================================
ASC = "asc"
DESC = "desc"


class SortField(NamedTuple):
    field: str
    direction: str


DEFAULT_SORT = (SortField("createdAt", DESC),)


def parse_sort(sort_string: str | None, allowed_fields: Iterable[str] = ()) -> list[SortField]:
    """
    Parse a comma-separated sort spec.

    A leading "-" means descending. Fields outside allowed_fields are dropped
    (an empty allow-list keeps everything). Caller order is preserved and a
    repeated field keeps its first position. Falls back to createdAt
    descending when nothing usable remains.

    Example:
        >>> parse_sort("-createdAt,title", ["title", "author"])
        [SortField(field='title', direction='asc')]
    """
    if not sort_string:
        return list(DEFAULT_SORT)

    allowed = set(allowed_fields)
    parsed: list[SortField] = []
    seen: set[str] = set()

    for token in str(sort_string).split(","):
        name = token.strip()
        direction = ASC
        if name.startswith("-"):
            direction = DESC
            name = name[1:].strip()

        if not name or name in seen:
            continue
        if allowed and name not in allowed:
            continue

        seen.add(name)
        parsed.append(SortField(name, direction))

    return parsed or list(DEFAULT_SORT)


def sort_to_dict(sort: Iterable[SortField]) -> dict[str, str]:
    """Ordered {field: direction} view used for response metadata."""
    return {item.field: item.direction for item in sort}


# =============================================================================
# Filtering
# =============================================================================
# Fields that understand <field>_gte / <field>_lte and the parser for each
RANGE_FIELDS = {
    "publishedYear": parse_int,
    "price": parse_float,
}


def _is_present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def parse_filters(params: Mapping[str, Any], allowed_fields: Iterable[str]) -> dict[str, Any]:
    """
    Turn query parameters into a filter dict over allow-listed fields.

    Range-capable fields (publishedYear, price):
        publishedYear_gte=1990&publishedYear_lte=2000
            → {"publishedYear": {"gte": 1990, "lte": 2000}}
        price=9.99  (no suffix given) → {"price": 9.99}
    Bounds that are not numbers are dropped.

    Every other allow-listed field becomes an exact match on its raw value.
    Absent fields are omitted; no defaults are added here.
    """
    filters: dict[str, Any] = {}

    for field in allowed_fields:
        parser = RANGE_FIELDS.get(field)

        if parser is None:
            value = params.get(field)
            if _is_present(value):
                filters[field] = str(value).strip()
            continue

        lower = params.get(f"{field}_gte")
        upper = params.get(f"{field}_lte")

        if _is_present(lower) or _is_present(upper):
            bounds: dict[str, Any] = {}
            if _is_present(lower) and parser(lower) is not None:
                bounds["gte"] = parser(lower)
            if _is_present(upper) and parser(upper) is not None:
                bounds["lte"] = parser(upper)
            if bounds:
                filters[field] = bounds
        elif _is_present(params.get(field)):
            exact = parser(params.get(field))
            if exact is not None:
                filters[field] = exact

    return filters


# =============================================================================
# Search
# =============================================================================
SEARCH_COLUMNS = (Book.title, Book.author, Book.description, Book.isbn)


def build_search_query(term: str | None) -> ColumnElement[bool]:
    """
    Build a case-insensitive "contains" predicate across text columns.

    The term is matched literally (LIKE wildcards are escaped) against
    title, author, description and isbn, OR-ed together. An empty term
    matches everything.
    """
    if term is None or not str(term).strip():
        return true()

    needle = str(term).strip()
    return or_(*(column.icontains(needle, autoescape=True) for column in SEARCH_COLUMNS))


# =============================================================================
# SQL Translation
# =============================================================================
# API field name → books column
BOOK_COLUMNS = {
    "title": Book.title,
    "author": Book.author,
    "genre": Book.genre,
    "publishedYear": Book.published_year,
    "isbn": Book.isbn,
    "price": Book.price,
    "stock": Book.stock,
    "status": Book.status,
    "createdAt": Book.created_at,
    "updatedAt": Book.updated_at,
}


def filter_clauses(filters: Mapping[str, Any]) -> list[ColumnElement[bool]]:
    """Translate parse_filters() output into WHERE clauses."""
    clauses: list[ColumnElement[bool]] = []

    for field, value in filters.items():
        column = BOOK_COLUMNS.get(field)
        if column is None:
            continue
        if isinstance(value, Mapping):
            if "gte" in value:
                clauses.append(column >= value["gte"])
            if "lte" in value:
                clauses.append(column <= value["lte"])
        else:
            clauses.append(column == value)

    return clauses


def order_by_clauses(sort: Iterable[SortField]) -> list[UnaryExpression]:
    """
    Translate parse_sort() output into ORDER BY clauses.

    Book.id is appended as a final tie-breaker so that pages never overlap
    when sort keys are equal.
    """
    clauses = []
    for item in sort:
        column = BOOK_COLUMNS.get(item.field)
        if column is None:
            continue
        clauses.append(column.desc() if item.direction == DESC else column.asc())
    clauses.append(Book.id.asc())
    return clauses

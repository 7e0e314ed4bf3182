"""
Books Router

CRUD, listing and reporting endpoints for the catalog.

Reads are public. Every write (create, update, stock change, delete)
requires a bearer token belonging to an admin.

All business rules live in BookService; handlers here only:
- collect query/body input
- call the service
- wrap the result in the response envelope

Route order matters: the fixed paths (/search, /stats, /count, /health,
/isbn, /genre, /author) are declared before /{book_id} so they are not
captured as ids.
"""

from typing import Any

from fastapi import APIRouter, Query, Request, Response, status

from app.config import get_settings
from app.dependencies import AdminUser, BookQuery, BookServiceDep, ListQuery
from app.exceptions import BadRequestError
from app.schemas import (
    ApiResponse,
    BookCount,
    BookCreate,
    BookResponse,
    BookStats,
    BookUpdate,
    DeletedBook,
    StockUpdate,
)
from app.schemas.common import utc_timestamp
from app.services.books import BookPage
from app.services.rate_limiter import limiter
from app.utils.responses import paginated_response, success_response

settings = get_settings()

# =============================================================================
# Router Configuration
# =============================================================================
router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        400: {"description": "Malformed id or input"},
        404: {"description": "Book not found"},
    },
)

WRITE_RESPONSES = {
    401: {"description": "Authentication required"},
    403: {"description": "Admin role required"},
}


# =============================================================================
# Helper Functions
# =============================================================================
def serialize_books(page: BookPage) -> list[BookResponse]:
    return [BookResponse.model_validate(book) for book in page.items]


def listing_meta(page: BookPage) -> dict[str, Any]:
    return {"appliedFilters": page.filters, "appliedSort": page.sort}


# =============================================================================
# Collection and Reporting Endpoints
# =============================================================================
@router.get(
    "/search",
    response_model=ApiResponse[list[BookResponse]],
    summary="Search books",
    description="Free-text search across title, author, description and ISBN.",
)
@limiter.limit(settings.rate_limit_default)
def search_books(
    request: Request,
    service: BookServiceDep,
    query: BookQuery,
    q: str | None = Query(default=None, description="Search term (required)"),
) -> ApiResponse:
    """
    Search books; accepts the same filters, sorting and paging as GET /books.

    Examples:
        GET /api/books/search?q=orwell
        GET /api/books/search?q=war&genre=History&sort=-publishedYear
    """
    if not q or not q.strip():
        raise BadRequestError('Search query parameter "q" is required')

    params = query.as_dict()
    params["search"] = q
    page = service.list_books(params)

    meta = {"searchTerm": q}
    meta.update(listing_meta(page))
    return paginated_response(
        serialize_books(page),
        page.pagination,
        f'Search results for "{q}"',
        meta=meta,
    )


@router.get(
    "/stats",
    response_model=ApiResponse[BookStats],
    summary="Catalog statistics",
)
@limiter.limit(settings.rate_limit_default)
def get_book_stats(request: Request, service: BookServiceDep) -> ApiResponse:
    """Inventory overview plus genre and publication-year distributions."""
    stats = BookStats.model_validate(service.get_stats())
    return success_response(stats, "Book statistics retrieved successfully")


@router.get(
    "/count",
    response_model=ApiResponse[BookCount],
    summary="Count books",
)
@limiter.limit(settings.rate_limit_default)
def get_book_count(request: Request, service: BookServiceDep) -> ApiResponse:
    count = BookCount(**service.count_books())
    return success_response(count, "Book count retrieved successfully")


@router.get(
    "/health",
    response_model=ApiResponse[dict[str, Any]],
    summary="Books service health",
)
def books_health(service: BookServiceDep) -> ApiResponse:
    """Checks the database by running a one-row listing."""
    total = service.count_books()["total"]
    return success_response(
        {
            "service": "Books API",
            "status": "healthy",
            "timestamp": utc_timestamp(),
            "database": "connected",
            "totalBooks": total,
        },
        "Books service is healthy",
    )


@router.get(
    "/isbn/{isbn}",
    response_model=ApiResponse[BookResponse],
    summary="Get a book by ISBN",
)
@limiter.limit(settings.rate_limit_default)
def get_book_by_isbn(request: Request, isbn: str, service: BookServiceDep) -> ApiResponse:
    """Hyphens and spaces in the ISBN are ignored."""
    book = service.get_book_by_isbn(isbn)
    return success_response(BookResponse.model_validate(book), "Book retrieved successfully")


@router.head(
    "/isbn/{isbn}",
    summary="Check whether a book exists by ISBN",
    responses={200: {"description": "Exists"}, 404: {"description": "Does not exist"}},
)
@limiter.limit(settings.rate_limit_default)
def check_book_exists(request: Request, isbn: str, service: BookServiceDep) -> Response:
    """Answers with 200 or 404 and no body."""
    exists = service.isbn_exists(isbn)
    return Response(status_code=status.HTTP_200_OK if exists else status.HTTP_404_NOT_FOUND)


@router.get(
    "/genre/{genre}",
    response_model=ApiResponse[list[BookResponse]],
    summary="List active books in a genre",
)
@limiter.limit(settings.rate_limit_default)
def get_books_by_genre(
    request: Request,
    genre: str,
    service: BookServiceDep,
    query: ListQuery,
) -> ApiResponse:
    page = service.get_books_by_genre(genre, query.as_dict())
    return paginated_response(
        serialize_books(page),
        page.pagination,
        f"Books in {genre} genre retrieved successfully",
        meta={"genre": genre},
    )


@router.get(
    "/author/{author}",
    response_model=ApiResponse[list[BookResponse]],
    summary="List active books by author",
)
@limiter.limit(settings.rate_limit_default)
def get_books_by_author(
    request: Request,
    author: str,
    service: BookServiceDep,
    query: ListQuery,
) -> ApiResponse:
    """Author is matched as a case-insensitive substring."""
    page = service.get_books_by_author(author, query.as_dict())
    return paginated_response(
        serialize_books(page),
        page.pagination,
        f"Books by {author} retrieved successfully",
        meta={"author": author},
    )


@router.get(
    "",
    response_model=ApiResponse[list[BookResponse]],
    summary="List books",
    description="Paginated list with filters, free-text search and sorting.",
)
@limiter.limit(settings.rate_limit_default)
def list_books(request: Request, service: BookServiceDep, query: BookQuery) -> ApiResponse:
    """
    List books.

    Only active books are returned unless a status filter is given.

    Examples:
        GET /api/books?genre=Fiction&sort=-publishedYear
        GET /api/books?publishedYear_gte=1990&publishedYear_lte=2000&page=2&limit=5
        GET /api/books?search=gatsby
    """
    page = service.list_books(query.as_dict())
    return paginated_response(
        serialize_books(page),
        page.pagination,
        "Books retrieved successfully",
        meta=listing_meta(page),
    )


@router.post(
    "",
    response_model=ApiResponse[BookResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a book",
    responses={409: {"description": "ISBN already exists"}, **WRITE_RESPONSES},
)
@limiter.limit(settings.rate_limit_write)
def create_book(
    request: Request,
    book_data: BookCreate,
    service: BookServiceDep,
    _: AdminUser,
) -> ApiResponse:
    """
    Create a new book.

    Defaults: price 0, stock 0, status active. The ISBN is stored without
    hyphens or spaces and must be unique across all books, including
    discontinued ones.
    """
    book = service.create_book(book_data)
    return success_response(BookResponse.model_validate(book), "Book created successfully")


# =============================================================================
# Single Book Endpoints
# =============================================================================
@router.get(
    "/{book_id}",
    response_model=ApiResponse[BookResponse],
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(request: Request, book_id: str, service: BookServiceDep) -> ApiResponse:
    """Returns the book whatever its status."""
    book = service.get_book(book_id)
    return success_response(BookResponse.model_validate(book), "Book retrieved successfully")


@router.put(
    "/{book_id}",
    response_model=ApiResponse[BookResponse],
    summary="Update a book",
    responses={409: {"description": "ISBN already exists"}, **WRITE_RESPONSES},
)
@limiter.limit(settings.rate_limit_write)
def update_book(
    request: Request,
    book_id: str,
    book_data: BookUpdate,
    service: BookServiceDep,
    _: AdminUser,
) -> ApiResponse:
    """
    Update a book.

    Only the fields present in the body are changed; PUT and PATCH behave
    identically.
    """
    book = service.update_book(book_id, book_data)
    return success_response(BookResponse.model_validate(book), "Book updated successfully")


@router.patch(
    "/{book_id}",
    response_model=ApiResponse[BookResponse],
    summary="Partially update a book",
    responses={409: {"description": "ISBN already exists"}, **WRITE_RESPONSES},
)
@limiter.limit(settings.rate_limit_write)
def patch_book(
    request: Request,
    book_id: str,
    book_data: BookUpdate,
    service: BookServiceDep,
    _: AdminUser,
) -> ApiResponse:
    book = service.update_book(book_id, book_data)
    return success_response(BookResponse.model_validate(book), "Book updated successfully")


@router.patch(
    "/{book_id}/stock",
    response_model=ApiResponse[BookResponse],
    summary="Adjust stock",
    responses=WRITE_RESPONSES,
)
@limiter.limit(settings.rate_limit_write)
def update_stock(
    request: Request,
    book_id: str,
    stock_data: StockUpdate,
    service: BookServiceDep,
    _: AdminUser,
) -> ApiResponse:
    """
    Add a signed quantity to the book's stock.

    Fails with 400 "Insufficient stock" if the result would be negative;
    the stored stock is then left unchanged.
    """
    book = service.update_stock(book_id, stock_data.quantity)
    return success_response(
        BookResponse.model_validate(book),
        f"Stock updated successfully. New stock: {book.stock}",
    )


@router.delete(
    "/{book_id}",
    response_model=ApiResponse[Any],
    summary="Delete a book (soft)",
    description="Marks the book as discontinued; the record is kept.",
    responses=WRITE_RESPONSES,
)
@limiter.limit(settings.rate_limit_write)
def delete_book(
    request: Request,
    book_id: str,
    service: BookServiceDep,
    _: AdminUser,
) -> ApiResponse:
    service.soft_delete_book(book_id)
    return success_response(None, "Book deleted successfully")


@router.delete(
    "/{book_id}/permanent",
    response_model=ApiResponse[Any],
    summary="Delete a book permanently",
    responses=WRITE_RESPONSES,
)
@limiter.limit(settings.rate_limit_write)
def delete_book_permanently(
    request: Request,
    book_id: str,
    service: BookServiceDep,
    _: AdminUser,
) -> ApiResponse:
    deleted = DeletedBook(**service.hard_delete_book(book_id))
    return success_response(
        None,
        "Book permanently deleted",
        meta={"deletedBook": deleted.model_dump(by_alias=True)},
    )

"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

WHY Dependency Injection?
=========================
1. Reusability: Write once, use in many routes
2. Testing: Easy to override dependencies in tests
3. Separation of Concerns: Routes stay thin, services hold the logic
4. Lifecycle Management: FastAPI handles creation/cleanup

This is also the only place where configuration meets the services: the
providers below read Settings once per request and pass the relevant values
(pagination bounds, token secret and lifetimes, admin registration flag)
into the service constructors.

Common Dependency Patterns:
- Database sessions (per-request)
- Services bound to the session
- List query parameters (page, limit, sort, search, filters)
- Bearer token authentication and role checks
"""

from typing import Annotated, Any

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.exceptions import UnauthorizedError
from app.models import User, UserRole
from app.services.auth import AUTH_REQUIRED, AuthService, authorize
from app.services.books import BookService
from app.services.query import PaginationConfig
from app.services.security import TokenManager

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def get_books(db: Session = Depends(get_db)):
#
# You can write:
#   def get_books(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Services
# =============================================================================
def get_book_service(db: DbSession, settings: AppSettings) -> BookService:
    return BookService(
        db,
        PaginationConfig(
            default_limit=settings.pagination_default_limit,
            max_limit=settings.pagination_max_limit,
        ),
    )


def get_token_manager(settings: AppSettings) -> TokenManager:
    return TokenManager(
        secret=settings.secret_key,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        access_token_minutes=settings.access_token_expire_minutes,
        refresh_token_days=settings.refresh_token_expire_days,
    )


def get_auth_service(
    db: DbSession,
    settings: AppSettings,
    tokens: Annotated[TokenManager, Depends(get_token_manager)],
) -> AuthService:
    return AuthService(
        db,
        tokens,
        allow_admin_registration=settings.allow_admin_registration,
    )


BookServiceDep = Annotated[BookService, Depends(get_book_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# =============================================================================
# List Query Parameters
# =============================================================================
class ListParams:
    """
    Paging, sorting and search parameters shared by every book listing.

    Values are taken as raw strings: the query engine resolves malformed or
    out-of-range numbers to defaults instead of failing the request.

    Usage:
        GET /api/books?page=2&limit=20&sort=-price,title&search=orwell
    """

    def __init__(
        self,
        page: str | None = Query(
            default=None,
            description="Page number (1-indexed; invalid values fall back to 1)",
            examples=["1", "2"],
        ),
        limit: str | None = Query(
            default=None,
            description="Items per page (default 10, max 100)",
            examples=["10", "50"],
        ),
        sort: str | None = Query(
            default=None,
            description="Comma-separated fields; prefix with '-' for descending",
            examples=["-createdAt", "title,-price"],
        ),
        search: str | None = Query(
            default=None,
            description="Case-insensitive text search across title, author, description, isbn",
            examples=["gatsby"],
        ),
    ) -> None:
        self.page = page
        self.limit = limit
        self.sort = sort
        self.search = search

    def as_dict(self) -> dict[str, Any]:
        """Parameters that were actually supplied, keyed by their query names."""
        return {
            key: value
            for key, value in vars(self).items()
            if value is not None
        }


class BookQueryParams:
    """
    Filters accepted by GET /books on top of ListParams.

    Range filters use suffixed names:
        GET /api/books?publishedYear_gte=1990&publishedYear_lte=2000&price_lte=20
    """

    def __init__(
        self,
        controls: Annotated[ListParams, Depends()],
        genre: str | None = Query(default=None, description="Exact genre", examples=["Fiction"]),
        author: str | None = Query(default=None, description="Exact author name"),
        status: str | None = Query(
            default=None,
            description="active (default), inactive or discontinued",
        ),
        published_year: str | None = Query(default=None, alias="publishedYear"),
        published_year_gte: str | None = Query(default=None, alias="publishedYear_gte"),
        published_year_lte: str | None = Query(default=None, alias="publishedYear_lte"),
        price: str | None = Query(default=None),
        price_gte: str | None = Query(default=None, alias="price_gte"),
        price_lte: str | None = Query(default=None, alias="price_lte"),
    ) -> None:
        self.controls = controls
        self.filters = {
            "genre": genre,
            "author": author,
            "status": status,
            "publishedYear": published_year,
            "publishedYear_gte": published_year_gte,
            "publishedYear_lte": published_year_lte,
            "price": price,
            "price_gte": price_gte,
            "price_lte": price_lte,
        }

    def as_dict(self) -> dict[str, Any]:
        params = self.controls.as_dict()
        params.update({key: value for key, value in self.filters.items() if value is not None})
        return params


class UserListParams:
    """Paging and filters for the admin user listing."""

    def __init__(
        self,
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        role: str | None = Query(default=None, description="user or admin"),
        is_active: str | None = Query(default=None, alias="isActive", description="true or false"),
    ) -> None:
        self.params = {
            "page": page,
            "limit": limit,
            "role": role,
            "isActive": is_active,
        }

    def as_dict(self) -> dict[str, Any]:
        return {key: value for key, value in self.params.items() if value is not None}


ListQuery = Annotated[ListParams, Depends()]
BookQuery = Annotated[BookQueryParams, Depends()]
UserQuery = Annotated[UserListParams, Depends()]


# =============================================================================
# Bearer Token Authentication
# =============================================================================
# HTTPBearer extracts the token from "Authorization: Bearer <token>" and adds
# the "Authorize" button to Swagger UI. auto_error=False lets the dependencies
# below report a missing token through the API's own error envelope.
bearer_scheme = HTTPBearer(auto_error=False)

BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def get_current_user(credentials: BearerCredentials, auth: AuthServiceDep) -> User:
    """
    Resolve the bearer token to an active user.

    Raises:
        UnauthorizedError: Missing token ("Authentication required"),
            expired or invalid token, unknown or deactivated user
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(AUTH_REQUIRED)
    return auth.verify_and_load_user(credentials.credentials)


def get_optional_user(credentials: BearerCredentials, auth: AuthServiceDep) -> User | None:
    """
    Get the current user if a valid token was sent, None otherwise.

    Used where anonymous callers are allowed but an authenticated caller
    may get more (e.g. an admin registering another admin).
    """
    if credentials is None or not credentials.credentials:
        return None
    try:
        return auth.verify_and_load_user(credentials.credentials)
    except UnauthorizedError:
        return None


def require_roles(*roles: str):
    """
    Build a dependency that only lets users with one of roles through.

    Usage:
        @router.delete("/{id}", dependencies=[Depends(require_roles("admin"))])
    """

    def check_roles(user: Annotated[User, Depends(get_current_user)]) -> User:
        return authorize(user, roles)

    return check_roles


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
AdminUser = Annotated[User, Depends(require_roles(UserRole.ADMIN.value))]

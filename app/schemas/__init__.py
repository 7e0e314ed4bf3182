"""
Pydantic Schemas Package

This package contains Pydantic models for request/response validation.

WHY Separate Schemas from SQLAlchemy Models?
============================================
1. Security: Control exactly what data is exposed in API responses
2. Validation: Different rules for create vs update vs response
3. Decoupling: Database schema can evolve independently of API
4. Documentation: Schemas generate OpenAPI documentation

Schema Naming Convention:
- XxxBase: Shared fields between create/update
- XxxCreate: Fields required when creating a new record
- XxxUpdate: Fields allowed when updating (all optional)
- XxxResponse: Fields returned in API responses
"""

from app.schemas.book import (
    BookBase,
    BookCount,
    BookCreate,
    BookResponse,
    BookStats,
    BookUpdate,
    DeletedBook,
    StockUpdate,
)
from app.schemas.common import ApiResponse, PaginationMeta
from app.schemas.user import (
    AuthPayload,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
)

__all__ = [
    # Envelope
    "ApiResponse",
    "PaginationMeta",
    # Book schemas
    "BookBase",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookCount",
    "BookStats",
    "DeletedBook",
    "StockUpdate",
    # User / auth schemas
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "ProfileUpdate",
    "PasswordChange",
    "UserResponse",
    "TokenPair",
    "AuthPayload",
]

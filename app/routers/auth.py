"""
Authentication Router

Handles user authentication endpoints:
- Registration (username/email/password → user + JWT tokens)
- Login (email/password → user + JWT tokens)
- Token refresh (refresh token → new token pair)
- Profile read/update for the current user
- Password change
- User listing (admin only)

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- Access tokens are short-lived (15 min default)
- Refresh tokens are longer-lived (7 days default)
- Registering as admin requires an admin token (or an explicit opt-in)
"""

import logging
from typing import Any

from fastapi import APIRouter, Request, status

from app.config import get_settings
from app.dependencies import (
    AdminUser,
    AppSettings,
    AuthServiceDep,
    CurrentUser,
    OptionalUser,
    UserQuery,
)
from app.schemas import (
    ApiResponse,
    AuthPayload,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
)
from app.services.auth import AuthResult
from app.services.rate_limiter import limiter
from app.utils.responses import paginated_response, success_response

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Conflict (email/username already exists)"},
    },
)


def auth_payload(result: AuthResult) -> AuthPayload:
    return AuthPayload(
        user=UserResponse.model_validate(result.user),
        tokens=TokenPair(**result.tokens),
    )


# -------------------------------------------------------------------------
# Registration and Login
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create a new account and receive a token pair.

    **Username:** 3-50 letters and digits
    **Password:** 6-128 characters

    A requested role of `admin` is only granted when the request carries an
    admin's bearer token (or admin self-registration is enabled).
    """,
)
@limiter.limit(settings.rate_limit_auth)
def register(
    request: Request,
    user_data: RegisterRequest,
    auth: AuthServiceDep,
    requested_by: OptionalUser,
) -> ApiResponse:
    result = auth.register(user_data, requested_by=requested_by)
    return success_response(auth_payload(result), "User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    summary="Login with email and password",
)
@limiter.limit(settings.rate_limit_auth)
def login(request: Request, credentials: LoginRequest, auth: AuthServiceDep) -> ApiResponse:
    """
    Authenticate and receive a token pair.

    Unknown email and wrong password produce the same 401 message.
    """
    result = auth.login(credentials.email, credentials.password)
    return success_response(auth_payload(result), "Login successful")


@router.post(
    "/refresh",
    response_model=ApiResponse[TokenPair],
    summary="Refresh tokens",
)
@limiter.limit(settings.rate_limit_auth)
def refresh_tokens(
    request: Request,
    token_data: RefreshTokenRequest,
    auth: AuthServiceDep,
) -> ApiResponse:
    tokens = auth.refresh_tokens(token_data.refresh_token)
    return success_response(TokenPair(**tokens), "Tokens refreshed successfully")


# -------------------------------------------------------------------------
# Current User
# -------------------------------------------------------------------------
@router.get(
    "/profile",
    response_model=ApiResponse[UserResponse],
    summary="Get current user profile",
)
def get_profile(current_user: CurrentUser) -> ApiResponse:
    return success_response(
        UserResponse.model_validate(current_user),
        "Profile retrieved successfully",
    )


@router.put(
    "/profile",
    response_model=ApiResponse[UserResponse],
    summary="Update current user profile",
)
def update_profile(
    profile_data: ProfileUpdate,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> ApiResponse:
    """Change username and/or email; both must stay unique."""
    user = auth.update_profile(current_user, profile_data)
    return success_response(UserResponse.model_validate(user), "Profile updated successfully")


@router.post(
    "/change-password",
    response_model=ApiResponse[Any],
    summary="Change password",
)
def change_password(
    password_data: PasswordChange,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> ApiResponse:
    auth.change_password(
        current_user,
        password_data.current_password,
        password_data.new_password,
    )
    return success_response(None, "Password changed successfully")


# -------------------------------------------------------------------------
# Administration
# -------------------------------------------------------------------------
@router.get(
    "/users",
    response_model=ApiResponse[list[UserResponse]],
    summary="List users (admin)",
    responses={403: {"description": "Admin role required"}},
)
def list_users(
    _: AdminUser,
    query: UserQuery,
    auth: AuthServiceDep,
    app_settings: AppSettings,
) -> ApiResponse:
    """
    Paginated account listing, newest first.

    Filters: role=user|admin, isActive=true|false
    """
    page = auth.list_users(query.as_dict(), max_limit=app_settings.pagination_max_limit)
    return paginated_response(
        [UserResponse.model_validate(user) for user in page.items],
        page.pagination,
        "Users retrieved successfully",
    )

"""
Authentication Service

Handles account registration, credential checks and token lifecycle.

Security Features:
=================
1. Passwords are hashed with bcrypt before storage and never returned
2. Login failures for unknown email and wrong password are indistinguishable
3. Expired and invalid tokens are reported separately
4. An admin account can only be created by another admin, unless
   admin self-registration has been switched on explicitly

Authorization is a plain function, authorize(identity, allowed_roles), so it
can be used from any dependency without a database session.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import (
    ApiError,
    ConflictError,
    ForbiddenError,
    InternalError,
    UnauthorizedError,
)
from app.models import User, UserRole
from app.schemas.user import ProfileUpdate, RegisterRequest
from app.services.query import Pagination, calculate_pagination
from app.services.security import TokenManager, hash_password, verify_password

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "Email already registered"
USERNAME_TAKEN = "Username already taken"
INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DEACTIVATED = "Account is deactivated"
USER_NOT_FOUND = "Token is invalid - user not found"
AUTH_REQUIRED = "Authentication required"
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
WRONG_CURRENT_PASSWORD = "Current password is incorrect"


@dataclass
class AuthResult:
    """A user together with a freshly issued token pair."""

    user: User
    tokens: dict[str, Any]


@dataclass
class UserPage:
    items: list[User]
    pagination: Pagination


def authorize(identity: User | None, allowed_roles: Iterable[str]) -> User:
    """
    Check that identity holds one of allowed_roles.

    Raises:
        UnauthorizedError: No identity (caller is not logged in)
        ForbiddenError: Identity's role is not in allowed_roles
    """
    if identity is None:
        raise UnauthorizedError(AUTH_REQUIRED)

    roles = {role.value if isinstance(role, UserRole) else role for role in allowed_roles}
    if identity.role not in roles:
        logger.warning(
            f"User {identity.id} with role '{identity.role}' denied; requires {sorted(roles)}"
        )
        raise ForbiddenError(INSUFFICIENT_PERMISSIONS)
    return identity


class AuthService:
    """
    Account and token operations bound to one database session.

    Args:
        db: Request-scoped SQLAlchemy session
        tokens: Configured TokenManager
        allow_admin_registration: Let anonymous callers register as admin
    """

    def __init__(
        self,
        db: Session,
        tokens: TokenManager,
        allow_admin_registration: bool = False,
    ):
        self.db = db
        self.tokens = tokens
        self.allow_admin_registration = allow_admin_registration

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error while {action}: {e.orig}")
            raise ConflictError("Username or email already in use")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while {action}: {e}")
            raise InternalError(f"Error {action}", detail=str(e))

    def _check_unique(
        self,
        username: str | None,
        email: str | None,
        exclude_id: str | None = None,
    ) -> None:
        """Raise ConflictError if username or email belongs to another account."""
        conditions = []
        if username is not None:
            conditions.append(User.username == username)
        if email is not None:
            conditions.append(User.email == email)
        if not conditions:
            return

        stmt = select(User).where(or_(*conditions))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)

        for existing in self.db.execute(stmt).scalars():
            if email is not None and existing.email == email:
                raise ConflictError(EMAIL_TAKEN)
            if username is not None and existing.username == username:
                raise ConflictError(USERNAME_TAKEN)

    def _resolve_role(self, requested: str, requested_by: User | None) -> str:
        if requested != UserRole.ADMIN.value:
            return UserRole.USER.value

        by_admin = requested_by is not None and requested_by.role == UserRole.ADMIN.value
        if by_admin or self.allow_admin_registration:
            return UserRole.ADMIN.value

        logger.warning("Admin role requested during registration; assigning 'user'")
        return UserRole.USER.value

    # -------------------------------------------------------------------------
    # Registration and login
    # -------------------------------------------------------------------------
    def register(self, data: RegisterRequest, requested_by: User | None = None) -> AuthResult:
        """
        Create an account and issue its first token pair.

        Raises:
            ConflictError: Email or username already in use
        """
        requested_role = data.role.value if isinstance(data.role, UserRole) else data.role
        self._check_unique(data.username, data.email)

        user = User(
            username=data.username,
            email=data.email,
            hashed_password=hash_password(data.password),
            role=self._resolve_role(requested_role, requested_by),
            is_active=True,
        )
        self.db.add(user)
        self._commit("registering user")
        self.db.refresh(user)

        logger.info(f"New user registered: {user.email} ({user.role})")
        return AuthResult(user=user, tokens=self.tokens.create_token_pair(user))

    def login(self, email: str, password: str) -> AuthResult:
        """
        Check credentials and issue a token pair.

        Raises:
            UnauthorizedError: Unknown email or wrong password (same message),
                or deactivated account
        """
        stmt = select(User).where(User.email == email.strip().lower())
        user = self.db.execute(stmt).scalar_one_or_none()

        if user is None:
            logger.warning(f"Failed login attempt for unknown email: {email}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.is_active:
            raise UnauthorizedError(ACCOUNT_DEACTIVATED)

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {user.email}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        user.last_login = datetime.now(UTC)
        self._commit("recording login")
        self.db.refresh(user)

        logger.info(f"User logged in: {user.email}")
        return AuthResult(user=user, tokens=self.tokens.create_token_pair(user))

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------
    def verify_and_load_user(self, token: str) -> User:
        """
        Resolve a bearer token to an active user.

        Raises:
            TokenExpiredError / TokenInvalidError: From TokenManager.verify
            UnauthorizedError: User no longer exists or is deactivated
        """
        claims = self.tokens.verify(token)

        user = self.db.get(User, str(claims["id"]))
        if user is None:
            raise UnauthorizedError(USER_NOT_FOUND)
        if not user.is_active:
            raise UnauthorizedError(ACCOUNT_DEACTIVATED)
        return user

    def refresh_tokens(self, refresh_token: str) -> dict[str, Any]:
        """
        Exchange a refresh token for a new token pair.

        Every failure (expired, tampered, unknown or inactive user) is
        reported as the same UnauthorizedError.
        """
        try:
            user = self.verify_and_load_user(refresh_token)
        except ApiError as e:
            logger.warning(f"Refresh token rejected: {e.message}")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)
        return self.tokens.create_token_pair(user)

    # -------------------------------------------------------------------------
    # Account management
    # -------------------------------------------------------------------------
    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace a user's password after checking the current one.

        Raises:
            UnauthorizedError: current_password does not match
        """
        if not verify_password(current_password, user.hashed_password):
            raise UnauthorizedError(WRONG_CURRENT_PASSWORD)

        user.hashed_password = hash_password(new_password)
        self._commit("changing password")
        logger.info(f"Password changed for user {user.id}")

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        """Change username and/or email, keeping both unique."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        self._check_unique(changes.get("username"), changes.get("email"), exclude_id=user.id)

        for field, value in changes.items():
            setattr(user, field, value)
        self._commit("updating profile")
        self.db.refresh(user)

        logger.info(f"Profile updated for user {user.id}: {sorted(changes)}")
        return user

    def list_users(self, params: Mapping[str, Any], max_limit: int = 100) -> UserPage:
        """
        List accounts newest first.

        Filters read from params: role ("user"/"admin") and isActive
        ("true"/"false"). Paging uses page and limit.
        """
        clauses = []
        role = params.get("role")
        if role:
            clauses.append(User.role == role)
        is_active = params.get("isActive")
        if is_active is not None and is_active != "":
            clauses.append(User.is_active == (str(is_active).lower() == "true"))

        total = self.db.execute(
            select(func.count()).select_from(User).where(*clauses)
        ).scalar() or 0
        pagination = calculate_pagination(
            params.get("page"), params.get("limit"), total, max_limit=max_limit
        )

        stmt = (
            select(User)
            .where(*clauses)
            .order_by(User.created_at.desc(), User.id.asc())
            .offset(pagination.skip)
            .limit(pagination.items_per_page)
        )
        users = list(self.db.execute(stmt).scalars().all())
        return UserPage(items=users, pagination=pagination)

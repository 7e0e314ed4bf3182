"""
User and Authentication Pydantic Schemas

Schemas:
- RegisterRequest: Registration data (username, email, password, role)
- LoginRequest: Email/password credentials
- RefreshTokenRequest: Refresh token exchange
- ProfileUpdate: Username/email changes
- PasswordChange: Current + new password
- UserResponse: Public user data (never exposes the password hash)
- TokenPair / AuthPayload: Tokens returned by register, login and refresh

SECURITY: no response schema has a password field, so the hash can never be
serialized even if a User ORM object is passed in directly.
"""

from pydantic import ConfigDict, EmailStr, Field, field_validator, model_validator

from app.models.user import UserRole
from app.schemas.common import CamelModel, UtcDatetime

USERNAME_PATTERN = r"^[a-zA-Z0-9]+$"


class RegisterRequest(CamelModel):
    """Schema for user registration."""

    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        pattern=USERNAME_PATTERN,
        description="Unique username (3-50 alphanumeric characters)",
        examples=["johndoe"],
    )

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["john@example.com"],
    )

    password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="Password (6-128 characters)",
        examples=["secret123"],
    )

    role: UserRole = Field(
        default=UserRole.USER,
        description="Requested role; admin is only granted when permitted",
    )

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(CamelModel):
    """Schema for email/password login."""

    email: EmailStr = Field(..., description="Registered email address")
    password: str = Field(..., min_length=1, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenRequest(CamelModel):
    """Schema for exchanging a refresh token for a new token pair."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class ProfileUpdate(CamelModel):
    """
    Schema for updating the current user's profile.

    At least one of username or email must be provided.
    """

    username: str | None = Field(
        default=None,
        min_length=3,
        max_length=50,
        pattern=USERNAME_PATTERN,
    )
    email: EmailStr | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else v

    @model_validator(mode="after")
    def require_one_field(self) -> "ProfileUpdate":
        if self.username is None and self.email is None:
            raise ValueError("At least one field must be provided for update")
        return self


class PasswordChange(CamelModel):
    """Schema for password change request."""

    current_password: str = Field(
        ...,
        min_length=1,
        description="Current password for verification",
    )

    new_password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="New password (6-128 characters)",
    )


class UserResponse(CamelModel):
    """
    Schema for user responses (what the API returns).

    SECURITY: Never includes the password hash.
    """

    id: str = Field(..., description="Unique user identifier")
    username: str = Field(..., description="Unique username")
    email: str = Field(..., description="User's email address")
    role: UserRole = Field(..., description="user or admin")
    is_active: bool = Field(..., description="Whether the account is active")
    last_login: UtcDatetime | None = Field(default=None, description="Last successful login")
    created_at: UtcDatetime = Field(..., description="When the user registered")
    updated_at: UtcDatetime = Field(..., description="When the profile last changed")

    model_config = ConfigDict(from_attributes=True)


class TokenPair(CamelModel):
    """
    Access + refresh tokens.

    expires_in is the access token lifetime in seconds.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"


class AuthPayload(CamelModel):
    """Returned by register and login."""

    user: UserResponse
    tokens: TokenPair

"""
Security Service

Handles password hashing and JWT token operations.

Security Features:
==================
1. Password hashing with bcrypt (passlib)
2. JWT token generation and validation (python-jose, HS256)
3. Expired tokens are told apart from otherwise invalid ones

Every token carries the user's id, username, email and role plus the
standard iss/aud/iat/exp claims. Access and refresh tokens are built the
same way and differ only in lifetime.

Usage:
    from app.services.security import TokenManager, hash_password

    hashed = hash_password("SecurePass123")

    tokens = TokenManager(secret="...", issuer="bookstore-api",
                          audience="bookstore-users")
    pair = tokens.create_token_pair(user)
    claims = tokens.verify(pair["access_token"])
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.exceptions import TokenExpiredError, TokenInvalidError

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------
# Password Hashing Configuration
# -------------------------------------------------------------------------
# CryptContext handles password hashing with bcrypt
# - deprecated: "auto" means old hashes are automatically upgraded
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Example:
        >>> hashed = hash_password("SecurePass123")
        >>> hashed.startswith("$2b$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Uses constant-time comparison to prevent timing attacks.

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


# -------------------------------------------------------------------------
# JWT Token Configuration
# -------------------------------------------------------------------------
ALGORITHM = "HS256"
ISSUER = "bookstore-api"
AUDIENCE = "bookstore-users"
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7
TOKEN_TYPE = "Bearer"


def token_claims(user: Any) -> dict[str, Any]:
    """Identity claims embedded in every token issued for user."""
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "role": user.role,
    }


class TokenManager:
    """
    Issues and verifies signed JWTs.

    All settings are passed in at construction; the manager never reads
    global configuration.

    Args:
        secret: HMAC signing key
        algorithm: JWT algorithm (HS256)
        issuer: Value written to and required in the iss claim
        audience: Value written to and required in the aud claim
        access_token_minutes: Access token lifetime
        refresh_token_days: Refresh token lifetime
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = ALGORITHM,
        issuer: str = ISSUER,
        audience: str = AUDIENCE,
        access_token_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
        refresh_token_days: int = REFRESH_TOKEN_EXPIRE_DAYS,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_token_lifetime = timedelta(minutes=access_token_minutes)
        self.refresh_token_lifetime = timedelta(days=refresh_token_days)

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_token_lifetime.total_seconds())

    def create_token(self, claims: dict[str, Any], expires_delta: timedelta) -> str:
        """
        Sign claims into a JWT that expires after expires_delta.

        Example:
            >>> token = manager.create_token({"id": "42"}, timedelta(minutes=5))
            >>> token.count(".") == 2  # JWT format: header.payload.signature
            True
        """
        now = datetime.now(UTC)
        to_encode = dict(claims)
        to_encode.update(
            {
                "iss": self.issuer,
                "aud": self.audience,
                "iat": now,
                "exp": now + expires_delta,
            }
        )
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def create_access_token(self, user: Any) -> str:
        return self.create_token(token_claims(user), self.access_token_lifetime)

    def create_refresh_token(self, user: Any) -> str:
        return self.create_token(token_claims(user), self.refresh_token_lifetime)

    def create_token_pair(self, user: Any) -> dict[str, Any]:
        """
        Issue an access + refresh token for user.

        Returns:
            {"access_token", "refresh_token", "expires_in", "token_type"}
        """
        return {
            "access_token": self.create_access_token(user),
            "refresh_token": self.create_refresh_token(user),
            "expires_in": self.expires_in,
            "token_type": TOKEN_TYPE,
        }

    def verify(self, token: str) -> dict[str, Any]:
        """
        Decode a token, checking signature, issuer, audience and expiry.

        Returns:
            The decoded claims

        Raises:
            TokenExpiredError: Signature is fine but the token has expired
            TokenInvalidError: Anything else (bad signature, wrong issuer or
                audience, malformed token, missing id claim)
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.warning(f"JWT decode error: {e}")
            raise TokenInvalidError()

        if not payload.get("id"):
            raise TokenInvalidError()

        return payload

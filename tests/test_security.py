"""
Tests for security helpers, authorization and settings validation.

No HTTP client here: these exercise TokenManager, password hashing,
authorize() and the rate limiter's client key directly.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError as SettingsValidationError
from starlette.requests import Request

from app.config import Settings
from app.exceptions import (
    ForbiddenError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)
from app.models import User, UserRole
from app.services.auth import authorize
from app.services.rate_limiter import get_client_ip
from app.services.security import (
    TokenManager,
    hash_password,
    token_claims,
    verify_password,
)

SECRET = "unit-test-signing-key-that-is-long-enough-1234"


@pytest.fixture
def manager() -> TokenManager:
    return TokenManager(secret=SECRET)


@pytest.fixture
def user() -> User:
    return User(
        id="0b6f2c1e-6a7b-4f64-9a55-5b8e3f3d2a10",
        username="reader",
        email="reader@example.com",
        role=UserRole.USER.value,
        hashed_password="unused",
    )


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("SecurePass123")

        assert hashed != "SecurePass123"
        assert hashed.startswith("$2b$")
        assert verify_password("SecurePass123", hashed) is True
        assert verify_password("WrongPass", hashed) is False

    def test_same_password_hashes_differently(self):
        assert hash_password("SecurePass123") != hash_password("SecurePass123")


class TestTokenManager:
    def test_round_trip_claims(self, manager, user):
        claims = manager.verify(manager.create_access_token(user))

        assert claims["id"] == user.id
        assert claims["username"] == "reader"
        assert claims["email"] == "reader@example.com"
        assert claims["role"] == "user"
        assert claims["iss"] == "bookstore-api"
        assert claims["aud"] == "bookstore-users"
        assert claims["exp"] > claims["iat"]

    def test_token_pair(self, manager, user):
        pair = manager.create_token_pair(user)

        assert set(pair) == {"access_token", "refresh_token", "expires_in", "token_type"}
        assert pair["expires_in"] == 900
        assert pair["token_type"] == "Bearer"
        assert manager.verify(pair["refresh_token"])["id"] == user.id

    def test_refresh_outlives_access(self, manager, user):
        access = manager.verify(manager.create_access_token(user))
        refresh = manager.verify(manager.create_refresh_token(user))

        assert refresh["exp"] - access["exp"] > timedelta(days=6).total_seconds()

    def test_expired_token(self, manager, user):
        token = manager.create_token(token_claims(user), timedelta(seconds=-5))

        with pytest.raises(TokenExpiredError):
            manager.verify(token)

    def test_wrong_secret(self, manager, user):
        other = TokenManager(secret="a-completely-different-signing-key-0000")

        with pytest.raises(TokenInvalidError):
            manager.verify(other.create_access_token(user))

    def test_wrong_audience(self, manager, user):
        other = TokenManager(secret=SECRET, audience="someone-else")

        with pytest.raises(TokenInvalidError):
            manager.verify(other.create_access_token(user))

    def test_wrong_issuer(self, manager, user):
        other = TokenManager(secret=SECRET, issuer="another-service")

        with pytest.raises(TokenInvalidError):
            manager.verify(other.create_access_token(user))

    def test_missing_id_claim(self, manager):
        token = manager.create_token({"username": "ghost"}, timedelta(minutes=5))

        with pytest.raises(TokenInvalidError):
            manager.verify(token)

    def test_garbage(self, manager):
        with pytest.raises(TokenInvalidError):
            manager.verify("definitely.not.jwt")

    def test_expired_and_invalid_are_unauthorized(self):
        assert issubclass(TokenExpiredError, UnauthorizedError)
        assert issubclass(TokenInvalidError, UnauthorizedError)


class TestAuthorize:
    def test_allowed(self, user):
        assert authorize(user, ["user", "admin"]) is user

    def test_accepts_enum_roles(self, user):
        assert authorize(user, [UserRole.USER]) is user

    def test_no_identity(self):
        with pytest.raises(UnauthorizedError, match="Authentication required"):
            authorize(None, ["admin"])

    def test_wrong_role(self, user):
        with pytest.raises(ForbiddenError, match="Insufficient permissions"):
            authorize(user, ["admin"])


def make_request(headers: dict[str, str], client_host: str = "10.0.0.1") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": (client_host, 12345),
    }
    return Request(scope)


class TestClientIp:
    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_real_ip(self):
        assert get_client_ip(make_request({"X-Real-IP": " 198.51.100.4 "})) == "198.51.100.4"

    def test_direct_connection(self):
        assert get_client_ip(make_request({})) == "10.0.0.1"


class TestSettings:
    def test_placeholder_secret_rejected(self):
        with pytest.raises(SettingsValidationError):
            Settings(secret_key="REPLACE_WITH_YOUR_GENERATED_SECRET_KEY")

    def test_short_secret_rejected(self):
        with pytest.raises(SettingsValidationError):
            Settings(secret_key="too-short")

    def test_log_level_normalized(self):
        settings = Settings(secret_key=SECRET, log_level="debug")
        assert settings.log_level == "DEBUG"

    def test_environment_flags(self):
        settings = Settings(
            secret_key=SECRET,
            environment="Production",
            database_url="sqlite:///./bookstore.db",
        )

        assert settings.is_production is True
        assert settings.is_sqlite is True

"""
pytest Fixtures for Bookstore API Tests

This file contains shared fixtures used across all test files.

FIXTURE SCOPES:
- session scope for the engine (tables created once)
- function scope for sessions, clients and sample data (isolation between tests)

Each test runs inside a connection-level transaction that is rolled back
afterwards, so services can commit freely without leaking rows into the
next test.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# This disables rate limiting, points the app at SQLite and sets a test key
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-signing-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"
os.environ["ALLOW_ADMIN_REGISTRATION"] = "false"

from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings
from app.database import Base, get_db
from app.dependencies import get_token_manager
from app.main import app
from app.models import Book, BookStatus, User, UserRole
from app.services.security import TokenManager, hash_password

API = "/api"
BOOKS_URL = f"{API}/books"
AUTH_URL = f"{API}/auth"

USER_PASSWORD = "SecurePass123"
ADMIN_PASSWORD = "AdminPass123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================
@pytest.fixture(scope="session")
def engine():
    """
    SQLite in-memory engine shared by the whole test session.

    StaticPool keeps the single connection alive; without it the in-memory
    database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Fresh session per test, wrapped in a transaction that is rolled back.

    The session runs inside a SAVEPOINT, so a service-level rollback only
    undoes its own work and fixture rows survive.
    """
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )

    connection = engine.connect()
    transaction = connection.begin()
    session = TestSessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Test client wired to the test session.

    get_db is overridden so every request shares db_session.
    """

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def token_manager() -> TokenManager:
    """TokenManager configured exactly like the one the app uses."""
    return get_token_manager(get_settings())


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================
def book_values(**overrides: Any) -> dict[str, Any]:
    """Column values for a valid book; overrides replace any field."""
    values = {
        "title": "1984",
        "author": "George Orwell",
        "genre": "Science Fiction",
        "published_year": 1949,
        "isbn": "9780451524935",
        "description": "A dystopian novel set in a totalitarian society.",
        "price": 12.99,
        "stock": 10,
        "status": BookStatus.ACTIVE.value,
    }
    values.update(overrides)
    return values


def book_payload(**overrides: Any) -> dict[str, Any]:
    """Request body (camelCase) for POST /books."""
    payload = {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genre": "Fiction",
        "publishedYear": 1925,
        "isbn": "978-0-7432-7356-5",
        "description": "A story of the Jazz Age",
        "price": 10.99,
        "stock": 25,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_book(db_session: Session) -> Callable[..., Book]:
    """
    Factory inserting a book directly through the session.

    Successive books get increasing created_at values so newest-first
    ordering is deterministic.
    """
    base_time = datetime(2024, 1, 1, tzinfo=UTC)
    counter = {"n": 0}

    def _make_book(**overrides: Any) -> Book:
        counter["n"] += 1
        overrides.setdefault("created_at", base_time + timedelta(minutes=counter["n"]))
        overrides.setdefault("updated_at", overrides["created_at"])
        book = Book(**book_values(**overrides))
        db_session.add(book)
        db_session.commit()
        db_session.refresh(book)
        return book

    return _make_book


@pytest.fixture
def sample_book(make_book) -> Book:
    return make_book()


@pytest.fixture
def catalog(make_book) -> list[Book]:
    """
    A small mixed catalog.

    Six active books across three genres plus one inactive and one
    discontinued book.
    """
    return [
        make_book(title="The Hobbit", author="J.R.R. Tolkien", genre="Fantasy",
                  published_year=1937, isbn="9780547928227", price=14.99, stock=22),
        make_book(title="Dune", author="Frank Herbert", genre="Science Fiction",
                  published_year=1965, isbn="9780441172719", price=13.99, stock=0),
        make_book(title="1984", author="George Orwell", genre="Science Fiction",
                  published_year=1949, isbn="9780451524935", price=9.99, stock=40),
        make_book(title="Animal Farm", author="George Orwell", genre="Fiction",
                  published_year=1945, isbn="9780451526342", price=7.5, stock=15,
                  description="A farm is taken over by its animals"),
        make_book(title="The Silmarillion", author="J.R.R. Tolkien", genre="Fantasy",
                  published_year=1977, isbn="9780618391110", price=19.99, stock=3),
        make_book(title="Brave New World", author="Aldous Huxley", genre="Science Fiction",
                  published_year=1932, isbn="9780060850524", price=11.0, stock=8),
        make_book(title="Hidden Draft", author="George Orwell", genre="Fiction",
                  published_year=1950, isbn="9780000000017", price=5.0, stock=1,
                  status=BookStatus.INACTIVE.value),
        make_book(title="Old Edition", author="Aldous Huxley", genre="Fiction",
                  published_year=1932, isbn="9780000000024", price=3.0, stock=0,
                  status=BookStatus.DISCONTINUED.value),
    ]


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(
        username: str = "testuser",
        email: str = "testuser@example.com",
        password: str = USER_PASSWORD,
        role: str = UserRole.USER.value,
        is_active: bool = True,
    ) -> User:
        user = User(
            username=username,
            email=email,
            hashed_password=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def sample_user(make_user) -> User:
    return make_user()


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(
        username="admin",
        email="admin@example.com",
        password=ADMIN_PASSWORD,
        role=UserRole.ADMIN.value,
    )


@pytest.fixture
def user_headers(sample_user: User, token_manager: TokenManager) -> dict[str, str]:
    token = token_manager.create_access_token(sample_user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User, token_manager: TokenManager) -> dict[str, str]:
    token = token_manager.create_access_token(admin_user)
    return {"Authorization": f"Bearer {token}"}

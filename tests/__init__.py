"""
Test Suite for the Bookstore API

Test Organization:
- conftest.py: Shared fixtures (test database, client, sample data, tokens)
- test_query.py: Pagination, sort, filter and search helpers
- test_book_service.py: BookService rules against the database
- test_books.py: /api/books endpoints
- test_auth.py: /api/auth endpoints
- test_security.py: Tokens, password hashing, authorization, settings
- test_errors.py: Error envelope for store failures and bad input

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_books.py

    # Run specific test
    pytest tests/test_books.py::TestCreateBook::test_create_book_success

    # Run with verbose output
    pytest -v
"""

"""
Services Package

This package contains business logic services that are:
- Separate from HTTP handling (routers)
- Reusable across different parts of the application
- Easier to test in isolation

Current services:
- query.py: Pagination, sort, filter and search query construction
- books.py: Book catalog operations (BookService)
- auth.py: Registration, login, token refresh, role checks (AuthService)
- security.py: Password hashing and JWT utilities
- rate_limiter.py: Rate limiting with slowapi
"""

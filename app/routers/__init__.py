"""
API Routers Package

This package contains FastAPI routers that handle API endpoints.

WHY Routers?
============
1. Organization: Group related endpoints together
2. Modularity: Each router can have its own prefix, tags, dependencies
3. Maintainability: Easy to find and modify endpoint code

Router Structure:
- books.py: /api/books/* endpoints (catalog CRUD, search, stats)
- auth.py: /api/auth/* endpoints (registration, login, profile, users)

Each router is imported and registered in main.py.
"""

from app.routers.auth import router as auth_router
from app.routers.books import router as books_router

__all__ = [
    "books_router",
    "auth_router",
]

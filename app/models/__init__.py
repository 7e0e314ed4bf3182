"""
SQLAlchemy Models Package

Import all models here to:
1. Make them available as: from app.models import Book, User
2. Ensure Alembic discovers them for migrations
"""

from app.models.book import Book, BookStatus, Genre
from app.models.user import User, UserRole

__all__ = [
    "Book",
    "BookStatus",
    "Genre",
    "User",
    "UserRole",
]

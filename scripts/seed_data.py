#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample data for development and testing.

USAGE:
    # Make sure you're in the project root with venv activated
    python scripts/seed_data.py

    # Wipe books and users first
    python scripts/seed_data.py --clear

    # Choose the admin credentials
    python scripts/seed_data.py --admin-email admin@example.com --admin-password s3cret!

This script:
1. Connects to the database using app settings
2. Clears existing data (optional)
3. Creates sample books through BookService (same validation as the API)
4. Creates an admin account if none exists with that email
"""

import argparse
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.database import SessionLocal, create_tables
from app.models import Book, User, UserRole
from app.schemas import BookCreate
from app.services.books import BookService
from app.services.security import hash_password

SAMPLE_BOOKS = [
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genre": "Fiction",
        "publishedYear": 1925,
        "isbn": "978-0-7432-7356-5",
        "description": "A portrait of the Jazz Age and the American dream.",
        "price": 10.99,
        "stock": 25,
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "genre": "Science Fiction",
        "publishedYear": 1949,
        "isbn": "978-0-451-52493-5",
        "description": "A dystopian novel about totalitarian surveillance.",
        "price": 9.99,
        "stock": 40,
    },
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "genre": "Fiction",
        "publishedYear": 1960,
        "isbn": "978-0-06-112008-4",
        "description": "Racial injustice seen through the eyes of a child.",
        "price": 12.49,
        "stock": 18,
    },
    {
        "title": "Pride and Prejudice",
        "author": "Jane Austen",
        "genre": "Romance",
        "publishedYear": 1813,
        "isbn": "978-0-14-143951-8",
        "description": "Elizabeth Bennet and Mr. Darcy navigate manners and marriage.",
        "price": 7.99,
        "stock": 30,
    },
    {
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "genre": "Fantasy",
        "publishedYear": 1937,
        "isbn": "978-0-547-92822-7",
        "description": "Bilbo Baggins is swept into a quest for dragon treasure.",
        "price": 14.99,
        "stock": 22,
    },
    {
        "title": "Murder on the Orient Express",
        "author": "Agatha Christie",
        "genre": "Mystery",
        "publishedYear": 1934,
        "isbn": "978-0-06-269366-2",
        "description": "Hercule Poirot investigates a murder aboard a snowbound train.",
        "price": 11.5,
        "stock": 12,
    },
    {
        "title": "Sapiens",
        "author": "Yuval Noah Harari",
        "genre": "History",
        "publishedYear": 2011,
        "isbn": "978-0-06-231609-7",
        "description": "A brief history of humankind.",
        "price": 18.99,
        "stock": 15,
    },
    {
        "title": "The Lean Startup",
        "author": "Eric Ries",
        "genre": "Business",
        "publishedYear": 2011,
        "isbn": "978-0-307-88789-4",
        "description": "Building companies through validated learning.",
        "price": 16.0,
        "stock": 8,
    },
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "publishedYear": 1965,
        "isbn": "978-0-441-17271-9",
        "description": "Politics, religion and ecology on the desert planet Arrakis.",
        "price": 13.99,
        "stock": 0,
    },
    {
        "title": "The Shining",
        "author": "Stephen King",
        "genre": "Horror",
        "publishedYear": 1977,
        "isbn": "978-0-307-74365-7",
        "description": "A winter caretaker slowly loses his mind in an isolated hotel.",
        "price": 9.49,
        "stock": 5,
    },
]


def clear_data(db: Session) -> None:
    """Clear all existing books and users from the database."""
    print("Clearing existing data...")
    db.query(Book).delete()
    db.query(User).delete()
    db.commit()
    print("Data cleared.")


def create_books(db: Session) -> list[Book]:
    """Create sample books, skipping ISBNs that are already stored."""
    print("Creating books...")
    service = BookService(db)

    books = []
    for data in SAMPLE_BOOKS:
        book_data = BookCreate.model_validate(data)
        if service.isbn_exists(book_data.isbn):
            print(f"  - skipping '{book_data.title}' (ISBN exists)")
            continue
        books.append(service.create_book(book_data))

    print(f"Created {len(books)} books.")
    return books


def create_admin(db: Session, email: str, username: str, password: str) -> User | None:
    """Create the admin account unless the email is already registered."""
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing is not None:
        print(f"Admin {email} already exists.")
        return None

    admin = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        role=UserRole.ADMIN.value,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)

    print(f"Created admin {email}.")
    return admin


def seed_database(
    clear_existing: bool = False,
    admin_email: str = "admin@example.com",
    admin_username: str = "admin",
    admin_password: str = "admin123",
) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    # Create tables if they don't exist
    create_tables()

    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        books = create_books(db)
        create_admin(db, admin_email, admin_username, admin_password)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Books: {len(books)}")
        print(f"  - Admin: {admin_email}")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the Bookstore database.")
    parser.add_argument("--clear", action="store_true", help="delete existing books and users first")
    parser.add_argument("--admin-email", default="admin@example.com")
    parser.add_argument("--admin-username", default="admin")
    parser.add_argument("--admin-password", default="admin123")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    seed_database(
        clear_existing=args.clear,
        admin_email=args.admin_email,
        admin_username=args.admin_username,
        admin_password=args.admin_password,
    )

"""
Bookstore API Application Package

This is the main application package for the Bookstore API.
All core modules, routers, and utilities are organized within this package.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy database connection and session management
- exceptions.py: Error taxonomy shared by services and handlers
- main.py: FastAPI application factory and configuration
- dependencies.py: Dependency injection functions
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (query building, books, auth, rate limiting)
- utils/: Helper functions
"""

__version__ = "1.0.0"

"""create_books_and_users

Revision ID: 3f9c1a7d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'books',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False, comment='Book title'),
        sa.Column('author', sa.String(length=100), nullable=False, comment='Author name'),
        sa.Column('genre', sa.String(length=50), nullable=False, comment='One of the Genre enum values'),
        sa.Column('published_year', sa.Integer(), nullable=False, comment='Year of publication'),
        sa.Column('isbn', sa.String(length=13), nullable=False, comment='Normalized ISBN-10 or ISBN-13'),
        sa.Column('description', sa.Text(), nullable=False, comment='Book description or summary'),
        sa.Column('price', sa.Float(), nullable=False, comment='Unit price in USD'),
        sa.Column('stock', sa.Integer(), nullable=False, comment='Units in stock, never negative'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='active, inactive or discontinued'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_books_title'), 'books', ['title'], unique=False)
    op.create_index(op.f('ix_books_author'), 'books', ['author'], unique=False)
    op.create_index(op.f('ix_books_genre'), 'books', ['genre'], unique=False)
    op.create_index(op.f('ix_books_published_year'), 'books', ['published_year'], unique=False)
    op.create_index(op.f('ix_books_isbn'), 'books', ['isbn'], unique=True)
    op.create_index(op.f('ix_books_status'), 'books', ['status'], unique=False)
    op.create_index(op.f('ix_books_created_at'), 'books', ['created_at'], unique=False)
    op.create_index('ix_books_genre_published_year', 'books', ['genre', 'published_year'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False, comment='Unique alphanumeric username'),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address (used for login)"),
        sa.Column('hashed_password', sa.String(length=255), nullable=False, comment='Bcrypt hashed password'),
        sa.Column('role', sa.String(length=20), nullable=False, comment='user or admin'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Whether the account is active'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True, comment='When the user last logged in'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When the user registered'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='When the user profile was last updated'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
    op.drop_index('ix_books_genre_published_year', table_name='books')
    op.drop_index(op.f('ix_books_created_at'), table_name='books')
    op.drop_index(op.f('ix_books_status'), table_name='books')
    op.drop_index(op.f('ix_books_isbn'), table_name='books')
    op.drop_index(op.f('ix_books_published_year'), table_name='books')
    op.drop_index(op.f('ix_books_genre'), table_name='books')
    op.drop_index(op.f('ix_books_author'), table_name='books')
    op.drop_index(op.f('ix_books_title'), table_name='books')
    op.drop_table('books')

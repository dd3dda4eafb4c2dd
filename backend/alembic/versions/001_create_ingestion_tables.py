"""Create catalogue ingestion tables

Revision ID: 001_create_ingestion_tables
Revises:
Create Date: 2026-09-14

"""
import sqlalchemy as sa
from sqlalchemy import inspect

from alembic import op

# revision identifiers, used by Alembic.
revision = '001_create_ingestion_tables'
down_revision = None
branch_labels = None
depends_on = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('username', sa.String(50), nullable=False),
            sa.Column('display_name', sa.String(100), nullable=True),
            sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)
        op.create_index('ix_users_username', 'users', ['username'], unique=True)

    if not table_exists('authors'):
        op.create_table(
            'authors',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_authors_name', 'authors', ['name'])
        op.create_index('ix_authors_user_id', 'authors', ['user_id'])

    if not table_exists('publishers'):
        op.create_table(
            'publishers',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_publishers_user_id', 'publishers', ['user_id'], unique=True)

    if not table_exists('publishers_authors'):
        op.create_table(
            'publishers_authors',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('publisher_id', sa.Integer(), nullable=False),
            sa.Column('author_id', sa.Integer(), nullable=False),
            sa.Column('contract_start', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('contract_end', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['publisher_id'], ['publishers.id']),
            sa.ForeignKeyConstraint(['author_id'], ['authors.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_publishers_authors_publisher_id', 'publishers_authors', ['publisher_id'])
        op.create_index('ix_publishers_authors_author_id', 'publishers_authors', ['author_id'])
        op.create_index('ix_publishers_authors_pair', 'publishers_authors', ['publisher_id', 'author_id'])

    if not table_exists('genre_taxonomies'):
        op.create_table(
            'genre_taxonomies',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(100), nullable=False),
            sa.Column('type', sa.String(20), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('parent_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['parent_id'], ['genre_taxonomies.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_genre_taxonomies_name', 'genre_taxonomies', ['name'])
        op.create_index('ix_genre_taxonomies_type', 'genre_taxonomies', ['type'])

    if not table_exists('books'):
        op.create_table(
            'books',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(500), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('author_id', sa.Integer(), nullable=False),
            sa.Column('author_name', sa.String(255), nullable=True),
            sa.Column('publisher_id', sa.Integer(), nullable=True),
            sa.Column('isbn', sa.String(20), nullable=True),
            sa.Column('asin', sa.String(20), nullable=True),
            sa.Column('page_count', sa.Integer(), nullable=True),
            sa.Column('formats', sa.JSON(), nullable=False),
            sa.Column('published_date', sa.Date(), nullable=True),
            sa.Column('language', sa.String(50), nullable=False, server_default='English'),
            sa.Column('original_title', sa.String(500), nullable=True),
            sa.Column('series', sa.String(255), nullable=True),
            sa.Column('setting', sa.String(255), nullable=True),
            sa.Column('awards', sa.JSON(), nullable=False),
            sa.Column('characters', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(['author_id'], ['authors.id']),
            sa.ForeignKeyConstraint(['publisher_id'], ['publishers.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_books_title', 'books', ['title'])
        op.create_index('ix_books_author_id', 'books', ['author_id'])
        op.create_index('ix_books_publisher_id', 'books', ['publisher_id'])
        op.create_index('ix_books_isbn', 'books', ['isbn'], unique=True)
        op.create_index('ix_books_asin', 'books', ['asin'], unique=True)

    if not table_exists('book_genre_taxonomies'):
        op.create_table(
            'book_genre_taxonomies',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('book_id', sa.Integer(), nullable=False),
            sa.Column('taxonomy_id', sa.Integer(), nullable=False),
            sa.Column('rank', sa.Integer(), nullable=False),
            sa.Column('importance', sa.Float(), nullable=False),
            sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['taxonomy_id'], ['genre_taxonomies.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('book_id', 'taxonomy_id', name='unique_book_taxonomy'),
        )
        op.create_index('ix_book_genre_taxonomies_book_id', 'book_genre_taxonomies', ['book_id'])
        op.create_index('ix_book_genre_taxonomies_taxonomy_id', 'book_genre_taxonomies', ['taxonomy_id'])

    if not table_exists('book_images'):
        op.create_table(
            'book_images',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('book_id', sa.Integer(), nullable=False),
            sa.Column('image_type', sa.String(20), nullable=False),
            sa.Column('image_url', sa.String(500), nullable=False),
            sa.Column('storage_key', sa.String(500), nullable=False),
            sa.Column('width', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('height', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('size_kb', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('book_id', 'image_type', name='unique_book_image_type'),
        )
        op.create_index('ix_book_images_book_id', 'book_images', ['book_id'])


def downgrade() -> None:
    op.drop_table('book_images')
    op.drop_table('book_genre_taxonomies')
    op.drop_table('books')
    op.drop_table('genre_taxonomies')
    op.drop_table('publishers_authors')
    op.drop_table('publishers')
    op.drop_table('authors')
    op.drop_table('users')

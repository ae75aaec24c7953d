"""
catalog/models.py -- Domain dataclasses for the library catalog.

These are pure data containers with zero logic. Business rules (uniqueness,
referential guards, soft-delete state checks) live in catalog/service.py and
the constraints declared in catalog/store.py.

id is None before the record is written to the database.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Author:
    name: str
    id: Optional[int] = None
    is_deleted: bool = False


@dataclass
class Publisher:
    name: str
    id: Optional[int] = None
    is_deleted: bool = False


@dataclass
class Book:
    """A catalog title keyed by its ISBN.

    Soft-deleted books stay in the table: rental records reference the isbn
    directly and must remain joinable after the book is withdrawn.
    """

    isbn: int
    title: str
    author_id: int
    publisher_id: int
    publication_year: int
    publication_month: int  # 1..12
    is_deleted: bool = False


@dataclass
class BookListing:
    """One row of the paginated book list (book joined with its author name)."""

    isbn: int
    title: str
    author_name: str
    publication_year_month: str


@dataclass
class BookDetail:
    """A single book joined with author and publisher names."""

    isbn: int
    title: str
    author_name: str
    publisher_name: str
    publication_year_month: str
    is_deleted: bool = False


@dataclass
class BookPage:
    """A page of BookListing rows. current is echoed even past last_page."""

    current: int
    last_page: int
    books: list[BookListing] = field(default_factory=list)

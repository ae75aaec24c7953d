"""
catalog/service.py -- Business rules for authors, publishers, and books.

Every operation takes the Caller explicitly as its first argument. Mutations
require an admin caller; reads require any authenticated caller.

Each operation follows the same shape:
  1. Caller check and input validation (no store access yet).
  2. Reads to decide which NotFound / Conflict to report.
  3. One guarded write. The guard (unique index, conditional UPDATE, or
     INSERT ... SELECT WHERE EXISTS) is what actually protects the invariant;
     if a concurrent request wins the race between step 2 and step 3, the
     write fails and the service re-reads to report the right error.

Authors and publishers obey identical rules, so both are driven by the
_register_named / _update_named / _delete_named helpers with an _EntityKind
describing the wording.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError

from auth.models import Caller
from auth.permissions import ensure_admin, ensure_authenticated
from catalog.models import Author, Book, BookDetail, BookPage, Publisher
from catalog.store import CatalogStore, NamedEntityRepo
from core.errors import Conflict, NotFound, guard_store_errors
from core.validation import MAX_DB_INT, require_int, require_text

logger = logging.getLogger("library.catalog")

DEFAULT_PAGE_SIZE = 5

# ISBN-13 is the longest identifier in use; anything wider is a typo.
_MAX_ISBN = 9_999_999_999_999


@dataclass(frozen=True)
class _EntityKind:
    label: str  # "author" / "publisher"

    @property
    def title(self) -> str:
        return self.label.capitalize()


_AUTHOR = _EntityKind("author")
_PUBLISHER = _EntityKind("publisher")

Named = Union[Author, Publisher]


class CatalogService:
    def __init__(self, store: CatalogStore, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.store = store
        self.page_size = page_size

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    @guard_store_errors
    def register_author(self, caller: Optional[Caller], name: str) -> Author:
        return self._register_named(caller, self.store.authors, _AUTHOR, name)

    @guard_store_errors
    def update_author(self, caller: Optional[Caller], author_id: int, name: str) -> Author:
        return self._update_named(caller, self.store.authors, _AUTHOR, author_id, name)

    @guard_store_errors
    def delete_author(self, caller: Optional[Caller], author_id: int) -> None:
        self._delete_named(caller, self.store.authors, _AUTHOR, author_id)

    @guard_store_errors
    def search_authors(self, caller: Optional[Caller], keyword: str) -> list[Author]:
        ensure_authenticated(caller)
        return self.store.authors.search(require_text(keyword, "keyword"))

    # ------------------------------------------------------------------
    # Publishers
    # ------------------------------------------------------------------

    @guard_store_errors
    def register_publisher(self, caller: Optional[Caller], name: str) -> Publisher:
        return self._register_named(caller, self.store.publishers, _PUBLISHER, name)

    @guard_store_errors
    def update_publisher(self, caller: Optional[Caller], publisher_id: int, name: str) -> Publisher:
        return self._update_named(caller, self.store.publishers, _PUBLISHER, publisher_id, name)

    @guard_store_errors
    def delete_publisher(self, caller: Optional[Caller], publisher_id: int) -> None:
        self._delete_named(caller, self.store.publishers, _PUBLISHER, publisher_id)

    @guard_store_errors
    def search_publishers(self, caller: Optional[Caller], keyword: str) -> list[Publisher]:
        ensure_authenticated(caller)
        return self.store.publishers.search(require_text(keyword, "keyword"))

    # ------------------------------------------------------------------
    # Books -- admin
    # ------------------------------------------------------------------

    @guard_store_errors
    def register_book(
        self,
        caller: Optional[Caller],
        isbn: int,
        title: str,
        author_id: int,
        publisher_id: int,
        year: int,
        month: int,
    ) -> Book:
        """Register a new isbn. Never resurrects a soft-deleted isbn."""
        admin = ensure_admin(caller)
        book = _validated_book(isbn, title, author_id, publisher_id, year, month)

        if self.store.get_book(book.isbn) is not None:
            raise Conflict("A book with this ISBN already exists.", code="isbn_exists")
        self._check_references(book)

        try:
            created = self.store.create_book(book)
        except IntegrityError as exc:
            raise Conflict("A book with this ISBN already exists.", code="isbn_exists") from exc
        if not created:
            # An author or publisher was deleted between the check and the insert.
            self._check_references(book)
            raise Conflict("The referenced author or publisher is no longer available.", code="invalid_reference")

        logger.info("Book %s registered by user_id=%s", book.isbn, admin.id)
        return book

    @guard_store_errors
    def update_book(
        self,
        caller: Optional[Caller],
        isbn: int,
        title: str,
        author_id: int,
        publisher_id: int,
        year: int,
        month: int,
    ) -> Book:
        admin = ensure_admin(caller)
        book = _validated_book(isbn, title, author_id, publisher_id, year, month)

        current = self.store.get_book(book.isbn)
        if current is None or current.is_deleted:
            raise NotFound("Book not found.", code="book_not_found")
        self._check_references(book)

        if not self.store.update_book(book):
            current = self.store.get_book(book.isbn)
            if current is None or current.is_deleted:
                raise NotFound("Book not found.", code="book_not_found")
            self._check_references(book)
            raise Conflict("The referenced author or publisher is no longer available.", code="invalid_reference")

        logger.info("Book %s updated by user_id=%s", book.isbn, admin.id)
        return book

    @guard_store_errors
    def delete_book(self, caller: Optional[Caller], isbn: int) -> None:
        """Withdraw a book. Rental history keeps referencing the isbn."""
        admin = ensure_admin(caller)
        isbn = require_int(isbn, "isbn", minimum=1, maximum=_MAX_ISBN)

        current = self.store.get_book(isbn)
        if current is None:
            raise NotFound("Book not found.", code="book_not_found")
        if current.is_deleted or not self.store.soft_delete_book(isbn):
            raise Conflict("Book is already deleted.", code="already_deleted")
        logger.info("Book %s deleted by user_id=%s", isbn, admin.id)

    # ------------------------------------------------------------------
    # Books -- readers
    # ------------------------------------------------------------------

    @guard_store_errors
    def list_books(self, caller: Optional[Caller], page: int = 1, page_size: Optional[int] = None) -> BookPage:
        """Return one 1-based page of active books.

        A page past the end is not an error: it comes back empty with the
        requested page number and the real last_page. Rows are only queried
        when the offset falls inside the catalog, so any page number is safe.
        """
        ensure_authenticated(caller)
        page = require_int(page, "page", minimum=1)
        size = require_int(
            page_size if page_size is not None else self.page_size, "page_size", minimum=1, maximum=MAX_DB_INT
        )

        total = self.store.count_active_books()
        last_page = math.ceil(total / size)
        offset = (page - 1) * size
        if offset >= total:
            return BookPage(current=page, last_page=last_page, books=[])
        rows = self.store.list_active_books(offset=offset, limit=size)
        return BookPage(current=page, last_page=last_page, books=rows)

    @guard_store_errors
    def get_book_detail(self, caller: Optional[Caller], isbn: int) -> BookDetail:
        """Fetch a book by isbn. Soft-deleted books are still returned."""
        ensure_authenticated(caller)
        isbn = require_int(isbn, "isbn", minimum=1, maximum=_MAX_ISBN)
        detail = self.store.get_book_detail(isbn)
        if detail is None:
            raise NotFound("Book not found.", code="book_not_found")
        return detail

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _register_named(self, caller: Optional[Caller], repo: NamedEntityRepo, kind: _EntityKind, name: str) -> Named:
        admin = ensure_admin(caller)
        name = require_text(name, "name")

        if repo.find_active_by_name(name) is not None:
            raise _name_taken(kind)
        try:
            row_id = repo.create(name)
        except IntegrityError as exc:
            raise _name_taken(kind) from exc

        logger.info("%s %r registered (id=%s) by user_id=%s", kind.title, name, row_id, admin.id)
        return repo.get(row_id)

    def _update_named(
        self, caller: Optional[Caller], repo: NamedEntityRepo, kind: _EntityKind, row_id: int, name: str
    ) -> Named:
        admin = ensure_admin(caller)
        row_id = require_int(row_id, "id", minimum=1, maximum=MAX_DB_INT)
        name = require_text(name, "name")

        current = repo.get(row_id)
        if current is None or current.is_deleted:
            raise NotFound(f"{kind.title} not found.", code=f"{kind.label}_not_found")
        if current.name == name:
            raise Conflict(f"{kind.title} already has this name.", code="name_unchanged")
        if repo.find_active_by_name(name, exclude_id=row_id) is not None:
            raise _name_taken(kind)

        try:
            renamed = repo.rename(row_id, name)
        except IntegrityError as exc:
            raise _name_taken(kind) from exc
        if not renamed:
            raise NotFound(f"{kind.title} not found.", code=f"{kind.label}_not_found")

        logger.info("%s id=%s renamed to %r by user_id=%s", kind.title, row_id, name, admin.id)
        return repo.get(row_id)

    def _delete_named(self, caller: Optional[Caller], repo: NamedEntityRepo, kind: _EntityKind, row_id: int) -> None:
        admin = ensure_admin(caller)
        row_id = require_int(row_id, "id", minimum=1, maximum=MAX_DB_INT)

        current = repo.get(row_id)
        if current is None:
            raise NotFound(f"{kind.title} not found.", code=f"{kind.label}_not_found")
        if current.is_deleted:
            raise Conflict(f"{kind.title} is already deleted.", code="already_deleted")

        if not repo.soft_delete(row_id):
            # Either a concurrent delete won, or an active book references the row.
            current = repo.get(row_id)
            if current is not None and current.is_deleted:
                raise Conflict(f"{kind.title} is already deleted.", code="already_deleted")
            raise Conflict(
                f"This {kind.label} is used by one or more books and cannot be deleted.",
                code=f"{kind.label}_in_use",
            )
        logger.info("%s id=%s deleted by user_id=%s", kind.title, row_id, admin.id)

    def _check_references(self, book: Book) -> None:
        """Raise Conflict if the book's author or publisher is missing or deleted."""
        author = self.store.authors.get(book.author_id)
        if author is None or author.is_deleted:
            raise Conflict("Author does not exist.", code="author_not_found")
        publisher = self.store.publishers.get(book.publisher_id)
        if publisher is None or publisher.is_deleted:
            raise Conflict("Publisher does not exist.", code="publisher_not_found")


def _name_taken(kind: _EntityKind) -> Conflict:
    return Conflict(f"{kind.title} name is already registered.", code=f"{kind.label}_exists")


def _validated_book(isbn, title, author_id, publisher_id, year, month) -> Book:
    return Book(
        isbn=require_int(isbn, "isbn", minimum=1, maximum=_MAX_ISBN),
        title=require_text(title, "title"),
        author_id=require_int(author_id, "author_id", minimum=1, maximum=MAX_DB_INT),
        publisher_id=require_int(publisher_id, "publisher_id", minimum=1, maximum=MAX_DB_INT),
        publication_year=require_int(year, "publication_year", minimum=-MAX_DB_INT, maximum=MAX_DB_INT),
        publication_month=require_int(month, "publication_month", minimum=1, maximum=12),
    )

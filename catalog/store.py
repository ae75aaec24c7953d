"""
catalog/store.py -- SQLAlchemy Core persistence layer for authors, publishers, and books.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. CatalogStore is the repository; authors and
publishers share one implementation (NamedEntityRepo) because their rules are
identical. The _row_to_* functions are the mappers.

Atomicity: every invariant that a concurrent request could break between a
read and a write is enforced by the database, not by the read.
  - Active-name uniqueness: partial UNIQUE index on name WHERE is_deleted = 0.
    Soft-deleted rows keep their name without blocking re-registration.
  - ISBN uniqueness: primary key.
  - "Cannot delete while referenced": one conditional UPDATE with
    NOT EXISTS (active book referencing the row).
  - "Book references must be active": INSERT ... SELECT / UPDATE guarded by
    EXISTS on the author and publisher rows.
Write methods return False (or raise IntegrityError) when the guard fails;
the service layer re-reads to decide which error to report.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CatalogStore(engine)
    author_id = store.authors.create("Ursula K. Le Guin")
    store.create_book(Book(isbn=9780441478125, title="The Left Hand of Darkness", ...))
    page = store.list_active_books(offset=0, limit=5)
"""

from typing import Optional, Union

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    and_,
    func,
    literal,
    select,
)
from sqlalchemy.engine import Engine

from catalog.models import Author, Book, BookDetail, BookListing, Publisher
from core.db import metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

authors = Table(
    "authors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("is_deleted", Integer, nullable=False, server_default="0"),  # boolean stored as 0/1
    Column("created_at", String(32), nullable=False),
)

publishers = Table(
    "publishers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("is_deleted", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

books = Table(
    "books",
    metadata,
    Column("isbn", BigInteger, primary_key=True, autoincrement=False),
    Column("title", String(255), nullable=False),
    Column("author_id", Integer, ForeignKey("authors.id"), nullable=False),
    Column("publisher_id", Integer, ForeignKey("publishers.id"), nullable=False),
    Column("publication_year", Integer, nullable=False),
    Column("publication_month", Integer, nullable=False),
    Column("is_deleted", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

Index(
    "uq_authors_active_name",
    authors.c.name,
    unique=True,
    sqlite_where=authors.c.is_deleted == 0,
    postgresql_where=authors.c.is_deleted == 0,
)
Index(
    "uq_publishers_active_name",
    publishers.c.name,
    unique=True,
    sqlite_where=publishers.c.is_deleted == 0,
    postgresql_where=publishers.c.is_deleted == 0,
)
Index("ix_books_author_id", books.c.author_id)
Index("ix_books_publisher_id", books.c.publisher_id)


def _active_exists(table: Table, row_id: int):
    """EXISTS clause: row_id names a non-deleted row in table."""
    return select(table.c.id).where((table.c.id == row_id) & (table.c.is_deleted == 0)).exists()


# ---------------------------------------------------------------------------
# Author / publisher repository
# ---------------------------------------------------------------------------


class NamedEntityRepo:
    """Soft-deletable entity with an active-unique name, referenced by books.

    One instance per table: CatalogStore.authors and CatalogStore.publishers.
    """

    def __init__(self, engine: Engine, table: Table, book_fk: Column, model: type) -> None:
        self.engine = engine
        self.table = table
        self._book_fk = book_fk
        self._model = model

    def create(self, name: str) -> int:
        """Insert a new row and return its ID.

        Raises sqlalchemy.exc.IntegrityError if an active row already has this
        name -- the partial unique index makes the check and the insert one
        atomic step.
        """
        with self.engine.connect() as conn:
            result = conn.execute(self.table.insert().values(name=name, is_deleted=0, created_at=now_iso()))
            conn.commit()
            return result.inserted_primary_key[0]

    def get(self, row_id: int) -> Optional[Union[Author, Publisher]]:
        """Fetch by ID, deleted or not. Returns None if the ID never existed."""
        with self.engine.connect() as conn:
            row = conn.execute(self.table.select().where(self.table.c.id == row_id)).fetchone()
        return self._to_model(row) if row is not None else None

    def find_active_by_name(self, name: str, exclude_id: Optional[int] = None) -> Optional[Union[Author, Publisher]]:
        """Return the active row with exactly this name, optionally ignoring one ID."""
        stmt = self.table.select().where((self.table.c.name == name) & (self.table.c.is_deleted == 0))
        if exclude_id is not None:
            stmt = stmt.where(self.table.c.id != exclude_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return self._to_model(row) if row is not None else None

    def rename(self, row_id: int, name: str) -> bool:
        """Rename an active row. Returns False if the row is missing or deleted.

        Raises sqlalchemy.exc.IntegrityError if another active row holds the name.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                self.table.update()
                .where((self.table.c.id == row_id) & (self.table.c.is_deleted == 0))
                .values(name=name)
            )
            conn.commit()
        return result.rowcount > 0

    def soft_delete(self, row_id: int) -> bool:
        """Mark a row deleted unless it is already deleted or an active book references it.

        Single statement: the reference check and the flag flip cannot be
        interleaved with a concurrent book insert that passes its own EXISTS
        guard against this row.
        """
        in_use = select(books.c.isbn).where((self._book_fk == row_id) & (books.c.is_deleted == 0)).exists()
        with self.engine.connect() as conn:
            result = conn.execute(
                self.table.update()
                .where((self.table.c.id == row_id) & (self.table.c.is_deleted == 0) & ~in_use)
                .values(is_deleted=1)
            )
            conn.commit()
        return result.rowcount > 0

    def search(self, keyword: str) -> list[Union[Author, Publisher]]:
        """Substring match on name among active rows, ordered by ID.

        LIKE wildcards in keyword are escaped. Case sensitivity follows the
        database collation (SQLite LIKE is case-insensitive for ASCII).
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                self.table.select()
                .where(self.table.c.name.contains(keyword, autoescape=True) & (self.table.c.is_deleted == 0))
                .order_by(self.table.c.id)
            ).fetchall()
        return [self._to_model(r) for r in rows]

    def _to_model(self, row) -> Union[Author, Publisher]:
        return self._model(id=row.id, name=row.name, is_deleted=bool(row.is_deleted))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)
        self.authors = NamedEntityRepo(engine, authors, books.c.author_id, Author)
        self.publishers = NamedEntityRepo(engine, publishers, books.c.publisher_id, Publisher)

    # ------------------------------------------------------------------
    # Books -- writes
    # ------------------------------------------------------------------

    def create_book(self, book: Book) -> bool:
        """Insert a book if its author and publisher are both active.

        INSERT ... SELECT ... WHERE EXISTS(author) AND EXISTS(publisher), so
        the reference check happens in the same statement as the write.

        Returns False if either reference is missing or deleted.
        Raises sqlalchemy.exc.IntegrityError if the isbn already exists
        (deleted or not -- registration never resurrects an isbn).
        """
        source = select(
            literal(book.isbn, BigInteger),
            literal(book.title, String),
            literal(book.author_id, Integer),
            literal(book.publisher_id, Integer),
            literal(book.publication_year, Integer),
            literal(book.publication_month, Integer),
            literal(0, Integer),
            literal(now_iso(), String),
        ).where(and_(_active_exists(authors, book.author_id), _active_exists(publishers, book.publisher_id)))
        stmt = books.insert().from_select(
            [
                "isbn",
                "title",
                "author_id",
                "publisher_id",
                "publication_year",
                "publication_month",
                "is_deleted",
                "created_at",
            ],
            source,
        )
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    def update_book(self, book: Book) -> bool:
        """Overwrite all mutable fields of an active book.

        Guarded by the book being active and both references being active.
        Returns False if any guard fails; the caller re-reads to classify.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                books.update()
                .where(
                    (books.c.isbn == book.isbn)
                    & (books.c.is_deleted == 0)
                    & _active_exists(authors, book.author_id)
                    & _active_exists(publishers, book.publisher_id)
                )
                .values(
                    title=book.title,
                    author_id=book.author_id,
                    publisher_id=book.publisher_id,
                    publication_year=book.publication_year,
                    publication_month=book.publication_month,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def soft_delete_book(self, isbn: int) -> bool:
        """Mark an active book deleted. Returns False if missing or already deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(
                books.update().where((books.c.isbn == isbn) & (books.c.is_deleted == 0)).values(is_deleted=1)
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Books -- reads
    # ------------------------------------------------------------------

    def get_book(self, isbn: int) -> Optional[Book]:
        """Fetch a book by isbn, deleted or not. Returns None if never registered."""
        with self.engine.connect() as conn:
            row = conn.execute(books.select().where(books.c.isbn == isbn)).fetchone()
        return _row_to_book(row) if row is not None else None

    def count_active_books(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(books).where(books.c.is_deleted == 0)).scalar()
        return result or 0

    def list_active_books(self, offset: int, limit: int) -> list[BookListing]:
        """Return one page of active books joined with their author name.

        Order: publication_month desc, publication_year desc, isbn asc. The isbn
        tie-breaker keeps page boundaries stable between requests.
        """
        stmt = (
            select(
                books.c.isbn,
                books.c.title,
                books.c.publication_year,
                books.c.publication_month,
                authors.c.name.label("author_name"),
            )
            .select_from(books.join(authors, books.c.author_id == authors.c.id))
            .where(books.c.is_deleted == 0)
            .order_by(books.c.publication_month.desc(), books.c.publication_year.desc(), books.c.isbn)
            .offset(offset)
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            BookListing(
                isbn=row.isbn,
                title=row.title,
                author_name=row.author_name,
                publication_year_month=_year_month(row.publication_year, row.publication_month),
            )
            for row in rows
        ]

    def get_book_detail(self, isbn: int) -> Optional[BookDetail]:
        """Fetch a book with author and publisher names. Deleted books are included."""
        stmt = (
            select(
                books.c.isbn,
                books.c.title,
                books.c.publication_year,
                books.c.publication_month,
                books.c.is_deleted,
                authors.c.name.label("author_name"),
                publishers.c.name.label("publisher_name"),
            )
            .select_from(
                books.join(authors, books.c.author_id == authors.c.id).join(
                    publishers, books.c.publisher_id == publishers.c.id
                )
            )
            .where(books.c.isbn == isbn)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        if row is None:
            return None
        return BookDetail(
            isbn=row.isbn,
            title=row.title,
            author_name=row.author_name,
            publisher_name=row.publisher_name,
            publication_year_month=_year_month(row.publication_year, row.publication_month),
            is_deleted=bool(row.is_deleted),
        )


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _year_month(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def _row_to_book(row) -> Book:
    return Book(
        isbn=row.isbn,
        title=row.title,
        author_id=row.author_id,
        publisher_id=row.publisher_id,
        publication_year=row.publication_year,
        publication_month=row.publication_month,
        is_deleted=bool(row.is_deleted),
    )

"""
rentals/store.py -- SQLAlchemy Core persistence layer for the rental ledger.

Pattern: Repository + Data Mapper (same as catalog/store.py).

"At most one open rental per book" is a partial UNIQUE index on book_isbn
WHERE returned_date IS NULL. create_rental() does not look for an open record
first -- the insert either succeeds or raises IntegrityError, so two
concurrent checkouts of the same book cannot both succeed.

close_rental() is a conditional UPDATE (WHERE returned_date IS NULL): the
first return wins, a concurrent second return sees rowcount 0.

Records are append-only apart from that single returned_date write.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from typing import Optional

from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String, Table, select
from sqlalchemy.engine import Engine

from auth.store import users
from catalog.store import books
from core.db import metadata
from rentals.models import RentalHistoryEntry, RentalRecord

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

rental_records = Table(
    "rental_records",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("book_isbn", BigInteger, ForeignKey(books.c.isbn), nullable=False),
    Column("user_id", Integer, ForeignKey(users.c.id), nullable=False),
    Column("checkout_date", String(32), nullable=False),
    Column("due_date", String(32), nullable=False),
    Column("returned_date", String(32)),  # NULL while the rental is open
)

Index(
    "uq_rental_records_open_book",
    rental_records.c.book_isbn,
    unique=True,
    sqlite_where=rental_records.c.returned_date.is_(None),
    postgresql_where=rental_records.c.returned_date.is_(None),
)
Index("ix_rental_records_user_id", rental_records.c.user_id)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RentalStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def create_rental(self, record: RentalRecord) -> int:
        """Insert an open rental and return its ID.

        Raises sqlalchemy.exc.IntegrityError if the book already has an open
        rental -- caller should translate that into a Conflict.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                rental_records.insert().values(
                    book_isbn=record.book_isbn,
                    user_id=record.user_id,
                    checkout_date=record.checkout_date,
                    due_date=record.due_date,
                    returned_date=None,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_rental(self, record_id: int) -> Optional[RentalRecord]:
        with self.engine.connect() as conn:
            row = conn.execute(rental_records.select().where(rental_records.c.id == record_id)).fetchone()
        return _row_to_rental(row) if row is not None else None

    def get_open_rental(self, isbn: int) -> Optional[RentalRecord]:
        """Return the open rental for a book, if any."""
        with self.engine.connect() as conn:
            row = conn.execute(
                rental_records.select().where(
                    (rental_records.c.book_isbn == isbn) & (rental_records.c.returned_date.is_(None))
                )
            ).first()
        return _row_to_rental(row) if row is not None else None

    def close_rental(self, record_id: int, returned_date: str) -> bool:
        """Stamp returned_date on an open rental. Returns False if it was not open."""
        with self.engine.connect() as conn:
            result = conn.execute(
                rental_records.update()
                .where((rental_records.c.id == record_id) & (rental_records.c.returned_date.is_(None)))
                .values(returned_date=returned_date)
            )
            conn.commit()
        return result.rowcount > 0

    def list_user_history(self, user_id: int) -> list[RentalHistoryEntry]:
        """Return every rental for a user joined with book titles, newest checkout first.

        Soft-deleted books are still joined -- history outlives the catalog entry.
        """
        stmt = (
            select(
                rental_records.c.id,
                rental_records.c.book_isbn,
                rental_records.c.checkout_date,
                rental_records.c.due_date,
                rental_records.c.returned_date,
                books.c.title.label("book_title"),
            )
            .select_from(rental_records.join(books, rental_records.c.book_isbn == books.c.isbn))
            .where(rental_records.c.user_id == user_id)
            .order_by(rental_records.c.checkout_date.desc(), rental_records.c.id.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            RentalHistoryEntry(
                id=row.id,
                book_isbn=row.book_isbn,
                book_title=row.book_title,
                checkout_date=row.checkout_date,
                due_date=row.due_date,
                returned_date=row.returned_date,
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_rental(row) -> RentalRecord:
    return RentalRecord(
        id=row.id,
        book_isbn=row.book_isbn,
        user_id=row.user_id,
        checkout_date=row.checkout_date,
        due_date=row.due_date,
        returned_date=row.returned_date,
    )

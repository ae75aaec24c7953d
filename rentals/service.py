"""
rentals/service.py -- Checkout / return state machine and per-user history.

State machine per RentalRecord:

    Open (returned_date is None) --return_book--> Closed (returned_date set)

There is no other transition: no reopen, no admin force-close.

Soft-deleted books can still be checked out. The catalog only hides them from
the list; whether withdrawal should also block rentals is an open product
decision, so checkout logs a warning instead of refusing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from auth.models import Caller
from auth.permissions import ensure_authenticated
from catalog.store import CatalogStore
from core.errors import Conflict, Forbidden, NotFound, guard_store_errors
from core.validation import MAX_DB_INT, require_int
from rentals.models import RentalHistoryEntry, RentalRecord
from rentals.store import RentalStore

logger = logging.getLogger("library.rentals")

DEFAULT_RENTAL_DAYS = 7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RentalService:
    def __init__(
        self,
        rentals: RentalStore,
        catalog: CatalogStore,
        rental_days: int = DEFAULT_RENTAL_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.rentals = rentals
        self.catalog = catalog
        self.rental_days = rental_days
        self._clock = clock

    @guard_store_errors
    def checkout(self, caller: Optional[Caller], isbn: int) -> RentalRecord:
        """Open a rental of isbn for the caller, due rental_days from now."""
        caller = ensure_authenticated(caller)
        isbn = require_int(isbn, "book_id", minimum=1, maximum=MAX_DB_INT)

        book = self.catalog.get_book(isbn)
        if book is None:
            raise NotFound("Book not found.", code="book_not_found")
        if book.is_deleted:
            logger.warning("Checkout of withdrawn book %s by user_id=%s", isbn, caller.id)
        if self.rentals.get_open_rental(isbn) is not None:
            raise _already_rented()

        now = self._clock()
        record = RentalRecord(
            book_isbn=isbn,
            user_id=caller.id,
            checkout_date=now.isoformat(),
            due_date=(now + timedelta(days=self.rental_days)).isoformat(),
        )
        try:
            record.id = self.rentals.create_rental(record)
        except IntegrityError as exc:
            # Another checkout of the same book committed after our read.
            raise _already_rented() from exc

        logger.info("Rental id=%s opened: book %s, user_id=%s, due %s", record.id, isbn, caller.id, record.due_date)
        return record

    @guard_store_errors
    def return_book(self, caller: Optional[Caller], record_id: int) -> RentalRecord:
        """Close the caller's open rental. Only the renting user may return it."""
        caller = ensure_authenticated(caller)
        record_id = require_int(record_id, "id", minimum=1, maximum=MAX_DB_INT)

        record = self.rentals.get_rental(record_id)
        if record is None:
            raise NotFound("Rental record not found.", code="rental_not_found")
        if record.user_id != caller.id:
            raise Forbidden("This rental belongs to another user.", code="not_owner")
        if not record.is_open:
            raise _already_returned()

        returned_date = self._clock().isoformat()
        if not self.rentals.close_rental(record_id, returned_date):
            raise _already_returned()

        record.returned_date = returned_date
        logger.info("Rental id=%s closed by user_id=%s", record_id, caller.id)
        return record

    @guard_store_errors
    def history(self, caller: Optional[Caller]) -> list[RentalHistoryEntry]:
        """Return the caller's rentals, newest first.

        An empty history is reported as NotFound rather than an empty list.
        """
        caller = ensure_authenticated(caller)
        entries = self.rentals.list_user_history(caller.id)
        if not entries:
            raise NotFound("No rental history.", code="no_history")
        return entries


def _already_rented() -> Conflict:
    return Conflict("This book is already rented.", code="already_rented")


def _already_returned() -> Conflict:
    return Conflict("This rental has already been returned.", code="already_returned")

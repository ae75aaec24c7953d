"""
rentals/models.py -- Domain dataclasses for the rental ledger.

Pure data containers. The Open -> Closed state machine is enforced in
rentals/service.py and by the guarded writes in rentals/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RentalRecord:
    """One checkout of one book by one user.

    Open while returned_date is None; Closed (and immutable) once it is set.
    Timestamps are ISO 8601 UTC strings.
    """

    book_isbn: int
    user_id: int
    checkout_date: str
    due_date: str
    returned_date: Optional[str] = None
    id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.returned_date is None


@dataclass
class RentalHistoryEntry:
    """A RentalRecord joined with the rented book's isbn and title."""

    id: int
    book_isbn: int
    book_title: str
    checkout_date: str
    due_date: str
    returned_date: Optional[str] = None

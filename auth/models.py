"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach in
catalog/models.py and rentals/models.py -- dataclasses own domain shape;
stores and services do the work.

Layer rule: no imports from api/, catalog/, or rentals/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered library patron or administrator.

    email is the login identifier and is unique across all users.
    is_admin is never set through the HTTP surface -- admins are created with
    `python main.py create-admin`.
    """

    email: str
    name: str
    id: int | None = None
    hashed_password: str | None = None
    is_admin: bool = False
    created_at: str | None = None


@dataclass(frozen=True)
class Caller:
    """Identity context handed to every service operation.

    Built by auth.dependencies from the session or bearer token. Services
    receive it as an explicit argument instead of reading request state, so
    the core is testable without a live session layer.
    """

    id: int
    name: str
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(id=user.id, name=user.name, is_admin=user.is_admin)

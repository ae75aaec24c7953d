"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and dependency
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Email uniqueness is a UNIQUE constraint, not a read-before-write: two
  concurrent registrations for the same address cannot both succeed.

Layer rule: no imports from api/, catalog/, or rentals/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.models import User
from core.db import metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("is_admin", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        store.create_user(User(email="a@example.com", name="A", hashed_password=hash_password("secret")))
        user = store.get_by_email("a@example.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers translate that into a Conflict.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                users.insert().values(
                    email=user.email,
                    name=user.name,
                    hashed_password=user.hashed_password,
                    is_admin=1 if user.is_admin else 0,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_name(self, user_id: int, name: str) -> bool:
        """Change a user's display name. Returns False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(name=name))
            conn.commit()
        return result.rowcount > 0

    def set_admin(self, user_id: int, is_admin: bool) -> bool:
        """Grant or revoke admin rights. Only reachable from the CLI."""
        with self.engine.connect() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(is_admin=1 if is_admin else 0))
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
    )

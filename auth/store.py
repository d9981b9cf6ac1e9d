"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as registry/store.py).
UserStore is the repository; _row_to_user is the mapper. Service and
dependency code never touches SQL directly.

Transactions: every method takes an optional conn. Pass the connection from
Database.transaction() to make the write part of a larger unit of work
(e.g. create user + create dealer + link). Without one, the method runs in
its own short transaction.

Security:
  All queries use bound parameters. No f-strings in SQL.
  update_user() only accepts columns in _MUTABLE_FIELDS so a caller can never
  rewrite id, role, or created_at through a generic field merge.

Layer rule: no imports from api/, registry/, or services/.
"""

from __future__ import annotations

import uuid

from sqlalchemy.engine import Connection

from auth.models import User
from core.database import Database, now_iso, users

_MUTABLE_FIELDS = frozenset({"name", "username", "email", "password_hash", "temp_pass", "dealer_id"})


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(db)
        user_id = store.create_user(User(role="admin", name="Root", username="root",
                                         email="root@union.example", password_hash=hash_password("...")))
        user = store.get_by_email("root@union.example")
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str, conn: Connection | None = None) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.db.connect(conn) as c:
            row = c.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str, conn: Connection | None = None) -> User | None:
        """Look up a user by email, case-insensitively. Returns None if not found.

        Emails are stored lowercased by create_user/update_user, so an
        equality match against the lowercased input is enough.
        """
        with self.db.connect(conn) as c:
            row = c.execute(users.select().where(users.c.email == email.strip().lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str, conn: Connection | None = None) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.db.connect(conn) as c:
            row = c.execute(users.select().where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_by_role(self, role: str) -> list[User]:
        with self.db.connect() as c:
            rows = c.execute(users.select().where(users.c.role == role).order_by(users.c.created_at)).fetchall()
        return [_row_to_user(r) for r in rows]

    def has_admin(self) -> bool:
        """Return True if at least one admin account exists (first-run check for the CLI)."""
        return bool(self.list_by_role("admin"))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User, conn: Connection | None = None) -> str:
        """Insert a new user and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if email or username is taken.
        Services check both first and translate the race-condition case.
        """
        user_id = user.id or str(uuid.uuid4())
        stamp = now_iso()
        with self.db.connect(conn) as c:
            c.execute(
                users.insert().values(
                    id=user_id,
                    role=user.role,
                    name=user.name,
                    username=user.username,
                    email=user.email.strip().lower(),
                    password_hash=user.password_hash,
                    temp_pass=user.temp_pass,
                    dealer_id=user.dealer_id,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return user_id

    def update_user(self, user_id: str, conn: Connection | None = None, **fields) -> bool:
        """Apply a partial update and stamp updated_at.

        Accepted fields: name, username, email, password_hash, temp_pass,
        dealer_id. None values are skipped (partial merge).

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        values = {k: v for k, v in fields.items() if v is not None}
        if "email" in values:
            values["email"] = values["email"].strip().lower()
        values["updated_at"] = now_iso()
        with self.db.connect(conn) as c:
            result = c.execute(users.update().where(users.c.id == user_id).values(**values))
        return result.rowcount > 0

    def set_password(self, user_id: str, password_hash: str, temp: bool, conn: Connection | None = None) -> bool:
        """Replace the password hash and set or clear the temp-password flag."""
        with self.db.connect(conn) as c:
            result = c.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(password_hash=password_hash, temp_pass=temp, updated_at=now_iso())
            )
        return result.rowcount > 0

    def update_last_login(self, user_id: str, conn: Connection | None = None) -> None:
        """Stamp the current UTC timestamp as last_login."""
        with self.db.connect(conn) as c:
            c.execute(users.update().where(users.c.id == user_id).values(last_login=now_iso()))

    def delete_user(self, user_id: str, conn: Connection | None = None) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        With foreign keys enforced this also removes the user's dealer profile
        (dealers.user_id ON DELETE CASCADE) and, through it, that dealer's
        employees and customers.
        """
        with self.db.connect(conn) as c:
            result = c.execute(users.delete().where(users.c.id == user_id))
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        role=row.role,
        name=row.name,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        temp_pass=bool(row.temp_pass),
        dealer_id=row.dealer_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login=row.last_login,
    )

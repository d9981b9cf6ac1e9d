"""
core/database.py -- Connection-pool handle and relational schema.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py and
registry/models.py remain the authoritative domain representation. Swapping
SQLite for PostgreSQL is a connection string change, not a rewrite.

Database is the single process-lifetime resource: it owns the Engine (and so
the connection pool). It is constructed explicitly in the FastAPI lifespan,
stored on app.state.db, passed to every store and service, and disposed on
shutdown. Tests construct their own in-memory Database and inject it the same
way -- there is no module-level engine.

Transactions:
  transaction()  -- engine.begin(): commits on clean exit, rolls back on any
                    exception. Multi-row operations (create user + dealer +
                    link, mutation + audit entry) run inside one.
  connect(conn)  -- store helper: reuse the caller's transaction if one is
                    passed, otherwise open a short one for this statement.

Security: all queries elsewhere use bound parameters. No f-strings in SQL.

Usage:
    db = Database("sqlite:///./oilunion.db")
    with db.transaction() as conn:
        users.create_user(user, conn=conn)
        registry.create_dealer(dealer, conn=conn)
    db.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("oilunion.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("role", String(10), nullable=False),  # "admin" | "dealer"
    Column("name", String(255), nullable=False),
    Column("username", String(100), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("temp_pass", Boolean, nullable=False, server_default="0"),
    # No FK: dealers.user_id already points the other way, and a circular FK
    # would make the create-user-then-dealer sequence impossible to order.
    Column("dealer_id", String(36)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login", String(32)),
)

dealers = Table(
    "dealers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("company_name", String(255), nullable=False),
    Column("primary_contact_name", String(255), nullable=False),
    Column("primary_contact_phone", String(30), nullable=False),
    Column("primary_contact_email", String(255), nullable=False),
    Column("address", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default="active"),  # "active" | "suspended"
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

employees = Table(
    "employees",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("dealer_id", String(36), ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(30), nullable=False),
    Column("email", String(255), nullable=False),
    Column("aadhar", String(12), nullable=False, unique=True),
    Column("position", String(100), nullable=False),
    Column("hire_date", String(10), nullable=False),  # YYYY-MM-DD
    Column("status", String(20), nullable=False, server_default="active"),  # "active" | "terminated"
    Column("termination_date", String(10)),
    Column("termination_reason", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_employees_dealer_id", "dealer_id"),
)

customers = Table(
    "customers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("dealer_id", String(36), ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False),
    Column("type", String(20), nullable=False),  # "private" | "government"
    Column("name_or_entity", String(255), nullable=False),
    Column("contact_person", String(255)),
    Column("phone", String(30), nullable=False),
    Column("email", String(255), nullable=False),
    Column("official_id", String(100), nullable=False),
    Column("address", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default="active"),  # "active" | "inactive"
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_customers_dealer_id", "dealer_id"),
)

# Append-only. dealer_id deliberately has no FK: entries must outlive the
# dealer they describe (delete_dealer is itself audited).
audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("who_user_id", String(36), nullable=False),
    Column("who_user_name", String(255), nullable=False),
    Column("dealer_id", String(36)),
    Column("action_type", String(30), nullable=False),
    Column("details", Text, nullable=False),
    Column("timestamp", String(32), nullable=False),
    Index("ix_audit_logs_dealer_id", "dealer_id"),
    Index("ix_audit_logs_timestamp", "timestamp"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    # Fixed microsecond precision keeps ISO strings lexically sortable.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign-key enforcement on every new SQLite connection.

    SQLite PRAGMAs are per-connection and are not inherited from the pool,
    so this runs on the engine "connect" event. Without foreign_keys=ON the
    ON DELETE CASCADE clauses above are silently ignored.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


# ---------------------------------------------------------------------------
# Resource handle
# ---------------------------------------------------------------------------


class Database:
    """Explicitly constructed, explicitly closed connection-pool handle.

    Pool options only apply to server databases (PostgreSQL); SQLite rejects
    sizing arguments. In-memory SQLite gets StaticPool: one connection that
    every thread shares, so the database lives exactly as long as the engine.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 0,
        pool_timeout: int = 5,
        pool_recycle: int = 1800,
        echo: bool = False,
    ) -> None:
        self.url = url
        if url.startswith("sqlite"):
            extra = {"poolclass": StaticPool} if _is_memory_sqlite(url) else {}
            self.engine: Engine = create_engine(
                url, connect_args={"check_same_thread": False}, echo=echo, **extra
            )
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        else:
            self.engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
                echo=echo,
            )
        metadata.create_all(self.engine)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside one transaction; roll back on any exception."""
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def connect(self, conn: Connection | None = None) -> Iterator[Connection]:
        """Reuse the caller's transaction when given one, else open a short one."""
        if conn is not None:
            yield conn
            return
        with self.engine.begin() as own:
            yield own

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by GET /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self.engine.dispose()

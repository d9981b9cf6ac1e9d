"""
registry/store.py -- SQLAlchemy-backed persistence for dealers, employees,
customers, and the audit trail.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in registry/models.py
remain the authoritative domain representation. Table definitions live in
core/database.py next to the users table they reference.

Pattern: Repository + Data Mapper. RegistryStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Services never
touch SQL directly.

Transactions: every write takes an optional conn so services can group a
mutation and its audit entry (or a whole create-dealer sequence) into one
Database.transaction().

Security: all queries use bound parameters. No f-strings in SQL. Search terms
go through contains(..., autoescape=True) so user-supplied % and _ match
literally instead of acting as wildcards.

Usage:
    store = RegistryStore(db)
    dealer_id = store.create_dealer(dealer, conn=conn)
    employees = store.list_employees(dealer_id)
    store.terminate_employee(employee_id, "2025-01-31", "Contract ended")
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from core.database import Database, audit_logs, customers, dealers, employees, now_iso, users
from registry.models import AuditLogEntry, Customer, Dealer, Employee, SearchResult

# Per-table cap on search results, newest-created first.
SEARCH_LIMIT = 50

_DEALER_FIELDS = frozenset(
    {"company_name", "primary_contact_name", "primary_contact_phone", "primary_contact_email", "address", "status"}
)
# status is absent on purpose: the only way out of "active" is terminate_employee().
_EMPLOYEE_FIELDS = frozenset({"first_name", "last_name", "phone", "email", "position"})
_CUSTOMER_FIELDS = frozenset(
    {"type", "name_or_entity", "contact_person", "phone", "email", "official_id", "address", "status"}
)


def _merge(fields: dict, allowed: frozenset, kind: str) -> dict:
    """Validate field names against a whitelist and drop None values (partial merge)."""
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown {kind} fields: {unknown!r}")
    values = {k: v for k, v in fields.items() if v is not None}
    values["updated_at"] = now_iso()
    return values


class RegistryStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Dealers
    # ------------------------------------------------------------------

    def create_dealer(self, dealer: Dealer, conn: Optional[Connection] = None) -> str:
        """Insert a dealer profile and return its generated id."""
        dealer_id = dealer.id or str(uuid.uuid4())
        stamp = now_iso()
        with self.db.connect(conn) as c:
            c.execute(
                dealers.insert().values(
                    id=dealer_id,
                    user_id=dealer.user_id,
                    company_name=dealer.company_name,
                    primary_contact_name=dealer.primary_contact_name,
                    primary_contact_phone=dealer.primary_contact_phone,
                    primary_contact_email=dealer.primary_contact_email,
                    address=dealer.address,
                    status=dealer.status,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return dealer_id

    def get_dealer(self, dealer_id: str, conn: Optional[Connection] = None) -> Optional[Dealer]:
        """Fetch a dealer by id (with owning-user details). Returns None if not found."""
        with self.db.connect(conn) as c:
            row = c.execute(_dealer_view_query().where(dealers.c.id == dealer_id)).fetchone()
        return _row_to_dealer(row) if row is not None else None

    def list_dealers(self) -> list[Dealer]:
        """Return every dealer with owning-user details, newest first."""
        with self.db.connect() as c:
            rows = c.execute(_dealer_view_query().order_by(dealers.c.created_at.desc())).fetchall()
        return [_row_to_dealer(r) for r in rows]

    def update_dealer(self, dealer_id: str, conn: Optional[Connection] = None, **fields) -> bool:
        """Partial update of company/contact/status fields. Stamps updated_at.

        Returns True if a row was updated, False if dealer_id was not found.
        """
        values = _merge(fields, _DEALER_FIELDS, "dealer")
        with self.db.connect(conn) as c:
            result = c.execute(dealers.update().where(dealers.c.id == dealer_id).values(**values))
        return result.rowcount > 0

    def delete_dealer(self, dealer_id: str, conn: Optional[Connection] = None) -> bool:
        """Delete a dealer and every record it owns.

        Employees and customers are removed explicitly rather than relying on
        ON DELETE CASCADE alone, so the outcome does not depend on whether the
        backend enforces foreign keys. Run inside the caller's transaction
        together with the user-account delete.
        """
        with self.db.connect(conn) as c:
            c.execute(employees.delete().where(employees.c.dealer_id == dealer_id))
            c.execute(customers.delete().where(customers.c.dealer_id == dealer_id))
            result = c.execute(dealers.delete().where(dealers.c.id == dealer_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def create_employee(self, employee: Employee, conn: Optional[Connection] = None) -> str:
        """Insert an employee and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if the aadhar is already taken.
        The service checks first; the UNIQUE constraint catches the race.
        """
        employee_id = employee.id or str(uuid.uuid4())
        stamp = now_iso()
        with self.db.connect(conn) as c:
            c.execute(
                employees.insert().values(
                    id=employee_id,
                    dealer_id=employee.dealer_id,
                    first_name=employee.first_name,
                    last_name=employee.last_name,
                    phone=employee.phone,
                    email=employee.email,
                    aadhar=employee.aadhar,
                    position=employee.position,
                    hire_date=employee.hire_date,
                    status=employee.status,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return employee_id

    def get_employee(self, employee_id: str, conn: Optional[Connection] = None) -> Optional[Employee]:
        with self.db.connect(conn) as c:
            row = c.execute(employees.select().where(employees.c.id == employee_id)).fetchone()
        return _row_to_employee(row) if row is not None else None

    def get_employee_by_aadhar(self, aadhar: str, conn: Optional[Connection] = None) -> Optional[Employee]:
        """Exact-match lookup across every dealer. Returns None if not found."""
        with self.db.connect(conn) as c:
            row = c.execute(employees.select().where(employees.c.aadhar == aadhar)).fetchone()
        return _row_to_employee(row) if row is not None else None

    def list_employees(self, dealer_id: str, status: Optional[str] = None) -> list[Employee]:
        """Return a dealer's employees, most recently hired first."""
        query = employees.select().where(employees.c.dealer_id == dealer_id)
        if status is not None:
            query = query.where(employees.c.status == status)
        with self.db.connect() as c:
            rows = c.execute(query.order_by(employees.c.hire_date.desc(), employees.c.created_at.desc())).fetchall()
        return [_row_to_employee(r) for r in rows]

    def update_employee(self, employee_id: str, conn: Optional[Connection] = None, **fields) -> bool:
        """Partial update of name/contact/position. Stamps updated_at.

        Returns True if a row was updated, False if employee_id was not found.
        """
        values = _merge(fields, _EMPLOYEE_FIELDS, "employee")
        with self.db.connect(conn) as c:
            result = c.execute(employees.update().where(employees.c.id == employee_id).values(**values))
        return result.rowcount > 0

    def terminate_employee(
        self,
        employee_id: str,
        termination_date: str,
        termination_reason: str,
        conn: Optional[Connection] = None,
    ) -> bool:
        """Move an active employee to terminated.

        The WHERE clause only matches active rows, so two concurrent
        terminations cannot both succeed and a terminated row is never
        rewritten. Returns False if nothing was active to terminate.
        """
        with self.db.connect(conn) as c:
            result = c.execute(
                employees.update()
                .where((employees.c.id == employee_id) & (employees.c.status == "active"))
                .values(
                    status="terminated",
                    termination_date=termination_date,
                    termination_reason=termination_reason,
                    updated_at=now_iso(),
                )
            )
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def create_customer(self, customer: Customer, conn: Optional[Connection] = None) -> str:
        customer_id = customer.id or str(uuid.uuid4())
        stamp = now_iso()
        with self.db.connect(conn) as c:
            c.execute(
                customers.insert().values(
                    id=customer_id,
                    dealer_id=customer.dealer_id,
                    type=customer.type,
                    name_or_entity=customer.name_or_entity,
                    contact_person=customer.contact_person,
                    phone=customer.phone,
                    email=customer.email,
                    official_id=customer.official_id,
                    address=customer.address,
                    status=customer.status,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        return customer_id

    def get_customer(self, customer_id: str, conn: Optional[Connection] = None) -> Optional[Customer]:
        with self.db.connect(conn) as c:
            row = c.execute(customers.select().where(customers.c.id == customer_id)).fetchone()
        return _row_to_customer(row) if row is not None else None

    def list_customers(
        self,
        dealer_id: str,
        status: Optional[str] = None,
        customer_type: Optional[str] = None,
    ) -> list[Customer]:
        """Return a dealer's customers, newest first, optionally filtered."""
        query = customers.select().where(customers.c.dealer_id == dealer_id)
        if status is not None:
            query = query.where(customers.c.status == status)
        if customer_type is not None:
            query = query.where(customers.c.type == customer_type)
        with self.db.connect() as c:
            rows = c.execute(query.order_by(customers.c.created_at.desc())).fetchall()
        return [_row_to_customer(r) for r in rows]

    def update_customer(self, customer_id: str, conn: Optional[Connection] = None, **fields) -> bool:
        values = _merge(fields, _CUSTOMER_FIELDS, "customer")
        with self.db.connect(conn) as c:
            result = c.execute(customers.update().where(customers.c.id == customer_id).values(**values))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_employees(self, term: str, dealer_id: Optional[str] = None) -> list[SearchResult]:
        """Substring match over employee name, phone, aadhar, and email.

        Text fields match case-insensitively; phone and aadhar match the raw
        substring. dealer_id, when given, scopes the query to one tenant.
        """
        lowered = term.lower()
        full_name = employees.c.first_name + " " + employees.c.last_name
        query = (
            select(employees, dealers.c.company_name.label("dealer_name"))
            .join(dealers, employees.c.dealer_id == dealers.c.id)
            .where(
                func.lower(full_name).contains(lowered, autoescape=True)
                | employees.c.phone.contains(term, autoescape=True)
                | employees.c.aadhar.contains(term, autoescape=True)
                | func.lower(employees.c.email).contains(lowered, autoescape=True)
            )
        )
        if dealer_id is not None:
            query = query.where(employees.c.dealer_id == dealer_id)
        query = query.order_by(employees.c.created_at.desc()).limit(SEARCH_LIMIT)
        with self.db.connect() as c:
            rows = c.execute(query).fetchall()
        return [_row_to_employee_result(r) for r in rows]

    def search_customers(self, term: str, dealer_id: Optional[str] = None) -> list[SearchResult]:
        """Substring match over customer name, phone, official id, email, and contact person."""
        lowered = term.lower()
        query = (
            select(customers, dealers.c.company_name.label("dealer_name"))
            .join(dealers, customers.c.dealer_id == dealers.c.id)
            .where(
                func.lower(customers.c.name_or_entity).contains(lowered, autoescape=True)
                | customers.c.phone.contains(term, autoescape=True)
                | customers.c.official_id.contains(term, autoescape=True)
                | func.lower(customers.c.email).contains(lowered, autoescape=True)
                | func.lower(customers.c.contact_person).contains(lowered, autoescape=True)
            )
        )
        if dealer_id is not None:
            query = query.where(customers.c.dealer_id == dealer_id)
        query = query.order_by(customers.c.created_at.desc()).limit(SEARCH_LIMIT)
        with self.db.connect() as c:
            rows = c.execute(query).fetchall()
        return [_row_to_customer_result(r) for r in rows]

    # ------------------------------------------------------------------
    # Audit log (append-only)
    # ------------------------------------------------------------------

    def insert_audit(self, entry: AuditLogEntry, conn: Optional[Connection] = None) -> int:
        """Append one audit entry and return its id. There is no update counterpart."""
        with self.db.connect(conn) as c:
            result = c.execute(
                audit_logs.insert().values(
                    who_user_id=entry.who_user_id,
                    who_user_name=entry.who_user_name,
                    dealer_id=entry.dealer_id,
                    action_type=entry.action_type,
                    details=entry.details,
                    timestamp=entry.timestamp or now_iso(),
                )
            )
        return result.inserted_primary_key[0]

    def list_audit(
        self,
        limit: int = 100,
        dealer_id: Optional[str] = None,
        action_type: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[AuditLogEntry]:
        """Return audit entries newest first, optionally filtered."""
        query = audit_logs.select()
        if dealer_id is not None:
            query = query.where(audit_logs.c.dealer_id == dealer_id)
        if action_type is not None:
            query = query.where(audit_logs.c.action_type == action_type)
        if user_id is not None:
            query = query.where(audit_logs.c.who_user_id == user_id)
        query = query.order_by(audit_logs.c.timestamp.desc(), audit_logs.c.id.desc()).limit(limit)
        with self.db.connect() as c:
            rows = c.execute(query).fetchall()
        return [_row_to_audit(r) for r in rows]

    def count_audit(self) -> int:
        with self.db.connect() as c:
            return c.execute(select(func.count()).select_from(audit_logs)).scalar() or 0

    def prune_audit(self, before_iso: str) -> int:
        """Delete audit entries older than the given ISO timestamp. Returns rows removed."""
        with self.db.connect() as c:
            result = c.execute(audit_logs.delete().where(audit_logs.c.timestamp < before_iso))
        return result.rowcount


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _dealer_view_query():
    return select(
        dealers,
        users.c.name.label("user_name"),
        users.c.email.label("user_email"),
        users.c.username,
    ).join(users, dealers.c.user_id == users.c.id)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_dealer(row) -> Dealer:
    return Dealer(
        id=row.id,
        user_id=row.user_id,
        company_name=row.company_name,
        primary_contact_name=row.primary_contact_name,
        primary_contact_phone=row.primary_contact_phone,
        primary_contact_email=row.primary_contact_email,
        address=row.address,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        user_name=row.user_name,
        user_email=row.user_email,
        username=row.username,
    )


def _row_to_employee(row) -> Employee:
    return Employee(
        id=row.id,
        dealer_id=row.dealer_id,
        first_name=row.first_name,
        last_name=row.last_name,
        phone=row.phone,
        email=row.email,
        aadhar=row.aadhar,
        position=row.position,
        hire_date=row.hire_date,
        status=row.status,
        termination_date=row.termination_date,
        termination_reason=row.termination_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_customer(row) -> Customer:
    return Customer(
        id=row.id,
        dealer_id=row.dealer_id,
        type=row.type,
        name_or_entity=row.name_or_entity,
        contact_person=row.contact_person,
        phone=row.phone,
        email=row.email,
        official_id=row.official_id,
        address=row.address,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_employee_result(row) -> SearchResult:
    return SearchResult(
        id=row.id,
        type="employee",
        name=f"{row.first_name} {row.last_name}",
        email=row.email,
        phone=row.phone,
        status=row.status,
        dealer_id=row.dealer_id,
        dealer_name=row.dealer_name,
        created_at=row.created_at,
        additional={
            "aadhar": row.aadhar,
            "position": row.position,
            "hire_date": row.hire_date,
            "termination_date": row.termination_date,
            "termination_reason": row.termination_reason,
        },
    )


def _row_to_customer_result(row) -> SearchResult:
    return SearchResult(
        id=row.id,
        type="customer",
        name=row.name_or_entity,
        email=row.email,
        phone=row.phone,
        status=row.status,
        dealer_id=row.dealer_id,
        dealer_name=row.dealer_name,
        created_at=row.created_at,
        additional={
            "customer_type": row.type,
            "official_id": row.official_id,
            "contact_person": row.contact_person,
        },
    )


def _row_to_audit(row) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        who_user_id=row.who_user_id,
        who_user_name=row.who_user_name,
        dealer_id=row.dealer_id,
        action_type=row.action_type,
        details=row.details,
        timestamp=row.timestamp,
    )

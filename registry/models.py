"""
registry/models.py -- Domain dataclasses for dealers, their records, and the audit trail.

These are pure data containers with zero logic. Ownership checks, status
transitions, and audit writes live in services/; SQL lives in registry/store.py.

id is None on every entity before the record is written to the database.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AuditAction(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    PASSWORD_RESET = "password_reset"  # self-service forgot-password
    RESET_PASSWORD = "reset_password"  # admin-initiated
    CHANGE_PASSWORD = "change_password"
    CREATE_DEALER = "create_dealer"
    UPDATE_DEALER = "update_dealer"
    DELETE_DEALER = "delete_dealer"
    SEARCH = "search"
    CREATE_EMPLOYEE = "create_employee"
    UPDATE_EMPLOYEE = "update_employee"
    TERMINATE_EMPLOYEE = "terminate_employee"
    CREATE_CUSTOMER = "create_customer"
    UPDATE_CUSTOMER = "update_customer"
    UPDATE_PROFILE = "update_profile"


@dataclass
class Dealer:
    """A tenant: one company, owned by exactly one user with role=dealer.

    user_name / user_email / username are filled only by the joined read
    queries (get_dealer, list_dealers); they are not columns here.
    """

    user_id: str
    company_name: str
    primary_contact_name: str
    primary_contact_phone: str
    primary_contact_email: str
    address: str
    status: str = "active"  # "active" | "suspended"
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    username: Optional[str] = None


@dataclass
class Employee:
    """A person on a dealer's payroll.

    aadhar (national id) is unique across every dealer. Termination is one-way:
    once status is "terminated" no operation sets it back to "active".
    """

    dealer_id: str
    first_name: str
    last_name: str
    phone: str
    email: str
    aadhar: str
    position: str
    hire_date: str  # YYYY-MM-DD
    status: str = "active"  # "active" | "terminated"
    termination_date: Optional[str] = None
    termination_reason: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Customer:
    """A private or government account served by a dealer."""

    dealer_id: str
    type: str  # "private" | "government"
    name_or_entity: str
    phone: str
    email: str
    official_id: str
    address: str
    contact_person: Optional[str] = None
    status: str = "active"  # "active" | "inactive"
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class AuditLogEntry:
    """Immutable record of one successful operation.

    Records are never updated -- only inserted, read, and pruned by age.
    who_user_name holds the actor's display name (or email where only the
    token identity is at hand).
    """

    who_user_id: str
    who_user_name: str
    action_type: str
    details: str
    dealer_id: Optional[str] = None
    timestamp: str = ""
    id: Optional[int] = None


@dataclass
class SearchResult:
    """One tagged row from a cross-table search.

    type is "employee" or "customer"; additional holds the kind-specific
    fields (aadhar/position/... or customer_type/official_id/...).
    """

    id: str
    type: str
    name: str
    email: str
    phone: str
    status: str
    dealer_id: str
    dealer_name: str
    created_at: str
    additional: dict = field(default_factory=dict)

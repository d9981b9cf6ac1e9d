"""services/ -- Domain services for the Oil Union API.

Layer rule: services/ imports from core/, auth/, and registry/. It does NOT
import from api/. Route handlers reach the services through
request.app.state.services, built once per process from the Database.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.store import UserStore
from core.database import Database
from registry.store import RegistryStore
from services.accounts import AccountService
from services.audit import AuditService
from services.customers import CustomerService
from services.dealers import DealerService
from services.employees import EmployeeService
from services.search import SearchService


@dataclass
class Services:
    users: UserStore
    registry: RegistryStore
    audit: AuditService
    accounts: AccountService
    dealers: DealerService
    employees: EmployeeService
    customers: CustomerService
    search: SearchService

    @classmethod
    def build(cls, db: Database) -> "Services":
        users = UserStore(db)
        registry = RegistryStore(db)
        audit = AuditService(registry)
        return cls(
            users=users,
            registry=registry,
            audit=audit,
            accounts=AccountService(db, users, audit),
            dealers=DealerService(db, users, registry, audit),
            employees=EmployeeService(db, registry, audit),
            customers=CustomerService(db, registry, audit),
            search=SearchService(registry, audit),
        )

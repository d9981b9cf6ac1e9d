"""
services/customers.py -- Customer accounts for the calling dealer.

Same ownership rule as services/employees.py. Customers have no one-way
state: status moves freely between active and inactive through update.
"""

from __future__ import annotations

from typing import Optional

from auth.dependencies import authorize
from auth.models import ROLES, Identity
from core.database import Database
from core.errors import NotFoundError
from registry.models import AuditAction, Customer
from registry.store import RegistryStore
from services.audit import AuditService


class CustomerService:
    def __init__(self, db: Database, registry: RegistryStore, audit: AuditService) -> None:
        self.db = db
        self.registry = registry
        self.audit = audit

    def list_customers(
        self, dealer_id: str, status: Optional[str] = None, customer_type: Optional[str] = None
    ) -> list[Customer]:
        return self.registry.list_customers(dealer_id, status=status, customer_type=customer_type)

    def get_customer(self, identity: Identity, customer_id: str) -> Customer:
        customer = self.registry.get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        authorize(identity, ROLES, tenant_id=customer.dealer_id)
        return customer

    def create_customer(
        self,
        identity: Identity,
        *,
        type: str,
        name_or_entity: str,
        phone: str,
        email: str,
        official_id: str,
        address: str,
        contact_person: Optional[str] = None,
    ) -> Customer:
        customer = Customer(
            dealer_id=identity.dealer_id,
            type=type,
            name_or_entity=name_or_entity,
            contact_person=contact_person,
            phone=phone,
            email=email,
            official_id=official_id,
            address=address,
        )
        with self.db.transaction() as conn:
            customer_id = self.registry.create_customer(customer, conn=conn)
            self.audit.record(
                identity,
                AuditAction.CREATE_CUSTOMER,
                f"Created customer: {name_or_entity}",
                dealer_id=identity.dealer_id,
                conn=conn,
            )
            created = self.registry.get_customer(customer_id, conn=conn)
        return created

    def update_customer(self, identity: Identity, customer_id: str, **changes) -> Customer:
        self.get_customer(identity, customer_id)
        with self.db.transaction() as conn:
            self.registry.update_customer(customer_id, conn=conn, **changes)
            updated = self.registry.get_customer(customer_id, conn=conn)
            self.audit.record(
                identity,
                AuditAction.UPDATE_CUSTOMER,
                f"Updated customer: {updated.name_or_entity}",
                dealer_id=updated.dealer_id,
                conn=conn,
            )
        return updated

"""
services/search.py -- Cross-table search and the aadhar lookup.

search() runs two independent substring queries (employees, customers), each
capped at registry.store.SEARCH_LIMIT rows, and concatenates them employees
first. For a dealer the tenant predicate is part of both SQL queries, so the
cap applies to the dealer's own rows rather than to a global page that is
then filtered down. The result list is filtered once more by dealer_id
before it leaves this module; a dealer never receives a foreign row even if
a query is changed later.

Admins search every tenant.
"""

from __future__ import annotations

from typing import Optional

from auth.models import Identity
from core.errors import ValidationError
from registry.models import AuditAction, Employee, SearchResult
from registry.store import RegistryStore
from services.audit import AuditService


class SearchService:
    def __init__(self, registry: RegistryStore, audit: AuditService) -> None:
        self.registry = registry
        self.audit = audit

    def search(self, term: str, identity: Identity) -> list[SearchResult]:
        term = term.strip()
        if not term:
            raise ValidationError("Search query is required")

        scope = None if identity.is_admin else identity.dealer_id
        if not identity.is_admin and scope is None:
            return []
        results = self.registry.search_employees(term, dealer_id=scope) + self.registry.search_customers(
            term, dealer_id=scope
        )
        if scope is not None:
            results = [r for r in results if r.dealer_id == scope]

        self.audit.record(
            identity, AuditAction.SEARCH, f"Performed universal search: {term}", dealer_id=identity.dealer_id
        )
        return results

    def check_aadhar(self, aadhar: str) -> Optional[Employee]:
        """Return the ACTIVE employee holding this aadhar, or None.

        Unscoped: matches employees of every dealer.
        """
        aadhar = aadhar.strip()
        if not aadhar:
            raise ValidationError("Aadhar number is required")
        employee = self.registry.get_employee_by_aadhar(aadhar)
        if employee is None or employee.status != "active":
            return None
        return employee

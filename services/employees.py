"""
services/employees.py -- Employee records for the calling dealer.

Ownership: every read or write of a single employee goes through
authorize(..., tenant_id=employee.dealer_id), the same gate the routes use,
so a dealer can never touch another dealer's staff by guessing an id.

Aadhar numbers are unique across all dealers. create_employee() checks first
for a readable error; the UNIQUE constraint catches the concurrent case.

Termination is one-way. update_employee() cannot change status, and
terminate_employee() refuses an employee who is already terminated.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.dependencies import authorize
from auth.models import ROLES, Identity
from core.database import Database
from core.errors import ConflictError, NotFoundError
from registry.models import AuditAction, Employee
from registry.store import RegistryStore
from services.audit import AuditService

_AADHAR_TAKEN = "Employee with this Aadhar number already exists"


class EmployeeService:
    def __init__(self, db: Database, registry: RegistryStore, audit: AuditService) -> None:
        self.db = db
        self.registry = registry
        self.audit = audit

    def list_employees(self, dealer_id: str, status: Optional[str] = None) -> list[Employee]:
        return self.registry.list_employees(dealer_id, status=status)

    def get_employee(self, identity: Identity, employee_id: str) -> Employee:
        employee = self.registry.get_employee(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        authorize(identity, ROLES, tenant_id=employee.dealer_id)
        return employee

    def create_employee(
        self,
        identity: Identity,
        *,
        first_name: str,
        last_name: str,
        phone: str,
        email: str,
        aadhar: str,
        position: str,
        hire_date: str,
    ) -> Employee:
        if self.registry.get_employee_by_aadhar(aadhar) is not None:
            raise ConflictError(_AADHAR_TAKEN)

        employee = Employee(
            dealer_id=identity.dealer_id,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            email=email,
            aadhar=aadhar,
            position=position,
            hire_date=hire_date,
        )
        try:
            with self.db.transaction() as conn:
                employee_id = self.registry.create_employee(employee, conn=conn)
                self.audit.record(
                    identity,
                    AuditAction.CREATE_EMPLOYEE,
                    f"Created employee: {employee.full_name}",
                    dealer_id=identity.dealer_id,
                    conn=conn,
                )
                created = self.registry.get_employee(employee_id, conn=conn)
        except IntegrityError as exc:
            raise ConflictError(_AADHAR_TAKEN) from exc
        return created

    def update_employee(self, identity: Identity, employee_id: str, **changes) -> Employee:
        """Partial update of name, phone, email, and position."""
        self.get_employee(identity, employee_id)
        with self.db.transaction() as conn:
            self.registry.update_employee(employee_id, conn=conn, **changes)
            updated = self.registry.get_employee(employee_id, conn=conn)
            self.audit.record(
                identity,
                AuditAction.UPDATE_EMPLOYEE,
                f"Updated employee: {updated.full_name}",
                dealer_id=updated.dealer_id,
                conn=conn,
            )
        return updated

    def terminate_employee(
        self, identity: Identity, employee_id: str, termination_date: str, termination_reason: str
    ) -> Employee:
        employee = self.get_employee(identity, employee_id)
        if employee.status == "terminated":
            raise ConflictError("Employee is already terminated")

        with self.db.transaction() as conn:
            if not self.registry.terminate_employee(employee_id, termination_date, termination_reason, conn=conn):
                # Terminated by a concurrent request since the read above.
                raise ConflictError("Employee is already terminated")
            self.audit.record(
                identity,
                AuditAction.TERMINATE_EMPLOYEE,
                f"Terminated employee: {employee.full_name}. Reason: {termination_reason}",
                dealer_id=employee.dealer_id,
                conn=conn,
            )
            terminated = self.registry.get_employee(employee_id, conn=conn)
        return terminated

"""
api/routes/v1/employees.py -- The calling dealer's employees.

Routes:
  GET   /api/v1/employees?status=active|terminated
  POST  /api/v1/employees                           -- 400 if the aadhar is already registered anywhere
  GET   /api/v1/employees/{employee_id}
  PATCH /api/v1/employees/{employee_id}             -- name, phone, email, position
  POST  /api/v1/employees/{employee_id}/terminate   -- one-way; 400 if already terminated

Dealer only. current_dealer_id resolves the tenant; the service enforces
ownership of single-employee routes (403 for another dealer's employee).
GET /employees/check-aadhar lives in search.py, which is registered first.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import (
    EmployeeCreate,
    EmployeeData,
    EmployeeList,
    EmployeePatch,
    EmployeeResponse,
    EmployeeStatusEnum,
    Envelope,
    TerminateRequest,
)
from auth.dependencies import current_dealer_id, require_dealer
from auth.models import Identity
from services import Services

router = APIRouter()


@router.get("/employees", response_model=Envelope[EmployeeList])
def list_employees(
    request: Request,
    status: Optional[EmployeeStatusEnum] = None,
    dealer_id: str = Depends(current_dealer_id),
) -> Envelope[EmployeeList]:
    services: Services = request.app.state.services
    employees = services.employees.list_employees(dealer_id, status=status.value if status else None)
    return Envelope[EmployeeList](
        data=EmployeeList(employees=[EmployeeResponse.model_validate(e) for e in employees])
    )


@router.post("/employees", response_model=Envelope[EmployeeData], status_code=201)
def create_employee(
    request: Request,
    body: EmployeeCreate,
    identity: Identity = Depends(require_dealer),
    dealer_id: str = Depends(current_dealer_id),
) -> Envelope[EmployeeData]:
    services: Services = request.app.state.services
    employee = services.employees.create_employee(identity, **body.model_dump(mode="json"))
    return Envelope[EmployeeData](
        data=EmployeeData(employee=EmployeeResponse.model_validate(employee)),
        message="Employee created successfully",
    )


@router.get("/employees/{employee_id}", response_model=Envelope[EmployeeData])
def get_employee(
    request: Request,
    employee_id: str,
    identity: Identity = Depends(require_dealer),
) -> Envelope[EmployeeData]:
    services: Services = request.app.state.services
    employee = services.employees.get_employee(identity, employee_id)
    return Envelope[EmployeeData](data=EmployeeData(employee=EmployeeResponse.model_validate(employee)))


@router.patch("/employees/{employee_id}", response_model=Envelope[EmployeeData])
def update_employee(
    request: Request,
    employee_id: str,
    body: EmployeePatch,
    identity: Identity = Depends(require_dealer),
) -> Envelope[EmployeeData]:
    services: Services = request.app.state.services
    employee = services.employees.update_employee(
        identity, employee_id, **body.model_dump(mode="json", exclude_none=True)
    )
    return Envelope[EmployeeData](
        data=EmployeeData(employee=EmployeeResponse.model_validate(employee)),
        message="Employee updated successfully",
    )


@router.post("/employees/{employee_id}/terminate", response_model=Envelope[EmployeeData])
def terminate_employee(
    request: Request,
    employee_id: str,
    body: TerminateRequest,
    identity: Identity = Depends(require_dealer),
) -> Envelope[EmployeeData]:
    services: Services = request.app.state.services
    employee = services.employees.terminate_employee(
        identity,
        employee_id,
        termination_date=body.termination_date.isoformat(),
        termination_reason=body.termination_reason,
    )
    return Envelope[EmployeeData](
        data=EmployeeData(employee=EmployeeResponse.model_validate(employee)),
        message="Employee terminated successfully",
    )

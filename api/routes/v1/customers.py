"""
api/routes/v1/customers.py -- The calling dealer's customers.

Routes:
  GET   /api/v1/customers?status=active|inactive&type=private|government
  POST  /api/v1/customers
  GET   /api/v1/customers/{customer_id}
  PATCH /api/v1/customers/{customer_id}   -- any field, incl. status

Dealer only; the service enforces ownership of single-customer routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    CustomerCreate,
    CustomerData,
    CustomerList,
    CustomerPatch,
    CustomerResponse,
    CustomerStatusEnum,
    CustomerTypeEnum,
    Envelope,
)
from auth.dependencies import current_dealer_id, require_dealer
from auth.models import Identity
from services import Services

router = APIRouter()


@router.get("/customers", response_model=Envelope[CustomerList])
def list_customers(
    request: Request,
    status: Optional[CustomerStatusEnum] = None,
    customer_type: Optional[CustomerTypeEnum] = Query(default=None, alias="type"),
    dealer_id: str = Depends(current_dealer_id),
) -> Envelope[CustomerList]:
    services: Services = request.app.state.services
    customers = services.customers.list_customers(
        dealer_id,
        status=status.value if status else None,
        customer_type=customer_type.value if customer_type else None,
    )
    return Envelope[CustomerList](
        data=CustomerList(customers=[CustomerResponse.model_validate(c) for c in customers])
    )


@router.post("/customers", response_model=Envelope[CustomerData], status_code=201)
def create_customer(
    request: Request,
    body: CustomerCreate,
    identity: Identity = Depends(require_dealer),
    dealer_id: str = Depends(current_dealer_id),
) -> Envelope[CustomerData]:
    services: Services = request.app.state.services
    customer = services.customers.create_customer(identity, **body.model_dump(mode="json"))
    return Envelope[CustomerData](
        data=CustomerData(customer=CustomerResponse.model_validate(customer)),
        message="Customer created successfully",
    )


@router.get("/customers/{customer_id}", response_model=Envelope[CustomerData])
def get_customer(
    request: Request,
    customer_id: str,
    identity: Identity = Depends(require_dealer),
) -> Envelope[CustomerData]:
    services: Services = request.app.state.services
    customer = services.customers.get_customer(identity, customer_id)
    return Envelope[CustomerData](data=CustomerData(customer=CustomerResponse.model_validate(customer)))


@router.patch("/customers/{customer_id}", response_model=Envelope[CustomerData])
def update_customer(
    request: Request,
    customer_id: str,
    body: CustomerPatch,
    identity: Identity = Depends(require_dealer),
) -> Envelope[CustomerData]:
    services: Services = request.app.state.services
    customer = services.customers.update_customer(
        identity, customer_id, **body.model_dump(mode="json", exclude_none=True)
    )
    return Envelope[CustomerData](
        data=CustomerData(customer=CustomerResponse.model_validate(customer)),
        message="Customer updated successfully",
    )

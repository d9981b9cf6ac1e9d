"""
api/routes/v1/search.py -- Universal search and the aadhar lookup (any authenticated role).

Routes:
  GET /api/v1/search?q=term                       -- employees + customers, tenant-filtered for dealers
  GET /api/v1/check-aadhar?aadhar=N               -- active employee holding N, or data: null
  GET /api/v1/employees/check-aadhar?aadhar=N     -- same handler

This router must be included before employees.py so the literal
/employees/check-aadhar path wins over /employees/{employee_id}.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from api.models import AadharMatch, Envelope, SearchData, SearchResultResponse
from auth.dependencies import get_identity
from auth.models import Identity
from services import Services

router = APIRouter()


@router.get("/search", response_model=Envelope[SearchData])
def search(
    request: Request,
    q: str = Query(min_length=1, max_length=100),
    identity: Identity = Depends(get_identity),
) -> Envelope[SearchData]:
    services: Services = request.app.state.services
    results = services.search.search(q, identity)
    return Envelope[SearchData](data=SearchData(results=[SearchResultResponse.model_validate(r) for r in results]))


@router.get("/check-aadhar", response_model=Envelope[AadharMatch])
@router.get("/employees/check-aadhar", response_model=Envelope[AadharMatch])
def check_aadhar(
    request: Request,
    aadhar: str = Query(min_length=1, max_length=12),
    identity: Identity = Depends(get_identity),
) -> Envelope[AadharMatch]:
    services: Services = request.app.state.services
    employee = services.search.check_aadhar(aadhar)
    if employee is None:
        return Envelope[AadharMatch](data=None)
    return Envelope[AadharMatch](
        data=AadharMatch(
            id=employee.id,
            name=employee.full_name,
            email=employee.email,
            phone=employee.phone,
            status=employee.status,
            dealer_id=employee.dealer_id,
            aadhar=employee.aadhar,
            position=employee.position,
            hire_date=employee.hire_date,
        )
    )

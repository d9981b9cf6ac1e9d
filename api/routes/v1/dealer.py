"""
api/routes/v1/dealer.py -- The calling dealer's own profile and audit trail.

Routes:
  GET /api/v1/dealer/profile             -- own dealer profile
  GET /api/v1/dealer/audit-logs?limit=N  -- own tenant's audit entries, newest first
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from api.models import AuditLogList, AuditLogResponse, DealerData, DealerResponse, Envelope
from auth.dependencies import current_dealer_id
from services import Services
from services.audit import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter()


@router.get("/dealer/profile", response_model=Envelope[DealerData])
def get_profile(request: Request, dealer_id: str = Depends(current_dealer_id)) -> Envelope[DealerData]:
    services: Services = request.app.state.services
    dealer = services.dealers.get_own_profile(dealer_id)
    return Envelope[DealerData](data=DealerData(dealer=DealerResponse.model_validate(dealer)))


@router.get("/dealer/audit-logs", response_model=Envelope[AuditLogList])
def list_audit_logs(
    request: Request,
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    dealer_id: str = Depends(current_dealer_id),
) -> Envelope[AuditLogList]:
    services: Services = request.app.state.services
    logs = services.audit.list_for_dealer(dealer_id, limit)
    return Envelope[AuditLogList](data=AuditLogList(logs=[AuditLogResponse.model_validate(e) for e in logs]))

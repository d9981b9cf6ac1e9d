"""
api/routes/v1/admin.py -- Admin-only views that are not about a single dealer.

Routes:
  GET /api/v1/admin/audit-logs?limit=N  -- newest first across all tenants (default 100, max 1000)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from api.models import AuditLogList, AuditLogResponse, Envelope
from auth.dependencies import require_admin
from auth.models import Identity
from services import Services
from services.audit import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter()


@router.get("/admin/audit-logs", response_model=Envelope[AuditLogList])
def list_audit_logs(
    request: Request,
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    identity: Identity = Depends(require_admin),
) -> Envelope[AuditLogList]:
    services: Services = request.app.state.services
    logs = services.audit.list_all(limit)
    return Envelope[AuditLogList](data=AuditLogList(logs=[AuditLogResponse.model_validate(e) for e in logs]))

"""
api/routes/v1/dealers.py -- Dealer management (admin only).

Routes:
  GET    /api/v1/dealers                 -- all dealers with owning-user details
  POST   /api/v1/dealers                 -- create login + profile; returns tempPassword once
  POST   /api/v1/dealers/reset-password  -- new temporary password for a dealer login
  GET    /api/v1/dealers/{dealer_id}
  PATCH  /api/v1/dealers/{dealer_id}     -- partial update, incl. active <-> suspended
  DELETE /api/v1/dealers/{dealer_id}     -- removes the dealer, its records, and its login

Every route depends on require_admin: 401 without a valid token, 403 for dealers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import (
    DealerCreate,
    DealerCreatedData,
    DealerData,
    DealerList,
    DealerPatch,
    DealerResponse,
    Envelope,
    ResetPasswordRequest,
    TempPassData,
)
from auth.dependencies import require_admin
from auth.models import Identity
from services import Services

router = APIRouter()


@router.get("/dealers", response_model=Envelope[DealerList])
def list_dealers(request: Request, identity: Identity = Depends(require_admin)) -> Envelope[DealerList]:
    services: Services = request.app.state.services
    dealers = services.dealers.list_dealers()
    return Envelope[DealerList](data=DealerList(dealers=[DealerResponse.model_validate(d) for d in dealers]))


@router.post("/dealers", response_model=Envelope[DealerCreatedData], status_code=201)
def create_dealer(
    request: Request,
    response: Response,
    body: DealerCreate,
    identity: Identity = Depends(require_admin),
) -> Envelope[DealerCreatedData]:
    services: Services = request.app.state.services
    dealer, temp_password = services.dealers.create_dealer(identity, **body.model_dump())
    response.headers["Cache-Control"] = "no-store"
    return Envelope[DealerCreatedData](
        data=DealerCreatedData(dealer=DealerResponse.model_validate(dealer), temp_password=temp_password),
        message="Dealer created successfully",
    )


@router.post("/dealers/reset-password", response_model=Envelope[TempPassData])
def reset_dealer_password(
    request: Request,
    response: Response,
    body: ResetPasswordRequest,
    identity: Identity = Depends(require_admin),
) -> Envelope[TempPassData]:
    services: Services = request.app.state.services
    temp_password = services.dealers.reset_dealer_password(identity, body.user_id)
    response.headers["Cache-Control"] = "no-store"
    return Envelope[TempPassData](
        data=TempPassData(temp_pass=temp_password),
        message="Password reset successfully",
    )


@router.get("/dealers/{dealer_id}", response_model=Envelope[DealerData])
def get_dealer(request: Request, dealer_id: str, identity: Identity = Depends(require_admin)) -> Envelope[DealerData]:
    services: Services = request.app.state.services
    dealer = services.dealers.get_dealer(dealer_id)
    return Envelope[DealerData](data=DealerData(dealer=DealerResponse.model_validate(dealer)))


@router.patch("/dealers/{dealer_id}", response_model=Envelope[DealerData])
def update_dealer(
    request: Request,
    dealer_id: str,
    body: DealerPatch,
    identity: Identity = Depends(require_admin),
) -> Envelope[DealerData]:
    services: Services = request.app.state.services
    dealer = services.dealers.update_dealer(identity, dealer_id, **body.model_dump(mode="json", exclude_none=True))
    return Envelope[DealerData](
        data=DealerData(dealer=DealerResponse.model_validate(dealer)),
        message="Dealer updated successfully",
    )


@router.delete("/dealers/{dealer_id}", response_model=Envelope[None])
def delete_dealer(request: Request, dealer_id: str, identity: Identity = Depends(require_admin)) -> Envelope[None]:
    services: Services = request.app.state.services
    services.dealers.delete_dealer(identity, dealer_id)
    return Envelope[None](message="Dealer deleted successfully")

"""
api/routes/v1/users.py -- Self-service account endpoints (any authenticated role).

Routes:
  POST  /api/v1/users/change-password  -- verify current password, set a new one
  PATCH /api/v1/users/profile          -- change name and/or username
  PUT   /api/v1/auth/profile           -- same handler, kept for older clients
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import ChangePasswordRequest, Envelope, ProfileUpdate, UserData, UserResponse
from auth.dependencies import get_identity
from auth.models import Identity
from services import Services

router = APIRouter()


@router.post("/users/change-password", response_model=Envelope[UserData])
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_identity),
) -> Envelope[UserData]:
    services: Services = request.app.state.services
    user = services.accounts.change_password(identity, body.current_password, body.new_password)
    return Envelope[UserData](
        data=UserData(user=UserResponse.model_validate(user)),
        message="Password changed successfully",
    )


@router.patch("/users/profile", response_model=Envelope[UserData])
@router.put("/auth/profile", response_model=Envelope[UserData])
def update_profile(
    request: Request,
    body: ProfileUpdate,
    identity: Identity = Depends(get_identity),
) -> Envelope[UserData]:
    services: Services = request.app.state.services
    user = services.accounts.update_profile(identity, name=body.name, username=body.username)
    return Envelope[UserData](
        data=UserData(user=UserResponse.model_validate(user)),
        message="Profile updated successfully",
    )

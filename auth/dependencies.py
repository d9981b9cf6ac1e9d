"""
auth/dependencies.py -- Authorization gate and FastAPI Depends() helpers.

authorize() is the gate itself: a pure decision over (identity, required
roles, optional target tenant). It raises and never writes anything -- audit
entries are the domain services' job, after the operation succeeds.

  no identity                                  -> AuthError      (401)
  role not in required roles                   -> ForbiddenError (403)
  tenant-scoped, caller is a dealer of another -> ForbiddenError (403)
  admin                                        -> bypasses tenant checks

The Depends() helpers wrap it for routes:
  try_get_identity()  soft variant, returns None on any failure
  get_identity()      401 if unauthenticated
  require_roles(...)  dependency factory for a role set
  require_admin / require_dealer   the two common role sets

Token transport is Authorization: Bearer <token> only. A token that fails
verification is handled exactly like a missing header.

Layer rule: no imports from api/, registry/, or services/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fastapi import Depends, Request

from auth.models import ROLE_ADMIN, ROLE_DEALER, Identity
from auth.tokens import decode_access_token
from core.errors import AuthError, ForbiddenError


def authorize(identity: Identity | None, roles: Iterable[str], tenant_id: str | None = None) -> Identity:
    """Allow or reject a caller for an operation. Returns the identity on success."""
    if identity is None:
        raise AuthError("Authentication required.")
    if identity.role not in set(roles):
        raise ForbiddenError("Forbidden: insufficient permissions.")
    if tenant_id is not None and not identity.is_admin and identity.dealer_id != tenant_id:
        raise ForbiddenError("Forbidden: cannot access another dealer's data.")
    return identity


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None


def try_get_identity(request: Request) -> Identity | None:
    """Authenticate the request via its bearer token. Never raises.

    After the signature check the account is re-read so a deleted dealer's
    still-unexpired token stops working, and role/dealer_id reflect the
    current row rather than what was true at login.
    """
    token = _bearer_token(request)
    if token is None:
        return None
    claims = decode_access_token(token)
    if claims is None:
        return None
    user = request.app.state.user_store.get_by_id(claims.user_id)
    if user is None:
        return None
    return Identity.for_user(user)


def get_identity(request: Request) -> Identity:
    """Require authentication. Raises AuthError (401) if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_identity)): ...
    """
    return authorize(try_get_identity(request), (ROLE_ADMIN, ROLE_DEALER))


def require_roles(*roles: str) -> Callable[..., Identity]:
    """Build a dependency that admits only the given roles (401 / 403 otherwise)."""

    def dependency(request: Request) -> Identity:
        return authorize(try_get_identity(request), roles)

    return dependency


require_admin = require_roles(ROLE_ADMIN)
require_dealer = require_roles(ROLE_DEALER)


def current_dealer_id(identity: Identity = Depends(require_dealer)) -> str:
    """Resolve the caller's tenant id for dealer-only routes.

    A dealer account without a dealer profile cannot own anything, so it is
    refused rather than allowed to act on tenant None.
    """
    if identity.dealer_id is None:
        raise ForbiddenError("Dealer profile not found for this account.")
    return identity.dealer_id

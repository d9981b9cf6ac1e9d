"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in registry/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/, registry/, or services/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_DEALER = "dealer"
ROLES = (ROLE_ADMIN, ROLE_DEALER)


@dataclass
class User:
    """An account that can log in.

    password_hash never leaves the service boundary: API responses are built
    from explicit response models that do not carry it.

    dealer_id is None for admins, and for a dealer account only during the
    instant between creating the user row and creating its dealer profile
    (both happen in one transaction, so no other reader ever sees it unset).

    temp_pass is True after an admin-created account or a password reset. The
    frontend forces a password change when it is set; the server does not.
    """

    role: str  # "admin" | "dealer"
    name: str
    username: str
    email: str
    password_hash: str
    id: str | None = None
    temp_pass: bool = False
    dealer_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    last_login: str | None = None


@dataclass(frozen=True)
class Identity:
    """The verified caller, as decoded from a bearer token.

    Carries only what the authorization gate needs: no database lookup is
    required to decide role or tenant scope.
    """

    user_id: str
    role: str
    email: str
    dealer_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def for_user(cls, user: User) -> "Identity":
        return cls(user_id=user.id, role=user.role, email=user.email, dealer_id=user.dealer_id)

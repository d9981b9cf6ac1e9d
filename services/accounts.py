"""
services/accounts.py -- Login, token refresh, and self-service account operations.

Every operation that changes state also writes its audit entry in the same
transaction. Failures surface as core.errors exceptions; the API layer maps
them to status codes.

request_password_reset() is the exception: it runs as a FastAPI background
task after the response has been sent, so it cannot raise to anyone. It logs
its own failures instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import ROLE_ADMIN, Identity, User
from auth.store import UserStore
from auth.tokens import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_temp_password,
    hash_password,
    verify_password,
)
from core.database import Database
from core.errors import AuthError, ConflictError, NotFoundError
from registry.models import AuditAction
from services.audit import AuditService

logger = logging.getLogger("oilunion.accounts")


@dataclass
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


class AccountService:
    def __init__(self, db: Database, users: UserStore, audit: AuditService) -> None:
        self.db = db
        self.users = users
        self.audit = audit

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, role: str) -> LoginResult:
        """Verify credentials for one role and issue an access/refresh token pair.

        Unknown email, wrong role, and wrong password all raise the same
        AuthError so the response does not reveal which one it was.
        """
        user = authenticate_user(self.users, email, password, role)
        if user is None:
            raise AuthError("Invalid credentials")

        if role == ROLE_ADMIN:
            details = "Admin logged in"
        else:
            details = f"Dealer logged in: {user.name}"
        with self.db.transaction() as conn:
            self.users.update_last_login(user.id, conn=conn)
            self.audit.record(user, AuditAction.LOGIN, details, dealer_id=user.dealer_id, conn=conn)
            user = self.users.get_by_id(user.id, conn=conn)

        identity = Identity.for_user(user)
        logger.info("Login succeeded for %s (%s)", user.email, role)
        return LoginResult(
            user=user,
            access_token=create_access_token(identity),
            refresh_token=create_refresh_token(identity),
        )

    def refresh(self, refresh_token: str) -> str:
        """Exchange a valid refresh token for a new access token.

        Claims are rebuilt from the current user row, so a deleted account
        cannot refresh and a changed dealer link takes effect.
        """
        claims = decode_refresh_token(refresh_token)
        if claims is None:
            raise AuthError("Invalid or expired refresh token")
        user = self.users.get_by_id(claims.user_id)
        if user is None:
            raise AuthError("Invalid or expired refresh token")
        return create_access_token(Identity.for_user(user))

    def logout(self, identity: Identity) -> None:
        # Tokens are stateless; the client discards them. Only the event is kept.
        self.audit.record(identity, AuditAction.LOGOUT, "User logged out")

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, identity: Identity) -> User:
        user = self.users.get_by_id(identity.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, identity: Identity, name: Optional[str] = None, username: Optional[str] = None) -> User:
        """Change display name and/or username. Usernames stay unique."""
        user = self.get_profile(identity)

        if username and username != user.username:
            existing = self.users.get_by_username(username)
            if existing is not None and existing.id != user.id:
                raise ConflictError("Username already taken")

        try:
            with self.db.transaction() as conn:
                self.users.update_user(user.id, conn=conn, name=name, username=username)
                self.audit.record(
                    user, AuditAction.UPDATE_PROFILE, "User updated their profile", dealer_id=user.dealer_id, conn=conn
                )
                updated = self.users.get_by_id(user.id, conn=conn)
        except IntegrityError as exc:
            raise ConflictError("Username already taken") from exc
        return updated

    def change_password(self, identity: Identity, current_password: str, new_password: str) -> User:
        """Replace the caller's password after re-verifying the current one.

        Clears temp_pass, so a dealer who logged in with an admin-issued
        temporary password is no longer asked to change it.
        """
        user = self.get_profile(identity)
        if not verify_password(current_password, user.password_hash):
            raise AuthError("Current password is incorrect")

        with self.db.transaction() as conn:
            self.users.set_password(user.id, hash_password(new_password), temp=False, conn=conn)
            self.audit.record(
                user, AuditAction.CHANGE_PASSWORD, "User changed their password", dealer_id=user.dealer_id, conn=conn
            )
            updated = self.users.get_by_id(user.id, conn=conn)
        return updated

    def request_password_reset(self, email: str) -> None:
        """Issue a temporary password for the account with this email, if any.

        Runs after the response is sent. The route answers identically whether
        or not the email exists; nothing here may change that, so every
        failure is logged and dropped.

        There is no mail transport: the temporary password is written to the
        log for an operator to pass on.
        """
        try:
            user = self.users.get_by_email(email)
            if user is None:
                return
            temp_password = generate_temp_password()
            with self.db.transaction() as conn:
                self.users.set_password(user.id, hash_password(temp_password), temp=True, conn=conn)
                self.audit.record(
                    user, AuditAction.PASSWORD_RESET, "Password reset requested", dealer_id=user.dealer_id, conn=conn
                )
            logger.info("Temporary password for %s: %s", user.email, temp_password)
        except Exception:
            logger.exception("Password reset for %s failed", email)

"""
services/dealers.py -- Dealer (tenant) lifecycle, admin side.

A dealer is two rows: a users row with role=dealer and a dealers row that
points back at it. create_dealer() and delete_dealer() touch both plus the
audit log, always inside one Database.transaction(), so a failure part-way
leaves neither a login without a profile nor a profile without a login.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import ROLE_DEALER, Identity, User
from auth.store import UserStore
from auth.tokens import generate_temp_password, hash_password
from core.database import Database
from core.errors import ConflictError, NotFoundError
from registry.models import AuditAction, Dealer
from registry.store import RegistryStore
from services.audit import AuditService

logger = logging.getLogger("oilunion.dealers")


class DealerService:
    def __init__(self, db: Database, users: UserStore, registry: RegistryStore, audit: AuditService) -> None:
        self.db = db
        self.users = users
        self.registry = registry
        self.audit = audit

    def list_dealers(self) -> list[Dealer]:
        return self.registry.list_dealers()

    def get_dealer(self, dealer_id: str) -> Dealer:
        dealer = self.registry.get_dealer(dealer_id)
        if dealer is None:
            raise NotFoundError("Dealer not found")
        return dealer

    def get_own_profile(self, dealer_id: str) -> Dealer:
        """The calling dealer's own profile (GET /dealer/profile)."""
        dealer = self.registry.get_dealer(dealer_id)
        if dealer is None:
            raise NotFoundError("Dealer profile not found")
        return dealer

    def create_dealer(
        self,
        actor: Identity,
        *,
        name: str,
        username: str,
        email: str,
        company_name: str,
        primary_contact_name: str,
        primary_contact_phone: str,
        primary_contact_email: str,
        address: str,
    ) -> tuple[Dealer, str]:
        """Create a dealer login and profile. Returns (dealer, temporary password).

        This is the only place the temporary password is handed back; it is
        not stored anywhere in plaintext.
        """
        if self.users.get_by_email(email) is not None:
            raise ConflictError("Email already exists")
        if self.users.get_by_username(username) is not None:
            raise ConflictError("Username already exists")

        temp_password = generate_temp_password()
        account = User(
            role=ROLE_DEALER,
            name=name,
            username=username,
            email=email,
            password_hash=hash_password(temp_password),
            temp_pass=True,
        )
        try:
            with self.db.transaction() as conn:
                user_id = self.users.create_user(account, conn=conn)
                dealer_id = self.registry.create_dealer(
                    Dealer(
                        user_id=user_id,
                        company_name=company_name,
                        primary_contact_name=primary_contact_name,
                        primary_contact_phone=primary_contact_phone,
                        primary_contact_email=primary_contact_email,
                        address=address,
                    ),
                    conn=conn,
                )
                self.users.update_user(user_id, conn=conn, dealer_id=dealer_id)
                self.audit.record(
                    actor, AuditAction.CREATE_DEALER, f"Created dealer: {company_name}", dealer_id=dealer_id, conn=conn
                )
                dealer = self.registry.get_dealer(dealer_id, conn=conn)
        except IntegrityError as exc:
            # Lost a race with another create for the same email/username.
            raise ConflictError("Email or username already exists") from exc

        logger.info("Dealer %s created (%s) by %s", dealer.id, company_name, actor.email)
        return dealer, temp_password

    def update_dealer(self, actor: Identity, dealer_id: str, **changes) -> Dealer:
        """Partial update; status moves freely between active and suspended."""
        self.get_dealer(dealer_id)
        with self.db.transaction() as conn:
            self.registry.update_dealer(dealer_id, conn=conn, **changes)
            dealer = self.registry.get_dealer(dealer_id, conn=conn)
            self.audit.record(
                actor, AuditAction.UPDATE_DEALER, f"Updated dealer: {dealer.company_name}", dealer_id=dealer_id, conn=conn
            )
        return dealer

    def delete_dealer(self, actor: Identity, dealer_id: str) -> None:
        """Remove the dealer, its employees and customers, and its login."""
        dealer = self.get_dealer(dealer_id)
        with self.db.transaction() as conn:
            self.registry.delete_dealer(dealer_id, conn=conn)
            self.users.delete_user(dealer.user_id, conn=conn)
            self.audit.record(
                actor, AuditAction.DELETE_DEALER, f"Deleted dealer: {dealer.company_name}", dealer_id=dealer_id, conn=conn
            )
        logger.info("Dealer %s deleted by %s", dealer_id, actor.email)

    def reset_dealer_password(self, actor: Identity, user_id: str) -> str:
        """Give a dealer login a fresh temporary password and return it.

        user_id must name a dealer account; admin accounts are not reachable
        through this path.
        """
        user = self.users.get_by_id(user_id)
        if user is None or user.role != ROLE_DEALER:
            raise NotFoundError("Dealer not found")

        temp_password = generate_temp_password()
        with self.db.transaction() as conn:
            self.users.set_password(user.id, hash_password(temp_password), temp=True, conn=conn)
            self.audit.record(
                actor,
                AuditAction.RESET_PASSWORD,
                f"Admin reset password for dealer: {user.name}",
                dealer_id=user.dealer_id,
                conn=conn,
            )
        return temp_password

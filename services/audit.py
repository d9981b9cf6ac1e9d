"""
services/audit.py -- Append-only audit trail.

Every mutating service calls record() after its own writes, passing the same
transaction connection, so the entry commits or rolls back together with the
change it describes. Nothing here updates an existing entry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from sqlalchemy.engine import Connection

from auth.models import Identity, User
from registry.models import AuditAction, AuditLogEntry
from registry.store import RegistryStore

logger = logging.getLogger("oilunion.audit")

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


def clamp_limit(limit: Optional[int]) -> int:
    """Coerce a caller-supplied page size into 1..MAX_LIMIT (missing or < 1 -> DEFAULT_LIMIT)."""
    if not limit or limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


class AuditService:
    def __init__(self, registry: RegistryStore) -> None:
        self.registry = registry

    def record(
        self,
        actor: Union[Identity, User],
        action: AuditAction,
        details: str,
        dealer_id: Optional[str] = None,
        conn: Optional[Connection] = None,
    ) -> int:
        """Append one entry for a completed operation and return its id.

        A full User carries a display name; a bare Identity only has the
        email from the token, which is recorded instead.
        """
        if isinstance(actor, User):
            user_id, user_name = actor.id, actor.name
        else:
            user_id, user_name = actor.user_id, actor.email
        entry = AuditLogEntry(
            who_user_id=user_id,
            who_user_name=user_name,
            action_type=action.value,
            details=details,
            dealer_id=dealer_id,
        )
        return self.registry.insert_audit(entry, conn=conn)

    def list_all(self, limit: Optional[int] = DEFAULT_LIMIT) -> list[AuditLogEntry]:
        return self.registry.list_audit(limit=clamp_limit(limit))

    def list_for_dealer(self, dealer_id: str, limit: Optional[int] = DEFAULT_LIMIT) -> list[AuditLogEntry]:
        return self.registry.list_audit(limit=clamp_limit(limit), dealer_id=dealer_id)

    def prune(self, older_than_days: int) -> int:
        """Delete entries older than the given age. 0 or less keeps everything."""
        if older_than_days <= 0:
            return 0
        cutoff = (datetime.now(timezone.utc) - timedelta(days=older_than_days)).isoformat(timespec="microseconds")
        removed = self.registry.prune_audit(cutoff)
        logger.info("Pruned %d audit entries older than %d days", removed, older_than_days)
        return removed

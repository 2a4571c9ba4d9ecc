# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit trail for privileged academic period transitions.

Entries are added to the caller's session and committed together with the
transition they describe, so a transition is never persisted without its
audit row.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.tenancy import TenantScope
from src.infrastructure.database.models import AuditLog
from src.infrastructure.database.models.base import new_id
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class AuditService:
    """Append audit log rows within the current transaction.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def record(
        self,
        scope: TenantScope,
        action: str,
        entity_type: str,
        entity_id: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        note: str | None = None,
    ) -> AuditLog:
        """Add an audit entry for an action performed in the given scope.

        Args:
            scope: Tenant scope of the action; supplies institution and actor.
            action: Action code, e.g. "grading_window.reopen".
            entity_type: Affected entity type.
            entity_id: Affected entity identifier.
            before: Relevant state before the action.
            after: Relevant state after the action.
            note: Free-text justification or reason.

        Returns:
            The pending AuditLog row.
        """
        entry = AuditLog(
            id=new_id(),
            institution_id=scope.institution_id,
            actor_id=scope.actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            before=before,
            after=after,
            note=note,
            created_at=utc_now(),
        )
        self.db.add(entry)

        logger.info(
            "Audit %s on %s %s by %s (institution %s)",
            action,
            entity_type,
            entity_id,
            scope.actor_id,
            scope.institution_id,
        )
        return entry

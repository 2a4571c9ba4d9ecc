# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic block gate.

The eligibility engine asks a gate whether a student is blocked
(financial, disciplinary or administrative holds). Any object with a
matching check() coroutine can be injected; DatabaseAcademicBlockGate is
the default implementation backed by the academic_blocks table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.tenancy import TenantScope
from src.infrastructure.database.models import AcademicBlock
from src.models.enums import AcademicType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockDecision:
    """Answer of an academic block check.

    Attributes:
        blocked: Whether the student is blocked.
        reason: Human readable reason when blocked.
    """

    blocked: bool
    reason: str | None = None


NOT_BLOCKED = BlockDecision(blocked=False)


@runtime_checkable
class AcademicBlockGate(Protocol):
    """Capability answering "is this student blocked"."""

    async def check(
        self,
        student_id: str,
        institution_id: str,
        academic_type: AcademicType,
        subject_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> BlockDecision:
        ...


class DatabaseAcademicBlockGate:
    """Block gate reading active rows of the academic_blocks table.

    A row without subject or year applies to every subject or year.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def check(
        self,
        student_id: str,
        institution_id: str,
        academic_type: AcademicType,
        subject_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> BlockDecision:
        """Return the oldest active block matching the student.

        Args:
            student_id: Student to check.
            institution_id: Institution the check is scoped to.
            academic_type: Institution variant; blocks apply to both.
            subject_id: Restrict to blocks for this subject or global ones.
            academic_year_id: Restrict to blocks for this year or global ones.

        Returns:
            BlockDecision with the block reason, or NOT_BLOCKED.
        """
        scope = TenantScope(institution_id=str(institution_id))
        query = scope.select(AcademicBlock).where(
            AcademicBlock.student_id == str(student_id),
            AcademicBlock.is_active.is_(True),
        )
        if subject_id is not None:
            query = query.where(
                or_(AcademicBlock.subject_id.is_(None), AcademicBlock.subject_id == str(subject_id))
            )
        if academic_year_id is not None:
            query = query.where(
                or_(
                    AcademicBlock.academic_year_id.is_(None),
                    AcademicBlock.academic_year_id == str(academic_year_id),
                )
            )
        query = query.order_by(AcademicBlock.created_at, AcademicBlock.id)

        result = await self.db.execute(query)
        block = result.scalars().first()
        if block is None:
            return NOT_BLOCKED

        logger.info(
            "Student %s blocked (%s) in institution %s",
            student_id,
            block.block_type,
            institution_id,
        )
        return BlockDecision(blocked=True, reason=block.reason)

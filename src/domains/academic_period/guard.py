# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grading window guard.

Consulted before every grade write. Resolution order for a period:

1. The GradingWindow of (institution, year, period type, number):
   writes allowed only while it is OPEN.
2. Otherwise the ClosureRecord of the period (and of FULL_YEAR):
   writes allowed only while it is OPEN or REOPENED.
3. Otherwise the default policy: the institution's override when set,
   else the configured default (PERMISSIVE unless changed).

When called with lock=True the window row is read FOR UPDATE, so a
concurrent close waits for the grade write's transaction to finish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import AcademicPolicySettings
from src.core.exceptions import NotFoundError, PolicyViolationError
from src.domains.academic_period.rules import period_tag_for, validate_period
from src.domains.academic_period.service import WRITABLE_CLOSURE_STATES, effective_window_status
from src.domains.tenancy import TenantScope, get_institution, resolve_academic_type
from src.infrastructure.database.models import AcademicYear, ClosureRecord, GradingWindow
from src.models.enums import GradingWindowPolicy, GradingWindowStatus, PeriodTag, TermType

logger = logging.getLogger(__name__)


class GradingWindowClosedError(PolicyViolationError):
    """Raised when a grade write targets a period that does not accept writes."""

    pass


@dataclass(frozen=True)
class GradeWindowDecision:
    """Outcome of a grading window check.

    Attributes:
        allowed: Whether grade writes are accepted.
        source: What decided: "window", "closure" or "policy".
        status: Status of the deciding record, or the policy name.
    """

    allowed: bool
    source: str
    status: str


class GradingWindowGuard:
    """Policy check for grade writes.

    Attributes:
        db: Async database session shared with the grade write.
        policy: Academic policy settings.
    """

    def __init__(self, db: AsyncSession, policy: AcademicPolicySettings | None = None) -> None:
        self.db = db
        self.policy = policy or AcademicPolicySettings()

    async def evaluate(
        self,
        scope: TenantScope,
        academic_year_id: UUID | str,
        period_type: TermType | str,
        period_number: int,
        lock: bool = False,
    ) -> GradeWindowDecision:
        """Decide whether grade writes are accepted for a period.

        Args:
            scope: Resolved tenant scope.
            academic_year_id: Academic year of the grade.
            period_type: SEMESTER or TRIMESTER.
            period_number: Period number within the year.
            lock: Lock the deciding window row until the transaction ends.

        Returns:
            The decision and what produced it.

        Raises:
            ValidationError: If the period does not exist for the institution type.
            NotFoundError: If the academic year is not in the institution.
        """
        period_type = TermType(period_type)
        validate_period(await resolve_academic_type(self.db, scope), period_type, period_number)
        query = scope.select(GradingWindow).where(
            GradingWindow.academic_year_id == str(academic_year_id),
            GradingWindow.period_type == period_type.value,
            GradingWindow.period_number == period_number,
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        window = result.scalar_one_or_none()

        if window is not None:
            if self.policy.enforce_window_end_date:
                status = effective_window_status(window)
            else:
                status = GradingWindowStatus(window.status)
            return GradeWindowDecision(
                allowed=status == GradingWindowStatus.OPEN,
                source="window",
                status=status.value,
            )

        year_result = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.id == str(academic_year_id))
        )
        academic_year = year_result.scalar_one_or_none()
        if academic_year is None:
            raise NotFoundError(f"Academic year {academic_year_id} not found")

        tag = period_tag_for(period_type, period_number)
        closure_query = scope.select(ClosureRecord).where(
            ClosureRecord.academic_year == academic_year.year_number,
            ClosureRecord.period_tag.in_([tag.value, PeriodTag.FULL_YEAR.value]),
        )
        if lock:
            closure_query = closure_query.with_for_update()
        closure_result = await self.db.execute(closure_query)
        records = {r.period_tag: r for r in closure_result.scalars().all()}

        full_year = records.get(PeriodTag.FULL_YEAR.value)
        if full_year is not None and full_year.status not in WRITABLE_CLOSURE_STATES:
            return GradeWindowDecision(allowed=False, source="closure", status=full_year.status)

        record = records.get(tag.value)
        if record is not None:
            return GradeWindowDecision(
                allowed=record.status in WRITABLE_CLOSURE_STATES,
                source="closure",
                status=record.status,
            )

        policy = await self._default_policy(scope)
        return GradeWindowDecision(
            allowed=policy == GradingWindowPolicy.PERMISSIVE,
            source="policy",
            status=policy.value,
        )

    async def is_grade_window_open(
        self,
        scope: TenantScope,
        academic_year_id: UUID | str,
        period_type: TermType | str,
        period_number: int,
    ) -> bool:
        """Check whether grade writes are accepted for a period right now."""
        decision = await self.evaluate(scope, academic_year_id, period_type, period_number)
        return decision.allowed

    async def ensure_grade_write_allowed(
        self,
        scope: TenantScope,
        academic_year_id: UUID | str,
        period_type: TermType | str,
        period_number: int,
        lock: bool = True,
    ) -> GradeWindowDecision:
        """Raise unless grade writes are accepted for a period.

        Call inside the transaction that performs the write.

        Raises:
            GradingWindowClosedError: If the period does not accept writes.
            NotFoundError: If the academic year is not in the institution.
        """
        decision = await self.evaluate(
            scope, academic_year_id, period_type, period_number, lock=lock
        )
        if not decision.allowed:
            logger.info(
                "Grade write rejected for %s %s (year %s): %s is %s",
                TermType(period_type).value,
                period_number,
                academic_year_id,
                decision.source,
                decision.status,
            )
            raise GradingWindowClosedError(
                "Grade entry is closed for this period",
                {"source": decision.source, "status": decision.status},
            )
        return decision

    async def _default_policy(self, scope: TenantScope) -> GradingWindowPolicy:
        institution = await get_institution(self.db, scope)
        if institution.grading_window_policy:
            return GradingWindowPolicy(institution.grading_window_policy)
        return GradingWindowPolicy(self.policy.default_grading_window_policy)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic period lifecycle service.

This module provides the AcademicPeriodStateMachine class, which owns the
lifecycle of academic years, terms, grading windows and closure records:

- AcademicYear:  PLANNED -> ACTIVE -> CLOSED (one ACTIVE year per institution)
- GradingWindow: OPEN -> CLOSED -> OPEN (reopen is audited)
- ClosureRecord: OPEN -> CLOSING -> CLOSED -> REOPENED (reopen needs a
  justification and is audited; REOPENED accepts writes like OPEN)

Every query is built through the caller's TenantScope.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.domains.academic_period.rules import (
    period_tag_for,
    tags_for,
    term_of_tag,
    term_type_for,
    validate_period,
    validate_period_tag,
)
from src.domains.audit import AuditService
from src.domains.tenancy import TenantScope, resolve_academic_type, scoped
from src.infrastructure.database.models import AcademicYear, ClosureRecord, GradingWindow, Term
from src.infrastructure.database.models.base import new_id
from src.models.academic_period import (
    AcademicYearCreateRequest,
    AcademicYearResponse,
    ClosureRecordResponse,
    GradingWindowCreateRequest,
    GradingWindowReopenRequest,
    GradingWindowResponse,
    TermCreateRequest,
    TermResponse,
)
from src.models.enums import (
    AcademicYearStatus,
    ClosureStatus,
    GradingWindowStatus,
    PeriodTag,
    TermStatus,
    TermType,
)
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_REOPEN_REASON = "Reopening authorized by administrator"

# Closure states from which grade writes and a new closing cycle are allowed
WRITABLE_CLOSURE_STATES = frozenset({ClosureStatus.OPEN.value, ClosureStatus.REOPENED.value})


def effective_window_status(window: GradingWindow, now: datetime | None = None) -> GradingWindowStatus:
    """Status of a grading window as seen at a point in time.

    An OPEN window whose end date has passed is reported as EXPIRED.
    """
    if window.status != GradingWindowStatus.OPEN:
        return GradingWindowStatus(window.status)
    now = now or utc_now()
    if ensure_utc(window.end_date) < now:
        return GradingWindowStatus.EXPIRED
    return GradingWindowStatus.OPEN


def _uuid(value: str | None) -> UUID | None:
    return UUID(str(value)) if value else None


class AcademicPeriodStateMachine:
    """Service owning the academic period lifecycle.

    Attributes:
        db: Async database session.
        audit: Audit trail writer sharing the same session.
    """

    def __init__(self, db: AsyncSession, audit: AuditService | None = None) -> None:
        """Initialize the period service.

        Args:
            db: Async database session.
            audit: Audit service; one bound to db is created if omitted.
        """
        self.db = db
        self.audit = audit or AuditService(db)

    # =========================================================================
    # Academic years
    # =========================================================================

    async def create_year(
        self,
        scope: TenantScope,
        request: AcademicYearCreateRequest,
    ) -> AcademicYearResponse:
        """Create a PLANNED academic year.

        Args:
            scope: Resolved tenant scope.
            request: Academic year creation data.

        Returns:
            Created academic year.

        Raises:
            ValidationError: If the end date is not after the start date.
            ConflictError: If the year number exists or the dates overlap
                another year of the institution.
        """
        if request.end_date <= request.start_date:
            raise ValidationError("End date must be after start date")

        duplicate = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.year_number == request.year_number)
        )
        if duplicate.scalar_one_or_none():
            raise ConflictError(f"Academic year {request.year_number} already exists")

        overlap = await self.db.execute(
            scope.select(AcademicYear).where(
                AcademicYear.start_date <= request.end_date,
                AcademicYear.end_date >= request.start_date,
            )
        )
        if overlap.scalars().first():
            raise ConflictError("Academic year dates overlap with an existing year")

        academic_year = AcademicYear(
            id=new_id(),
            institution_id=scope.institution_id,
            year_number=request.year_number,
            start_date=request.start_date,
            end_date=request.end_date,
            status=AcademicYearStatus.PLANNED.value,
        )
        self.db.add(academic_year)
        await self._commit_or_conflict("Academic year already exists")

        logger.info(
            "Created academic year %s (%s) for institution %s",
            academic_year.year_number,
            academic_year.id,
            scope.institution_id,
        )
        return self._year_to_response(academic_year)

    async def list_years(self, scope: TenantScope) -> tuple[list[AcademicYearResponse], int]:
        """List the institution's academic years, newest first.

        Returns:
            Tuple of (academic years, total count).
        """
        query = scope.select(AcademicYear).order_by(AcademicYear.year_number.desc())
        result = await self.db.execute(query)
        years = result.scalars().all()
        items = [self._year_to_response(year) for year in years]
        return items, len(items)

    async def get_year(self, scope: TenantScope, year_id: UUID) -> AcademicYearResponse:
        """Get an academic year by id.

        Raises:
            NotFoundError: If the year does not exist in the institution.
        """
        academic_year = await self._get_year(scope, year_id)
        return self._year_to_response(academic_year)

    async def get_active_year(self, scope: TenantScope) -> AcademicYearResponse | None:
        """Get the ACTIVE academic year, if any."""
        result = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.status == AcademicYearStatus.ACTIVE.value)
        )
        academic_year = result.scalars().first()
        if academic_year is None:
            return None
        return self._year_to_response(academic_year)

    async def activate_year(self, scope: TenantScope, year_id: UUID) -> AcademicYearResponse:
        """Move a PLANNED year to ACTIVE.

        Activating an already ACTIVE year is a no-op.

        Raises:
            NotFoundError: If the year does not exist in the institution.
            InvalidTransitionError: If the year is CLOSED.
            ConflictError: If another year of the institution is ACTIVE.
        """
        academic_year = await self._get_year(scope, year_id)

        if academic_year.status == AcademicYearStatus.ACTIVE:
            return self._year_to_response(academic_year)

        if academic_year.status != AcademicYearStatus.PLANNED:
            raise InvalidTransitionError(
                "academic year",
                academic_year.status,
                AcademicYearStatus.ACTIVE.value,
                "A closed academic year cannot be activated",
            )

        result = await self.db.execute(
            scope.select(AcademicYear).where(
                AcademicYear.status == AcademicYearStatus.ACTIVE.value,
                AcademicYear.id != academic_year.id,
            )
        )
        active = result.scalars().first()
        if active is not None:
            raise ConflictError(
                f"Academic year {active.year_number} is already active; close it first",
                {"active_year_id": str(active.id)},
            )

        academic_year.status = AcademicYearStatus.ACTIVE.value
        academic_year.activated_at = utc_now()
        academic_year.activated_by = scope.actor_id
        self.audit.record(
            scope,
            "academic_year.activate",
            "academic_year",
            academic_year.id,
            before={"status": AcademicYearStatus.PLANNED.value},
            after={"status": AcademicYearStatus.ACTIVE.value},
        )
        await self._commit_or_conflict("Another academic year is already active")

        logger.info("Activated academic year %s for institution %s", academic_year.id, scope.institution_id)
        return self._year_to_response(academic_year)

    async def close_year(self, scope: TenantScope, year_id: UUID) -> AcademicYearResponse:
        """Move an ACTIVE year to CLOSED.

        Every term of the year must already be CLOSED.

        Raises:
            NotFoundError: If the year does not exist in the institution.
            InvalidTransitionError: If the year is not ACTIVE or terms are open.
        """
        academic_year = await self._get_year(scope, year_id)

        if academic_year.status != AcademicYearStatus.ACTIVE:
            raise InvalidTransitionError(
                "academic year",
                academic_year.status,
                AcademicYearStatus.CLOSED.value,
                "Only an active academic year can be closed",
            )

        terms = await self._get_terms(scope, academic_year.id)
        open_terms = [t for t in terms if t.status != TermStatus.CLOSED]
        if open_terms:
            labels = ", ".join(period_tag_for(t.term_type, t.number).value for t in open_terms)
            raise InvalidTransitionError(
                "academic year",
                academic_year.status,
                AcademicYearStatus.CLOSED.value,
                f"All periods must be closed before closing the academic year. Pending: {labels}",
            )
        if not terms:
            logger.warning("Closing academic year %s with no terms configured", academic_year.id)

        academic_year.status = AcademicYearStatus.CLOSED.value
        academic_year.closed_at = utc_now()
        academic_year.closed_by = scope.actor_id
        self.audit.record(
            scope,
            "academic_year.close",
            "academic_year",
            academic_year.id,
            before={"status": AcademicYearStatus.ACTIVE.value},
            after={"status": AcademicYearStatus.CLOSED.value},
        )
        await self.db.commit()

        logger.info("Closed academic year %s for institution %s", academic_year.id, scope.institution_id)
        return self._year_to_response(academic_year)

    # =========================================================================
    # Terms
    # =========================================================================

    async def create_term(self, scope: TenantScope, request: TermCreateRequest) -> TermResponse:
        """Create a semester or trimester inside an academic year.

        Raises:
            NotFoundError: If the year does not exist in the institution.
            ValidationError: If the term type or dates are invalid.
            ConflictError: If the term already exists.
        """
        academic_year = await self._get_year(scope, request.academic_year_id)
        academic_type = await resolve_academic_type(self.db, scope)
        validate_period(academic_type, request.term_type, request.number)

        if academic_year.status == AcademicYearStatus.CLOSED:
            raise ValidationError("Terms cannot be added to a closed academic year")
        if request.start_date < academic_year.start_date or request.end_date > academic_year.end_date:
            raise ValidationError("Term dates must fall within the academic year")

        existing = await self.db.execute(
            scope.select(Term).where(
                Term.academic_year_id == academic_year.id,
                Term.term_type == request.term_type.value,
                Term.number == request.number,
            )
        )
        if existing.scalar_one_or_none():
            raise ConflictError(f"{request.term_type.value} {request.number} already exists for this year")

        term = Term(
            id=new_id(),
            institution_id=scope.institution_id,
            academic_year_id=academic_year.id,
            term_type=request.term_type.value,
            number=request.number,
            start_date=request.start_date,
            end_date=request.end_date,
            status=TermStatus.PLANNED.value,
        )
        self.db.add(term)
        await self._commit_or_conflict("Term already exists")

        logger.info("Created %s %s in year %s", term.term_type, term.number, academic_year.id)
        return self._term_to_response(term)

    async def list_terms(self, scope: TenantScope, academic_year_id: UUID) -> list[TermResponse]:
        """List the terms of an academic year in order."""
        academic_year = await self._get_year(scope, academic_year_id)
        terms = await self._get_terms(scope, academic_year.id)
        return [self._term_to_response(term) for term in terms]

    # =========================================================================
    # Grading windows
    # =========================================================================

    async def create_window(
        self,
        scope: TenantScope,
        request: GradingWindowCreateRequest,
    ) -> GradingWindowResponse:
        """Create an OPEN grading window.

        Raises:
            NotFoundError: If the year does not exist in the institution.
            ValidationError: If the period or dates are invalid.
            ConflictError: If a window exists for the period or the dates
                overlap another window of the same period type.
        """
        if request.end_date <= request.start_date:
            raise ValidationError("End date must be after start date")

        academic_year = await self._get_year(scope, request.academic_year_id)
        academic_type = await resolve_academic_type(self.db, scope)
        validate_period(academic_type, request.period_type, request.period_number)

        existing = await self.db.execute(
            scope.select(GradingWindow).where(
                GradingWindow.academic_year_id == academic_year.id,
                GradingWindow.period_type == request.period_type.value,
                GradingWindow.period_number == request.period_number,
            )
        )
        if existing.scalar_one_or_none():
            raise ConflictError("A grading window already exists for this period")

        overlap = await self.db.execute(
            scope.select(GradingWindow).where(
                GradingWindow.academic_year_id == academic_year.id,
                GradingWindow.period_type == request.period_type.value,
                GradingWindow.start_date < request.end_date,
                GradingWindow.end_date > request.start_date,
            )
        )
        overlapping = overlap.scalars().first()
        if overlapping is not None:
            raise ConflictError(
                "Grading window dates overlap an existing window",
                {"window_id": str(overlapping.id)},
            )

        window = GradingWindow(
            id=new_id(),
            institution_id=scope.institution_id,
            academic_year_id=academic_year.id,
            period_type=request.period_type.value,
            period_number=request.period_number,
            start_date=request.start_date,
            end_date=request.end_date,
            status=GradingWindowStatus.OPEN.value,
        )
        self.db.add(window)
        await self._commit_or_conflict("A grading window already exists for this period")

        logger.info(
            "Created grading window %s %s for year %s",
            window.period_type,
            window.period_number,
            academic_year.id,
        )
        return self._window_to_response(window)

    async def list_windows(
        self,
        scope: TenantScope,
        academic_year_id: UUID | None = None,
    ) -> list[GradingWindowResponse]:
        """List grading windows, optionally for one academic year."""
        query = scope.select(GradingWindow)
        if academic_year_id is not None:
            query = query.where(GradingWindow.academic_year_id == str(academic_year_id))
        query = query.order_by(GradingWindow.start_date, GradingWindow.period_number)
        result = await self.db.execute(query)
        now = utc_now()
        return [self._window_to_response(w, now) for w in result.scalars().all()]

    async def get_window(self, scope: TenantScope, window_id: UUID) -> GradingWindowResponse:
        """Get a grading window by id."""
        window = await self._get_window(scope, window_id)
        return self._window_to_response(window)

    async def get_open_window(
        self,
        scope: TenantScope,
        at: datetime | None = None,
    ) -> GradingWindowResponse | None:
        """Get the OPEN window whose date range covers the given moment."""
        at = at or utc_now()
        result = await self.db.execute(
            scope.select(GradingWindow)
            .where(
                GradingWindow.status == GradingWindowStatus.OPEN.value,
                GradingWindow.start_date <= at,
                GradingWindow.end_date >= at,
            )
            .order_by(GradingWindow.start_date.desc())
        )
        window = result.scalars().first()
        if window is None:
            return None
        return self._window_to_response(window, at)

    async def close_window(self, scope: TenantScope, window_id: UUID) -> GradingWindowResponse:
        """Close a grading window. Closing a CLOSED window changes nothing."""
        window = await self._get_window(scope, window_id, lock=True)
        if window.status == GradingWindowStatus.CLOSED:
            return self._window_to_response(window)

        window.status = GradingWindowStatus.CLOSED.value
        window.closed_at = utc_now()
        window.closed_by = scope.actor_id
        self.audit.record(
            scope,
            "grading_window.close",
            "grading_window",
            window.id,
            before={"status": GradingWindowStatus.OPEN.value},
            after={"status": GradingWindowStatus.CLOSED.value},
        )
        await self.db.commit()

        logger.info("Closed grading window %s", window.id)
        return self._window_to_response(window)

    async def reopen_window(
        self,
        scope: TenantScope,
        window_id: UUID,
        request: GradingWindowReopenRequest,
    ) -> GradingWindowResponse:
        """Reopen a CLOSED grading window, recording actor, time and reason.

        Raises:
            NotFoundError: If the window does not exist in the institution.
            InvalidTransitionError: If the window is already OPEN.
            ValidationError: If the new end date is not after the start date.
        """
        window = await self._get_window(scope, window_id, lock=True)
        if window.status != GradingWindowStatus.CLOSED:
            raise InvalidTransitionError(
                "grading window",
                window.status,
                GradingWindowStatus.OPEN.value,
                "Grading window is already open",
            )

        before = {"status": window.status, "end_date": window.end_date.isoformat()}
        if request.new_end_date is not None:
            if ensure_utc(request.new_end_date) <= ensure_utc(window.start_date):
                raise ValidationError("End date must be after start date")
            window.end_date = request.new_end_date

        reason = (request.reason or "").strip() or DEFAULT_REOPEN_REASON
        window.status = GradingWindowStatus.OPEN.value
        window.reopened_at = utc_now()
        window.reopened_by = scope.actor_id
        window.reopen_reason = reason
        self.audit.record(
            scope,
            "grading_window.reopen",
            "grading_window",
            window.id,
            before=before,
            after={"status": window.status, "end_date": window.end_date.isoformat()},
            note=reason,
        )
        await self.db.commit()

        logger.info("Reopened grading window %s by %s", window.id, scope.actor_id)
        return self._window_to_response(window)

    # =========================================================================
    # Closure records
    # =========================================================================

    async def list_closures(
        self,
        scope: TenantScope,
        academic_year: int | None = None,
    ) -> list[ClosureRecordResponse]:
        """List closure records, optionally for one academic year number."""
        query = scope.select(ClosureRecord)
        if academic_year is not None:
            query = query.where(ClosureRecord.academic_year == academic_year)
        query = query.order_by(ClosureRecord.academic_year.desc(), ClosureRecord.period_tag)
        result = await self.db.execute(query)
        return [self._closure_to_response(r) for r in result.scalars().all()]

    async def get_closure(
        self,
        scope: TenantScope,
        academic_year: int,
        period_tag: PeriodTag,
    ) -> ClosureRecordResponse | None:
        """Get the closure record of a period, if any."""
        record = await self._get_closure(scope, academic_year, period_tag)
        return self._closure_to_response(record) if record else None

    async def begin_closing(
        self,
        scope: TenantScope,
        academic_year: int,
        period_tag: PeriodTag,
        notes: str | None = None,
    ) -> ClosureRecordResponse:
        """Start closing a period (OPEN or REOPENED -> CLOSING).

        Creates the record when the period has none yet.

        Raises:
            NotFoundError: If the academic year does not exist.
            ValidationError: If the tag does not match the institution type.
            InvalidTransitionError: If the period is CLOSING or CLOSED.
        """
        await self._get_year_by_number(scope, academic_year)
        academic_type = await resolve_academic_type(self.db, scope)
        validate_period_tag(academic_type, period_tag)

        record = await self._get_closure(scope, academic_year, period_tag, lock=True)
        if record is None:
            record = ClosureRecord(
                id=new_id(),
                institution_id=scope.institution_id,
                academic_year=academic_year,
                period_tag=PeriodTag(period_tag).value,
                status=ClosureStatus.OPEN.value,
            )
            self.db.add(record)
        elif record.status not in WRITABLE_CLOSURE_STATES:
            raise InvalidTransitionError("closure record", record.status, ClosureStatus.CLOSING.value)

        previous = record.status
        record.status = ClosureStatus.CLOSING.value
        record.closing_started_at = utc_now()
        record.closing_started_by = scope.actor_id
        if notes:
            record.closure_notes = notes
        self.audit.record(
            scope,
            "closure.begin",
            "closure_record",
            record.id,
            before={"status": previous},
            after={"status": record.status},
            note=notes,
        )
        await self._commit_or_conflict("Closure record already exists for this period")

        logger.info("Began closing %s/%s for institution %s", academic_year, record.period_tag, scope.institution_id)
        return self._closure_to_response(record)

    async def finish_closing(
        self,
        scope: TenantScope,
        academic_year: int,
        period_tag: PeriodTag,
        notes: str | None = None,
    ) -> ClosureRecordResponse:
        """Finish closing a period (CLOSING -> CLOSED).

        Closing a term tag marks the matching term CLOSED. FULL_YEAR requires
        every term tag of the year to be CLOSED and then closes all terms.

        Raises:
            NotFoundError: If the year or closure record does not exist.
            ValidationError: If the tag does not match the institution type.
            InvalidTransitionError: If the record is not CLOSING or, for
                FULL_YEAR, some term periods are still open.
        """
        year_row = await self._get_year_by_number(scope, academic_year)
        academic_type = await resolve_academic_type(self.db, scope)
        validate_period_tag(academic_type, period_tag)

        record = await self._get_closure(scope, academic_year, period_tag, lock=True)
        if record is None:
            raise NotFoundError("Closure record not found; begin closing first")
        if record.status != ClosureStatus.CLOSING:
            raise InvalidTransitionError("closure record", record.status, ClosureStatus.CLOSED.value)

        now = utc_now()
        if PeriodTag(period_tag) == PeriodTag.FULL_YEAR:
            term_tags = tags_for(academic_type)
            result = await self.db.execute(
                scope.select(ClosureRecord).where(
                    ClosureRecord.academic_year == academic_year,
                    ClosureRecord.period_tag.in_([t.value for t in term_tags]),
                )
            )
            closed = {r.period_tag for r in result.scalars().all() if r.status == ClosureStatus.CLOSED}
            pending = [t.value for t in term_tags if t.value not in closed]
            if pending:
                raise InvalidTransitionError(
                    "closure record",
                    record.status,
                    ClosureStatus.CLOSED.value,
                    f"All periods must be closed before closing the full year. Pending: {', '.join(pending)}",
                )
            await self.db.execute(
                scope.update(Term)
                .where(Term.academic_year_id == year_row.id, Term.term_type == term_type_for(academic_type).value)
                .values(status=TermStatus.CLOSED.value, closed_at=now, closed_by=scope.actor_id)
            )
        else:
            term_type, number = term_of_tag(period_tag)
            await self.db.execute(
                scope.update(Term)
                .where(
                    Term.academic_year_id == year_row.id,
                    Term.term_type == term_type.value,
                    Term.number == number,
                )
                .values(status=TermStatus.CLOSED.value, closed_at=now, closed_by=scope.actor_id)
            )

        record.status = ClosureStatus.CLOSED.value
        record.closed_at = now
        record.closed_by = scope.actor_id
        if notes:
            record.closure_notes = notes
        self.audit.record(
            scope,
            "closure.finish",
            "closure_record",
            record.id,
            before={"status": ClosureStatus.CLOSING.value},
            after={"status": record.status},
            note=notes,
        )
        await self.db.commit()

        logger.info("Closed %s/%s for institution %s", academic_year, record.period_tag, scope.institution_id)
        return self._closure_to_response(record)

    async def reopen_closure(
        self,
        scope: TenantScope,
        academic_year: int,
        period_tag: PeriodTag,
        justification: str,
    ) -> ClosureRecordResponse:
        """Reopen a CLOSED period (CLOSED -> REOPENED).

        The prior closed_at/closed_by values are kept for the audit trail.
        Completions issued while the period was closed are left untouched.

        Raises:
            ValidationError: If the justification is empty.
            NotFoundError: If the closure record does not exist.
            InvalidTransitionError: If the record is not CLOSED.
        """
        justification = (justification or "").strip()
        if not justification:
            raise ValidationError("A justification is required to reopen a closed period")

        record = await self._get_closure(scope, academic_year, period_tag, lock=True)
        if record is None:
            raise NotFoundError("Closure record not found")
        if record.status != ClosureStatus.CLOSED:
            raise InvalidTransitionError(
                "closure record",
                record.status,
                ClosureStatus.REOPENED.value,
                "Only a closed period can be reopened",
            )

        record.status = ClosureStatus.REOPENED.value
        record.reopened_at = utc_now()
        record.reopened_by = scope.actor_id
        record.reopen_justification = justification
        self.audit.record(
            scope,
            "closure.reopen",
            "closure_record",
            record.id,
            before={"status": ClosureStatus.CLOSED.value},
            after={"status": record.status},
            note=justification,
        )
        await self.db.commit()

        logger.info(
            "Reopened %s/%s for institution %s by %s",
            academic_year,
            record.period_tag,
            scope.institution_id,
            scope.actor_id,
        )
        return self._closure_to_response(record)

    async def term_closure_progress(
        self,
        scope: TenantScope,
        academic_year_id: str,
        term_type: TermType,
    ) -> tuple[int, int]:
        """Count terms of a year and how many have a CLOSED closure record.

        Args:
            scope: Resolved tenant scope.
            academic_year_id: Academic year id.
            term_type: Term type to count.

        Returns:
            Tuple of (closed, total). (0, 0) when the year is not found.
        """
        result = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.id == str(academic_year_id))
        )
        academic_year = result.scalar_one_or_none()
        if academic_year is None:
            return 0, 0

        terms = [
            t for t in await self._get_terms(scope, academic_year.id)
            if t.term_type == TermType(term_type)
        ]
        if not terms:
            return 0, 0

        tags = [period_tag_for(t.term_type, t.number).value for t in terms]
        query = select(func.count(ClosureRecord.id)).where(
            ClosureRecord.academic_year == academic_year.year_number,
            ClosureRecord.period_tag.in_(tags),
            ClosureRecord.status == ClosureStatus.CLOSED.value,
        )
        count_result = await self.db.execute(scoped(query, ClosureRecord, scope))
        return count_result.scalar() or 0, len(terms)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _commit_or_conflict(self, message: str) -> None:
        """Commit, translating unique constraint violations into ConflictError."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info("Integrity conflict: %s", str(e.orig) if e.orig else str(e))
            raise ConflictError(message)

    async def _get_year(self, scope: TenantScope, year_id: UUID | str) -> AcademicYear:
        result = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.id == str(year_id))
        )
        academic_year = result.scalar_one_or_none()
        if academic_year is None:
            raise NotFoundError(f"Academic year {year_id} not found")
        return academic_year

    async def _get_year_by_number(self, scope: TenantScope, year_number: int) -> AcademicYear:
        result = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.year_number == year_number)
        )
        academic_year = result.scalar_one_or_none()
        if academic_year is None:
            raise NotFoundError(f"Academic year {year_number} not found")
        return academic_year

    async def _get_terms(self, scope: TenantScope, year_id: str) -> list[Term]:
        result = await self.db.execute(
            scope.select(Term)
            .where(Term.academic_year_id == year_id)
            .order_by(Term.term_type, Term.number)
        )
        return list(result.scalars().all())

    async def _get_window(self, scope: TenantScope, window_id: UUID | str, lock: bool = False) -> GradingWindow:
        query = scope.select(GradingWindow).where(GradingWindow.id == str(window_id))
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        window = result.scalar_one_or_none()
        if window is None:
            raise NotFoundError(f"Grading window {window_id} not found")
        return window

    async def _get_closure(
        self,
        scope: TenantScope,
        academic_year: int,
        period_tag: PeriodTag,
        lock: bool = False,
    ) -> ClosureRecord | None:
        query = scope.select(ClosureRecord).where(
            ClosureRecord.academic_year == academic_year,
            ClosureRecord.period_tag == PeriodTag(period_tag).value,
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _year_to_response(self, academic_year: AcademicYear) -> AcademicYearResponse:
        return AcademicYearResponse(
            id=UUID(str(academic_year.id)),
            year_number=academic_year.year_number,
            start_date=academic_year.start_date,
            end_date=academic_year.end_date,
            status=AcademicYearStatus(academic_year.status),
            activated_at=academic_year.activated_at,
            activated_by=_uuid(academic_year.activated_by),
            closed_at=academic_year.closed_at,
            closed_by=_uuid(academic_year.closed_by),
        )

    def _term_to_response(self, term: Term) -> TermResponse:
        return TermResponse(
            id=UUID(str(term.id)),
            academic_year_id=UUID(str(term.academic_year_id)),
            term_type=term.term_type,
            number=term.number,
            start_date=term.start_date,
            end_date=term.end_date,
            status=TermStatus(term.status),
            closed_at=term.closed_at,
        )

    def _window_to_response(self, window: GradingWindow, now: datetime | None = None) -> GradingWindowResponse:
        return GradingWindowResponse(
            id=UUID(str(window.id)),
            academic_year_id=UUID(str(window.academic_year_id)),
            period_type=window.period_type,
            period_number=window.period_number,
            start_date=window.start_date,
            end_date=window.end_date,
            status=GradingWindowStatus(window.status),
            effective_status=effective_window_status(window, now),
            closed_at=window.closed_at,
            closed_by=_uuid(window.closed_by),
            reopened_at=window.reopened_at,
            reopened_by=_uuid(window.reopened_by),
            reopen_reason=window.reopen_reason,
        )

    def _closure_to_response(self, record: ClosureRecord) -> ClosureRecordResponse:
        return ClosureRecordResponse(
            id=UUID(str(record.id)),
            academic_year=record.academic_year,
            period_tag=PeriodTag(record.period_tag),
            status=ClosureStatus(record.status),
            closing_started_at=record.closing_started_at,
            closing_started_by=_uuid(record.closing_started_by),
            closed_at=record.closed_at,
            closed_by=_uuid(record.closed_by),
            closure_notes=record.closure_notes,
            reopened_at=record.reopened_at,
            reopened_by=_uuid(record.reopened_by),
            reopen_justification=record.reopen_justification,
        )

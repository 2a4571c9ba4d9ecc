# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the academic period state machine."""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from src.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.domains.academic_period import (
    DEFAULT_REOPEN_REASON,
    AcademicPeriodStateMachine,
    effective_window_status,
)
from src.domains.academic_period.rules import (
    period_tag_for,
    tags_for,
    term_of_tag,
    validate_period,
    validate_period_tag,
)
from src.infrastructure.database.models import AuditLog, ClosureRecord
from src.models.academic_period import AcademicYearCreateRequest, GradingWindowReopenRequest
from src.models.enums import (
    AcademicType,
    AcademicYearStatus,
    ClosureStatus,
    GradingWindowStatus,
    PeriodTag,
    TermType,
)


def _year(status="PLANNED", year_number=2025, **overrides):
    values = dict(
        id=str(uuid4()),
        institution_id="550e8400-e29b-41d4-a716-446655440000",
        year_number=year_number,
        start_date=date(year_number, 2, 1),
        end_date=date(year_number, 12, 15),
        status=status,
        activated_at=None,
        activated_by=None,
        closed_at=None,
        closed_by=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _term(term_type="SEMESTER", number=1, status="PLANNED"):
    return SimpleNamespace(
        id=str(uuid4()),
        academic_year_id=str(uuid4()),
        term_type=term_type,
        number=number,
        start_date=date(2025, 2, 1),
        end_date=date(2025, 6, 30),
        status=status,
        closed_at=None,
    )


def _window(status="OPEN", end_date=None):
    now = datetime.now(timezone.utc)
    return SimpleNamespace(
        id=str(uuid4()),
        academic_year_id=str(uuid4()),
        period_type="SEMESTER",
        period_number=1,
        start_date=now - timedelta(days=10),
        end_date=end_date or now + timedelta(days=10),
        status=status,
        closed_at=None,
        closed_by=None,
        reopened_at=None,
        reopened_by=None,
        reopen_reason=None,
    )


def _closure(status="CLOSED", period_tag="SEMESTER_1", academic_year=2025):
    return SimpleNamespace(
        id=str(uuid4()),
        academic_year=academic_year,
        period_tag=period_tag,
        status=status,
        closing_started_at=None,
        closing_started_by=None,
        closed_at=None,
        closed_by=None,
        closure_notes=None,
        reopened_at=None,
        reopened_by=None,
        reopen_justification=None,
    )


def _audit_entries(mock_db):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], AuditLog)]


@pytest.fixture
def period_service(mock_db):
    """Create period state machine with mock database."""
    return AcademicPeriodStateMachine(db=mock_db)


class TestPeriodRules:
    """Tests for period structure rules."""

    def test_term_types_per_institution(self):
        """Test that each institution type has its own term type."""
        validate_period(AcademicType.SUPERIOR, TermType.SEMESTER, 2)
        validate_period(AcademicType.SECONDARY, TermType.TRIMESTER, 3)

        with pytest.raises(ValidationError):
            validate_period(AcademicType.SUPERIOR, TermType.TRIMESTER, 1)
        with pytest.raises(ValidationError):
            validate_period(AcademicType.SECONDARY, TermType.SEMESTER, 1)
        with pytest.raises(ValidationError):
            validate_period(AcademicType.SUPERIOR, TermType.SEMESTER, 3)

    def test_period_tags(self):
        """Test tag mapping in both directions."""
        assert period_tag_for(TermType.TRIMESTER, 2) == PeriodTag.TERM_2
        assert term_of_tag(PeriodTag.SEMESTER_1) == (TermType.SEMESTER, 1)
        assert term_of_tag(PeriodTag.FULL_YEAR) is None
        assert tags_for(AcademicType.SECONDARY) == [
            PeriodTag.TERM_1,
            PeriodTag.TERM_2,
            PeriodTag.TERM_3,
        ]

    def test_validate_period_tag(self):
        """Test that tags of the other institution type are rejected."""
        validate_period_tag(AcademicType.SUPERIOR, PeriodTag.FULL_YEAR)
        validate_period_tag(AcademicType.SECONDARY, PeriodTag.TERM_3)

        with pytest.raises(ValidationError):
            validate_period_tag(AcademicType.SUPERIOR, PeriodTag.TERM_1)


class TestAcademicYears:
    """Tests for the academic year lifecycle."""

    @pytest.mark.asyncio
    async def test_create_year_duplicate(self, period_service, mock_db, superior_scope, db_result):
        """Test that a duplicate year number is a conflict."""
        mock_db.execute.return_value = db_result(_year())
        request = AcademicYearCreateRequest(
            year_number=2025, start_date=date(2025, 2, 1), end_date=date(2025, 12, 15)
        )

        with pytest.raises(ConflictError):
            await period_service.create_year(superior_scope, request)

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_year_success(self, period_service, mock_db, superior_scope, db_result):
        """Test that a new year starts PLANNED."""
        mock_db.execute.side_effect = [db_result(None), db_result(None)]
        request = AcademicYearCreateRequest(
            year_number=2026, start_date=date(2026, 2, 1), end_date=date(2026, 12, 15)
        )

        result = await period_service.create_year(superior_scope, request)

        assert result.status == AcademicYearStatus.PLANNED
        assert result.year_number == 2026
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_activate_year_success(self, period_service, mock_db, superior_scope, db_result):
        """Test PLANNED -> ACTIVE with audit entry."""
        year = _year()
        mock_db.execute.side_effect = [db_result(year), db_result(None)]

        result = await period_service.activate_year(superior_scope, year.id)

        assert result.status == AcademicYearStatus.ACTIVE
        assert year.activated_by == superior_scope.actor_id
        entries = _audit_entries(mock_db)
        assert [e.action for e in entries] == ["academic_year.activate"]
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_activate_year_conflicts_with_active(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that a second ACTIVE year is rejected."""
        year = _year()
        active = _year(status="ACTIVE", year_number=2024)
        mock_db.execute.side_effect = [db_result(year), db_result(active)]

        with pytest.raises(ConflictError) as exc_info:
            await period_service.activate_year(superior_scope, year.id)

        assert exc_info.value.details["active_year_id"] == active.id
        assert year.status == "PLANNED"
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_activate_year_unique_index_race(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that a concurrent activation surfaces as ConflictError."""
        year = _year()
        mock_db.execute.side_effect = [db_result(year), db_result(None)]
        mock_db.commit.side_effect = IntegrityError("UPDATE", {}, Exception("duplicate key"))

        with pytest.raises(ConflictError):
            await period_service.activate_year(superior_scope, year.id)

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_activate_active_year_is_noop(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that activating the ACTIVE year changes nothing."""
        year = _year(status="ACTIVE")
        mock_db.execute.return_value = db_result(year)

        result = await period_service.activate_year(superior_scope, year.id)

        assert result.status == AcademicYearStatus.ACTIVE
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_activate_closed_year(self, period_service, mock_db, superior_scope, db_result):
        """Test that a CLOSED year cannot be reactivated."""
        mock_db.execute.return_value = db_result(_year(status="CLOSED"))

        with pytest.raises(InvalidTransitionError):
            await period_service.activate_year(superior_scope, str(uuid4()))

    @pytest.mark.asyncio
    async def test_year_of_other_institution_not_found(
        self, period_service, mock_db, superior_scope, db_result, executed, compile_sql
    ):
        """Test that lookups are scoped, so a foreign year is not found."""
        mock_db.execute.return_value = db_result(None)

        with pytest.raises(NotFoundError):
            await period_service.get_year(superior_scope, uuid4())

        _, params = compile_sql(executed(mock_db)[0])
        assert superior_scope.institution_id in params.values()

    @pytest.mark.asyncio
    async def test_close_year_with_open_terms(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that a year with open terms cannot be closed."""
        year = _year(status="ACTIVE")
        terms = [_term(number=1, status="CLOSED"), _term(number=2, status="ACTIVE")]
        mock_db.execute.side_effect = [db_result(year), db_result(rows=terms)]

        with pytest.raises(InvalidTransitionError) as exc_info:
            await period_service.close_year(superior_scope, year.id)

        assert "SEMESTER_2" in exc_info.value.message
        assert year.status == "ACTIVE"

    @pytest.mark.asyncio
    async def test_close_year_success(self, period_service, mock_db, superior_scope, db_result):
        """Test ACTIVE -> CLOSED when every term is closed."""
        year = _year(status="ACTIVE")
        terms = [_term(number=1, status="CLOSED"), _term(number=2, status="CLOSED")]
        mock_db.execute.side_effect = [db_result(year), db_result(rows=terms)]

        result = await period_service.close_year(superior_scope, year.id)

        assert result.status == AcademicYearStatus.CLOSED
        assert year.closed_by == superior_scope.actor_id
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_planned_year(self, period_service, mock_db, superior_scope, db_result):
        """Test that only an ACTIVE year can be closed."""
        mock_db.execute.return_value = db_result(_year(status="PLANNED"))

        with pytest.raises(InvalidTransitionError):
            await period_service.close_year(superior_scope, str(uuid4()))


class TestGradingWindows:
    """Tests for grading window transitions."""

    def test_effective_status_expired(self):
        """Test that an OPEN window past its end date reads as EXPIRED."""
        window = _window(end_date=datetime.now(timezone.utc) - timedelta(days=1))

        assert effective_window_status(window) == GradingWindowStatus.EXPIRED
        assert effective_window_status(_window(status="CLOSED")) == GradingWindowStatus.CLOSED

    @pytest.mark.asyncio
    async def test_close_window(self, period_service, mock_db, superior_scope, db_result, executed, compile_sql):
        """Test OPEN -> CLOSED under a row lock."""
        window = _window()
        mock_db.execute.return_value = db_result(window)

        result = await period_service.close_window(superior_scope, window.id)

        assert result.status == GradingWindowStatus.CLOSED
        assert window.closed_by == superior_scope.actor_id
        sql, _ = compile_sql(executed(mock_db)[0])
        assert "FOR UPDATE" in sql
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_closed_window_is_noop(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that closing a CLOSED window writes nothing."""
        window = _window(status="CLOSED")
        mock_db.execute.return_value = db_result(window)

        result = await period_service.close_window(superior_scope, window.id)

        assert result.status == GradingWindowStatus.CLOSED
        mock_db.commit.assert_not_called()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_reopen_window_records_reason(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test CLOSED -> OPEN records actor, time and default reason."""
        window = _window(status="CLOSED")
        mock_db.execute.return_value = db_result(window)

        result = await period_service.reopen_window(
            superior_scope, window.id, GradingWindowReopenRequest()
        )

        assert result.status == GradingWindowStatus.OPEN
        assert window.reopened_by == superior_scope.actor_id
        assert window.reopened_at is not None
        assert window.reopen_reason == DEFAULT_REOPEN_REASON
        entries = _audit_entries(mock_db)
        assert entries[0].action == "grading_window.reopen"
        assert entries[0].note == DEFAULT_REOPEN_REASON

    @pytest.mark.asyncio
    async def test_reopen_open_window(self, period_service, mock_db, superior_scope, db_result):
        """Test that an OPEN window cannot be reopened."""
        mock_db.execute.return_value = db_result(_window())

        with pytest.raises(InvalidTransitionError):
            await period_service.reopen_window(
                superior_scope, str(uuid4()), GradingWindowReopenRequest(reason="late")
            )


class TestClosureRecords:
    """Tests for closure record transitions."""

    @pytest.mark.asyncio
    async def test_begin_closing_creates_record(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that the first begin_closing creates a CLOSING record."""
        mock_db.execute.side_effect = [db_result(_year()), db_result(None)]

        result = await period_service.begin_closing(superior_scope, 2025, PeriodTag.SEMESTER_1)

        assert result.status == ClosureStatus.CLOSING
        assert result.period_tag == PeriodTag.SEMESTER_1
        records = [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], ClosureRecord)]
        assert len(records) == 1
        assert records[0].institution_id == superior_scope.institution_id

    @pytest.mark.asyncio
    async def test_begin_closing_wrong_tag(self, period_service, mock_db, superior_scope, db_result):
        """Test that trimester tags are rejected for higher education."""
        mock_db.execute.return_value = db_result(_year())

        with pytest.raises(ValidationError):
            await period_service.begin_closing(superior_scope, 2025, PeriodTag.TERM_1)

    @pytest.mark.asyncio
    async def test_begin_closing_already_closed(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that a CLOSED period must be reopened first."""
        mock_db.execute.side_effect = [db_result(_year()), db_result(_closure("CLOSED"))]

        with pytest.raises(InvalidTransitionError):
            await period_service.begin_closing(superior_scope, 2025, PeriodTag.SEMESTER_1)

    @pytest.mark.asyncio
    async def test_finish_closing_term(self, period_service, mock_db, superior_scope, db_result):
        """Test CLOSING -> CLOSED for a term tag closes the term too."""
        record = _closure("CLOSING")
        mock_db.execute.side_effect = [db_result(_year()), db_result(record), db_result(None)]

        result = await period_service.finish_closing(superior_scope, 2025, PeriodTag.SEMESTER_1)

        assert result.status == ClosureStatus.CLOSED
        assert record.closed_by == superior_scope.actor_id
        assert mock_db.execute.await_count == 3
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_finish_full_year_requires_terms(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test that FULL_YEAR cannot close while a semester is open."""
        record = _closure("CLOSING", period_tag="FULL_YEAR")
        term_records = [_closure("CLOSED", period_tag="SEMESTER_1")]
        mock_db.execute.side_effect = [
            db_result(_year()),
            db_result(record),
            db_result(rows=term_records),
        ]

        with pytest.raises(InvalidTransitionError) as exc_info:
            await period_service.finish_closing(superior_scope, 2025, PeriodTag.FULL_YEAR)

        assert "SEMESTER_2" in exc_info.value.message
        assert record.status == "CLOSING"

    @pytest.mark.asyncio
    async def test_finish_without_begin(self, period_service, mock_db, superior_scope, db_result):
        """Test that finishing requires a CLOSING record."""
        mock_db.execute.side_effect = [db_result(_year()), db_result(None)]

        with pytest.raises(NotFoundError):
            await period_service.finish_closing(superior_scope, 2025, PeriodTag.SEMESTER_2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("justification", ["", "   ", None])
    async def test_reopen_requires_justification(
        self, period_service, mock_db, superior_scope, justification
    ):
        """Test that a blank justification is rejected before any lookup."""
        with pytest.raises(ValidationError):
            await period_service.reopen_closure(
                superior_scope, 2025, PeriodTag.SEMESTER_1, justification
            )

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_reopen_closed_period(self, period_service, mock_db, superior_scope, db_result):
        """Test CLOSED -> REOPENED keeps the closing data and audits the reason."""
        record = _closure("CLOSED")
        record.closed_by = str(uuid4())
        record.closed_at = datetime(2025, 7, 1, tzinfo=timezone.utc)
        mock_db.execute.return_value = db_result(record)

        result = await period_service.reopen_closure(
            superior_scope, 2025, PeriodTag.SEMESTER_1, "  Grade correction approved  "
        )

        assert result.status == ClosureStatus.REOPENED
        assert result.reopen_justification == "Grade correction approved"
        assert result.closed_at == datetime(2025, 7, 1, tzinfo=timezone.utc)
        entries = _audit_entries(mock_db)
        assert entries[0].action == "closure.reopen"
        assert entries[0].note == "Grade correction approved"
        assert entries[0].actor_id == superior_scope.actor_id

    @pytest.mark.asyncio
    async def test_reopen_not_closed(self, period_service, mock_db, superior_scope, db_result):
        """Test that only a CLOSED period can be reopened."""
        mock_db.execute.return_value = db_result(_closure("CLOSING"))

        with pytest.raises(InvalidTransitionError):
            await period_service.reopen_closure(
                superior_scope, 2025, PeriodTag.SEMESTER_1, "reason"
            )


class TestTermClosureProgress:
    """Tests for term closure counting."""

    @pytest.mark.asyncio
    async def test_counts_closed_semesters(
        self, period_service, mock_db, superior_scope, db_result
    ):
        """Test (closed, total) over the semesters of a year."""
        terms = [_term(number=1), _term(number=2)]
        mock_db.execute.side_effect = [
            db_result(_year()),
            db_result(rows=terms),
            db_result(1),
        ]

        result = await period_service.term_closure_progress(
            superior_scope, str(uuid4()), TermType.SEMESTER
        )

        assert result == (1, 2)

    @pytest.mark.asyncio
    async def test_unknown_year(self, period_service, mock_db, superior_scope, db_result):
        """Test that an unknown year has no terms."""
        mock_db.execute.return_value = db_result(None)

        result = await period_service.term_closure_progress(
            superior_scope, str(uuid4()), TermType.SEMESTER
        )

        assert result == (0, 0)

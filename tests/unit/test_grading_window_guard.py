# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the grading window guard."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from src.core.config import AcademicPolicySettings
from src.core.exceptions import NotFoundError, PolicyViolationError, ValidationError
from src.domains.academic_period import GradingWindowClosedError, GradingWindowGuard
from src.models.enums import GradingWindowPolicy, TermType

YEAR_ID = str(uuid4())


def _window(status="OPEN", end_date=None):
    return SimpleNamespace(
        id=str(uuid4()),
        status=status,
        end_date=end_date or datetime.now(timezone.utc) + timedelta(days=5),
    )


def _closure(period_tag, status):
    return SimpleNamespace(period_tag=period_tag, status=status)


def _institution(policy=None):
    return SimpleNamespace(id=str(uuid4()), academic_type="SUPERIOR", grading_window_policy=policy)


@pytest.fixture
def guard(mock_db):
    """Create guard with default policy settings."""
    return GradingWindowGuard(mock_db, AcademicPolicySettings())


class TestWindowDecision:
    """Tests for decisions taken from a grading window."""

    @pytest.mark.asyncio
    async def test_open_window_allows(self, guard, mock_db, superior_scope, db_result):
        """Test that an OPEN window accepts writes."""
        mock_db.execute.return_value = db_result(_window("OPEN"))

        assert await guard.is_grade_window_open(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

    @pytest.mark.asyncio
    async def test_closed_window_denies(self, guard, mock_db, superior_scope, db_result):
        """Test that a CLOSED window rejects writes with a policy error."""
        mock_db.execute.return_value = db_result(_window("CLOSED"))

        with pytest.raises(GradingWindowClosedError) as exc_info:
            await guard.ensure_grade_write_allowed(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

        assert isinstance(exc_info.value, PolicyViolationError)
        assert exc_info.value.details == {"source": "window", "status": "CLOSED"}

    @pytest.mark.asyncio
    async def test_write_check_locks_window_row(
        self, guard, mock_db, superior_scope, db_result, executed, compile_sql
    ):
        """Test that the write-path check reads the window FOR UPDATE."""
        mock_db.execute.return_value = db_result(_window("OPEN"))

        await guard.ensure_grade_write_allowed(superior_scope, YEAR_ID, "SEMESTER", 2)

        sql, params = compile_sql(executed(mock_db)[0])
        assert "FOR UPDATE" in sql
        assert superior_scope.institution_id in params.values()

    @pytest.mark.asyncio
    async def test_expired_window_ignored_by_default(
        self, guard, mock_db, superior_scope, db_result
    ):
        """Test that the end date is informational unless enforcement is enabled."""
        expired = _window("OPEN", end_date=datetime.now(timezone.utc) - timedelta(days=1))
        mock_db.execute.return_value = db_result(expired)

        decision = await guard.evaluate(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

        assert decision.allowed is True

    @pytest.mark.asyncio
    async def test_expired_window_enforced(self, mock_db, superior_scope, db_result):
        """Test that an expired window denies writes when enforcement is enabled."""
        guard = GradingWindowGuard(mock_db, AcademicPolicySettings(enforce_window_end_date=True))
        expired = _window("OPEN", end_date=datetime.now(timezone.utc) - timedelta(days=1))
        mock_db.execute.return_value = db_result(expired)

        decision = await guard.evaluate(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

        assert decision.allowed is False
        assert decision.status == "EXPIRED"


class TestClosureDecision:
    """Tests for decisions taken from closure records."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,allowed",
        [("OPEN", True), ("CLOSING", False), ("CLOSED", False), ("REOPENED", True)],
    )
    async def test_term_closure_status(
        self, guard, mock_db, superior_scope, db_result, status, allowed
    ):
        """Test that only OPEN and REOPENED periods accept writes."""
        mock_db.execute.side_effect = [
            db_result(None),
            db_result(SimpleNamespace(year_number=2025)),
            db_result(rows=[_closure("SEMESTER_1", status)]),
        ]

        decision = await guard.evaluate(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

        assert decision.allowed is allowed
        assert decision.source == "closure"

    @pytest.mark.asyncio
    async def test_closed_full_year_blocks_every_period(
        self, guard, mock_db, secondary_scope, db_result
    ):
        """Test that a closed FULL_YEAR overrides an open term record."""
        mock_db.execute.side_effect = [
            db_result(None),
            db_result(SimpleNamespace(year_number=2025)),
            db_result(rows=[_closure("TERM_2", "OPEN"), _closure("FULL_YEAR", "CLOSED")]),
        ]

        decision = await guard.evaluate(secondary_scope, YEAR_ID, TermType.TRIMESTER, 2)

        assert decision.allowed is False
        assert decision.status == "CLOSED"

    @pytest.mark.asyncio
    async def test_unknown_year(self, guard, mock_db, superior_scope, db_result):
        """Test that a year outside the institution is not found."""
        mock_db.execute.side_effect = [db_result(None), db_result(None)]

        with pytest.raises(NotFoundError):
            await guard.evaluate(superior_scope, YEAR_ID, TermType.SEMESTER, 1)


class TestDefaultPolicy:
    """Tests for periods with neither window nor closure record."""

    @pytest.mark.asyncio
    async def test_permissive_default(self, guard, mock_db, superior_scope, db_result):
        """Test that the default policy accepts writes."""
        mock_db.execute.side_effect = [
            db_result(None),
            db_result(SimpleNamespace(year_number=2025)),
            db_result(rows=[]),
            db_result(_institution()),
        ]

        decision = await guard.evaluate(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

        assert decision.allowed is True
        assert decision.source == "policy"
        assert decision.status == GradingWindowPolicy.PERMISSIVE.value

    @pytest.mark.asyncio
    async def test_institution_override(self, guard, mock_db, superior_scope, db_result):
        """Test that the institution's policy overrides the configured default."""
        mock_db.execute.side_effect = [
            db_result(None),
            db_result(SimpleNamespace(year_number=2025)),
            db_result(rows=[]),
            db_result(_institution(policy="RESTRICTIVE")),
        ]

        decision = await guard.evaluate(superior_scope, YEAR_ID, TermType.SEMESTER, 1)

        assert decision.allowed is False

    @pytest.mark.asyncio
    async def test_restrictive_configuration(self, mock_db, superior_scope, db_result):
        """Test that a restrictive configured default denies writes."""
        guard = GradingWindowGuard(
            mock_db,
            AcademicPolicySettings(default_grading_window_policy=GradingWindowPolicy.RESTRICTIVE),
        )
        mock_db.execute.side_effect = [
            db_result(None),
            db_result(SimpleNamespace(year_number=2025)),
            db_result(rows=[]),
            db_result(_institution()),
        ]

        with pytest.raises(GradingWindowClosedError):
            await guard.ensure_grade_write_allowed(superior_scope, YEAR_ID, TermType.SEMESTER, 1)


class TestPeriodValidation:
    """Tests for periods that do not exist for the institution type."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "period_type,period_number",
        [(TermType.SEMESTER, 3), (TermType.SEMESTER, 0), (TermType.TRIMESTER, 1)],
    )
    async def test_invalid_period_rejected(
        self, guard, mock_db, superior_scope, period_type, period_number
    ):
        """Test that an impossible period is a validation error, not a lookup."""
        with pytest.raises(ValidationError):
            await guard.is_grade_window_open(superior_scope, YEAR_ID, period_type, period_number)

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_third_trimester_accepted(self, guard, mock_db, secondary_scope, db_result):
        mock_db.execute.return_value = db_result(_window("OPEN"))

        assert await guard.is_grade_window_open(secondary_scope, YEAR_ID, TermType.TRIMESTER, 3)

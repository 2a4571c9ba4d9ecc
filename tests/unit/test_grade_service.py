# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the grade write service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.exceptions import NotFoundError, ValidationError
from src.domains.academic_period import GradingWindowClosedError
from src.domains.grading import GradeService
from src.infrastructure.database.models import Grade
from src.models.enums import TermType
from src.models.grading import GradeCreateRequest


def _request(period_type=TermType.SEMESTER, period_number=1, value=14.5):
    return GradeCreateRequest(
        student_id=uuid4(),
        subject_id=uuid4(),
        academic_year_id=uuid4(),
        period_type=period_type,
        period_number=period_number,
        value=value,
    )


@pytest.fixture
def guard():
    guard = MagicMock()
    guard.ensure_grade_write_allowed = AsyncMock()
    return guard


@pytest.fixture
def grade_service(mock_db, guard):
    """Create grade service with a mocked guard."""
    return GradeService(mock_db, guard=guard)


class TestRecordGrade:
    """Tests for GradeService.record_grade."""

    @pytest.mark.asyncio
    async def test_record_grade_success(
        self, grade_service, mock_db, guard, superior_scope, db_result
    ):
        """Test that an allowed write is persisted with the actor."""
        request = _request()
        mock_db.execute.side_effect = [
            db_result(SimpleNamespace(id=str(request.subject_id))),
            db_result(SimpleNamespace(id=str(request.academic_year_id))),
        ]

        result = await grade_service.record_grade(superior_scope, request)

        assert result.value == 14.5
        assert result.period_type == TermType.SEMESTER
        assert str(result.recorded_by) == superior_scope.actor_id
        grade = mock_db.add.call_args.args[0]
        assert isinstance(grade, Grade)
        assert grade.institution_id == superior_scope.institution_id
        guard.ensure_grade_write_allowed.assert_awaited_once_with(
            superior_scope,
            request.academic_year_id,
            TermType.SEMESTER,
            1,
            lock=True,
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closed_period_rejected(
        self, grade_service, mock_db, guard, superior_scope, db_result
    ):
        """Test that a guard rejection leaves nothing written."""
        guard.ensure_grade_write_allowed.side_effect = GradingWindowClosedError(
            "Grade entry is closed for this period", {"source": "window", "status": "CLOSED"}
        )
        mock_db.execute.side_effect = [
            db_result(SimpleNamespace(id="s")),
            db_result(SimpleNamespace(id="y")),
        ]

        with pytest.raises(GradingWindowClosedError):
            await grade_service.record_grade(superior_scope, _request())

        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_period_type_must_match_institution(
        self, grade_service, mock_db, guard, secondary_scope, db_result
    ):
        """Test that semesters are rejected for secondary institutions."""
        mock_db.execute.side_effect = [
            db_result(SimpleNamespace(id="s")),
            db_result(SimpleNamespace(id="y")),
        ]

        with pytest.raises(ValidationError):
            await grade_service.record_grade(secondary_scope, _request(TermType.SEMESTER))

        guard.ensure_grade_write_allowed.assert_not_called()

    @pytest.mark.asyncio
    async def test_subject_of_other_institution(
        self, grade_service, mock_db, superior_scope, db_result
    ):
        """Test that a subject outside the scope is not found."""
        mock_db.execute.return_value = db_result(None)

        with pytest.raises(NotFoundError) as exc_info:
            await grade_service.record_grade(superior_scope, _request())

        assert exc_info.value.message == "Subject not found"

    @pytest.mark.asyncio
    async def test_unknown_year(self, grade_service, mock_db, superior_scope, db_result):
        mock_db.execute.side_effect = [db_result(SimpleNamespace(id="s")), db_result(None)]

        with pytest.raises(NotFoundError):
            await grade_service.record_grade(superior_scope, _request())

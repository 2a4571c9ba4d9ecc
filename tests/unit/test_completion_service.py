# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the course completion service."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from src.core.exceptions import ConflictError, ValidationError
from src.domains.completion import CourseCompletionService, EligibilityNotMetError
from src.infrastructure.database.models import AuditLog, CourseCompletion
from src.models.completion import (
    AttendanceChecklist,
    CreditHoursChecklist,
    EligibilityChecklist,
    EligibilityReport,
    ObligatorySubjectsChecklist,
)
from src.models.enums import AcademicType, CompletionStatus

COURSE_ID = str(uuid4())
CLASS_ID = str(uuid4())


def _report(valid=True, errors=None):
    return EligibilityReport(
        valid=valid,
        errors=errors or [],
        warnings=[],
        checklist=EligibilityChecklist(
            obligatory_subjects=ObligatorySubjectsChecklist(total=2, completed=2),
            credit_hours=CreditHoursChecklist(required=120, completed=120, percentage=100.0),
            attendance=AttendanceChecklist(average=82.5, minimum=75.0, passed=True),
            year_closed=True,
            overall_average=15.25,
        ),
    )


def _completion(student_id, course_id=COURSE_ID, class_id=None):
    return SimpleNamespace(
        id=str(uuid4()),
        student_id=student_id,
        course_id=course_id,
        class_id=class_id,
        status="COMPLETED",
        completed_at=datetime(2025, 12, 20, tzinfo=timezone.utc),
        completed_by=str(uuid4()),
        credit_hours_total=120,
        attendance_average=82.5,
        overall_average=15.25,
        notes=None,
    )


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.evaluate = AsyncMock(return_value=_report())
    return engine


@pytest.fixture
def completion_service(mock_db, engine):
    """Create completion service with a mocked engine."""
    return CourseCompletionService(mock_db, engine=engine)


class TestRecordCompletion:
    """Tests for recording completions."""

    @pytest.mark.asyncio
    async def test_records_completion(
        self, completion_service, mock_db, engine, superior_scope, student_id, db_result
    ):
        """Test that an eligible student gets a COMPLETED record and an audit entry."""
        mock_db.execute.return_value = db_result(None)

        result = await completion_service.record_completion(
            superior_scope, student_id, course_id=COURSE_ID, notes="Graduation 2025"
        )

        assert result.created is True
        assert result.report.valid is True
        assert result.completion.status == CompletionStatus.COMPLETED
        assert result.completion.credit_hours_total == 120
        assert result.completion.completed_by == UUID(superior_scope.actor_id)

        added = [c.args[0] for c in mock_db.add.call_args_list]
        completions = [a for a in added if isinstance(a, CourseCompletion)]
        audits = [a for a in added if isinstance(a, AuditLog)]
        assert completions[0].program_key == f"course:{COURSE_ID}"
        assert completions[0].institution_id == superior_scope.institution_id
        assert audits[0].action == "course_completion.create"
        engine.evaluate.assert_awaited_once_with(
            superior_scope, student_id, COURSE_ID, None, AcademicType.SUPERIOR
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_completion_returned(
        self, completion_service, mock_db, engine, superior_scope, student_id, db_result
    ):
        """Test that a second request returns the existing record without evaluating."""
        mock_db.execute.return_value = db_result(_completion(student_id))

        result = await completion_service.record_completion(
            superior_scope, student_id, course_id=COURSE_ID
        )

        assert result.created is False
        assert result.report is None
        engine.evaluate.assert_not_called()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_ineligible_student(
        self, completion_service, mock_db, engine, superior_scope, student_id, db_result
    ):
        """Test that a negative report raises with the full report attached."""
        engine.evaluate.return_value = _report(valid=False, errors=["Insufficient average attendance"])
        mock_db.execute.return_value = db_result(None)

        with pytest.raises(EligibilityNotMetError) as exc_info:
            await completion_service.record_completion(
                superior_scope, student_id, course_id=COURSE_ID
            )

        assert exc_info.value.report.valid is False
        assert exc_info.value.details["report"]["errors"] == ["Insufficient average attendance"]
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_completion_returns_winner(
        self, completion_service, mock_db, superior_scope, student_id, db_result
    ):
        """Test that losing the unique index race returns the winning row."""
        winner = _completion(student_id)
        mock_db.execute.side_effect = [db_result(None), db_result(winner)]
        mock_db.commit.side_effect = IntegrityError(
            "INSERT", {}, Exception("uq_course_completions_single_completed")
        )

        result = await completion_service.record_completion(
            superior_scope, student_id, course_id=COURSE_ID
        )

        assert result.created is False
        assert result.completion.id == UUID(winner.id)
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_integrity_error_without_winner(
        self, completion_service, mock_db, superior_scope, student_id, db_result
    ):
        mock_db.execute.side_effect = [db_result(None), db_result(None)]
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("fk violation"))

        with pytest.raises(ConflictError):
            await completion_service.record_completion(
                superior_scope, student_id, course_id=COURSE_ID
            )

    @pytest.mark.asyncio
    async def test_secondary_requires_class(
        self, completion_service, mock_db, secondary_scope, student_id
    ):
        """Test that identifiers are validated before any lookup."""
        with pytest.raises(ValidationError):
            await completion_service.record_completion(
                secondary_scope, student_id, course_id=COURSE_ID
            )

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_secondary_program_key(
        self, completion_service, mock_db, secondary_scope, student_id, db_result
    ):
        """Test that secondary completions are keyed by class."""
        mock_db.execute.return_value = db_result(None)

        result = await completion_service.record_completion(
            secondary_scope, student_id, course_id=COURSE_ID, class_id=CLASS_ID
        )

        assert result.created is True
        completion = next(
            c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], CourseCompletion)
        )
        assert completion.program_key == f"class:{CLASS_ID}"
        assert completion.class_id == CLASS_ID


class TestCompletionStatus:
    """Tests for completion status lookups."""

    @pytest.mark.asyncio
    async def test_not_completed(self, completion_service, mock_db, superior_scope, student_id, db_result):
        mock_db.execute.return_value = db_result(None)

        result = await completion_service.get_completion_status(
            superior_scope, student_id, course_id=COURSE_ID
        )

        assert result.completed is False
        assert result.completion is None

    @pytest.mark.asyncio
    async def test_completed(self, completion_service, mock_db, superior_scope, student_id, db_result):
        mock_db.execute.return_value = db_result(_completion(student_id))

        result = await completion_service.get_completion_status(
            superior_scope, student_id, course_id=COURSE_ID
        )

        assert result.completed is True
        assert result.completion.course_id == UUID(COURSE_ID)

    @pytest.mark.asyncio
    async def test_evaluate_delegates_to_engine(
        self, completion_service, engine, superior_scope, student_id
    ):
        """Test that evaluate passes string ids to the engine."""
        course_uuid = UUID(COURSE_ID)

        report = await completion_service.evaluate(superior_scope, student_id, course_uuid, None)

        assert report.valid is True
        engine.evaluate.assert_awaited_once_with(superior_scope, student_id, COURSE_ID, None)

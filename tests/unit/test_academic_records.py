# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for academic block checks and record aggregation."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from src.core.exceptions import NotFoundError
from src.domains.academic_block import NOT_BLOCKED, AcademicBlockGate, DatabaseAcademicBlockGate
from src.domains.completion import AcademicRecordAggregator
from src.domains.completion.records import LIVE_ATTENDANCE_FALLBACK
from src.models.enums import AcademicType

INSTITUTION_ID = "550e8400-e29b-41d4-a716-446655440000"


def _subject(name, credit_hours=60):
    return SimpleNamespace(id=str(uuid4()), name=name, credit_hours=credit_hours)


class TestDatabaseAcademicBlockGate:
    """Tests for the table-backed block gate."""

    def test_satisfies_protocol(self, mock_db):
        assert isinstance(DatabaseAcademicBlockGate(mock_db), AcademicBlockGate)

    @pytest.mark.asyncio
    async def test_not_blocked(self, mock_db, db_result):
        """Test that no active block yields NOT_BLOCKED."""
        mock_db.execute.return_value = db_result(None)
        gate = DatabaseAcademicBlockGate(mock_db)

        decision = await gate.check(str(uuid4()), INSTITUTION_ID, AcademicType.SUPERIOR)

        assert decision == NOT_BLOCKED

    @pytest.mark.asyncio
    async def test_blocked_with_reason(self, mock_db, db_result, executed, compile_sql):
        """Test that an active block is reported with its reason."""
        block = SimpleNamespace(block_type="FINANCIAL", reason="Outstanding tuition")
        mock_db.execute.return_value = db_result(block)
        gate = DatabaseAcademicBlockGate(mock_db)

        decision = await gate.check(str(uuid4()), INSTITUTION_ID, AcademicType.SECONDARY)

        assert decision.blocked is True
        assert decision.reason == "Outstanding tuition"
        _, params = compile_sql(executed(mock_db)[0])
        assert INSTITUTION_ID in params.values()


class TestAcademicRecordAggregator:
    """Tests for requirement and record loading."""

    @pytest.mark.asyncio
    async def test_course_requirements(self, mock_db, superior_scope, db_result):
        """Test that course requirements come from the curriculum linkage."""
        course = SimpleNamespace(id=str(uuid4()), name="Law", required_credit_hours=120)
        subjects = [_subject("Civil Law"), _subject("Constitutional Law")]
        mock_db.execute.side_effect = [db_result(course), db_result(rows=subjects)]
        aggregator = AcademicRecordAggregator(mock_db)

        program = await aggregator.load_course_requirements(superior_scope, course.id)

        assert program.exists is True
        assert program.required_credit_hours == 120
        assert [s.name for s in program.obligatory_subjects] == ["Civil Law", "Constitutional Law"]

    @pytest.mark.asyncio
    async def test_course_not_found(self, mock_db, superior_scope, db_result):
        """Test that a course outside the institution is not found."""
        mock_db.execute.return_value = db_result(None)
        aggregator = AcademicRecordAggregator(mock_db)

        with pytest.raises(NotFoundError):
            await aggregator.load_course_requirements(superior_scope, str(uuid4()))

    @pytest.mark.asyncio
    async def test_missing_class_reported_not_raised(self, mock_db, secondary_scope, db_result):
        """Test that a missing class yields exists=False with institution subjects."""
        subjects = [_subject("Mathematics")]
        mock_db.execute.side_effect = [db_result(None), db_result(rows=subjects)]
        aggregator = AcademicRecordAggregator(mock_db)

        program = await aggregator.load_class_requirements(secondary_scope, str(uuid4()))

        assert program.exists is False
        assert program.name is None
        assert len(program.obligatory_subjects) == 1

    @pytest.mark.asyncio
    async def test_consolidated_record_preferred(self, mock_db, superior_scope, db_result):
        """Test that consolidated history lines are used when present."""
        year_id = str(uuid4())
        line = SimpleNamespace(
            subject_id=str(uuid4()),
            credit_hours=60,
            outcome="PASS",
            attendance_percentage=92.5,
            final_average=14.0,
            academic_year_id=year_id,
        )
        mock_db.execute.return_value = db_result(rows=[(line, "Civil Law")])
        aggregator = AcademicRecordAggregator(mock_db)

        record = await aggregator.load_record(superior_scope, str(uuid4()), course_id=str(uuid4()))

        assert record.consolidated is True
        assert record.lines[0].passed is True
        assert record.lines[0].subject_name == "Civil Law"
        assert record.lines[0].academic_year_id == year_id
        assert mock_db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_live_projection(self, mock_db, secondary_scope, db_result):
        """Test the live projection over subject enrollments and grades."""
        math, history = _subject("Mathematics", 4), _subject("History", 3)
        enrollments = [
            (SimpleNamespace(attendance_percentage=80, academic_year_id=None), math),
            (SimpleNamespace(attendance_percentage=None, academic_year_id=None), history),
        ]
        year_id = str(uuid4())
        grades = [(math.id, year_id, 12.0), (math.id, year_id, 14.0), (history.id, year_id, 6.0)]
        mock_db.execute.side_effect = [
            db_result(rows=[]),
            db_result(rows=enrollments),
            db_result(rows=grades),
        ]
        aggregator = AcademicRecordAggregator(mock_db)

        record = await aggregator.load_record(secondary_scope, str(uuid4()), class_id=str(uuid4()))

        assert record.consolidated is False
        by_name = {line.subject_name: line for line in record.lines}
        assert by_name["Mathematics"].final_average == 13.0
        assert by_name["Mathematics"].passed is True
        assert by_name["History"].passed is False
        assert by_name["History"].attendance_percentage == LIVE_ATTENDANCE_FALLBACK

    @pytest.mark.asyncio
    async def test_live_projection_uses_enrollment_year(
        self, mock_db, superior_scope, db_result, executed, compile_sql
    ):
        """Test that a retake is averaged only over the grades of its own year."""
        law = _subject("Civil Law", 60)
        year_2024, year_2025 = str(uuid4()), str(uuid4())
        enrollments = [
            (SimpleNamespace(attendance_percentage=90, academic_year_id=year_2024), law),
            (SimpleNamespace(attendance_percentage=90, academic_year_id=year_2025), law),
        ]
        grades = [
            (law.id, year_2024, 2.0),
            (law.id, year_2024, 2.0),
            (law.id, year_2024, 2.0),
            (law.id, year_2025, 14.0),
        ]
        mock_db.execute.side_effect = [
            db_result(rows=[]),
            db_result(rows=enrollments),
            db_result(rows=grades),
        ]
        aggregator = AcademicRecordAggregator(mock_db)

        record = await aggregator.load_record(superior_scope, str(uuid4()), course_id=str(uuid4()))

        by_year = {line.academic_year_id: line for line in record.lines}
        assert by_year[year_2024].final_average == 2.0
        assert by_year[year_2024].passed is False
        assert by_year[year_2025].final_average == 14.0
        assert by_year[year_2025].passed is True
        sql, _ = compile_sql(executed(mock_db)[2])
        assert "grades.academic_year_id" in sql

    @pytest.mark.asyncio
    async def test_year_statuses(self, mock_db, superior_scope, db_result):
        """Test mapping of year ids to status."""
        year = SimpleNamespace(id=str(uuid4()), status="CLOSED")
        mock_db.execute.return_value = db_result(rows=[year])
        aggregator = AcademicRecordAggregator(mock_db)

        assert await aggregator.year_statuses(superior_scope, {year.id}) == {year.id: "CLOSED"}
        assert await aggregator.year_statuses(superior_scope, set()) == {}

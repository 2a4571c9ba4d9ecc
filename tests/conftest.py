# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (mocked AsyncSession)
- Integration tests (FastAPI TestClient with dependency overrides)
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from src.domains.tenancy import TenantScope
from src.models.enums import AcademicType

INSTITUTION_A = "550e8400-e29b-41d4-a716-446655440000"
INSTITUTION_B = "660e8400-e29b-41d4-a716-446655440000"
ACTOR_ID = "550e8400-e29b-41d4-a716-4466554400aa"
STUDENT_ID = "550e8400-e29b-41d4-a716-446655440001"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    # Async context manager standing in for a SAVEPOINT
    db.begin_nested = MagicMock()
    return db


def _result(value: Any = None, rows: list[Any] | None = None) -> MagicMock:
    rows = rows if rows is not None else ([] if value is None else [value])
    first = rows[0] if rows else None
    result = MagicMock()
    result.scalar_one_or_none.return_value = first
    result.scalar.return_value = first
    result.scalars.return_value.first.return_value = first
    result.scalars.return_value.all.return_value = rows
    result.all.return_value = rows
    return result


@pytest.fixture
def db_result():
    """Factory for mock execute() results.

    db_result(row) exposes one row (or None); db_result(rows=[...]) several.
    """
    return _result


@pytest.fixture
def compile_sql():
    """Compile a statement for PostgreSQL and return (sql, params)."""

    def _compile(statement: Any) -> tuple[str, dict[str, Any]]:
        compiled = statement.compile(dialect=postgresql.dialect())
        return str(compiled), dict(compiled.params)

    return _compile


@pytest.fixture
def executed():
    """Statements passed to db.execute, in call order."""

    def _executed(db: AsyncMock) -> list[Any]:
        return [call.args[0] for call in db.execute.await_args_list]

    return _executed


# =============================================================================
# Scope Fixtures
# =============================================================================


@pytest.fixture
def superior_scope() -> TenantScope:
    """Scope of a higher-education institution."""
    return TenantScope(
        institution_id=INSTITUTION_A,
        actor_id=ACTOR_ID,
        academic_type=AcademicType.SUPERIOR,
    )


@pytest.fixture
def secondary_scope() -> TenantScope:
    """Scope of a secondary-education institution."""
    return TenantScope(
        institution_id=INSTITUTION_A,
        actor_id=ACTOR_ID,
        academic_type=AcademicType.SECONDARY,
    )


@pytest.fixture
def student_id() -> str:
    """Provide a sample student ID for testing."""
    return STUDENT_ID

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users
- Resolve the tenant scope of the request
- Get service instances

Example:
    @router.get("/academic-years")
    async def list_academic_years(
        scope: Scope,
        service: PeriodService,
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.core.exceptions import ForbiddenError
from src.domains.academic_block import DatabaseAcademicBlockGate
from src.domains.academic_period import AcademicPeriodStateMachine, GradingWindowGuard
from src.domains.audit import AuditService
from src.domains.completion import (
    AcademicRecordAggregator,
    CompletionEligibilityEngine,
    CourseCompletionService,
)
from src.domains.grading import GradeService
from src.domains.tenancy import TenantScope, TenantScopeResolver
from src.infrastructure.database.connection import get_session

logger = logging.getLogger(__name__)

# Header a global caller uses to select the institution of one request
INSTITUTION_SCOPE_HEADER = "X-Institution-Scope"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a request-scoped database session.

    Yields:
        AsyncSession bound to the shared database.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_period_admin(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
    """Require a role allowed to change academic periods.

    Raises:
        HTTPException: If the user has none of the period admin roles.
    """
    roles = get_settings().academic.period_admin_roles
    if not user.has_any_role(*roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrative access required",
        )
    return user


# =========================================================================
# Tenant Dependencies
# =========================================================================


def get_tenant_resolver() -> TenantScopeResolver:
    """Get the tenant scope resolver."""
    return TenantScopeResolver(global_role=get_settings().academic.global_role)


def require_tenant_scope(
    user: CurrentUser = Depends(require_auth),
    resolver: TenantScopeResolver = Depends(get_tenant_resolver),
    requested_institution: str | None = Header(default=None, alias=INSTITUTION_SCOPE_HEADER),
) -> TenantScope:
    """Resolve the tenant scope of the request.

    Only the verified token and, for the global role, the scope header are
    consulted. Institution ids in bodies or query strings are never used.

    Raises:
        HTTPException: 403 with a generic message if no scope can be resolved.
    """
    try:
        return resolver.resolve(user, requested_institution)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)


# =========================================================================
# Service Dependencies
# =========================================================================


def get_period_service(db: AsyncSession = Depends(get_db)) -> AcademicPeriodStateMachine:
    """Get AcademicPeriodStateMachine instance."""
    return AcademicPeriodStateMachine(db, AuditService(db))


def get_grading_window_guard(db: AsyncSession = Depends(get_db)) -> GradingWindowGuard:
    """Get GradingWindowGuard instance."""
    return GradingWindowGuard(db, get_settings().academic)


def get_grade_service(
    db: AsyncSession = Depends(get_db),
    guard: GradingWindowGuard = Depends(get_grading_window_guard),
) -> GradeService:
    """Get GradeService instance."""
    return GradeService(db, guard)


def get_completion_service(db: AsyncSession = Depends(get_db)) -> CourseCompletionService:
    """Get CourseCompletionService instance.

    Args:
        db: Database session shared by the engine and its collaborators.

    Returns:
        CourseCompletionService.
    """
    policy = get_settings().academic
    engine = CompletionEligibilityEngine(
        db,
        block_gate=DatabaseAcademicBlockGate(db),
        policy=policy,
        periods=AcademicPeriodStateMachine(db),
        aggregator=AcademicRecordAggregator(db, policy),
    )
    return CourseCompletionService(db, engine, AuditService(db))


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

DB = Annotated[AsyncSession, Depends(get_db)]
AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
PeriodAdmin = Annotated[CurrentUser, Depends(require_period_admin)]
Scope = Annotated[TenantScope, Depends(require_tenant_scope)]
PeriodService = Annotated[AcademicPeriodStateMachine, Depends(get_period_service)]
WindowGuard = Annotated[GradingWindowGuard, Depends(get_grading_window_guard)]
Grades = Annotated[GradeService, Depends(get_grade_service)]
Completions = Annotated[CourseCompletionService, Depends(get_completion_service)]

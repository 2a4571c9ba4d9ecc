# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic closure API endpoints.

- GET / - List closure records
- POST /begin - OPEN or REOPENED -> CLOSING
- POST /finish - CLOSING -> CLOSED
- POST /reopen - CLOSED -> REOPENED (justification required, audited)

A reopen request without a non-blank justification is rejected by request
validation (422) before any service code runs.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query

from src.api.dependencies import PeriodAdmin, PeriodService, Scope
from src.api.v1.errors import to_http_exception
from src.core.exceptions import AcademicCoreError
from src.models.academic_period import (
    ClosureRecordResponse,
    ClosureReopenRequest,
    ClosureTransitionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=list[ClosureRecordResponse],
    summary="List closure records",
)
async def list_closures(
    scope: Scope,
    service: PeriodService,
    academic_year: Annotated[int | None, Query(description="Academic year number")] = None,
) -> list[ClosureRecordResponse]:
    return await service.list_closures(scope, academic_year)


@router.post(
    "/begin",
    response_model=ClosureRecordResponse,
    summary="Begin closing a period",
)
async def begin_closing(
    data: ClosureTransitionRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> ClosureRecordResponse:
    logger.info(
        "Begin closing %s/%s by %s", data.academic_year, data.period_tag.value, current_user.id
    )
    try:
        return await service.begin_closing(scope, data.academic_year, data.period_tag, data.notes)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.post(
    "/finish",
    response_model=ClosureRecordResponse,
    summary="Finish closing a period",
)
async def finish_closing(
    data: ClosureTransitionRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> ClosureRecordResponse:
    logger.info(
        "Finish closing %s/%s by %s", data.academic_year, data.period_tag.value, current_user.id
    )
    try:
        return await service.finish_closing(scope, data.academic_year, data.period_tag, data.notes)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.post(
    "/reopen",
    response_model=ClosureRecordResponse,
    summary="Reopen a closed period",
    description="Reopen a CLOSED period. A justification is mandatory.",
)
async def reopen_closure(
    data: ClosureReopenRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> ClosureRecordResponse:
    logger.info(
        "Reopening %s/%s by %s", data.academic_year, data.period_tag.value, current_user.id
    )
    try:
        return await service.reopen_closure(
            scope, data.academic_year, data.period_tag, data.justification
        )
    except AcademicCoreError as e:
        raise to_http_exception(e)

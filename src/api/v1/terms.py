# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Term (semester / trimester) API endpoints.

- POST / - Create a term in an academic year
- GET / - List the terms of an academic year
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.api.dependencies import PeriodAdmin, PeriodService, Scope
from src.api.v1.errors import to_http_exception
from src.core.exceptions import AcademicCoreError
from src.models.academic_period import TermCreateRequest, TermResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=TermResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create term",
    description=(
        "Create a semester (higher education) or trimester (secondary education). "
        "Requires a period admin role."
    ),
)
async def create_term(
    data: TermCreateRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> TermResponse:
    logger.info(
        "Creating %s %s in year %s by %s",
        data.term_type.value,
        data.number,
        data.academic_year_id,
        current_user.id,
    )
    try:
        return await service.create_term(scope, data)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=list[TermResponse],
    summary="List terms",
)
async def list_terms(
    academic_year_id: Annotated[UUID, Query(description="Academic year")],
    scope: Scope,
    service: PeriodService,
) -> list[TermResponse]:
    try:
        return await service.list_terms(scope, academic_year_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)

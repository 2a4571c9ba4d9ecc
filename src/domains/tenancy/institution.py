# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution lookups bound to a tenant scope."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError, ValidationError
from src.domains.tenancy.scope import TenantScope
from src.infrastructure.database.models import Institution
from src.models.enums import AcademicType

logger = logging.getLogger(__name__)


async def get_institution(db: AsyncSession, scope: TenantScope) -> Institution:
    """Load the institution the scope is bound to.

    Institution is the tenant root, so its own primary key is the predicate.

    Raises:
        NotFoundError: If the institution does not exist.
    """
    query = select(Institution).where(Institution.id == scope.institution_id)
    result = await db.execute(query)
    institution = result.scalar_one_or_none()
    if institution is None:
        raise NotFoundError("Institution not found")
    return institution


async def resolve_academic_type(
    db: AsyncSession,
    scope: TenantScope,
    fallback: AcademicType | str | None = None,
) -> AcademicType:
    """Determine the institution variant for a request.

    The trusted session value wins; a fallback supplied by a trusted caller
    comes next; the institution row is read last.

    Args:
        db: Async database session.
        scope: Resolved tenant scope.
        fallback: Academic type known to the calling service, if any.

    Returns:
        The academic type.

    Raises:
        NotFoundError: If a lookup is needed and the institution is missing.
        ValidationError: If the stored academic type is not recognized.
    """
    if scope.academic_type is not None:
        return scope.academic_type

    if fallback is not None:
        return AcademicType(fallback)

    institution = await get_institution(db, scope)
    try:
        return AcademicType(institution.academic_type)
    except ValueError:
        logger.error(
            "Institution %s has unknown academic type %s",
            institution.id,
            institution.academic_type,
        )
        raise ValidationError("Institution academic type is not configured")

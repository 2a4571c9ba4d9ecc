# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant scope resolution and query scoping.

The institution a request acts on is derived from the verified session
only. Identifiers sent in request bodies or query strings never take part
in resolution. The resulting TenantScope is passed explicitly to every
service call and every query is built through it, so an unscoped query is
visible at the call site.

Example:
    >>> resolver = TenantScopeResolver()
    >>> scope = resolver.resolve(current_user)
    >>> stmt = scope.select(AcademicYear).where(AcademicYear.status == "ACTIVE")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import ColumnElement, Select, Update, select, update

from src.core.exceptions import ForbiddenError
from src.models.enums import AcademicType

logger = logging.getLogger(__name__)

StatementT = TypeVar("StatementT", Select, Update)

DEFAULT_GLOBAL_ROLE = "super_admin"


class SessionContext(Protocol):
    """Verified identity of the caller, as decoded from the access token."""

    id: str
    institution_id: str | None
    academic_type: str | None
    roles: Sequence[str]
    authorized_institution_ids: Sequence[str]


@dataclass(frozen=True)
class TenantScope:
    """Resolved institution scope of one request.

    Attributes:
        institution_id: Institution every query is restricted to.
        actor_id: Authenticated user performing the action.
        academic_type: Institution variant from the trusted session, if known.
        is_global: Whether the caller holds the global role.
    """

    institution_id: str
    actor_id: str | None = None
    academic_type: AcademicType | None = None
    is_global: bool = False

    def where(self, model: Any) -> ColumnElement[bool]:
        """Mandatory tenant predicate for a model."""
        return model.institution_id == self.institution_id

    def select(self, *entities: Any) -> Select:
        """Start a SELECT over the given entities restricted to this tenant.

        The first entity must be a mapped class carrying institution_id.
        """
        return select(*entities).where(self.where(entities[0]))

    def update(self, model: Any) -> Update:
        """Start an UPDATE restricted to this tenant."""
        return update(model).where(self.where(model))

    def owns(self, row: Any) -> bool:
        """Check that a loaded row belongs to this tenant."""
        return row is not None and str(row.institution_id) == self.institution_id


def scoped(stmt: StatementT, model: Any, scope: TenantScope) -> StatementT:
    """Apply the tenant predicate of a joined model to an existing statement.

    Args:
        stmt: SELECT or UPDATE statement under construction.
        model: Mapped class whose institution_id must match.
        scope: Resolved tenant scope.

    Returns:
        The statement with the predicate added.
    """
    return stmt.where(scope.where(model))


def _normalize_uuid(value: str | None) -> str | None:
    """Return the canonical UUID string, None for empty, ForbiddenError if malformed."""
    if value is None or value == "":
        return None
    try:
        return str(UUID(str(value)))
    except ValueError:
        raise ForbiddenError()


def _parse_academic_type(value: str | None) -> AcademicType | None:
    if not value:
        return None
    try:
        return AcademicType(value.upper())
    except ValueError:
        logger.warning("Ignoring unknown academic type claim: %s", value)
        return None


class TenantScopeResolver:
    """Derive the tenant scope of a request from its verified session.

    Non-privileged callers are bound to the institution in their token.
    The global role may act on one institution per call, selected through
    a dedicated scope header and only when that institution is listed in the
    token's separately authorized institutions.

    Attributes:
        global_role: Role code of the privileged global caller.
    """

    def __init__(self, global_role: str = DEFAULT_GLOBAL_ROLE) -> None:
        """Initialize the resolver.

        Args:
            global_role: Role code treated as the global privileged role.
        """
        self.global_role = global_role

    def resolve(
        self,
        context: SessionContext | None,
        requested_institution_id: str | None = None,
    ) -> TenantScope:
        """Resolve the tenant scope for a caller.

        Args:
            context: Verified session context. None means unauthenticated.
            requested_institution_id: Target selected by a global caller
                through the scope header. Ignored for every other role.

        Returns:
            The resolved TenantScope.

        Raises:
            ForbiddenError: If no single authorized institution can be resolved.
        """
        if context is None:
            raise ForbiddenError()

        actor_id = _normalize_uuid(context.id)
        if actor_id is None:
            raise ForbiddenError()

        is_global = self.global_role in context.roles
        own_institution = _normalize_uuid(context.institution_id)

        if not is_global:
            if requested_institution_id:
                logger.debug(
                    "Ignoring requested institution for non-global caller %s",
                    context.id,
                )
            if own_institution is None:
                logger.warning("Caller %s has no institution in session", context.id)
                raise ForbiddenError()
            return TenantScope(
                institution_id=own_institution,
                actor_id=actor_id,
                academic_type=_parse_academic_type(context.academic_type),
            )

        target = _normalize_uuid(requested_institution_id)
        if target is None:
            if own_institution is None:
                logger.warning("Global caller %s did not select an institution", context.id)
                raise ForbiddenError()
            return TenantScope(
                institution_id=own_institution,
                actor_id=actor_id,
                academic_type=_parse_academic_type(context.academic_type),
                is_global=True,
            )

        authorized = set()
        for value in context.authorized_institution_ids:
            try:
                authorized.add(str(UUID(str(value))))
            except ValueError:
                continue

        if target not in authorized and target != own_institution:
            logger.warning(
                "Global caller %s requested unauthorized institution %s",
                context.id,
                target,
            )
            raise ForbiddenError()

        # Academic type claim describes the token's own institution only
        academic_type = (
            _parse_academic_type(context.academic_type) if target == own_institution else None
        )
        return TenantScope(
            institution_id=target,
            actor_id=actor_id,
            academic_type=academic_type,
            is_global=True,
        )

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution (tenant) model.

Institutions are provisioned outside this service and are read-only here.
"""

from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, created_at_column, id_column


class Institution(Base):
    """Root scoping entity. Every other table carries its id."""

    __tablename__ = "institutions"

    id: Mapped[str] = id_column()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    academic_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Overrides the configured default when a period has no window or closure
    grading_window_policy: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = created_at_column()

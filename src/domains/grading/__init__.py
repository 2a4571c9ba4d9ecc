# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade entry domain package."""

from src.domains.grading.service import GradeService

__all__ = ["GradeService"]

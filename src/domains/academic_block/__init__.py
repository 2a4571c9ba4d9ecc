# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic block domain package."""

from src.domains.academic_block.gate import (
    NOT_BLOCKED,
    AcademicBlockGate,
    BlockDecision,
    DatabaseAcademicBlockGate,
)

__all__ = [
    "AcademicBlockGate",
    "BlockDecision",
    "DatabaseAcademicBlockGate",
    "NOT_BLOCKED",
]

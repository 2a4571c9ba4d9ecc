# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period structure rules per institution type.

SUPERIOR institutions divide a year into two semesters (closure tags
SEMESTER_1, SEMESTER_2). SECONDARY institutions divide it into three
trimesters (closure tags TERM_1..TERM_3). FULL_YEAR applies to both.
"""

from src.core.exceptions import ValidationError
from src.models.enums import AcademicType, PeriodTag, TermType

TERM_TYPE_BY_ACADEMIC_TYPE: dict[AcademicType, TermType] = {
    AcademicType.SUPERIOR: TermType.SEMESTER,
    AcademicType.SECONDARY: TermType.TRIMESTER,
}

TERM_COUNT: dict[TermType, int] = {
    TermType.SEMESTER: 2,
    TermType.TRIMESTER: 3,
}

_TAG_PREFIX: dict[TermType, str] = {
    TermType.SEMESTER: "SEMESTER",
    TermType.TRIMESTER: "TERM",
}


def term_type_for(academic_type: AcademicType) -> TermType:
    """Term type used by institutions of the given academic type."""
    return TERM_TYPE_BY_ACADEMIC_TYPE[AcademicType(academic_type)]


def validate_period(
    academic_type: AcademicType,
    term_type: TermType,
    number: int,
) -> None:
    """Check that a term type and number are valid for an institution type.

    Raises:
        ValidationError: If the term type belongs to the other institution
            type or the number is out of range.
    """
    expected = term_type_for(academic_type)
    term_type = TermType(term_type)
    if term_type != expected:
        raise ValidationError(
            f"{term_type.value} periods are not valid for {AcademicType(academic_type).value} "
            f"institutions; use {expected.value}"
        )
    if not 1 <= number <= TERM_COUNT[term_type]:
        raise ValidationError(
            f"{term_type.value} number must be between 1 and {TERM_COUNT[term_type]}"
        )


def period_tag_for(term_type: TermType, number: int) -> PeriodTag:
    """Closure tag of a term, e.g. (SEMESTER, 1) -> SEMESTER_1."""
    return PeriodTag(f"{_TAG_PREFIX[TermType(term_type)]}_{number}")


def term_of_tag(tag: PeriodTag) -> tuple[TermType, int] | None:
    """Inverse of period_tag_for. FULL_YEAR has no single term and maps to None."""
    tag = PeriodTag(tag)
    if tag == PeriodTag.FULL_YEAR:
        return None
    prefix, _, number = tag.value.rpartition("_")
    for term_type, tag_prefix in _TAG_PREFIX.items():
        if tag_prefix == prefix:
            return term_type, int(number)
    return None


def tags_for(academic_type: AcademicType) -> list[PeriodTag]:
    """Term closure tags of an institution type, FULL_YEAR excluded."""
    term_type = term_type_for(academic_type)
    return [period_tag_for(term_type, n) for n in range(1, TERM_COUNT[term_type] + 1)]


def validate_period_tag(academic_type: AcademicType, tag: PeriodTag) -> None:
    """Reject closure tags that belong to the other institution type.

    Raises:
        ValidationError: If the tag is not usable by the institution.
    """
    tag = PeriodTag(tag)
    if tag == PeriodTag.FULL_YEAR:
        return
    if tag not in tags_for(academic_type):
        raise ValidationError(
            f"Period {tag.value} is not valid for {AcademicType(academic_type).value} institutions"
        )

"""
Mapping reconstructed rows onto the caller's subject list.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

from .assembler import Row
from .schema import GradeSchema

logger = logging.getLogger(__name__)

DEFAULT_CREDITS = 3


@dataclass
class Subject:
    """One academic subject as the calculating workflow sees it."""
    name: str = ""
    credits: int = 0
    grade: Optional[str] = None
    needs_review: bool = False

    @property
    def is_blank(self) -> bool:
        return self.credits == 0 and self.grade is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "credits": self.credits,
            "grade": self.grade,
            "needs_review": self.needs_review,
        }


def apply_rows(
    subjects: Sequence[Subject],
    rows: Sequence[Row],
    default_credits: int = DEFAULT_CREDITS,
    schema: Optional[GradeSchema] = None
) -> List[Subject]:
    """
    Map rows onto subjects in reading order.

    Row ``i`` updates subject ``i``; subjects are appended when there are
    more rows than subjects. Missing row fields keep the subject's value
    (or ``default_credits`` for a subject with no credits yet). When every
    subject is still blank the list is sized to the rows, so unused
    placeholders are dropped. The input list is not modified.

    Args:
        subjects: Current subjects
        rows: Reconstructed rows, top-to-bottom
        default_credits: Credits for rows whose credit count was not read
        schema: When given, grades not in the schema are discarded

    Returns:
        New subject list
    """
    result = [replace(s) for s in subjects]
    if rows and all(s.is_blank for s in result):
        dropped = max(0, len(result) - len(rows))
        result = result[:len(rows)]
        if dropped:
            logger.debug(f"Dropped {dropped} blank placeholder subjects")

    for i, row in enumerate(rows):
        if i >= len(result):
            result.append(Subject(name=f"Subject {i + 1}"))
        subject = result[i]

        grade = row.grade
        if grade is not None and schema is not None and grade not in schema:
            logger.warning(f"Row {i + 1}: grade {grade!r} is not in schema {schema.name!r}")
            grade = None

        if row.credits is not None:
            credits = row.credits
        else:
            credits = subject.credits or default_credits

        result[i] = replace(
            subject,
            credits=credits,
            grade=grade if grade is not None else subject.grade,
            needs_review=row.needs_review or grade is None,
        )

    added = max(0, len(rows) - len(subjects))
    logger.info(f"Applied {len(rows)} rows to subjects ({added} added)")
    return result

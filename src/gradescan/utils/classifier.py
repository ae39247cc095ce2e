"""
Fragment classification.

Labels each recognized fragment as a credit candidate, a grade candidate,
or noise, before any spatial reasoning happens.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .layout import Fragment
from .schema import GradeSchema
from .symbols import SymbolMatcher, to_digits

logger = logging.getLogger(__name__)

CREDIT_PATTERN = re.compile(r"^\d{1,2}$")

DEFAULT_CREDIT_MIN = 0
DEFAULT_CREDIT_MAX = 25


class CandidateKind(Enum):
    """Role inferred for a fragment."""
    CREDIT = "credit"
    GRADE = "grade"
    NOISE = "noise"


@dataclass(frozen=True)
class Candidate:
    """A fragment tagged with its inferred role."""
    fragment: Fragment
    kind: CandidateKind
    value: Optional[int] = None    # credits, for CREDIT
    symbol: Optional[str] = None   # schema symbol, for GRADE

    @property
    def is_credit(self) -> bool:
        return self.kind is CandidateKind.CREDIT

    @property
    def is_grade(self) -> bool:
        return self.kind is CandidateKind.GRADE

    @property
    def is_noise(self) -> bool:
        return self.kind is CandidateKind.NOISE


def normalize_credit_text(text: str) -> str:
    """Trim, uppercase, drop '.' and ',', map letter look-alikes to digits."""
    cleaned = text.strip().upper().replace(".", "").replace(",", "")
    return to_digits(cleaned)


def parse_credits(
    text: str,
    credit_min: int = DEFAULT_CREDIT_MIN,
    credit_max: int = DEFAULT_CREDIT_MAX
) -> Optional[int]:
    """Return the credit count a fragment reads as, or None."""
    normalized = normalize_credit_text(text)
    if not CREDIT_PATTERN.match(normalized):
        return None
    value = int(normalized)
    if credit_min <= value <= credit_max:
        return value
    return None


class FragmentClassifier:
    """
    Classifies fragments against one grading schema.

    Rules, first match wins:
    - normalized text is a one- or two-digit number in the credit range: CREDIT
    - original (uppercased) text matches a schema symbol: GRADE
    - otherwise NOISE
    """

    def __init__(
        self,
        schema: GradeSchema,
        credit_min: int = DEFAULT_CREDIT_MIN,
        credit_max: int = DEFAULT_CREDIT_MAX
    ):
        if credit_min < 0 or credit_max < credit_min:
            raise ValueError(f"Invalid credit range: {credit_min}..{credit_max}")
        self.schema = schema
        self.credit_min = credit_min
        self.credit_max = credit_max
        self.matcher = SymbolMatcher(schema)

    def classify(self, fragment: Fragment) -> Candidate:
        credits = parse_credits(fragment.text, self.credit_min, self.credit_max)
        if credits is not None:
            return Candidate(fragment, CandidateKind.CREDIT, value=credits)

        symbol = self.matcher.match(fragment.text)
        if symbol is not None:
            return Candidate(fragment, CandidateKind.GRADE, symbol=symbol)

        return Candidate(fragment, CandidateKind.NOISE)

    def classify_all(self, fragments: Sequence[Fragment]) -> List[Candidate]:
        candidates = [self.classify(f) for f in fragments]
        num_credits = sum(1 for c in candidates if c.is_credit)
        num_grades = sum(1 for c in candidates if c.is_grade)
        logger.debug(
            f"Classified {len(candidates)} fragments: "
            f"{num_credits} credits, {num_grades} grades"
        )
        return candidates


def classify(
    fragment: Fragment,
    schema: GradeSchema,
    credit_min: int = DEFAULT_CREDIT_MIN,
    credit_max: int = DEFAULT_CREDIT_MAX
) -> Candidate:
    """Classify a single fragment (see FragmentClassifier)."""
    return FragmentClassifier(schema, credit_min, credit_max).classify(fragment)

"""
Grade symbol matching.

Resolves a raw recognized string to the closest valid symbol of a grading
schema using, in order: exact match, confusable-character substitution, and
a bounded Levenshtein fuzzy match.
"""

import logging
from typing import Dict, Optional

from .schema import GradeSchema

logger = logging.getLogger(__name__)


# ============================================================================
# Confusable Characters
# ============================================================================

# Digits and strokes read where a letter was printed
LETTER_CONFUSABLES: Dict[str, str] = {
    "0": "O",
    "1": "I",
    "|": "I",
    "8": "B",
}

# Letters read where a digit was printed. "B" -> "8" is left out on purpose:
# it would turn the grade "B" into a credit count.
DIGIT_CONFUSABLES: Dict[str, str] = {
    "O": "0",
    "I": "1",
    "L": "1",
    "|": "1",
    "S": "5",
}

MAX_EDIT_DISTANCE = 1


def substitute(text: str, table: Dict[str, str]) -> str:
    """Replace every character found in ``table``."""
    return "".join(table.get(ch, ch) for ch in text)


def to_letters(text: str) -> str:
    return substitute(text, LETTER_CONFUSABLES)


def to_digits(text: str) -> str:
    return substitute(text, DIGIT_CONFUSABLES)


# ============================================================================
# Edit Distance
# ============================================================================

def levenshtein(a: str, b: str) -> int:
    """
    Levenshtein distance with unit insert/delete/substitute costs.

    Uses two rolling rows sized by the shorter string.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    current = [0] * (len(b) + 1)

    for i, ca in enumerate(a, start=1):
        current[0] = i
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            )
        previous, current = current, previous

    return previous[len(b)]


# ============================================================================
# Symbol Matching
# ============================================================================

def match_symbol(raw: str, schema: GradeSchema) -> Optional[str]:
    """
    Find the schema symbol a recognized string most likely stands for.

    Args:
        raw: Recognized text (any case, surrounding whitespace ignored)
        schema: Grading schema to match against

    Returns:
        The schema's spelling of the matched symbol, or None
    """
    text = raw.strip().upper()
    if not text:
        return None

    # 1. Exact (case-insensitive)
    entry = schema.get(text)
    if entry is not None:
        return entry.symbol

    # 2. Digit-for-letter confusables
    substituted = to_letters(text)
    entry = schema.get(substituted)
    if entry is not None:
        logger.debug(f"Matched {raw!r} -> {entry.symbol!r} via substitution")
        return entry.symbol

    # 3. Bounded fuzzy match, first symbol in schema order wins
    for entry in schema.entries:
        symbol = entry.symbol.upper()
        if abs(len(symbol) - len(substituted)) > MAX_EDIT_DISTANCE:
            continue
        if levenshtein(substituted, symbol) <= MAX_EDIT_DISTANCE:
            logger.debug(f"Matched {raw!r} -> {entry.symbol!r} via edit distance")
            return entry.symbol

    return None


class SymbolMatcher:
    """Symbol matcher bound to one schema, with a per-instance cache."""

    def __init__(self, schema: GradeSchema):
        self.schema = schema
        self._cache: Dict[str, Optional[str]] = {}

    def match(self, raw: str) -> Optional[str]:
        key = raw.strip().upper()
        if key not in self._cache:
            self._cache[key] = match_symbol(key, self.schema)
        return self._cache[key]

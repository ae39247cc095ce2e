"""
Row assembler: reconstructs grade-table rows from recognized fragments.

Provides:
- Row data model
- Vertical-overlap clustering (primary strategy)
- Count-equality column zipping (guarded fast path)
- Nearest-neighbour credit -> grade pairing (fallback)
"""

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .classifier import (
    Candidate,
    DEFAULT_CREDIT_MAX,
    DEFAULT_CREDIT_MIN,
    FragmentClassifier,
)
from .layout import Fragment
from .schema import GradeSchema

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

HEADER_KEYWORDS: Tuple[str, ...] = ("CREDIT", "GRADE", "SUBJECT", "CODE")

STRATEGIES: Tuple[str, ...] = ("auto", "cluster", "nearest")

CONFIDENCE_COMPLETE = 1.0  # clustered or zipped row with both fields
CONFIDENCE_PAIRED = 0.8    # nearest-neighbour pair
CONFIDENCE_PARTIAL = 0.5   # only one field resolved

REVIEW_THRESHOLD = 1.0

DEFAULT_OVERLAP_RATIO = 0.3
DEFAULT_PAIRING_TOLERANCE = 1.5
DEFAULT_ZIP_MIN_ROWS = 2


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Row:
    """One reconstructed table line."""
    credits: Optional[int] = None
    grade: Optional[str] = None
    confidence: float = 0.0
    center_y: Optional[float] = None  # vertical anchor in image pixels
    strategy: str = ""

    @property
    def is_complete(self) -> bool:
        return self.credits is not None and self.grade is not None

    @property
    def needs_review(self) -> bool:
        return self.confidence < REVIEW_THRESHOLD or not self.is_complete

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credits": self.credits,
            "grade": self.grade,
            "confidence": round(self.confidence, 3),
            "needs_review": self.needs_review,
            "center_y": self.center_y,
            "strategy": self.strategy,
        }


# ============================================================================
# Spatial Helpers
# ============================================================================

def cluster_rows(
    candidates: Sequence[Candidate],
    overlap_ratio: float = DEFAULT_OVERLAP_RATIO
) -> List[List[Candidate]]:
    """
    Group classified fragments into table lines.

    ``candidates`` must already be sorted top-to-bottom. A fragment joins the
    first open row whose anchor (first fragment) shares more than
    ``overlap_ratio`` of the smaller box height with it; otherwise it opens a
    new row. Rows come back in creation order, each sorted left-to-right.
    """
    rows: List[List[Candidate]] = []

    for candidate in candidates:
        box = candidate.fragment.box
        for row in rows:
            anchor = row[0].fragment.box
            if anchor.vertical_overlap(box) > overlap_ratio * min(anchor.height, box.height):
                row.append(candidate)
                break
        else:
            rows.append([candidate])

    return [
        sorted(row, key=lambda c: (c.fragment.box.left, c.fragment.sort_key()))
        for row in rows
    ]


def is_header_row(
    row: Sequence[Candidate],
    keywords: Sequence[str] = HEADER_KEYWORDS
) -> bool:
    joined = " ".join(c.fragment.text for c in row).upper()
    return any(keyword in joined for keyword in keywords)


def row_anchor(row: Sequence[Candidate]) -> Candidate:
    """The fragment that opened ``row``: the earliest one in reading order."""
    return min(row, key=lambda c: c.fragment.sort_key())


def _spans_several_lines(
    candidates: Sequence[Candidate],
    spread_ratio: float
) -> bool:
    for first, second in combinations(candidates, 2):
        a, b = first.fragment.box, second.fragment.box
        if abs(a.center_y - b.center_y) > spread_ratio * max(a.height, b.height):
            return True
    return False


def is_collapsed_row(
    row: Sequence[Candidate],
    spread_ratio: float = DEFAULT_OVERLAP_RATIO
) -> bool:
    """
    True when one cluster swallowed several table lines.

    A line holds one credit and one grade. Two credit (or two grade)
    candidates whose centers differ by more than ``spread_ratio`` times the
    larger height sit on different baselines, so a neighbouring line was
    merged in. Extra numbers printed on the same baseline do not count.
    """
    credits = [c for c in row if c.is_credit]
    grades = [c for c in row if c.is_grade]
    return (
        _spans_several_lines(credits, spread_ratio)
        or _spans_several_lines(grades, spread_ratio)
    )


def find_nearest_grade(
    credit: Candidate,
    grades: Sequence[Candidate],
    consumed: Set[int],
    tolerance: float = DEFAULT_PAIRING_TOLERANCE
) -> Optional[int]:
    """
    Index of the unconsumed grade candidate closest to the right of ``credit``.

    A grade qualifies when its center lies right of the credit's center and
    the center-y difference is below ``tolerance`` times the larger height.
    The smallest horizontal gap wins; ties go to the earlier (upper) grade.
    """
    credit_box = credit.fragment.box
    best_index = None
    best_gap = float("inf")

    for index, grade in enumerate(grades):
        if index in consumed:
            continue
        grade_box = grade.fragment.box
        if grade_box.center_x <= credit_box.center_x:
            continue
        drift = abs(grade_box.center_y - credit_box.center_y)
        if drift >= tolerance * max(credit_box.height, grade_box.height):
            continue
        gap = grade_box.left - credit_box.right
        if gap < best_gap:
            best_gap = gap
            best_index = index

    return best_index


# ============================================================================
# Row Assembler
# ============================================================================

class RowAssembler:
    """
    Reconstructs ordered (credits, grade) rows from recognized fragments.

    Strategies:
    - "auto": zip fast path when its precondition holds, otherwise
      clustering, switching to nearest-neighbour pairing when clustering
      collapses several lines into one
    - "cluster": clustering only
    - "nearest": nearest-neighbour pairing only

    The assembler never raises on ambiguous input; it lowers confidence or
    drops rows that carry no information.
    """

    def __init__(
        self,
        schema: GradeSchema,
        credit_min: int = DEFAULT_CREDIT_MIN,
        credit_max: int = DEFAULT_CREDIT_MAX,
        overlap_ratio: float = DEFAULT_OVERLAP_RATIO,
        pairing_tolerance: float = DEFAULT_PAIRING_TOLERANCE,
        header_keywords: Sequence[str] = HEADER_KEYWORDS,
        strategy: str = "auto",
        zip_fast_path: bool = True,
        zip_min_rows: int = DEFAULT_ZIP_MIN_ROWS
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy: {strategy!r} (expected one of {STRATEGIES})")
        if not 0.0 <= overlap_ratio < 1.0:
            raise ValueError(f"overlap_ratio must be in [0, 1): {overlap_ratio}")
        if pairing_tolerance <= 0:
            raise ValueError(f"pairing_tolerance must be positive: {pairing_tolerance}")

        self.schema = schema
        self.overlap_ratio = overlap_ratio
        self.pairing_tolerance = pairing_tolerance
        self.header_keywords = tuple(k.upper() for k in header_keywords)
        self.strategy = strategy
        self.zip_fast_path = zip_fast_path
        self.zip_min_rows = max(2, zip_min_rows)
        self.classifier = FragmentClassifier(schema, credit_min, credit_max)

    def assemble(self, fragments: Sequence[Fragment]) -> List[Row]:
        """
        Reconstruct rows, top-to-bottom.

        Args:
            fragments: Recognized fragments in any order

        Returns:
            List of Row objects (empty for empty input)
        """
        if not fragments:
            return []

        ordered = sorted(fragments, key=Fragment.sort_key)
        candidates = self.classifier.classify_all(ordered)
        credits = [c for c in candidates if c.is_credit]
        grades = [c for c in candidates if c.is_grade]

        if self.strategy == "nearest":
            rows = self._pair_nearest(credits, grades)
        elif self.strategy == "auto" and self._can_zip(credits, grades):
            rows = self._zip(credits, grades)
        else:
            clusters = cluster_rows(candidates, self.overlap_ratio)
            collapsed = any(is_collapsed_row(c, self.overlap_ratio) for c in clusters)
            if self.strategy == "auto" and collapsed:
                logger.info("Clustering merged several table lines, using nearest-neighbour pairing")
                rows = self._pair_nearest(credits, grades)
            else:
                rows = self._resolve_clusters(clusters)

        logger.info(
            f"Reconstructed {len(rows)} rows from {len(fragments)} fragments "
            f"({len(credits)} credit / {len(grades)} grade candidates)"
        )
        return rows

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _can_zip(self, credits: Sequence[Candidate], grades: Sequence[Candidate]) -> bool:
        return (
            self.zip_fast_path
            and len(credits) == len(grades)
            and len(credits) >= self.zip_min_rows
        )

    def _zip(self, credits: Sequence[Candidate], grades: Sequence[Candidate]) -> List[Row]:
        """Pair the i-th credit with the i-th grade, both sorted top-to-bottom."""
        logger.debug(f"Zipping {len(credits)} credit/grade columns")
        rows = []
        for credit, grade in zip(credits, grades):
            row = self._make_row(
                credit.value,
                grade.symbol,
                CONFIDENCE_COMPLETE,
                credit.fragment.box.center_y,
                "zip",
            )
            if row is not None:
                rows.append(row)
        return rows

    def _resolve_clusters(self, clusters: Sequence[Sequence[Candidate]]) -> List[Row]:
        rows = []
        for cluster in clusters:
            if is_header_row(cluster, self.header_keywords):
                logger.debug(f"Skipping header row: {' '.join(c.fragment.text for c in cluster)!r}")
                continue

            credit = next((c for c in cluster if c.is_credit), None)
            grade = next((c for c in cluster if c.is_grade), None)
            center_y = row_anchor(cluster).fragment.box.center_y

            row = self._make_row(
                credit.value if credit is not None else None,
                grade.symbol if grade is not None else None,
                CONFIDENCE_COMPLETE,
                center_y,
                "cluster",
            )
            if row is None:
                logger.debug(f"Dropping row without credits or grade at y={center_y:.0f}")
                continue
            rows.append(row)
        return rows

    def _pair_nearest(self, credits: Sequence[Candidate], grades: Sequence[Candidate]) -> List[Row]:
        consumed: Set[int] = set()
        rows: List[Row] = []

        for credit in credits:
            index = find_nearest_grade(credit, grades, consumed, self.pairing_tolerance)
            symbol = None
            if index is not None:
                consumed = consumed | {index}
                symbol = grades[index].symbol
            row = self._make_row(
                credit.value,
                symbol,
                CONFIDENCE_PAIRED,
                credit.fragment.box.center_y,
                "nearest",
            )
            if row is not None:
                rows.append(row)

        for index, grade in enumerate(grades):
            if index in consumed:
                continue
            row = self._make_row(
                None,
                grade.symbol,
                CONFIDENCE_PAIRED,
                grade.fragment.box.center_y,
                "nearest",
            )
            if row is not None:
                rows.append(row)

        # sorted() is stable, so pairs keep their order on equal heights
        return sorted(rows, key=lambda r: r.center_y)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _make_row(
        self,
        credits: Optional[int],
        symbol: Optional[str],
        complete_confidence: float,
        center_y: float,
        strategy: str
    ) -> Optional[Row]:
        # Audit / pass-fail grades carry no printed credit value
        if symbol is not None and not self.schema.is_credit_bearing(symbol):
            credits = 0

        if credits is None and symbol is None:
            return None

        if credits is not None and symbol is not None:
            confidence = complete_confidence
        else:
            confidence = CONFIDENCE_PARTIAL

        return Row(
            credits=credits,
            grade=symbol,
            confidence=confidence,
            center_y=center_y,
            strategy=strategy,
        )


# ============================================================================
# Convenience Functions
# ============================================================================

def reconstruct(
    fragments: Sequence[Fragment],
    schema: GradeSchema,
    **kwargs
) -> List[Row]:
    """Reconstruct rows with a one-off RowAssembler (kwargs as its constructor)."""
    return RowAssembler(schema, **kwargs).assemble(fragments)


def rows_needing_review(rows: Sequence[Row]) -> List[int]:
    """Indices of rows the user should confirm before they are accepted."""
    return [i for i, row in enumerate(rows) if row.needs_review]

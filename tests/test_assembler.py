"""
Tests for row reconstruction.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def make_fragment(text, left=0, top=0, width=30, height=20):
    from gradescan.utils.layout import BoundingBox, Fragment
    return Fragment(text, BoundingBox(left, top, left + width, top + height))


def table_fragments(rows, row_pitch=40, credit_x=100, grade_x=200):
    """Fragments for a clean two-column table, one line per (credits, grade)."""
    fragments = []
    for i, (credits, grade) in enumerate(rows):
        top = i * row_pitch
        if credits is not None:
            fragments.append(make_fragment(credits, left=credit_x, top=top))
        if grade is not None:
            fragments.append(make_fragment(grade, left=grade_x, top=top))
    return fragments


def skewed_fragments():
    """Two lines close enough for clustering to merge, plus a lone credit."""
    return [
        make_fragment("4", left=100, top=0),
        make_fragment("AA", left=200, top=2),
        make_fragment("3", left=100, top=10),
        make_fragment("BB", left=200, top=12),
        make_fragment("2", left=100, top=100),
    ]


class TestScenarios:
    """Single-line reconstruction scenarios."""

    @pytest.fixture
    def assembler(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU
        return RowAssembler(DBATU)

    def test_credit_and_grade_on_one_line(self, assembler):
        rows = assembler.assemble([make_fragment("5", 100, 0), make_fragment("AA", 200, 0)])

        assert len(rows) == 1
        assert rows[0].credits == 5
        assert rows[0].grade == "AA"
        assert rows[0].confidence == 1.0
        assert rows[0].needs_review is False

    def test_letter_o_read_for_zero(self, assembler):
        rows = assembler.assemble([make_fragment("O5", 100, 0), make_fragment("AA", 200, 0)])

        assert rows[0].credits == 5

    def test_audit_grade_alone(self, assembler):
        """Non-credit grade with no credit fragment gets credits = 0."""
        rows = assembler.assemble([make_fragment("AU", 200, 0)])

        assert len(rows) == 1
        assert rows[0].credits == 0
        assert rows[0].grade == "AU"
        assert rows[0].confidence == 1.0

    def test_header_row_excluded(self, assembler):
        fragments = [
            make_fragment("CREDITS", 100, 0, width=70),
            make_fragment("GRADE", 200, 0, width=60),
            make_fragment("4", 100, 40),
            make_fragment("AB", 200, 40),
        ]

        rows = assembler.assemble(fragments)

        assert [(r.credits, r.grade) for r in rows] == [(4, "AB")]

    def test_header_keyword_drops_whole_row(self, assembler):
        fragments = [
            make_fragment("CODE", 0, 0, width=50),
            make_fragment("3", 100, 0),
            make_fragment("AA", 200, 0),
        ]

        assert assembler.assemble(fragments) == []

    def test_digit_confusable_in_grade(self, assembler):
        rows = assembler.assemble([make_fragment("3", 100, 0), make_fragment("8B", 200, 0)])

        assert rows[0].credits == 3
        assert rows[0].grade == "BB"

    def test_empty_input(self, assembler):
        assert assembler.assemble([]) == []

    def test_noise_only_rows_dropped(self, assembler):
        fragments = [
            make_fragment("Engineering", 0, 0, width=90),
            make_fragment("Mathematics", 0, 40, width=90),
        ]

        assert assembler.assemble(fragments) == []

    def test_partial_row(self, assembler):
        rows = assembler.assemble([make_fragment("Physics", 0, 0, width=70), make_fragment("4", 100, 0)])

        assert len(rows) == 1
        assert rows[0].credits == 4
        assert rows[0].grade is None
        assert rows[0].confidence == 0.5
        assert rows[0].needs_review is True


class TestClustering:
    """Test vertical-overlap clustering."""

    def test_cluster_rows(self):
        from gradescan.utils.assembler import cluster_rows
        from gradescan.utils.classifier import FragmentClassifier
        from gradescan.utils.schema import DBATU

        fragments = sorted(
            table_fragments([("4", "AA"), ("3", "BB")]),
            key=lambda f: f.sort_key()
        )
        candidates = FragmentClassifier(DBATU).classify_all(fragments)

        clusters = cluster_rows(candidates)

        assert len(clusters) == 2
        assert [c.fragment.text for c in clusters[0]] == ["4", "AA"]
        assert [c.fragment.text for c in clusters[1]] == ["3", "BB"]

    def test_small_overlap_splits_rows(self):
        """Overlap of less than 30% of the smaller height opens a new row."""
        from gradescan.utils.assembler import cluster_rows
        from gradescan.utils.classifier import FragmentClassifier
        from gradescan.utils.schema import DBATU

        fragments = [make_fragment("4", 100, 0), make_fragment("AA", 200, 15)]
        candidates = FragmentClassifier(DBATU).classify_all(fragments)

        assert len(cluster_rows(candidates)) == 2

    def test_cluster_strategy_multi_row(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        assembler = RowAssembler(DBATU, strategy="cluster")
        rows = assembler.assemble(table_fragments([("4", "AA"), ("3", "BB"), ("2", None)]))

        assert [(r.credits, r.grade) for r in rows] == [(4, "AA"), (3, "BB"), (2, None)]
        assert all(r.strategy == "cluster" for r in rows)

    def test_collapsed_row_detection(self):
        from gradescan.utils.assembler import cluster_rows, is_collapsed_row
        from gradescan.utils.classifier import FragmentClassifier
        from gradescan.utils.schema import DBATU

        fragments = sorted(skewed_fragments(), key=lambda f: f.sort_key())
        clusters = cluster_rows(FragmentClassifier(DBATU).classify_all(fragments))

        assert is_collapsed_row(clusters[0]) is True
        assert is_collapsed_row(clusters[1]) is False

    def test_forced_cluster_keeps_collapsed_row(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, strategy="cluster").assemble(skewed_fragments())

        assert [(r.credits, r.grade) for r in rows] == [(4, "AA"), (2, None)]

    def test_merged_credit_without_grade_keeps_both_lines(self):
        """A second credit from the next baseline is not swallowed by the first line."""
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        fragments = [
            make_fragment("4", 100, 0),
            make_fragment("AA", 200, 2),
            make_fragment("3", 100, 10),
        ]
        rows = RowAssembler(DBATU).assemble(fragments)

        assert [(r.credits, r.grade, r.confidence) for r in rows] == [
            (4, "AA", 0.8),
            (3, None, 0.5),
        ]
        assert all(r.strategy == "nearest" for r in rows)
        assert rows[1].needs_review is True

    def test_extra_number_on_same_line_not_collapsed(self):
        from gradescan.utils.assembler import RowAssembler, cluster_rows, is_collapsed_row
        from gradescan.utils.classifier import FragmentClassifier
        from gradescan.utils.schema import DBATU

        fragments = [
            make_fragment("4", 100, 0),
            make_fragment("2", 140, 0),
            make_fragment("AA", 200, 0),
        ]
        clusters = cluster_rows(FragmentClassifier(DBATU).classify_all(fragments))

        assert len(clusters) == 1
        assert is_collapsed_row(clusters[0]) is False

        rows = RowAssembler(DBATU).assemble(fragments)
        assert [(r.credits, r.grade, r.strategy) for r in rows] == [(4, "AA", "cluster")]

    def test_row_anchor_is_first_in_reading_order(self):
        """The row position comes from the fragment that opened it, not the leftmost one."""
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        fragments = [make_fragment("AA", 200, 0), make_fragment("4", 100, 4)]
        rows = RowAssembler(DBATU, strategy="cluster").assemble(fragments)

        assert len(rows) == 1
        assert rows[0].center_y == 10


class TestZip:
    """Test the column-zipping fast path."""

    def test_zip_when_counts_equal(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU).assemble(
            table_fragments([("4", "AA"), ("3", "BB"), ("2", "AU")])
        )

        assert [(r.credits, r.grade) for r in rows] == [(4, "AA"), (3, "BB"), (0, "AU")]
        assert all(r.strategy == "zip" for r in rows)
        assert all(r.confidence == 1.0 for r in rows)

    def test_no_zip_for_single_pair(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU).assemble(table_fragments([("4", "AA")]))

        assert rows[0].strategy == "cluster"

    def test_no_zip_when_counts_differ(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU).assemble(
            table_fragments([("4", "AA"), ("3", "BB"), (None, "CC")])
        )

        assert all(r.strategy != "zip" for r in rows)
        assert [(r.credits, r.grade) for r in rows] == [(4, "AA"), (3, "BB"), (None, "CC")]

    def test_zip_disabled(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, zip_fast_path=False).assemble(
            table_fragments([("4", "AA"), ("3", "BB")])
        )

        assert all(r.strategy == "cluster" for r in rows)


class TestNearestNeighbour:
    """Test nearest-neighbour pairing."""

    def test_auto_falls_back_on_collapsed_rows(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU).assemble(skewed_fragments())

        assert [(r.credits, r.grade) for r in rows] == [(4, "AA"), (3, "BB"), (2, None)]
        assert [r.confidence for r in rows] == [0.8, 0.8, 0.5]
        assert all(r.strategy == "nearest" for r in rows)

    def test_standalone_non_credit_grade(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, strategy="nearest").assemble(
            table_fragments([("4", "AA"), (None, "AU"), (None, "BB")])
        )

        assert [(r.credits, r.grade, r.confidence) for r in rows] == [
            (4, "AA", 0.8),
            (0, "AU", 0.8),
            (None, "BB", 0.5),
        ]

    def test_grade_must_be_right_of_credit(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, strategy="nearest").assemble(
            [make_fragment("4", 300, 0), make_fragment("AA", 200, 0)]
        )

        assert all(not r.is_complete for r in rows)
        assert len(rows) == 2

    def test_vertical_tolerance(self):
        from gradescan.utils.assembler import find_nearest_grade
        from gradescan.utils.classifier import FragmentClassifier
        from gradescan.utils.schema import DBATU

        classifier = FragmentClassifier(DBATU)
        credit = classifier.classify(make_fragment("4", 100, 0))
        near = classifier.classify(make_fragment("AA", 200, 25))
        far = classifier.classify(make_fragment("BB", 150, 100))

        # far is closer horizontally but drifts 100px with 20px boxes
        assert find_nearest_grade(credit, [far, near], set()) == 1
        assert find_nearest_grade(credit, [far], set()) is None

    def test_consumed_grades_skipped(self):
        from gradescan.utils.assembler import find_nearest_grade
        from gradescan.utils.classifier import FragmentClassifier
        from gradescan.utils.schema import DBATU

        classifier = FragmentClassifier(DBATU)
        credit = classifier.classify(make_fragment("4", 100, 0))
        grades = [
            classifier.classify(make_fragment("AA", 200, 0)),
            classifier.classify(make_fragment("BB", 260, 0)),
        ]
        consumed = {0}

        assert find_nearest_grade(credit, grades, consumed) == 1
        assert consumed == {0}

    def test_each_grade_paired_once(self):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, strategy="nearest").assemble([
            make_fragment("4", 100, 0),
            make_fragment("3", 100, 5),
            make_fragment("AA", 200, 2),
        ])

        assert sum(1 for r in rows if r.grade == "AA") == 1


class TestProperties:
    """Whole-output properties."""

    @pytest.fixture
    def fragments(self):
        return table_fragments([
            ("4", "AA"), ("3", "8B"), ("O2", "AU"), (None, "CC"), ("Physics", "DD"),
        ])

    @pytest.mark.parametrize("strategy", ["auto", "cluster", "nearest"])
    def test_idempotent(self, fragments, strategy):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        assembler = RowAssembler(DBATU, strategy=strategy)

        assert assembler.assemble(fragments) == assembler.assemble(fragments)

    @pytest.mark.parametrize("strategy", ["auto", "cluster", "nearest"])
    def test_input_order_irrelevant(self, fragments, strategy):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        assembler = RowAssembler(DBATU, strategy=strategy)

        assert assembler.assemble(fragments) == assembler.assemble(list(reversed(fragments)))

    def test_rows_top_to_bottom(self, fragments):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU).assemble(fragments)
        anchors = [r.center_y for r in rows]

        assert anchors == sorted(anchors)

    @pytest.mark.parametrize("strategy", ["auto", "cluster", "nearest"])
    def test_grades_always_in_schema(self, fragments, strategy):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, strategy=strategy).assemble(fragments)

        assert all(r.grade is None or r.grade in DBATU for r in rows)
        assert all(r.credits is not None or r.grade is not None for r in rows)

    @pytest.mark.parametrize("strategy", ["auto", "cluster", "nearest"])
    def test_incomplete_rows_need_review(self, fragments, strategy):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        rows = RowAssembler(DBATU, strategy=strategy).assemble(fragments)

        for row in rows:
            if not row.is_complete:
                assert row.confidence == 0.5
                assert row.needs_review

    def test_confidence_ordering(self):
        from gradescan.utils.assembler import (
            CONFIDENCE_COMPLETE, CONFIDENCE_PAIRED, CONFIDENCE_PARTIAL
        )

        assert CONFIDENCE_COMPLETE > CONFIDENCE_PAIRED > CONFIDENCE_PARTIAL


class TestHelpers:
    """Test module-level helpers."""

    def test_reconstruct(self):
        from gradescan.utils.assembler import reconstruct
        from gradescan.utils.schema import DBATU

        rows = reconstruct(table_fragments([("4", "AA")]), DBATU, strategy="cluster")

        assert rows[0].grade == "AA"

    def test_rows_needing_review(self):
        from gradescan.utils.assembler import Row, rows_needing_review

        rows = [
            Row(4, "AA", 1.0),
            Row(3, "BB", 0.8),
            Row(None, "CC", 0.5),
        ]

        assert rows_needing_review(rows) == [1, 2]

    def test_row_to_dict(self):
        from gradescan.utils.assembler import Row

        data = Row(4, "AA", 1.0, center_y=10.0, strategy="zip").to_dict()

        assert data == {
            "credits": 4,
            "grade": "AA",
            "confidence": 1.0,
            "needs_review": False,
            "center_y": 10.0,
            "strategy": "zip",
        }

    @pytest.mark.parametrize("kwargs", [
        {"strategy": "zip"},
        {"overlap_ratio": 1.5},
        {"pairing_tolerance": 0},
    ])
    def test_invalid_settings(self, kwargs):
        from gradescan.utils.assembler import RowAssembler
        from gradescan.utils.schema import DBATU

        with pytest.raises(ValueError):
            RowAssembler(DBATU, **kwargs)

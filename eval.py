#!/usr/bin/env python
"""
Evaluation script for the grade scanner.

Compares reconstructed rows against expected rows, position by position.

Usage:
    python eval.py --input <scan_json> [--expected <expected_json>]
    python eval.py --results-dir <dir> --expected-dir <dir> --report <report.json>
"""

import argparse
import json
import logging
from pathlib import Path
from dataclasses import dataclass, asdict
from typing import List, Optional, Dict, Any
import sys

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class EvaluationMetrics:
    """Evaluation metrics for one scan."""
    rows_total: int = 0
    rows_complete: int = 0
    rows_review: int = 0
    confidence_avg: float = 0.0

    # Accuracy (if expected rows provided)
    rows_expected: Optional[int] = None
    row_count_match: Optional[bool] = None
    credits_correct: int = 0
    grades_correct: int = 0
    credit_accuracy: Optional[float] = None
    grade_accuracy: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_rows(json_path: Path) -> List[Dict[str, Any]]:
    """Load rows from a scan result (``{"rows": [...]}``) or a bare list."""
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("rows", [])
    if not isinstance(data, list):
        raise ValueError(f"No row list in {json_path}")
    return data


def evaluate_rows(rows: List[Dict[str, Any]]) -> EvaluationMetrics:
    """Evaluate rows on their own (no ground truth)."""
    metrics = EvaluationMetrics()
    metrics.rows_total = len(rows)

    confidences = []
    for row in rows:
        complete = row.get("credits") is not None and row.get("grade") is not None
        if complete:
            metrics.rows_complete += 1

        confidence = float(row.get("confidence", 0.0))
        confidences.append(confidence)

        needs_review = row.get("needs_review")
        if needs_review is None:
            needs_review = confidence < 1.0 or not complete
        if needs_review:
            metrics.rows_review += 1

    if confidences:
        metrics.confidence_avg = sum(confidences) / len(confidences)

    return metrics


def evaluate_against_expected(
    rows: List[Dict[str, Any]],
    expected: List[Dict[str, Any]]
) -> EvaluationMetrics:
    """
    Evaluate rows against expected rows.

    Rows are compared by position; a missing or extra row counts as wrong
    for both fields.
    """
    metrics = evaluate_rows(rows)
    metrics.rows_expected = len(expected)
    metrics.row_count_match = len(rows) == len(expected)

    for actual, wanted in zip(rows, expected):
        if actual.get("credits") == wanted.get("credits"):
            metrics.credits_correct += 1
        actual_grade = actual.get("grade")
        wanted_grade = wanted.get("grade")
        if actual_grade is not None and wanted_grade is not None:
            if actual_grade.upper() == wanted_grade.upper():
                metrics.grades_correct += 1
        elif actual_grade is None and wanted_grade is None:
            metrics.grades_correct += 1

    denominator = max(len(rows), len(expected))
    if denominator > 0:
        metrics.credit_accuracy = metrics.credits_correct / denominator
        metrics.grade_accuracy = metrics.grades_correct / denominator
    else:
        metrics.credit_accuracy = 1.0
        metrics.grade_accuracy = 1.0

    return metrics


def print_metrics(metrics: EvaluationMetrics, name: str = "Scan"):
    """Print metrics in a formatted way."""
    print(f"\n{'='*60}")
    print(f"Evaluation Results: {name}")
    print('='*60)

    print("\n📋 Rows:")
    print(f"  Total: {metrics.rows_total}")
    print(f"  Complete: {metrics.rows_complete}")
    print(f"  Needing review: {metrics.rows_review}")
    print(f"  Average Confidence: {metrics.confidence_avg:.1%}")

    if metrics.rows_expected is not None:
        print("\n🎯 Accuracy (vs expected):")
        print(f"  Expected rows: {metrics.rows_expected} "
              f"({'match' if metrics.row_count_match else 'MISMATCH'})")
        print(f"  Credit accuracy: {metrics.credit_accuracy:.1%}")
        print(f"  Grade accuracy: {metrics.grade_accuracy:.1%}")

    print('='*60)


def evaluate_directory(
    results_dir: Path,
    expected_dir: Optional[Path] = None
) -> Dict[str, EvaluationMetrics]:
    """Evaluate all scan results in a directory."""
    results = {}

    for json_file in sorted(results_dir.glob("*.json")):
        if json_file.name == "report.json":
            continue

        rows = load_rows(json_file)

        expected = None
        if expected_dir:
            expected_file = expected_dir / json_file.name
            if expected_file.exists():
                expected = load_rows(expected_file)

        if expected is not None:
            metrics = evaluate_against_expected(rows, expected)
        else:
            metrics = evaluate_rows(rows)

        results[json_file.stem] = metrics

    return results


def generate_report(
    results: Dict[str, EvaluationMetrics]
) -> Dict[str, Any]:
    """Generate a summary report from multiple evaluations."""
    if not results:
        return {"error": "No results to report"}

    total_scans = len(results)
    total_rows = sum(m.rows_total for m in results.values())
    total_review = sum(m.rows_review for m in results.values())
    avg_confidence = sum(m.confidence_avg for m in results.values()) / total_scans

    compared = [m for m in results.values() if m.rows_expected is not None]
    summary = {
        "scans_evaluated": total_scans,
        "total_rows": total_rows,
        "rows_needing_review": total_review,
        "average_confidence": round(avg_confidence, 3),
        "scans_with_expected": len(compared),
    }

    if compared:
        summary["row_count_match_rate"] = round(
            sum(1 for m in compared if m.row_count_match) / len(compared), 3
        )
        summary["credit_accuracy"] = round(
            sum(m.credit_accuracy for m in compared) / len(compared), 3
        )
        summary["grade_accuracy"] = round(
            sum(m.grade_accuracy for m in compared) / len(compared), 3
        )

    return {
        "summary": summary,
        "individual_results": {
            name: metrics.to_dict()
            for name, metrics in results.items()
        }
    }


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Evaluate grade scanner outputs"
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="Path to a scan result JSON file"
    )

    parser.add_argument(
        "--expected", "-e",
        type=Path,
        help="Path to expected rows JSON for comparison"
    )

    parser.add_argument(
        "--results-dir",
        type=Path,
        help="Directory containing multiple scan result JSON files"
    )

    parser.add_argument(
        "--expected-dir",
        type=Path,
        help="Directory containing expected rows (same file names)"
    )

    parser.add_argument(
        "--report", "-r",
        type=Path,
        help="Output path for evaluation report JSON"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress printed output"
    )

    args = parser.parse_args(argv)

    results = {}

    # Evaluate single file
    if args.input:
        if not args.input.exists():
            logger.error(f"Input file not found: {args.input}")
            return 1

        rows = load_rows(args.input)

        if args.expected and args.expected.exists():
            metrics = evaluate_against_expected(rows, load_rows(args.expected))
        else:
            metrics = evaluate_rows(rows)

        results[args.input.stem] = metrics

        if not args.quiet:
            print_metrics(metrics, args.input.name)

    # Evaluate directory
    elif args.results_dir:
        if not args.results_dir.is_dir():
            logger.error(f"Results directory not found: {args.results_dir}")
            return 1

        results = evaluate_directory(args.results_dir, args.expected_dir)

        if not args.quiet:
            for name, metrics in results.items():
                print_metrics(metrics, name)

    else:
        parser.print_help()
        return 1

    # Generate and save report
    if args.report and results:
        report = generate_report(results)

        with open(args.report, 'w') as f:
            json.dump(report, f, indent=2)

        logger.info(f"Report saved to: {args.report}")

        if not args.quiet:
            print(f"\n📝 Report saved to: {args.report}")
            print("\nSummary:")
            for key, value in report["summary"].items():
                print(f"  {key}: {value}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

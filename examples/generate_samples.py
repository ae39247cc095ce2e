#!/usr/bin/env python
"""
Generate synthetic grade-table images for testing the grade scanner.

This script creates cropped grade tables with:
- A header row (Subject / Credits / Grade)
- One row per subject
- Optionally a coloured security pattern behind the text
- Optionally low contrast (gray text on gray paper)

Each image gets an expected-rows JSON file that eval.py understands.

Usage:
    python examples/generate_samples.py
"""

import sys
from pathlib import Path

import numpy as np

_src_dir = Path(__file__).resolve().parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from gradescan.utils.io import ensure_dir, save_image, save_json

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def make_pattern_background(height: int, width: int, seed: int = 7) -> np.ndarray:
    """Light wavy guilloche-like pattern, similar to printed marksheets."""
    import cv2

    rng = np.random.default_rng(seed)
    img = np.full((height, width, 3), (235, 240, 250), dtype=np.uint8)

    xs = np.arange(width)
    for k in range(0, height, 12):
        phase = rng.uniform(0, 2 * np.pi)
        ys = (k + 5 * np.sin(xs / 18.0 + phase)).astype(np.int32)
        points = np.stack([xs, ys], axis=1).reshape(-1, 1, 2)
        cv2.polylines(img, [points], False, (200, 215, 240), 1)

    return img


def draw_grade_table(
    rows,
    background=None,
    text_color=BLACK,
    row_height: int = 48,
    width: int = 640
) -> np.ndarray:
    """
    Draw a grade table.

    Args:
        rows: List of (subject, credits, grade) tuples
        background: Optional BGR image to draw on (cropped/padded to size)
        text_color: BGR colour for text and rules
        row_height: Height of each table row in pixels
        width: Image width in pixels

    Returns:
        BGR image
    """
    import cv2

    height = row_height * (len(rows) + 1) + 20
    if background is None:
        img = np.full((height, width, 3), WHITE, dtype=np.uint8)
    else:
        img = np.full((height, width, 3), WHITE, dtype=np.uint8)
        h = min(height, background.shape[0])
        w = min(width, background.shape[1])
        img[:h, :w] = background[:h, :w]

    columns = (20, 380, 520)
    header = ("SUBJECT", "CREDITS", "GRADE")

    y = 10 + row_height
    for x, text in zip(columns, header):
        cv2.putText(img, text, (x, y - 15), cv2.FONT_HERSHEY_SIMPLEX, 0.7, text_color, 2)
    cv2.line(img, (10, y), (width - 10, y), text_color, 1)

    for subject, credits, grade in rows:
        y += row_height
        cv2.putText(img, subject, (columns[0], y - 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.7, text_color, 2)
        cv2.putText(img, str(credits), (columns[1] + 30, y - 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.9, text_color, 2)
        cv2.putText(img, grade, (columns[2] + 10, y - 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.9, text_color, 2)

    return img


def create_expected_rows(rows, non_credit=("AU", "PP", "NP")) -> dict:
    """Expected reconstruction: one (credits, grade) pair per table row."""
    return {
        "rows": [
            {
                "credits": 0 if grade in non_credit else credits,
                "grade": grade,
            }
            for _subject, credits, grade in rows
        ]
    }


DBATU_ROWS = [
    ("Engineering Mathematics", 4, "AA"),
    ("Engineering Physics", 4, "AB"),
    ("Basic Electrical", 3, "BB"),
    ("Programming in C", 3, "CC"),
    ("Workshop Practice", 2, "EX"),
    ("Environmental Studies", 0, "AU"),
]

SPPU_ROWS = [
    ("Data Structures", 4, "C"),
    ("Computer Networks", 3, "A"),
    ("Operating Systems", 3, "B"),
    ("Soft Skills", 0, "PP"),
]


def write_samples(output_dir) -> list:
    """
    Write every sample table and its expected rows under ``output_dir``.

    Returns:
        List of (image_path, expected_path) tuples
    """
    output_dir = Path(output_dir)
    samples_dir = ensure_dir(output_dir / "sample_tables")
    expected_dir = ensure_dir(output_dir / "expected_rows")

    background = make_pattern_background(600, 640)

    low_contrast = draw_grade_table(DBATU_ROWS, text_color=(120, 120, 120))
    low_contrast[low_contrast == 255] = 180

    samples = [
        ("dbatu_plain", draw_grade_table(DBATU_ROWS), DBATU_ROWS),
        ("dbatu_pattern", draw_grade_table(DBATU_ROWS, background=background), DBATU_ROWS),
        ("dbatu_low_contrast", low_contrast, DBATU_ROWS),
        ("sppu_plain", draw_grade_table(SPPU_ROWS), SPPU_ROWS),
    ]

    written = []
    for name, img, rows in samples:
        img_path = save_image(img, samples_dir / f"{name}.png")
        expected_path = save_json(create_expected_rows(rows), expected_dir / f"{name}.json")
        written.append((img_path, expected_path))

    return written


def main():
    for img_path, expected_path in write_samples(Path(__file__).parent):
        print(f"Created: {img_path}")
        print(f"Created: {expected_path}")

    print("\nSample generation complete!")
    print("Scan with: gradescan -i examples/sample_tables/dbatu_plain.png -o results/dbatu_plain.json")
    print("Then:      python eval.py --results-dir results --expected-dir examples/expected_rows")


if __name__ == "__main__":
    main()

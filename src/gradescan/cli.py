#!/usr/bin/env python
"""
Command-line interface for the grade scanner.

Usage:
    gradescan --input <image_or_fragments.json> [options]

Examples:
    # Scan a cropped grade table with the DBATU grade set
    gradescan --input marksheet.png --schema DBATU

    # Replay reconstruction on a saved fragment dump, without OCR
    gradescan --input fragments.json --strategy nearest

    # Custom grade set and JSON output
    gradescan --input marksheet.png --schema grades.json --output rows.json
"""

import sys
from pathlib import Path

# Add src directory to path for imports when running as script
_src_dir = Path(__file__).resolve().parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import argparse
import logging
from typing import Optional, Sequence

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("gradescan")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="gradescan",
        description="Grade Scanner - Reconstruct (credits, grade) rows from a scanned grade table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Scan a cropped grade table:
    gradescan --input marksheet.png --schema DBATU

  Replay reconstruction on recognized fragments:
    gradescan --input fragments.json --strategy nearest

  Save rows and the recognized fragments:
    gradescan --input marksheet.png --output rows.json --dump-fragments fragments.json
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input image, or a JSON fragment dump"
    )

    # Optional arguments
    parser.add_argument(
        "--schema", "-s",
        default="DBATU",
        help="Grade set: preset name (DBATU, SPPU) or JSON file (default: DBATU)"
    )

    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write the scan result as JSON to this path"
    )

    parser.add_argument(
        "--ocr-engine",
        choices=["tesseract", "paddleocr", "easyocr"],
        default=None,
        help="OCR engine (default: tesseract, or GRADESCAN_OCR_ENGINE)"
    )

    parser.add_argument(
        "--no-preprocessing",
        action="store_true",
        help="Disable grayscale and contrast boost before OCR"
    )

    parser.add_argument(
        "--contrast",
        choices=["linear", "clahe"],
        default="linear",
        help="Contrast boost method (default: linear)"
    )

    parser.add_argument(
        "--strategy",
        choices=["auto", "cluster", "nearest"],
        default="auto",
        help="Row reconstruction strategy (default: auto)"
    )

    parser.add_argument(
        "--no-zip",
        action="store_true",
        help="Disable the column-zipping fast path"
    )

    parser.add_argument(
        "--credit-max",
        type=int,
        default=None,
        help="Largest plausible credit value (default: 25)"
    )

    parser.add_argument(
        "--dump-fragments",
        default=None,
        help="Save recognized fragments as JSON for later replay"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Save preprocessed images and fragments to the debug directory"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def check_dependencies(need_ocr: bool = True, engine: str = "tesseract") -> bool:
    """Check if required dependencies are available."""
    missing = []
    optional_missing = []

    try:
        import numpy
    except ImportError:
        missing.append("numpy")

    if need_ocr:
        try:
            import cv2
        except ImportError:
            missing.append("opencv-python")

        if engine == "tesseract":
            try:
                import pytesseract
                # Test if tesseract is actually installed
                try:
                    pytesseract.get_tesseract_version()
                except Exception:
                    missing.append("tesseract-ocr (system package)")
            except ImportError:
                missing.append("pytesseract")
        elif engine == "paddleocr":
            try:
                import paddleocr
            except ImportError:
                optional_missing.append("paddleocr (falls back to tesseract)")
        elif engine == "easyocr":
            try:
                import easyocr
            except ImportError:
                optional_missing.append("easyocr (falls back to tesseract)")

    # Report
    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install -e .")
        return False

    if optional_missing:
        logger.warning("Missing optional dependencies (some features may be limited):")
        for dep in optional_missing:
            logger.warning(f"  - {dep}")

    return True


def build_config(args):
    """Apply command-line overrides on top of the environment configuration."""
    from gradescan.config import get_config

    config = get_config()
    if args.ocr_engine:
        config.ocr.engine = args.ocr_engine
    if args.no_preprocessing:
        config.image.enabled = False
    config.image.contrast_method = args.contrast
    config.reconstruction.strategy = args.strategy
    if args.no_zip:
        config.reconstruction.zip_fast_path = False
    if args.credit_max is not None:
        config.reconstruction.credit_max = args.credit_max
    if args.debug:
        config.debug_mode = True
    return config


def format_rows(rows) -> str:
    """Render rows as a fixed-width table; rows needing review are starred."""
    lines = [f"{'#':>3}  {'Credits':>7}  {'Grade':<6}  {'Conf':>5}  Review"]
    lines.append("-" * len(lines[0]))
    for index, row in enumerate(rows, start=1):
        credits = "-" if row.credits is None else str(row.credits)
        grade = row.grade or "-"
        review = "*" if row.needs_review else ""
        lines.append(f"{index:>3}  {credits:>7}  {grade:<6}  {row.confidence:>5.2f}  {review}")
    return "\n".join(lines)


def run_pipeline(args) -> int:
    """Run one scan and report the rows."""
    from gradescan.scanner import GradeScanner, ScanResult
    from gradescan.utils.io import detect_input_type, load_fragments, load_image
    from gradescan.utils.io import save_fragments, save_json
    from gradescan.utils.ocr_text import RecognitionError
    from gradescan.utils.schema import SchemaError, load_schema

    try:
        schema = load_schema(args.schema)
    except (KeyError, SchemaError, FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load grade schema {args.schema!r}: {e}")
        return 1

    config = build_config(args)
    try:
        scanner = GradeScanner(schema, config=config)
    except ValueError as e:
        logger.error(f"Invalid reconstruction settings: {e}")
        return 1

    input_path = Path(args.input)
    input_type = detect_input_type(input_path)
    logger.info(f"Input type detected: {input_type}")

    with scanner:
        if input_type == "image":
            try:
                image = load_image(input_path)
            except (FileNotFoundError, ValueError) as e:
                logger.error(str(e))
                return 1
            try:
                result = scanner.scan(image)
            except RecognitionError as e:
                logger.error(f"Recognition failed: {e}")
                return 1
        elif input_type == "fragments":
            try:
                fragments = load_fragments(input_path)
            except (ValueError, KeyError, TypeError) as e:
                logger.error(f"Invalid fragment dump {input_path}: {e}")
                return 1
            result = ScanResult(
                rows=scanner.reconstruct(fragments),
                fragments=fragments,
                schema_name=schema.name
            )
        else:
            logger.error(f"Unsupported input: {input_path}")
            return 1

    if args.dump_fragments:
        path = save_fragments(result.fragments, args.dump_fragments)
        logger.info(f"Saved fragments: {path}")

    if args.output:
        path = save_json(result.to_dict(), args.output)
        logger.info(f"Saved JSON: {path}")

    if not args.quiet:
        review = result.review_indices
        print("\n" + "=" * 60)
        print("GRADE TABLE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Schema: {schema.name}")
        print(f"Rows: {len(result.rows)} ({len(review)} to review)")
        print()
        print(format_rows(result.rows))
        print("=" * 60)

    return 0


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    need_ocr = Path(args.input).suffix.lower() != ".json"
    if not check_dependencies(need_ocr, args.ocr_engine or "tesseract"):
        sys.exit(1)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()

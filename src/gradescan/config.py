"""
Configuration and constants for the grade scanning pipeline.

This module provides:
- Processing parameters for each stage
- Environment overrides
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Tuple

from .utils.assembler import (
    DEFAULT_OVERLAP_RATIO,
    DEFAULT_PAIRING_TOLERANCE,
    DEFAULT_ZIP_MIN_ROWS,
    HEADER_KEYWORDS,
)
from .utils.classifier import DEFAULT_CREDIT_MAX, DEFAULT_CREDIT_MIN

logger = logging.getLogger("gradescan")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class ImageConfig:
    """Image preprocessing configuration."""
    enabled: bool = True
    contrast_method: str = "linear"  # linear or clahe
    contrast_scale: float = 1.5
    clip_limit: float = 2.0
    grid_size: int = 8


@dataclass
class OCRConfig:
    """Text recognition configuration."""
    engine: str = "tesseract"  # tesseract, paddleocr, easyocr
    language: str = "eng"
    # Sparse text: table cells are scattered words, not paragraphs
    tesseract_config: str = "--oem 3 --psm 11"
    min_score: float = 0.0
    use_gpu: bool = False


@dataclass
class ReconstructionConfig:
    """Row reconstruction thresholds."""
    credit_min: int = DEFAULT_CREDIT_MIN
    credit_max: int = DEFAULT_CREDIT_MAX
    overlap_ratio: float = DEFAULT_OVERLAP_RATIO
    pairing_tolerance: float = DEFAULT_PAIRING_TOLERANCE
    header_keywords: Tuple[str, ...] = HEADER_KEYWORDS
    strategy: str = "auto"  # auto, cluster, nearest
    zip_fast_path: bool = True
    zip_min_rows: int = DEFAULT_ZIP_MIN_ROWS


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    image: ImageConfig = field(default_factory=ImageConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    reconstruction: ReconstructionConfig = field(default_factory=ReconstructionConfig)

    # Global settings
    debug_mode: bool = False
    debug_dir: str = "debug"  # preprocessed images and fragment dumps per scan


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    if os.environ.get("GRADESCAN_DEBUG", "").lower() == "true":
        config.debug_mode = True

    debug_dir = os.environ.get("GRADESCAN_DEBUG_DIR")
    if debug_dir:
        config.debug_dir = debug_dir

    engine = os.environ.get("GRADESCAN_OCR_ENGINE")
    if engine:
        config.ocr.engine = engine.lower()

    credit_max = os.environ.get("GRADESCAN_CREDIT_MAX")
    if credit_max:
        try:
            config.reconstruction.credit_max = int(credit_max)
        except ValueError:
            logger.warning(f"Ignoring invalid GRADESCAN_CREDIT_MAX: {credit_max!r}")

    return config

"""
Image preprocessing applied before text recognition.

Grade sheets are often printed over a coloured security pattern that the
recognizer picks up as noise. Converting to grayscale and boosting contrast
pushes the pattern towards white while the printed text stays dark.

Provides:
- Grayscale conversion
- Linear contrast boost
- CLAHE contrast enhancement
- Preprocessing pipeline
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

logger = logging.getLogger(__name__)

CONTRAST_METHODS = ("linear", "clahe")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class PreprocessingResult:
    """Result of image preprocessing."""
    image: np.ndarray
    original_shape: Tuple[int, int]
    transformations: List[str] = field(default_factory=list)


# ============================================================================
# Core Preprocessing Functions
# ============================================================================

def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert image to grayscale if it's color.

    Args:
        image: Input image (BGR, BGRA or grayscale)

    Returns:
        Grayscale image
    """
    import cv2

    if len(image.shape) == 2:
        return image
    elif len(image.shape) == 3:
        if image.shape[2] == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        elif image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        elif image.shape[2] == 1:
            return image.squeeze(axis=2)

    raise ValueError(f"Unexpected image shape: {image.shape}")


def boost_contrast(image: np.ndarray, scale: float = 1.5) -> np.ndarray:
    """
    Stretch intensities linearly around mid-gray.

    Computes ``scale * x + (0.5 - 0.5 * scale) * 255`` and clips to 0..255,
    so mid-gray stays put, light backgrounds saturate to white and dark
    strokes to black.

    Args:
        image: Grayscale uint8 image
        scale: Contrast factor (> 1 increases contrast)

    Returns:
        Contrast-boosted uint8 image
    """
    if scale <= 0:
        raise ValueError(f"Contrast scale must be positive: {scale}")

    translate = (0.5 - 0.5 * scale) * 255.0
    boosted = image.astype(np.float32) * scale + translate
    result = np.clip(boosted, 0, 255).astype(np.uint8)

    logger.debug(f"Applied linear contrast boost (scale={scale})")
    return result


def enhance_contrast(
    image: np.ndarray,
    clip_limit: float = 2.0,
    grid_size: int = 8
) -> np.ndarray:
    """
    Enhance contrast using CLAHE (Contrast Limited Adaptive Histogram Equalization).

    Args:
        image: Grayscale uint8 image
        clip_limit: Threshold for contrast limiting
        grid_size: Size of grid for histogram equalization

    Returns:
        Contrast-enhanced image
    """
    import cv2

    clahe = cv2.createCLAHE(
        clipLimit=clip_limit,
        tileGridSize=(grid_size, grid_size)
    )
    enhanced = clahe.apply(image)

    logger.debug(f"Applied CLAHE contrast enhancement (clip={clip_limit})")
    return enhanced


# ============================================================================
# Main Preprocessing Pipeline
# ============================================================================

def preprocess_image(
    image: np.ndarray,
    contrast_method: str = "linear",
    contrast_scale: float = 1.5,
    clip_limit: float = 2.0,
    grid_size: int = 8
) -> PreprocessingResult:
    """
    Grayscale + contrast boost.

    Args:
        image: Input image (BGR or grayscale)
        contrast_method: "linear" or "clahe"
        contrast_scale: Factor for the linear boost
        clip_limit: CLAHE clip limit
        grid_size: CLAHE grid size

    Returns:
        PreprocessingResult with processed image and metadata
    """
    if contrast_method not in CONTRAST_METHODS:
        raise ValueError(f"Unknown contrast method: {contrast_method}")

    original_shape = image.shape[:2]
    transformations = []

    processed = to_grayscale(image)
    if processed is not image:
        transformations.append("grayscale")

    if processed.dtype != np.uint8:
        processed = np.clip(processed, 0, 255).astype(np.uint8)

    if contrast_method == "linear":
        processed = boost_contrast(processed, scale=contrast_scale)
        transformations.append(f"contrast_linear_{contrast_scale:g}")
    else:
        processed = enhance_contrast(processed, clip_limit=clip_limit, grid_size=grid_size)
        transformations.append("contrast_clahe")

    logger.info(f"Preprocessing complete: {' -> '.join(transformations)}")

    return PreprocessingResult(
        image=processed,
        original_shape=original_shape,
        transformations=transformations
    )

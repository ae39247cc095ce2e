"""
Geometry and recognized-fragment data model.

Provides:
- BoundingBox (axis-aligned, image pixel coordinates)
- Fragment (one unit of recognized text with its box)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


# ============================================================================
# Bounding Box
# ============================================================================

@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in image pixel units."""
    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self):
        if min(self.left, self.top, self.right, self.bottom) < 0:
            raise ValueError(f"Bounding box has negative coordinates: {self.to_tuple()}")
        if self.right <= self.left or self.bottom <= self.top:
            raise ValueError(f"Bounding box is empty or inverted: {self.to_tuple()}")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> 'BoundingBox':
        return cls(x, y, x + w, y + h)

    @classmethod
    def from_polygon(cls, points: Sequence[Sequence[float]]) -> 'BoundingBox':
        """
        Build the enclosing rectangle of a polygon.

        PaddleOCR and EasyOCR report four corner points; coordinates that
        fall slightly outside the image are clamped to zero.
        """
        xs = [float(p[0]) for p in points]
        ys = [float(p[1]) for p in points]
        return cls(max(0.0, min(xs)), max(0.0, min(ys)), max(xs), max(ys))

    def vertical_overlap(self, other: 'BoundingBox') -> float:
        """Length of the shared vertical extent (0 when disjoint)."""
        return max(0.0, min(self.bottom, other.bottom) - max(self.top, other.top))

    def to_dict(self) -> Dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'BoundingBox':
        return cls(float(d["left"]), float(d["top"]), float(d["right"]), float(d["bottom"]))


# ============================================================================
# Fragment
# ============================================================================

@dataclass(frozen=True)
class Fragment:
    """A unit of recognized text with its bounding box."""
    text: str
    box: BoundingBox
    score: Optional[float] = None  # recognizer confidence, 0..1 when known

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("Fragment text must be non-empty")

    def sort_key(self) -> Tuple[float, float, float, float, float, str]:
        """Top-to-bottom, then left-to-right, with a total tie-break."""
        b = self.box
        return (b.center_y, b.left, b.top, b.right, b.bottom, self.text)

    def to_dict(self) -> Dict[str, Any]:
        result = {"text": self.text, "box": self.box.to_dict()}
        if self.score is not None:
            result["score"] = self.score
        return result

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Fragment':
        score = d.get("score")
        return cls(
            text=str(d["text"]),
            box=BoundingBox.from_dict(d["box"]),
            score=None if score is None else float(score),
        )

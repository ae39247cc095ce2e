"""
Scan workflow: image -> preprocessing -> recognition -> row reconstruction.

Provides:
- ScanResult envelope
- GradeScanner orchestration, synchronous or on a background worker
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .config import PipelineConfig, get_config
from .utils.assembler import Row, RowAssembler, rows_needing_review
from .utils.images import preprocess_image
from .utils.io import save_fragments, save_image
from .utils.layout import Fragment
from .utils.schema import GradeSchema

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ScanResult:
    """Rows reconstructed from one scan, with processing metadata."""
    rows: List[Row]
    fragments: List[Fragment] = field(default_factory=list)
    schema_name: str = ""
    transformations: List[str] = field(default_factory=list)
    processing_time_seconds: float = 0.0
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    @property
    def review_indices(self) -> List[int]:
        return rows_needing_review(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema_name,
            "created_at": self.created_at,
            "rows": [r.to_dict() for r in self.rows],
            "review_indices": self.review_indices,
            "fragments": [f.to_dict() for f in self.fragments],
            "transformations": self.transformations,
            "processing_time_seconds": round(self.processing_time_seconds, 3),
        }


# ============================================================================
# Grade Scanner
# ============================================================================

class GradeScanner:
    """
    Orchestrates one scan.

    Recognition is the only slow step; ``submit`` runs the whole scan on a
    worker thread so an interactive caller stays responsive. Reconstruction
    itself keeps no state between calls.
    """

    def __init__(
        self,
        schema: GradeSchema,
        config: Optional[PipelineConfig] = None,
        recognizer: Optional[Any] = None
    ):
        self.schema = schema
        self.config = config or get_config()
        self._recognizer = recognizer
        self._executor: Optional[ThreadPoolExecutor] = None
        self._scan_count = 0

        rc = self.config.reconstruction
        self.assembler = RowAssembler(
            schema,
            credit_min=rc.credit_min,
            credit_max=rc.credit_max,
            overlap_ratio=rc.overlap_ratio,
            pairing_tolerance=rc.pairing_tolerance,
            header_keywords=rc.header_keywords,
            strategy=rc.strategy,
            zip_fast_path=rc.zip_fast_path,
            zip_min_rows=rc.zip_min_rows,
        )

    @property
    def recognizer(self):
        if self._recognizer is None:
            from .utils.ocr_text import TextRecognizer
            ocr = self.config.ocr
            self._recognizer = TextRecognizer(
                engine=ocr.engine,
                language=ocr.language,
                use_gpu=ocr.use_gpu,
                min_score=ocr.min_score,
                tesseract_config=ocr.tesseract_config
            )
        return self._recognizer

    def reconstruct(self, fragments: Sequence[Fragment]) -> List[Row]:
        return self.assembler.assemble(fragments)

    def scan(self, image: np.ndarray) -> ScanResult:
        """
        Run the full workflow on one image.

        Args:
            image: Cropped grade-table image (BGR or grayscale)

        Returns:
            ScanResult with rows in reading order

        Raises:
            RecognitionError: Recognition failed for this image
        """
        start_time = time.time()
        transformations = []

        if self.config.image.enabled:
            ic = self.config.image
            preprocessed = preprocess_image(
                image,
                contrast_method=ic.contrast_method,
                contrast_scale=ic.contrast_scale,
                clip_limit=ic.clip_limit,
                grid_size=ic.grid_size
            )
            image = preprocessed.image
            transformations = preprocessed.transformations

        fragments = list(self.recognizer.recognize(image))
        rows = self.reconstruct(fragments)

        self._scan_count += 1
        if self.config.debug_mode:
            self._save_debug_output(image, fragments, self._scan_count)

        elapsed = time.time() - start_time
        logger.info(f"Scan finished in {elapsed:.2f}s: {len(rows)} rows")

        return ScanResult(
            rows=rows,
            fragments=fragments,
            schema_name=self.schema.name,
            transformations=transformations,
            processing_time_seconds=elapsed
        )

    def _save_debug_output(self, image: np.ndarray, fragments: Sequence[Fragment], scan_number: int):
        """Save the recognized image and its fragments for offline replay."""
        debug_dir = Path(self.config.debug_dir)
        image_path = save_image(image, debug_dir / f"scan_{scan_number:04d}.png")
        fragments_path = save_fragments(fragments, debug_dir / f"scan_{scan_number:04d}_fragments.json")
        logger.debug(f"Saved debug output: {image_path}, {fragments_path}")

    def submit(self, image: np.ndarray) -> "Future[ScanResult]":
        """
        Schedule ``scan`` on a background worker.

        Cancelling the returned future before it starts abandons the scan;
        a running recognition call finishes and its result is discarded.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gradescan")
        return self._executor.submit(self.scan, image)

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

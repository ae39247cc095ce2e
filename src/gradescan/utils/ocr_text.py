"""
Text recognition adapters.

Wraps the supported OCR engines behind one interface,
``recognize(image) -> List[Fragment]``, so the reconstruction stage never
depends on a particular engine.

Provides:
- Tesseract, PaddleOCR and EasyOCR engines
- TextRecognizer facade with fallback to Tesseract
- RecognitionError for acquisition failures
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .layout import BoundingBox, Fragment

logger = logging.getLogger(__name__)

ENGINES = ("tesseract", "paddleocr", "easyocr")


class RecognitionError(RuntimeError):
    """Raised when text recognition cannot produce a result for an image."""


def make_fragment(text: Any, box: BoundingBox, score: Optional[float] = None) -> Optional[Fragment]:
    """Build a Fragment, or None for blank text."""
    text = str(text).strip()
    if not text:
        return None
    return Fragment(text=text, box=box, score=score)


def polygon_fragment(points: Sequence[Sequence[float]], text: Any, score: Any) -> Optional[Fragment]:
    try:
        box = BoundingBox.from_polygon(points)
    except ValueError as e:
        logger.debug(f"Skipping degenerate box for {text!r}: {e}")
        return None
    return make_fragment(text, box, float(score))


# ============================================================================
# Text Recognizer Facade
# ============================================================================

class TextRecognizer:
    """
    Main text recognition interface.

    Falls back to Tesseract when the requested engine cannot be loaded.
    """

    def __init__(
        self,
        engine: str = "tesseract",
        language: str = "eng",
        use_gpu: bool = False,
        min_score: float = 0.0,
        tesseract_config: str = "--oem 3 --psm 11"
    ):
        if engine not in ENGINES:
            raise ValueError(f"Unknown OCR engine: {engine}")

        self.engine_name = engine
        self.language = language
        self.use_gpu = use_gpu
        self.min_score = min_score
        self.tesseract_config = tesseract_config
        self._engine = self._initialize_engine()

    def _initialize_engine(self):
        try:
            engine = self._create_engine(self.engine_name)
            logger.info(f"Initialized OCR engine: {self.engine_name}")
            return engine
        except (ImportError, RuntimeError) as e:
            logger.error(f"Failed to initialize {self.engine_name}: {e}")
            if self.engine_name == "tesseract":
                raise RecognitionError(f"No OCR engine available: {e}") from e

        logger.warning("Falling back to tesseract")
        try:
            engine = self._create_engine("tesseract")
        except (ImportError, RuntimeError) as e:
            raise RecognitionError(f"No OCR engine available: {e}") from e
        self.engine_name = "tesseract"
        return engine

    def _create_engine(self, engine_name: str):
        if engine_name == "tesseract":
            return TesseractEngine(language=self.language, config=self.tesseract_config)
        elif engine_name == "paddleocr":
            return PaddleOCREngine(language=self.language, use_gpu=self.use_gpu)
        elif engine_name == "easyocr":
            return EasyOCREngine(language=self.language, use_gpu=self.use_gpu)
        else:
            raise ValueError(f"Unknown OCR engine: {engine_name}")

    def recognize(self, image: np.ndarray) -> List[Fragment]:
        """
        Recognize text fragments in an image.

        Args:
            image: Input image (BGR or grayscale)

        Returns:
            Fragments with a score of at least ``min_score``

        Raises:
            RecognitionError: The engine failed on this image
        """
        if image is None or image.size == 0:
            raise RecognitionError("Cannot recognize an empty image")

        try:
            fragments = self._engine.recognize(image)
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"{self.engine_name} recognition failed: {e}") from e

        if self.min_score > 0:
            fragments = [
                f for f in fragments
                if f.score is None or f.score >= self.min_score
            ]

        logger.info(f"{self.engine_name} recognized {len(fragments)} fragments")
        if not fragments:
            logger.warning("Recognition result is empty")
        return fragments


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """OCR using Tesseract, one fragment per recognized word."""

    def __init__(
        self,
        language: str = "eng",
        config: str = "--oem 3 --psm 11"
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise ImportError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )

        self.language = language
        self.config = config

    def recognize(self, image: np.ndarray) -> List[Fragment]:
        try:
            data = self.pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self.config,
                output_type=self.pytesseract.Output.DICT
            )
        except Exception as e:
            raise RecognitionError(f"Tesseract error: {e}") from e

        return self._parse_data(data)

    def _parse_data(self, data: Dict[str, List[Any]]) -> List[Fragment]:
        """Convert an ``image_to_data`` dictionary into fragments."""
        fragments = []

        for i in range(len(data['text'])):
            conf = float(data['conf'][i])
            if conf < 0:  # -1 marks layout entries, not words
                continue

            width = int(data['width'][i])
            height = int(data['height'][i])
            if width <= 0 or height <= 0:
                continue

            box = BoundingBox.from_xywh(
                int(data['left'][i]), int(data['top'][i]), width, height
            )
            fragment = make_fragment(data['text'][i], box, conf / 100.0)
            if fragment is not None:
                fragments.append(fragment)

        return fragments


# ============================================================================
# PaddleOCR Engine
# ============================================================================

class PaddleOCREngine:
    """OCR using PaddleOCR (line-level fragments)."""

    def __init__(
        self,
        language: str = "en",
        use_gpu: bool = False
    ):
        try:
            from paddleocr import PaddleOCR
            # Suppress PaddleOCR logging
            logging.getLogger('ppocr').setLevel(logging.WARNING)

            # Map common language codes
            lang_map = {"eng": "en", "chi_sim": "ch", "chi_tra": "chinese_cht"}
            paddle_lang = lang_map.get(language, language)

            self.ocr = PaddleOCR(use_angle_cls=True, lang=paddle_lang)
        except ImportError:
            raise ImportError(
                "PaddleOCR not available. Install with: pip install paddleocr"
            )
        except Exception as e:
            raise RuntimeError(f"Failed to initialize PaddleOCR: {e}")

        self.language = language
        self.use_gpu = use_gpu

    def recognize(self, image: np.ndarray) -> List[Fragment]:
        if hasattr(self.ocr, "predict"):
            raw = self.ocr.predict(image)
        else:
            raw = self.ocr.ocr(image, cls=True)
        return self._parse_result(raw)

    def _parse_result(self, raw: Any) -> List[Fragment]:
        """
        Accept both result layouts:
        - 3.x ``predict``: ``[{"rec_polys": ..., "rec_texts": ..., "rec_scores": ...}]``
        - 2.x ``ocr``: ``[[[points, (text, score)], ...]]``
        """
        if not raw or not raw[0]:
            return []

        fragments = []
        page = raw[0]

        if isinstance(page, dict):
            boxes = page.get("rec_polys")
            texts = page.get("rec_texts")
            scores = page.get("rec_scores")
            if boxes is None or texts is None or scores is None:
                return []
            if not (len(boxes) == len(texts) == len(scores)):
                logger.warning("PaddleOCR returned mismatched result lists")
                return []
            items = zip(boxes, texts, scores)
        else:
            items = (
                (line[0], line[1][0], line[1][1])
                for line in page
                if len(line) >= 2
            )

        for points, text, score in items:
            fragment = polygon_fragment(points, text, score)
            if fragment is not None:
                fragments.append(fragment)

        return fragments


# ============================================================================
# EasyOCR Engine
# ============================================================================

class EasyOCREngine:
    """OCR using EasyOCR."""

    def __init__(
        self,
        language: str = "en",
        use_gpu: bool = False
    ):
        try:
            import easyocr

            # Map language codes
            lang_map = {"eng": "en", "chi_sim": "ch_sim", "chi_tra": "ch_tra"}
            easy_lang = lang_map.get(language, language)

            self.reader = easyocr.Reader(
                [easy_lang],
                gpu=use_gpu,
                verbose=False
            )
        except ImportError:
            raise ImportError(
                "EasyOCR not available. Install with: pip install easyocr"
            )

        self.language = language

    def recognize(self, image: np.ndarray) -> List[Fragment]:
        return self._parse_result(self.reader.readtext(image))

    def _parse_result(self, result: Sequence[Any]) -> List[Fragment]:
        fragments = []
        for points, text, score in result:
            fragment = polygon_fragment(points, text, score)
            if fragment is not None:
                fragments.append(fragment)
        return fragments

"""
Utility modules for the grade scanning pipeline.
"""

from .layout import BoundingBox, Fragment
from .schema import GradeEntry, GradeSchema, SchemaError, get_preset, load_schema
from .symbols import levenshtein, match_symbol, SymbolMatcher
from .classifier import Candidate, CandidateKind, FragmentClassifier, classify
from .assembler import Row, RowAssembler, reconstruct, rows_needing_review
from .images import preprocess_image, to_grayscale, boost_contrast, enhance_contrast
from .ocr_text import TextRecognizer, RecognitionError
from .subjects import Subject, apply_rows
from .io import load_image, load_json, save_json, load_fragments, save_fragments

__all__ = [
    # Geometry
    "BoundingBox", "Fragment",
    # Schemas
    "GradeEntry", "GradeSchema", "SchemaError", "get_preset", "load_schema",
    # Matching
    "levenshtein", "match_symbol", "SymbolMatcher",
    # Classification
    "Candidate", "CandidateKind", "FragmentClassifier", "classify",
    # Assembly
    "Row", "RowAssembler", "reconstruct", "rows_needing_review",
    # Images
    "preprocess_image", "to_grayscale", "boost_contrast", "enhance_contrast",
    # OCR
    "TextRecognizer", "RecognitionError",
    # Subjects
    "Subject", "apply_rows",
    # IO
    "load_image", "load_json", "save_json", "load_fragments", "save_fragments",
]

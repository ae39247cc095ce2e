"""
Grade Sheet Scanner
===================

Turns a photographed or scanned grade table into (credits, grade) rows,
one per subject, tolerating the noise of optical text recognition.

Main components:
- Image preprocessing (grayscale, contrast boost)
- Text recognition adapters (Tesseract, PaddleOCR, EasyOCR)
- Fragment classification (credit / grade / noise)
- Grade symbol matching (confusables, edit distance)
- Row reconstruction with confidence scoring
"""

__version__ = "1.0.0"
__author__ = "Grade Scanner Team"

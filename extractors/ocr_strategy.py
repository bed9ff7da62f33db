"""
OCR Strategy Module

Decides whether a document's native text layer is good enough or the file
should also be sent to OCR. A text layer is considered usable only when it
is reasonably long and already contains a recognizable vehicle line; scanned
release forms usually have either no text layer or a few stray headers.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from extractors.field_extractor import has_vehicle_ymm

logger = logging.getLogger(__name__)


class TextMode(Enum):
    """Text extraction mode used for a file."""

    NONE = "none"  # Nothing readable
    NATIVE = "native"  # Text layer from PDF/DOCX/plain text
    OCR = "ocr"  # OCR service only
    HYBRID = "hybrid"  # Native text followed by OCR text


@dataclass
class TextQualityMetrics:
    """Metrics behind an OCR decision."""

    total_chars: int = 0
    line_count: int = 0
    has_vehicle_line: bool = False
    needs_ocr: bool = True
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_chars": self.total_chars,
            "line_count": self.line_count,
            "has_vehicle_line": self.has_vehicle_line,
            "needs_ocr": self.needs_ocr,
            "reason": self.reason,
        }


class OCRStrategy:
    """
    Determines whether a document needs OCR.

    The rule: empty text, fewer than MIN_NATIVE_CHARS non-blank characters,
    or no year/make/model line all mean OCR.
    """

    MIN_NATIVE_CHARS = 180

    def __init__(self, min_native_chars: int = None):
        self.min_native_chars = min_native_chars if min_native_chars is not None else self.MIN_NATIVE_CHARS

    def analyze_text_quality(self, text: str) -> TextQualityMetrics:
        """
        Analyze native text and record the OCR decision.

        Args:
            text: Native extracted text

        Returns:
            TextQualityMetrics with needs_ocr and a reason
        """
        metrics = TextQualityMetrics()
        stripped = (text or "").strip()

        if not stripped:
            metrics.reason = "no native text"
            return metrics

        metrics.total_chars = len(stripped)
        metrics.line_count = stripped.count("\n") + 1
        metrics.has_vehicle_line = has_vehicle_ymm(stripped)

        if metrics.total_chars < self.min_native_chars:
            metrics.reason = f"native text too short ({metrics.total_chars} chars)"
        elif not metrics.has_vehicle_line:
            metrics.reason = "no year/make/model line in native text"
        else:
            metrics.needs_ocr = False
            metrics.reason = "native text sufficient"

        return metrics

    def should_use_ocr(self, text: str) -> tuple[bool, str]:
        """
        Quick check if OCR should be used for this document.

        Returns:
            Tuple of (should_use_ocr, reason)
        """
        metrics = self.analyze_text_quality(text)
        logger.debug(f"OCR decision: {metrics.to_dict()}")
        return metrics.needs_ocr, metrics.reason


def needs_ocr(text: str) -> bool:
    """True when native text is empty, short, or lacks a vehicle line."""
    return get_ocr_strategy().should_use_ocr(text)[0]


# Singleton instance
_ocr_strategy = None


def get_ocr_strategy() -> OCRStrategy:
    """Get or create the OCR strategy singleton."""
    global _ocr_strategy
    if _ocr_strategy is None:
        _ocr_strategy = OCRStrategy()
    return _ocr_strategy

"""Text stamping backend using PyMuPDF."""

import logging
from typing import Dict, Any, Optional, Tuple

import pymupdf

from .base import Backend
from ..config import StampConfig
from ..errors import InvalidDocumentError, RequestValidationError
from ..utils.page_filter import parse_page_expression, validate_page_set

logger = logging.getLogger(__name__)

ANCHORS = ("bottom", "top")

# Base-14 fonts are written with a single-byte encoding
BASE14_FONTS = (
    "helv", "heit", "hebo", "hebi",
    "cour", "coit", "cobo", "cobi",
    "tiro", "tiit", "tibo", "tibi",
    "symb", "zadb",
)


def undrawable_char(text: str, font_name: str) -> Optional[str]:
    """Return the first character of text the font cannot draw, or None."""
    font = pymupdf.Font(font_name)
    single_byte = font_name.lower() in BASE14_FONTS
    for ch in text:
        if ch in "\n\r\t":
            continue
        code = ord(ch)
        if (single_byte and code > 255) or not font.has_glyph(code):
            return ch
    return None


def open_pdf(data: bytes) -> pymupdf.Document:
    """Open PDF bytes, mapping any parser failure to InvalidDocumentError."""
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except Exception:
        raise InvalidDocumentError("Invalid or corrupted PDF file")
    if doc.page_count < 1:
        doc.close()
        raise InvalidDocumentError("PDF file has no pages")
    return doc


class StampBackend(Backend):
    """Backend for stamping a line of text onto selected pages."""

    SUPPORTED_OPERATIONS = ("stamp",)

    def __init__(self, config: StampConfig):
        self.config = config

    def process(
        self,
        data: bytes,
        operation: str,
        options: Dict[str, str]
    ) -> Tuple[bytes, str, Dict[str, Any]]:
        if not self.supports(operation):
            raise ValueError(f"Operation '{operation}' not supported")

        text = self._validate_text(options.get("text"))
        page_numbers = parse_page_expression(
            options.get("pages"), max_page=self.config.max_page_number
        )
        font_size = self._float_option(options, "font_size", self.config.font_size)
        margin_x = self._float_option(options, "x", self.config.margin_x)
        margin_y = self._float_option(options, "y", self.config.margin_y)
        if font_size <= 0:
            raise RequestValidationError("Option 'font_size' must be greater than zero")
        anchor = options.get("anchor") or self.config.anchor
        if anchor not in ANCHORS:
            raise RequestValidationError(
                f"Invalid anchor '{anchor}', expected one of: {', '.join(ANCHORS)}"
            )

        doc = open_pdf(data)
        try:
            total_pages = doc.page_count
            validate_page_set(page_numbers, total_pages).raise_for_error()

            for page_num in page_numbers:
                page = doc[page_num - 1]
                if anchor == "top":
                    y = margin_y
                else:
                    # PyMuPDF measures y from the top edge
                    y = page.rect.height - margin_y
                page.insert_text(
                    pymupdf.Point(margin_x, y),
                    text,
                    fontsize=font_size,
                    fontname=self.config.font_name,
                )

            output_data = doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()

        logger.info(f"Stamped {len(page_numbers)} of {total_pages} pages")

        metadata = {
            "total_pages": str(total_pages),
            "pages_stamped": str(len(page_numbers)),
            "pages": ",".join(str(p) for p in page_numbers),
            "anchor": anchor,
        }

        return output_data, "pdf", metadata

    def _validate_text(self, text: Any) -> str:
        if not isinstance(text, str) or not text.strip():
            raise RequestValidationError("Stamp text must be a non-empty string")
        if len(text) > self.config.max_text_length:
            raise RequestValidationError(
                f"Stamp text exceeds {self.config.max_text_length} characters"
            )

        missing = undrawable_char(text, self.config.font_name)
        if missing is not None:
            raise RequestValidationError(
                f"Stamp text contains {missing!r} (U+{ord(missing):04X}), "
                f"which font '{self.config.font_name}' cannot draw",
                details={"character": missing, "font": self.config.font_name},
            )
        return text

    @staticmethod
    def _float_option(options: Dict[str, str], name: str, default: float) -> float:
        raw = options.get(name)
        if raw is None or raw == "":
            return default
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise RequestValidationError(f"Option '{name}' must be a number, got '{raw}'")
        if value < 0:
            raise RequestValidationError(f"Option '{name}' must not be negative")
        return value

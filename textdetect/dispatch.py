"""Route document bytes to an extraction adapter by content type."""

from __future__ import annotations

from .config import OCR_LANG
from .errors import UnsupportedMediaTypeError
from .ocr import extract_image_blocks
from .pdf_text import extract_pdf_blocks
from .schema import Block

PDF_TYPES = frozenset({"application/pdf"})
IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/bmp", "image/tiff"})


def dispatch(data: bytes, mime: str, ocr_lang: str = OCR_LANG) -> list[Block]:
    """Extract blocks from *data* with the adapter registered for *mime*.

    *ocr_lang* only applies to raster images.
    """
    if mime in PDF_TYPES:
        return extract_pdf_blocks(data)
    if mime in IMAGE_TYPES:
        return extract_image_blocks(data, lang=ocr_lang)
    raise UnsupportedMediaTypeError(mime)

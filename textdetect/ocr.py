"""Tesseract-based OCR extraction for raster images.

An image is treated as a single page. Line and word geometry come from
Tesseract itself and are normalized from pixels to page fractions.
"""

from __future__ import annotations

import io
import itertools
import logging
import math
from typing import Any

import pytesseract
from PIL import Image, UnidentifiedImageError

from .config import OCR_LANG
from .errors import ExtractionError
from .schema import UNIT_BOX, Block, BlockType, BoundingBox, clamp_unit, make_block

logger = logging.getLogger(__name__)

PAGE_CONFIDENCE = 95

# Tesseract image_to_data levels.
_LEVEL_LINE = 4
_LEVEL_WORD = 5


class TesseractSession:
    """Per-run OCR engine handle: verified on enter, released on exit.

    Usage::

        with TesseractSession(data) as session:
            ocr_data = session.recognize()
    """

    def __init__(self, data: bytes, lang: str = OCR_LANG) -> None:
        self._data = data
        self.lang = lang
        self.image: Image.Image | None = None

    def __enter__(self) -> "TesseractSession":
        self._check_engine()
        self.image = self._load_image()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.image is not None:
            self.image.close()
            self.image = None

    @property
    def size(self) -> tuple[int, int]:
        if self.image is None:
            raise ExtractionError("OCR session is not open")
        return self.image.size

    def recognize(self) -> dict[str, list]:
        if self.image is None:
            raise ExtractionError("OCR session is not open")
        try:
            return pytesseract.image_to_data(
                self.image, lang=self.lang, output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractError as exc:
            raise ExtractionError(f"OCR recognition failed: {exc}") from exc

    def _check_engine(self) -> None:
        try:
            pytesseract.get_tesseract_version()
            available = set(pytesseract.get_languages(config=""))
        except pytesseract.TesseractNotFoundError as exc:
            raise ExtractionError(f"OCR engine unavailable: {exc}") from exc
        except (pytesseract.TesseractError, OSError) as exc:
            raise ExtractionError(f"OCR engine failed to initialize: {exc}") from exc
        missing = [code for code in self.lang.split("+") if code not in available]
        if missing:
            raise ExtractionError(
                f"OCR language data not installed: {', '.join(missing)}"
            )

    def _load_image(self) -> Image.Image:
        try:
            opened = Image.open(io.BytesIO(self._data))
        except (UnidentifiedImageError, OSError) as exc:
            raise ExtractionError(f"Failed to decode image: {exc}") from exc
        try:
            # Multi-frame TIFFs: the first frame is the page.
            return opened.convert("RGB")
        except OSError as exc:
            raise ExtractionError(f"Failed to decode image: {exc}") from exc
        finally:
            opened.close()


def _round_confidence(value: float) -> int:
    return max(0, min(100, math.floor(value + 0.5)))


def _pixel_box(ocr_data: dict, index: int) -> tuple[int, int, int, int]:
    return (
        int(ocr_data["left"][index]),
        int(ocr_data["top"][index]),
        int(ocr_data["width"][index]),
        int(ocr_data["height"][index]),
    )


def _normalize_box(
    box: tuple[int, int, int, int], image_width: int, image_height: int
) -> BoundingBox:
    left, top, width, height = box
    return BoundingBox(
        width=clamp_unit(width / image_width),
        height=clamp_unit(height / image_height),
        left=clamp_unit(left / image_width),
        top=clamp_unit(top / image_height),
    )


def _union_box(boxes: list[tuple[int, int, int, int]]) -> tuple[int, int, int, int]:
    left = min(b[0] for b in boxes)
    top = min(b[1] for b in boxes)
    right = max(b[0] + b[2] for b in boxes)
    bottom = max(b[1] + b[3] for b in boxes)
    return left, top, right - left, bottom - top


def group_lines(ocr_data: dict) -> list[dict[str, Any]]:
    """Group ``image_to_data`` rows into lines of words, in reading order.

    Returns a list of ``{"bbox": (x, y, w, h) | None, "words": [...]}`` where
    each word is ``{"text", "bbox", "confidence"}``. Lines without any
    recognized word are dropped.
    """
    lines: dict[tuple[int, int, int], dict[str, Any]] = {}
    levels = ocr_data.get("level", [])
    for index in range(len(levels)):
        level = int(levels[index])
        if level not in (_LEVEL_LINE, _LEVEL_WORD):
            continue
        key = (
            int(ocr_data["block_num"][index]),
            int(ocr_data["par_num"][index]),
            int(ocr_data["line_num"][index]),
        )
        line = lines.setdefault(key, {"bbox": None, "words": []})
        if level == _LEVEL_LINE:
            line["bbox"] = _pixel_box(ocr_data, index)
            continue
        text = str(ocr_data["text"][index] or "").strip()
        if not text:
            continue
        try:
            confidence = float(ocr_data["conf"][index])
        except (TypeError, ValueError):
            confidence = -1.0
        if confidence < 0:
            continue
        line["words"].append(
            {"text": text, "bbox": _pixel_box(ocr_data, index), "confidence": confidence}
        )

    grouped = []
    for line in lines.values():
        if not line["words"]:
            continue
        if line["bbox"] is None:
            line["bbox"] = _union_box([w["bbox"] for w in line["words"]])
        grouped.append(line)
    return grouped


def blocks_from_ocr_data(
    ocr_data: dict, image_width: int, image_height: int
) -> list[Block]:
    """Build PAGE/LINE/WORD blocks from Tesseract ``image_to_data`` output."""
    if image_width <= 0 or image_height <= 0:
        raise ExtractionError("Image has no pixels")

    ids = itertools.count(1)
    blocks = [make_block(next(ids), BlockType.PAGE, 1, PAGE_CONFIDENCE, UNIT_BOX)]
    for line in group_lines(ocr_data):
        words = line["words"]
        line_confidence = sum(w["confidence"] for w in words) / len(words)
        blocks.append(
            make_block(
                next(ids),
                BlockType.LINE,
                1,
                _round_confidence(line_confidence),
                _normalize_box(line["bbox"], image_width, image_height),
                text=" ".join(w["text"] for w in words),
            )
        )
        for word in words:
            blocks.append(
                make_block(
                    next(ids),
                    BlockType.WORD,
                    1,
                    _round_confidence(word["confidence"]),
                    _normalize_box(word["bbox"], image_width, image_height),
                    text=word["text"],
                )
            )
    return blocks


def extract_image_blocks(data: bytes, lang: str = OCR_LANG) -> list[Block]:
    """Run OCR over a raster image and return its blocks.

    Raises:
        ExtractionError: if the engine cannot be initialized, the image
            cannot be decoded, or recognition fails.
    """
    with TesseractSession(data, lang=lang) as session:
        width, height = session.size
        ocr_data = session.recognize()
    blocks = blocks_from_ocr_data(ocr_data, width, height)
    logger.debug("Extracted %d blocks from image (%dx%d)", len(blocks), width, height)
    return blocks

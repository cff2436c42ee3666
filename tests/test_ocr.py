"""Tests for textdetect.ocr (mocked Tesseract engine)."""

from __future__ import annotations

import io
from unittest.mock import patch

import pytesseract
import pytest
from PIL import Image

from textdetect.errors import ExtractionError
from textdetect.ocr import (
    TesseractSession,
    blocks_from_ocr_data,
    extract_image_blocks,
    group_lines,
)
from textdetect.schema import UNIT_BOX, BlockType

_KEYS = (
    "level", "block_num", "par_num", "line_num", "word_num",
    "left", "top", "width", "height", "conf", "text",
)


def ocr_dict(rows: list[tuple]) -> dict[str, list]:
    """Build an ``image_to_data`` DICT from row tuples in _KEYS order."""
    data: dict[str, list] = {key: [] for key in _KEYS}
    for row in rows:
        for key, value in zip(_KEYS, row):
            data[key].append(value)
    return data


# 200x100 image: two lines, the second with an empty/low-conf artefact.
SAMPLE = ocr_dict([
    (1, 0, 0, 0, 0, 0, 0, 200, 100, -1, ""),
    (2, 1, 0, 0, 0, 10, 20, 150, 40, -1, ""),
    (3, 1, 1, 0, 0, 10, 20, 150, 40, -1, ""),
    (4, 1, 1, 1, 0, 10, 20, 100, 10, -1, ""),
    (5, 1, 1, 1, 1, 10, 20, 40, 10, 91.6, "Hello"),
    (5, 1, 1, 1, 2, 60, 20, 50, 10, 88.2, "world"),
    (4, 1, 1, 2, 0, 10, 50, 60, 10, -1, ""),
    (5, 1, 1, 2, 1, 10, 50, 30, 10, 70, "你好"),
    (5, 1, 1, 2, 2, 45, 50, 5, 10, 95, " "),
    (5, 1, 1, 2, 3, 50, 50, 5, 10, -1, "~"),
    (4, 1, 1, 3, 0, 10, 80, 60, 10, -1, ""),
    (5, 1, 1, 3, 1, 10, 80, 60, 10, 95, ""),
])


def _png_bytes(size=(200, 100)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color="white").save(buf, format="PNG")
    return buf.getvalue()


class TestGroupLines:
    def test_groups_words_by_line(self):
        lines = group_lines(SAMPLE)
        assert [[w["text"] for w in line["words"]] for line in lines] == [
            ["Hello", "world"],
            ["你好"],
        ]
        assert lines[0]["bbox"] == (10, 20, 100, 10)

    def test_missing_line_row_uses_word_union(self):
        data = ocr_dict([
            (5, 1, 1, 1, 1, 10, 20, 40, 10, 90, "a"),
            (5, 1, 1, 1, 2, 60, 25, 50, 10, 90, "b"),
        ])
        assert group_lines(data)[0]["bbox"] == (10, 20, 100, 15)


class TestBlocksFromOcrData:
    def test_block_order_and_text(self):
        blocks = blocks_from_ocr_data(SAMPLE, 200, 100)
        assert [(b.block_type.value, b.text) for b in blocks] == [
            ("PAGE", None),
            ("LINE", "Hello world"),
            ("WORD", "Hello"),
            ("WORD", "world"),
            ("LINE", "你好"),
            ("WORD", "你好"),
        ]
        assert [b.id for b in blocks] == ["1", "2", "3", "4", "5", "6"]
        assert all(b.page == 1 for b in blocks)

    def test_geometry_is_normalized(self):
        blocks = blocks_from_ocr_data(SAMPLE, 200, 100)
        page, line, hello = blocks[0], blocks[1], blocks[2]
        assert page.bounding_box == UNIT_BOX
        assert line.bounding_box.left == pytest.approx(0.05)
        assert line.bounding_box.top == pytest.approx(0.2)
        assert line.bounding_box.width == pytest.approx(0.5)
        assert line.bounding_box.height == pytest.approx(0.1)
        assert hello.bounding_box.width == pytest.approx(0.2)

    def test_confidence_is_rounded(self):
        blocks = blocks_from_ocr_data(SAMPLE, 200, 100)
        assert blocks[0].confidence == 95
        assert blocks[1].confidence == 90  # mean(91.6, 88.2) = 89.9
        assert blocks[2].confidence == 92
        assert blocks[3].confidence == 88

    def test_out_of_bounds_boxes_are_clamped(self):
        data = ocr_dict([
            (4, 1, 1, 1, 0, 150, 90, 300, 30, -1, ""),
            (5, 1, 1, 1, 1, 150, 90, 300, 30, 99, "edge"),
        ])
        blocks = blocks_from_ocr_data(data, 200, 100)
        assert blocks[1].bounding_box.width == 1.0
        for block in blocks:
            box = block.bounding_box
            for value in (box.width, box.height, box.left, box.top):
                assert 0.0 <= value <= 1.0

    def test_no_text_yields_page_only(self):
        blocks = blocks_from_ocr_data(ocr_dict([]), 200, 100)
        assert [b.block_type for b in blocks] == [BlockType.PAGE]

    def test_zero_size_image_raises(self):
        with pytest.raises(ExtractionError):
            blocks_from_ocr_data(SAMPLE, 0, 100)


@patch("textdetect.ocr.pytesseract.get_languages", return_value=["chi_sim", "eng", "osd"])
@patch("textdetect.ocr.pytesseract.get_tesseract_version", return_value="5.3.0")
class TestExtractImageBlocks:
    @patch("textdetect.ocr.pytesseract.image_to_data", return_value=SAMPLE)
    def test_runs_with_configured_language(self, mock_data, _version, _langs):
        blocks = extract_image_blocks(_png_bytes(), lang="chi_sim+eng")

        assert len(blocks) == 6
        assert mock_data.call_args.kwargs["lang"] == "chi_sim+eng"
        assert mock_data.call_args.kwargs["output_type"] == pytesseract.Output.DICT

    def test_missing_language_is_extraction_error(self, _version, _langs):
        with pytest.raises(ExtractionError, match="jpn"):
            extract_image_blocks(_png_bytes(), lang="jpn+eng")

    def test_undecodable_image_is_extraction_error(self, _version, _langs):
        with pytest.raises(ExtractionError, match="decode"):
            extract_image_blocks(b"not an image at all", lang="eng")

    @patch(
        "textdetect.ocr.pytesseract.image_to_data",
        side_effect=pytesseract.TesseractError(1, "bad"),
    )
    def test_recognition_failure_is_extraction_error(self, _data, _version, _langs):
        with pytest.raises(ExtractionError, match="recognition"):
            extract_image_blocks(_png_bytes(), lang="eng")

    def test_session_releases_image(self, _version, _langs):
        with TesseractSession(_png_bytes(), lang="eng") as session:
            assert session.size == (200, 100)
        assert session.image is None
        with pytest.raises(ExtractionError):
            session.recognize()


class TestEngineMissing:
    @patch(
        "textdetect.ocr.pytesseract.get_tesseract_version",
        side_effect=pytesseract.TesseractNotFoundError(),
    )
    def test_missing_binary_is_extraction_error(self, _version):
        with pytest.raises(ExtractionError, match="unavailable"):
            extract_image_blocks(_png_bytes())

"""Command-line interface for one-shot text detection of a local file."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import OCR_LANG
from .dispatch import dispatch
from .errors import DetectionError
from .schema import Block, BlockType
from .sniff import sniff


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""

    parser = argparse.ArgumentParser(
        description="Detect text in a PDF or image and print PAGE/LINE/WORD blocks.",
    )
    parser.add_argument("path", help="Path to a PDF, JPEG, PNG, BMP or TIFF file.")
    parser.add_argument(
        "--ocr-lang",
        type=str,
        default=OCR_LANG,
        help=f"Tesseract language spec for images (default: {OCR_LANG}).",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Print only LINE text, one per line, instead of JSON blocks.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        metavar="FILE",
        help="Write the output to FILE instead of stdout.",
    )
    return parser


def detect_file(path: str | Path, ocr_lang: str = OCR_LANG) -> list[Block]:
    """Sniff and extract *path* synchronously."""
    data = Path(path).read_bytes()
    return dispatch(data, sniff(data), ocr_lang=ocr_lang)


def render(blocks: list[Block], text_only: bool = False) -> str:
    if text_only:
        return "\n".join(
            b.text or "" for b in blocks if b.block_type == BlockType.LINE
        )
    payload = {
        "Blocks": [
            b.model_dump(by_alias=True, exclude_none=True, mode="json") for b in blocks
        ]
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        blocks = detect_file(args.path, ocr_lang=args.ocr_lang)
    except (OSError, DetectionError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    output = render(blocks, text_only=args.text)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

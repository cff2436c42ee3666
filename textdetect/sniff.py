"""Content-type detection from magic bytes (libmagic)."""

from __future__ import annotations

import logging

import magic

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"

# libmagic builds disagree on a few names; map them to the canonical ones.
_MIME_ALIASES: dict[str, str] = {
    "image/x-ms-bmp": "image/bmp",
    "image/x-bmp": "image/bmp",
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
    "application/x-pdf": "application/pdf",
    "application/x-empty": OCTET_STREAM,
    "inode/x-empty": OCTET_STREAM,
}


def sniff(data: bytes) -> str:
    """Return the MIME type of *data* based on its content only.

    Never raises; unknown or empty content yields ``application/octet-stream``.
    """
    if not data:
        return OCTET_STREAM
    try:
        mime = magic.from_buffer(data, mime=True)
    except Exception as exc:
        logger.warning("libmagic could not classify content: %s", exc)
        return OCTET_STREAM
    if not mime:
        return OCTET_STREAM
    mime = mime.strip().lower()
    return _MIME_ALIASES.get(mime, mime)

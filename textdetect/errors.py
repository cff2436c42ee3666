"""Exception taxonomy for text detection."""

from __future__ import annotations


class DetectionError(Exception):
    """Base exception for text detection errors."""


class BadRequestError(DetectionError):
    """Raised when a document location is malformed or incomplete."""


class NotFoundError(DetectionError):
    """Raised when a document or a job cannot be found."""


class UnsupportedMediaTypeError(DetectionError):
    """Raised when no extraction adapter handles the sniffed content type."""

    def __init__(self, mime: str) -> None:
        super().__init__(f"Unsupported file type: {mime}")
        self.mime = mime


class ExtractionError(DetectionError):
    """Raised when a document cannot be parsed or recognized."""


class InvalidStateError(DetectionError):
    """Raised on an attempted transition of a missing or terminal job."""


class EngineShutdownError(DetectionError):
    """Raised when a job is started after the engine has been shut down."""

"""Centralized configuration for storage, OCR and job lifecycle settings.

All env-driven settings live here so there is a single source of truth.
Import from ``textdetect.config`` in api.py, service.py, etc.
"""

from __future__ import annotations

import os
import sys


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_int(name: str, default: int, lo: int = 1, hi: int = 10_000) -> int:
    try:
        return max(lo, min(hi, int(os.environ.get(name, str(default)))))
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
LOCAL_STORAGE_PATH: str = _env_str("LOCAL_STORAGE_PATH", "/tmp")

# ---------------------------------------------------------------------------
# OCR
# ---------------------------------------------------------------------------
# Tesseract language spec; simplified Chinese plus English by default.
OCR_LANG: str = _env_str("OCR_LANG", "chi_sim+eng")

# ---------------------------------------------------------------------------
# Service address (used by textdetect.client)
# ---------------------------------------------------------------------------
HOST: str = _env_str("HOST", "localhost")
PORT: int = _env_int("PORT", default=3333, hi=65_535)
BASE_URL: str = _env_str("TEXTDETECT_URL", f"http://{HOST}:{PORT}")

# ---------------------------------------------------------------------------
# Job lifecycle
# ---------------------------------------------------------------------------
EXTRACTION_WORKERS: int = _env_int("EXTRACTION_WORKERS", default=2, hi=32)
JOB_RETENTION_SECONDS: int = _env_int(
    "JOB_RETENTION_SECONDS", default=24 * 60 * 60, hi=30 * 24 * 60 * 60,
)
SWEEP_INTERVAL_SECONDS: int = _env_int(
    "SWEEP_INTERVAL_SECONDS", default=60 * 60, hi=24 * 60 * 60,
)


def log_startup_config() -> None:
    """Print one startup line summarising active configuration."""
    msg = (
        f"textdetect config: LOCAL_STORAGE_PATH={LOCAL_STORAGE_PATH} "
        f"OCR_LANG={OCR_LANG} EXTRACTION_WORKERS={EXTRACTION_WORKERS} "
        f"JOB_RETENTION_SECONDS={JOB_RETENTION_SECONDS} "
        f"SWEEP_INTERVAL_SECONDS={SWEEP_INTERVAL_SECONDS}"
    )
    print(msg, flush=True)
    sys.stderr.write(msg + "\n")
    sys.stderr.flush()

"""Blob store collaborator: objects addressed by bucket and key.

``LocalBlobStore`` keeps objects as plain files under ``root/bucket/key``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .config import LOCAL_STORAGE_PATH
from .errors import BadRequestError, NotFoundError


class BlobStore(Protocol):
    def exists(self, bucket: str, key: str) -> bool: ...

    def read(self, bucket: str, key: str) -> bytes: ...


class LocalBlobStore:
    """Filesystem-backed blob store."""

    def __init__(self, root: str | Path = LOCAL_STORAGE_PATH) -> None:
        self.root = Path(root).expanduser().resolve()

    def path_for(self, bucket: str, key: str) -> Path:
        """Resolve an object path; reject locations outside the store root."""
        if not bucket or not key:
            raise BadRequestError('Missing "Bucket" or "Name"')
        invalid = f'Invalid object location: "{bucket}/{key}"'
        try:
            path = (self.root / bucket / key).resolve()
        except (ValueError, OSError) as exc:
            # e.g. embedded NUL bytes or names the OS cannot represent
            raise BadRequestError(invalid) from exc
        if path == self.root or self.root not in path.parents:
            raise BadRequestError(invalid)
        return path

    def exists(self, bucket: str, key: str) -> bool:
        return self.path_for(bucket, key).is_file()

    def read(self, bucket: str, key: str) -> bytes:
        path = self.path_for(bucket, key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise NotFoundError(f'File not found: "{bucket}/{key}"') from exc

    def write(self, bucket: str, key: str, data: bytes) -> None:
        path = self.path_for(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

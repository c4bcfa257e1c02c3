"""Blob storage for uploaded document bytes."""
from __future__ import annotations

import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from ..errors import StorageError, ValidationError

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')
_MAX_NAME_LENGTH = 120
_MAX_SUFFIX_LENGTH = 16
_CHUNK_SIZE = 1024 * 1024


def _clean(part: str) -> str:
    return _UNSAFE_CHARS.sub('_', part).strip('._')


def make_blob_key(filename: str) -> str:
    """Derive a unique, filesystem-safe blob key from an upload filename.

    Keeps a sanitized copy of the original name for readability:
    ``3f2a...-report.pdf``. Stem and extension are cleaned separately so
    the extension survives a stem with no safe characters
    (``报告.pdf`` -> ``3f2a...-file.pdf``).
    """
    base = Path(filename or '').name
    suffix = _clean(Path(base).suffix)[:_MAX_SUFFIX_LENGTH]
    stem = _clean(Path(base).stem) or 'file'
    ext = f'.{suffix}' if suffix else ''
    return f'{uuid.uuid4().hex}-{stem[:_MAX_NAME_LENGTH - len(ext)]}{ext}'


class BlobStorage(ABC):
    """Abstract blob store.

    Keys are flat names produced by ``make_blob_key``.
    """

    @abstractmethod
    def save(self, key: str, stream: BinaryIO, max_bytes: int | None = None) -> int:
        """Write ``stream`` under ``key``. Returns the number of bytes written."""
        ...

    @abstractmethod
    def path(self, key: str) -> Path:
        """Local filesystem path for ``key`` (for streaming responses)."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a blob. Returns False if it was already missing."""
        ...


class LocalBlobStorage(BlobStorage):
    """Local filesystem blob storage rooted at the uploads directory."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _abs(self, key: str) -> Path:
        """Resolve ``key`` inside root.

        Raises:
            ValidationError: If the key is empty or escapes the root.
        """
        if not key:
            raise ValidationError('Blob key is required')
        resolved = (self.root / key).resolve()
        if resolved.parent != self.root:
            raise ValidationError(f'Invalid blob key: {key}')
        return resolved

    def save(self, key: str, stream: BinaryIO, max_bytes: int | None = None) -> int:
        p = self._abs(key)
        written = 0
        try:
            with open(p, 'wb') as f:
                while True:
                    chunk = stream.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise ValidationError(
                            f'File exceeds maximum size of {max_bytes} bytes'
                        )
                    f.write(chunk)
        except ValidationError:
            p.unlink(missing_ok=True)
            raise
        except OSError as e:
            p.unlink(missing_ok=True)
            raise StorageError(f'Failed to store upload: {e.strerror or e}') from e
        return written

    def path(self, key: str) -> Path:
        return self._abs(key)

    def exists(self, key: str) -> bool:
        try:
            return self._abs(key).is_file()
        except ValidationError:
            return False

    def delete(self, key: str) -> bool:
        p = self._abs(key)
        try:
            p.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f'Failed to remove blob {key}: {e.strerror or e}') from e
        return True

"""JSON file primitives shared by the file-backed repositories.

Writes go through a temporary file in the same directory followed by
``os.replace`` so a single record file is either the old or the new
content, never a torn write. There is no cross-file transaction.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..errors import StorageError


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize ``data`` to ``path`` atomically.

    Output is stable for equal input (sorted keys, fixed indent).

    Raises:
        StorageError: If the directory or file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
                fh.write("\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise StorageError(f"Failed to write {path.name}: {exc.strerror or exc}") from exc


def read_json(path: Path, default: Any = None) -> Any:
    """Load JSON from ``path``; return ``default`` if the file is missing or empty.

    Raises:
        StorageError: If the file exists but cannot be read or parsed.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return default
    except OSError as exc:
        raise StorageError(f"Failed to read {path.name}: {exc.strerror or exc}") from exc
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Corrupt JSON in {path.name}: {exc.msg}") from exc


def remove_file(path: Path) -> bool:
    """Delete ``path``. Returns False if it did not exist.

    Raises:
        StorageError: On any other filesystem failure.
    """
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise StorageError(f"Failed to remove {Path(path).name}: {exc.strerror or exc}") from exc
    return True

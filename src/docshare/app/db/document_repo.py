"""File-backed DocumentRepository and SharedIndexStore.

Layout under the data directory::

    records/<doc_id>.json    one record per document
    shared-index.json        the aggregate {"files": [...]}

Each file is written atomically. A record file that cannot be parsed is
skipped (with a warning) when scanning, and raises ``StorageError`` when
loaded directly.
"""

from __future__ import annotations

from pathlib import Path

from docshare.observability.logging import get_logger

from ..documents.model import DocumentRecord, SharedIndexEntry, is_valid_doc_id
from ..errors import StorageError
from .json_store import read_json, remove_file, write_json_atomic

logger = get_logger(__name__)

RECORD_SUFFIX = ".json"


class JsonFileDocumentRepository:
    """DocumentRepository storing one JSON file per record."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, doc_id: str) -> Path:
        if not is_valid_doc_id(doc_id):
            raise StorageError(f"Invalid document id: {doc_id!r}")
        return self.root / f"{doc_id}{RECORD_SUFFIX}"

    async def get(self, doc_id: str) -> DocumentRecord | None:
        data = read_json(self._path(doc_id))
        if data is None:
            return None
        if not isinstance(data, dict):
            raise StorageError(f"Corrupt record {doc_id}")
        return DocumentRecord.from_dict(data, doc_id=doc_id)

    async def put(self, record: DocumentRecord) -> None:
        write_json_atomic(self._path(record.doc_id), record.to_dict())

    async def delete(self, doc_id: str) -> bool:
        return remove_file(self._path(doc_id))

    async def list_all(self) -> list[DocumentRecord]:
        records: list[DocumentRecord] = []
        for path in sorted(self.root.glob(f"*{RECORD_SUFFIX}")):
            doc_id = path.stem
            if not is_valid_doc_id(doc_id):
                continue
            try:
                data = read_json(path)
            except StorageError as exc:
                logger.warning("document_record_unreadable", doc_id=doc_id, error=exc.message)
                continue
            # Removed between glob and read.
            if data is None:
                continue
            if not isinstance(data, dict):
                logger.warning("document_record_unreadable", doc_id=doc_id, error="not an object")
                continue
            records.append(DocumentRecord.from_dict(data, doc_id=doc_id))
        return records


class JsonFileSharedIndexStore:
    """SharedIndexStore writing a single aggregate JSON document."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    async def write(self, entries: list[SharedIndexEntry]) -> None:
        write_json_atomic(self.path, {"files": [e.to_dict() for e in entries]})

    async def read(self) -> list[SharedIndexEntry]:
        data = read_json(self.path, default={"files": []})
        return [SharedIndexEntry.from_dict(item) for item in data.get("files", [])]

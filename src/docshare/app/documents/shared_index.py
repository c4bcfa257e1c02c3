"""Shared index builder.

The shared index is the public, read-optimized listing of every live
document: ``{"files": [{"name", "createdAt", "downloadUrl"}, ...]}``.
It has no identity of its own and is regenerated in full from the
document repository after every create, rename and delete.

Rebuild semantics:
  - Total: one entry per live record, keyed by doc id (no duplicates).
  - Idempotent: entries are sorted by (createdAt, doc id), so two rebuilds
    over unchanged records write identical output. The exception is a
    record with no ``createdAt``; it is stamped with the rebuild time and
    therefore moves on every rebuild.
  - Serialized: concurrent rebuilds run one at a time, each over the
    repository snapshot it reads when it starts.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from docshare.observability.logging import get_logger
from docshare.observability.metrics import (
    SHARED_INDEX_ENTRIES,
    SHARED_INDEX_REBUILDS_TOTAL,
)

from .model import (
    DocumentRecord,
    DocumentRepository,
    SharedIndexEntry,
    SharedIndexStore,
    format_timestamp,
)
from .urls import DocumentUrls

logger = get_logger(__name__)


def project_records(
    records: list[DocumentRecord],
    urls: DocumentUrls,
    now: datetime | None = None,
) -> list[SharedIndexEntry]:
    """Project a record snapshot onto shared index entries."""
    stamp = format_timestamp(now or datetime.now(timezone.utc))

    by_id: dict[str, DocumentRecord] = {}
    for record in records:
        by_id[record.doc_id] = record

    rows: list[tuple[str, str, SharedIndexEntry]] = []
    for doc_id, record in by_id.items():
        created = format_timestamp(record.created_at) if record.created_at else stamp
        entry = SharedIndexEntry(
            display_name=record.display_name or doc_id,
            created_at=created,
            download_url=urls.download_url(record.storage_location),
        )
        rows.append((created, doc_id, entry))

    rows.sort(key=lambda row: (row[0], row[1]))
    return [entry for _, _, entry in rows]


class SharedIndexBuilder:
    """Regenerates the shared index from the document repository."""

    def __init__(
        self,
        documents: DocumentRepository,
        store: SharedIndexStore,
        urls: DocumentUrls,
    ) -> None:
        self._documents = documents
        self._store = store
        self._urls = urls
        self._lock = asyncio.Lock()

    async def rebuild(self) -> list[SharedIndexEntry]:
        """Rebuild and persist the full index. Returns the written entries."""
        async with self._lock:
            snapshot = await self._documents.list_all()
            entries = project_records(snapshot, self._urls)
            await self._store.write(entries)

        SHARED_INDEX_REBUILDS_TOTAL.inc()
        SHARED_INDEX_ENTRIES.set(len(entries))
        logger.info("shared_index_rebuilt", entries=len(entries))
        return entries

    async def read(self) -> list[SharedIndexEntry]:
        """Return the last written index (empty if never built)."""
        return await self._store.read()

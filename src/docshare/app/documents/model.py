"""Document record domain model.

Invariants:
  - One record per uploaded blob, 1:1; ``storage_location`` never changes.
  - Only ``display_name`` is mutable (rename).
  - The access password is stored only as a bcrypt hash.
  - Document ids are random (``doc_<hex>``), not derived from the clock.

The shared index is a derived projection of all live records. It is
never mutated on its own; ``SharedIndexStore`` only persists whatever
the builder last produced.

This module provides:
  1. ``DocumentRecord`` / ``SharedIndexEntry`` domain objects.
  2. ``DocumentRepository`` / ``SharedIndexStore`` storage protocols.
  3. In-memory implementations of both.
  4. ``generate_doc_id`` / ``is_valid_doc_id`` helpers.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

# ── Identifiers ───────────────────────────────────────────────────────

DOC_ID_PREFIX = 'doc_'
DOC_ID_BYTES = 12

_DOC_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


def generate_doc_id() -> str:
    """Generate a random document id."""
    return f'{DOC_ID_PREFIX}{secrets.token_hex(DOC_ID_BYTES)}'


def is_valid_doc_id(doc_id: str) -> bool:
    """True if ``doc_id`` is safe to use as a record key.

    Also accepts ids from older records (base36 timestamps).
    """
    return bool(doc_id) and bool(_DOC_ID_PATTERN.match(doc_id))


def _parse_dt(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _blob_from_url(url: Any) -> str:
    # Older records stored the full download URL instead of the blob key.
    if not url:
        return ''
    return str(url).rstrip('/').rsplit('/', 1)[-1]


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


# ── Domain model ──────────────────────────────────────────────────────


@dataclass
class DocumentRecord:
    """Durable metadata for one uploaded document.

    Attributes:
        doc_id: Unique record key.
        storage_location: Blob key inside the upload store.
        owner_user_id: Username of the uploader.
        access_password_hash: bcrypt hash gating retrieval.
        display_name: Name shown in listings (rename target).
        created_at: Upload time. None only for legacy records.
    """

    doc_id: str
    storage_location: str
    owner_user_id: str
    access_password_hash: str
    display_name: str
    created_at: datetime | None = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'docId': self.doc_id,
            'storageLocation': self.storage_location,
            'userId': self.owner_user_id,
            'passwordHash': self.access_password_hash,
            'originalName': self.display_name,
        }
        if self.created_at is not None:
            data['createdAt'] = format_timestamp(self.created_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], doc_id: str | None = None) -> DocumentRecord:
        """Build a record from its stored form.

        ``doc_id`` overrides the stored id (file-backed records are keyed
        by filename). Missing fields load as empty values.
        """
        return cls(
            doc_id=doc_id or data.get('docId', ''),
            storage_location=data.get('storageLocation') or _blob_from_url(data.get('fileUrl')),
            owner_user_id=data.get('userId') or '',
            access_password_hash=data.get('passwordHash') or '',
            display_name=data.get('originalName') or '',
            created_at=_parse_dt(data.get('createdAt')),
        )


@dataclass(frozen=True, slots=True)
class SharedIndexEntry:
    """Public projection of a live document."""

    display_name: str
    created_at: str
    download_url: str

    def to_dict(self) -> dict[str, str]:
        return {
            'name': self.display_name,
            'createdAt': self.created_at,
            'downloadUrl': self.download_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SharedIndexEntry:
        return cls(
            display_name=data.get('name', ''),
            created_at=data.get('createdAt', ''),
            download_url=data.get('downloadUrl', ''),
        )


# ── Repository protocols ──────────────────────────────────────────────


class DocumentRepository(Protocol):
    """Keyed document record storage.

    Implementations: InMemoryDocumentRepository (testing),
    JsonFileDocumentRepository (one JSON file per record).
    """

    async def get(self, doc_id: str) -> DocumentRecord | None: ...

    async def put(self, record: DocumentRecord) -> None: ...

    async def delete(self, doc_id: str) -> bool: ...

    async def list_all(self) -> list[DocumentRecord]: ...


class SharedIndexStore(Protocol):
    """Persistence for the single aggregate shared-index document."""

    async def write(self, entries: list[SharedIndexEntry]) -> None: ...

    async def read(self) -> list[SharedIndexEntry]: ...


# ── In-memory implementations ─────────────────────────────────────────


class InMemoryDocumentRepository:
    """Simple in-memory document store for testing."""

    def __init__(self) -> None:
        self._records: dict[str, DocumentRecord] = {}

    async def get(self, doc_id: str) -> DocumentRecord | None:
        record = self._records.get(doc_id)
        if record is None:
            return None
        # Callers mutate what they load; hand out copies.
        return DocumentRecord(**vars(record))

    async def put(self, record: DocumentRecord) -> None:
        self._records[record.doc_id] = DocumentRecord(**vars(record))

    async def delete(self, doc_id: str) -> bool:
        return self._records.pop(doc_id, None) is not None

    async def list_all(self) -> list[DocumentRecord]:
        return [DocumentRecord(**vars(r)) for r in self._records.values()]


class InMemorySharedIndexStore:
    def __init__(self) -> None:
        self._entries: list[SharedIndexEntry] = []
        self.writes = 0

    async def write(self, entries: list[SharedIndexEntry]) -> None:
        self._entries = list(entries)
        self.writes += 1

    async def read(self) -> list[SharedIndexEntry]:
        return list(self._entries)

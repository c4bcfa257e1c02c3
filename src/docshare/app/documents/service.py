"""Document record store operations.

``DocumentService`` owns the lifetime of document records and their
blobs, and triggers a full shared index rebuild after every successful
mutation.

Consistency model:
  - Each record write is atomic (see ``db.json_store``).
  - Mutations of the same doc id are serialized by a per-id lock, so two
    renames of one document never interleave their read and write.
  - Mutations of different ids run concurrently. The rebuild each one
    triggers reads whatever records exist at that moment.
  - Delete removes the blob before the record. If record removal fails
    afterwards, the error is raised and nothing is rolled back.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, BinaryIO

from docshare.observability.logging import get_logger
from docshare.observability.metrics import DOCUMENT_MUTATIONS_TOTAL, UPLOAD_SIZE_BYTES

from ..errors import (
    DocShareError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from ..security.passwords import DEFAULT_ROUNDS, hash_password
from .blobs import BlobStorage, make_blob_key
from .model import (
    DocumentRecord,
    DocumentRepository,
    format_timestamp,
    generate_doc_id,
    is_valid_doc_id,
)
from .shared_index import SharedIndexBuilder
from .urls import DocumentUrls

logger = get_logger(__name__)

UNNAMED_FILE = 'Unnamed File'


class KeyedLocks:
    """One asyncio.Lock per key, dropped when no longer in use."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: defaultdict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


class DocumentService:
    """Create, rename, delete and list document records."""

    def __init__(
        self,
        documents: DocumentRepository,
        blobs: BlobStorage,
        index: SharedIndexBuilder,
        urls: DocumentUrls,
        *,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
        max_upload_bytes: int | None = None,
    ) -> None:
        self._documents = documents
        self._blobs = blobs
        self._index = index
        self._urls = urls
        self._rounds = bcrypt_rounds
        self._max_upload_bytes = max_upload_bytes
        self._locks = KeyedLocks()

    @property
    def urls(self) -> DocumentUrls:
        return self._urls

    @property
    def blobs(self) -> BlobStorage:
        return self._blobs

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, doc_id: str) -> DocumentRecord:
        """Load one record.

        Raises:
            NotFoundError: Unknown or malformed doc id.
        """
        if not is_valid_doc_id(doc_id):
            raise NotFoundError('File not found')
        record = await self._documents.get(doc_id)
        if record is None:
            raise NotFoundError('File not found')
        return record

    async def list(self) -> list[dict[str, Any]]:
        """Full scan of live records in listing form.

        Sorted by createdAt for stable output; order is not a contract.
        """
        records = await self._documents.list_all()
        listing = [self.describe(r) for r in records]
        listing.sort(key=lambda item: (item['createdAt'] is None, item['createdAt'] or '', item['docId']))
        return listing

    def describe(self, record: DocumentRecord) -> dict[str, Any]:
        return {
            'docId': record.doc_id,
            'name': record.display_name or UNNAMED_FILE,
            'createdAt': format_timestamp(record.created_at) if record.created_at else None,
            'userId': record.owner_user_id or None,
            'qrUrl': self._urls.download_page_url(record.doc_id),
            'downloadUrl': self._urls.download_url(record.storage_location),
        }

    # ── Mutations ─────────────────────────────────────────────────────

    async def create(
        self,
        owner_user_id: str,
        blob_location: str,
        display_name: str,
        access_password: str,
    ) -> str:
        """Persist a record for an already stored blob and return its id.

        Raises:
            ValidationError: Blob, owner or password missing.
        """
        doc_id = await self._insert(
            owner_user_id, blob_location, display_name, access_password,
        )
        await self._index.rebuild()
        return doc_id

    async def _insert(
        self,
        owner_user_id: str,
        blob_location: str,
        display_name: str,
        access_password: str,
    ) -> str:
        if not owner_user_id:
            raise ValidationError('userId is required')
        if not access_password:
            raise ValidationError('password is required')
        if not blob_location or not self._blobs.exists(blob_location):
            raise ValidationError('file is required')

        password_hash = await asyncio.to_thread(
            hash_password, access_password, self._rounds,
        )
        doc_id = generate_doc_id()
        record = DocumentRecord(
            doc_id=doc_id,
            storage_location=blob_location,
            owner_user_id=owner_user_id,
            access_password_hash=password_hash,
            display_name=display_name or blob_location,
            created_at=datetime.now(timezone.utc),
        )
        async with self._locks.hold(doc_id):
            try:
                await self._documents.put(record)
            except DocShareError:
                DOCUMENT_MUTATIONS_TOTAL.labels(operation='create', outcome='error').inc()
                raise

        DOCUMENT_MUTATIONS_TOTAL.labels(operation='create', outcome='ok').inc()
        logger.info('document_created', doc_id=doc_id, owner=owner_user_id)
        return doc_id

    async def upload(
        self,
        owner_user_id: str,
        filename: str,
        stream: BinaryIO,
        access_password: str,
        display_name: str | None = None,
    ) -> DocumentRecord:
        """Store the blob, then create its record.

        If record creation fails or is cancelled, the stored blob is removed
        again, so no blob is left without a record.
        """
        if not filename:
            raise ValidationError('file is required')
        if not owner_user_id or not access_password:
            raise ValidationError('File, userId and password required')

        key = make_blob_key(filename)
        size = await asyncio.to_thread(
            self._blobs.save, key, stream, self._max_upload_bytes,
        )
        try:
            doc_id = await self._insert(
                owner_user_id, key, display_name or filename, access_password,
            )
        except BaseException:
            self._blobs.delete(key)
            raise
        await self._index.rebuild()

        UPLOAD_SIZE_BYTES.observe(size)
        logger.info('document_uploaded', doc_id=doc_id, size=size)
        return await self.get(doc_id)

    async def rename(
        self,
        doc_id: str,
        new_display_name: str,
        actor: str | None = None,
    ) -> DocumentRecord:
        """Overwrite a record's display name.

        Args:
            actor: Caller's user id. When given, it must own the record.

        Raises:
            NotFoundError: Unknown doc id.
            PermissionDeniedError: ``actor`` is not the owner.
            ValidationError: Empty new name.
        """
        new_display_name = (new_display_name or '').strip()

        async with self._locks.hold(doc_id):
            record = await self.get(doc_id)
            self._check_owner(record, actor, 'rename')
            if not new_display_name:
                raise ValidationError('newName is required')
            record.display_name = new_display_name
            try:
                await self._documents.put(record)
            except DocShareError:
                DOCUMENT_MUTATIONS_TOTAL.labels(operation='rename', outcome='error').inc()
                raise

        DOCUMENT_MUTATIONS_TOTAL.labels(operation='rename', outcome='ok').inc()
        logger.info('document_renamed', doc_id=doc_id)
        await self._index.rebuild()
        return record

    async def delete(self, doc_id: str, actor: str | None = None) -> None:
        """Remove a record and its blob.

        A missing blob is tolerated.

        Raises:
            NotFoundError: Unknown doc id.
            PermissionDeniedError: ``actor`` is not the owner.
            StorageError: Blob or record removal failed. If the blob was
                already removed, the record may remain (no rollback).
        """
        async with self._locks.hold(doc_id):
            record = await self.get(doc_id)
            self._check_owner(record, actor, 'delete')

            blob_removed = False
            if record.storage_location:
                try:
                    blob_removed = self._blobs.delete(record.storage_location)
                except ValidationError:
                    logger.warning('document_blob_key_invalid', doc_id=doc_id)
            if not blob_removed:
                logger.warning('document_blob_missing', doc_id=doc_id)

            try:
                await self._documents.delete(doc_id)
            except StorageError as exc:
                DOCUMENT_MUTATIONS_TOTAL.labels(operation='delete', outcome='partial').inc()
                logger.error('document_delete_partial', doc_id=doc_id, blob_removed=blob_removed)
                if blob_removed:
                    message = f'File removed but its record could not be deleted: {exc.message}'
                else:
                    message = f'File was already missing and its record could not be deleted: {exc.message}'
                raise StorageError(message) from exc

        DOCUMENT_MUTATIONS_TOTAL.labels(operation='delete', outcome='ok').inc()
        logger.info('document_deleted', doc_id=doc_id)
        await self._index.rebuild()

    @staticmethod
    def _check_owner(record: DocumentRecord, actor: str | None, operation: str) -> None:
        if actor is None or actor == record.owner_user_id:
            return
        logger.warning(
            'document_owner_mismatch',
            doc_id=record.doc_id,
            actor=actor,
            operation=operation,
        )
        raise PermissionDeniedError('Only the owner can modify this file')

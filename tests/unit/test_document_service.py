"""Tests for the document record store.

Validates:
  - create: validation, random ids, hashed password, index rebuild.
  - list: round-trip of name/createdAt/downloadUrl.
  - rename: new name only, createdAt unchanged, owner enforcement.
  - delete: blob + record removed, missing blob tolerated, partial failure.
  - upload: blob cleanup when record creation fails.
  - Per-doc-id serialization of concurrent mutations.
"""

from __future__ import annotations

import asyncio
import io

import pytest

from docshare.app.documents import KeyedLocks
from docshare.app.errors import (
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)


# =====================================================================
# create
# =====================================================================


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_returns_random_doc_id(self, doc_stack, put_blob):
        a = await doc_stack.service.create('alice', put_blob('a-x.pdf'), 'x.pdf', 'secret')
        b = await doc_stack.service.create('alice', put_blob('b-x.pdf'), 'x.pdf', 'secret')
        assert a != b
        assert a.startswith('doc_')

    @pytest.mark.asyncio
    async def test_password_stored_only_as_hash(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')
        record = await doc_stack.repo.get(doc_id)
        assert record.access_password_hash.startswith('$2')
        assert 'secret' not in record.access_password_hash

    @pytest.mark.asyncio
    @pytest.mark.parametrize('owner,password', [('', 'secret'), ('alice', '')])
    async def test_missing_owner_or_password_rejected(self, doc_stack, put_blob, owner, password):
        with pytest.raises(ValidationError):
            await doc_stack.service.create(owner, put_blob(), 'report.pdf', password)
        assert await doc_stack.repo.list_all() == []

    @pytest.mark.asyncio
    async def test_missing_blob_rejected(self, doc_stack):
        with pytest.raises(ValidationError):
            await doc_stack.service.create('alice', 'no-such-blob.pdf', 'report.pdf', 'secret')
        with pytest.raises(ValidationError):
            await doc_stack.service.create('alice', '', 'report.pdf', 'secret')

    @pytest.mark.asyncio
    async def test_create_rebuilds_index(self, doc_stack, put_blob):
        await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')
        assert doc_stack.store.writes == 1
        entries = await doc_stack.index.read()
        assert [e.display_name for e in entries] == ['report.pdf']


# =====================================================================
# list
# =====================================================================


class TestList:

    @pytest.mark.asyncio
    async def test_round_trip(self, doc_stack, put_blob):
        key = put_blob('k1-report.pdf')
        doc_id = await doc_stack.service.create('alice', key, 'report.pdf', 'secret')
        record = await doc_stack.service.get(doc_id)

        files = await doc_stack.service.list()
        assert len(files) == 1
        item = files[0]
        assert item['docId'] == doc_id
        assert item['name'] == 'report.pdf'
        assert item['userId'] == 'alice'
        assert item['createdAt'].endswith('Z')
        assert item['downloadUrl'] == doc_stack.urls.download_url(key)
        assert item['qrUrl'] == doc_stack.urls.download_page_url(doc_id)

        entry = (await doc_stack.index.read())[0]
        assert entry.created_at == item['createdAt']
        assert entry.download_url == item['downloadUrl']
        assert record.created_at is not None

    @pytest.mark.asyncio
    async def test_empty_store(self, doc_stack):
        assert await doc_stack.service.list() == []

    @pytest.mark.asyncio
    async def test_unnamed_record_listed_with_placeholder(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'x', 'secret')
        record = await doc_stack.repo.get(doc_id)
        record.display_name = ''
        await doc_stack.repo.put(record)
        files = await doc_stack.service.list()
        assert files[0]['name'] == 'Unnamed File'


# =====================================================================
# rename
# =====================================================================


class TestRename:

    @pytest.mark.asyncio
    async def test_rename_reflects_new_name_only(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')
        before = (await doc_stack.service.list())[0]

        await doc_stack.service.rename(doc_id, 'Q3-report.pdf')

        files = await doc_stack.service.list()
        assert [f['name'] for f in files] == ['Q3-report.pdf']
        assert files[0]['createdAt'] == before['createdAt']
        names = [e.display_name for e in await doc_stack.index.read()]
        assert names == ['Q3-report.pdf']

    @pytest.mark.asyncio
    async def test_rename_unknown_doc(self, doc_stack):
        with pytest.raises(NotFoundError):
            await doc_stack.service.rename('doc_missing', 'x')

    @pytest.mark.asyncio
    async def test_rename_traversal_id_is_not_found(self, doc_stack):
        with pytest.raises(NotFoundError):
            await doc_stack.service.rename('../users', 'x')

    @pytest.mark.asyncio
    async def test_rename_empty_name_rejected(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')
        with pytest.raises(ValidationError):
            await doc_stack.service.rename(doc_id, '   ')

    @pytest.mark.asyncio
    async def test_rename_unknown_doc_with_empty_name(self, doc_stack):
        with pytest.raises(NotFoundError):
            await doc_stack.service.rename('doc_missing', '')

    @pytest.mark.asyncio
    async def test_rename_by_non_owner_denied(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')
        with pytest.raises(PermissionDeniedError):
            await doc_stack.service.rename(doc_id, 'mine now', actor='mallory')
        assert (await doc_stack.service.get(doc_id)).display_name == 'report.pdf'

    @pytest.mark.asyncio
    async def test_rename_by_owner_allowed(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')
        record = await doc_stack.service.rename(doc_id, 'final.pdf', actor='alice')
        assert record.display_name == 'final.pdf'


# =====================================================================
# delete
# =====================================================================


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_blob_record_and_index_entry(self, doc_stack, put_blob):
        key = put_blob()
        doc_id = await doc_stack.service.create('alice', key, 'report.pdf', 'secret')

        await doc_stack.service.delete(doc_id)

        assert not doc_stack.blobs.exists(key)
        assert await doc_stack.repo.get(doc_id) is None
        assert await doc_stack.service.list() == []
        assert await doc_stack.index.read() == []
        with pytest.raises(NotFoundError):
            await doc_stack.gate.verify(doc_id, 'secret')

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_blob(self, doc_stack, put_blob):
        key = put_blob()
        doc_id = await doc_stack.service.create('alice', key, 'report.pdf', 'secret')
        doc_stack.blobs.delete(key)

        await doc_stack.service.delete(doc_id)
        assert await doc_stack.repo.get(doc_id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_doc(self, doc_stack):
        with pytest.raises(NotFoundError):
            await doc_stack.service.delete('doc_missing')

    @pytest.mark.asyncio
    async def test_delete_by_non_owner_denied(self, doc_stack, put_blob):
        key = put_blob()
        doc_id = await doc_stack.service.create('alice', key, 'report.pdf', 'secret')
        with pytest.raises(PermissionDeniedError):
            await doc_stack.service.delete(doc_id, actor='mallory')
        assert doc_stack.blobs.exists(key)

    @pytest.mark.asyncio
    async def test_record_removal_failure_is_partial(self, doc_stack, put_blob, monkeypatch):
        key = put_blob()
        doc_id = await doc_stack.service.create('alice', key, 'report.pdf', 'secret')

        async def failing_delete(_doc_id):
            raise StorageError('disk full')

        monkeypatch.setattr(doc_stack.repo, 'delete', failing_delete)

        with pytest.raises(StorageError, match='File removed'):
            await doc_stack.service.delete(doc_id)
        # Blob is gone, record remains: reported, not rolled back.
        assert not doc_stack.blobs.exists(key)
        assert await doc_stack.repo.get(doc_id) is not None

    @pytest.mark.asyncio
    async def test_record_removal_failure_with_missing_blob(self, doc_stack, put_blob, monkeypatch):
        key = put_blob()
        doc_id = await doc_stack.service.create('alice', key, 'report.pdf', 'secret')
        doc_stack.blobs.delete(key)

        async def failing_delete(_doc_id):
            raise StorageError('disk full')

        monkeypatch.setattr(doc_stack.repo, 'delete', failing_delete)

        with pytest.raises(StorageError, match='already missing') as exc_info:
            await doc_stack.service.delete(doc_id)
        assert 'File removed' not in exc_info.value.message


# =====================================================================
# upload
# =====================================================================


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_stores_blob_and_record(self, doc_stack):
        record = await doc_stack.service.upload(
            'alice', 'report.pdf', io.BytesIO(b'data'), 'secret',
        )
        assert record.display_name == 'report.pdf'
        assert record.storage_location.endswith('-report.pdf')
        assert doc_stack.blobs.exists(record.storage_location)

    @pytest.mark.asyncio
    async def test_upload_uses_explicit_display_name(self, doc_stack):
        record = await doc_stack.service.upload(
            'alice', 'scan001.pdf', io.BytesIO(b'data'), 'secret', display_name='Lease',
        )
        assert record.display_name == 'Lease'

    @pytest.mark.asyncio
    async def test_upload_without_password_stores_nothing(self, doc_stack):
        with pytest.raises(ValidationError):
            await doc_stack.service.upload('alice', 'report.pdf', io.BytesIO(b'data'), '')
        assert list(doc_stack.blobs.root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_blob_removed_when_record_write_fails(self, doc_stack, monkeypatch):
        async def failing_put(_record):
            raise StorageError('disk full')

        monkeypatch.setattr(doc_stack.repo, 'put', failing_put)

        with pytest.raises(StorageError):
            await doc_stack.service.upload('alice', 'report.pdf', io.BytesIO(b'data'), 'secret')
        assert list(doc_stack.blobs.root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_blob_removed_when_upload_is_cancelled(self, doc_stack, monkeypatch):
        put_started = asyncio.Event()

        async def slow_put(_record):
            put_started.set()
            await asyncio.sleep(10)

        monkeypatch.setattr(doc_stack.repo, 'put', slow_put)

        task = asyncio.create_task(doc_stack.service.upload(
            'alice', 'report.pdf', io.BytesIO(b'data'), 'secret',
        ))
        await put_started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert list(doc_stack.blobs.root.iterdir()) == []
        assert await doc_stack.repo.list_all() == []

    @pytest.mark.asyncio
    async def test_upload_size_limit(self, doc_stack):
        doc_stack.service._max_upload_bytes = 4
        with pytest.raises(ValidationError):
            await doc_stack.service.upload('alice', 'big.bin', io.BytesIO(b'0123456789'), 'secret')
        assert list(doc_stack.blobs.root.iterdir()) == []


# =====================================================================
# Concurrency
# =====================================================================


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_renames_serialize(self, doc_stack, put_blob):
        doc_id = await doc_stack.service.create('alice', put_blob(), 'report.pdf', 'secret')

        await asyncio.gather(*(
            doc_stack.service.rename(doc_id, f'name-{i}') for i in range(10)
        ))

        final = (await doc_stack.service.get(doc_id)).display_name
        assert final.startswith('name-')
        entries = await doc_stack.index.read()
        assert len(entries) == 1

    @pytest.mark.asyncio
    async def test_concurrent_creates_all_indexed(self, doc_stack, put_blob):
        keys = [put_blob(f'{i:04d}-f.pdf') for i in range(8)]
        await asyncio.gather(*(
            doc_stack.service.create('alice', k, k, 'secret') for k in keys
        ))
        entries = await doc_stack.index.read()
        assert len(entries) == 8

    @pytest.mark.asyncio
    async def test_keyed_locks_are_released(self):
        locks = KeyedLocks()
        async with locks.hold('doc_a'):
            assert len(locks) == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_keyed_locks_serialize_same_key(self):
        locks = KeyedLocks()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold('doc_a'):
                order.append(f'{name}-start')
                await asyncio.sleep(0.01)
                order.append(f'{name}-end')

        await asyncio.gather(worker('one'), worker('two'))
        assert order == ['one-start', 'one-end', 'two-start', 'two-end']

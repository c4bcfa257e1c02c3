"""Document upload, listing, mutation and gated retrieval endpoints.

  POST   /upload                  → store file + record, return QR   (session)
  GET    /files                   → list all live documents
  POST   /files/{doc_id}/rename   → change display name              (session, owner)
  DELETE /files/{doc_id}          → remove file + record             (session, owner)
  POST   /verify-password         → access gate check
  GET    /shared                  → the shared index
  GET    /uploads/{blob_key}      → stored file bytes

Errors are raised as ``DocShareError`` subclasses and rendered by the
app-level exception handler.

This module provides:
  ``create_document_router``: FastAPI router factory.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from ..accounts.model import AuthIdentity
from ..errors import AuthError, NotFoundError, PermissionDeniedError, ValidationError
from ..security.auth_guard import get_auth_identity
from .access import AccessGate
from .qr import render_qr_data_uri
from .service import DocumentService
from .shared_index import SharedIndexBuilder


# ── Request schemas ──────────────────────────────────────────────────


class RenameRequest(BaseModel):
    newName: str = ''


class VerifyPasswordRequest(BaseModel):
    docId: str = ''
    password: str = ''


# ── Route factory ────────────────────────────────────────────────────


def create_document_router(
    documents: DocumentService,
    gate: AccessGate,
    index: SharedIndexBuilder,
) -> APIRouter:
    """Create the document router with injected services."""
    router = APIRouter(tags=['documents'])

    @router.post('/upload')
    async def upload(
        file: UploadFile | None = File(default=None),
        password: str = Form(default=''),
        userId: str = Form(default=''),
        name: str = Form(default=''),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Upload a file protected by ``password``.

        ``file``, ``password`` and ``userId`` are required; ``userId`` must
        name the signed-in user.
        """
        if file is None or not file.filename or not userId or not password:
            raise ValidationError('File, userId and password required')
        if userId != identity.user_id:
            raise PermissionDeniedError('userId does not match the signed-in user')

        try:
            record = await documents.upload(
                owner_user_id=identity.user_id,
                filename=file.filename,
                stream=file.file,
                access_password=password,
                display_name=name.strip() or None,
            )
        finally:
            await file.close()

        page_url = documents.urls.download_page_url(record.doc_id)
        return {
            'docId': record.doc_id,
            'downloadPageUrl': page_url,
            'qrImageDataUri': render_qr_data_uri(page_url),
        }

    @router.get('/files')
    async def list_files():
        return {'files': await documents.list()}

    @router.post('/files/{doc_id}/rename')
    async def rename_file(
        doc_id: str,
        body: RenameRequest,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        await documents.rename(doc_id, body.newName, actor=identity.user_id)
        return {'success': True}

    @router.delete('/files/{doc_id}')
    async def delete_file(
        doc_id: str,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        await documents.delete(doc_id, actor=identity.user_id)
        return {'success': True}

    @router.post('/verify-password')
    async def verify_password(body: VerifyPasswordRequest):
        """Check a document's access password.

        Returns the download URL on success.
        """
        record = await gate.open(body.docId, body.password)
        if record is None:
            raise AuthError('Invalid password')
        return {
            'success': True,
            'downloadUrl': documents.urls.download_url(record.storage_location),
        }

    @router.get('/shared')
    async def shared_index():
        entries = await index.read()
        return {'files': [e.to_dict() for e in entries]}

    @router.get('/uploads/{blob_key}')
    async def download_blob(blob_key: str):
        if not documents.blobs.exists(blob_key):
            raise NotFoundError('File not found')
        # Blob keys are "<uuid hex>-<original name>".
        download_name = blob_key.split('-', 1)[-1]
        return FileResponse(documents.blobs.path(blob_key), filename=download_name)

    return router

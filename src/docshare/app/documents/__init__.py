"""Document record store, shared index and access gate."""

from .access import AccessGate
from .blobs import BlobStorage, LocalBlobStorage, make_blob_key
from .model import (
    DocumentRecord,
    DocumentRepository,
    InMemoryDocumentRepository,
    InMemorySharedIndexStore,
    SharedIndexEntry,
    SharedIndexStore,
    generate_doc_id,
    is_valid_doc_id,
)
from .qr import render_qr_data_uri
from .routes import create_document_router
from .service import DocumentService, KeyedLocks
from .shared_index import SharedIndexBuilder, project_records
from .urls import DocumentUrls

__all__ = [
    'AccessGate',
    'BlobStorage',
    'DocumentRecord',
    'DocumentRepository',
    'DocumentService',
    'DocumentUrls',
    'InMemoryDocumentRepository',
    'InMemorySharedIndexStore',
    'KeyedLocks',
    'LocalBlobStorage',
    'SharedIndexBuilder',
    'SharedIndexEntry',
    'SharedIndexStore',
    'create_document_router',
    'generate_doc_id',
    'is_valid_doc_id',
    'make_blob_key',
    'project_records',
    'render_qr_data_uri',
]

"""Access gate: password check before a document is retrieved.

``verify`` distinguishes "not found" from "wrong password". Both are
already distinguishable through the public listing, so hiding the
difference here would not protect anything.
"""

from __future__ import annotations

import asyncio

from docshare.observability.logging import get_logger
from docshare.observability.metrics import ACCESS_CHECKS_TOTAL

from ..errors import ConfigurationError, NotFoundError, ValidationError
from ..security.passwords import verify_password
from .model import DocumentRecord, DocumentRepository, is_valid_doc_id

logger = get_logger(__name__)


class AccessGate:
    """Verifies a presented password against a record's stored hash."""

    def __init__(self, documents: DocumentRepository) -> None:
        self._documents = documents

    async def verify(self, doc_id: str, presented_password: str) -> bool:
        """Return True (grant) on a matching password, False (deny) otherwise.

        Raises:
            ValidationError: doc id or password missing.
            NotFoundError: No record for ``doc_id``.
            ConfigurationError: The record has no password hash.
        """
        if not doc_id or not presented_password:
            raise ValidationError('docId and password required')

        record = await self._load(doc_id)
        if not record.access_password_hash:
            ACCESS_CHECKS_TOTAL.labels(result='misconfigured').inc()
            logger.error('access_record_without_hash', doc_id=doc_id)
            raise ConfigurationError('No password hash found')

        granted = await asyncio.to_thread(
            verify_password, presented_password, record.access_password_hash,
        )
        if granted:
            ACCESS_CHECKS_TOTAL.labels(result='grant').inc()
            logger.info('access_granted', doc_id=doc_id)
        else:
            ACCESS_CHECKS_TOTAL.labels(result='deny').inc()
            logger.info('access_denied', doc_id=doc_id)
        return granted

    async def open(self, doc_id: str, presented_password: str) -> DocumentRecord | None:
        """Like ``verify`` but returns the record on grant, None on deny."""
        if not await self.verify(doc_id, presented_password):
            return None
        return await self._load(doc_id)

    async def _load(self, doc_id: str) -> DocumentRecord:
        record = None
        if is_valid_doc_id(doc_id):
            record = await self._documents.get(doc_id)
        if record is None:
            ACCESS_CHECKS_TOTAL.labels(result='not_found').inc()
            raise NotFoundError('File not found')
        return record

"""Public URL construction for documents."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlencode

UPLOADS_PREFIX = '/uploads'
DOWNLOAD_PAGE = '/shared.html'


@dataclass(frozen=True, slots=True)
class DocumentUrls:
    """Builds absolute URLs from the configured public base URL."""

    base_url: str

    def download_url(self, storage_location: str) -> str:
        """Where the blob bytes are served; empty for records without a blob."""
        if not storage_location:
            return ''
        return f'{self.base_url}{UPLOADS_PREFIX}/{quote(storage_location)}'

    def download_page_url(self, doc_id: str) -> str:
        """Password-gated download page encoded into the QR code."""
        return f'{self.base_url}{DOWNLOAD_PAGE}?{urlencode({"docId": doc_id})}'

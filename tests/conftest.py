"""Pytest configuration for docshare tests."""
import io
import sys
from pathlib import Path
from types import SimpleNamespace

# Add src/ to path for src-layout imports
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from docshare.app.accounts import (
    CredentialService,
    InMemorySessionRepository,
    InMemoryUserRepository,
)
from docshare.app.documents import (
    AccessGate,
    DocumentService,
    DocumentUrls,
    InMemoryDocumentRepository,
    InMemorySharedIndexStore,
    LocalBlobStorage,
    SharedIndexBuilder,
)
from docshare.app.settings import DocShareSettings

# Minimum bcrypt cost keeps the suite fast.
TEST_ROUNDS = 4
BASE_URL = 'http://docs.test'


@pytest.fixture
def data_dir(tmp_path):
    """Create a temporary data directory for testing."""
    root = tmp_path / 'data'
    root.mkdir()
    return root


@pytest.fixture
def settings(data_dir):
    return DocShareSettings(
        data_dir=data_dir,
        public_base_url=BASE_URL,
        bcrypt_rounds=TEST_ROUNDS,
    )


@pytest.fixture
def doc_stack(data_dir):
    """In-memory records + on-disk blobs, wired like the app does."""
    repo = InMemoryDocumentRepository()
    store = InMemorySharedIndexStore()
    blobs = LocalBlobStorage(data_dir / 'uploads')
    urls = DocumentUrls(BASE_URL)
    index = SharedIndexBuilder(repo, store, urls)
    service = DocumentService(repo, blobs, index, urls, bcrypt_rounds=TEST_ROUNDS)
    return SimpleNamespace(
        repo=repo,
        store=store,
        blobs=blobs,
        urls=urls,
        index=index,
        service=service,
        gate=AccessGate(repo),
    )


@pytest.fixture
def credentials():
    return CredentialService(
        InMemoryUserRepository(),
        InMemorySessionRepository(),
        bcrypt_rounds=TEST_ROUNDS,
    )


@pytest.fixture
def put_blob(doc_stack):
    """Store a blob directly and return its key."""

    def _put(key='0001-report.pdf', content=b'%PDF-1.4 test'):
        doc_stack.blobs.save(key, io.BytesIO(content))
        return key

    return _put

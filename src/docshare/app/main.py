"""DocShare FastAPI application factory.

The create_app() factory is the single entry point for building the ASGI
application. It wires middleware (request-ID, metrics, request logging,
CORS), the error handlers, and injects repository/notifier
implementations via dependency injection.

Usage:
    # Local development (file-backed, data under ./data)
    from docshare.app import create_app, DocShareSettings
    app = create_app(DocShareSettings())

    # Production
    app = create_app(DocShareSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, document_repo=InMemoryDocumentRepository(), ...)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from docshare.observability.logging import configure_logging, get_logger
from docshare.observability.metrics import metrics_text
from docshare.observability.middleware import AccessLogMiddleware, RequestIdMiddleware

from .accounts.model import SessionRepository, UserRepository
from .accounts.routes import create_account_router
from .accounts.service import CredentialService
from .documents.access import AccessGate
from .documents.blobs import BlobStorage, LocalBlobStorage
from .documents.model import DocumentRepository, SharedIndexStore
from .documents.routes import create_document_router
from .documents.service import DocumentService
from .documents.shared_index import SharedIndexBuilder
from .documents.urls import DocumentUrls
from .errors import DocShareError
from .notifications import Notifier
from .notifications.routes import create_contact_router
from .settings import DocShareSettings

logger = get_logger(__name__)


@dataclass(frozen=True)
class AppDependencies:
    """Container for all wired services.

    Stored on ``app.state.deps`` so route handlers and dependencies can
    access them.
    """

    credentials: CredentialService
    documents: DocumentService
    access_gate: AccessGate
    shared_index: SharedIndexBuilder
    notifier: Notifier


@dataclass(frozen=True)
class _Repositories:
    users: UserRepository
    sessions: SessionRepository
    documents: DocumentRepository
    index_store: SharedIndexStore


def _build_repositories(
    settings: DocShareSettings,
    *,
    users: UserRepository | None,
    sessions: SessionRepository | None,
    documents: DocumentRepository | None,
    index_store: SharedIndexStore | None,
) -> _Repositories:
    """Fill in repositories not supplied by the caller.

    Defaults come from the configured storage backend.
    """
    if settings.storage_backend == "memory":
        from .accounts.model import InMemorySessionRepository, InMemoryUserRepository
        from .documents.model import InMemoryDocumentRepository, InMemorySharedIndexStore

        return _Repositories(
            users=users or InMemoryUserRepository(),
            sessions=sessions or InMemorySessionRepository(),
            documents=documents or InMemoryDocumentRepository(),
            index_store=index_store or InMemorySharedIndexStore(),
        )

    from .db import (
        JsonFileDocumentRepository,
        JsonFileSessionRepository,
        JsonFileSharedIndexStore,
        JsonFileUserRepository,
    )

    data_dir = Path(settings.data_dir)
    return _Repositories(
        users=users or JsonFileUserRepository(data_dir / "users.json"),
        sessions=sessions or JsonFileSessionRepository(data_dir / "sessions.json"),
        documents=documents or JsonFileDocumentRepository(data_dir / "records"),
        index_store=index_store or JsonFileSharedIndexStore(data_dir / "shared-index.json"),
    )


def _build_notifier(settings: DocShareSettings) -> Notifier:
    if settings.smtp_host:
        from .notifications import SmtpNotifier

        return SmtpNotifier(
            settings.smtp_host,
            settings.smtp_port,
            sender=settings.contact_sender,
            recipient=settings.contact_recipient,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )

    from .notifications import InMemoryNotifier

    return InMemoryNotifier()


# ── Error handlers ──────────────────────────────────────────────────


async def _docshare_error_handler(request: Request, exc: DocShareError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", code=exc.code, error=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = ".".join(str(p) for p in errors[0].get("loc", ())[1:]) if errors else ""
    message = f"Invalid or missing field: {field}" if field else "Invalid request body"
    return JSONResponse(
        status_code=400,
        content={"error": message, "code": "validation_error"},
    )


# ── Factory ─────────────────────────────────────────────────────────


def create_app(
    settings: DocShareSettings | None = None,
    *,
    user_repo: UserRepository | None = None,
    session_repo: SessionRepository | None = None,
    document_repo: DocumentRepository | None = None,
    index_store: SharedIndexStore | None = None,
    blob_storage: BlobStorage | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """Create a configured docshare FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        user_repo..notifier: Overrides. When None, implementations are
            chosen from ``settings.storage_backend`` and the SMTP config.

    Returns:
        Configured FastAPI application ready for uvicorn.run().

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = DocShareSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "DocShare settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging()

    repos = _build_repositories(
        settings,
        users=user_repo,
        sessions=session_repo,
        documents=document_repo,
        index_store=index_store,
    )
    urls = DocumentUrls(settings.base_url)
    blobs = blob_storage or LocalBlobStorage(settings.uploads_dir)

    shared_index = SharedIndexBuilder(repos.documents, repos.index_store, urls)
    deps = AppDependencies(
        credentials=CredentialService(
            repos.users,
            repos.sessions,
            bcrypt_rounds=settings.bcrypt_rounds,
            session_ttl=timedelta(hours=settings.session_ttl_hours),
        ),
        documents=DocumentService(
            repos.documents,
            blobs,
            shared_index,
            urls,
            bcrypt_rounds=settings.bcrypt_rounds,
            max_upload_bytes=settings.max_upload_bytes,
        ),
        access_gate=AccessGate(repos.documents),
        shared_index=shared_index,
        notifier=notifier or _build_notifier(settings),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("docshare_startup", environment=settings.environment, base_url=settings.base_url)
        purged = await deps.credentials.purge_expired_sessions()
        if purged:
            logger.info("expired_sessions_purged", count=purged)
        # The index is derived state; regenerate it from the records.
        await deps.shared_index.rebuild()
        yield
        logger.info("docshare_shutdown")

    app = FastAPI(
        title="QR DocShare",
        description="Password-protected document sharing via QR codes",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.deps = deps
    app.state.settings = settings

    app.add_exception_handler(DocShareError, _docshare_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    # ── Middleware stack (applied in reverse order) ──────────────
    # Order of execution: RequestID -> AccessLog -> CORS -> route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ── Routes ──────────────────────────────────────────────────

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    @app.get("/metrics")
    async def metrics():
        body, content_type = metrics_text()
        return Response(content=body, media_type=content_type)

    app.include_router(create_account_router(deps.credentials))
    app.include_router(
        create_document_router(deps.documents, deps.access_gate, deps.shared_index)
    )
    app.include_router(create_contact_router(deps.notifier))

    return app


# For uvicorn, use --factory flag:
#   uvicorn docshare.app.main:create_app --factory
# This avoids executing create_app() at import time.

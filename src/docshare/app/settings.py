"""Application configuration settings.

DocShareSettings is the single configuration object accepted by create_app().
It is intentionally a plain dataclass (not env-coupled) so tests can inject
config without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

VALID_STORAGE_BACKENDS = frozenset({"file", "memory"})

MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31

DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("*",)
DEFAULT_CONTACT_SENDER = "QR DocShare <no-reply@localhost>"


def _env_bool(raw: str | None, default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class DocShareSettings:
    """Configuration for the docshare FastAPI application.

    All fields have sensible defaults for local development.
    Non-local environments must supply a real public base URL and an
    SMTP host for contact notifications.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    port: int = 3000

    public_base_url: str = ""
    """Base URL used in download and QR links. Defaults to http://localhost:{port}."""

    # ── Storage ────────────────────────────────────────────────────
    data_dir: Path = Path("data")
    """Root for uploads/, records/, shared-index.json, users.json, sessions.json."""

    storage_backend: str = "file"
    """``file`` for per-record JSON files, ``memory`` for in-process dicts."""

    max_upload_bytes: int = 25 * 1024 * 1024

    # ── Credentials / Sessions ─────────────────────────────────────
    bcrypt_rounds: int = 10
    """bcrypt cost factor for user and document access passwords."""

    session_ttl_hours: int = 24

    # ── CORS ───────────────────────────────────────────────────────
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    # ── Contact notifications ──────────────────────────────────────
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    """Never log this."""
    smtp_use_tls: bool = True
    contact_recipient: str = ""
    contact_sender: str = DEFAULT_CONTACT_SENDER

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def base_url(self) -> str:
        return (self.public_base_url or f"http://localhost:{self.port}").rstrip("/")

    @property
    def uploads_dir(self) -> Path:
        return Path(self.data_dir) / "uploads"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.storage_backend not in VALID_STORAGE_BACKENDS:
            errors.append(
                f"storage_backend must be one of {sorted(VALID_STORAGE_BACKENDS)}, "
                f"got {self.storage_backend!r}"
            )
        if not MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= MAX_BCRYPT_ROUNDS:
            errors.append(
                f"bcrypt_rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}"
            )
        if self.session_ttl_hours < 1:
            errors.append("session_ttl_hours must be >= 1")
        if self.max_upload_bytes < 1:
            errors.append("max_upload_bytes must be >= 1")
        if not self.is_local:
            if not self.public_base_url or "localhost" in self.public_base_url:
                errors.append(f"{self.environment}: public_base_url is required")
            if not self.smtp_host:
                errors.append(f"{self.environment}: smtp_host is required")
            if not self.contact_recipient:
                errors.append(f"{self.environment}: contact_recipient is required")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> DocShareSettings:
        """Build settings from environment variables.

        This is a convenience factory for production use. Tests should
        construct DocShareSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = tuple(o.strip() for o in cors_raw.split(",") if o.strip()) if cors_raw else DEFAULT_CORS_ORIGINS

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            port=int(env.get("PORT", "3000")),
            public_base_url=env.get("BASE_URL", ""),
            data_dir=Path(env.get("DATA_DIR", "data")),
            storage_backend=env.get("STORAGE_BACKEND", "file"),
            max_upload_bytes=int(env.get("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024))),
            bcrypt_rounds=int(env.get("BCRYPT_ROUNDS", "10")),
            session_ttl_hours=int(env.get("SESSION_TTL_HOURS", "24")),
            cors_origins=cors,
            smtp_host=env.get("SMTP_HOST", ""),
            smtp_port=int(env.get("SMTP_PORT", "587")),
            smtp_username=env.get("SMTP_USERNAME", ""),
            smtp_password=env.get("SMTP_PASSWORD", ""),
            smtp_use_tls=_env_bool(env.get("SMTP_USE_TLS"), True),
            contact_recipient=env.get("CONTACT_RECIPIENT", ""),
            contact_sender=env.get("CONTACT_SENDER", DEFAULT_CONTACT_SENDER),
        )

"""User and session domain model with token-hash persistence.

  - Usernames are unique across the user collection.
  - Passwords are stored only as bcrypt hashes.
  - Session tokens are opaque, URL-safe and random. Only the SHA-256 hash
    of a token is persisted; the plaintext is returned once at login.
  - Sessions expire after a configurable TTL and can be revoked.

This module provides:
  1. ``User`` / ``Session`` / ``AuthIdentity`` domain objects.
  2. ``UserRepository`` / ``SessionRepository`` storage protocols.
  3. ``InMemoryUserRepository`` / ``InMemorySessionRepository``.
  4. ``generate_session_token`` / ``hash_token`` helpers.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from ..errors import ConflictError

# ── Constants ─────────────────────────────────────────────────────────

TOKEN_BYTES = 32  # 256-bit tokens.


# ── Token operations ──────────────────────────────────────────────────


def generate_session_token() -> str:
    """Generate a cryptographically random URL-safe session token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(plaintext: str) -> str:
    """SHA-256 hash of a plaintext session token (the persisted key)."""
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


def _parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


# ── Domain model ──────────────────────────────────────────────────────


@dataclass
class User:
    """A registered account.

    Attributes:
        username: Unique login name.
        display_name: Human-readable name given at signup.
        email: Contact address.
        password_hash: bcrypt hash of the account password.
    """

    username: str
    display_name: str
    email: str
    password_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "name": self.display_name,
            "email": self.email,
            "password": self.password_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            username=data["username"],
            display_name=data.get("name", ""),
            email=data.get("email", ""),
            password_hash=data.get("password", ""),
        )


@dataclass(frozen=True, slots=True)
class AuthIdentity:
    """Authenticated caller, as seen by the document core."""

    user_id: str
    email: str = ""
    display_name: str = ""

    @classmethod
    def from_user(cls, user: User) -> AuthIdentity:
        return cls(user_id=user.username, email=user.email, display_name=user.display_name)


@dataclass
class Session:
    """A login session keyed by the hash of its token."""

    token_hash: str
    username: str
    expires_at: datetime
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, token_hash: str, data: dict[str, Any]) -> Session:
        return cls(
            token_hash=token_hash,
            username=data["username"],
            expires_at=_parse_dt(data.get("expires_at")) or datetime.now(timezone.utc),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(timezone.utc),
        )


# ── Repository protocols ──────────────────────────────────────────────


class UserRepository(Protocol):
    """User collection storage.

    Implementations: InMemoryUserRepository (testing),
    JsonFileUserRepository (file backend).
    """

    async def get(self, username: str) -> User | None: ...

    async def add(self, user: User) -> User:
        """Insert a new user.

        Raises:
            ConflictError: A user with the same username exists.
        """
        ...


class SessionRepository(Protocol):
    """Token-hash -> session mapping."""

    async def put(self, session: Session) -> None: ...

    async def get(self, token_hash: str) -> Session | None: ...

    async def delete(self, token_hash: str) -> bool: ...

    async def purge_expired(self) -> int: ...


# ── In-memory implementations ─────────────────────────────────────────


class InMemoryUserRepository:
    """Simple in-memory user store for testing."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    async def get(self, username: str) -> User | None:
        return self._users.get(username)

    async def add(self, user: User) -> User:
        if user.username in self._users:
            raise ConflictError("User already exists")
        self._users[user.username] = user
        return user


class InMemorySessionRepository:
    """Simple in-memory session store for testing."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def put(self, session: Session) -> None:
        self._sessions[session.token_hash] = session

    async def get(self, token_hash: str) -> Session | None:
        return self._sessions.get(token_hash)

    async def delete(self, token_hash: str) -> bool:
        return self._sessions.pop(token_hash, None) is not None

    async def purge_expired(self) -> int:
        expired = [h for h, s in self._sessions.items() if s.is_expired]
        for token_hash in expired:
            del self._sessions[token_hash]
        return len(expired)

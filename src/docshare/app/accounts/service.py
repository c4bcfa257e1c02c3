"""Credential store and session registry operations.

The document core consumes two capabilities from here:
``authenticate(username, password)`` and ``issue_session(identity)``.
Mutating document routes resolve the caller with ``resolve_session``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from docshare.observability.logging import get_logger

from ..errors import AuthError, ValidationError
from ..security.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from .model import (
    AuthIdentity,
    Session,
    SessionRepository,
    User,
    UserRepository,
    generate_session_token,
    hash_token,
)

logger = get_logger(__name__)

DEFAULT_SESSION_TTL_HOURS = 24

_INVALID_CREDENTIALS = "Invalid username or password"


class CredentialService:
    """Signup, login and session lifecycle over injected repositories."""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository,
        *,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
        session_ttl: timedelta = timedelta(hours=DEFAULT_SESSION_TTL_HOURS),
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._rounds = bcrypt_rounds
        self._ttl = session_ttl
        # Serializes the username existence check with the insert.
        self._signup_lock = asyncio.Lock()

    async def signup(
        self, name: str, username: str, email: str, password: str,
    ) -> User:
        """Register a new user.

        Raises:
            ValidationError: Any field is missing.
            ConflictError: The username is taken.
        """
        if not all((name, username, email, password)):
            raise ValidationError("All fields are required")

        password_hash = await asyncio.to_thread(hash_password, password, self._rounds)
        user = User(
            username=username,
            display_name=name,
            email=email,
            password_hash=password_hash,
        )
        async with self._signup_lock:
            await self._users.add(user)

        logger.info("user_signed_up", username=username)
        return user

    async def authenticate(self, username: str, password: str) -> AuthIdentity:
        """Verify credentials.

        Raises:
            AuthError: Unknown user or wrong password (same message for both).
        """
        if not username or not password:
            raise AuthError(_INVALID_CREDENTIALS)

        user = await self._users.get(username)
        if user is None:
            logger.info("login_failed", username=username, reason="unknown_user")
            raise AuthError(_INVALID_CREDENTIALS)

        valid = await asyncio.to_thread(verify_password, password, user.password_hash)
        if not valid:
            logger.info("login_failed", username=username, reason="bad_password")
            raise AuthError(_INVALID_CREDENTIALS)

        return AuthIdentity.from_user(user)

    async def issue_session(self, identity: AuthIdentity) -> str:
        """Create a session for ``identity`` and return its plaintext token."""
        token = generate_session_token()
        now = datetime.now(timezone.utc)
        await self._sessions.put(
            Session(
                token_hash=hash_token(token),
                username=identity.user_id,
                created_at=now,
                expires_at=now + self._ttl,
            )
        )
        logger.info("session_issued", username=identity.user_id)
        return token

    async def login(self, username: str, password: str) -> str:
        """authenticate + issue_session."""
        identity = await self.authenticate(username, password)
        return await self.issue_session(identity)

    async def resolve_session(self, token: str) -> AuthIdentity:
        """Map a session token to its identity.

        Raises:
            AuthError: Token unknown, expired, or its user no longer exists.
        """
        if not token:
            raise AuthError("Authentication required")

        token_h = hash_token(token)
        session = await self._sessions.get(token_h)
        if session is None:
            raise AuthError("Invalid session")
        if session.is_expired:
            await self._sessions.delete(token_h)
            raise AuthError("Session has expired")

        user = await self._users.get(session.username)
        if user is None:
            raise AuthError("Invalid session")
        return AuthIdentity.from_user(user)

    async def revoke_session(self, token: str) -> bool:
        """Invalidate a session token. Returns False if it was unknown."""
        removed = await self._sessions.delete(hash_token(token))
        if removed:
            logger.info("session_revoked")
        return removed

    async def purge_expired_sessions(self) -> int:
        return await self._sessions.purge_expired()

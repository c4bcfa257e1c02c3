"""File-backed UserRepository and SessionRepository.

``users.json`` holds a list of user objects; ``sessions.json`` maps
token hashes to sessions. Both files are rewritten in full, atomically,
on every change.
"""

from __future__ import annotations

from pathlib import Path

from ..accounts.model import Session, User
from ..errors import ConflictError, StorageError
from .json_store import read_json, write_json_atomic


class JsonFileUserRepository:
    """UserRepository over a single ``users.json`` list."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> list[User]:
        data = read_json(self.path, default=[])
        if not isinstance(data, list):
            raise StorageError(f"Corrupt user collection in {self.path.name}")
        return [User.from_dict(item) for item in data]

    async def get(self, username: str) -> User | None:
        for user in self._load():
            if user.username == username:
                return user
        return None

    async def add(self, user: User) -> User:
        users = self._load()
        if any(u.username == user.username for u in users):
            raise ConflictError("User already exists")
        users.append(user)
        write_json_atomic(self.path, [u.to_dict() for u in users])
        return user


class JsonFileSessionRepository:
    """SessionRepository over a ``sessions.json`` token-hash mapping."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, Session]:
        data = read_json(self.path, default={})
        if not isinstance(data, dict):
            raise StorageError(f"Corrupt session map in {self.path.name}")
        sessions: dict[str, Session] = {}
        for token_hash, item in data.items():
            # Pre-expiry sessions stored a bare username.
            if not isinstance(item, dict):
                continue
            sessions[token_hash] = Session.from_dict(token_hash, item)
        return sessions

    def _save(self, sessions: dict[str, Session]) -> None:
        write_json_atomic(self.path, {h: s.to_dict() for h, s in sessions.items()})

    async def put(self, session: Session) -> None:
        sessions = self._load()
        sessions[session.token_hash] = session
        self._save(sessions)

    async def get(self, token_hash: str) -> Session | None:
        return self._load().get(token_hash)

    async def delete(self, token_hash: str) -> bool:
        sessions = self._load()
        if sessions.pop(token_hash, None) is None:
            return False
        self._save(sessions)
        return True

    async def purge_expired(self) -> int:
        sessions = self._load()
        live = {h: s for h, s in sessions.items() if not s.is_expired}
        removed = len(sessions) - len(live)
        if removed:
            self._save(live)
        return removed

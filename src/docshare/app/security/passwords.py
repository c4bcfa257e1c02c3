"""Password hashing for user credentials and document access passwords.

Both use bcrypt: salted, slow, and compared in constant time by
``bcrypt.checkpw``. bcrypt only considers the first 72 bytes of input,
so longer passwords are truncated explicitly before hashing and checking.

Hashing is CPU-bound; async callers should run these through
``asyncio.to_thread``.
"""

from __future__ import annotations

import bcrypt

BCRYPT_MAX_BYTES = 72
DEFAULT_ROUNDS = 10


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a bcrypt hash string (``$2b$...``) for ``password``."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    """Check ``password`` against a stored bcrypt hash.

    Returns False (rather than raising) for malformed hashes.
    """
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("ascii"))
    except ValueError:
        return False

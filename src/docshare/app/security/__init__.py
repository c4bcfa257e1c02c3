"""Password hashing and request authentication."""

from .auth_guard import extract_bearer_token, get_auth_identity
from .passwords import hash_password, verify_password

__all__ = [
    'extract_bearer_token',
    'get_auth_identity',
    'hash_password',
    'verify_password',
]

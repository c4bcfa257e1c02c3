"""Credential store and session registry."""

from .model import (
    AuthIdentity,
    InMemorySessionRepository,
    InMemoryUserRepository,
    Session,
    SessionRepository,
    User,
    UserRepository,
    generate_session_token,
    hash_token,
)
from .service import CredentialService

__all__ = [
    'AuthIdentity',
    'CredentialService',
    'InMemorySessionRepository',
    'InMemoryUserRepository',
    'Session',
    'SessionRepository',
    'User',
    'UserRepository',
    'generate_session_token',
    'hash_token',
]

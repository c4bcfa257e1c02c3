"""File-backed repository implementations."""

from .account_repo import JsonFileSessionRepository, JsonFileUserRepository
from .document_repo import JsonFileDocumentRepository, JsonFileSharedIndexStore
from .json_store import read_json, remove_file, write_json_atomic

__all__ = [
    "JsonFileDocumentRepository",
    "JsonFileSessionRepository",
    "JsonFileSharedIndexStore",
    "JsonFileUserRepository",
    "read_json",
    "remove_file",
    "write_json_atomic",
]

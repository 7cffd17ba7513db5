"""
Storage Services Package

Provides the abstract persistence port and its implementations:
in-memory (tests), JSON files (default) and Google Sheets.
"""

from biztrack.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    StateStorageInterface,
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
)
from biztrack.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStateStorage,
)
from biztrack.services.storage.json_file import JsonFileStateStorage
from biztrack.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Collection",
    "StateStorageInterface",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    "StorageNotFoundError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
]

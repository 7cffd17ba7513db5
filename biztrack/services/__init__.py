"""Services package."""

from biztrack.services.storage import (
    AuditStorageInterface,
    Collection,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    InMemoryAuditStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    StateStorageInterface,
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
)

__all__ = [
    "AuditStorageInterface",
    "Collection",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "StateStorageInterface",
    "StorageConnectionError",
    "StorageError",
    "StorageNotFoundError",
]

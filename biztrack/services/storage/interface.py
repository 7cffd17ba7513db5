"""
Abstract Storage Interface

DESIGN DECISION: The ledger never talks to a storage backend directly.
It is handed the last-saved collections at startup and hands each
changed collection back after every committed mutation. This allows us to:
1. Keep the ledger in memory as the single source of truth
2. Use in-memory storage for testing
3. Swap JSON files for Google Sheets (or a database) without touching
   business logic

The interface is intentionally coarse: whole collections in, whole
collections out. Last write wins.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from biztrack.models.audit import AuditEvent


class Collection(str, Enum):
    """Named collections that make up the persisted ledger state."""
    PRODUCTS = "products"
    SALES = "sales"
    EXPENSES = "expenses"
    SUPPLIERS = "suppliers"
    CUSTOMERS = "customers"
    SETTINGS = "settings"
    SKU_PREFIXES = "sku_prefixes"
    DELIVERY_CHARGES = "delivery_charges"


class StateStorageInterface(ABC):
    """
    Abstract interface for ledger state storage.

    Records are plain JSON-compatible data: a list of dicts for every
    collection except SETTINGS, which is a single dict.
    """

    @abstractmethod
    def load_collection(self, collection: Collection) -> Optional[Any]:
        """
        Load the last-saved records of a collection.

        Args:
            collection: Which collection to load

        Returns:
            The stored records, or None if the collection was never saved

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save_collection(self, collection: Collection, records: Any) -> None:
        """
        Replace the stored records of a collection.

        Args:
            collection: Which collection to store
            records: The full current collection

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class StorageNotFoundError(StorageError):
    """The configured storage location does not exist."""
    pass

"""
In-Memory Storage Implementation

Used by tests and by the "memory" backend. Records are deep-copied on
the way in and out so callers can never alias stored state.
"""

import copy
from typing import Any, Optional

from biztrack.models.audit import AuditEvent
from biztrack.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    StateStorageInterface,
)


class InMemoryStateStorage(StateStorageInterface):
    """Keeps saved collections in a dict."""

    def __init__(self, initial: Optional[dict[Collection, Any]] = None):
        self._data: dict[Collection, Any] = {}
        self.save_count = 0
        for collection, records in (initial or {}).items():
            self._data[Collection(collection)] = copy.deepcopy(records)

    def load_collection(self, collection: Collection) -> Optional[Any]:
        if collection not in self._data:
            return None
        return copy.deepcopy(self._data[collection])

    def save_collection(self, collection: Collection, records: Any) -> None:
        self._data[collection] = copy.deepcopy(records)
        self.save_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

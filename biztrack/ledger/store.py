"""
Business Store

The single owner of ledger state. One instance per business, created at
startup and passed to every component; there is no module-level state.

DESIGN DECISION: Every mutating command runs inside transaction():
1. One re-entrant lock serializes all commands and reads
2. The collections are snapshotted on entry and restored if the command
   raises, so a sale is never stored without its stock movement (or the
   other way round)
3. On commit, each changed collection is handed to the storage port and
   the command's audit events are logged

Components never cache collections; they go through store.state inside
a transaction or a read() block.
"""

import copy
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Optional, TypeVar

import structlog

from biztrack.audit import AuditLogger
from biztrack.errors import PersistenceError
from biztrack.ledger.migrations import migrate_settings
from biztrack.models.audit import AuditEvent, AuditEventBuilder
from biztrack.models.ledger import (
    BusinessSettings,
    Customer,
    Expense,
    LedgerModel,
    LedgerSnapshot,
    LocationCharge,
    Product,
    Sale,
    SkuPrefix,
    Supplier,
    default_sku_prefixes,
    utcnow,
)
from biztrack.services.storage import Collection, StateStorageInterface, StorageError


logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=LedgerModel)

# Entity collections, keyed by id, and the model each record loads into
ENTITY_COLLECTIONS: dict[Collection, type[LedgerModel]] = {
    Collection.PRODUCTS: Product,
    Collection.SALES: Sale,
    Collection.EXPENSES: Expense,
    Collection.SUPPLIERS: Supplier,
    Collection.CUSTOMERS: Customer,
    Collection.SKU_PREFIXES: SkuPrefix,
    Collection.DELIVERY_CHARGES: LocationCharge,
}


class LedgerState:
    """
    In-memory collections.

    Entity dicts keep insertion order (oldest first). Stored records
    are newest first, matching how lists are displayed.
    """

    def __init__(self, settings: BusinessSettings):
        self.settings = settings
        self.products: dict[str, Product] = {}
        self.sales: dict[str, Sale] = {}
        self.expenses: dict[str, Expense] = {}
        self.suppliers: dict[str, Supplier] = {}
        self.customers: dict[str, Customer] = {}
        self.sku_prefixes: dict[str, SkuPrefix] = {
            p.id: p for p in default_sku_prefixes()
        }
        self.delivery_charges: dict[str, LocationCharge] = {}

    def collection(self, collection: Collection) -> dict[str, Any]:
        return getattr(self, collection.value)


class LedgerTransaction:
    """Bookkeeping for one command: touched collections and audit events."""

    def __init__(self):
        self.touched: set[Collection] = set()
        self.events: list[AuditEvent] = []

    def touch(self, *collections: Collection) -> None:
        self.touched.update(collections)

    def emit(self, event: AuditEvent) -> None:
        self.events.append(event)


class BusinessStore:
    """
    Holds the ledger state behind a lock and persists it on commit.
    """

    def __init__(
        self,
        storage: Optional[StateStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        defaults: Optional[BusinessSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            storage: Persistence port. If None, state lives only in memory.
            audit_logger: Where command events go. Defaults to local logging.
            defaults: Business settings used when none were saved yet.
            clock: Source of "now" for refund stamps and new records.
        """
        self._lock = threading.RLock()
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock or utcnow
        self._state = LedgerState(
            settings=defaults.model_copy(deep=True) if defaults else BusinessSettings()
        )
        self._active: Optional[LedgerTransaction] = None
        self._dirty: set[Collection] = set()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        """Live state. Only touch it inside transaction() or read()."""
        return self._state

    @property
    def dirty_collections(self) -> set[Collection]:
        return set(self._dirty)

    def now(self) -> datetime:
        return self._clock()

    def log_event(self, event: AuditEvent) -> None:
        """Log an event right away, outside any transaction (e.g. a rejection)."""
        self._audit_logger.log(event)

    @contextmanager
    def read(self) -> Iterator[LedgerState]:
        """Hold the lock for a consistent multi-collection read."""
        with self._lock:
            yield self._state

    def snapshot(self) -> LedgerSnapshot:
        """
        Deep-copied view of every collection, taken under the lock.

        Newest records come first in every list.
        """
        with self._lock:
            state = copy.deepcopy(self._state)
        return LedgerSnapshot(
            taken_at=self.now(),
            settings=state.settings,
            products=list(reversed(state.products.values())),
            sales=list(reversed(state.sales.values())),
            expenses=list(reversed(state.expenses.values())),
            suppliers=list(reversed(state.suppliers.values())),
            customers=list(reversed(state.customers.values())),
            sku_prefixes=list(state.sku_prefixes.values()),
            delivery_charges=list(state.delivery_charges.values()),
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[LedgerTransaction]:
        """
        Run one command atomically.

        Nested calls join the outermost transaction, so a component can
        call another component's command as one step of its own.

        Raises:
            PersistenceError: after commit, if storage rejected a write
        """
        with self._lock:
            if self._active is not None:
                yield self._active
                return

            backup = copy.deepcopy(self._state)
            txn = LedgerTransaction()
            self._active = txn
            try:
                yield txn
            except BaseException:
                self._state = backup
                logger.debug("transaction_rolled_back", touched=sorted(c.value for c in txn.touched))
                raise
            finally:
                self._active = None

            self._dirty.update(txn.touched)
            if txn.events:
                self._audit_logger.log_many(txn.events)
            self.flush()

    def flush(self) -> None:
        """
        Hand every dirty collection to storage.

        Raises:
            PersistenceError: if any collection failed to save; those
                collections stay dirty.
        """
        with self._lock:
            if self._storage is None:
                self._dirty.clear()
                return

            failures = {}
            for collection in sorted(self._dirty, key=lambda c: c.value):
                try:
                    self._storage.save_collection(collection, self._records(collection))
                    self._dirty.discard(collection)
                except StorageError as e:
                    failures[collection.value] = str(e)
                    self._audit_logger.log(
                        AuditEventBuilder.persistence_failed(collection.value, str(e))
                    )

            if failures:
                raise PersistenceError(failures)

    def _records(self, collection: Collection) -> Any:
        if collection == Collection.SETTINGS:
            return self._state.settings.to_record()
        items = self._state.collection(collection).values()
        if collection in (Collection.SKU_PREFIXES, Collection.DELIVERY_CHARGES):
            return [item.to_record() for item in items]
        return [item.to_record() for item in reversed(list(items))]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Replace in-memory state with the last-saved collections.

        Missing collections keep their defaults. Settings stored in a
        legacy format are migrated and written back immediately.

        Raises:
            StorageError: if the backend cannot be read
            pydantic.ValidationError: if a stored record is malformed
        """
        if self._storage is None:
            return

        with self._lock:
            state = LedgerState(settings=self._state.settings)
            migrated = []

            raw_settings = self._storage.load_collection(Collection.SETTINGS)
            if raw_settings is not None:
                raw_settings, applied = migrate_settings(raw_settings)
                state.settings = BusinessSettings.model_validate(raw_settings)
                migrated.extend(applied)

            for collection, model in ENTITY_COLLECTIONS.items():
                records = self._storage.load_collection(collection)
                if records is None:
                    continue
                items = [model.model_validate(record) for record in records]
                if collection not in (Collection.SKU_PREFIXES, Collection.DELIVERY_CHARGES):
                    items.reverse()
                setattr(state, collection.value, {item.id: item for item in items})

            self._state = state
            logger.info(
                "ledger_loaded",
                products=len(state.products),
                sales=len(state.sales),
                expenses=len(state.expenses),
            )

            if migrated:
                for description in migrated:
                    self._audit_logger.log(
                        AuditEventBuilder.state_migrated(Collection.SETTINGS.value, description)
                    )
                self._dirty.add(Collection.SETTINGS)
                self.flush()


def newest_first(items: dict[str, M]) -> list[M]:
    """Detached copies of a collection's records, newest first."""
    return [item.model_copy(deep=True) for item in reversed(list(items.values()))]

"""
Contact Directory

Suppliers and customers. Customers can also be created by the ledger
when a sale carries a phone number nobody has yet.
"""

from typing import Any, Optional, Union

from pydantic import ValidationError

from biztrack.errors import LedgerValidationError
from biztrack.ledger.store import BusinessStore, newest_first
from biztrack.models.audit import AuditEventBuilder
from biztrack.models.ledger import ContactKind, Customer, Supplier
from biztrack.models.reports import CustomerStats
from biztrack.services.storage import Collection


SUPPLIER_FIELDS = {"name", "contact", "category", "notes"}
CUSTOMER_FIELDS = {"name", "phone", "address", "notes"}


class ContactDirectory:
    """Supplier and customer records."""

    def __init__(self, store: BusinessStore):
        self._store = store

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    def add_supplier(
        self,
        name: str,
        contact: str = "",
        category: str = "",
        notes: str = "",
    ) -> Supplier:
        try:
            supplier = Supplier(name=name, contact=contact, category=category, notes=notes)
        except ValidationError as e:
            raise LedgerValidationError(f"Invalid supplier: {e}")
        with self._store.transaction() as txn:
            self._store.state.suppliers[supplier.id] = supplier
            txn.touch(Collection.SUPPLIERS)
        return supplier.model_copy()

    def update_supplier(self, supplier_id: str, **changes: Any) -> Optional[Supplier]:
        return self._update(Collection.SUPPLIERS, SUPPLIER_FIELDS, supplier_id, changes)

    def delete_supplier(self, supplier_id: str) -> bool:
        return self._delete(Collection.SUPPLIERS, supplier_id)

    def get_supplier(self, supplier_id: str) -> Optional[Supplier]:
        with self._store.read() as state:
            supplier = state.suppliers.get(supplier_id)
            return supplier.model_copy() if supplier else None

    def list_suppliers(self) -> list[Supplier]:
        with self._store.read() as state:
            return newest_first(state.suppliers)

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def add_customer(
        self,
        name: str,
        phone: str = "",
        address: str = "",
        notes: str = "",
    ) -> Customer:
        try:
            customer = Customer(name=name, phone=phone, address=address, notes=notes)
        except ValidationError as e:
            raise LedgerValidationError(f"Invalid customer: {e}")
        with self._store.transaction() as txn:
            self._store.state.customers[customer.id] = customer
            txn.touch(Collection.CUSTOMERS)
        return customer.model_copy()

    def update_customer(self, customer_id: str, **changes: Any) -> Optional[Customer]:
        return self._update(Collection.CUSTOMERS, CUSTOMER_FIELDS, customer_id, changes)

    def delete_customer(self, customer_id: str) -> bool:
        return self._delete(Collection.CUSTOMERS, customer_id)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        with self._store.read() as state:
            customer = state.customers.get(customer_id)
            return customer.model_copy() if customer else None

    def list_customers(self) -> list[Customer]:
        with self._store.read() as state:
            return newest_first(state.customers)

    def find_customer_by_phone(self, phone: str) -> Optional[Customer]:
        phone = phone.strip()
        if not phone:
            return None
        with self._store.read() as state:
            for customer in state.customers.values():
                if customer.phone == phone:
                    return customer.model_copy()
        return None

    def customer_stats(self, phone: str) -> CustomerStats:
        """
        Orders placed under a phone number.

        Every linked sale counts as an order and adds its revenue to the
        total, whatever its status; refunds counts the Refunded ones.
        """
        phone = (phone or "").strip()
        stats = CustomerStats(phone=phone)
        if not phone:
            return stats
        with self._store.read() as state:
            for sale in state.sales.values():
                if sale.customer_phone != phone:
                    continue
                stats.orders += 1
                stats.total += sale.revenue
                if sale.is_refunded:
                    stats.refunds += 1
        return stats

    def ensure_customer(self, phone: Optional[str], note: str) -> Optional[Customer]:
        """
        Create a customer for phone unless one already exists.

        Runs inside the caller's transaction when there is one, so the
        customer is rolled back with a failed sale.

        Returns:
            The new customer, or None if nothing was created
        """
        phone = (phone or "").strip()
        if not phone:
            return None

        with self._store.transaction() as txn:
            if any(c.phone == phone for c in self._store.state.customers.values()):
                return None
            customer = Customer(name=f"Customer {phone}", phone=phone, notes=note)
            self._store.state.customers[customer.id] = customer
            txn.touch(Collection.CUSTOMERS)
            txn.emit(AuditEventBuilder.customer_auto_created(customer.id, phone))
            return customer.model_copy()

    # ------------------------------------------------------------------
    # Both
    # ------------------------------------------------------------------

    def list_contacts(
        self,
        kind: Optional[Union[ContactKind, str]] = None,
    ) -> list[Union[Supplier, Customer]]:
        """
        Suppliers and customers as one list.

        Args:
            kind: Restrict to one kind of contact
        """
        kind = ContactKind(kind) if kind is not None else None
        contacts: list[Union[Supplier, Customer]] = []
        if kind in (None, ContactKind.SUPPLIER):
            contacts.extend(self.list_suppliers())
        if kind in (None, ContactKind.CUSTOMER):
            contacts.extend(self.list_customers())
        return contacts

    def _update(
        self,
        collection: Collection,
        allowed: set[str],
        entity_id: str,
        changes: dict[str, Any],
    ):
        unknown = set(changes) - allowed
        if unknown:
            raise LedgerValidationError(f"Cannot edit {collection.value} fields: {sorted(unknown)}")

        with self._store.transaction() as txn:
            entity = self._store.state.collection(collection).get(entity_id)
            if entity is None:
                return None
            try:
                for field, value in changes.items():
                    setattr(entity, field, value)
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid update: {e}")
            txn.touch(collection)
            return entity.model_copy()

    def _delete(self, collection: Collection, entity_id: str) -> bool:
        with self._store.transaction() as txn:
            if self._store.state.collection(collection).pop(entity_id, None) is None:
                return False
            txn.touch(collection)
            return True

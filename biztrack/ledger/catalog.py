"""
Catalog

CRUD over products. Manual edits and the ledger's stock reservations
go through the same field update (_apply_changes); there is no separate
reserved-stock ledger.

Deleting a product never cascades: its sales keep the product name and
price snapshots, and their product_id simply stops resolving.
"""

from typing import Any, Optional

from pydantic import ValidationError

from biztrack.errors import DuplicateSkuError, LedgerValidationError
from biztrack.ledger.pricing import as_money
from biztrack.ledger.store import BusinessStore, LedgerTransaction, newest_first
from biztrack.models.audit import AuditEventBuilder, AuditEventType
from biztrack.models.ledger import Product
from biztrack.services.storage import Collection
from biztrack.validation import LedgerValidator


EDITABLE_FIELDS = {"name", "sku", "buying_price", "selling_price", "stock"}
MONEY_FIELDS = {"buying_price", "selling_price"}

SKU_SEPARATOR = "-"


def build_sku(prefix: Optional[str], code: str) -> str:
    """PREFIX-code, or just code when there is no prefix."""
    code = code.strip()
    if prefix:
        return f"{prefix.strip().upper()}{SKU_SEPARATOR}{code}"
    return code


def split_sku(sku: str) -> tuple[str, str]:
    """
    Inverse of build_sku: ("ELEC", "TV-42") for "ELEC-TV-42".

    A SKU without a separator has no prefix.
    """
    if SKU_SEPARATOR not in sku:
        return "", sku
    prefix, code = sku.split(SKU_SEPARATOR, 1)
    return prefix, code


class Catalog:
    """Product catalog component."""

    def __init__(self, store: BusinessStore, validator: Optional[LedgerValidator] = None):
        self._store = store
        self._validator = validator or LedgerValidator()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._store.read() as state:
            product = state.products.get(product_id)
            return product.model_copy() if product else None

    def list_products(self) -> list[Product]:
        """All products, newest first."""
        with self._store.read() as state:
            return newest_first(state.products)

    def search_products(self, term: str) -> list[Product]:
        """Products whose name or SKU contains term (case-insensitive)."""
        needle = term.strip().lower()
        return [
            p for p in self.list_products()
            if needle in p.name.lower() or needle in p.sku.lower()
        ]

    def low_stock_products(self) -> list[Product]:
        """In stock, but below the low-stock threshold."""
        with self._store.read() as state:
            threshold = state.settings.low_stock_threshold
            return [p for p in newest_first(state.products) if 0 < p.stock < threshold]

    def out_of_stock_products(self) -> list[Product]:
        with self._store.read() as state:
            return [p for p in newest_first(state.products) if p.stock <= 0]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_product(
        self,
        name: str,
        sku: str,
        buying_price: Any,
        selling_price: Any,
        stock: int = 0,
        sku_prefix: Optional[str] = None,
    ) -> Product:
        """
        Add a product to the catalog.

        Args:
            sku: The SKU code. With sku_prefix it becomes "PREFIX-code".

        Raises:
            DuplicateSkuError: another product already has this SKU
            LedgerValidationError: the product failed validation
        """
        buying_price = as_money(buying_price)
        selling_price = as_money(selling_price)
        self._validator.ensure_valid(
            self._validator.validate_product(name, buying_price, selling_price, stock)
        )

        with self._store.transaction() as txn:
            try:
                product = Product(
                    name=name,
                    sku=build_sku(sku_prefix, sku),
                    buying_price=buying_price,
                    selling_price=selling_price,
                    stock=stock,
                    created_at=self._store.now(),
                )
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid product: {e}")
            self._check_sku_unique(product.sku, exclude_id=product.id)

            self._store.state.products[product.id] = product
            txn.touch(Collection.PRODUCTS)
            txn.emit(AuditEventBuilder.product_changed(
                AuditEventType.PRODUCT_CREATED,
                product.id,
                product.name,
                {"sku": product.sku, "stock": product.stock},
            ))
            return product.model_copy()

    def update_product(self, product_id: str, **changes: Any) -> Optional[Product]:
        """
        Edit product fields (name, sku, buying_price, selling_price, stock).

        Past sales are unaffected: they keep the prices captured at sale
        time. Unknown product ids are a no-op.

        Returns:
            The updated product, or None if it does not exist
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise LedgerValidationError(f"Cannot edit product fields: {sorted(unknown)}")

        with self._store.transaction() as txn:
            product = self._store.state.products.get(product_id)
            if product is None:
                return None

            merged = {field: getattr(product, field) for field in EDITABLE_FIELDS}
            merged.update({
                k: as_money(v) if k in MONEY_FIELDS else v
                for k, v in changes.items()
            })
            self._validator.ensure_valid(self._validator.validate_product(
                merged["name"], merged["buying_price"], merged["selling_price"], merged["stock"]
            ))
            try:
                candidate = Product.model_validate({**product.model_dump(), **merged})
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid product update: {e}")
            if "sku" in changes:
                self._check_sku_unique(candidate.sku, exclude_id=product_id)

            self._apply_changes(txn, product, {k: getattr(candidate, k) for k in changes})
            txn.emit(AuditEventBuilder.product_changed(
                AuditEventType.PRODUCT_UPDATED,
                product.id,
                product.name,
                {"changes": sorted(changes)},
            ))
            return product.model_copy()

    def delete_product(self, product_id: str) -> bool:
        """Remove a product. Its sales are kept as they are."""
        with self._store.transaction() as txn:
            product = self._store.state.products.pop(product_id, None)
            if product is None:
                return False
            txn.touch(Collection.PRODUCTS)
            txn.emit(AuditEventBuilder.product_changed(
                AuditEventType.PRODUCT_DELETED,
                product.id,
                product.name,
            ))
            return True

    def adjust_stock(self, product_id: str, delta: int, reason: str) -> Optional[Product]:
        """
        Move stock by delta as part of the current ledger command.

        A product that no longer exists is skipped.

        Returns:
            The product after the change, or None if it does not exist
        """
        with self._store.transaction() as txn:
            product = self._store.state.products.get(product_id)
            if product is None:
                return None
            self._apply_changes(txn, product, {"stock": product.stock + delta})
            txn.emit(AuditEventBuilder.stock_adjusted(product.id, delta, product.stock, reason))
            return product

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_changes(
        self,
        txn: LedgerTransaction,
        product: Product,
        changes: dict[str, Any],
    ) -> None:
        """The one write path for product fields."""
        try:
            for field, value in changes.items():
                setattr(product, field, as_money(value) if field in MONEY_FIELDS else value)
        except ValidationError as e:
            raise LedgerValidationError(f"Invalid product update: {e}")
        txn.touch(Collection.PRODUCTS)

    def _check_sku_unique(self, sku: str, exclude_id: str) -> None:
        if not sku:
            return
        wanted = sku.lower()
        for other in self._store.state.products.values():
            if other.id != exclude_id and other.sku.lower() == wanted:
                raise DuplicateSkuError(sku)

"""
Ledger Engine

Records sales and keeps product stock consistent with them.

CRITICAL: A Completed sale holds `quantity` units of its product's
stock; a Refunded or deleted sale has given them back. Every command
below changes the sale and the stock inside one store transaction, so
either both happen or neither does.

Lifecycle:
    create_sale  -> Completed (stock - quantity)
    update_sale  -> Completed: release old, reserve new; Refunded: no stock change
    refund_sale  -> Refunded (stock + quantity), one-way, idempotent
    delete_sale  -> gone (stock + quantity if it was Completed)
"""

import datetime as dt
from typing import Any, Optional, Union

import structlog

from biztrack.errors import (
    InsufficientStockError,
    ProductNotFoundError,
    SaleNotFoundError,
)
from biztrack.ledger.catalog import Catalog
from biztrack.ledger.contacts import ContactDirectory
from biztrack.ledger.expenses import ExpenseBook
from biztrack.ledger.pricing import as_money, compute_sale_financials
from biztrack.ledger.store import BusinessStore, newest_first
from biztrack.models.audit import AuditEventBuilder
from biztrack.models.ledger import Product, Sale, SaleStatus
from biztrack.services.storage import Collection
from biztrack.validation import LedgerValidator


logger = structlog.get_logger(__name__)

ZERO = as_money(0)

NOTE_NEW_SALE = "Auto-created from sale"
NOTE_UPDATED_SALE = "Auto-created from updated sale"


class LedgerEngine:
    """
    The transactional core: owns the sales collection and is the only
    component that moves stock as a side effect of a sale.
    """

    def __init__(
        self,
        store: BusinessStore,
        catalog: Catalog,
        contacts: ContactDirectory,
        expenses: ExpenseBook,
        validator: Optional[LedgerValidator] = None,
    ):
        self._store = store
        self._catalog = catalog
        self._contacts = contacts
        self._expenses = expenses
        self._validator = validator or LedgerValidator()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_sale(self, sale_id: str) -> Optional[Sale]:
        with self._store.read() as state:
            sale = state.sales.get(sale_id)
            return sale.model_copy() if sale else None

    def list_sales(self, status: Optional[Union[SaleStatus, str]] = None) -> list[Sale]:
        """Sales newest first, optionally only those with one status."""
        with self._store.read() as state:
            sales = newest_first(state.sales)
        if status is None:
            return sales
        status = SaleStatus(status)
        return [s for s in sales if s.status == status]

    @staticmethod
    def default_delivery_paid(sale: Sale) -> Optional[bool]:
        """
        What to pass as delivery_paid_on_refund without asking.

        When the customer already paid the delivery charge it is not a
        loss, so the answer is True. Otherwise None: the caller must ask.
        """
        return True if sale.paid_by_customer else None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_sale(
        self,
        product_id: str,
        quantity: int,
        platform: str = "",
        delivery_charge: Any = 0,
        location: str = "",
        paid_by_customer: bool = False,
        date: Optional[dt.date] = None,
        unit_price: Any = None,
        customer_phone: Optional[str] = None,
    ) -> Sale:
        """
        Record a Completed sale and take its quantity out of stock.

        Args:
            unit_price: Price per unit. Defaults to the product's current
                selling price.
            customer_phone: Auto-creates a customer if no one has this phone.

        Raises:
            ProductNotFoundError: product_id does not resolve
            LedgerValidationError: quantity < 1 (or strict checks failed)
            InsufficientStockError: not enough stock and negative stock
                is not allowed; nothing is changed
        """
        unit_price = as_money(unit_price) if unit_price is not None else None
        delivery_charge = as_money(delivery_charge)

        with self._store.transaction() as txn:
            state = self._store.state
            product = self._require_product(product_id)
            self._validator.ensure_valid(self._validator.validate_sale(
                quantity, unit_price, delivery_charge, platform, state.settings
            ))

            if not state.settings.allow_negative_stock and product.stock < quantity:
                self._store.log_event(
                    AuditEventBuilder.sale_rejected(product.id, quantity, product.stock)
                )
                raise InsufficientStockError(product.id, product.name, quantity, product.stock)

            self._contacts.ensure_customer(customer_phone, NOTE_NEW_SALE)

            financials = compute_sale_financials(
                unit_price if unit_price is not None else product.selling_price,
                product.buying_price,
                quantity,
                state.settings.platforms,
                platform,
            )
            sale = Sale(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                **financials.model_dump(),
                delivery_charge=delivery_charge,
                location=location,
                platform=platform,
                paid_by_customer=paid_by_customer,
                date=date or self._store.now().date(),
                status=SaleStatus.COMPLETED,
                customer_phone=_clean_phone(customer_phone),
            )
            state.sales[sale.id] = sale
            txn.touch(Collection.SALES)

            self._catalog.adjust_stock(product.id, -quantity, f"sale {sale.id}")

            txn.emit(AuditEventBuilder.sale_created(
                sale.id, sale.product_name, sale.quantity, str(sale.revenue), str(sale.profit)
            ))
            return sale.model_copy()

    def update_sale(
        self,
        sale_id: str,
        product_id: str,
        quantity: int,
        unit_price: Any = None,
        platform: str = "",
        date: Optional[dt.date] = None,
        location: str = "",
        delivery_charge: Any = 0,
        paid_by_customer: bool = False,
        customer_phone: Optional[str] = None,
    ) -> Sale:
        """
        Replace a sale's details and recompute its financials.

        If the sale is Completed, the original quantity goes back to the
        original product (when it still exists) and the new quantity is
        taken from the new product. A Refunded sale keeps its status and
        stock is left alone. Stock sufficiency is not checked here.

        Raises:
            SaleNotFoundError: sale_id does not exist
            ProductNotFoundError: product_id does not resolve
            LedgerValidationError: quantity < 1 (or strict checks failed)
        """
        unit_price = as_money(unit_price) if unit_price is not None else None
        delivery_charge = as_money(delivery_charge)

        with self._store.transaction() as txn:
            state = self._store.state
            sale = state.sales.get(sale_id)
            if sale is None:
                raise SaleNotFoundError(sale_id)
            self._validator.ensure_valid(self._validator.validate_sale(
                quantity, unit_price, delivery_charge, platform, state.settings
            ))
            before = sale.to_record()

            self._contacts.ensure_customer(customer_phone, NOTE_UPDATED_SALE)

            product = self._require_product(product_id)

            if sale.is_completed:
                self._catalog.adjust_stock(sale.product_id, sale.quantity, f"edit of sale {sale.id}")
                self._catalog.adjust_stock(product.id, -quantity, f"edit of sale {sale.id}")

            financials = compute_sale_financials(
                unit_price if unit_price is not None else product.selling_price,
                product.buying_price,
                quantity,
                state.settings.platforms,
                platform,
            )
            updated = Sale.model_validate({
                **sale.model_dump(),
                "product_id": product.id,
                "product_name": product.name,
                "quantity": quantity,
                **financials.model_dump(),
                "delivery_charge": delivery_charge,
                "location": location,
                "platform": platform,
                "paid_by_customer": paid_by_customer,
                "date": date or sale.date,
                "customer_phone": _clean_phone(customer_phone),
            })
            state.sales[sale.id] = updated
            txn.touch(Collection.SALES)

            after = updated.to_record()
            changes = {k: after[k] for k in after if before.get(k) != after[k]}
            txn.emit(AuditEventBuilder.sale_updated(sale.id, changes))
            return updated.model_copy()

    def delete_sale(self, sale_id: str) -> None:
        """
        Remove a sale. A Completed sale's quantity goes back to stock.

        Unknown ids are a no-op.
        """
        with self._store.transaction() as txn:
            sale = self._store.state.sales.pop(sale_id, None)
            if sale is None:
                return
            txn.touch(Collection.SALES)
            if sale.is_completed:
                self._catalog.adjust_stock(sale.product_id, sale.quantity, f"delete of sale {sale.id}")
            txn.emit(AuditEventBuilder.sale_deleted(sale.id, sale.is_completed))

    def refund_sale(self, sale_id: str, delivery_paid_on_refund: bool) -> None:
        """
        Refund a Completed sale and return its quantity to stock.

        If the business paid the delivery (delivery_paid_on_refund is
        False) and there was a delivery charge, it is booked as a
        Refund Loss expense. Refunding a missing or already Refunded
        sale does nothing.
        """
        with self._store.transaction() as txn:
            sale = self._store.state.sales.get(sale_id)
            if sale is None or sale.is_refunded:
                return

            sale.status = SaleStatus.REFUNDED
            sale.refund_date = self._store.now()
            sale.delivery_paid_on_refund = delivery_paid_on_refund
            txn.touch(Collection.SALES)

            self._catalog.adjust_stock(sale.product_id, sale.quantity, f"refund of sale {sale.id}")

            if not delivery_paid_on_refund and sale.delivery_charge > ZERO:
                self._expenses.record_refund_loss(sale)

            txn.emit(AuditEventBuilder.sale_refunded(sale.id, sale.quantity, delivery_paid_on_refund))
            logger.info("sale_refunded", sale_id=sale.id, quantity=sale.quantity)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_product(self, product_id: str) -> Product:
        product = self._store.state.products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product


def _clean_phone(phone: Optional[str]) -> Optional[str]:
    phone = (phone or "").strip()
    return phone or None

"""
Settings Store

Validated setters for business settings, sales platforms, SKU prefixes
and per-location delivery charges.

Removing a platform does not touch historical sales: they keep the
platform name and the fee captured when they were recorded. New sales
on a removed platform simply pay no fee.
"""

from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from biztrack.errors import LedgerValidationError
from biztrack.ledger.pricing import as_money, find_platform
from biztrack.ledger.store import BusinessStore
from biztrack.models.audit import AuditEventBuilder
from biztrack.models.ledger import (
    CURRENCY_SYMBOLS,
    BusinessSettings,
    Currency,
    FeeType,
    LocationCharge,
    Platform,
    SkuPrefix,
)
from biztrack.services.storage import Collection


class SettingsStore:
    """Business settings component."""

    def __init__(self, store: BusinessStore):
        self._store = store

    def get(self) -> BusinessSettings:
        with self._store.read() as state:
            return state.settings.model_copy(deep=True)

    def update_settings(
        self,
        currency: Optional[Union[Currency, str]] = None,
        low_stock_threshold: Optional[int] = None,
        allow_negative_stock: Optional[bool] = None,
    ) -> BusinessSettings:
        """
        Change business settings. Arguments left as None are unchanged.

        Changing the currency also changes the display symbol. Amounts
        are not converted.
        """
        changes: dict[str, Any] = {}
        with self._store.transaction() as txn:
            settings = self._store.state.settings
            if currency is not None:
                try:
                    new_currency = Currency(currency)
                except ValueError:
                    raise LedgerValidationError(f"Unsupported currency: {currency}")
                settings.currency = new_currency
                settings.currency_symbol = CURRENCY_SYMBOLS[new_currency]
                changes["currency"] = new_currency.value
            if low_stock_threshold is not None:
                if low_stock_threshold < 0:
                    raise LedgerValidationError("Low stock threshold cannot be negative")
                settings.low_stock_threshold = low_stock_threshold
                changes["low_stock_threshold"] = low_stock_threshold
            if allow_negative_stock is not None:
                settings.allow_negative_stock = allow_negative_stock
                changes["allow_negative_stock"] = allow_negative_stock

            if changes:
                txn.touch(Collection.SETTINGS)
                txn.emit(AuditEventBuilder.settings_updated(changes))
            return settings.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Platforms
    # ------------------------------------------------------------------

    def add_platform(
        self,
        name: str,
        fee_value: Any = 0,
        fee_type: Union[FeeType, str] = FeeType.FIXED,
    ) -> Platform:
        try:
            platform = Platform(name=name, fee_value=as_money(fee_value), fee_type=FeeType(fee_type))
        except ValueError as e:
            raise LedgerValidationError(f"Invalid platform: {e}")
        with self._store.transaction() as txn:
            self._store.state.settings.platforms.append(platform)
            txn.touch(Collection.SETTINGS)
            txn.emit(AuditEventBuilder.settings_updated({"platform_added": platform.name}))
        return platform.model_copy()

    def remove_platform(self, platform_id: str) -> bool:
        with self._store.transaction() as txn:
            settings = self._store.state.settings
            remaining = [p for p in settings.platforms if p.id != platform_id]
            if len(remaining) == len(settings.platforms):
                return False
            settings.platforms = remaining
            txn.touch(Collection.SETTINGS)
            txn.emit(AuditEventBuilder.settings_updated({"platform_removed": platform_id}))
            return True

    def find_platform(self, name: str) -> Optional[Platform]:
        with self._store.read() as state:
            platform = find_platform(state.settings.platforms, name)
            return platform.model_copy() if platform else None

    def list_platforms(self) -> list[Platform]:
        with self._store.read() as state:
            return [p.model_copy() for p in state.settings.platforms]

    # ------------------------------------------------------------------
    # SKU prefixes
    # ------------------------------------------------------------------

    def add_sku_prefix(self, prefix: str, label: str) -> SkuPrefix:
        """Prefixes are stored upper-case."""
        try:
            sku_prefix = SkuPrefix(prefix=prefix, label=label)
        except ValidationError as e:
            raise LedgerValidationError(f"Invalid SKU prefix: {e}")
        with self._store.transaction() as txn:
            self._store.state.sku_prefixes[sku_prefix.id] = sku_prefix
            txn.touch(Collection.SKU_PREFIXES)
        return sku_prefix.model_copy()

    def remove_sku_prefix(self, prefix_id: str) -> bool:
        with self._store.transaction() as txn:
            if self._store.state.sku_prefixes.pop(prefix_id, None) is None:
                return False
            txn.touch(Collection.SKU_PREFIXES)
            return True

    def list_sku_prefixes(self) -> list[SkuPrefix]:
        with self._store.read() as state:
            return [p.model_copy() for p in state.sku_prefixes.values()]

    # ------------------------------------------------------------------
    # Delivery charges
    # ------------------------------------------------------------------

    def add_location_charge(self, location: str, charge: Any) -> LocationCharge:
        try:
            location_charge = LocationCharge(location=location, charge=as_money(charge))
        except ValidationError as e:
            raise LedgerValidationError(f"Invalid delivery charge: {e}")
        with self._store.transaction() as txn:
            self._store.state.delivery_charges[location_charge.id] = location_charge
            txn.touch(Collection.DELIVERY_CHARGES)
        return location_charge.model_copy()

    def remove_location_charge(self, charge_id: str) -> bool:
        with self._store.transaction() as txn:
            if self._store.state.delivery_charges.pop(charge_id, None) is None:
                return False
            txn.touch(Collection.DELIVERY_CHARGES)
            return True

    def list_location_charges(self) -> list[LocationCharge]:
        with self._store.read() as state:
            return [c.model_copy() for c in state.delivery_charges.values()]

    def charge_for_location(self, location: str) -> Optional[Decimal]:
        """Standard delivery charge for a location (case-insensitive), if configured."""
        wanted = location.strip().lower()
        with self._store.read() as state:
            for entry in state.delivery_charges.values():
                if entry.location.lower() == wanted:
                    return entry.charge
        return None

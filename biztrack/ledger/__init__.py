"""
Ledger Package

The business store and the components that operate on it.
"""

from biztrack.ledger.store import BusinessStore, LedgerState, LedgerTransaction
from biztrack.ledger.pricing import (
    as_money,
    calculate_platform_fee,
    compute_sale_financials,
    find_platform,
)
from biztrack.ledger.settings_store import SettingsStore
from biztrack.ledger.catalog import Catalog, build_sku, split_sku
from biztrack.ledger.contacts import ContactDirectory
from biztrack.ledger.expenses import ExpenseBook
from biztrack.ledger.engine import LedgerEngine
from biztrack.ledger.metrics import MetricsAggregator, compute_metrics

__all__ = [
    "BusinessStore",
    "LedgerState",
    "LedgerTransaction",
    "as_money",
    "calculate_platform_fee",
    "compute_sale_financials",
    "find_platform",
    "SettingsStore",
    "Catalog",
    "build_sku",
    "split_sku",
    "ContactDirectory",
    "ExpenseBook",
    "LedgerEngine",
    "MetricsAggregator",
    "compute_metrics",
]

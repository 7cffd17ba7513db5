"""
Metrics Aggregator

Dashboard rollups, recomputed from the current collections on every
read. Nothing is cached, so the numbers can never drift from the
sales and expenses they summarize.
"""

from decimal import Decimal
from typing import Iterable

from biztrack.ledger.store import BusinessStore
from biztrack.models.ledger import (
    DashboardMetrics,
    Expense,
    ExpenseCategory,
    Product,
    Sale,
)


ZERO = Decimal("0")


def compute_metrics(
    products: Iterable[Product],
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
) -> DashboardMetrics:
    """
    Rollups over the given collections.

    Only Completed sales count towards sales, profit and fees. Refunded
    revenue is reported separately as total_refunds.
    """
    sales = list(sales)
    completed = [s for s in sales if s.is_completed]
    refunded = [s for s in sales if s.is_refunded]

    total_profit = sum((s.profit for s in completed), ZERO)
    total_expenses = sum((e.amount for e in expenses), ZERO)

    return DashboardMetrics(
        total_sales=sum((s.revenue for s in completed), ZERO),
        total_profit=total_profit,
        total_expenses=total_expenses,
        total_platform_fees=sum((s.platform_fee for s in completed), ZERO),
        net_profit=total_profit - total_expenses,
        stock_value=sum((p.buying_price * p.stock for p in products), ZERO),
        total_refunds=sum((s.revenue for s in refunded), ZERO),
    )


class MetricsAggregator:
    """Read-only view over the store."""

    def __init__(self, store: BusinessStore):
        self._store = store

    def dashboard_metrics(self) -> DashboardMetrics:
        with self._store.read() as state:
            return compute_metrics(
                state.products.values(),
                state.sales.values(),
                state.expenses.values(),
            )

    def delivery_losses(self) -> Decimal:
        """Delivery charges written off on refunds."""
        with self._store.read() as state:
            return sum(
                (e.amount for e in state.expenses.values()
                 if e.category == ExpenseCategory.REFUND_LOSS),
                ZERO,
            )

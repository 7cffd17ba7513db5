"""
Report Models

Read-only projections produced by ReportQueryExecutor. Nothing here is
stored; every report is recomputed from a ledger snapshot.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from biztrack.models.ledger import Product


class ProductRevenue(BaseModel):
    """Revenue of one product name within a period."""
    name: str
    revenue: Decimal = Decimal("0")


class PeriodReport(BaseModel):
    """
    Totals over an inclusive date range.

    Only Completed sales count towards revenue and profit; refunds are
    the revenue of sales in the range that were later refunded.
    """

    date_from: dt.date
    date_to: dt.date
    description: str = ""

    sale_count: int = 0
    expense_count: int = 0

    revenue: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    refunds: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")

    revenue_by_platform: dict[str, Decimal] = Field(default_factory=dict)
    top_products: list[ProductRevenue] = Field(default_factory=list)


class CustomerStats(BaseModel):
    """Order history of the customer behind one phone number."""
    phone: str
    orders: int = 0
    total: Decimal = Decimal("0")
    refunds: int = 0


class ProductPerformance(BaseModel):
    """All-time Completed-sale totals for one catalog product."""
    product_id: str
    name: str
    quantity: int = 0
    revenue: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")


class TrendComparison(BaseModel):
    """The last `days` days against the `days` before them."""

    days: int
    current_revenue: Decimal = Decimal("0")
    previous_revenue: Decimal = Decimal("0")
    current_expenses: Decimal = Decimal("0")
    previous_expenses: Decimal = Decimal("0")

    # None when there was no revenue in the previous period
    revenue_growth: Optional[Decimal] = None


class StockAlerts(BaseModel):
    threshold: int
    low_stock: list[Product] = Field(default_factory=list)
    out_of_stock: list[Product] = Field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return bool(self.low_stock or self.out_of_stock)


class RecommendationKind(str, Enum):
    FOCUS_PLATFORM = "focus_platform"
    RESTOCK = "restock"
    BOOST_SALES = "boost_sales"
    REDUCE_COSTS = "reduce_costs"


class Recommendation(BaseModel):
    kind: RecommendationKind
    title: str
    description: str
    subject: Optional[str] = None

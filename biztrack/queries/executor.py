"""
Report Query Engine

DESIGN DECISION: Reports are DETERMINISTIC projections of one ledger
snapshot. Each query takes a single snapshot under the store lock and
computes from that copy, so a report never mixes data from before and
after a concurrent sale.

The Insights agent works from the same snapshots; it never sees
anything these queries could not.
"""

import calendar
import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from biztrack.ledger.metrics import compute_metrics
from biztrack.ledger.store import BusinessStore
from biztrack.models.ledger import LedgerSnapshot
from biztrack.models.reports import (
    PeriodReport,
    ProductPerformance,
    ProductRevenue,
    Recommendation,
    RecommendationKind,
    StockAlerts,
    TrendComparison,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")

TOP_PRODUCTS = 5
MAX_RECOMMENDATIONS = 4

# Recommendation rules
VELOCITY_WINDOW_DAYS = 60
RESTOCK_DAYS_LEFT = 10
BOOST_MIN_STOCK = 10
BOOST_IDLE_DAYS = 25
COST_RATIO_LIMIT = Decimal("35")
NEVER_SOLD_DAYS = 999


class ReportQueryExecutor:
    """
    Runs report queries against the business store.

    GUARANTEES:
    - Only reports what the ledger holds
    - Recomputed on every call
    - An empty ledger gives zeros, not errors
    """

    def __init__(self, store: BusinessStore):
        self._store = store

    def _today(self, today: Optional[dt.date]) -> dt.date:
        return today or self._store.now().date()

    def period_report(self, date_from: dt.date, date_to: dt.date) -> PeriodReport:
        """Totals for sales and expenses dated within [date_from, date_to]."""
        snapshot = self._store.snapshot()

        sales = [s for s in snapshot.sales if date_from <= s.date <= date_to]
        expenses = [e for e in snapshot.expenses if date_from <= e.date <= date_to]
        completed = [s for s in sales if s.is_completed]

        revenue = sum((s.revenue for s in completed), ZERO)
        profit = sum((s.profit for s in completed), ZERO)
        total_expenses = sum((e.amount for e in expenses), ZERO)

        by_platform: dict[str, Decimal] = defaultdict(lambda: ZERO)
        by_product: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for sale in completed:
            by_platform[sale.platform] += sale.revenue
            by_product[sale.product_name] += sale.revenue

        top = sorted(by_product.items(), key=lambda item: item[1], reverse=True)[:TOP_PRODUCTS]

        return PeriodReport(
            date_from=date_from,
            date_to=date_to,
            description=self._date_range_str(date_from, date_to),
            sale_count=len(sales),
            expense_count=len(expenses),
            revenue=revenue,
            profit=profit,
            refunds=sum((s.revenue for s in sales if s.is_refunded), ZERO),
            expenses=total_expenses,
            net_profit=profit - total_expenses,
            revenue_by_platform=dict(by_platform),
            top_products=[ProductRevenue(name=name, revenue=value) for name, value in top],
        )

    def product_performance(self) -> list[ProductPerformance]:
        """Per catalog product, best revenue first. Deleted products are left out."""
        return _product_performance(self._store.snapshot())

    def trend(self, days: int = 30, today: Optional[dt.date] = None) -> TrendComparison:
        """Revenue and expenses of the last `days` days against the period before."""
        if days < 1:
            raise ValueError("days must be at least 1")
        today = self._today(today)
        snapshot = self._store.snapshot()

        current_start = today - dt.timedelta(days=days)
        previous_start = today - dt.timedelta(days=2 * days)

        def in_current(d: dt.date) -> bool:
            return current_start <= d <= today

        def in_previous(d: dt.date) -> bool:
            return previous_start <= d < current_start

        completed = snapshot.completed_sales
        current_revenue = sum((s.revenue for s in completed if in_current(s.date)), ZERO)
        previous_revenue = sum((s.revenue for s in completed if in_previous(s.date)), ZERO)

        growth = None
        if previous_revenue != ZERO:
            growth = (current_revenue - previous_revenue) / previous_revenue * HUNDRED

        return TrendComparison(
            days=days,
            current_revenue=current_revenue,
            previous_revenue=previous_revenue,
            current_expenses=sum((e.amount for e in snapshot.expenses if in_current(e.date)), ZERO),
            previous_expenses=sum((e.amount for e in snapshot.expenses if in_previous(e.date)), ZERO),
            revenue_growth=growth,
        )

    def stock_alerts(self) -> StockAlerts:
        snapshot = self._store.snapshot()
        threshold = snapshot.settings.low_stock_threshold
        return StockAlerts(
            threshold=threshold,
            low_stock=[p for p in snapshot.products if 0 < p.stock < threshold],
            out_of_stock=[p for p in snapshot.products if p.stock <= 0],
        )

    def recommendations(self, today: Optional[dt.date] = None) -> list[Recommendation]:
        """
        Rule-based suggestions, at most four, in this order:
        1. The platform with the best profit margin
        2. Products that will run out within 10 days at the 60-day sales rate
        3. Well-stocked products that have not sold for over 25 days
        4. Expenses plus platform fees above 35% of revenue
        """
        today = self._today(today)
        snapshot = self._store.snapshot()
        completed = snapshot.completed_sales
        products = {p.id: p for p in snapshot.products}
        performance = _product_performance(snapshot)
        suggestions: list[Recommendation] = []

        platform_revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
        platform_profit: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for sale in completed:
            if not sale.platform:
                continue
            platform_revenue[sale.platform] += sale.revenue
            platform_profit[sale.platform] += sale.profit
        if platform_revenue:
            margins = {
                name: (platform_profit[name] / revenue * HUNDRED) if revenue > ZERO else ZERO
                for name, revenue in platform_revenue.items()
            }
            best = max(margins, key=lambda name: margins[name])
            suggestions.append(Recommendation(
                kind=RecommendationKind.FOCUS_PLATFORM,
                title=f"Focus on {best}",
                description=(
                    f"This platform has your best profit margin ({margins[best]:.1f}%). "
                    "Consider increasing your presence there."
                ),
                subject=best,
            ))

        window_start = today - dt.timedelta(days=VELOCITY_WINDOW_DAYS)
        for row in performance:
            product = products[row.product_id]
            recent_qty = sum(
                s.quantity for s in completed
                if s.product_id == row.product_id and s.date >= window_start
            )
            if recent_qty == 0 or product.stock <= 0:
                continue
            velocity = Decimal(recent_qty) / VELOCITY_WINDOW_DAYS
            days_left = product.stock / velocity
            if days_left < RESTOCK_DAYS_LEFT:
                suggestions.append(Recommendation(
                    kind=RecommendationKind.RESTOCK,
                    title=f"Restock Soon: {product.name}",
                    description=(
                        f"High demand detected ({velocity:.1f} units/day). "
                        f"Current stock will last only ~{round(days_left)} days."
                    ),
                    subject=product.id,
                ))

        for row in performance:
            product = products[row.product_id]
            if product.stock <= BOOST_MIN_STOCK:
                continue
            sale_dates = [s.date for s in completed if s.product_id == row.product_id]
            idle_days = (today - max(sale_dates)).days if sale_dates else NEVER_SOLD_DAYS
            if idle_days > BOOST_IDLE_DAYS:
                suggestions.append(Recommendation(
                    kind=RecommendationKind.BOOST_SALES,
                    title=f"Boost Sales: {product.name}",
                    description=(
                        f"Stock is high but haven't sold in {idle_days} days. "
                        "Try a small discount or limited-time offer."
                    ),
                    subject=product.id,
                ))

        metrics = compute_metrics(snapshot.products, snapshot.sales, snapshot.expenses)
        if metrics.total_sales > ZERO:
            ratio = (metrics.total_expenses + metrics.total_platform_fees) / metrics.total_sales * HUNDRED
            if ratio > COST_RATIO_LIMIT:
                suggestions.append(Recommendation(
                    kind=RecommendationKind.REDUCE_COSTS,
                    title="Reduce Operational Costs",
                    description=(
                        f"Your expenses (including fees) are {ratio:.0f}% of revenue. "
                        "Check for high delivery fees or advertising costs that aren't converting."
                    ),
                ))

        return suggestions[:MAX_RECOMMENDATIONS]

    def _date_range_str(
        self,
        date_from: Optional[dt.date],
        date_to: Optional[dt.date],
    ) -> str:
        """Format date range for description."""
        if date_from and date_to:
            if date_from == date_to:
                return f"on {date_from.strftime('%d %b %Y')}"
            elif not _whole_months(date_from, date_to):
                return f"from {date_from.strftime('%d %b %Y')} to {date_to.strftime('%d %b %Y')}"
            elif date_from.month == date_to.month and date_from.year == date_to.year:
                return f"in {date_from.strftime('%B %Y')}"
            elif date_from.year == date_to.year:
                return f"from {date_from.strftime('%b')} to {date_to.strftime('%b %Y')}"
            else:
                return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
        elif date_from:
            return f"from {date_from.strftime('%d %b %Y')}"
        elif date_to:
            return f"until {date_to.strftime('%d %b %Y')}"
        return ""


def _whole_months(date_from: dt.date, date_to: dt.date) -> bool:
    """True when the range starts on a 1st and ends on a month's last day."""
    last_day = calendar.monthrange(date_to.year, date_to.month)[1]
    return date_from.day == 1 and date_to.day == last_day


def _product_performance(snapshot: LedgerSnapshot) -> list[ProductPerformance]:
    rows = {
        p.id: ProductPerformance(product_id=p.id, name=p.name)
        for p in snapshot.products
    }
    for sale in snapshot.completed_sales:
        row = rows.get(sale.product_id)
        if row is None:
            continue
        row.quantity += sale.quantity
        row.revenue += sale.revenue
        row.profit += sale.profit
    return sorted(rows.values(), key=lambda r: r.revenue, reverse=True)

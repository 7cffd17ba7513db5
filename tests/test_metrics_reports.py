"""
Tests for the Metrics Aggregator and Report Queries

Every number here is recomputed from the ledger, so these tests build
a small business and check the rollups against hand-computed totals.
"""

import datetime as dt
from decimal import Decimal

import pytest

from conftest import TODAY

from biztrack.ledger import compute_metrics
from biztrack.models.reports import RecommendationKind


@pytest.fixture
def shop(app):
    """
    Two products with sales inside and outside June 2024.

    Widget: cost 30, price 50. Gadget: cost 10, price 20.
    """
    widget = app.catalog.create_product("Widget", "W", 30, 50, stock=100)
    gadget = app.catalog.create_product("Gadget", "G", 10, 20, stock=100)

    app.ledger.create_sale(widget.id, 2, platform="Facebook", date=dt.date(2024, 6, 1))
    app.ledger.create_sale(gadget.id, 3, platform="Website", date=dt.date(2024, 6, 10))
    app.ledger.create_sale(widget.id, 1, platform="Facebook", date=dt.date(2024, 5, 1))
    refunded = app.ledger.create_sale(gadget.id, 1, platform="Website", date=dt.date(2024, 6, 12))
    app.ledger.refund_sale(refunded.id, delivery_paid_on_refund=True)

    app.expenses.add_expense("Marketing", "Boosted post", 25, dt.date(2024, 6, 5))
    app.expenses.add_expense("Packaging", "Boxes", 99, dt.date(2024, 4, 1))
    return widget, gadget


class TestDashboardMetrics:
    """Tests for MetricsAggregator."""

    def test_empty_ledger(self, app):
        """Test that an empty business reports zeros."""
        metrics = app.metrics.dashboard_metrics()
        assert metrics.total_sales == Decimal("0")
        assert metrics.net_profit == Decimal("0")
        assert app.metrics.delivery_losses() == Decimal("0")

    def test_rollups(self, app, product, store_platform):
        """Test every metric against hand-computed values."""
        app.ledger.create_sale(product.id, 2, platform="Store")
        refunded = app.ledger.create_sale(product.id, 1, delivery_charge="12.50")
        app.ledger.refund_sale(refunded.id, delivery_paid_on_refund=False)
        app.expenses.add_expense("Marketing", "Ads", 40)

        metrics = app.metrics.dashboard_metrics()
        assert metrics.total_sales == Decimal("100")
        assert metrics.total_profit == Decimal("30")
        assert metrics.total_platform_fees == Decimal("10")
        assert metrics.total_expenses == Decimal("52.50")
        assert metrics.net_profit == Decimal("-22.50")
        assert metrics.stock_value == Decimal("240")
        assert metrics.total_refunds == Decimal("50")
        assert app.metrics.delivery_losses() == Decimal("12.50")

    def test_net_profit_identity(self, app, shop):
        """Test net profit = Completed profit - all expenses."""
        snapshot = app.snapshot()
        profit = sum(s.profit for s in snapshot.completed_sales)
        expenses = sum(e.amount for e in snapshot.expenses)

        assert app.metrics.dashboard_metrics().net_profit == profit - expenses

    def test_compute_metrics_matches_aggregator(self, app, shop):
        """Test the pure function against the store-backed view."""
        snapshot = app.snapshot()
        assert compute_metrics(
            snapshot.products, snapshot.sales, snapshot.expenses
        ) == app.metrics.dashboard_metrics()

    def test_recomputed_after_edit(self, app, product):
        """Test that metrics follow a sale edit immediately."""
        sale = app.ledger.create_sale(product.id, 1)
        assert app.metrics.dashboard_metrics().total_sales == Decimal("50")

        app.ledger.update_sale(sale.id, product.id, 3)
        assert app.metrics.dashboard_metrics().total_sales == Decimal("150")


class TestPeriodReport:
    """Tests for ReportQueryExecutor.period_report."""

    def test_june_report(self, app, shop):
        """Test totals and breakdowns for a month."""
        report = app.reports.period_report(dt.date(2024, 6, 1), dt.date(2024, 6, 30))

        assert report.description == "in June 2024"
        assert report.sale_count == 3
        assert report.expense_count == 1
        assert report.revenue == Decimal("160")
        assert report.profit == Decimal("70")
        assert report.refunds == Decimal("20")
        assert report.expenses == Decimal("25")
        assert report.net_profit == Decimal("45")
        assert report.revenue_by_platform == {
            "Facebook": Decimal("100"),
            "Website": Decimal("60"),
        }
        assert [(p.name, p.revenue) for p in report.top_products] == [
            ("Widget", Decimal("100")),
            ("Gadget", Decimal("60")),
        ]

    def test_range_is_inclusive(self, app, shop):
        """Test that both boundary dates are included."""
        report = app.reports.period_report(dt.date(2024, 6, 10), dt.date(2024, 6, 10))
        assert report.description == "on 10 Jun 2024"
        assert report.revenue == Decimal("60")

    def test_part_month_names_both_days(self, app, shop):
        """Test that a range inside one month is not described as the whole month."""
        report = app.reports.period_report(dt.date(2024, 6, 2), dt.date(2024, 6, 20))
        assert report.description == "from 02 Jun 2024 to 20 Jun 2024"

    def test_whole_months_use_month_names(self, app, shop):
        """Test the wording for ranges made of complete months."""
        report = app.reports.period_report(dt.date(2024, 2, 1), dt.date(2024, 3, 31))
        assert report.description == "from Feb to Mar 2024"
        report = app.reports.period_report(dt.date(2024, 2, 1), dt.date(2024, 2, 29))
        assert report.description == "in February 2024"

    def test_empty_range(self, app, shop):
        """Test a range with no activity."""
        report = app.reports.period_report(dt.date(2023, 1, 1), dt.date(2023, 12, 31))
        assert report.sale_count == 0
        assert report.top_products == []
        assert report.net_profit == Decimal("0")


class TestProductPerformance:
    """Tests for ReportQueryExecutor.product_performance."""

    def test_sorted_by_revenue(self, app, shop):
        """Test per-product totals from Completed sales only."""
        rows = app.reports.product_performance()

        assert [r.name for r in rows] == ["Widget", "Gadget"]
        assert rows[0].quantity == 3
        assert rows[0].revenue == Decimal("150")
        assert rows[1].quantity == 3
        assert rows[1].profit == Decimal("30")

    def test_deleted_products_left_out(self, app, shop):
        """Test that sales of deleted products are not attributed."""
        widget, _ = shop
        app.catalog.delete_product(widget.id)
        assert [r.name for r in app.reports.product_performance()] == ["Gadget"]

    def test_unsold_products_listed(self, app):
        """Test that every catalog product gets a row."""
        app.catalog.create_product("Idle", "I", 1, 2, stock=3)
        rows = app.reports.product_performance()
        assert rows[0].quantity == 0
        assert rows[0].revenue == Decimal("0")


class TestTrend:
    """Tests for ReportQueryExecutor.trend."""

    def test_thirty_day_comparison(self, app, shop):
        """Test the last 30 days against the 30 before."""
        trend = app.reports.trend()

        assert trend.days == 30
        # 2024-05-16 .. 2024-06-15
        assert trend.current_revenue == Decimal("160")
        # 2024-04-16 .. 2024-05-15
        assert trend.previous_revenue == Decimal("50")
        assert trend.revenue_growth == Decimal("220")
        assert trend.current_expenses == Decimal("25")
        assert trend.previous_expenses == Decimal("0")

    def test_growth_none_without_previous_revenue(self, app, product):
        """Test that growth is undefined when there was nothing before."""
        app.ledger.create_sale(product.id, 1)
        trend = app.reports.trend(days=7)
        assert trend.current_revenue == Decimal("50")
        assert trend.revenue_growth is None

    def test_explicit_today(self, app, shop):
        """Test moving the reference date."""
        trend = app.reports.trend(days=30, today=dt.date(2024, 5, 31))
        assert trend.current_revenue == Decimal("50")

    def test_days_must_be_positive(self, app):
        """Test that an empty window is rejected."""
        with pytest.raises(ValueError):
            app.reports.trend(days=0)


class TestStockAlerts:
    """Tests for ReportQueryExecutor.stock_alerts."""

    def test_alerts(self, app):
        """Test low-stock and out-of-stock buckets."""
        app.catalog.create_product("Plenty", "P", 1, 2, stock=10)
        app.catalog.create_product("Few", "F", 1, 2, stock=4)
        app.catalog.create_product("Gone", "X", 1, 2, stock=0)

        alerts = app.reports.stock_alerts()
        assert alerts.threshold == 5
        assert [p.name for p in alerts.low_stock] == ["Few"]
        assert [p.name for p in alerts.out_of_stock] == ["Gone"]
        assert alerts.has_alerts

    def test_threshold_follows_settings(self, app):
        """Test that the threshold comes from business settings."""
        app.catalog.create_product("Few", "F", 1, 2, stock=4)
        app.settings.update_settings(low_stock_threshold=3)
        assert app.reports.stock_alerts().low_stock == []


class TestRecommendations:
    """Tests for ReportQueryExecutor.recommendations."""

    def test_empty_ledger(self, app):
        """Test that there is nothing to suggest without data."""
        assert app.reports.recommendations() == []

    def test_focus_on_best_margin_platform(self, app, product, store_platform):
        """Test that the highest-margin platform is suggested."""
        app.ledger.create_sale(product.id, 1, platform="Facebook")
        app.ledger.create_sale(product.id, 2, platform="Store")

        recs = app.reports.recommendations()
        assert [r.kind for r in recs] == [RecommendationKind.FOCUS_PLATFORM]
        assert recs[0].title == "Focus on Facebook"
        assert "40.0%" in recs[0].description

    def test_restock_soon(self, app):
        """Test a product that will run out within ten days."""
        fast = app.catalog.create_product("Fast Seller", "F", 1, 2, stock=30)
        app.ledger.create_sale(fast.id, 27)

        recs = app.reports.recommendations()
        assert [r.kind for r in recs] == [RecommendationKind.RESTOCK]
        assert recs[0].title == "Restock Soon: Fast Seller"
        assert recs[0].subject == fast.id

    def test_boost_sales_for_idle_stock(self, app):
        """Test well-stocked products with no recent sale."""
        never = app.catalog.create_product("Never Sold", "N", 1, 2, stock=20)
        stale = app.catalog.create_product("Stale", "S", 1, 2, stock=21)
        app.ledger.create_sale(stale.id, 1, date=TODAY - dt.timedelta(days=30))

        recs = app.reports.recommendations()
        assert [r.kind for r in recs] == [RecommendationKind.BOOST_SALES] * 2
        assert {r.subject for r in recs} == {never.id, stale.id}

    def test_recently_sold_stock_not_boosted(self, app):
        """Test that a sale within 25 days suppresses the suggestion."""
        fresh = app.catalog.create_product("Fresh", "F", 1, 2, stock=20)
        app.ledger.create_sale(fresh.id, 1, date=TODAY - dt.timedelta(days=25))
        assert app.reports.recommendations() == []

    def test_reduce_costs(self, app):
        """Test that expenses plus fees above 35% of revenue are flagged."""
        item = app.catalog.create_product("Item", "I", 10, 20, stock=100)
        app.ledger.create_sale(item.id, 1)
        app.expenses.add_expense("Delivery", "Courier", 10)

        recs = app.reports.recommendations()
        assert [r.kind for r in recs] == [RecommendationKind.REDUCE_COSTS]
        assert "50%" in recs[0].description

    def test_at_most_four(self, app):
        """Test the cap on suggestions."""
        for i in range(6):
            app.catalog.create_product(f"Idle {i}", f"I{i}", 1, 2, stock=20)
        assert len(app.reports.recommendations()) == 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Data Models Package

This package contains all Pydantic models used by BizTrack.
Everything the ledger stores or projects conforms to these schemas.
"""

from biztrack.models.ledger import (
    CURRENCY_SYMBOLS,
    BusinessSettings,
    Contact,
    ContactKind,
    Currency,
    Customer,
    DashboardMetrics,
    Expense,
    ExpenseCategory,
    FeeType,
    LedgerModel,
    LedgerSnapshot,
    LocationCharge,
    Platform,
    Product,
    Sale,
    SaleFinancials,
    SaleStatus,
    SkuPrefix,
    Supplier,
    default_platforms,
    default_sku_prefixes,
    new_id,
    utcnow,
)
from biztrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from biztrack.models.validation import ValidationIssue, ValidationResult
from biztrack.models.reports import (
    CustomerStats,
    PeriodReport,
    ProductPerformance,
    ProductRevenue,
    Recommendation,
    RecommendationKind,
    StockAlerts,
    TrendComparison,
)

__all__ = [
    # Ledger models
    "CURRENCY_SYMBOLS",
    "BusinessSettings",
    "Contact",
    "ContactKind",
    "Currency",
    "Customer",
    "DashboardMetrics",
    "Expense",
    "ExpenseCategory",
    "FeeType",
    "LedgerModel",
    "LedgerSnapshot",
    "LocationCharge",
    "Platform",
    "Product",
    "Sale",
    "SaleFinancials",
    "SaleStatus",
    "SkuPrefix",
    "Supplier",
    "default_platforms",
    "default_sku_prefixes",
    "new_id",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Report models
    "CustomerStats",
    "PeriodReport",
    "ProductPerformance",
    "ProductRevenue",
    "Recommendation",
    "RecommendationKind",
    "StockAlerts",
    "TrendComparison",
]

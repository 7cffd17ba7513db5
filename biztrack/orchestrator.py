"""
Main Orchestrator for BizTrack

Wires every component to one BusinessStore and hands the result back
as a single BizTrack object. Presentation layers (pages, charts, PDF
export) call the components on it and never build their own.

DESIGN DECISION: The store is created exactly once here and passed
down. There is no module-level ledger state, so tests and multiple
businesses simply call create_app_components() again.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from biztrack.agents import AnalysisResult, InsightsAgent, InsightsError
from biztrack.audit import AuditLogger, configure_logging
from biztrack.config import get_settings
from biztrack.config.settings import AppSettings
from biztrack.ledger import (
    BusinessStore,
    Catalog,
    ContactDirectory,
    ExpenseBook,
    LedgerEngine,
    MetricsAggregator,
    SettingsStore,
)
from biztrack.models.audit import AuditEventBuilder
from biztrack.models.ledger import (
    CURRENCY_SYMBOLS,
    BusinessSettings,
    Currency,
    LedgerSnapshot,
)
from biztrack.queries import ReportQueryExecutor
from biztrack.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    StateStorageInterface,
)
from biztrack.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class BizTrack:
    """
    One business: the store and every component operating on it.

    Attributes:
        store: The BusinessStore all components share
        settings: Business settings, platforms, SKU prefixes, delivery charges
        catalog: Products
        contacts: Suppliers and customers
        expenses: Expense book
        ledger: Sales and their stock movements
        metrics: Dashboard rollups
        reports: Period reports, trends, stock alerts, recommendations
    """

    def __init__(
        self,
        store: BusinessStore,
        validator: Optional[LedgerValidator] = None,
        insights_agent: Optional[InsightsAgent] = None,
    ):
        validator = validator or LedgerValidator()
        self.store = store
        self.settings = SettingsStore(store)
        self.catalog = Catalog(store, validator)
        self.contacts = ContactDirectory(store)
        self.expenses = ExpenseBook(store, validator)
        self.ledger = LedgerEngine(store, self.catalog, self.contacts, self.expenses, validator)
        self.metrics = MetricsAggregator(store)
        self.reports = ReportQueryExecutor(store)
        self._insights_agent = insights_agent

    def snapshot(self) -> LedgerSnapshot:
        return self.store.snapshot()

    def analyze(self) -> AnalysisResult:
        """
        AI analysis of the current snapshot.

        The Gemini agent is built on first use, so a business without
        GEMINI_* settings works until insights are requested.

        Raises:
            InsightsError: the analysis could not be produced
        """
        if self._insights_agent is None:
            self._insights_agent = InsightsAgent()
        try:
            return self._insights_agent.analyze(self.snapshot())
        except InsightsError as e:
            self.store.log_event(AuditEventBuilder.system_error("insights_failed", str(e)))
            raise


def default_business_settings(app_settings: AppSettings) -> BusinessSettings:
    """Settings for a business that has never saved any."""
    currency = Currency(app_settings.default_currency)
    return BusinessSettings(
        currency=currency,
        currency_symbol=CURRENCY_SYMBOLS[currency],
        low_stock_threshold=app_settings.default_low_stock_threshold,
        allow_negative_stock=app_settings.default_allow_negative_stock,
    )


def _build_storage(
    backend: str,
    app_settings: AppSettings,
) -> tuple[StateStorageInterface, Optional[AuditStorageInterface]]:
    if backend == "memory":
        return InMemoryStateStorage(), None
    if backend == "json":
        return JsonFileStateStorage(app_settings.data_dir), None
    if backend == "google_sheets":
        client = GoogleSheetsClient()
        return GoogleSheetsStateStorage(client), GoogleSheetsAuditStorage(client)
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    storage_backend: Optional[str] = None,
    storage: Optional[StateStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    clock: Optional[Callable[[], datetime]] = None,
    app_settings: Optional[AppSettings] = None,
    insights_agent: Optional[InsightsAgent] = None,
) -> BizTrack:
    """
    Factory function to create all application components.

    Args:
        storage_backend: "memory", "json" or "google_sheets". Defaults
                    to BIZTRACK_STORAGE_BACKEND.
        storage: Use this state storage instead of building one.
        audit_storage: Where audit events are appended, if anywhere.
        clock: Source of "now" (tests pin it).
        app_settings: Defaults to the environment.

    Returns:
        A BizTrack with its last-saved state loaded

    Raises:
        StorageError: if the saved state cannot be read
    """
    app_settings = app_settings or get_settings().app
    configure_logging(app_settings.log_level)

    if storage is None:
        backend = storage_backend or app_settings.storage_backend
        storage, built_audit_storage = _build_storage(backend, app_settings)
        audit_storage = audit_storage or built_audit_storage

    store = BusinessStore(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        defaults=default_business_settings(app_settings),
        clock=clock,
    )
    store.load()

    app = BizTrack(
        store,
        validator=LedgerValidator(strict=app_settings.strict_validation),
        insights_agent=insights_agent,
    )
    logger.info(
        "biztrack_started",
        environment=app_settings.app_environment,
        storage=type(storage).__name__,
        strict_validation=app_settings.strict_validation,
    )
    return app

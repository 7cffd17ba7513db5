"""
Shared fixtures for BizTrack tests.

Every test gets a fresh business backed by in-memory storage and a
pinned clock. No test touches the network or the real environment's
data directory.
"""

from datetime import datetime, timezone

import pytest

from biztrack.config.settings import AppSettings
from biztrack.ledger import BusinessStore
from biztrack.models.ledger import FeeType
from biztrack.orchestrator import create_app_components
from biztrack.services.storage import (
    InMemoryAuditStorage,
    InMemoryStateStorage,
    StorageError,
)


FIXED_NOW = datetime(2024, 6, 15, 10, 30, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()


class FlakyStateStorage(InMemoryStateStorage):
    """In-memory storage whose writes can be switched to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail = False

    def save_collection(self, collection, records):
        if self.fail:
            raise StorageError("disk full")
        super().save_collection(collection, records)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def storage():
    return FlakyStateStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def app_settings(tmp_path):
    return AppSettings(
        storage_backend="memory",
        data_dir=tmp_path,
        strict_validation=False,
        log_level="WARNING",
        default_currency="BDT",
        default_low_stock_threshold=5,
        default_allow_negative_stock=False,
    )


@pytest.fixture
def app(storage, audit_storage, clock, app_settings):
    return create_app_components(
        storage=storage,
        audit_storage=audit_storage,
        clock=clock,
        app_settings=app_settings,
    )


@pytest.fixture
def store(app) -> BusinessStore:
    return app.store


@pytest.fixture
def product(app):
    """Widget: cost 30, price 50, 10 in stock."""
    return app.catalog.create_product(
        name="Widget",
        sku="W-1",
        buying_price=30,
        selling_price=50,
        stock=10,
    )


@pytest.fixture
def store_platform(app):
    """Platform "Store" charging 10% of revenue."""
    return app.settings.add_platform("Store", fee_value=10, fee_type=FeeType.PERCENTAGE)


@pytest.fixture
def strict_app(audit_storage, clock, app_settings):
    """A business with strict validation turned on."""
    return create_app_components(
        storage=InMemoryStateStorage(),
        audit_storage=audit_storage,
        clock=clock,
        app_settings=app_settings.model_copy(update={"strict_validation": True}),
    )

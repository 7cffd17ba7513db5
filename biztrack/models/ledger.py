"""
Core Data Models for BizTrack

These models define the schemas for every entity the ledger owns.
They are designed to:
1. Serialize to plain records for any storage backend
2. Round-trip previously stored (camelCase) records unchanged
3. Keep a sale's financial snapshot separate from live catalog prices

DESIGN DECISION: Prices are deliberately NOT constrained to be
non-negative here. The ledger accepts whatever the caller records;
stricter checks live in LedgerValidator and are opt-in.
"""

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate an identifier for a new entity."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerModel(BaseModel):
    """
    Base for all stored entities.

    Field names are snake_case in Python and camelCase in stored records,
    so data saved by earlier versions of the app loads without mapping.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    def to_record(self) -> dict:
        """
        Plain JSON-compatible record for storage.

        Money fields are written as decimal strings ("12.50"), never
        floats. Records holding plain JSON numbers still load.
        """
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENUMS
# =============================================================================

class SaleStatus(str, Enum):
    """
    Sale lifecycle.

    CRITICAL: COMPLETED -> REFUNDED is one-way. There is no un-refund.
    """
    COMPLETED = "Completed"
    REFUNDED = "Refunded"


class ExpenseCategory(str, Enum):
    MARKETING = "Marketing"
    DELIVERY = "Delivery"
    PACKAGING = "Packaging"
    PLATFORM_FEE = "Platform Fee"
    SALES_LOSS = "Sales Loss"
    REFUND_LOSS = "Refund Loss"
    OTHER = "Other"


class FeeType(str, Enum):
    """How a platform's fee is charged."""
    PERCENTAGE = "PERCENTAGE"  # percent of the sale's revenue
    FIXED = "FIXED"            # flat amount per sale, independent of quantity


class Currency(str, Enum):
    BDT = "BDT"
    USD = "USD"


CURRENCY_SYMBOLS = {
    Currency.BDT: "৳",
    Currency.USD: "$",
}


class ContactKind(str, Enum):
    SUPPLIER = "supplier"
    CUSTOMER = "customer"


# =============================================================================
# SETTINGS
# =============================================================================

class Platform(LedgerModel):
    """A sales channel and its fee rule. Sales reference it by name."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    fee_value: Decimal = Decimal("0")
    fee_type: FeeType = FeeType.FIXED


class SkuPrefix(LedgerModel):
    """SKU prefix offered when building product codes (e.g. ELEC)."""

    id: str = Field(default_factory=new_id)
    prefix: str = Field(..., min_length=1)
    label: str = ""

    @field_validator('prefix')
    @classmethod
    def upper_prefix(cls, v: str) -> str:
        return v.upper()


class LocationCharge(LedgerModel):
    """Standard delivery charge for a location."""

    id: str = Field(default_factory=new_id)
    location: str = Field(..., min_length=1)
    charge: Decimal = Decimal("0")


def default_platforms() -> list[Platform]:
    return [
        Platform(id="1", name="Facebook"),
        Platform(id="2", name="Website"),
        Platform(id="3", name="Offline"),
    ]


def default_sku_prefixes() -> list[SkuPrefix]:
    return [
        SkuPrefix(id="1", prefix="GEN", label="General"),
        SkuPrefix(id="2", prefix="ELEC", label="Electronics"),
    ]


class BusinessSettings(LedgerModel):
    """
    Business-level settings stored alongside the ledger.

    currency_symbol always follows currency; it is kept in the record
    only so reporting collaborators can display it without a lookup.
    """

    currency: Currency = Currency.BDT
    currency_symbol: str = CURRENCY_SYMBOLS[Currency.BDT]
    low_stock_threshold: int = Field(default=5, ge=0)
    allow_negative_stock: bool = False
    platforms: list[Platform] = Field(default_factory=default_platforms)


# =============================================================================
# CATALOG
# =============================================================================

class Product(LedgerModel):
    """
    A catalog product.

    stock is the single source of truth for availability. It is shared
    between manual corrections and the ledger's reservations.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    sku: str = ""
    buying_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    stock: int = 0
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def stock_value(self) -> Decimal:
        return self.buying_price * self.stock


# =============================================================================
# LEDGER
# =============================================================================

class Sale(LedgerModel):
    """
    A recorded sale.

    CRITICAL: revenue, total_cost, platform_fee and profit are derived
    from the snapshot fields and quantity at create/update time. They are
    never edited on their own.

    product_id may dangle after the product is deleted; product_name and
    the price snapshots keep the historical record readable.
    """

    id: str = Field(default_factory=new_id)
    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)

    # Snapshot captured at transaction time
    selling_price_snapshot: Decimal
    buying_cost_snapshot: Decimal

    # Derived
    revenue: Decimal
    total_cost: Decimal
    platform_fee: Decimal = Decimal("0")
    profit: Decimal

    # Delivery and channel
    delivery_charge: Decimal = Decimal("0")
    location: str = ""
    platform: str = ""
    paid_by_customer: bool = False

    date: dt.date
    status: SaleStatus = SaleStatus.COMPLETED

    # Set only on refund
    refund_date: Optional[datetime] = None
    delivery_paid_on_refund: Optional[bool] = None

    customer_phone: Optional[str] = None

    @field_validator('date', mode='before')
    @classmethod
    def strip_time_component(cls, v):
        """Older records stored full ISO timestamps for the sale date."""
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if isinstance(v, datetime):
            return v.date()
        return v

    @property
    def is_completed(self) -> bool:
        return self.status == SaleStatus.COMPLETED

    @property
    def is_refunded(self) -> bool:
        return self.status == SaleStatus.REFUNDED


class SaleFinancials(BaseModel):
    """Financial snapshot computed for one sale."""

    selling_price_snapshot: Decimal
    buying_cost_snapshot: Decimal
    revenue: Decimal
    total_cost: Decimal
    platform_fee: Decimal
    profit: Decimal


class Expense(LedgerModel):
    """An operating expense, entered by the user or recognised on refund."""

    id: str = Field(default_factory=new_id)
    category: ExpenseCategory
    description: str = ""
    amount: Decimal = Decimal("0")
    date: dt.date

    @field_validator('date', mode='before')
    @classmethod
    def strip_time_component(cls, v):
        """Refund losses used to be stamped with a full ISO timestamp."""
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if isinstance(v, datetime):
            return v.date()
        return v


# =============================================================================
# CONTACTS
# =============================================================================

class Supplier(LedgerModel):
    kind: Literal["supplier"] = "supplier"
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    contact: str = ""
    category: str = ""
    notes: str = ""


class Customer(LedgerModel):
    """
    A customer. phone doubles as the natural key when the ledger
    auto-creates customers from sales.
    """
    kind: Literal["customer"] = "customer"
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    phone: str = ""
    address: str = ""
    notes: str = ""


# Tagged union: the kind field decides the shape, never field presence.
Contact = Annotated[Union[Supplier, Customer], Field(discriminator="kind")]


# =============================================================================
# PROJECTIONS
# =============================================================================

class DashboardMetrics(BaseModel):
    """
    Read-only rollups over the current collections.

    total_profit already nets out platform fees; net_profit subtracts
    every expense, including refund losses.
    """

    total_sales: Decimal = Decimal("0")
    total_profit: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_platform_fees: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    stock_value: Decimal = Decimal("0")
    total_refunds: Decimal = Decimal("0")


class LedgerSnapshot(BaseModel):
    """
    A consistent, deep-copied view of the whole ledger.

    Handed to reporting collaborators so they never observe a
    half-applied sale/stock pair.
    """

    taken_at: datetime = Field(default_factory=utcnow)
    settings: BusinessSettings
    products: list[Product] = Field(default_factory=list)
    sales: list[Sale] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    suppliers: list[Supplier] = Field(default_factory=list)
    customers: list[Customer] = Field(default_factory=list)
    sku_prefixes: list[SkuPrefix] = Field(default_factory=list)
    delivery_charges: list[LocationCharge] = Field(default_factory=list)

    @property
    def completed_sales(self) -> list[Sale]:
        return [s for s in self.sales if s.is_completed]

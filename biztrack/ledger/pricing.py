"""
Sale pricing.

Pure functions: given prices, quantity and the fee rules in force,
compute a sale's financial snapshot. The ledger engine calls these at
create and update time and stores the result on the sale.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from biztrack.errors import LedgerValidationError
from biztrack.models.ledger import FeeType, Platform, SaleFinancials


HUNDRED = Decimal("100")


def as_money(value: Any) -> Decimal:
    """
    Convert user input to Decimal.

    Floats go through str() so 12.5 becomes Decimal("12.5"), not the
    binary approximation.
    """
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerValidationError(f"Not a valid amount: {value!r}")


def find_platform(platforms: list[Platform], name: str) -> Optional[Platform]:
    """Platforms are matched by exact name; the first match wins."""
    for platform in platforms:
        if platform.name == name:
            return platform
    return None


def calculate_platform_fee(
    platforms: list[Platform],
    platform_name: str,
    revenue: Decimal,
) -> Decimal:
    """
    Fee charged by the named platform on a sale with this revenue.

    Percentage fees scale with revenue; fixed fees are charged once per
    sale regardless of quantity. An unknown platform charges nothing.
    """
    platform = find_platform(platforms, platform_name)
    if platform is None:
        return Decimal("0")

    if platform.fee_type == FeeType.PERCENTAGE:
        return revenue * platform.fee_value / HUNDRED
    return platform.fee_value


def compute_sale_financials(
    unit_price: Decimal,
    unit_cost: Decimal,
    quantity: int,
    platforms: list[Platform],
    platform_name: str,
) -> SaleFinancials:
    """Financial snapshot for one sale."""
    revenue = unit_price * quantity
    total_cost = unit_cost * quantity
    platform_fee = calculate_platform_fee(platforms, platform_name, revenue)
    return SaleFinancials(
        selling_price_snapshot=unit_price,
        buying_cost_snapshot=unit_cost,
        revenue=revenue,
        total_cost=total_cost,
        platform_fee=platform_fee,
        profit=revenue - total_cost - platform_fee,
    )

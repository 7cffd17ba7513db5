"""
BizTrack Exceptions

Every error is local to one command. When a command raises, the store
has already rolled its collections back to the state before the call,
except for PersistenceError, which is raised after the commit.
"""

from typing import Optional

from biztrack.models.validation import ValidationResult


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InsufficientStockError(LedgerError):
    """The negative-stock policy forbids the requested quantity."""

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}: "
            f"requested {requested}, available {available}"
        )


class NotFoundError(LedgerError):
    """A referenced entity does not exist."""

    entity_type = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class ProductNotFoundError(NotFoundError):
    entity_type = "product"


class SaleNotFoundError(NotFoundError):
    entity_type = "sale"


class LedgerValidationError(LedgerError):
    """Input was rejected by validation."""

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        self.result = result
        super().__init__(message)


class DuplicateSkuError(LedgerValidationError):
    """Another product already uses this SKU."""

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"SKU already in use: {sku}")


class PersistenceError(LedgerError):
    """
    Committed changes could not be written to storage.

    The in-memory state is kept; the failed collections stay dirty and
    are written again after the next successful command.
    """

    def __init__(self, failures: dict[str, str]):
        self.failures = failures
        names = ", ".join(sorted(failures))
        super().__init__(f"Failed to persist: {names}")

"""
Audit Models for BizTrack

Every ledger mutation is logged for audit purposes.
This provides:
1. Traceability of stock movements back to the sale that caused them
2. Debugging information when numbers don't add up
3. A record of refund losses and auto-created customers

DESIGN DECISION: Audit logs are append-only and write-only. They are
never read back to rebuild or undo ledger state.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Sales
    SALE_CREATED = "sale_created"
    SALE_UPDATED = "sale_updated"
    SALE_REFUNDED = "sale_refunded"
    SALE_DELETED = "sale_deleted"
    SALE_REJECTED = "sale_rejected"

    # Stock
    STOCK_ADJUSTED = "stock_adjusted"

    # Catalog
    PRODUCT_CREATED = "product_created"
    PRODUCT_UPDATED = "product_updated"
    PRODUCT_DELETED = "product_deleted"

    # Contacts and expenses
    CUSTOMER_AUTO_CREATED = "customer_auto_created"
    EXPENSE_RECORDED = "expense_recorded"

    # Settings and state
    SETTINGS_UPDATED = "settings_updated"
    STATE_MIGRATED = "state_migrated"

    # System events
    PERSISTENCE_FAILED = "persistence_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every committed ledger command produces one or more of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'sale', 'product', 'expense')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events produced by one ledger command
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by every event of one command"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        import json

        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.sale_created(sale)
        event = AuditEventBuilder.stock_adjusted(product_id, -2, 8, "sale")
    """

    @staticmethod
    def sale_created(
        sale_id: str,
        product_name: str,
        quantity: int,
        revenue: str,
        profit: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_CREATED,
            entity_type="sale",
            entity_id=sale_id,
            description=f"Sale recorded: {quantity} x {product_name}",
            details={
                "product_name": product_name,
                "quantity": quantity,
                "revenue": revenue,
                "profit": profit,
            },
        )

    @staticmethod
    def sale_updated(
        sale_id: str,
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_UPDATED,
            entity_type="sale",
            entity_id=sale_id,
            description=f"Sale edited ({len(changes)} fields changed)",
            details={"changes": changes},
        )

    @staticmethod
    def sale_refunded(
        sale_id: str,
        quantity: int,
        delivery_paid: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_REFUNDED,
            entity_type="sale",
            entity_id=sale_id,
            description=f"Sale refunded, {quantity} units returned to stock",
            details={
                "quantity": quantity,
                "delivery_paid_on_refund": delivery_paid,
            },
        )

    @staticmethod
    def sale_deleted(
        sale_id: str,
        was_completed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_DELETED,
            entity_type="sale",
            entity_id=sale_id,
            description="Sale deleted",
            details={"stock_restored": was_completed},
        )

    @staticmethod
    def sale_rejected(
        product_id: str,
        requested: int,
        available: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="product",
            entity_id=product_id,
            description=f"Sale rejected: insufficient stock ({available} < {requested})",
            details={
                "requested_quantity": requested,
                "available_stock": available,
            },
        )

    @staticmethod
    def stock_adjusted(
        product_id: str,
        delta: int,
        new_stock: int,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STOCK_ADJUSTED,
            severity=AuditSeverity.DEBUG,
            entity_type="product",
            entity_id=product_id,
            description=f"Stock {delta:+d} ({reason})",
            details={
                "delta": delta,
                "new_stock": new_stock,
                "reason": reason,
            },
        )

    @staticmethod
    def product_changed(
        event_type: AuditEventType,
        product_id: str,
        name: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        action = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="product",
            entity_id=product_id,
            description=f"Product {action}: {name}",
            details=details or {},
        )

    @staticmethod
    def customer_auto_created(
        customer_id: str,
        phone: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CUSTOMER_AUTO_CREATED,
            entity_type="customer",
            entity_id=customer_id,
            description=f"Customer auto-created for phone {phone}",
            details={"phone": phone},
        )

    @staticmethod
    def expense_recorded(
        expense_id: str,
        category: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense recorded: {category} {amount}",
            details={
                "category": category,
                "amount": amount,
            },
        )

    @staticmethod
    def settings_updated(changes: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            description="Business settings updated",
            details={"changes": changes},
        )

    @staticmethod
    def state_migrated(collection: str, migration: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_MIGRATED,
            severity=AuditSeverity.WARNING,
            entity_type=collection,
            description=f"Stored {collection} upgraded: {migration}",
            details={"migration": migration},
        )

    @staticmethod
    def persistence_failed(
        collection: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection,
            description=f"Failed to persist {collection}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )

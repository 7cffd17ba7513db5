"""
Audit Logger

DESIGN DECISION: Every committed ledger command is logged.
This provides:
1. Traceability of every stock movement
2. Debugging capability when totals look wrong
3. An operational trail next to the stored data

The audit logger:
- Is synchronous, like the ledger commands that feed it
- Gracefully handles storage failures (a broken audit sheet never
  fails a sale that has already been committed)
- Stamps every event of one command with the same correlation ID
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from biztrack.models.audit import AuditEvent, AuditSeverity
from biztrack.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog on top of the standard logging module."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger().setLevel(getattr(logging, level.upper()))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(default=str),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging
configure_logging()


_SEVERITY_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("biztrack.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        method = getattr(self._logger, _SEVERITY_METHODS[event.severity])
        method("audit_event", **event.to_log_dict())

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_many(
        self,
        events: list[AuditEvent],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the events of one command under a shared correlation ID."""
        correlation_id = correlation_id or create_correlation_id()
        for event in events:
            if event.correlation_id is None:
                event.correlation_id = correlation_id
            self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    One ID per ledger command; every event the command emits carries it.
    """
    return uuid4()

"""
Audit Logger

DESIGN DECISION: Every user action on the ledger and the recurring
payment list is logged. This provides:
1. Complete traceability of balance changes
2. Debugging capability
3. The user's audit view, filtered by profile

The audit logger:
- Is synchronous, because the ledger it serves is synchronous
- Gracefully handles storage failures (never crashes the caller)
- Stamps every event with the acting profile and user
- Is callable, so it can be passed anywhere an audit sink is expected
"""

from typing import Callable, Optional
from uuid import UUID

import structlog

from finboard.audit.storage import AuditStorageInterface
from finboard.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finboard.models.profile import ProfileType


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


AuditSink = Callable[[AuditEvent], object]


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for the dashboard's audit view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        user: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            user: Name stamped on events that don't carry one.
        """
        self._storage = storage
        self._user = user
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def __call__(self, event: AuditEvent) -> bool:
        return self.log(event)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if event.user is None and self._user:
            event = event.model_copy(update={"user": self._user})

        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
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

    def recent(
        self,
        limit: int = 100,
        profile: Optional[ProfileType] = None,
    ) -> list[AuditEvent]:
        """Newest-first events for the audit view. Empty without storage."""
        if self._storage is None:
            return []
        return self._storage.get_recent_events(limit=limit, profile=profile)

    def clear(self, profile: Optional[ProfileType] = None) -> int:
        """
        Clear the stored audit log.

        The clearing itself is recorded as the first event of the new log.
        """
        removed = self._storage.clear() if self._storage is not None else 0
        self.log(AuditEventBuilder.audit_log_cleared(removed=removed, profile=profile))
        return removed

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

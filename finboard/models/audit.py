"""
Audit Models for Finboard

Every user action on goals, withdrawals, recurring payments and
automations is logged for audit purposes. This provides:
1. Complete traceability of all balance changes
2. A visible history per profile in the dashboard's audit view
3. Debugging information when things go wrong

DESIGN DECISION: Audit logs are append-only. We never modify them;
the only removal is an explicit "clear log" action, which is itself audited.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finboard.models.common import utc_now
from finboard.models.profile import ProfileType


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Savings goals
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"

    # Ledger movements
    DEPOSIT_RECORDED = "deposit_recorded"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"
    WITHDRAWAL_COMPLETED = "withdrawal_completed"

    # Automations
    AUTOMATION_CONFIGURED = "automation_configured"

    # Recurring payments
    RECURRING_CREATED = "recurring_created"
    RECURRING_UPDATED = "recurring_updated"
    RECURRING_DELETED = "recurring_deleted"

    # Input handling
    VALIDATION_FAILED = "validation_failed"

    # Audit trail maintenance
    AUDIT_LOG_CLEARED = "audit_log_cleared"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
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

    # Who and where
    profile: Optional[ProfileType] = Field(
        default=None,
        description="Profile the action happened in"
    )
    user: Optional[str] = Field(
        default=None,
        description="User who triggered the action"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'goal', 'withdrawal', 'recurring')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., request and completion of one withdrawal)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "profile": self.profile.value if self.profile else None,
            "user": self.user,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Convert to a flat row for tabular export (audit view, CSV).

        Returns columns in order:
        [event_id, timestamp, event_type, severity, profile, user, entity_type,
         entity_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.profile.value if self.profile else "",
            self.user or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Amounts are recorded as strings so the details stay JSON-safe.

    Usage:
        event = AuditEventBuilder.deposit_recorded(goal_id, goal_name, amount, profile)
        event = AuditEventBuilder.withdrawal_completed(goal_id, withdrawal_id, ...)
    """

    @staticmethod
    def goal_created(
        goal_id: UUID,
        name: str,
        target_amount: Decimal,
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            profile=profile,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Savings goal created: {name}",
            details={
                "name": name,
                "target_amount": str(target_amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_updated(
        goal_id: UUID,
        old_name: str,
        new_name: str,
        target_amount: Decimal,
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_UPDATED,
            profile=profile,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Savings goal updated: {old_name}",
            details={
                "old_name": old_name,
                "new_name": new_name,
                "target_amount": str(target_amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_deleted(
        goal_id: UUID,
        name: str,
        abandoned_withdrawals: list[UUID],
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DELETED,
            severity=AuditSeverity.WARNING if abandoned_withdrawals else AuditSeverity.INFO,
            profile=profile,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Savings goal deleted: {name}",
            details={
                "name": name,
                "abandoned_withdrawals": [str(wid) for wid in abandoned_withdrawals],
            },
            is_user_action=True,
        )

    @staticmethod
    def deposit_recorded(
        goal_id: UUID,
        goal_name: str,
        amount: Decimal,
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPOSIT_RECORDED,
            profile=profile,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Deposit to savings goal: {goal_name}",
            details={
                "goal_name": goal_name,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def withdrawal_requested(
        goal_id: UUID,
        goal_name: str,
        withdrawal_id: UUID,
        amount: Decimal,
        challenge_tier: str,
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_REQUESTED,
            profile=profile,
            entity_type="withdrawal",
            entity_id=withdrawal_id,
            correlation_id=withdrawal_id,
            description=f"Withdrawal requested from savings goal: {goal_name}",
            details={
                "goal_id": str(goal_id),
                "goal_name": goal_name,
                "amount": str(amount),
                "challenge_tier": challenge_tier,
            },
            is_user_action=True,
        )

    @staticmethod
    def withdrawal_completed(
        goal_id: UUID,
        goal_name: str,
        withdrawal_id: UUID,
        amount: Decimal,
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_COMPLETED,
            profile=profile,
            entity_type="withdrawal",
            entity_id=withdrawal_id,
            correlation_id=withdrawal_id,
            description=f"Withdrawal completed from savings goal: {goal_name}",
            details={
                "goal_id": str(goal_id),
                "goal_name": goal_name,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def automation_configured(
        rule_id: UUID,
        kind: str,
        goal_id: UUID,
        profile: ProfileType,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTOMATION_CONFIGURED,
            profile=profile,
            entity_type="automation",
            entity_id=rule_id,
            description=f"Saving automation configured: {kind}",
            details={
                "kind": kind,
                "goal_id": str(goal_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def recurring_changed(
        event_type: AuditEventType,
        transaction_id: UUID,
        description: str,
        amount: Decimal,
        frequency: str,
        profile: ProfileType,
    ) -> AuditEvent:
        verb = {
            AuditEventType.RECURRING_CREATED: "created",
            AuditEventType.RECURRING_UPDATED: "updated",
            AuditEventType.RECURRING_DELETED: "deleted",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            profile=profile,
            entity_type="recurring",
            entity_id=transaction_id,
            description=f"Recurring transaction {verb}: {description}",
            details={
                "amount": str(amount),
                "frequency": frequency,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        profile: Optional[ProfileType] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            entity_type="form",
            description=f"Input rejected on {form} with {len(issues)} issues",
            details={
                "form": form,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def audit_log_cleared(
        removed: int,
        profile: Optional[ProfileType] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUDIT_LOG_CLEARED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            description="Audit log cleared",
            details={"removed_events": removed},
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )

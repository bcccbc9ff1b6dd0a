"""
Data Models Package

This package contains all Pydantic models used in Finboard.
All data flowing through the core must conform to these schemas.
"""

from finboard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finboard.models.common import ValidationIssue, utc_now
from finboard.models.profile import ProfileType
from finboard.models.recurring import (
    Frequency,
    MonthlyOverview,
    RecurringTransaction,
    ScheduledTransaction,
)
from finboard.models.savings import (
    AutomationKind,
    AutomationRule,
    ChallengeTier,
    PendingWithdrawal,
    PendingWithdrawalView,
    SavingsGoal,
    SavingsTransaction,
)

__all__ = [
    # Shared
    "ProfileType",
    "ValidationIssue",
    "utc_now",
    # Recurring models
    "Frequency",
    "MonthlyOverview",
    "RecurringTransaction",
    "ScheduledTransaction",
    # Savings models
    "AutomationKind",
    "AutomationRule",
    "ChallengeTier",
    "PendingWithdrawal",
    "PendingWithdrawalView",
    "SavingsGoal",
    "SavingsTransaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

"""
Audit Storage

DESIGN DECISION: The audit logger writes through an abstract interface.
Persistence is owned by the surrounding application; the in-memory
implementation here backs the dashboard's audit view and the tests.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finboard.models.audit import AuditEvent
from finboard.models.profile import ProfileType


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - events are never modified.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events sharing a correlation ID (e.g. one withdrawal's
        request and completion), in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
        profile: Optional[ProfileType] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first), optionally
        restricted to one profile.
        """
        pass

    @abstractmethod
    def clear(self) -> int:
        """
        Remove all events. Returns how many were removed.
        """
        pass


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit storage held in a Python list, in append order."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_recent_events(
        self,
        limit: int = 100,
        profile: Optional[ProfileType] = None,
    ) -> list[AuditEvent]:
        events = [
            e for e in reversed(self._events)
            if profile is None or e.profile == profile
        ]
        return events[:limit]

    def clear(self) -> int:
        removed = len(self._events)
        self._events.clear()
        return removed


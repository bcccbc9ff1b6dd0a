"""Audit logging package."""

from finboard.audit.logger import AuditLogger, AuditSink
from finboard.audit.storage import AuditStorageInterface, InMemoryAuditStorage

__all__ = [
    "AuditLogger",
    "AuditSink",
    "AuditStorageInterface",
    "InMemoryAuditStorage",
]

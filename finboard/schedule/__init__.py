"""Recurring schedule projection package."""

from finboard.schedule.projector import (
    advance,
    monthly_equivalent,
    monthly_overview,
    next_due_date,
    occurrences_between,
    project_schedule,
)

__all__ = [
    "advance",
    "monthly_equivalent",
    "monthly_overview",
    "next_due_date",
    "occurrences_between",
    "project_schedule",
]

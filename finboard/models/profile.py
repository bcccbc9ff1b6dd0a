"""Dashboard profiles."""

from enum import Enum


class ProfileType(str, Enum):
    """
    The partition every goal, recurring payment and audit entry belongs to.

    Values are the labels shown in the dashboard's profile switcher.
    """
    PRIVATE = "Privat"
    BUSINESS = "Geschäftlich"

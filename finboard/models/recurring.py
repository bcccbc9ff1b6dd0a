"""
Recurring Payment Models

A recurring transaction is stored with its anchor date only. The next
due date is a projection computed against an explicit "now" and lives
on ScheduledTransaction, never on the stored entity.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finboard.models.profile import ProfileType


class Frequency(str, Enum):
    """
    How often a recurring transaction occurs.

    Values are the labels used by the dashboard's frequency picker.
    """
    DAILY = "Täglich"
    WEEKLY = "Wöchentlich"
    MONTHLY = "Monatlich"
    QUARTERLY = "Quartalsweise"
    SEMI_ANNUAL = "Halbjährlich"
    ANNUAL = "Jährlich"


class RecurringTransaction(BaseModel):
    """
    A standing order, subscription or regular income.

    Positive amounts are income, negative amounts are expenses.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique recurring transaction ID"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What this payment is (e.g. 'Miete')"
    )
    category: str = Field(
        default="Sonstiges",
        max_length=100,
        description="Free-text category"
    )
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Signed amount in EUR (positive = income)"
    )
    frequency: Frequency
    start_date: date = Field(
        ...,
        description="Anchor date of the first occurrence"
    )
    profile: ProfileType = ProfileType.PRIVATE

    @field_validator('amount')
    @classmethod
    def reject_zero_amount(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("Amount must not be zero")
        return v

    @property
    def is_income(self) -> bool:
        return self.amount > 0


class ScheduledTransaction(BaseModel):
    """A recurring transaction annotated with its projection for one "now"."""
    model_config = ConfigDict(frozen=True)

    transaction: RecurringTransaction
    next_due_date: date
    monthly_amount: Decimal


class MonthlyOverview(BaseModel):
    """
    Monthly-equivalent cashflow summary.

    Used for reporting only; never feeds a ledger balance.
    """
    model_config = ConfigDict(frozen=True)

    income: Decimal = Field(default=Decimal("0"), ge=0)
    expenses: Decimal = Field(default=Decimal("0"), le=0)

    @property
    def net(self) -> Decimal:
        return self.income + self.expenses

"""
Savings Goal Models

These models define the savings-goal ledger's data. They are designed to:
1. Make the balance a consequence of the history, never an independent fact
2. Keep committed and pending withdrawals strictly apart
3. Be immutable - ledger operations return new goals

DESIGN DECISION: A SavingsGoal refuses to exist in a state where
current_balance != sum(history). Any code path that would drift the two
fails at construction time instead of silently corrupting the goal.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from finboard.models.common import utc_now
from finboard.models.profile import ProfileType


# Longest deposit label or withdrawal reason a history entry can hold
REASON_MAX_LENGTH = 500


class ChallengeTier(str, Enum):
    """Difficulty of the challenge attached to a withdrawal."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SavingsTransaction(BaseModel):
    """
    One committed entry in a goal's history.

    Deposits are positive, completed withdrawals negative.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    date: datetime = Field(
        default_factory=utc_now,
        description="When the entry was committed"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount in EUR"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=REASON_MAX_LENGTH,
        description="Deposit label or withdrawal reason"
    )

    @field_validator('amount')
    @classmethod
    def reject_zero_amount(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("A history entry cannot have a zero amount")
        return v


class PendingWithdrawal(BaseModel):
    """
    A requested withdrawal waiting for its challenge to be completed.

    CRITICAL: Pending withdrawals do not touch the balance. Only
    completing the challenge moves the amount into the history.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique withdrawal ID"
    )
    amount: Decimal = Field(
        ...,
        lt=0,
        description="Requested amount in EUR (always negative)"
    )
    reason: str = Field(
        ...,
        min_length=1,
        max_length=REASON_MAX_LENGTH,
        description="Why the money is needed (mandatory)"
    )
    challenge: str = Field(
        ...,
        min_length=1,
        description="Task the user must complete to release the money"
    )
    challenge_tier: ChallengeTier
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the withdrawal was requested"
    )


class SavingsGoal(BaseModel):
    """
    A named savings target with an append-only history.

    The history is in insertion order, which is chronological order.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique goal ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Goal name (e.g. 'Urlaub auf Hawaii')"
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount the user wants to reach"
    )
    target_date: date
    profile: ProfileType = ProfileType.PRIVATE

    current_balance: Decimal = Field(
        default=Decimal("0"),
        description="Sum of all committed history amounts"
    )
    history: list[SavingsTransaction] = Field(default_factory=list)
    pending_withdrawals: list[PendingWithdrawal] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_ledger(self) -> 'SavingsGoal':
        """Balance must equal the history; pending ids must be unique."""
        committed = sum((entry.amount for entry in self.history), Decimal("0"))
        if committed != self.current_balance:
            raise ValueError(
                f"Balance {self.current_balance} does not match history total {committed}"
            )

        ids = [pw.id for pw in self.pending_withdrawals]
        if len(ids) != len(set(ids)):
            raise ValueError("Pending withdrawal IDs must be unique")

        return self

    @property
    def progress(self) -> float:
        """Percentage of the target reached, clamped to 0..100."""
        ratio = float(self.current_balance / self.target_amount) * 100
        return max(0.0, min(100.0, ratio))

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.target_amount - self.current_balance)

    @property
    def pending_total(self) -> Decimal:
        """Sum of all pending (negative) withdrawal amounts."""
        return sum((pw.amount for pw in self.pending_withdrawals), Decimal("0"))

    def find_pending(self, withdrawal_id: UUID) -> Optional[PendingWithdrawal]:
        for pw in self.pending_withdrawals:
            if pw.id == withdrawal_id:
                return pw
        return None


class AutomationKind(str, Enum):
    """Saving automations offered by the dashboard."""
    ROUND_UP = "round-up"
    SURPLUS = "surplus"


class AutomationRule(BaseModel):
    """
    Configuration of one saving automation.

    Round-up rules send spare change from expenses to a goal; surplus
    rules send a percentage of the monthly budget surplus.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    kind: AutomationKind
    goal_id: UUID
    percentage: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Share of the surplus to save (surplus rules only)"
    )
    round_to: Decimal = Field(
        default=Decimal("1"),
        gt=0,
        description="Increment expenses are rounded up to (round-up rules only)"
    )
    profile: ProfileType = ProfileType.PRIVATE

    @field_validator('round_to')
    @classmethod
    def whole_cents(cls, v: Decimal) -> Decimal:
        exponent = v.normalize().as_tuple().exponent
        if isinstance(exponent, int) and exponent < -2:
            raise ValueError("Round-up increment must be a whole number of cents")
        return v


class PendingWithdrawalView(BaseModel):
    """A pending withdrawal as listed in the cross-goal approval queue."""
    model_config = ConfigDict(frozen=True)

    goal_id: UUID
    goal_name: str
    withdrawal: PendingWithdrawal

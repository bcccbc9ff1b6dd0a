"""
Savings Goal Ledger

Keeps a goal's balance as the sum of an append-only history and gates
every withdrawal behind a reason and a challenge.

Per pending withdrawal the lifecycle is:

    (request)  -> AwaitingChallengeCompletion
    (complete) -> committed to history, balance updated

A goal can hold any number of pending withdrawals at once; each is
tracked by its own ID.

DESIGN DECISION: Every operation takes a goal and returns a new goal.
Validation happens before anything is built, so a failed call leaves
the caller's goal exactly as it was. The audit sink is only called
after the new goal exists.
"""

import random
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from finboard.audit.logger import AuditSink
from finboard.config import SavingsSettings, get_settings
from finboard.errors import NotFoundError, ValidationError
from finboard.models.audit import AuditEvent, AuditEventBuilder
from finboard.models.common import utc_now
from finboard.models.profile import ProfileType
from finboard.models.savings import (
    REASON_MAX_LENGTH,
    PendingWithdrawal,
    SavingsGoal,
    SavingsTransaction,
)
from finboard.money import Amount, to_money
from finboard.savings.challenges import (
    DEFAULT_CHALLENGES,
    ChallengeCatalog,
    draw_challenge,
    tier_for_amount,
)


logger = structlog.get_logger(__name__)


def _rebuild(goal: SavingsGoal, **changes) -> SavingsGoal:
    """New goal with `changes` applied, re-running the ledger validators."""
    try:
        return SavingsGoal.model_validate({**dict(goal), **changes})
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, "Invalid savings goal") from e


class SavingsLedger:
    """
    Applies deposits, withdrawal requests and challenge completions.

    The ledger owns no goals. Its collaborators are injected:
    - audit_sink: receives one AuditEvent per successful operation
    - rng: source of randomness for challenge selection (seed it in tests)
    - clock: returns "now" for history entries and requests
    """

    def __init__(
        self,
        audit_sink: Optional[AuditSink] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        catalog: ChallengeCatalog = DEFAULT_CHALLENGES,
        settings: Optional[SavingsSettings] = None,
    ):
        self._audit_sink = audit_sink
        self._rng = rng or random.Random()
        self._clock = clock or utc_now
        self._catalog = catalog
        self._settings = settings or get_settings().savings

    def _emit(self, event: AuditEvent) -> None:
        if self._audit_sink is not None:
            self._audit_sink(event)

    # =========================================================================
    # GOAL CRUD
    # =========================================================================

    def create_goal(
        self,
        name: str,
        target_amount: Amount,
        target_date: date,
        profile: ProfileType = ProfileType.PRIVATE,
    ) -> SavingsGoal:
        """Create an empty goal: zero balance, no history, nothing pending."""
        target = to_money(target_amount, "target_amount")
        try:
            goal = SavingsGoal(
                name=name,
                target_amount=target,
                target_date=target_date,
                profile=profile,
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, "Invalid savings goal") from e

        self._emit(AuditEventBuilder.goal_created(
            goal_id=goal.id,
            name=goal.name,
            target_amount=goal.target_amount,
            profile=goal.profile,
        ))
        return goal

    def update_goal(
        self,
        goal: SavingsGoal,
        name: Optional[str] = None,
        target_amount: Optional[Amount] = None,
        target_date: Optional[date] = None,
    ) -> SavingsGoal:
        """
        Rename a goal or change its target.

        Balance, history and pending withdrawals are carried over untouched.
        """
        changes: dict = {}
        if name is not None:
            changes["name"] = name
        if target_amount is not None:
            changes["target_amount"] = to_money(target_amount, "target_amount")
        if target_date is not None:
            changes["target_date"] = target_date

        updated = _rebuild(goal, **changes)

        self._emit(AuditEventBuilder.goal_updated(
            goal_id=goal.id,
            old_name=goal.name,
            new_name=updated.name,
            target_amount=updated.target_amount,
            profile=goal.profile,
        ))
        return updated

    # =========================================================================
    # LEDGER MOVEMENTS
    # =========================================================================

    def contribute(
        self,
        goal: SavingsGoal,
        amount: Amount,
        reason: Optional[str] = None,
    ) -> SavingsGoal:
        """
        Deposit into a goal or request a withdrawal from it.

        Positive amounts are deposits: committed immediately, labelled with
        `reason` if given, otherwise with the configured deposit label.

        Negative amounts are withdrawal requests: they need a non-empty
        reason, get a challenge by size, and wait in pending_withdrawals.
        The balance does not change until complete_withdrawal().

        Raises:
            ValidationError: zero or non-numeric amount, a reason that is
                too long, or a withdrawal without a reason.
            InternalError: no challenge available for the withdrawal's tier.
        """
        value = to_money(amount)
        if value == 0:
            raise ValidationError.for_field(
                "amount",
                "Amount must not be zero",
                suggested_fix="Enter a positive amount to deposit or a negative one to withdraw",
            )

        reason = (reason or "").strip()
        if len(reason) > REASON_MAX_LENGTH:
            raise ValidationError.for_field(
                "reason",
                f"Reason must be at most {REASON_MAX_LENGTH} characters",
                suggested_fix="Shorten the description",
            )
        now = self._clock()

        if value > 0:
            return self._deposit(goal, value, reason, now)
        return self._request_withdrawal(goal, value, reason, now)

    def _deposit(
        self,
        goal: SavingsGoal,
        value: Decimal,
        reason: str,
        now: datetime,
    ) -> SavingsGoal:
        entry = SavingsTransaction(
            date=now,
            amount=value,
            description=reason or self._settings.deposit_description,
        )
        updated = _rebuild(
            goal,
            current_balance=goal.current_balance + value,
            history=[*goal.history, entry],
        )

        self._emit(AuditEventBuilder.deposit_recorded(
            goal_id=goal.id,
            goal_name=goal.name,
            amount=value,
            profile=goal.profile,
        ))
        return updated

    def _request_withdrawal(
        self,
        goal: SavingsGoal,
        value: Decimal,
        reason: str,
        now: datetime,
    ) -> SavingsGoal:
        if not reason:
            raise ValidationError.for_field(
                "reason",
                "A reason is required for every withdrawal",
                "missing",
                suggested_fix="Describe what the money is needed for",
            )

        tier = tier_for_amount(
            value,
            self._settings.easy_challenge_max,
            self._settings.medium_challenge_max,
        )
        challenge = draw_challenge(tier, self._rng, self._catalog)

        pending = PendingWithdrawal(
            amount=value,
            reason=reason,
            challenge=challenge,
            challenge_tier=tier,
            created_at=now,
        )
        updated = _rebuild(
            goal,
            pending_withdrawals=[*goal.pending_withdrawals, pending],
        )

        logger.debug(
            "withdrawal_requested",
            goal_id=str(goal.id),
            withdrawal_id=str(pending.id),
            tier=tier.value,
        )
        self._emit(AuditEventBuilder.withdrawal_requested(
            goal_id=goal.id,
            goal_name=goal.name,
            withdrawal_id=pending.id,
            amount=value,
            challenge_tier=tier.value,
            profile=goal.profile,
        ))
        return updated

    def complete_withdrawal(
        self,
        goal: SavingsGoal,
        withdrawal_id: UUID,
    ) -> SavingsGoal:
        """
        Mark a withdrawal's challenge as done and commit it.

        The pending entry is removed and its amount appended to the
        history in the same new goal, so it is never in both places.

        Raises:
            NotFoundError: the ID is not pending on this goal (never
                requested, or already completed).
        """
        pending = goal.find_pending(withdrawal_id)
        if pending is None:
            raise NotFoundError(
                f"No pending withdrawal {withdrawal_id} on goal '{goal.name}'"
            )

        entry = SavingsTransaction(
            date=self._clock(),
            amount=pending.amount,
            description=pending.reason,
        )
        updated = _rebuild(
            goal,
            current_balance=goal.current_balance + pending.amount,
            history=[*goal.history, entry],
            pending_withdrawals=[
                pw for pw in goal.pending_withdrawals if pw.id != withdrawal_id
            ],
        )

        self._emit(AuditEventBuilder.withdrawal_completed(
            goal_id=goal.id,
            goal_name=goal.name,
            withdrawal_id=pending.id,
            amount=pending.amount,
            profile=goal.profile,
        ))
        return updated

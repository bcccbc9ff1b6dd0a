"""
Main Orchestrator for Finboard

This module owns the collections the dashboard views render and wires
the pure cores to the audit trail and the active profile:
1. Recurring payments (form → validate → store → project schedule)
2. Savings goals (form → validate → ledger operation → replace goal)

DESIGN DECISION: The cores never own data. The boards hold the lists,
call the cores with values, and replace the stored value with whatever
the core returns. A failed core call leaves the list untouched.

The boards enforce the boundaries:
- Untyped form input is validated before any core call
- Views only ever see the active profile's entities
- Every change is audited; rejected forms are audited too
"""

import random
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional
from uuid import UUID

import structlog

from finboard.audit import AuditLogger, InMemoryAuditStorage
from finboard.config import get_settings
from finboard.errors import NotFoundError, ValidationError
from finboard.models.audit import AuditEventBuilder, AuditEventType
from finboard.models.common import utc_now
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
    PendingWithdrawalView,
    SavingsGoal,
    SavingsTransaction,
)
from finboard.money import Amount, to_money
from finboard.savings import SavingsLedger, round_up_amount, surplus_allocation
from finboard.schedule import monthly_overview, project_schedule
from finboard.validation import (
    parse_contribution_form,
    parse_goal_form,
    parse_recurring_form,
)


logger = structlog.get_logger(__name__)


class _ProfileScoped:
    """Active-profile handling shared by both boards."""

    def __init__(
        self,
        audit_logger: Optional[AuditLogger],
        profile: ProfileType,
    ):
        self._audit_logger = audit_logger
        self._profile = profile

    @property
    def profile(self) -> ProfileType:
        return self._profile

    def switch_profile(self, profile: ProfileType) -> None:
        """Make `profile` the active one. Stored data is not touched."""
        logger.info("profile_switched", old=self._profile.value, new=profile.value)
        self._profile = profile

    def _audit(self, event) -> None:
        if self._audit_logger is not None:
            self._audit_logger.log(event)

    def _validate_form(self, form_name: str, parser: Callable, *args, **kwargs):
        """Run a form parser; rejected input is audited and re-raised."""
        try:
            return parser(*args, **kwargs)
        except ValidationError as e:
            self._audit(AuditEventBuilder.validation_failed(
                form=form_name,
                issues=[issue.model_dump() for issue in e.issues],
                profile=self._profile,
            ))
            raise


class RecurringBoard(_ProfileScoped):
    """
    Owns the recurring payment list.

    Flow:
    1. Form → parse_recurring_form (typed, profile-stamped)
    2. Store → replace or append in the list
    3. Read → schedule(now) projects next due dates on demand

    Next due dates are never stored; every read projects them against
    the "now" it is given.
    """

    def __init__(
        self,
        transactions: Optional[list[RecurringTransaction]] = None,
        audit_logger: Optional[AuditLogger] = None,
        profile: ProfileType = ProfileType.PRIVATE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(audit_logger, profile)
        self._transactions: list[RecurringTransaction] = list(transactions or [])
        self._clock = clock or utc_now

    @property
    def transactions(self) -> list[RecurringTransaction]:
        """The active profile's recurring transactions, in insertion order."""
        return [t for t in self._transactions if t.profile == self._profile]

    def get(self, transaction_id: UUID) -> RecurringTransaction:
        """Look up one of the active profile's transactions."""
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        raise NotFoundError(f"Recurring transaction not found: {transaction_id}")

    def add(self, transaction: RecurringTransaction) -> RecurringTransaction:
        """Store an already-typed transaction."""
        self._transactions.append(transaction)
        self._audit_change(AuditEventType.RECURRING_CREATED, transaction)
        return transaction

    def create_from_form(self, form: Mapping[str, Any]) -> RecurringTransaction:
        """Validate the recurring payment form and store the result under the active profile."""
        transaction = self._validate_form(
            "recurring", parse_recurring_form, form, self._profile
        )
        return self.add(transaction)

    def update_from_form(
        self,
        transaction_id: UUID,
        form: Mapping[str, Any],
    ) -> RecurringTransaction:
        """
        Replace an existing transaction with the edited form content.

        The ID and owning profile are kept.
        """
        existing = self.get(transaction_id)
        updated = self._validate_form(
            "recurring",
            parse_recurring_form,
            form,
            existing.profile,
            existing_id=existing.id,
        )
        self._replace(updated)
        self._audit_change(AuditEventType.RECURRING_UPDATED, updated)
        return updated

    def delete(self, transaction_id: UUID) -> RecurringTransaction:
        existing = self.get(transaction_id)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        self._audit_change(AuditEventType.RECURRING_DELETED, existing)
        return existing

    def schedule(self, now: Optional[date] = None) -> list[ScheduledTransaction]:
        """Active profile's transactions with next due dates, soonest first."""
        return project_schedule(self.transactions, now if now is not None else self._clock())

    def overview(self) -> MonthlyOverview:
        """Monthly-equivalent income, expenses and net for the active profile."""
        return monthly_overview(self.transactions)

    def _replace(self, transaction: RecurringTransaction) -> None:
        self._transactions = [
            transaction if t.id == transaction.id else t for t in self._transactions
        ]

    def _audit_change(
        self,
        event_type: AuditEventType,
        transaction: RecurringTransaction,
    ) -> None:
        self._audit(AuditEventBuilder.recurring_changed(
            event_type=event_type,
            transaction_id=transaction.id,
            description=transaction.description,
            amount=transaction.amount,
            frequency=transaction.frequency.value,
            profile=transaction.profile,
        ))


class SavingsBoard(_ProfileScoped):
    """
    Owns the savings goals and the saving automations.

    Flow for a contribution:
    1. Form → parse_contribution_form
    2. Ledger → contribute (deposit committed, or withdrawal pending)
    3. Replace → the returned goal replaces the stored one

    CRITICAL: Withdrawals only reach the balance through
    complete_withdrawal(). The board never edits a goal itself.
    """

    def __init__(
        self,
        goals: Optional[list[SavingsGoal]] = None,
        ledger: Optional[SavingsLedger] = None,
        audit_logger: Optional[AuditLogger] = None,
        profile: ProfileType = ProfileType.PRIVATE,
    ):
        super().__init__(audit_logger, profile)
        self._goals: list[SavingsGoal] = list(goals or [])
        self._ledger = ledger or SavingsLedger(audit_sink=audit_logger)
        self._rules: list[AutomationRule] = []

    @property
    def goals(self) -> list[SavingsGoal]:
        """The active profile's goals, in creation order."""
        return [g for g in self._goals if g.profile == self._profile]

    @property
    def automations(self) -> list[AutomationRule]:
        return [r for r in self._rules if r.profile == self._profile]

    def get_goal(self, goal_id: UUID) -> SavingsGoal:
        """Look up one of the active profile's goals."""
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        raise NotFoundError(f"Savings goal not found: {goal_id}")

    # =========================================================================
    # GOAL CRUD
    # =========================================================================

    def create_goal(self, form: Mapping[str, Any]) -> SavingsGoal:
        """Create an empty goal for the active profile from the goal form."""
        parsed = self._validate_form("savings_goal", parse_goal_form, form)
        goal = self._ledger.create_goal(
            name=parsed.name,
            target_amount=parsed.target_amount,
            target_date=parsed.target_date,
            profile=self._profile,
        )
        self._goals.append(goal)
        return goal

    def update_goal(self, goal_id: UUID, form: Mapping[str, Any]) -> SavingsGoal:
        """Rename a goal or change its target; the ledger data is kept."""
        goal = self.get_goal(goal_id)
        parsed = self._validate_form("savings_goal", parse_goal_form, form)
        updated = self._ledger.update_goal(
            goal,
            name=parsed.name,
            target_amount=parsed.target_amount,
            target_date=parsed.target_date,
        )
        self._replace(updated)
        return updated

    def delete_goal(self, goal_id: UUID) -> SavingsGoal:
        """
        Remove a goal together with its pending withdrawals.

        Pending withdrawals are dropped without being completed. Their
        IDs are recorded on the audit event so the loss is traceable.
        Automations pointing at the goal are removed as well.
        """
        goal = self.get_goal(goal_id)
        abandoned = [pw.id for pw in goal.pending_withdrawals]

        self._goals = [g for g in self._goals if g.id != goal_id]
        self._rules = [r for r in self._rules if r.goal_id != goal_id]

        if abandoned:
            logger.warning(
                "pending_withdrawals_abandoned",
                goal_id=str(goal_id),
                count=len(abandoned),
            )
        self._audit(AuditEventBuilder.goal_deleted(
            goal_id=goal.id,
            name=goal.name,
            abandoned_withdrawals=abandoned,
            profile=goal.profile,
        ))
        return goal

    # =========================================================================
    # LEDGER MOVEMENTS
    # =========================================================================

    def contribute(self, goal_id: UUID, form: Mapping[str, Any]) -> SavingsGoal:
        """
        Deposit into or request a withdrawal from a goal.

        The form's amount sign decides which; a withdrawal needs a reason.
        """
        goal = self.get_goal(goal_id)
        parsed = self._validate_form("contribution", parse_contribution_form, form)
        try:
            updated = self._ledger.contribute(goal, parsed.amount, parsed.reason)
        except ValidationError as e:
            self._audit(AuditEventBuilder.validation_failed(
                form="contribution",
                issues=[issue.model_dump() for issue in e.issues],
                profile=goal.profile,
            ))
            raise
        self._replace(updated)
        return updated

    def complete_withdrawal(self, goal_id: UUID, withdrawal_id: UUID) -> SavingsGoal:
        """Commit a pending withdrawal after its challenge was done."""
        goal = self.get_goal(goal_id)
        updated = self._ledger.complete_withdrawal(goal, withdrawal_id)
        self._replace(updated)
        return updated

    def pending_withdrawals(self) -> list[PendingWithdrawalView]:
        """All pending withdrawals of the active profile, oldest request first."""
        queue = [
            PendingWithdrawalView(goal_id=goal.id, goal_name=goal.name, withdrawal=pw)
            for goal in self.goals
            for pw in goal.pending_withdrawals
        ]
        queue.sort(key=lambda view: view.withdrawal.created_at)
        return queue

    # =========================================================================
    # AUTOMATIONS
    # =========================================================================

    def configure_automation(self, rule: AutomationRule) -> AutomationRule:
        """
        Store a saving automation for one of the active profile's goals.

        A goal has at most one rule per kind; configuring again replaces it.
        """
        goal = self.get_goal(rule.goal_id)
        rule = rule.model_copy(update={"profile": goal.profile})
        self._rules = [
            r for r in self._rules
            if not (r.goal_id == rule.goal_id and r.kind == rule.kind)
        ]
        self._rules.append(rule)

        self._audit(AuditEventBuilder.automation_configured(
            rule_id=rule.id,
            kind=rule.kind.value,
            goal_id=rule.goal_id,
            profile=rule.profile,
        ))
        return rule

    def apply_round_up(self, expense: Amount) -> list[SavingsGoal]:
        """
        Book the spare change of one expense into every goal with a round-up rule.

        Returns the goals that received a deposit. Every spare is computed
        before the first one is booked, so invalid input books nothing.
        """
        expense = to_money(expense, "expense")
        planned = [
            (rule.goal_id, round_up_amount(expense, rule.round_to))
            for rule in self._rules_of(AutomationKind.ROUND_UP)
        ]
        return [
            self._book(goal_id, spare, "Aufrundung")
            for goal_id, spare in planned
            if spare > 0
        ]

    def apply_surplus(self, monthly_net: Amount) -> list[SavingsGoal]:
        """
        Book each surplus rule's share of the monthly net into its goal.

        `monthly_net` is usually RecurringBoard.overview().net. A deficit
        books nothing.
        """
        planned = [
            (rule.goal_id, surplus_allocation(monthly_net, rule.percentage))
            for rule in self._rules_of(AutomationKind.SURPLUS)
        ]
        return [
            self._book(goal_id, share, "Überschuss")
            for goal_id, share in planned
            if share > 0
        ]

    def _rules_of(self, kind: AutomationKind) -> list[AutomationRule]:
        return [r for r in self.automations if r.kind == kind]

    def _book(self, goal_id: UUID, amount: Decimal, reason: str) -> SavingsGoal:
        updated = self._ledger.contribute(self.get_goal(goal_id), amount, reason)
        self._replace(updated)
        return updated

    def _replace(self, goal: SavingsGoal) -> None:
        self._goals = [goal if g.id == goal.id else g for g in self._goals]


# =============================================================================
# DEMO DATA
# =============================================================================

def demo_recurring_transactions() -> list[RecurringTransaction]:
    """The recurring payments the dashboard shows on first start."""
    rows = [
        ("Miete", "Wohnen", "-1200", Frequency.MONTHLY, date(2024, 1, 1), ProfileType.PRIVATE),
        ("Gehalt", "Einkommen", "3500", Frequency.MONTHLY, date(2024, 1, 15), ProfileType.PRIVATE),
        ("Netflix", "Unterhaltung", "-15.99", Frequency.MONTHLY, date(2024, 1, 20), ProfileType.PRIVATE),
        ("Versicherungsbeitrag", "Versicherungen", "-150", Frequency.QUARTERLY, date(2024, 1, 1), ProfileType.PRIVATE),
        ("GEZ", "Gebühren", "-55.08", Frequency.QUARTERLY, date(2024, 2, 15), ProfileType.PRIVATE),
        ("AWS", "Software", "-250.50", Frequency.MONTHLY, date(2024, 1, 5), ProfileType.BUSINESS),
        ("DATEV", "Software", "-89.90", Frequency.ANNUAL, date(2024, 3, 1), ProfileType.BUSINESS),
    ]
    return [
        RecurringTransaction(
            description=description,
            category=category,
            amount=Decimal(amount),
            frequency=frequency,
            start_date=start_date,
            profile=profile,
        )
        for description, category, amount, frequency, start_date, profile in rows
    ]


def demo_savings_goals(now: Optional[datetime] = None) -> list[SavingsGoal]:
    """The savings goals the dashboard shows on first start, each with one initial deposit."""
    now = now or utc_now()
    rows = [
        ("Urlaub auf Hawaii", "2500", "5000", date(2025, 12, 31), ProfileType.PRIVATE),
        ("Neuer Laptop", "800", "1500", date(2024, 11, 30), ProfileType.PRIVATE),
        ("Betriebliche Rücklagen", "7500", "20000", date(2026, 6, 30), ProfileType.BUSINESS),
        ("Anzahlung Geschäftsauto", "4500", "10000", date(2025, 8, 31), ProfileType.BUSINESS),
    ]
    goals = []
    for offset, (name, current, target, target_date, profile) in enumerate(rows):
        goals.append(SavingsGoal(
            name=name,
            target_amount=Decimal(target),
            target_date=target_date,
            profile=profile,
            current_balance=Decimal(current),
            history=[SavingsTransaction(
                date=now - timedelta(seconds=len(rows) - offset),
                amount=Decimal(current),
                description="Ersteinzahlung",
            )],
        ))
    return goals


def create_app_components(
    with_demo_data: bool = True,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> tuple[RecurringBoard, SavingsBoard, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        with_demo_data: Seed the boards with the first-start data.
                        Set to False for an empty dashboard.
        rng: Random source for challenge selection (seed it for reproducible runs).
        clock: Source of "now" for ledger entries and schedules.

    Returns:
        (recurring_board, savings_board, audit_logger)
    """
    settings = get_settings().app
    clock = clock or utc_now

    audit_logger = AuditLogger(InMemoryAuditStorage(), user=settings.audit_user)
    ledger = SavingsLedger(audit_sink=audit_logger, rng=rng, clock=clock)

    recurring_board = RecurringBoard(
        transactions=demo_recurring_transactions() if with_demo_data else None,
        audit_logger=audit_logger,
        profile=settings.default_profile,
        clock=clock,
    )
    savings_board = SavingsBoard(
        goals=demo_savings_goals(clock()) if with_demo_data else None,
        ledger=ledger,
        audit_logger=audit_logger,
        profile=settings.default_profile,
    )

    logger.info(
        "app_components_created",
        environment=settings.app_environment,
        demo_data=with_demo_data,
        profile=settings.default_profile.value,
    )
    return recurring_board, savings_board, audit_logger

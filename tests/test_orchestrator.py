"""Integration tests for the boards and the component factory."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finboard.errors import NotFoundError, ValidationError
from finboard.models import (
    AuditEventType,
    AuditSeverity,
    AutomationKind,
    AutomationRule,
    Frequency,
    ProfileType,
)
from finboard.orchestrator import (
    RecurringBoard,
    SavingsBoard,
    create_app_components,
    demo_recurring_transactions,
    demo_savings_goals,
)


def _types(storage):
    return [e.event_type for e in reversed(storage.get_recent_events())]


@pytest.fixture
def recurring_board(audit_logger, clock):
    return RecurringBoard(
        transactions=demo_recurring_transactions(),
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture
def savings_board(ledger, audit_logger):
    return SavingsBoard(ledger=ledger, audit_logger=audit_logger)


class TestRecurringBoard:
    """Tests for RecurringBoard."""

    def test_lists_active_profile_only(self, recurring_board):
        """Test that business payments are hidden in the private profile."""
        descriptions = {t.description for t in recurring_board.transactions}
        assert "Miete" in descriptions
        assert "AWS" not in descriptions

        recurring_board.switch_profile(ProfileType.BUSINESS)
        assert {t.description for t in recurring_board.transactions} == {"AWS", "DATEV"}

    def test_create_from_form_uses_active_profile(self, recurring_board, audit_storage):
        """Test that new payments belong to the active profile and are audited."""
        recurring_board.switch_profile(ProfileType.BUSINESS)
        created = recurring_board.create_from_form({
            "description": "Steuerberater",
            "amount": "-300",
            "frequency": "Quartalsweise",
            "startDate": "2024-03-31",
        })
        assert created.profile == ProfileType.BUSINESS
        assert created in recurring_board.transactions
        assert _types(audit_storage) == [AuditEventType.RECURRING_CREATED]

    def test_invalid_form_is_audited_and_not_stored(self, recurring_board, audit_storage):
        """Test that rejected input leaves the list unchanged."""
        before = list(recurring_board.transactions)
        with pytest.raises(ValidationError):
            recurring_board.create_from_form({"description": "", "amount": "0"})

        assert recurring_board.transactions == before
        [event] = audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["form"] == "recurring"

    def test_update_keeps_id_and_profile(self, recurring_board):
        """Test editing a payment."""
        rent = next(t for t in recurring_board.transactions if t.description == "Miete")
        updated = recurring_board.update_from_form(rent.id, {
            "description": "Miete",
            "amount": "-1.250,00",
            "frequency": "Monatlich",
            "startDate": "2024-01-01",
        })
        assert updated.id == rent.id
        assert recurring_board.get(rent.id).amount == Decimal("-1250.00")

    def test_delete(self, recurring_board, audit_storage):
        """Test deleting a payment."""
        netflix = next(t for t in recurring_board.transactions if t.description == "Netflix")
        recurring_board.delete(netflix.id)

        with pytest.raises(NotFoundError):
            recurring_board.get(netflix.id)
        assert _types(audit_storage) == [AuditEventType.RECURRING_DELETED]

    def test_other_profiles_payment_is_not_found(self, recurring_board):
        """Test that business payments cannot be edited from the private profile."""
        recurring_board.switch_profile(ProfileType.BUSINESS)
        aws = next(t for t in recurring_board.transactions if t.description == "AWS")
        recurring_board.switch_profile(ProfileType.PRIVATE)

        with pytest.raises(NotFoundError):
            recurring_board.get(aws.id)
        with pytest.raises(NotFoundError):
            recurring_board.delete(aws.id)

    def test_delete_unknown_is_not_found(self, recurring_board):
        """Test that an unknown ID is reported."""
        with pytest.raises(NotFoundError):
            recurring_board.delete(uuid4())

    def test_schedule_uses_clock(self, recurring_board):
        """Test that the schedule is projected against the board's clock (2024-06-01)."""
        scheduled = recurring_board.schedule()
        assert all(s.next_due_date > date(2024, 6, 1) for s in scheduled)
        assert scheduled[0].transaction.description == "Gehalt"
        assert scheduled[0].next_due_date == date(2024, 6, 15)

    def test_schedule_with_explicit_now(self, recurring_board):
        """Test projecting against another date."""
        scheduled = recurring_board.schedule(date(2024, 1, 10))
        assert scheduled[0].next_due_date == date(2024, 1, 15)

    def test_overview(self, recurring_board):
        """Test the private profile's monthly figures."""
        overview = recurring_board.overview()
        assert overview.income == Decimal("3500")
        assert overview.expenses == Decimal("-1284.35")


class TestSavingsBoard:
    """Tests for SavingsBoard."""

    def _create(self, board, name="Urlaub auf Hawaii", target="5000"):
        return board.create_goal({"name": name, "target": target, "targetDate": "2025-12-31"})

    def test_create_goal(self, savings_board):
        """Test creating a goal from the form."""
        goal = self._create(savings_board)
        assert savings_board.goals == [goal]
        assert goal.profile == ProfileType.PRIVATE

    def test_goals_filtered_by_profile(self, savings_board):
        """Test that goals are shown per profile."""
        self._create(savings_board)
        savings_board.switch_profile(ProfileType.BUSINESS)
        assert savings_board.goals == []

    def test_contribute_replaces_goal(self, savings_board):
        """Test that the stored goal is replaced by the ledger result."""
        goal = self._create(savings_board)
        savings_board.contribute(goal.id, {"amount": "2.500,00", "reason": "Ersteinzahlung"})
        assert savings_board.get_goal(goal.id).current_balance == Decimal("2500.00")

    def test_withdrawal_without_reason_is_audited(self, savings_board, audit_storage):
        """Test that the ledger's rejection is recorded as a failed form."""
        goal = self._create(savings_board)
        with pytest.raises(ValidationError):
            savings_board.contribute(goal.id, {"amount": "-20"})

        event = audit_storage.get_recent_events()[0]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["issues"][0]["field"] == "reason"
        assert savings_board.get_goal(goal.id).pending_withdrawals == []

    def test_overlong_reason_is_audited(self, savings_board, audit_storage):
        """Test that a reason over the length limit is a recorded form error."""
        goal = self._create(savings_board)
        with pytest.raises(ValidationError):
            savings_board.contribute(goal.id, {"amount": "-10", "reason": "x" * 501})

        event = audit_storage.get_recent_events()[0]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["issues"][0]["field"] == "reason"
        assert savings_board.get_goal(goal.id).pending_withdrawals == []

    def test_other_profiles_goals_are_not_found(self, savings_board):
        """Test that a business goal cannot be touched from the private profile."""
        savings_board.switch_profile(ProfileType.BUSINESS)
        goal = self._create(savings_board, "Neue Kamera", "2000")
        savings_board.switch_profile(ProfileType.PRIVATE)

        with pytest.raises(NotFoundError):
            savings_board.get_goal(goal.id)
        with pytest.raises(NotFoundError):
            savings_board.contribute(goal.id, {"amount": "50"})
        with pytest.raises(NotFoundError):
            savings_board.delete_goal(goal.id)

        savings_board.switch_profile(ProfileType.BUSINESS)
        assert savings_board.get_goal(goal.id).current_balance == Decimal("0")

    def test_pending_queue_oldest_first(self, savings_board, clock):
        """Test the cross-goal pending withdrawal list."""
        trip = self._create(savings_board)
        laptop = self._create(savings_board, "Neuer Laptop", "1500")

        savings_board.contribute(laptop.id, {"amount": "-100", "reason": "Tasche"})
        clock.tick(minutes=5)
        savings_board.contribute(trip.id, {"amount": "-30", "reason": "Reiseführer"})

        queue = savings_board.pending_withdrawals()
        assert [view.goal_name for view in queue] == ["Neuer Laptop", "Urlaub auf Hawaii"]
        assert queue[0].goal_id == laptop.id
        assert queue[0].withdrawal.reason == "Tasche"

    def test_complete_withdrawal(self, savings_board):
        """Test completing a withdrawal through the board."""
        goal = self._create(savings_board)
        savings_board.contribute(goal.id, {"amount": "500", "reason": ""})
        goal = savings_board.contribute(goal.id, {"amount": "-200", "reason": "Flug"})

        goal = savings_board.complete_withdrawal(goal.id, goal.pending_withdrawals[0].id)

        assert goal.current_balance == Decimal("300")
        assert savings_board.pending_withdrawals() == []

    def test_update_goal(self, savings_board):
        """Test renaming through the board."""
        goal = self._create(savings_board)
        savings_board.update_goal(goal.id, {"name": "Urlaub auf Maui", "target": "6000", "targetDate": "2026-06-30"})
        stored = savings_board.get_goal(goal.id)
        assert stored.name == "Urlaub auf Maui"
        assert stored.target_date == date(2026, 6, 30)

    def test_delete_goal_reports_abandoned_withdrawals(self, savings_board, audit_storage):
        """Test that pending withdrawals are dropped and recorded."""
        goal = self._create(savings_board)
        goal = savings_board.contribute(goal.id, {"amount": "-40", "reason": "Kino"})
        withdrawal_id = goal.pending_withdrawals[0].id

        savings_board.delete_goal(goal.id)

        with pytest.raises(NotFoundError):
            savings_board.get_goal(goal.id)
        assert savings_board.pending_withdrawals() == []
        event = audit_storage.get_recent_events()[0]
        assert event.event_type == AuditEventType.GOAL_DELETED
        assert event.severity == AuditSeverity.WARNING
        assert event.details["abandoned_withdrawals"] == [str(withdrawal_id)]

    def test_invalid_goal_form(self, savings_board):
        """Test that a broken goal form creates nothing."""
        with pytest.raises(ValidationError):
            savings_board.create_goal({"name": "", "target": "-1", "targetDate": "morgen"})
        assert savings_board.goals == []


class TestAutomations:
    """Tests for saving automations on the board."""

    def test_configure_is_audited(self, savings_board, audit_storage):
        """Test configuring a round-up rule."""
        goal = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        rule = savings_board.configure_automation(AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=goal.id))

        assert savings_board.automations == [rule]
        event = audit_storage.get_recent_events()[0]
        assert event.event_type == AuditEventType.AUTOMATION_CONFIGURED
        assert event.details["kind"] == "round-up"

    def test_configure_replaces_rule_of_same_kind(self, savings_board):
        """Test that a goal has one rule per kind."""
        goal = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.SURPLUS, goal_id=goal.id, percentage=20))
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.SURPLUS, goal_id=goal.id, percentage=30))
        assert [r.percentage for r in savings_board.automations] == [30]

    def test_configure_for_unknown_goal(self, savings_board):
        """Test that rules need an existing goal."""
        with pytest.raises(NotFoundError):
            savings_board.configure_automation(AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=uuid4()))

    def test_apply_round_up_books_deposit(self, savings_board):
        """Test that spare change is deposited."""
        goal = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=goal.id))

        [credited] = savings_board.apply_round_up(Decimal("-3.20"))

        assert credited.current_balance == Decimal("0.80")
        assert credited.history[0].description == "Aufrundung"
        assert savings_board.apply_round_up(Decimal("-4.00")) == []

    def test_apply_round_up_sub_cent_expense_books_nothing(self, savings_board):
        """Test that an invalid expense leaves every goal untouched."""
        first = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        second = savings_board.create_goal({"name": "Fahrrad", "target": "800", "targetDate": "2025-01-01"})
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=first.id))
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=second.id))

        with pytest.raises(ValidationError):
            savings_board.apply_round_up(Decimal("-3.205"))

        assert [g.current_balance for g in savings_board.goals] == [Decimal("0"), Decimal("0")]

    def test_apply_round_up_to_custom_increment(self, savings_board):
        """Test rounding up to the next 5 euros."""
        goal = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        savings_board.configure_automation(
            AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=goal.id, round_to=Decimal("5"))
        )
        [credited] = savings_board.apply_round_up(Decimal("-12.30"))
        assert credited.current_balance == Decimal("2.70")

    def test_apply_surplus_from_overview(self, savings_board, recurring_board):
        """Test saving a share of the monthly surplus."""
        goal = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.SURPLUS, goal_id=goal.id, percentage=20))

        [credited] = savings_board.apply_surplus(recurring_board.overview().net)

        assert credited.current_balance == Decimal("443.13")

    def test_deleting_goal_removes_its_rules(self, savings_board):
        """Test that rules do not outlive their goal."""
        goal = savings_board.create_goal({"name": "Notgroschen", "target": "1000", "targetDate": "2025-01-01"})
        savings_board.configure_automation(AutomationRule(kind=AutomationKind.ROUND_UP, goal_id=goal.id))
        savings_board.delete_goal(goal.id)
        assert savings_board.automations == []


class TestDemoData:
    """Tests for the first-start data."""

    def test_demo_goals_are_balanced(self):
        """Test that every demo goal satisfies the ledger invariant."""
        for goal in demo_savings_goals():
            assert goal.current_balance == sum(e.amount for e in goal.history)
            assert goal.history[0].description == "Ersteinzahlung"

    def test_demo_recurring_covers_both_profiles(self):
        """Test the demo payments."""
        transactions = demo_recurring_transactions()
        assert {t.profile for t in transactions} == {ProfileType.PRIVATE, ProfileType.BUSINESS}
        datev = next(t for t in transactions if t.description == "DATEV")
        assert datev.frequency == Frequency.ANNUAL


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_components_share_audit_trail(self, clock, rng):
        """Test that both boards write to the returned logger."""
        recurring_board, savings_board, audit_logger = create_app_components(rng=rng, clock=clock)

        assert len(savings_board.goals) == 2
        assert len(recurring_board.transactions) == 5

        goal = savings_board.goals[0]
        savings_board.contribute(goal.id, {"amount": "-500", "reason": "Urlaub"})
        events = audit_logger.recent()
        assert events[0].event_type == AuditEventType.WITHDRAWAL_REQUESTED

    def test_without_demo_data(self, clock):
        """Test an empty dashboard."""
        recurring_board, savings_board, _ = create_app_components(with_demo_data=False, clock=clock)
        assert recurring_board.transactions == []
        assert savings_board.goals == []

"""
Recurring Schedule Projector

Computes when a recurring transaction is next due and what it costs
per month on average.

DESIGN DECISION: "now" is always a parameter. Nothing in this module
reads the clock, so every projection is reproducible from its inputs.

Dates advance with calendar arithmetic (dateutil's relativedelta), not
fixed-length periods: Jan 31 + 1 month is Feb 28/29, Feb 29 + 1 year is
Feb 28. Each step starts from the previous result, so a monthly schedule
anchored on Jan 31 continues on the 28th once it has passed February.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from dateutil.relativedelta import relativedelta

from finboard.errors import ValidationError
from finboard.models.recurring import (
    Frequency,
    MonthlyOverview,
    RecurringTransaction,
    ScheduledTransaction,
)
from finboard.money import Amount, to_decimal


PERIODS: dict[Frequency, relativedelta] = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.SEMI_ANNUAL: relativedelta(months=6),
    Frequency.ANNUAL: relativedelta(years=1),
}

# Average days per month (365.25 / 12, rounded as the dashboard shows it)
AVERAGE_DAYS_PER_MONTH = Decimal("30.44")

MONTHLY_RATIOS: dict[Frequency, tuple[Decimal, Decimal]] = {
    Frequency.DAILY: (AVERAGE_DAYS_PER_MONTH, Decimal(1)),
    Frequency.WEEKLY: (Decimal(52), Decimal(12)),
    Frequency.MONTHLY: (Decimal(1), Decimal(1)),
    Frequency.QUARTERLY: (Decimal(1), Decimal(3)),
    Frequency.SEMI_ANNUAL: (Decimal(1), Decimal(6)),
    Frequency.ANNUAL: (Decimal(1), Decimal(12)),
}


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def advance(current: date, frequency: Frequency) -> date:
    """Move a date forward by exactly one period of `frequency`."""
    return current + PERIODS[Frequency(frequency)]


def next_due_date(
    start_date: date,
    frequency: Frequency,
    now: date,
) -> date:
    """
    First occurrence of a schedule that lies strictly after `now`.

    If the schedule has not started yet, its start date is returned
    unchanged. An occurrence falling on `now` itself counts as already due.

    Args:
        start_date: Anchor date of the schedule
        frequency: Period between occurrences
        now: Evaluation time (a datetime is reduced to its date)

    Returns:
        A date strictly greater than `now`.
    """
    start_date = _as_date(start_date)
    now = _as_date(now)

    next_date = start_date
    while next_date <= now:
        next_date = advance(next_date, frequency)
    return next_date


def occurrences_between(
    start_date: date,
    frequency: Frequency,
    window_start: date,
    window_end: date,
) -> list[date]:
    """
    All occurrences of a schedule inside [window_start, window_end].

    Used by the calendar view and to describe upcoming payments to the
    cash-flow forecast.
    """
    start_date = _as_date(start_date)
    window_start = _as_date(window_start)
    window_end = _as_date(window_end)

    if window_end < window_start:
        raise ValidationError.for_field(
            "window_end",
            "Window end cannot be before window start",
            "inconsistent",
        )

    occurrences = []
    current = start_date
    while current <= window_end:
        if current >= window_start:
            occurrences.append(current)
        current = advance(current, frequency)
    return occurrences


def monthly_equivalent(amount: Amount, frequency: Frequency) -> Decimal:
    """
    Normalize a periodic amount to its average value per month.

    Daily x 30.44, Weekly x 52/12, Monthly x 1, Quarterly / 3,
    SemiAnnual / 6, Annual / 12. The sign is preserved.

    Reporting only: ledger balances always use the exact original amounts.

    Raises:
        ValidationError: if `amount` is not a finite number.
    """
    value = to_decimal(amount)

    multiplier, divisor = MONTHLY_RATIOS[Frequency(frequency)]
    return value * multiplier / divisor


def monthly_overview(transactions: Iterable[RecurringTransaction]) -> MonthlyOverview:
    """
    Sum monthly equivalents into income, expenses and net.

    Expenses are reported as a negative figure so that net = income + expenses.
    """
    income = Decimal("0")
    expenses = Decimal("0")

    for transaction in transactions:
        monthly = monthly_equivalent(transaction.amount, transaction.frequency)
        if monthly > 0:
            income += monthly
        else:
            expenses += monthly

    return MonthlyOverview(income=income, expenses=expenses)


def project_schedule(
    transactions: Iterable[RecurringTransaction],
    now: date,
) -> list[ScheduledTransaction]:
    """
    Annotate transactions with their next due date, soonest first.

    Transactions due on the same day keep their input order.
    """
    scheduled = [
        ScheduledTransaction(
            transaction=transaction,
            next_due_date=next_due_date(transaction.start_date, transaction.frequency, now),
            monthly_amount=monthly_equivalent(transaction.amount, transaction.frequency),
        )
        for transaction in transactions
    ]
    return sorted(scheduled, key=lambda s: s.next_due_date)

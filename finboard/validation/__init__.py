"""Validation package."""

from finboard.validation.forms import (
    ContributionForm,
    GoalForm,
    describe_issues,
    parse_amount,
    parse_contribution_form,
    parse_date,
    parse_frequency,
    parse_goal_form,
    parse_recurring_form,
)

__all__ = [
    "ContributionForm",
    "GoalForm",
    "describe_issues",
    "parse_amount",
    "parse_contribution_form",
    "parse_date",
    "parse_frequency",
    "parse_goal_form",
    "parse_recurring_form",
]

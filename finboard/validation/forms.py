"""
Form Input Validation

DESIGN DECISION: The dashboard's forms deliver untyped strings. They are
coerced into typed values here, at the boundary, before any core
operation sees them.

Every field is checked and all problems are reported together, so the
user can fix a form in one pass instead of one error at a time.

IMPORTANT: Validation NEVER silently fixes input. Whitespace is trimmed
and German number notation is understood, nothing else is guessed.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from finboard.errors import ValidationError
from finboard.models.common import ValidationIssue
from finboard.models.profile import ProfileType
from finboard.models.recurring import Frequency, RecurringTransaction
from finboard.money import to_money


_GERMAN_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")


class GoalForm(BaseModel):
    """Typed content of the create/edit savings goal form."""
    model_config = ConfigDict(frozen=True)

    name: str
    target_amount: Decimal
    target_date: date


class ContributionForm(BaseModel):
    """Typed content of the deposit/withdraw form."""
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    reason: Optional[str] = None

    @property
    def is_withdrawal(self) -> bool:
        return self.amount < 0


def parse_amount(raw: Any, field: str = "amount") -> Decimal:
    """
    Parse an amount typed by a user.

    Accepts "1234.56", "1.234,56", "-15,99" and a trailing "€".

    Raises:
        ValidationError: if the text is not a number.
    """
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        return to_money(raw, field)

    text = str(raw or "").strip().replace("€", "").replace(" ", "")
    if not text:
        raise ValidationError.for_field(field, "Amount is required", "missing")

    if "," in text and "." in text:
        # whichever separator comes last is the decimal point
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    return to_money(text, field)


def parse_date(raw: Any, field: str = "date") -> date:
    """
    Parse a date from an ISO date input ("2025-12-31") or German notation ("31.12.2025").
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw or "").strip()
    if not text:
        raise ValidationError.for_field(field, "Date is required", "missing")

    match = _GERMAN_DATE.match(text)
    try:
        if match:
            day, month, year = (int(part) for part in match.groups())
            return date(year, month, day)
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError.for_field(
            field,
            f"Not a valid date: {text!r}",
            "invalid_format",
            suggested_fix="Use the format YYYY-MM-DD or DD.MM.YYYY",
        )


def parse_frequency(raw: Any, field: str = "frequency") -> Frequency:
    """Parse a frequency by its label ("Monatlich") or member name ("monthly")."""
    if isinstance(raw, Frequency):
        return raw

    text = str(raw or "").strip()
    if not text:
        raise ValidationError.for_field(field, "Frequency is required", "missing")

    for frequency in Frequency:
        if text == frequency.value or text.upper() == frequency.name:
            return frequency

    raise ValidationError.for_field(
        field,
        f"Unknown frequency: {text!r}",
        "invalid_value",
        suggested_fix="Choose one of: " + ", ".join(f.value for f in Frequency),
    )


def _required_text(form: Mapping[str, Any], field: str) -> str:
    text = str(form.get(field) or "").strip()
    if not text:
        raise ValidationError.for_field(field, f"{field.replace('_', ' ').capitalize()} is required", "missing")
    return text


class _IssueCollector:
    """Runs field parsers and gathers their issues instead of stopping at the first."""

    def __init__(self):
        self.issues: list[ValidationIssue] = []

    def run(self, parser, *args, **kwargs):
        try:
            return parser(*args, **kwargs)
        except ValidationError as e:
            self.issues.extend(e.issues)
            return None

    def raise_if_any(self, message: str) -> None:
        if self.issues:
            raise ValidationError(message, issues=self.issues)


def parse_recurring_form(
    form: Mapping[str, Any],
    profile: ProfileType,
    existing_id: Optional[UUID] = None,
) -> RecurringTransaction:
    """
    Build a RecurringTransaction from the recurring payment form.

    Expected fields: description, amount, category (optional),
    frequency, startDate (or start_date).

    Args:
        form: Raw form fields
        profile: Active profile the transaction belongs to
        existing_id: ID to keep when the form edits an existing entry
    """
    collector = _IssueCollector()

    description = collector.run(_required_text, form, "description")
    amount = collector.run(parse_amount, form.get("amount"), "amount")
    frequency = collector.run(parse_frequency, form.get("frequency"), "frequency")
    start_date = collector.run(
        parse_date, form.get("startDate", form.get("start_date")), "start_date"
    )
    category = str(form.get("category") or "").strip() or "Sonstiges"

    if amount is not None and amount == 0:
        collector.issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Amount must not be zero",
            suggested_fix="Use a positive amount for income and a negative one for expenses",
        ))

    collector.raise_if_any("Recurring transaction form is invalid")

    data = {
        "description": description,
        "amount": amount,
        "category": category,
        "frequency": frequency,
        "start_date": start_date,
        "profile": profile,
    }
    if existing_id is not None:
        data["id"] = existing_id

    try:
        return RecurringTransaction(**data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, "Recurring transaction form is invalid") from e


def parse_goal_form(form: Mapping[str, Any]) -> GoalForm:
    """
    Read the savings goal form (name, target, targetDate).
    """
    collector = _IssueCollector()

    name = collector.run(_required_text, form, "name")
    target = collector.run(parse_amount, form.get("target", form.get("target_amount")), "target_amount")
    target_date = collector.run(
        parse_date, form.get("targetDate", form.get("target_date")), "target_date"
    )

    if target is not None and target <= 0:
        collector.issues.append(ValidationIssue(
            field="target_amount",
            issue_type="invalid_value",
            message="Target amount must be greater than zero",
        ))

    collector.raise_if_any("Savings goal form is invalid")
    return GoalForm(name=name, target_amount=target, target_date=target_date)


def parse_contribution_form(form: Mapping[str, Any]) -> ContributionForm:
    """
    Read the deposit/withdraw form (amount, reason).

    Only the shape is checked here. Whether a withdrawal has a reason is
    the ledger's rule and is enforced there.
    """
    amount = parse_amount(form.get("amount"), "amount")
    reason = str(form.get("reason") or "").strip() or None
    return ContributionForm(amount=amount, reason=reason)


def describe_issues(error: ValidationError) -> str:
    """
    Generate a user-friendly summary of a rejected form.

    This is what the view shows next to the form.
    """
    if not error.issues:
        return f"❌ {error}"

    lines = ["❌ Please correct the following:"]
    for issue in error.issues:
        lines.append(f"   • {issue.message}")
        if issue.suggested_fix:
            lines.append(f"     💡 {issue.suggested_fix}")
    return "\n".join(lines)

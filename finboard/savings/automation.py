"""
Saving automations.

Round-up saving moves the spare change of each expense into a goal;
surplus allocation moves a share of the monthly budget surplus.
Both only compute amounts - booking them is a normal deposit.
"""

from decimal import ROUND_CEILING, Decimal

from finboard.errors import ValidationError
from finboard.money import Amount, to_decimal


def round_up_amount(expense: Amount, increment: Amount = Decimal("1")) -> Decimal:
    """
    Spare change from rounding an expense up to the next `increment`.

    >>> round_up_amount(Decimal("-3.20"))
    Decimal('0.80')

    Already-round expenses yield zero.
    """
    step = to_decimal(increment, "increment")
    if step <= 0:
        raise ValidationError.for_field("increment", "Round-up increment must be positive")

    magnitude = abs(to_decimal(expense, "expense"))
    rounded = (magnitude / step).to_integral_value(rounding=ROUND_CEILING) * step
    return rounded - magnitude


def surplus_allocation(monthly_net: Amount, percentage: int) -> Decimal:
    """
    Share of a positive monthly surplus to save.

    A deficit (net <= 0) allocates nothing.
    """
    if not 0 <= percentage <= 100:
        raise ValidationError.for_field(
            "percentage",
            f"Percentage must be between 0 and 100, got {percentage}",
        )

    net = to_decimal(monthly_net, "monthly_net")
    if net <= 0:
        return Decimal("0")
    return (net * Decimal(percentage) / Decimal(100)).quantize(Decimal("0.01"))

"""
Currency helpers.

All amounts are Decimal EUR values. Floats coming from a UI are routed
through their string form so 15.99 stays 15.99.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from finboard.errors import ValidationError

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def to_decimal(value: Amount, field: str = "amount") -> Decimal:
    """
    Coerce a number-like value to a finite Decimal.

    Raises:
        ValidationError: if the value is not a number, NaN or infinite.
    """
    if isinstance(value, bool):
        raise ValidationError.for_field(field, f"Not a valid amount: {value!r}", "invalid_format")

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError.for_field(
                field,
                f"Not a valid amount: {value!r}",
                "invalid_format",
                suggested_fix="Enter a number such as 12.50",
            )

    if not result.is_finite():
        raise ValidationError.for_field(field, f"Amount must be finite, got {value!r}")

    return result


def format_currency(value: Decimal) -> str:
    """
    Format an amount the way the dashboard displays it (de-DE, EUR).

    >>> format_currency(Decimal("-1234.5"))
    '-1.234,50 €'
    """
    quantized = Decimal(value).quantize(CENT)
    text = f"{quantized:,.2f}"
    # swap en-US separators for de-DE ones
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{text} €"


def to_money(value: Amount, field: str = "amount") -> Decimal:
    """
    Coerce to a finite Decimal with at most two decimal places (whole cents).

    Raises:
        ValidationError: if the value is not a number or has sub-cent precision.
    """
    result = to_decimal(value, field)
    exponent = result.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -2:
        raise ValidationError.for_field(
            field,
            f"Amount {value} has more than two decimal places",
            "invalid_format",
            suggested_fix="Round the amount to whole cents",
        )
    return result

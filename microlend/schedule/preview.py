"""Live installment estimate for loan entry forms.

Form fields arrive half-typed and as strings, so every parser here turns
bad input into ``None`` instead of raising; the estimate is simply not
shown until the fields make sense.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from microlend.models.enums import LoanFrequency
from microlend.schedule.amortization import calculate_installment_amount


def preview_installment(
    amount: Any,
    interest_rate: Any,
    term: Any,
    frequency: Any,
) -> Decimal | None:
    """Estimate the installment for raw form values.

    Parameters
    ----------
    amount : Any
        Principal as typed (``"1000"``, ``"1.000,50"`` is not supported but
        ``"1000,50"`` is).
    interest_rate : Any
        Annual percentage rate as typed.
    term : Any
        Number of installments as typed.
    frequency : Any
        A :class:`LoanFrequency` or its string value.

    Returns
    -------
    Decimal | None
        The same amount the schedule generator would persist, or None.
    """
    principal = parse_decimal(amount)
    rate = parse_decimal(interest_rate)
    periods = parse_term(term)
    freq = parse_frequency(frequency)

    if principal is None or rate is None or periods is None or freq is None:
        return None
    if principal <= 0 or rate <= 0 or periods <= 0:
        return None

    return calculate_installment_amount(principal, rate, periods, freq)


def parse_decimal(value: Any) -> Decimal | None:
    """Parse a form number, accepting a comma as decimal separator."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not number.is_finite():
        return None
    return number


def parse_term(value: Any) -> int | None:
    """Parse a whole number of installments."""
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def parse_frequency(value: Any) -> LoanFrequency | None:
    """Parse a frequency given as enum member or value (case-insensitive)."""
    if isinstance(value, LoanFrequency):
        return value
    if not isinstance(value, str):
        return None
    try:
        return LoanFrequency(value.strip().upper())
    except ValueError:
        return None

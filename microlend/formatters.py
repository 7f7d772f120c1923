"""Display formatting for amounts and dates."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from microlend.schedule.amortization import round_currency


def format_currency(value: Any, symbol: str = "$") -> str:
    """Format an amount as currency with thousands separators.

    Parameters
    ----------
    value : Any
        Amount as Decimal, number or numeric string.
    symbol : str
        Currency symbol placed before the digits.

    Returns
    -------
    str
        For example ``"$1,234.50"`` or ``"-$5.00"``; ``None`` and
        non-numeric input format as zero.
    """
    if value is None or isinstance(value, bool):
        amount = Decimal("0")
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            amount = Decimal("0")
        if not amount.is_finite():
            amount = Decimal("0")

    amount = round_currency(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_date(value: date | datetime | str | None) -> str:
    """Format a date as ``dd/mm/yyyy``.

    Strings must be ISO dates; anything unparsable is returned unchanged.
    """
    if value is None or value == "":
        return ""
    if isinstance(value, datetime):
        value = value.date()
    elif isinstance(value, str):
        try:
            value = date.fromisoformat(value.strip().split("T")[0])
        except ValueError:
            return value
    return value.strftime("%d/%m/%Y")

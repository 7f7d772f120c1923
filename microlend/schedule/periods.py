"""Due-date arithmetic for loan payment periods."""

from datetime import date, datetime, time, timedelta, timezone

from microlend.models.enums import LoanFrequency

# Divisor applied to the annual rate to obtain the per-installment rate.
PERIODS_PER_YEAR: dict[LoanFrequency, int] = {
    LoanFrequency.DAILY: 365,
    LoanFrequency.WEEKLY: 52,
    LoanFrequency.BIWEEKLY: 24,
    LoanFrequency.MONTHLY: 12,
}

# Fixed-length steps; MONTHLY is calendar-aware and handled separately.
PERIOD_DAYS: dict[LoanFrequency, int] = {
    LoanFrequency.DAILY: 1,
    LoanFrequency.WEEKLY: 7,
    LoanFrequency.BIWEEKLY: 15,
}

DEFAULT_ANCHOR_HOUR = 12


def anchor_issue_date(
    issue_date: date | datetime | str,
    hour: int = DEFAULT_ANCHOR_HOUR,
) -> datetime:
    """Pin an issue date to a fixed UTC time of day.

    Date-only values parsed as midnight can slide to the previous day once
    a local offset is applied; anchoring at midday keeps the calendar date
    stable under any offset.

    Parameters
    ----------
    issue_date : date | datetime | str
        Issue date. Strings must start with an ISO ``YYYY-MM-DD`` date; a
        datetime keeps its own calendar date.
    hour : int
        UTC hour to anchor at (default 12).

    Returns
    -------
    datetime
        Timezone-aware UTC datetime on the issue date.

    Raises
    ------
    ValueError
        If a string issue date is malformed.
    """
    if isinstance(issue_date, str):
        day = date.fromisoformat(issue_date.strip().split("T")[0])
    elif isinstance(issue_date, datetime):
        day = issue_date.date()
    else:
        day = issue_date
    return datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)


def advance_period(current: date, frequency: LoanFrequency) -> date:
    """Return the due date one payment period after ``current``.

    Works on both ``date`` and ``datetime`` values; the time of day of a
    datetime is preserved.

    Parameters
    ----------
    current : date
        Current due date.
    frequency : LoanFrequency
        Payment frequency.

    Returns
    -------
    date
        Next due date.
    """
    if frequency == LoanFrequency.MONTHLY:
        return _add_one_month(current)

    try:
        days = PERIOD_DAYS[frequency]
    except KeyError:
        raise ValueError(f"Unsupported loan frequency: {frequency!r}") from None
    return current + timedelta(days=days)


def _add_one_month(current: date) -> date:
    """Advance one calendar month, clamping to the end of a shorter month."""
    target_month = current.month % 12 + 1
    target_year = current.year + 1 if current.month == 12 else current.year

    first_of_target = current.replace(year=target_year, month=target_month, day=1)
    candidate = first_of_target + timedelta(days=current.day - 1)

    if candidate.month != target_month:
        # Rolled past the target month (Jan 31 -> Mar 3): step back to its last day
        candidate = candidate.replace(day=1) - timedelta(days=1)
    return candidate

"""Installment amount calculation for amortizing and fixed-payment loans."""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Context, Decimal, localcontext

from microlend.models.enums import LoanFrequency, PaymentType
from microlend.models.loan import LoanTerms
from microlend.schedule.periods import PERIODS_PER_YEAR

CENT = Decimal("0.01")

# Independent of whatever the caller did to the thread's decimal context
_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)


def round_currency(value: Decimal) -> Decimal:
    """Round a monetary value to cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP, context=_CONTEXT)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a numeric value to Decimal (floats via their repr)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def periodic_rate(annual_rate_percent: Decimal | int | float, frequency: LoanFrequency) -> Decimal:
    """Convert an annual percentage rate to the rate of one payment period."""
    with localcontext(_CONTEXT):
        return to_decimal(annual_rate_percent) / Decimal(100) / PERIODS_PER_YEAR[frequency]


def calculate_installment_amount(
    principal: Decimal | int | float,
    annual_rate_percent: Decimal | int | float,
    term: int,
    frequency: LoanFrequency,
) -> Decimal | None:
    """Calculate the periodic payment of an amortizing loan.

    Uses the annuity formula ``r * P / (1 - (1 + r) ** -n)`` where ``r``
    is the annual rate divided by the periods per year of ``frequency``.

    Parameters
    ----------
    principal : Decimal | int | float
        Amount lent.
    annual_rate_percent : Decimal | int | float
        Annual interest rate as a percentage (10 for 10%).
    term : int
        Number of installments.
    frequency : LoanFrequency
        Payment frequency.

    Returns
    -------
    Decimal | None
        Installment rounded to cents, or None when the inputs cannot
        produce one (NaN, infinite or non-positive principal, term or
        rate, or a zero denominator).
    """
    principal = to_decimal(principal)
    if not principal.is_finite() or principal <= 0 or term <= 0:
        return None

    annual_rate = to_decimal(annual_rate_percent)
    if not annual_rate.is_finite():
        return None

    rate = periodic_rate(annual_rate, frequency)
    if rate <= 0:
        return None

    with localcontext(_CONTEXT):
        numerator = rate * principal
        denominator = 1 - (1 + rate) ** -term
        if denominator == 0:
            return None
        installment = numerator / denominator

    return round_currency(installment)


def resolve_installment_amount(terms: LoanTerms) -> Decimal | None:
    """Determine the amount due on every installment of a loan.

    INTEREST_RATE loans with a rate go through
    :func:`calculate_installment_amount`; otherwise, or when that yields
    nothing, a positive ``fixed_payment`` is used unchanged.

    Returns
    -------
    Decimal | None
        Positive installment amount, or None if none can be determined.
    """
    amount = None

    if terms.payment_type == PaymentType.INTEREST_RATE and terms.interest_rate:
        amount = calculate_installment_amount(
            terms.principal,
            terms.interest_rate,
            terms.term,
            terms.frequency,
        )

    if amount is None and terms.fixed_payment is not None:
        amount = to_decimal(terms.fixed_payment)

    if amount is None or not amount.is_finite() or amount <= 0:
        return None
    return amount

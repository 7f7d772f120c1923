"""Field validation for loan records before they reach the schedule engine."""

from decimal import Decimal
from typing import Any

from microlend.models import Loan, LoanFrequency, PaymentType


def validate_loan(loan: Loan) -> dict[str, str]:
    """Check the financial fields of a loan.

    Parameters
    ----------
    loan : Loan
        Loan to check.

    Returns
    -------
    dict[str, str]
        Field name to error message; empty when the loan is valid.
    """
    errors: dict[str, str] = {}

    if not _is_positive(loan.principal):
        errors["principal"] = "Amount must be greater than 0"

    if not isinstance(loan.frequency, LoanFrequency):
        errors["frequency"] = f"Unknown payment frequency: {loan.frequency!r}"

    if isinstance(loan.term, bool) or not isinstance(loan.term, int) or loan.term <= 0:
        errors["term"] = "Term must be a positive whole number of installments"

    if loan.payment_type == PaymentType.INTEREST_RATE:
        if not _is_positive(loan.interest_rate):
            errors["interest_rate"] = "Interest rate must be greater than 0"
    elif loan.payment_type == PaymentType.FIXED:
        if not _is_positive(loan.fixed_payment):
            errors["fixed_payment"] = "Fixed payment must be greater than 0"
    else:
        errors["payment_type"] = f"Unknown payment type: {loan.payment_type!r}"

    return errors


def _is_positive(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return Decimal(str(value)) > 0
    except ArithmeticError:
        return False

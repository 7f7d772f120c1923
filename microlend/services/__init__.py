"""Loan lifecycle services."""

from microlend.services.loans import (
    FINANCIAL_FIELDS,
    LoanBalance,
    LoanService,
    RenewalResult,
    derive_loan_status,
)
from microlend.services.validation import validate_loan

__all__ = [
    "FINANCIAL_FIELDS",
    "LoanBalance",
    "LoanService",
    "RenewalResult",
    "derive_loan_status",
    "validate_loan",
]

"""Lending domain models."""

from microlend.models.client import Client
from microlend.models.enums import LoanFrequency, LoanStatus, PaymentType, ScheduleStatus
from microlend.models.loan import Loan, LoanTerms, ScheduleEntry
from microlend.models.payment import Payment

__all__ = [
    "Client",
    "Loan",
    "LoanFrequency",
    "LoanStatus",
    "LoanTerms",
    "Payment",
    "PaymentType",
    "ScheduleEntry",
    "ScheduleStatus",
]

"""Synthetic data generators."""

from microlend.generators.client import ClientGenerator
from microlend.generators.loan import LoanGenerator
from microlend.generators.patterns import PaymentBehavior, PlannedPayment

__all__ = ["ClientGenerator", "LoanGenerator", "PaymentBehavior", "PlannedPayment"]

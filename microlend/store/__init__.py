"""Loan repositories."""

from microlend.store.base import LoanRepository
from microlend.store.memory import LoanStore
from microlend.store.postgres import PostgresLoanStore

__all__ = ["LoanRepository", "LoanStore", "PostgresLoanStore"]

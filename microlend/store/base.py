"""Repository interface shared by the in-memory and PostgreSQL stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from microlend.models import Client, Loan, Payment, ScheduleEntry


class LoanRepository(ABC):
    """Persistence operations the loan lifecycle flows rely on.

    Every multi-step write in :class:`~microlend.services.loans.LoanService`
    runs inside :meth:`transaction`; an exception raised in the block must
    leave the repository as it was before the block. Nested blocks join
    the outermost one.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open an all-or-nothing unit of work."""

    @abstractmethod
    def add_client(self, client: Client) -> None:
        """Add a client."""

    @abstractmethod
    def get_client(self, client_id: str) -> Client:
        """Get a client, raising EntityNotFoundError if absent."""

    @abstractmethod
    def list_clients(self) -> list[Client]:
        """List all clients."""

    @abstractmethod
    def add_loan(self, loan: Loan) -> None:
        """Add a loan for an existing client."""

    @abstractmethod
    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan, raising EntityNotFoundError if absent."""

    @abstractmethod
    def update_loan(self, loan: Loan) -> None:
        """Overwrite a stored loan."""

    @abstractmethod
    def list_loans(self, client_id: str | None = None) -> list[Loan]:
        """List loans, optionally for one client."""

    @abstractmethod
    def add_schedule(self, entries: list[ScheduleEntry]) -> None:
        """Insert schedule entries for existing loans."""

    @abstractmethod
    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Get a loan's schedule ordered by installment number."""

    @abstractmethod
    def delete_schedule(self, loan_id: str) -> int:
        """Delete a loan's schedule and return the number of entries removed."""

    @abstractmethod
    def update_schedule_entries(self, entries: list[ScheduleEntry]) -> None:
        """Overwrite existing schedule entries."""

    @abstractmethod
    def add_payment(self, payment: Payment) -> None:
        """Record a payment against an existing loan."""

    @abstractmethod
    def get_payments(self, loan_id: str) -> list[Payment]:
        """Get a loan's payments in recording order."""

    @abstractmethod
    def summary(self) -> dict[str, int]:
        """Get entity counts."""

"""In-memory loan repository with referential integrity."""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator

from microlend.exceptions import EntityNotFoundError, ReferentialIntegrityError, RepositoryError
from microlend.models import Client, Loan, Payment, ScheduleEntry
from microlend.store.base import LoanRepository

logger = logging.getLogger(__name__)


@dataclass
class LoanStore(LoanRepository):
    """In-memory store for lending entities with relationship tracking.

    Records are copied on the way in and on the way out, so callers can
    mutate what they read without touching stored state until they write
    it back. Stored records are replaced, never changed in place, so a
    transaction only saves the prior state of the clients and loans it
    writes and puts those back if the block raises; its cost grows with
    what the block touches, not with the size of the store.
    """

    # Primary entities
    clients: dict[str, Client] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)

    # Dependent records
    schedules: dict[str, dict[int, ScheduleEntry]] = field(default_factory=dict)
    payments: list[Payment] = field(default_factory=list)

    # Relationship indexes
    _client_loans: dict[str, list[str]] = field(default_factory=dict)
    _loan_payments: dict[str, list[int]] = field(default_factory=dict)

    _transaction_depth: int = 0
    # Prior state of each client/loan written in the open transaction
    _undo: dict[tuple[str, str], tuple] | None = field(default=None, repr=False)
    _payments_mark: int = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block as one unit of work, undoing its writes if it raises."""
        outermost = self._transaction_depth == 0
        if outermost:
            self._undo = {}
            self._payments_mark = len(self.payments)
        self._transaction_depth += 1
        try:
            yield
        except Exception:
            if outermost:
                self._rollback()
                logger.debug("Rolled back in-memory transaction")
            raise
        finally:
            self._transaction_depth -= 1
            if outermost:
                self._undo = None

    def _remember_client(self, client_id: str) -> None:
        if self._undo is None or ("client", client_id) in self._undo:
            return
        self._undo[("client", client_id)] = (
            _saved(self.clients, client_id, copy.copy),
            _saved(self._client_loans, client_id, list),
        )

    def _remember_loan(self, loan_id: str) -> None:
        if self._undo is None or ("loan", loan_id) in self._undo:
            return
        self._undo[("loan", loan_id)] = (
            _saved(self.loans, loan_id, copy.copy),
            _saved(self.schedules, loan_id, dict),
            _saved(self._loan_payments, loan_id, list),
        )

    def _rollback(self) -> None:
        for (kind, key), state in self._undo.items():
            if kind == "client":
                client, loan_ids = state
                _put(self.clients, key, client)
                _put(self._client_loans, key, loan_ids)
            else:
                loan, schedule, payment_indices = state
                _put(self.loans, key, loan)
                _put(self.schedules, key, schedule)
                _put(self._loan_payments, key, payment_indices)
        del self.payments[self._payments_mark :]

    def add_client(self, client: Client) -> None:
        """Add a client to the store."""
        if client.client_id in self.clients:
            raise RepositoryError(f"Client {client.client_id} already exists")
        self._remember_client(client.client_id)
        if client.created_at is None:
            client.created_at = datetime.now()
        self.clients[client.client_id] = copy.copy(client)
        self._client_loans[client.client_id] = []

    def get_client(self, client_id: str) -> Client:
        """Get a client by ID."""
        try:
            return copy.copy(self.clients[client_id])
        except KeyError:
            raise EntityNotFoundError(f"Client {client_id} not found") from None

    def list_clients(self) -> list[Client]:
        """List all clients."""
        return [copy.copy(c) for c in self.clients.values()]

    def add_loan(self, loan: Loan) -> None:
        """Add a loan to the store."""
        if loan.client_id not in self.clients:
            raise ReferentialIntegrityError(f"Client {loan.client_id} not found")
        if loan.loan_id in self.loans:
            raise RepositoryError(f"Loan {loan.loan_id} already exists")
        self._remember_loan(loan.loan_id)
        self._remember_client(loan.client_id)

        if loan.created_at is None:
            loan.created_at = datetime.now()
        self.loans[loan.loan_id] = copy.copy(loan)
        self.schedules[loan.loan_id] = {}
        self._client_loans[loan.client_id].append(loan.loan_id)
        self._loan_payments[loan.loan_id] = []

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID."""
        try:
            return copy.copy(self.loans[loan_id])
        except KeyError:
            raise EntityNotFoundError(f"Loan {loan_id} not found") from None

    def update_loan(self, loan: Loan) -> None:
        """Overwrite a stored loan."""
        if loan.loan_id not in self.loans:
            raise EntityNotFoundError(f"Loan {loan.loan_id} not found")
        if loan.client_id not in self.clients:
            raise ReferentialIntegrityError(f"Client {loan.client_id} not found")

        self._remember_loan(loan.loan_id)
        previous = self.loans[loan.loan_id]
        if previous.client_id != loan.client_id:
            self._remember_client(previous.client_id)
            self._remember_client(loan.client_id)
            self._client_loans[previous.client_id].remove(loan.loan_id)
            self._client_loans[loan.client_id].append(loan.loan_id)

        loan.updated_at = datetime.now()
        self.loans[loan.loan_id] = copy.copy(loan)

    def list_loans(self, client_id: str | None = None) -> list[Loan]:
        """List loans, optionally filtered by client."""
        if client_id is None:
            return [copy.copy(l) for l in self.loans.values()]
        return [copy.copy(self.loans[lid]) for lid in self._client_loans.get(client_id, [])]

    def add_schedule(self, entries: list[ScheduleEntry]) -> None:
        """Insert schedule entries."""
        for entry in entries:
            if entry.loan_id not in self.loans:
                raise ReferentialIntegrityError(f"Loan {entry.loan_id} not found")
            if entry.installment_number in self.schedules[entry.loan_id]:
                raise RepositoryError(
                    f"Installment {entry.installment_number} of loan {entry.loan_id} already exists"
                )

        for entry in entries:
            self._remember_loan(entry.loan_id)
            self.schedules[entry.loan_id][entry.installment_number] = copy.copy(entry)

    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Get a loan's schedule ordered by installment number."""
        entries = self.schedules.get(loan_id, {})
        return [copy.copy(entries[n]) for n in sorted(entries)]

    def delete_schedule(self, loan_id: str) -> int:
        """Delete a loan's schedule."""
        removed = len(self.schedules.get(loan_id, {}))
        if loan_id in self.schedules:
            self._remember_loan(loan_id)
            self.schedules[loan_id] = {}
        return removed

    def update_schedule_entries(self, entries: list[ScheduleEntry]) -> None:
        """Overwrite existing schedule entries."""
        for entry in entries:
            if entry.installment_number not in self.schedules.get(entry.loan_id, {}):
                raise EntityNotFoundError(
                    f"Installment {entry.installment_number} of loan {entry.loan_id} not found"
                )

        for entry in entries:
            self._remember_loan(entry.loan_id)
            self.schedules[entry.loan_id][entry.installment_number] = copy.copy(entry)

    def add_payment(self, payment: Payment) -> None:
        """Add a payment to the store."""
        if payment.loan_id not in self.loans:
            raise ReferentialIntegrityError(f"Loan {payment.loan_id} not found")
        if (
            payment.installment_number is not None
            and payment.installment_number not in self.schedules[payment.loan_id]
        ):
            raise ReferentialIntegrityError(
                f"Installment {payment.installment_number} of loan {payment.loan_id} not found"
            )

        self._remember_loan(payment.loan_id)
        if payment.created_at is None:
            payment.created_at = datetime.now()
        idx = len(self.payments)
        self.payments.append(copy.copy(payment))
        self._loan_payments[payment.loan_id].append(idx)

    def get_payments(self, loan_id: str) -> list[Payment]:
        """Get all payments for a loan."""
        indices = self._loan_payments.get(loan_id, [])
        return [copy.copy(self.payments[i]) for i in indices]

    def summary(self) -> dict[str, int]:
        """Get summary of stored entities."""
        return {
            "clients": len(self.clients),
            "loans": len(self.loans),
            "schedule_entries": sum(len(s) for s in self.schedules.values()),
            "payments": len(self.payments),
        }


_MISSING = object()


def _saved(mapping: dict, key: str, clone: Callable[[Any], Any]) -> Any:
    return clone(mapping[key]) if key in mapping else _MISSING


def _put(mapping: dict, key: str, value: Any) -> None:
    if value is _MISSING:
        mapping.pop(key, None)
    else:
        mapping[key] = value

"""Loan lifecycle flows built on the schedule engine and a repository."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from microlend.config import ScheduleConfig
from microlend.exceptions import (
    EntityNotFoundError,
    InvalidLoanStateError,
    ScheduleGenerationError,
    ValidationError,
)
from microlend.models import Loan, LoanStatus, Payment, ScheduleEntry, ScheduleStatus
from microlend.schedule import ScheduleGenerator, preview_installment, round_currency
from microlend.schedule.amortization import to_decimal
from microlend.services.validation import validate_loan
from microlend.store.base import LoanRepository

logger = logging.getLogger(__name__)

# Changing any of these invalidates the stored schedule
FINANCIAL_FIELDS = frozenset(
    {
        "principal",
        "interest_rate",
        "fixed_payment",
        "frequency",
        "payment_type",
        "term",
        "issue_date",
    }
)

EDITABLE_FIELDS = FINANCIAL_FIELDS | {"employee_id", "route_id"}


@dataclass
class LoanBalance:
    """Amounts owed on a loan."""

    total_due: Decimal
    total_paid: Decimal
    remaining: Decimal
    unpaid_installments: int


@dataclass
class RenewalResult:
    """Outcome of replacing a loan with a new one for the same client."""

    old_loan_id: str
    new_loan: Loan
    schedule: list[ScheduleEntry]
    payoff_amount: Decimal
    net_to_client: Decimal


def derive_loan_status(schedule: list[ScheduleEntry]) -> LoanStatus:
    """Loan status implied by the state of its installments."""
    if schedule and all(e.status == ScheduleStatus.PAID for e in schedule):
        return LoanStatus.PAID
    if any(e.status == ScheduleStatus.OVERDUE for e in schedule):
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


class LoanService:
    """Create, edit, collect and renew loans.

    Every flow that writes more than one record runs inside
    ``store.transaction()``, so a failure part way through leaves the
    repository untouched.

    Parameters
    ----------
    store : LoanRepository
        Repository holding clients, loans, schedules and payments.
    generator : ScheduleGenerator | None
        Schedule generator (default: anchored at 12:00 UTC).
    renewal_max_unpaid : int
        Most unpaid installments a loan may have and still be renewed.
    """

    def __init__(
        self,
        store: LoanRepository,
        generator: ScheduleGenerator | None = None,
        renewal_max_unpaid: int = 3,
    ) -> None:
        self.store = store
        self.generator = generator or ScheduleGenerator()
        self.renewal_max_unpaid = renewal_max_unpaid

    @classmethod
    def from_config(cls, store: LoanRepository, config: ScheduleConfig) -> LoanService:
        """Build a service from schedule configuration."""
        return cls(
            store,
            generator=ScheduleGenerator(anchor_hour=config.anchor_hour_utc),
            renewal_max_unpaid=config.renewal_max_unpaid,
        )

    def preview_installment(
        self, amount: Any, interest_rate: Any, term: Any, frequency: Any
    ) -> Decimal | None:
        """Estimate an installment from raw form input."""
        return preview_installment(amount, interest_rate, term, frequency)

    def create_loan(self, loan: Loan) -> list[ScheduleEntry]:
        """Persist a new loan together with its schedule.

        Parameters
        ----------
        loan : Loan
            Loan to create; its status is reset to ACTIVE.

        Returns
        -------
        list[ScheduleEntry]
            The stored schedule.

        Raises
        ------
        ValidationError
            If the loan's financial fields are invalid.
        ScheduleGenerationError
            If no schedule can be generated; the loan is not stored.
        """
        loan.status = LoanStatus.ACTIVE
        self._validate(loan)

        with self.store.transaction():
            self.store.add_loan(loan)
            schedule = self._build_schedule(loan)

        logger.info(
            "Created loan %s for client %s: %d %s installments of %s",
            loan.loan_id,
            loan.client_id,
            len(schedule),
            loan.frequency.value,
            schedule[0].amount_due,
            extra={"loan_id": loan.loan_id, "client_id": loan.client_id},
        )
        return schedule

    def edit_loan(self, loan_id: str, **changes: Any) -> Loan:
        """Update loan fields, regenerating the schedule if the terms change.

        Parameters
        ----------
        loan_id : str
            Loan to edit.
        **changes
            New values for financial fields or ``employee_id``/``route_id``.

        Returns
        -------
        Loan
            The updated loan.

        Raises
        ------
        ValidationError
            On unknown fields or invalid new terms.
        InvalidLoanStateError
            If the terms change after payments were recorded.
        """
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError({name: "Field cannot be edited" for name in unknown})

        loan = self.store.get_loan(loan_id)
        terms_changed = any(
            getattr(loan, name) != value
            for name, value in changes.items()
            if name in FINANCIAL_FIELDS
        )
        updated = dataclasses.replace(loan, **changes)

        if terms_changed:
            self._validate(updated)
            if self.store.get_payments(loan_id):
                raise InvalidLoanStateError(
                    f"Cannot change the terms of loan {loan_id}: payments already recorded"
                )

        with self.store.transaction():
            self.store.update_loan(updated)
            if terms_changed:
                removed = self.store.delete_schedule(loan_id)
                schedule = self._build_schedule(updated)
                self._sync_loan_status(updated, schedule)
                logger.info(
                    "Regenerated schedule of loan %s (%d entries replaced by %d)",
                    loan_id,
                    removed,
                    len(schedule),
                )

        return updated

    def record_payment(
        self,
        loan_id: str,
        installment_number: int,
        amount: Decimal | int | float | str,
        payment_date: date | None = None,
        recorded_by: str = "",
    ) -> Payment:
        """Record money received against one installment.

        Returns
        -------
        Payment
            The stored payment.
        """
        try:
            amount = to_decimal(amount)
        except ArithmeticError:
            raise ValidationError({"amount": "Payment amount is not a number"}) from None
        if not amount.is_finite() or amount <= 0:
            raise ValidationError({"amount": "Payment amount must be greater than 0"})

        loan = self.store.get_loan(loan_id)
        if loan.status == LoanStatus.PAID:
            raise InvalidLoanStateError(f"Loan {loan_id} is already paid")

        schedule = self.store.get_schedule(loan_id)
        entry = next((e for e in schedule if e.installment_number == installment_number), None)
        if entry is None:
            raise EntityNotFoundError(f"Installment {installment_number} of loan {loan_id} not found")

        payment_date = payment_date or date.today()
        payment = Payment(
            payment_id=uuid4().hex,
            loan_id=loan_id,
            amount=amount,
            payment_date=payment_date,
            recorded_by=recorded_by,
            installment_number=installment_number,
        )

        entry.amount_paid += amount
        entry.payment_date = payment_date
        if entry.amount_paid >= entry.amount_due:
            entry.status = ScheduleStatus.PAID

        with self.store.transaction():
            self.store.add_payment(payment)
            self.store.update_schedule_entries([entry])
            self._sync_loan_status(loan, schedule)

        logger.debug(
            "Recorded payment of %s on installment %d of loan %s",
            amount,
            installment_number,
            loan_id,
            extra={"loan_id": loan_id, "installment_number": installment_number},
        )
        return payment

    def settle_loan(
        self,
        loan_id: str,
        recorded_by: str,
        as_of: date | None = None,
    ) -> Payment | None:
        """Pay off the remaining balance and close the loan.

        Returns
        -------
        Payment | None
            The settling payment, or None if nothing was owed.
        """
        loan = self.store.get_loan(loan_id)
        if loan.status == LoanStatus.PAID:
            return None

        with self.store.transaction():
            return self._settle(loan, recorded_by, as_of or date.today())

    def refresh_overdue(self, loan_id: str, as_of: date | None = None) -> list[ScheduleEntry]:
        """Mark pending installments due before ``as_of`` as overdue.

        Returns
        -------
        list[ScheduleEntry]
            The entries that changed status.
        """
        as_of = as_of or date.today()
        loan = self.store.get_loan(loan_id)
        schedule = self.store.get_schedule(loan_id)

        changed = []
        for entry in schedule:
            if entry.status == ScheduleStatus.PENDING and entry.due_date < as_of:
                entry.status = ScheduleStatus.OVERDUE
                changed.append(entry)

        with self.store.transaction():
            self.store.update_schedule_entries(changed)
            self._sync_loan_status(loan, schedule)

        if changed:
            logger.info(
                "Loan %s has %d newly overdue installments",
                loan_id,
                len(changed),
                extra={"loan_id": loan_id},
            )
        return changed

    def balance(self, loan_id: str) -> LoanBalance:
        """Summarize what has been paid and what is still owed on a loan."""
        self.store.get_loan(loan_id)
        return self._balance(loan_id, self.store.get_schedule(loan_id))

    def can_renew(self, loan_id: str) -> bool:
        """Whether the loan is close enough to paid off to be renewed."""
        loan = self.store.get_loan(loan_id)
        if loan.status == LoanStatus.PAID:
            return False
        return self.balance(loan_id).unpaid_installments <= self.renewal_max_unpaid

    def renew_loan(
        self,
        loan_id: str,
        new_loan: Loan,
        recorded_by: str,
        as_of: date | None = None,
    ) -> RenewalResult:
        """Settle a loan and replace it with a larger one for the same client.

        The client receives the new principal minus the old loan's payoff.
        Settlement and the new loan are stored together or not at all.

        Parameters
        ----------
        loan_id : str
            Loan being renewed.
        new_loan : Loan
            Replacement loan.
        recorded_by : str
            Employee recording the settlement.
        as_of : date | None
            Settlement date (default today).

        Returns
        -------
        RenewalResult
            The new loan, its schedule and the amounts involved.
        """
        old_loan = self.store.get_loan(loan_id)
        if not self.can_renew(loan_id):
            raise InvalidLoanStateError(
                f"Loan {loan_id} cannot be renewed: it is paid or has more than "
                f"{self.renewal_max_unpaid} unpaid installments"
            )
        if new_loan.client_id != old_loan.client_id:
            raise ValidationError({"client_id": "A renewal must be for the same client"})
        self._validate(new_loan)

        payoff = self.balance(loan_id).remaining
        principal = to_decimal(new_loan.principal)
        if principal <= payoff:
            raise ValidationError(
                {"principal": f"New amount must be greater than the payoff amount ({payoff})"}
            )

        with self.store.transaction():
            self._settle(old_loan, recorded_by, as_of or date.today())
            schedule = self.create_loan(new_loan)

        net = round_currency(principal - payoff)
        logger.info(
            "Renewed loan %s as %s: payoff %s, net to client %s",
            loan_id,
            new_loan.loan_id,
            payoff,
            net,
        )
        return RenewalResult(
            old_loan_id=loan_id,
            new_loan=new_loan,
            schedule=schedule,
            payoff_amount=payoff,
            net_to_client=net,
        )

    def _validate(self, loan: Loan) -> None:
        errors = validate_loan(loan)
        if errors:
            raise ValidationError(errors)

    def _build_schedule(self, loan: Loan) -> list[ScheduleEntry]:
        schedule = self.generator.generate(loan.terms, loan.loan_id)
        if not schedule:
            raise ScheduleGenerationError()
        self.store.add_schedule(schedule)
        return schedule

    def _settle(self, loan: Loan, recorded_by: str, as_of: date) -> Payment | None:
        schedule = self.store.get_schedule(loan.loan_id)
        remaining = self._balance(loan.loan_id, schedule).remaining
        unpaid = [e for e in schedule if e.status != ScheduleStatus.PAID]

        payment = None
        if remaining > 0:
            payment = Payment(
                payment_id=uuid4().hex,
                loan_id=loan.loan_id,
                amount=remaining,
                payment_date=as_of,
                recorded_by=recorded_by,
                installment_number=unpaid[0].installment_number if unpaid else None,
            )
            self.store.add_payment(payment)

        for entry in unpaid:
            entry.amount_paid = entry.amount_due
            entry.status = ScheduleStatus.PAID
            entry.payment_date = as_of
        self.store.update_schedule_entries(unpaid)

        loan.status = LoanStatus.PAID
        self.store.update_loan(loan)
        logger.info(
            "Settled loan %s with a payment of %s",
            loan.loan_id,
            remaining,
            extra={"loan_id": loan.loan_id},
        )
        return payment

    def _balance(self, loan_id: str, schedule: list[ScheduleEntry]) -> LoanBalance:
        total_due = sum((e.amount_due for e in schedule), Decimal("0"))
        total_paid = sum((p.amount for p in self.store.get_payments(loan_id)), Decimal("0"))
        return LoanBalance(
            total_due=total_due,
            total_paid=total_paid,
            remaining=round_currency(max(total_due - total_paid, Decimal("0"))),
            unpaid_installments=sum(1 for e in schedule if e.status != ScheduleStatus.PAID),
        )

    def _sync_loan_status(self, loan: Loan, schedule: list[ScheduleEntry]) -> None:
        status = derive_loan_status(schedule)
        if status != loan.status:
            logger.debug("Loan %s status %s -> %s", loan.loan_id, loan.status.value, status.value)
            loan.status = status
            self.store.update_loan(loan)

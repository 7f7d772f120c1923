"""Loan and schedule models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from microlend.models.enums import LoanFrequency, LoanStatus, PaymentType, ScheduleStatus


@dataclass(frozen=True)
class LoanTerms:
    """Financial terms consumed by the schedule engine.

    ``interest_rate`` is an annual percentage (``Decimal("10")`` for 10%)
    and is used when ``payment_type`` is INTEREST_RATE; ``fixed_payment``
    is the per-installment amount used when it is FIXED.
    """

    principal: Decimal
    payment_type: PaymentType
    frequency: LoanFrequency
    issue_date: date
    term: int  # number of installments
    interest_rate: Decimal | None = None
    fixed_payment: Decimal | None = None


@dataclass
class Loan:
    """Loan contract entity."""

    loan_id: str
    client_id: str
    principal: Decimal
    payment_type: PaymentType
    frequency: LoanFrequency
    issue_date: date
    term: int
    interest_rate: Decimal | None = None
    fixed_payment: Decimal | None = None
    status: LoanStatus = LoanStatus.ACTIVE
    employee_id: str | None = None
    route_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def terms(self) -> LoanTerms:
        """Project the loan onto the terms the schedule engine needs."""
        return LoanTerms(
            principal=self.principal,
            payment_type=self.payment_type,
            frequency=self.frequency,
            issue_date=self.issue_date,
            term=self.term,
            interest_rate=self.interest_rate,
            fixed_payment=self.fixed_payment,
        )


@dataclass
class ScheduleEntry:
    """One scheduled installment (cuota) of a loan."""

    loan_id: str
    installment_number: int  # 1, 2, 3, ...
    due_date: date
    amount_due: Decimal
    amount_paid: Decimal = Decimal("0")
    status: ScheduleStatus = ScheduleStatus.PENDING
    payment_date: date | None = None

    @property
    def outstanding(self) -> Decimal:
        """Amount still owed on this installment."""
        return max(self.amount_due - self.amount_paid, Decimal("0"))

"""Loan portfolio scenario: clients, loans and their repayment history."""

from __future__ import annotations

import logging
import random
from datetime import date
from decimal import Decimal
from typing import Any

from microlend.config import ScheduleConfig
from microlend.generators import ClientGenerator, LoanGenerator, PaymentBehavior
from microlend.models import LoanStatus
from microlend.services import LoanService
from microlend.store import LoanRepository, LoanStore

logger = logging.getLogger(__name__)


class LoanPortfolioScenario:
    """Generate a micro-loan portfolio with realistic repayment behavior.

    This scenario creates:
    - Clients with one loan each, issued through :class:`LoanService`
    - Payments up to ``as_of`` following a borrower profile:
        - On time
        - Occasionally or chronically late (sometimes partial)
        - Defaulting after a few installments
    - Renewals of loans that are nearly paid off
    - Overdue status for installments still unpaid at ``as_of``
    """

    def __init__(
        self,
        num_clients: int = 100,
        on_time_rate: float = 0.75,
        late_rate: float = 0.15,
        default_rate: float = 0.10,
        renewal_rate: float = 0.20,
        seed: int | None = None,
        as_of: date | None = None,
        store: LoanRepository | None = None,
        config: ScheduleConfig | None = None,
    ) -> None:
        """Initialize loan portfolio scenario.

        Parameters
        ----------
        num_clients : int
            Number of clients to generate.
        on_time_rate : float
            Share of borrowers who pay on time.
        late_rate : float
            Share of borrowers who pay late.
        default_rate : float
            Share of borrowers who stop paying.
        renewal_rate : float
            Probability that an eligible loan is renewed.
        seed : int | None
            Random seed for reproducibility.
        as_of : date | None
            Simulation date (default today).
        store : LoanRepository | None
            Target repository (default: a new in-memory store).
        config : ScheduleConfig | None
            Schedule and renewal settings.
        """
        self.num_clients = num_clients
        self.on_time_rate = on_time_rate
        self.late_rate = late_rate
        self.default_rate = default_rate
        self.renewal_rate = renewal_rate
        self.seed = seed
        self.as_of = as_of or date.today()

        self.store = store if store is not None else LoanStore()
        self.service = LoanService.from_config(self.store, config or ScheduleConfig())

        self._random = random.Random(seed)
        self._client_gen = ClientGenerator(seed=seed)
        self._loan_gen = LoanGenerator(seed=seed)
        self._payment_behavior = PaymentBehavior(seed=seed)
        self._renewals = 0

    def generate(self) -> LoanRepository:
        """Generate all data for the portfolio.

        Returns
        -------
        LoanRepository
            Repository containing the generated data.
        """
        logger.info(
            "Starting loan portfolio scenario: %d clients as of %s",
            self.num_clients,
            self.as_of.isoformat(),
        )

        for client in self._client_gen.generate_batch(self.num_clients):
            self.store.add_client(client)

            issue_date = self._loan_gen.fake.date_between_dates(
                min(LoanGenerator.ISSUE_DATE_START, self.as_of),
                min(LoanGenerator.ISSUE_DATE_END, self.as_of),
            )
            loan = self._loan_gen.generate(client.client_id, issue_date=issue_date)
            schedule = self.service.create_loan(loan)

            behavior = self._payment_behavior.pick_behavior(
                self.on_time_rate, self.late_rate, self.default_rate
            )
            for planned in self._payment_behavior.plan_payments(schedule, behavior, self.as_of):
                self.service.record_payment(
                    loan.loan_id,
                    planned.installment_number,
                    planned.amount,
                    planned.payment_date,
                    recorded_by=loan.employee_id,
                )

            self._maybe_renew(loan.loan_id, loan.employee_id)

        for loan in self.store.list_loans():
            self.service.refresh_overdue(loan.loan_id, self.as_of)

        logger.info(
            "Generated %d loans (%d renewals) with %d schedule entries",
            len(self.store.list_loans()),
            self._renewals,
            self.store.summary().get("schedule_entries", 0),
        )
        return self.store

    def _maybe_renew(self, loan_id: str, employee_id: str) -> None:
        """Renew an eligible loan with a larger one for the same client."""
        if self._random.random() >= self.renewal_rate:
            return
        if not self.service.can_renew(loan_id):
            return

        old_loan = self.store.get_loan(loan_id)
        payoff = self.service.balance(loan_id).remaining
        # At least 500 more than the payoff, in hundreds
        minimum = (payoff / 100).to_integral_value() * 100 + 500
        principal = max(old_loan.principal, minimum) + Decimal(self._random.randint(0, 10) * 100)

        new_loan = self._loan_gen.generate(
            old_loan.client_id,
            issue_date=self.as_of,
            principal=principal,
        )
        self.service.renew_loan(loan_id, new_loan, recorded_by=employee_id, as_of=self.as_of)
        self._renewals += 1

    def export(self, sinks: list[Any]) -> None:
        """Export generated data to sinks.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, ...).
        """
        loans = self.store.list_loans()
        schedule = [e for loan in loans for e in self.store.get_schedule(loan.loan_id)]
        payments = [p for loan in loans for p in self.store.get_payments(loan.loan_id)]

        for sink in sinks:
            sink.write_batch("clients", self.store.list_clients())
            sink.write_batch("loans", loans)
            sink.write_batch("loan_schedules", schedule)
            sink.write_batch("payments", payments)

        logger.info("Exported loan portfolio to %d sinks", len(sinks))

    def get_portfolio_summary(self) -> dict[str, Any]:
        """Get summary statistics for the loan portfolio.

        Returns
        -------
        dict[str, Any]
            Portfolio summary statistics.
        """
        loans = self.store.list_loans()
        if not loans:
            return {}

        status_counts: dict[str, int] = {}
        installment_status: dict[str, int] = {}
        frequency_counts: dict[str, int] = {}
        outstanding = Decimal("0")

        for loan in loans:
            status_counts[loan.status.value] = status_counts.get(loan.status.value, 0) + 1
            frequency_counts[loan.frequency.value] = frequency_counts.get(loan.frequency.value, 0) + 1
            for entry in self.store.get_schedule(loan.loan_id):
                key = entry.status.value
                installment_status[key] = installment_status.get(key, 0) + 1
            if loan.status != LoanStatus.PAID:
                outstanding += self.service.balance(loan.loan_id).remaining

        return {
            "total_loans": len(loans),
            "total_principal": float(sum(l.principal for l in loans)),
            "total_outstanding": float(outstanding),
            "renewals": self._renewals,
            "loan_status_distribution": status_counts,
            "installment_status_distribution": installment_status,
            "frequency_distribution": frequency_counts,
        }

"""Repayment behavior patterns."""

import random
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from microlend.models import ScheduleEntry
from microlend.schedule import round_currency


@dataclass
class PlannedPayment:
    """A payment a simulated borrower makes on one installment."""

    installment_number: int
    amount: Decimal
    payment_date: date


class PaymentBehavior:
    """Simulate how borrowers repay their installments."""

    BEHAVIORS = ["good", "occasional_late", "chronic_late", "defaulter"]

    def __init__(self, seed: int | None = None) -> None:
        self.random = random.Random(seed)

    def pick_behavior(
        self,
        on_time_rate: float = 0.75,
        late_rate: float = 0.15,
        default_rate: float = 0.10,
    ) -> str:
        """Choose a borrower profile."""
        return self.random.choices(
            self.BEHAVIORS,
            weights=[on_time_rate, late_rate * 0.7, late_rate * 0.3, default_rate],
            k=1,
        )[0]

    def plan_payments(
        self,
        schedule: list[ScheduleEntry],
        behavior: str,
        as_of: date,
    ) -> list[PlannedPayment]:
        """Decide which installments get paid, how much and when.

        Parameters
        ----------
        schedule : list[ScheduleEntry]
            Loan schedule in installment order.
        behavior : str
            One of :attr:`BEHAVIORS`.
        as_of : date
            No payment is dated after this day.

        Returns
        -------
        list[PlannedPayment]
            Payments in the order they are made.
        """
        if behavior not in self.BEHAVIORS:
            raise ValueError(f"Unknown payment behavior: {behavior!r}")

        stop_after = self.random.randint(0, max(len(schedule) // 2, 1))
        planned = []

        for entry in schedule:
            amount = entry.amount_due

            if behavior == "good":
                delay = self.random.randint(0, 2)
            elif behavior == "occasional_late":
                if self.random.random() < 0.8:
                    delay = self.random.randint(0, 3)
                else:
                    delay = self.random.randint(5, 20)
            elif behavior == "chronic_late":
                delay = self.random.randint(3, 30)
                if self.random.random() < 0.3:
                    amount = round_currency(entry.amount_due / 2)
            else:
                # Stops paying altogether after a few installments
                if entry.installment_number > stop_after:
                    break
                delay = self.random.randint(0, 10)

            paid_on = entry.due_date + timedelta(days=delay)
            if paid_on > as_of:
                break
            planned.append(PlannedPayment(entry.installment_number, amount, paid_on))

        return planned

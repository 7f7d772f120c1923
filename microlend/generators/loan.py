"""Loan generator."""

from datetime import date
from decimal import Decimal

from microlend.generators.base import BaseGenerator
from microlend.models import Loan, LoanFrequency, PaymentType
from microlend.schedule import round_currency


class LoanGenerator(BaseGenerator):
    """Generate synthetic micro-loans with valid terms.

    Collection is mostly daily or weekly; the number of installments
    offered depends on the frequency.
    """

    FREQUENCIES = list(LoanFrequency)
    FREQUENCY_WEIGHTS = [0.35, 0.35, 0.15, 0.15]

    TERM_CHOICES = {
        LoanFrequency.DAILY: [20, 24, 30, 40, 60],
        LoanFrequency.WEEKLY: [8, 10, 12, 16, 20],
        LoanFrequency.BIWEEKLY: [4, 6, 8, 12],
        LoanFrequency.MONTHLY: [3, 6, 9, 12, 18, 24],
    }

    PAYMENT_TYPES = [PaymentType.INTEREST_RATE, PaymentType.FIXED]
    PAYMENT_TYPE_WEIGHTS = [0.70, 0.30]

    # Annual percentage rates
    RATE_RANGE = (10, 60)

    # Flat markup over principal for fixed-payment loans
    MARKUP_RANGE = (0.10, 0.40)

    ISSUE_DATE_START = date(2023, 1, 1)
    ISSUE_DATE_END = date(2024, 12, 31)

    def generate(
        self,
        client_id: str,
        issue_date: date | None = None,
        payment_type: PaymentType | None = None,
        frequency: LoanFrequency | None = None,
        principal: Decimal | None = None,
    ) -> Loan:
        """Generate a loan for a client.

        Parameters
        ----------
        client_id : str
            Borrower the loan belongs to.
        issue_date : date | None
            Issue date (default: random within the issue window).
        payment_type : PaymentType | None
            Payment type (default: weighted random).
        frequency : LoanFrequency | None
            Payment frequency (default: weighted random).
        principal : Decimal | None
            Amount lent (default: random multiple of 100).

        Returns
        -------
        Loan
            Generated loan; not yet stored.
        """
        if frequency is None:
            frequency = self.random.choices(
                self.FREQUENCIES, weights=self.FREQUENCY_WEIGHTS, k=1
            )[0]
        if payment_type is None:
            payment_type = self.random.choices(
                self.PAYMENT_TYPES, weights=self.PAYMENT_TYPE_WEIGHTS, k=1
            )[0]
        if principal is None:
            principal = Decimal(self.random.randint(5, 200) * 100)
        if issue_date is None:
            issue_date = self.fake.date_between_dates(self.ISSUE_DATE_START, self.ISSUE_DATE_END)

        term = self.random.choice(self.TERM_CHOICES[frequency])

        interest_rate = None
        fixed_payment = None
        if payment_type == PaymentType.INTEREST_RATE:
            interest_rate = Decimal(self.random.randint(*self.RATE_RANGE))
        else:
            markup = Decimal(str(round(self.random.uniform(*self.MARKUP_RANGE), 2)))
            fixed_payment = round_currency(principal * (1 + markup) / term)

        return Loan(
            loan_id=self.fake.uuid4(),
            client_id=client_id,
            principal=principal,
            payment_type=payment_type,
            frequency=frequency,
            issue_date=issue_date,
            term=term,
            interest_rate=interest_rate,
            fixed_payment=fixed_payment,
            employee_id=f"EMP-{self.random.randint(1, 20):03d}",
            route_id=f"RUTA-{self.random.randint(1, 8):02d}",
        )

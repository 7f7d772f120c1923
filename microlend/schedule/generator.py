"""Installment schedule generation."""

import logging

from microlend.models.loan import LoanTerms, ScheduleEntry
from microlend.schedule.amortization import resolve_installment_amount
from microlend.schedule.periods import DEFAULT_ANCHOR_HOUR, advance_period, anchor_issue_date

logger = logging.getLogger(__name__)


class ScheduleGenerator:
    """Build the full installment schedule of a loan.

    The generator is stateless apart from its configuration and holds no
    references to the loans it processes, so one instance can be shared
    freely.

    Parameters
    ----------
    anchor_hour : int
        UTC hour the issue date is pinned to before date arithmetic.
    """

    def __init__(self, anchor_hour: int = DEFAULT_ANCHOR_HOUR) -> None:
        self.anchor_hour = anchor_hour

    def generate(self, terms: LoanTerms, loan_id: str) -> list[ScheduleEntry]:
        """Generate the installments of a loan.

        Parameters
        ----------
        terms : LoanTerms
            Financial terms of the loan.
        loan_id : str
            Identifier assigned to the loan by its repository.

        Returns
        -------
        list[ScheduleEntry]
            ``terms.term`` pending installments in due-date order, or an
            empty list when no valid installment amount can be determined.
        """
        amount_due = resolve_installment_amount(terms)
        if amount_due is None or terms.term <= 0:
            logger.error(
                "Could not calculate a valid payment amount for loan %s "
                "(payment_type=%s, interest_rate=%s, fixed_payment=%s, term=%s)",
                loan_id,
                terms.payment_type,
                terms.interest_rate,
                terms.fixed_payment,
                terms.term,
            )
            return []

        current = anchor_issue_date(terms.issue_date, self.anchor_hour)
        schedule = []

        for number in range(1, terms.term + 1):
            current = advance_period(current, terms.frequency)
            schedule.append(
                ScheduleEntry(
                    loan_id=loan_id,
                    installment_number=number,
                    due_date=current.date(),
                    amount_due=amount_due,
                )
            )

        logger.debug(
            "Generated %d %s installments of %s for loan %s",
            len(schedule),
            terms.frequency,
            amount_due,
            loan_id,
        )
        return schedule


def generate_schedule(
    terms: LoanTerms,
    loan_id: str,
    anchor_hour: int = DEFAULT_ANCHOR_HOUR,
) -> list[ScheduleEntry]:
    """Generate a loan schedule with a one-off :class:`ScheduleGenerator`."""
    return ScheduleGenerator(anchor_hour=anchor_hour).generate(terms, loan_id)

#!/usr/bin/env python3
"""Print the installment schedule of a single loan.

Examples
--------
Interest-rate loan::

    python scripts/generate_schedule.py --principal 1000 --rate 10 \
        --frequency MONTHLY --term 12 --issue-date 2023-10-01

Fixed-payment loan, also written to JSON::

    python scripts/generate_schedule.py --principal 500 --fixed-payment 50 \
        --frequency WEEKLY --term 12 --output-dir output
"""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from microlend.config import MicrolendConfig
from microlend.logging import setup_logging
from microlend.models import Loan, LoanFrequency, PaymentType
from microlend.schedule import ScheduleGenerator
from microlend.sinks import ConsoleSink, JsonFileSink

logger = logging.getLogger(__name__)


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value.replace(",", "."))
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None


def build_parser(config: MicrolendConfig) -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(description="Generate a loan installment schedule")
    parser.add_argument("--principal", type=_decimal, required=True, help="Amount lent")

    amount_group = parser.add_mutually_exclusive_group(required=True)
    amount_group.add_argument(
        "--rate",
        type=_decimal,
        help="Annual interest rate in percent (INTEREST_RATE loans)",
    )
    amount_group.add_argument(
        "--fixed-payment",
        type=_decimal,
        help="Amount of every installment (FIXED loans)",
    )

    parser.add_argument(
        "--frequency",
        type=str.upper,
        choices=[f.value for f in LoanFrequency],
        default=LoanFrequency.MONTHLY.value,
        help="Payment frequency (default: MONTHLY)",
    )
    parser.add_argument("--term", type=int, required=True, help="Number of installments")
    parser.add_argument(
        "--issue-date",
        type=date.fromisoformat,
        default=date.today(),
        help="Issue date as YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--loan-id", default="preview", help="Loan identifier to print")
    parser.add_argument(
        "--anchor-hour",
        type=int,
        default=config.schedule.anchor_hour_utc,
        help=f"UTC hour issue dates are anchored at (default: {config.schedule.anchor_hour_utc})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Also write the schedule as JSON to this directory",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        default=config.output.pretty_json,
        help="Pretty-print JSON output",
    )
    parser.add_argument("--log-level", default=config.log_level, help="Log level")
    return parser


def main() -> int:
    """Main entry point."""
    config = MicrolendConfig.from_env()
    args = build_parser(config).parse_args()
    setup_logging(args.log_level)

    payment_type = PaymentType.FIXED if args.fixed_payment is not None else PaymentType.INTEREST_RATE
    loan = Loan(
        loan_id=args.loan_id,
        client_id="-",
        principal=args.principal,
        payment_type=payment_type,
        frequency=LoanFrequency(args.frequency),
        issue_date=args.issue_date,
        term=args.term,
        interest_rate=args.rate,
        fixed_payment=args.fixed_payment,
    )

    schedule = ScheduleGenerator(anchor_hour=args.anchor_hour).generate(loan.terms, loan.loan_id)
    if not schedule:
        logger.error("Could not calculate payment schedule - check interest rate and term")
        return 1

    console = ConsoleSink(currency_symbol=config.schedule.currency_symbol)
    console.write_schedule(loan, schedule)

    if args.output_dir is not None:
        sink = JsonFileSink(args.output_dir, pretty=args.pretty)
        sink.write_batch("loans", [loan])
        sink.write_batch("loan_schedules", schedule)
        sink.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Console sink for inspecting loans and schedules."""

import json
from typing import Any

from microlend.formatters import format_currency, format_date
from microlend.models import Loan, ScheduleEntry
from microlend.sinks.serialization import to_dict


class ConsoleSink:
    """Print records and schedules to stdout."""

    def __init__(
        self,
        pretty: bool = True,
        max_records: int | None = None,
        currency_symbol: str = "$",
    ) -> None:
        """Initialize console sink.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        max_records : int | None
            Maximum records to print per batch (None for all).
        currency_symbol : str
            Symbol used in schedule tables.
        """
        self.pretty = pretty
        self.max_records = max_records
        self.currency_symbol = currency_symbol
        self._counts: dict[str, int] = {}

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to console."""
        print(f"\n{'='*60}")
        print(f"Entity: {entity_type} ({len(records)} records)")
        print("=" * 60)

        display_records = records[: self.max_records] if self.max_records else records

        for record in display_records:
            data = to_dict(record)
            if self.pretty:
                print(json.dumps(data, indent=2, ensure_ascii=False))
            else:
                print(json.dumps(data, ensure_ascii=False))

        if self.max_records and len(records) > self.max_records:
            print(f"... and {len(records) - self.max_records} more records")

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(records)

    def write_schedule(self, loan: Loan, entries: list[ScheduleEntry]) -> None:
        """Print a loan's installments as a table."""
        print(f"\n{'='*60}")
        print(
            f"Loan {loan.loan_id}: {format_currency(loan.principal, self.currency_symbol)} "
            f"{loan.frequency.value} x {loan.term}, issued {format_date(loan.issue_date)}"
        )
        print("=" * 60)
        print(f"{'#':>4}  {'Due date':<10}  {'Amount due':>14}  {'Paid':>14}  Status")

        display_entries = entries[: self.max_records] if self.max_records else entries
        for entry in display_entries:
            print(
                f"{entry.installment_number:>4}  "
                f"{format_date(entry.due_date):<10}  "
                f"{format_currency(entry.amount_due, self.currency_symbol):>14}  "
                f"{format_currency(entry.amount_paid, self.currency_symbol):>14}  "
                f"{entry.status.value}"
            )

        if self.max_records and len(entries) > self.max_records:
            print(f"... and {len(entries) - self.max_records} more installments")

        total = sum(e.amount_due for e in entries)
        print(f"Total due: {format_currency(total, self.currency_symbol)}")

        self._counts["loan_schedules"] = self._counts.get("loan_schedules", 0) + len(entries)

    def close(self) -> None:
        """Print summary and close."""
        print(f"\n{'='*60}")
        print("Console Sink Summary")
        print("=" * 60)
        for entity_type, count in self._counts.items():
            print(f"  {entity_type}: {count} records")

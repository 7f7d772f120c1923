"""Amortization and installment schedule engine."""

from microlend.schedule.amortization import (
    calculate_installment_amount,
    resolve_installment_amount,
    round_currency,
)
from microlend.schedule.generator import ScheduleGenerator, generate_schedule
from microlend.schedule.periods import PERIODS_PER_YEAR, advance_period, anchor_issue_date
from microlend.schedule.preview import preview_installment

__all__ = [
    "PERIODS_PER_YEAR",
    "ScheduleGenerator",
    "advance_period",
    "anchor_issue_date",
    "calculate_installment_amount",
    "generate_schedule",
    "preview_installment",
    "resolve_installment_amount",
    "round_currency",
]

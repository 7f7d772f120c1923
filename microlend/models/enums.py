"""Enumeration types for lending entities."""

from enum import Enum


class LoanFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"  # semi-monthly: 15-day step, 24 periods per year
    MONTHLY = "MONTHLY"


class PaymentType(str, Enum):
    FIXED = "FIXED"
    INTEREST_RATE = "INTEREST_RATE"


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class ScheduleStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"

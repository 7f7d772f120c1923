"""Payment model."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass
class Payment:
    """Money received against a loan."""

    payment_id: str
    loan_id: str
    amount: Decimal
    payment_date: date
    recorded_by: str  # employee ID
    installment_number: int | None = None
    created_at: datetime | None = None

"""Client model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Client:
    """Borrower entity."""

    client_id: str
    name: str
    phone: str
    address: str
    id_document: str | None = None
    occupation: str | None = None
    created_at: datetime | None = None

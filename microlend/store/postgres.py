"""PostgreSQL loan repository backed by psycopg."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import fields
from datetime import datetime
from enum import Enum
from typing import Any, Iterator

from microlend.exceptions import EntityNotFoundError, ReferentialIntegrityError, RepositoryError
from microlend.models import (
    Client,
    Loan,
    LoanFrequency,
    LoanStatus,
    Payment,
    PaymentType,
    ScheduleEntry,
    ScheduleStatus,
)
from microlend.store.base import LoanRepository

logger = logging.getLogger(__name__)

DDL = """
CREATE TABLE IF NOT EXISTS clients (
    client_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    phone TEXT NOT NULL,
    address TEXT NOT NULL,
    id_document TEXT,
    occupation TEXT,
    created_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS loans (
    loan_id TEXT PRIMARY KEY,
    client_id TEXT NOT NULL REFERENCES clients(client_id),
    principal NUMERIC NOT NULL CHECK (principal > 0),
    payment_type TEXT NOT NULL,
    frequency TEXT NOT NULL,
    issue_date DATE NOT NULL,
    term INTEGER NOT NULL CHECK (term > 0),
    interest_rate NUMERIC,
    fixed_payment NUMERIC,
    status TEXT NOT NULL,
    employee_id TEXT,
    route_id TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS loan_schedules (
    loan_id TEXT NOT NULL REFERENCES loans(loan_id) ON DELETE CASCADE,
    installment_number INTEGER NOT NULL,
    due_date DATE NOT NULL,
    amount_due NUMERIC NOT NULL,
    amount_paid NUMERIC NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    payment_date DATE,
    PRIMARY KEY (loan_id, installment_number)
);

CREATE TABLE IF NOT EXISTS payments (
    payment_id TEXT PRIMARY KEY,
    loan_id TEXT NOT NULL REFERENCES loans(loan_id),
    amount NUMERIC NOT NULL,
    payment_date DATE NOT NULL,
    recorded_by TEXT NOT NULL,
    installment_number INTEGER,
    created_at TIMESTAMP,
    FOREIGN KEY (loan_id, installment_number)
        REFERENCES loan_schedules(loan_id, installment_number)
);

CREATE INDEX IF NOT EXISTS idx_loans_client_id ON loans(client_id);
CREATE INDEX IF NOT EXISTS idx_payments_loan_id ON payments(loan_id);
"""


class PostgresLoanStore(LoanRepository):
    """Loan repository persisting to PostgreSQL.

    Standalone writes commit immediately; writes inside
    :meth:`transaction` commit or roll back with the block.
    """

    TABLE_COLUMNS: dict[str, list[str]] = {
        "clients": [f.name for f in fields(Client)],
        "loans": [f.name for f in fields(Loan)],
        "loan_schedules": [f.name for f in fields(ScheduleEntry)],
        "payments": [f.name for f in fields(Payment)],
    }

    # Insert order that satisfies foreign keys
    ENTITY_ORDER = ["clients", "loans", "loan_schedules", "payments"]

    def __init__(self, connection_string: str) -> None:
        """Initialize PostgreSQL store.

        Parameters
        ----------
        connection_string : str
            PostgreSQL connection string.
        """
        try:
            import psycopg
        except ImportError as e:
            raise ImportError(
                "psycopg is required for PostgresLoanStore. "
                "Install with: pip install 'psycopg[binary]'"
            ) from e

        self._psycopg = psycopg
        self.connection_string = connection_string
        self.conn = psycopg.connect(connection_string)
        self._transaction_depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block in a database transaction (a savepoint when nested)."""
        self._transaction_depth += 1
        try:
            with self.conn.transaction():
                yield
        finally:
            self._transaction_depth -= 1

    def create_tables(self) -> None:
        """Create tables if they don't exist."""
        self._execute(DDL)
        logger.info("PostgreSQL tables ready")

    def truncate_tables(self) -> None:
        """Remove all rows from every table."""
        tables = ", ".join(reversed(self.ENTITY_ORDER))
        self._execute(f"TRUNCATE {tables}")
        logger.info("Truncated tables: %s", tables)

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()
        logger.debug("Closed PostgreSQL connection")

    def add_client(self, client: Client) -> None:
        """Insert a client."""
        if client.created_at is None:
            client.created_at = datetime.now()
        self._insert("clients", [client])

    def get_client(self, client_id: str) -> Client:
        """Get a client by ID."""
        row = self._fetch_one("clients", "client_id", client_id)
        if row is None:
            raise EntityNotFoundError(f"Client {client_id} not found")
        return Client(**row)

    def list_clients(self) -> list[Client]:
        """List all clients."""
        return [Client(**row) for row in self._fetch_all("clients", order_by="created_at")]

    def add_loan(self, loan: Loan) -> None:
        """Insert a loan."""
        if loan.created_at is None:
            loan.created_at = datetime.now()
        self._insert("loans", [loan])

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID."""
        row = self._fetch_one("loans", "loan_id", loan_id)
        if row is None:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return self._to_loan(row)

    def update_loan(self, loan: Loan) -> None:
        """Overwrite a stored loan."""
        loan.updated_at = datetime.now()
        columns = [c for c in self.TABLE_COLUMNS["loans"] if c != "loan_id"]
        assignments = ", ".join(f"{c} = %s" for c in columns)
        params = self._extract_row(loan, columns) + (loan.loan_id,)

        rowcount = self._execute(f"UPDATE loans SET {assignments} WHERE loan_id = %s", params)
        if rowcount == 0:
            raise EntityNotFoundError(f"Loan {loan.loan_id} not found")

    def list_loans(self, client_id: str | None = None) -> list[Loan]:
        """List loans, optionally filtered by client."""
        if client_id is None:
            rows = self._fetch_all("loans", order_by="created_at")
        else:
            rows = self._fetch_all("loans", "client_id", client_id, order_by="created_at")
        return [self._to_loan(row) for row in rows]

    def add_schedule(self, entries: list[ScheduleEntry]) -> None:
        """Insert schedule entries."""
        self._insert("loan_schedules", entries)

    def get_schedule(self, loan_id: str) -> list[ScheduleEntry]:
        """Get a loan's schedule ordered by installment number."""
        rows = self._fetch_all("loan_schedules", "loan_id", loan_id, order_by="installment_number")
        return [self._to_entry(row) for row in rows]

    def delete_schedule(self, loan_id: str) -> int:
        """Delete a loan's schedule."""
        return self._execute("DELETE FROM loan_schedules WHERE loan_id = %s", (loan_id,))

    def update_schedule_entries(self, entries: list[ScheduleEntry]) -> None:
        """Overwrite existing schedule entries."""
        if not entries:
            return
        columns = ["amount_due", "amount_paid", "status", "payment_date", "due_date"]
        assignments = ", ".join(f"{c} = %s" for c in columns)
        sql = (
            f"UPDATE loan_schedules SET {assignments} "
            "WHERE loan_id = %s AND installment_number = %s"
        )
        rows = [
            self._extract_row(e, columns) + (e.loan_id, e.installment_number) for e in entries
        ]
        self._execute_many(sql, rows)

    def add_payment(self, payment: Payment) -> None:
        """Insert a payment."""
        if payment.created_at is None:
            payment.created_at = datetime.now()
        self._insert("payments", [payment])

    def get_payments(self, loan_id: str) -> list[Payment]:
        """Get all payments for a loan."""
        rows = self._fetch_all("payments", "loan_id", loan_id, order_by="created_at")
        return [Payment(**row) for row in rows]

    def summary(self) -> dict[str, int]:
        """Get row counts per table."""
        keys = {"loan_schedules": "schedule_entries"}
        counts = {}
        for table in self.ENTITY_ORDER:
            rows = self._query(f"SELECT COUNT(*) FROM {table}")
            counts[keys.get(table, table)] = rows[0][0] if rows else 0
        return counts

    def _insert(self, table: str, records: list[Any]) -> None:
        if not records:
            return
        columns = self.TABLE_COLUMNS[table]
        placeholders = ", ".join(["%s"] * len(columns))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        self._execute_many(sql, [self._extract_row(r, columns) for r in records])

    def _extract_row(self, record: Any, columns: list[str]) -> tuple:
        """Extract column values from a dataclass record."""
        values = []
        for col in columns:
            value = getattr(record, col)
            if isinstance(value, Enum):
                value = value.value
            values.append(value)
        return tuple(values)

    def _execute(self, sql: str, params: tuple | None = None) -> int:
        """Run one statement and return the affected row count."""
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                rowcount = cur.rowcount
            self._commit()
            return rowcount
        except self._psycopg.Error as e:
            self._handle_error(e)

    def _execute_many(self, sql: str, rows: list[tuple]) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.executemany(sql, rows)
            self._commit()
        except self._psycopg.Error as e:
            self._handle_error(e)

    def _query(self, sql: str, params: tuple | None = None) -> list[tuple]:
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            self._commit()
            return rows
        except self._psycopg.Error as e:
            self._handle_error(e)

    def _fetch_one(self, table: str, key: str, value: Any) -> dict[str, Any] | None:
        rows = self._fetch_all(table, key, value)
        return rows[0] if rows else None

    def _fetch_all(
        self,
        table: str,
        key: str | None = None,
        value: Any = None,
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        columns = self.TABLE_COLUMNS[table]
        sql = f"SELECT {', '.join(columns)} FROM {table}"
        params = None
        if key is not None:
            sql += f" WHERE {key} = %s"
            params = (value,)
        if order_by is not None:
            sql += f" ORDER BY {order_by}"
        return [dict(zip(columns, row)) for row in self._query(sql, params)]

    def _commit(self) -> None:
        # Inside transaction() the enclosing block owns the commit
        if self._transaction_depth == 0:
            self.conn.commit()

    def _handle_error(self, error: Exception) -> None:
        if self._transaction_depth == 0:
            self.conn.rollback()
        if isinstance(error, self._psycopg.errors.ForeignKeyViolation):
            raise ReferentialIntegrityError(str(error)) from error
        raise RepositoryError(f"PostgreSQL operation failed: {error}") from error

    @staticmethod
    def _to_loan(row: dict[str, Any]) -> Loan:
        row["payment_type"] = PaymentType(row["payment_type"])
        row["frequency"] = LoanFrequency(row["frequency"])
        row["status"] = LoanStatus(row["status"])
        return Loan(**row)

    @staticmethod
    def _to_entry(row: dict[str, Any]) -> ScheduleEntry:
        row["status"] = ScheduleStatus(row["status"])
        return ScheduleEntry(**row)

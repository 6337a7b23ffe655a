"""PostgreSQL loan repository.

Reads the lender's tables directly (``Loan``, ``LoanPayment``, ``Borrower``,
``Employee``, ``PersonalData``, ``Address``, ``Location``, ``Route``). The
schema belongs to the admin application; this module only reads it and
writes ``Loan."badDebtDate"``.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

import psycopg
from psycopg.rows import dict_row

from bad_debt.exceptions import DataAccessError
from bad_debt.models.base import Address, Location, PersonalData
from bad_debt.models.portfolio import BadDebtStatus, Borrower, Lead, Loan, Payment, Route
from bad_debt.periods import as_utc
from bad_debt.store.base import LoanQuery

logger = logging.getLogger(__name__)

LOAN_SELECT = """
SELECT
    l.id AS loan_id,
    l."requestedAmount" AS requested_amount,
    l."amountGived" AS amount_gived,
    l."profitAmount" AS profit_amount,
    l."pendingAmountStored" AS pending_amount_stored,
    l."signDate" AS sign_date,
    l."badDebtDate" AS bad_debt_date,
    l."finishedDate" AS finished_date,
    lt.name AS loan_type,
    b.id AS borrower_id,
    bpd."fullName" AS borrower_name,
    bpd."clientCode" AS borrower_code,
    e.id AS lead_id,
    epd."fullName" AS lead_name,
    r.id AS route_id,
    r.name AS route_name,
    loc.id AS location_id,
    loc.name AS location_name
FROM "Loan" l
JOIN "Borrower" b ON b.id = l.borrower
LEFT JOIN "PersonalData" bpd ON bpd.id = b."personalData"
JOIN "Employee" e ON e.id = l.lead
LEFT JOIN "PersonalData" epd ON epd.id = e."personalData"
LEFT JOIN "Route" r ON r.id = e.routes
LEFT JOIN "Loantype" lt ON lt.id = l.loantype
LEFT JOIN LATERAL (
    SELECT a.location
    FROM "Address" a
    WHERE a."personalData" = epd.id
    ORDER BY a.id
    LIMIT 1
) first_address ON TRUE
LEFT JOIN "Location" loc ON loc.id = first_address.location
"""

PAYMENT_SELECT = """
SELECT id, loan, amount, "receivedAt" AS received_at, "createdAt" AS created_at
FROM "LoanPayment"
WHERE loan = ANY(%s)
ORDER BY COALESCE("receivedAt", "createdAt")
"""

PAYMENT_SUM = """
SELECT loan, COALESCE(SUM(amount), 0) AS total
FROM "LoanPayment"
WHERE loan = ANY(%s)
GROUP BY loan
"""

MARK_BAD_DEBT = """
UPDATE "Loan"
SET "badDebtDate" = %s, "updatedAt" = NOW()
WHERE id = ANY(%s) AND "badDebtDate" IS NULL
"""

ROUTE_SELECT = 'SELECT id, name FROM "Route" ORDER BY name'


def build_where(query: LoanQuery) -> tuple[str, list[Any]]:
    """Translate a ``LoanQuery`` into a WHERE clause and its parameters."""
    clauses = ['l."finishedDate" IS NULL', 'l."pendingAmountStored" > 0']
    params: list[Any] = []

    if query.route_id is not None:
        clauses.append("e.routes = %s")
        params.append(query.route_id)
    if query.signed_on_or_before is not None:
        clauses.append('l."signDate" <= %s')
        params.append(query.signed_on_or_before)
    if query.signed_on_or_after is not None:
        clauses.append('l."signDate" >= %s')
        params.append(query.signed_on_or_after)

    if query.status == BadDebtStatus.MARKED:
        clauses.append('l."badDebtDate" IS NOT NULL')
        if query.marked_from is not None:
            clauses.append('l."badDebtDate" >= %s')
            params.append(query.marked_from)
        if query.marked_to is not None:
            clauses.append('l."badDebtDate" <= %s')
            params.append(query.marked_to)
    elif query.status == BadDebtStatus.UNMARKED:
        if query.unmarked_as_of is not None:
            clauses.append('(l."badDebtDate" IS NULL OR l."badDebtDate" > %s)')
            params.append(query.unmarked_as_of)
        else:
            clauses.append('l."badDebtDate" IS NULL')

    return "WHERE " + " AND ".join(clauses), params


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _instant(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def loan_from_row(row: dict[str, Any], payments: list[Payment]) -> Loan:
    """Build a ``Loan`` from one joined row."""
    route = Route(route_id=row["route_id"], name=row["route_name"] or "") if row["route_id"] else None
    addresses = []
    if row["location_id"]:
        addresses.append(
            Address(
                address_id="",
                location=Location(location_id=row["location_id"], name=row["location_name"] or ""),
            )
        )
    lead = Lead(
        lead_id=row["lead_id"],
        personal_data=PersonalData(full_name=row["lead_name"] or "", addresses=addresses),
        route=route,
    )
    borrower = Borrower(
        borrower_id=row["borrower_id"],
        personal_data=PersonalData(
            full_name=row["borrower_name"] or "",
            client_code=row["borrower_code"] or "",
        ),
    )
    return Loan(
        loan_id=row["loan_id"],
        borrower=borrower,
        lead=lead,
        amount_gived=_decimal(row["amount_gived"]),
        profit_amount=_decimal(row["profit_amount"]),
        pending_amount_stored=_decimal(row["pending_amount_stored"]),
        sign_date=as_utc(row["sign_date"]),
        requested_amount=_decimal(row["requested_amount"]) if row["requested_amount"] is not None else None,
        loan_type=row["loan_type"],
        bad_debt_date=_instant(row["bad_debt_date"]),
        finished_date=_instant(row["finished_date"]),
        payments=payments,
    )


def payment_from_row(row: dict[str, Any]) -> Payment:
    return Payment(
        payment_id=row["id"],
        loan_id=row["loan"],
        amount=_decimal(row["amount"]),
        created_at=as_utc(row["created_at"]),
        received_at=_instant(row["received_at"]),
    )


class PostgresLoanRepository:
    """``LoanRepository`` over a psycopg connection.

    Parameters
    ----------
    conn : psycopg.Connection
        Open connection using the ``dict_row`` row factory.
    """

    def __init__(self, conn: psycopg.Connection) -> None:
        self.conn = conn

    @classmethod
    def connect(cls, conninfo: str) -> "PostgresLoanRepository":
        """Open a connection and wrap it."""
        try:
            conn = psycopg.connect(conninfo, row_factory=dict_row)
        except psycopg.Error as e:
            raise DataAccessError(f"Could not connect to PostgreSQL: {e}") from e
        return cls(conn)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "PostgresLoanRepository":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _fetch(self, sql: str, params: list[Any] | tuple[Any, ...]) -> list[dict[str, Any]]:
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchall()

    def query_loans(self, query: LoanQuery) -> list[Loan]:
        """Loans matching ``query`` with their payments (two round trips)."""
        where, params = build_where(query)
        sql = f'{LOAN_SELECT}{where}\nORDER BY l."signDate" ASC'
        try:
            with self.conn.transaction():
                loan_rows = self._fetch(sql, params)
                loan_ids = [row["loan_id"] for row in loan_rows]
                payment_rows = self._fetch(PAYMENT_SELECT, (loan_ids,)) if loan_ids else []
        except psycopg.Error as e:
            raise DataAccessError(f"Loan query failed: {e}") from e

        ledger: dict[str, list[Payment]] = {loan_id: [] for loan_id in loan_ids}
        for row in payment_rows:
            ledger.setdefault(row["loan"], []).append(payment_from_row(row))

        logger.debug("Fetched %d loans and %d payments", len(loan_rows), len(payment_rows))
        return [loan_from_row(row, ledger[row["loan_id"]]) for row in loan_rows]

    def sum_payments(self, loan_ids: Iterable[str]) -> dict[str, Decimal]:
        """Grouped payment total per loan, in one aggregate query."""
        ids = list(loan_ids)
        if not ids:
            return {}
        try:
            with self.conn.transaction():
                rows = self._fetch(PAYMENT_SUM, (ids,))
        except psycopg.Error as e:
            raise DataAccessError(f"Payment aggregate failed: {e}") from e
        return {row["loan"]: _decimal(row["total"]) for row in rows}

    def mark_bad_debt(self, loan_ids: Iterable[str], bad_debt_date: datetime) -> int:
        """Conditional bulk update; rows already marked match nothing."""
        ids = list(loan_ids)
        if not ids:
            return 0
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(MARK_BAD_DEBT, (as_utc(bad_debt_date), ids))
                    updated = cur.rowcount
        except psycopg.Error as e:
            raise DataAccessError(f"Marking loans failed: {e}") from e
        return max(updated, 0)

    def list_routes(self) -> list[Route]:
        try:
            with self.conn.transaction():
                rows = self._fetch(ROUTE_SELECT, ())
        except psycopg.Error as e:
            raise DataAccessError(f"Route query failed: {e}") from e
        return [Route(route_id=row["id"], name=row["name"] or "") for row in rows]

"""Per-loan report rows shared by the read operations."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from bad_debt.engine.amortization import (
    ZERO,
    Amortization,
    amortize,
    last_payment_on_or_before,
    weeks_since_loan,
    weeks_without_payment,
)
from bad_debt.models.portfolio import Loan, LoanStanding
from bad_debt.periods import as_utc


@dataclass
class LoanRow:
    """One loan as shown in a dead-debt listing or drill-down.

    Week counters are taken at ``weeks_evaluated_at``; amounts at
    ``amounts_evaluated_at``. Both instants coincide except in the snapshot
    listing, where marked loans are valued at their marking date.
    """

    id: str
    borrower_name: str
    borrower_code: str
    lead_name: str
    locality: str
    route: str
    loan_type: str | None
    requested_amount: Decimal | None
    amount_gived: Decimal
    profit_amount: Decimal
    pending_amount_stored: Decimal
    sign_date: datetime
    bad_debt_date: datetime | None
    status: LoanStanding
    weeks_since_loan: int
    weeks_without_payment: int
    last_payment_date: datetime | None
    payment_count: int
    total_paid: Decimal
    profit_recognized: Decimal
    profit_still_to_collect: Decimal
    bad_debt_candidate: Decimal
    weeks_evaluated_at: datetime
    amounts_evaluated_at: datetime


def build_row(
    loan: Loan,
    weeks_at: datetime,
    amounts_at: datetime | None = None,
) -> tuple[LoanRow, Amortization]:
    """Row for ``loan``; amounts default to the same instant as the weeks."""
    weeks_at = as_utc(weeks_at)
    amounts = amortize(loan, amounts_at or weeks_at)
    if amounts.evaluation_date == weeks_at:
        since, without = amounts.weeks_since_loan, amounts.weeks_without_payment
    else:
        since, without = weeks_since_loan(loan, weeks_at), weeks_without_payment(loan, weeks_at)

    row = LoanRow(
        id=loan.loan_id,
        borrower_name=loan.borrower.full_name,
        borrower_code=loan.borrower.client_code,
        lead_name=loan.lead.full_name,
        locality=loan.locality,
        route=loan.lead.route_name,
        loan_type=loan.loan_type,
        requested_amount=loan.requested_amount,
        amount_gived=loan.amount_gived,
        profit_amount=loan.profit_amount,
        pending_amount_stored=loan.pending_amount_stored,
        sign_date=as_utc(loan.sign_date),
        bad_debt_date=as_utc(loan.bad_debt_date) if loan.bad_debt_date else None,
        status=LoanStanding.DEAD if loan.is_marked else LoanStanding.ACTIVE,
        weeks_since_loan=since,
        weeks_without_payment=without,
        last_payment_date=last_payment_on_or_before(loan, weeks_at),
        payment_count=len(loan.payments),
        total_paid=amounts.total_paid,
        profit_recognized=amounts.profit_recognized,
        profit_still_to_collect=amounts.profit_still_to_collect,
        bad_debt_candidate=amounts.bad_debt_candidate,
        weeks_evaluated_at=weeks_at,
        amounts_evaluated_at=amounts.evaluation_date,
    )
    return row, amounts


@dataclass
class Totals:
    """Grand totals over a set of rows."""

    loan_count: int = 0
    total_pending_amount: Decimal = ZERO
    total_bad_debt_candidate: Decimal = ZERO

    @classmethod
    def of(cls, rows: Iterable[LoanRow]) -> "Totals":
        totals = cls()
        for row in rows:
            totals.loan_count += 1
            totals.total_pending_amount += row.pending_amount_stored
            totals.total_bad_debt_candidate += row.bad_debt_candidate
        return totals

"""Snapshot classifier: dead-debt candidates as of now.

The listing values marked loans at their marking date and unmarked loans at
now, within the same list.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from bad_debt.engine.amortization import ZERO
from bad_debt.engine.criteria import DeadDebtCriteria, build_loan_query, select_loans
from bad_debt.engine.locality import filter_by_localities, group_by_locality
from bad_debt.engine.rows import LoanRow, Totals, build_row
from bad_debt.logging import get_logger
from bad_debt.models.portfolio import EvaluationMode, Loan
from bad_debt.periods import as_utc
from bad_debt.store.base import LoanRepository

logger = get_logger(__name__)


@dataclass
class DeadDebtListing:
    """Result of ``loansForDeadDebt``."""

    evaluation_date: datetime
    loans: list[LoanRow] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)


@dataclass
class LocalitySummary:
    locality: str
    loan_count: int = 0
    total_pending: Decimal = ZERO
    total_paid: Decimal = ZERO


@dataclass
class SummaryTotals:
    loan_count: int = 0
    total_pending: Decimal = ZERO
    total_paid: Decimal = ZERO


@dataclass
class DeadDebtSummary:
    """Result of ``deadDebtSummary``."""

    evaluation_date: datetime
    summary: list[LocalitySummary] = field(default_factory=list)
    totals: SummaryTotals = field(default_factory=SummaryTotals)


def classify_snapshot(
    repository: LoanRepository,
    criteria: DeadDebtCriteria,
    now: datetime,
) -> list[Loan]:
    """Loans matching ``criteria`` at ``now``, ordered by sign date.

    One storage round trip (the repository embeds each loan's payments),
    then the exact filter and the locality filter in memory.
    """
    now = as_utc(now)
    query = build_loan_query(criteria, now, EvaluationMode.SNAPSHOT)
    fetched = repository.query_loans(query)
    selected = select_loans(fetched, criteria, now, EvaluationMode.SNAPSHOT)
    selected = filter_by_localities(selected, criteria.localities)
    logger.debug(
        "Snapshot classified %d of %d fetched loans",
        len(selected),
        len(fetched),
        extra={"extra": {"fetched": len(fetched), "selected": len(selected)}},
    )
    return sorted(selected, key=lambda loan: as_utc(loan.sign_date))


def build_listing(loans: list[Loan], now: datetime) -> DeadDebtListing:
    """Rows for the snapshot listing.

    Weeks are always counted at ``now``. Amounts are valued at the marking
    date for marked loans and at ``now`` otherwise.
    """
    now = as_utc(now)
    rows = []
    for loan in loans:
        amounts_at = loan.bad_debt_date if loan.bad_debt_date is not None else now
        row, _ = build_row(loan, weeks_at=now, amounts_at=amounts_at)
        rows.append(row)
    return DeadDebtListing(evaluation_date=now, loans=rows, totals=Totals.of(rows))


def summarize_by_locality(
    loans: list[Loan],
    paid_by_loan: dict[str, Decimal],
    now: datetime,
) -> DeadDebtSummary:
    """Group loans by locality with their pending balance and ledger total.

    ``paid_by_loan`` comes from one grouped aggregate over the whole ledger;
    it is not the date-bounded amortization total.
    """
    groups = []
    totals = SummaryTotals()
    for locality, members in group_by_locality(loans).items():
        entry = LocalitySummary(locality=locality)
        for loan in members:
            entry.loan_count += 1
            entry.total_pending += loan.pending_amount_stored
            entry.total_paid += paid_by_loan.get(loan.loan_id, ZERO)
        totals.loan_count += entry.loan_count
        totals.total_pending += entry.total_pending
        totals.total_paid += entry.total_paid
        groups.append(entry)
    return DeadDebtSummary(evaluation_date=as_utc(now), summary=groups, totals=totals)

"""Historical backtest of the dead-debt classification.

``run_backtest`` replays the classification at every month-end of a year.
A loan counts in the first month it qualifies and is excluded from every
later month, so the monthly figures add up to the yearly figure without
double counting. Months must therefore be processed in ascending order.

``marked_in_month`` is the other historical read: what was actually marked
during one month, without any de-duplication.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from bad_debt.engine.amortization import ZERO
from bad_debt.engine.criteria import DeadDebtCriteria, build_loan_query, select_loans
from bad_debt.engine.locality import filter_by_localities, group_by_locality
from bad_debt.engine.rows import LoanRow, Totals, build_row
from bad_debt.logging import get_logger
from bad_debt.models.portfolio import BadDebtStatus, EvaluationMode, Loan
from bad_debt.periods import MONTH_NAMES, as_utc, month_end, month_start, validate_month
from bad_debt.store.base import LoanQuery, LoanRepository

logger = get_logger(__name__)


@dataclass
class MonthSummary:
    """Loans first qualifying at one month-end."""

    month: int
    month_name: str
    evaluation_date: datetime
    evaluated: bool = True
    total_loans: int = 0
    total_pending_amount: Decimal = ZERO
    total_bad_debt_candidate: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_profit_recognized: Decimal = ZERO
    total_clients: int = 0
    total_routes: int = 0
    loans: list[LoanRow] = field(default_factory=list)


@dataclass
class YearSummary:
    total_loans: int = 0
    total_pending_amount: Decimal = ZERO
    total_bad_debt_candidate: Decimal = ZERO
    total_clients: int = 0
    months_with_loans: int = 0


@dataclass
class RouteRef:
    id: str
    name: str


@dataclass
class MonthlyBacktest:
    """Result of ``deadDebtMonthlySummary``."""

    year: int
    criteria: dict[str, Any]
    months: list[MonthSummary] = field(default_factory=list)
    year_summary: YearSummary = field(default_factory=YearSummary)
    routes: list[RouteRef] = field(default_factory=list)


def backtest_query(criteria: DeadDebtCriteria, year: int) -> LoanQuery:
    """Single storage query covering every month-end of ``year``."""
    return build_loan_query(
        criteria,
        month_end(year, 12),
        EvaluationMode.BACKTEST,
        window_start=month_end(year, 1),
    )


def evaluate_month(
    pool: list[Loan],
    criteria: DeadDebtCriteria,
    year: int,
    month: int,
    processed: set[str],
) -> MonthSummary:
    """Classify one month-end and add the qualifying ids to ``processed``."""
    evaluation_date = month_end(year, month)
    candidates = [
        loan
        for loan in pool
        if loan.loan_id not in processed and as_utc(loan.sign_date) <= evaluation_date
    ]
    qualifying = select_loans(candidates, criteria, evaluation_date, EvaluationMode.BACKTEST)
    qualifying = filter_by_localities(qualifying, criteria.localities)

    summary = MonthSummary(
        month=month,
        month_name=MONTH_NAMES[month - 1],
        evaluation_date=evaluation_date,
    )
    clients = set()
    routes = set()
    for loan in qualifying:
        row, amounts = build_row(loan, evaluation_date)
        summary.loans.append(row)
        summary.total_loans += 1
        summary.total_pending_amount += loan.pending_amount_stored
        summary.total_bad_debt_candidate += amounts.bad_debt_candidate
        summary.total_paid += amounts.total_paid
        summary.total_profit_recognized += amounts.profit_recognized
        clients.add(row.borrower_code)
        routes.add(row.route)
        processed.add(loan.loan_id)
    summary.total_clients = len(clients)
    summary.total_routes = len(routes)
    return summary


def run_backtest(
    loans: list[Loan],
    criteria: DeadDebtCriteria,
    year: int,
    now: datetime,
) -> tuple[list[MonthSummary], YearSummary]:
    """Replay the classification over the twelve month-ends of ``year``.

    Parameters
    ----------
    loans : list[Loan]
        Loans fetched with ``backtest_query``.
    criteria : DeadDebtCriteria
        Criteria re-evaluated at every month-end.
    year : int
        Target year.
    now : datetime
        Months starting after this instant have no data yet and are
        reported empty with ``evaluated=False``.

    Returns
    -------
    tuple[list[MonthSummary], YearSummary]
        Twelve month summaries in calendar order, and the yearly rollup.
    """
    now = as_utc(now)
    pool = sorted(loans, key=lambda loan: as_utc(loan.sign_date))
    processed: set[str] = set()
    months = []
    year_clients = set()
    rollup = YearSummary()

    for month in range(1, 13):
        if month_start(year, month) > now:
            months.append(
                MonthSummary(
                    month=month,
                    month_name=MONTH_NAMES[month - 1],
                    evaluation_date=month_end(year, month),
                    evaluated=False,
                )
            )
            continue

        summary = evaluate_month(pool, criteria, year, month, processed)
        months.append(summary)
        rollup.total_loans += summary.total_loans
        rollup.total_pending_amount += summary.total_pending_amount
        rollup.total_bad_debt_candidate += summary.total_bad_debt_candidate
        year_clients.update(row.borrower_code for row in summary.loans)
        if summary.total_loans:
            rollup.months_with_loans += 1

    rollup.total_clients = len(year_clients)
    logger.debug(
        "Backtest %d: %d loans across %d months",
        year,
        rollup.total_loans,
        rollup.months_with_loans,
        extra={"extra": {"year": year, "total_loans": rollup.total_loans}},
    )
    return months, rollup


def monthly_backtest(
    repository: LoanRepository,
    criteria: DeadDebtCriteria,
    year: int,
    now: datetime,
) -> MonthlyBacktest:
    """Fetch once for the whole year, then backtest month by month."""
    validate_month(year, 1)
    loans = repository.query_loans(backtest_query(criteria, year))
    months, rollup = run_backtest(loans, criteria, year, now)
    routes = [RouteRef(id=r.route_id, name=r.name) for r in repository.list_routes()]
    return MonthlyBacktest(
        year=year,
        criteria=criteria.to_dict(),
        months=months,
        year_summary=rollup,
        routes=routes,
    )


@dataclass
class LocalityMarkings:
    locality: str
    loan_count: int = 0
    total_pending_amount: Decimal = ZERO
    total_bad_debt_candidate: Decimal = ZERO
    loans: list[LoanRow] = field(default_factory=list)


@dataclass
class MarkedInMonth:
    """Result of ``deadDebtByMonth``."""

    year: int
    month: int
    month_name: str
    period_start: datetime
    period_end: datetime
    localities: list[LocalityMarkings] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)


def marked_in_month(
    repository: LoanRepository,
    year: int,
    month: int,
    route_id: str | None = None,
    localities: list[str] | None = None,
) -> MarkedInMonth:
    """Loans whose bad-debt date falls in ``(year, month)``, grouped by locality.

    Each loan is valued at its own bad-debt date.
    """
    validate_month(year, month)
    start, end = month_start(year, month), month_end(year, month)
    query = LoanQuery(
        route_id=route_id or None,
        status=BadDebtStatus.MARKED,
        marked_from=start,
        marked_to=end,
    )
    loans = [loan for loan in repository.query_loans(query) if query.matches(loan)]
    loans = filter_by_localities(loans, localities)

    report = MarkedInMonth(
        year=year,
        month=month,
        month_name=MONTH_NAMES[month - 1],
        period_start=start,
        period_end=end,
    )
    for locality, members in group_by_locality(loans).items():
        entry = LocalityMarkings(locality=locality)
        for loan in sorted(members, key=lambda item: as_utc(item.bad_debt_date)):
            row, amounts = build_row(loan, loan.bad_debt_date)
            entry.loans.append(row)
            entry.loan_count += 1
            entry.total_pending_amount += loan.pending_amount_stored
            entry.total_bad_debt_candidate += amounts.bad_debt_candidate
        report.localities.append(entry)
    report.totals = Totals.of(row for entry in report.localities for row in entry.loans)
    return report

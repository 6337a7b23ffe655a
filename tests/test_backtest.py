"""Tests for the month-by-month backtest and the recorded-marking report."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

import pytest

from bad_debt.engine.backtest import backtest_query, marked_in_month, monthly_backtest, run_backtest
from bad_debt.engine.criteria import DeadDebtCriteria
from bad_debt.exceptions import InvalidCriteriaError
from bad_debt.models.portfolio import BadDebtStatus, Loan
from bad_debt.periods import month_end
from bad_debt.store.memory import PortfolioStore


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
def stale_loans(make_loan: Callable[..., Loan], make_lead) -> list[Loan]:
    """Loans that stop paying at different points of 2024."""
    return [
        # Never pays: 7 weeks without payment at the end of February
        make_loan("feb", sign_date=utc(2024, 1, 5)),
        # Never pays: 7 weeks at the end of March
        make_loan("mar", sign_date=utc(2024, 2, 10), lead=make_lead("lead-2", "Calkiní")),
        # Pays until June 29: 4 weeks without payment at the end of July
        make_loan(
            "jul",
            sign_date=utc(2024, 5, 1),
            payments=[(utc(2024, 5, 15), "100"), (utc(2024, 6, 1), "100"), (utc(2024, 6, 29), "100")],
        ),
    ]


class TestRunBacktest:
    """Tests for run_backtest."""

    def test_each_loan_counted_once(self, stale_loans: list[Loan], now: datetime) -> None:
        criteria = DeadDebtCriteria(weeks_without_payment_min=4)

        months, rollup = run_backtest(stale_loans, criteria, 2024, now)

        per_month = {m.month: [row.id for row in m.loans] for m in months if m.loans}
        assert per_month == {2: ["feb"], 3: ["mar"], 7: ["jul"]}
        assert sum(m.total_loans for m in months) == 3
        assert rollup.total_loans == 3
        assert rollup.months_with_loans == 3
        assert rollup.total_clients == 3

    def test_month_totals(self, stale_loans: list[Loan], now: datetime) -> None:
        criteria = DeadDebtCriteria(weeks_without_payment_min=4)

        months, rollup = run_backtest(stale_loans, criteria, 2024, now)
        july = months[6]

        assert july.month_name == "Julio"
        assert july.evaluation_date == month_end(2024, 7)
        assert july.total_pending_amount == Decimal("600")
        assert july.total_bad_debt_candidate == Decimal("500")
        assert july.total_paid == Decimal("300")
        assert july.total_routes == 1
        assert rollup.total_bad_debt_candidate == Decimal("1500")

    def test_twelve_months_in_order(self, stale_loans: list[Loan], now: datetime) -> None:
        months, _ = run_backtest(stale_loans, DeadDebtCriteria(), 2024, now)

        assert [m.month for m in months] == list(range(1, 13))
        assert all(m.evaluated for m in months)

    def test_future_months_not_evaluated(self, stale_loans: list[Loan]) -> None:
        months, rollup = run_backtest(stale_loans, DeadDebtCriteria(), 2024, utc(2024, 6, 15))

        assert [m.evaluated for m in months] == [True] * 6 + [False] * 6
        assert all(m.total_loans == 0 for m in months[6:])
        assert rollup.total_loans == 3

    def test_loan_not_counted_before_signing(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        loan = make_loan("late", sign_date=utc(2024, 9, 3))

        months, _ = run_backtest([loan], DeadDebtCriteria(bad_debt_status=BadDebtStatus.ALL), 2024, now)

        assert [m.month for m in months if m.total_loans] == [9]

    def test_locality_filter_applied_per_month(self, stale_loans: list[Loan], now: datetime) -> None:
        criteria = DeadDebtCriteria(weeks_without_payment_min=4, localities=("Calkiní",))

        months, rollup = run_backtest(stale_loans, criteria, 2024, now)

        assert rollup.total_loans == 1
        assert months[2].loans[0].locality == "Calkiní"

    def test_marked_loan_leaves_unmarked_pool(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        marked = make_loan("marked", sign_date=utc(2024, 1, 10), bad_debt_date=utc(2024, 3, 1))
        criteria = DeadDebtCriteria(weeks_without_payment_min=8)

        months, _ = run_backtest([marked], criteria, 2024, now)

        assert all(m.total_loans == 0 for m in months)

    def test_marked_status_counts_from_marking_month(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        marked = make_loan("marked", sign_date=utc(2024, 1, 10), bad_debt_date=utc(2024, 3, 1))
        criteria = DeadDebtCriteria(bad_debt_status=BadDebtStatus.MARKED)

        months, _ = run_backtest([marked], criteria, 2024, now)

        assert [m.month for m in months if m.total_loans] == [3]


class TestMonthlyBacktest:
    """Tests for monthly_backtest over a store."""

    def test_fetches_and_lists_routes(
        self,
        portfolio: PortfolioStore,
        add_loan: Callable[[Loan], Loan],
        stale_loans: list[Loan],
        now: datetime,
    ) -> None:
        for loan in stale_loans:
            add_loan(loan)
        criteria = DeadDebtCriteria(weeks_without_payment_min=4)

        result = monthly_backtest(portfolio, criteria, 2024, now)

        assert result.year == 2024
        assert result.year_summary.total_loans == 3
        assert [(r.id, r.name) for r in result.routes] == [("route-1", "Ruta Norte")]
        assert result.criteria["weeksWithoutPaymentMin"] == 4

    def test_query_covers_whole_year(self) -> None:
        query = backtest_query(DeadDebtCriteria(), 2024)

        assert query.signed_on_or_before == month_end(2024, 12)
        assert query.unmarked_as_of == month_end(2024, 1)


class TestMarkedInMonth:
    """Tests for marked_in_month."""

    def test_groups_loans_marked_in_month(
        self,
        portfolio: PortfolioStore,
        add_loan: Callable[[Loan], Loan],
        make_loan: Callable[..., Loan],
    ) -> None:
        lead_2 = portfolio.leads["lead-2"]
        add_loan(make_loan("a", sign_date=utc(2024, 1, 10), bad_debt_date=utc(2024, 3, 1)))
        add_loan(make_loan("b", sign_date=utc(2024, 1, 12), bad_debt_date=utc(2024, 3, 20), lead=lead_2))
        add_loan(make_loan("c", sign_date=utc(2024, 1, 12), bad_debt_date=utc(2024, 4, 1)))
        add_loan(make_loan("d", sign_date=utc(2024, 1, 12)))

        report = marked_in_month(portfolio, 2024, 3)

        assert report.month_name == "Marzo"
        assert [entry.locality for entry in report.localities] == ["Calkiní", "Campeche"]
        assert report.totals.loan_count == 2
        assert report.totals.total_bad_debt_candidate == Decimal("1000")

    def test_valued_at_marking_date(
        self,
        portfolio: PortfolioStore,
        add_loan: Callable[[Loan], Loan],
        make_loan: Callable[..., Loan],
    ) -> None:
        add_loan(
            make_loan(
                "a",
                sign_date=utc(2024, 1, 10),
                bad_debt_date=utc(2024, 3, 1),
                payments=[(utc(2024, 1, 17), "120"), (utc(2024, 3, 15), "120")],
            )
        )

        row = marked_in_month(portfolio, 2024, 3).localities[0].loans[0]

        assert row.total_paid == Decimal("120")
        assert row.amounts_evaluated_at == utc(2024, 3, 1)
        assert row.weeks_without_payment == 6

    def test_closed_loans_excluded(
        self,
        portfolio: PortfolioStore,
        add_loan: Callable[[Loan], Loan],
        make_loan: Callable[..., Loan],
    ) -> None:
        add_loan(make_loan("zero", pending="0", bad_debt_date=utc(2024, 3, 5)))

        assert marked_in_month(portfolio, 2024, 3).totals.loan_count == 0

    def test_route_and_locality_filters(
        self,
        portfolio: PortfolioStore,
        add_loan: Callable[[Loan], Loan],
        make_loan: Callable[..., Loan],
    ) -> None:
        add_loan(make_loan("a", bad_debt_date=utc(2024, 3, 1)))
        add_loan(make_loan("b", bad_debt_date=utc(2024, 3, 2), lead=portfolio.leads["lead-3"]))

        assert marked_in_month(portfolio, 2024, 3, route_id="route-1").totals.loan_count == 1
        assert marked_in_month(portfolio, 2024, 3, localities=["Sin localidad"]).totals.loan_count == 1

    def test_invalid_month(self, portfolio: PortfolioStore) -> None:
        with pytest.raises(InvalidCriteriaError, match="month"):
            marked_in_month(portfolio, 2024, 13)

"""Tests for the profit amortization calculator."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable

from bad_debt.engine.amortization import (
    amortize,
    last_payment_on_or_before,
    prorate_profit,
    weeks_since_loan,
    weeks_without_payment,
)
from bad_debt.models.portfolio import Loan, Payment
from bad_debt.periods import month_end, weeks_between


class TestProrateProfit:
    """Tests for prorate_profit."""

    def test_uses_profit_ratio(self, make_loan: Callable[..., Loan]) -> None:
        loan = make_loan(amount_gived="1000", profit_amount="200")

        assert prorate_profit(loan, Decimal("600")) == Decimal("100")

    def test_zero_total_is_zero(self, make_loan: Callable[..., Loan]) -> None:
        loan = make_loan(amount_gived="0", profit_amount="0", pending="100")

        assert prorate_profit(loan, Decimal("100")) == 0


class TestAmortize:
    """Tests for amortize."""

    def test_unpaid_loan_ten_weeks_old(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        """1000 lent with 200 profit, 600 pending, signed 10 weeks ago."""
        loan = make_loan(sign_date=now - timedelta(weeks=10))

        result = amortize(loan, now)

        assert result.weeks_since_loan == 10
        assert result.weeks_without_payment == 10
        assert result.profit_still_to_collect == Decimal("100")
        assert result.bad_debt_candidate == Decimal("500")
        assert result.total_to_pay == Decimal("1200")
        assert result.last_payment_date is None

    def test_no_profit_candidate_is_pending(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        loan = make_loan(amount_gived="3000", profit_amount="0", pending="1750.50")

        result = amortize(loan, now)

        assert result.bad_debt_candidate == Decimal("1750.50")
        assert result.profit_still_to_collect == 0

    def test_candidate_never_negative(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        """Overpaid loans (negative pending) give a zero candidate."""
        loan = make_loan(
            pending="-50",
            payments=[(now - timedelta(weeks=2), "1250")],
        )

        result = amortize(loan, now)

        assert result.bad_debt_candidate == 0
        assert result.total_paid == Decimal("1250")

    def test_zero_total_guard(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        loan = make_loan(amount_gived="0", profit_amount="0", pending="100")

        result = amortize(loan, now)

        assert result.bad_debt_candidate == 0
        assert result.profit_still_to_collect == 0

    def test_counts_payments_up_to_evaluation(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        loan = make_loan(
            pending="600",
            payments=[
                (now - timedelta(weeks=8), "300"),
                (now - timedelta(weeks=6), "300"),
                (now + timedelta(days=1), "120"),
            ],
        )

        result = amortize(loan, now)

        assert result.total_paid == Decimal("600")
        assert result.profit_recognized == Decimal("100")
        assert result.principal_recovered == Decimal("500")
        assert result.weeks_without_payment == 6
        assert result.last_payment_date == now - timedelta(weeks=6)

    def test_payments_sorted_before_accumulating(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        loan = make_loan(
            payments=[
                (now - timedelta(weeks=1), "120"),
                (now - timedelta(weeks=9), "120"),
            ],
        )

        result = amortize(loan, now - timedelta(weeks=5))

        assert result.total_paid == Decimal("120")
        assert result.weeks_without_payment == 4

    def test_pending_is_current_balance_at_past_instants(
        self, make_loan: Callable[..., Loan], now: datetime
    ) -> None:
        loan = make_loan(sign_date=datetime(2024, 1, 10), pending="600")

        result = amortize(loan, month_end(2024, 3))

        assert result.bad_debt_candidate == Decimal("500")

    def test_received_at_falls_back_to_created_at(
        self, make_loan: Callable[..., Loan], now: datetime
    ) -> None:
        loan = make_loan()
        loan.payments.append(
            Payment(
                payment_id="p-1",
                loan_id=loan.loan_id,
                amount=Decimal("60"),
                created_at=now - timedelta(weeks=3),
            )
        )

        assert last_payment_on_or_before(loan, now) == now - timedelta(weeks=3)
        assert weeks_without_payment(loan, now) == 3


class TestWeekCounters:
    """Tests for the floored week counters."""

    def test_floor(self, now: datetime) -> None:
        assert weeks_between(now - timedelta(days=13), now) == 1
        assert weeks_between(now - timedelta(days=14), now) == 2

    def test_weeks_since_loan(self, make_loan: Callable[..., Loan], now: datetime) -> None:
        loan = make_loan(sign_date=now - timedelta(weeks=3, days=6))

        assert weeks_since_loan(loan, now) == 3

    def test_without_payment_falls_back_to_sign_date(
        self, make_loan: Callable[..., Loan], now: datetime
    ) -> None:
        loan = make_loan(
            sign_date=now - timedelta(weeks=5),
            payments=[(now + timedelta(days=2), "100")],
        )

        assert weeks_without_payment(loan, now) == 5

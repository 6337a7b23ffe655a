"""Tests for the sample portfolio generator."""

from datetime import datetime
from decimal import Decimal

import pytest

from bad_debt.generators import PaymentBehavior, PortfolioGenerator
from bad_debt.models.base import Location
from bad_debt.models.portfolio import Loan
from bad_debt.store.memory import PortfolioStore


@pytest.fixture
def generator(seed: int) -> PortfolioGenerator:
    return PortfolioGenerator(seed=seed)


def _loan(generator: PortfolioGenerator, now: datetime, behavior: PaymentBehavior) -> Loan:
    route = generator.generate_route()
    lead = generator.generate_lead(route, Location(location_id="loc-1", name="Campeche"))
    return generator.generate_loan(generator.generate_borrower(), lead, now, behavior)


class TestPortfolioGenerator:
    """Tests for PortfolioGenerator."""

    def test_generate_route(self, generator: PortfolioGenerator) -> None:
        route = generator.generate_route()

        assert route.route_id
        assert route.name.startswith("Ruta ")

    def test_generate_borrower(self, generator: PortfolioGenerator) -> None:
        borrower = generator.generate_borrower()

        assert borrower.full_name
        assert len(borrower.client_code) == 6
        assert borrower.client_code == borrower.client_code.upper()

    def test_lead_lives_in_locality(self, generator: PortfolioGenerator, now: datetime) -> None:
        loan = _loan(generator, now, PaymentBehavior.REGULAR)

        assert loan.locality == "Campeche"
        assert loan.lead.route is not None

    @pytest.mark.parametrize("behavior", list(PaymentBehavior))
    def test_pending_matches_ledger(
        self, generator: PortfolioGenerator, now: datetime, behavior: PaymentBehavior
    ) -> None:
        loan = _loan(generator, now, behavior)
        paid = sum((p.amount for p in loan.payments), Decimal("0"))

        assert loan.pending_amount_stored == loan.total_to_pay - paid
        assert loan.sign_date < now
        assert all(p.paid_at <= now for p in loan.payments)

    def test_never_paid(self, generator: PortfolioGenerator, now: datetime) -> None:
        loan = _loan(generator, now, PaymentBehavior.NEVER)

        assert loan.payments == []
        assert loan.is_open

    def test_paid_off_is_finished(self, generator: PortfolioGenerator, now: datetime) -> None:
        loan = _loan(generator, now, PaymentBehavior.PAID_OFF)

        assert loan.pending_amount_stored == 0
        assert loan.finished_date is not None
        assert not loan.is_open

    def test_loan_type_terms(self, generator: PortfolioGenerator, now: datetime) -> None:
        loan = _loan(generator, now, PaymentBehavior.REGULAR)
        weeks, rate = PortfolioGenerator.LOAN_TYPES[loan.loan_type]

        assert loan.profit_amount == (loan.amount_gived * rate).quantize(Decimal("0.01"))
        assert len(loan.payments) <= weeks

    def test_generate_portfolio(self, generator: PortfolioGenerator, now: datetime) -> None:
        store = generator.generate_portfolio(num_routes=2, localities_per_route=2, loans_per_lead=5, reference_date=now)

        summary = store.summary()
        assert summary["routes"] == 2
        assert summary["leads"] == 4
        assert summary["loans"] == 20
        assert summary["borrowers"] == 20
        assert summary["payments"] == sum(len(loan.payments) for loan in store.loans.values())
        assert len({loan.locality for loan in store.loans.values()}) == 4

    def test_populates_given_store(self, generator: PortfolioGenerator, now: datetime) -> None:
        store = PortfolioStore()

        result = generator.generate_portfolio(num_routes=1, localities_per_route=1, loans_per_lead=2, reference_date=now, store=store)

        assert result is store
        assert len(store.loans) == 2

    def test_seed_reproducible(self, seed: int, now: datetime) -> None:
        first = PortfolioGenerator(seed=seed).generate_portfolio(num_routes=1, reference_date=now)
        second = PortfolioGenerator(seed=seed).generate_portfolio(num_routes=1, reference_date=now)

        assert list(first.loans) == list(second.loans)
        assert [loan.pending_amount_stored for loan in first.loans.values()] == [
            loan.pending_amount_stored for loan in second.loans.values()
        ]

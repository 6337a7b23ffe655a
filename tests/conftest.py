"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

import pytest

from bad_debt.models.base import Address, Location, PersonalData
from bad_debt.models.portfolio import Borrower, Lead, Loan, Payment, Route
from bad_debt.store.memory import PortfolioStore

NOW = datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant."""
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock always returning the fixed instant."""
    return lambda: NOW


@pytest.fixture
def route() -> Route:
    """Sample route."""
    return Route(route_id="route-1", name="Ruta Norte")


@pytest.fixture
def make_lead(route: Route) -> Callable[..., Lead]:
    """Factory for leads living in a given locality."""

    def _make(lead_id: str = "lead-1", locality: str | None = "Campeche", lead_route: Route | None = route) -> Lead:
        addresses = []
        if locality is not None:
            addresses.append(
                Address(address_id=f"addr-{lead_id}", location=Location(location_id=f"loc-{locality}", name=locality))
            )
        return Lead(
            lead_id=lead_id,
            personal_data=PersonalData(full_name=f"Lider {lead_id}", addresses=addresses),
            route=lead_route,
        )

    return _make


@pytest.fixture
def make_loan(make_lead: Callable[..., Lead]) -> Callable[..., Loan]:
    """Factory for loans; ``payments`` is a list of ``(paid_at, amount)`` pairs."""

    def _make(
        loan_id: str = "loan-1",
        amount_gived: str = "1000",
        profit_amount: str = "200",
        pending: str = "600",
        sign_date: datetime = NOW - timedelta(weeks=10),
        lead: Lead | None = None,
        payments: list[tuple[datetime, str]] | None = None,
        bad_debt_date: datetime | None = None,
        finished_date: datetime | None = None,
        client_code: str | None = None,
    ) -> Loan:
        borrower = Borrower(
            borrower_id=f"borrower-{loan_id}",
            personal_data=PersonalData(
                full_name=f"Cliente {loan_id}",
                client_code=client_code or f"CL-{loan_id}",
            ),
        )
        return Loan(
            loan_id=loan_id,
            borrower=borrower,
            lead=lead or make_lead(),
            amount_gived=Decimal(amount_gived),
            profit_amount=Decimal(profit_amount),
            pending_amount_stored=Decimal(pending),
            sign_date=sign_date,
            bad_debt_date=bad_debt_date,
            finished_date=finished_date,
            payments=[
                Payment(
                    payment_id=f"{loan_id}-pay-{i}",
                    loan_id=loan_id,
                    amount=Decimal(amount),
                    created_at=paid_at,
                    received_at=paid_at,
                )
                for i, (paid_at, amount) in enumerate(payments or [])
            ],
        )

    return _make


@pytest.fixture
def portfolio(route: Route, make_lead: Callable[..., Lead]) -> PortfolioStore:
    """Store with one route and leads in two localities plus one without address."""
    store = PortfolioStore()
    store.add_route(route)
    store.add_lead(make_lead("lead-1", "Campeche"))
    store.add_lead(make_lead("lead-2", "Calkiní"))
    store.add_lead(make_lead("lead-3", None, None))
    return store


@pytest.fixture
def add_loan(portfolio: PortfolioStore) -> Callable[[Loan], Loan]:
    """Register a loan (and its borrower) in the ``portfolio`` store."""

    def _add(loan: Loan) -> Loan:
        if loan.borrower.borrower_id not in portfolio.borrowers:
            portfolio.add_borrower(loan.borrower)
        portfolio.add_loan(loan)
        return loan

    return _add

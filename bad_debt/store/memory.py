"""In-memory portfolio store with referential integrity."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from bad_debt.exceptions import InvalidEntityStateError, ReferentialIntegrityError
from bad_debt.models.portfolio import Borrower, Lead, Loan, Payment, Route
from bad_debt.periods import as_utc
from bad_debt.store.base import LoanQuery


@dataclass
class PortfolioStore:
    """In-memory loan repository with relationship tracking.

    Implements ``LoanRepository``. Loans hold their own payment ledger;
    the store keeps the indexes used by the queries.
    """

    # Primary entities
    routes: dict[str, Route] = field(default_factory=dict)
    leads: dict[str, Lead] = field(default_factory=dict)
    borrowers: dict[str, Borrower] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)

    # Ledger
    payments: list[Payment] = field(default_factory=list)

    # Relationship indexes
    _route_leads: dict[str, list[str]] = field(default_factory=dict)
    _lead_loans: dict[str, list[str]] = field(default_factory=dict)
    _borrower_loans: dict[str, list[str]] = field(default_factory=dict)

    def add_route(self, route: Route) -> None:
        """Add a route to the store."""
        self.routes[route.route_id] = route
        self._route_leads.setdefault(route.route_id, [])

    def add_lead(self, lead: Lead) -> None:
        """Add a lead to the store."""
        if lead.route is not None and lead.route.route_id not in self.routes:
            raise ReferentialIntegrityError(f"Route {lead.route.route_id} not found")

        self.leads[lead.lead_id] = lead
        self._lead_loans[lead.lead_id] = []
        if lead.route is not None:
            self._route_leads[lead.route.route_id].append(lead.lead_id)

    def add_borrower(self, borrower: Borrower) -> None:
        """Add a borrower to the store."""
        self.borrowers[borrower.borrower_id] = borrower
        self._borrower_loans[borrower.borrower_id] = []

    def add_loan(self, loan: Loan) -> None:
        """Add a loan (and any payments it already carries) to the store."""
        if loan.lead.lead_id not in self.leads:
            raise ReferentialIntegrityError(f"Lead {loan.lead.lead_id} not found")

        if loan.borrower.borrower_id not in self.borrowers:
            raise ReferentialIntegrityError(f"Borrower {loan.borrower.borrower_id} not found")

        self.loans[loan.loan_id] = loan
        self._lead_loans[loan.lead.lead_id].append(loan.loan_id)
        self._borrower_loans[loan.borrower.borrower_id].append(loan.loan_id)
        self.payments.extend(loan.payments)

    def add_payment(self, payment: Payment) -> None:
        """Append a payment to its loan's ledger."""
        if payment.loan_id not in self.loans:
            raise ReferentialIntegrityError(f"Loan {payment.loan_id} not found")

        loan = self.loans[payment.loan_id]
        if loan.finished_date is not None:
            raise InvalidEntityStateError(f"Loan {payment.loan_id} is already finished")

        loan.payments.append(payment)
        self.payments.append(payment)

    # LoanRepository
    def query_loans(self, query: LoanQuery) -> list[Loan]:
        """Loans matching ``query`` ordered by sign date."""
        matched = [loan for loan in self.loans.values() if query.matches(loan)]
        return sorted(matched, key=lambda loan: as_utc(loan.sign_date))

    def sum_payments(self, loan_ids: Iterable[str]) -> dict[str, Decimal]:
        """Total paid per loan over the whole ledger."""
        wanted = set(loan_ids)
        totals: dict[str, Decimal] = {}
        for payment in self.payments:
            if payment.loan_id in wanted:
                totals[payment.loan_id] = totals.get(payment.loan_id, Decimal("0")) + payment.amount
        return totals

    def mark_bad_debt(self, loan_ids: Iterable[str], bad_debt_date: datetime) -> int:
        """Mark unmarked loans; already-marked and unknown ids are skipped."""
        updated = 0
        for loan_id in dict.fromkeys(loan_ids):
            loan = self.loans.get(loan_id)
            if loan is None or loan.bad_debt_date is not None:
                continue
            loan.bad_debt_date = as_utc(bad_debt_date)
            updated += 1
        return updated

    def list_routes(self) -> list[Route]:
        return sorted(self.routes.values(), key=lambda route: route.name)

    # Query methods
    def get_route_leads(self, route_id: str) -> list[Lead]:
        """Get all leads on a route."""
        return [self.leads[lid] for lid in self._route_leads.get(route_id, [])]

    def get_lead_loans(self, lead_id: str) -> list[Loan]:
        """Get all loans managed by a lead."""
        return [self.loans[lid] for lid in self._lead_loans.get(lead_id, [])]

    def get_borrower_loans(self, borrower_id: str) -> list[Loan]:
        """Get all loans of a borrower."""
        return [self.loans[lid] for lid in self._borrower_loans.get(borrower_id, [])]

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "routes": len(self.routes),
            "leads": len(self.leads),
            "borrowers": len(self.borrowers),
            "loans": len(self.loans),
            "payments": len(self.payments),
            "marked_loans": sum(1 for loan in self.loans.values() if loan.is_marked),
        }

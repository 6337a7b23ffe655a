"""Loan models for the microfinance portfolio."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from bad_debt.models.base import MISSING_CLIENT_CODE, MISSING_NAME, PersonalData

MISSING_ROUTE = "Sin ruta"


@dataclass
class Route:
    """Collection route grouping leads."""

    route_id: str
    name: str


@dataclass
class Lead:
    """Employee who manages a group of loans in a locality."""

    lead_id: str
    personal_data: PersonalData
    route: Route | None = None

    @property
    def locality(self) -> str:
        return self.personal_data.locality

    @property
    def route_id(self) -> str | None:
        return self.route.route_id if self.route else None

    @property
    def route_name(self) -> str:
        return self.route.name if self.route else MISSING_ROUTE

    @property
    def full_name(self) -> str:
        return self.personal_data.full_name or MISSING_NAME


@dataclass
class Borrower:
    """Client who received a loan."""

    borrower_id: str
    personal_data: PersonalData

    @property
    def full_name(self) -> str:
        return self.personal_data.full_name or MISSING_NAME

    @property
    def client_code(self) -> str:
        return self.personal_data.client_code or MISSING_CLIENT_CODE


@dataclass
class Payment:
    """Payment received against a loan (append-only ledger entry)."""

    payment_id: str
    loan_id: str
    amount: Decimal
    created_at: datetime
    received_at: datetime | None = None

    @property
    def paid_at(self) -> datetime:
        """Instant the payment counts from (received, else recorded)."""
        return self.received_at or self.created_at


@dataclass
class Loan:
    """Loan contract with its payment ledger.

    ``pending_amount_stored`` is the outstanding balance (principal plus
    profit) as maintained by payment recording; it is never recomputed here.
    """

    loan_id: str
    borrower: Borrower
    lead: Lead
    amount_gived: Decimal  # Disbursed principal
    profit_amount: Decimal  # Total expected profit
    pending_amount_stored: Decimal
    sign_date: datetime
    requested_amount: Decimal | None = None
    loan_type: str | None = None
    bad_debt_date: datetime | None = None
    finished_date: datetime | None = None
    payments: list[Payment] = field(default_factory=list)

    @property
    def total_to_pay(self) -> Decimal:
        return self.amount_gived + self.profit_amount

    @property
    def is_marked(self) -> bool:
        return self.bad_debt_date is not None

    @property
    def is_open(self) -> bool:
        """Not finished and still owing money; only open loans are candidates."""
        return self.finished_date is None and self.pending_amount_stored > 0

    @property
    def locality(self) -> str:
        return self.lead.locality

"""Sample microfinance portfolio generator."""

import random
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from bad_debt.generators.base import BaseGenerator
from bad_debt.models.base import Address, Location, PersonalData
from bad_debt.models.portfolio import Borrower, Lead, Loan, Payment, Route
from bad_debt.periods import as_utc, utc_now
from bad_debt.store.memory import PortfolioStore

CENT = Decimal("0.01")


class PaymentBehavior(str, Enum):
    """How a generated borrower pays."""

    REGULAR = "REGULAR"  # Pays every week up to the reference date
    STOPPED = "STOPPED"  # Paid a few weeks, then stopped
    NEVER = "NEVER"  # No payment at all
    PAID_OFF = "PAID_OFF"  # Paid everything; loan finished


class PortfolioGenerator(BaseGenerator):
    """Generate routes, leads, borrowers and weekly-paid loans."""

    LOAN_TYPES = {
        # name: (week duration, profit rate)
        "14 semanas/40%": (14, Decimal("0.40")),
        "20 semanas/60%": (20, Decimal("0.60")),
        "10 semanas/0%": (10, Decimal("0")),
    }

    BEHAVIOR_WEIGHTS = {
        PaymentBehavior.REGULAR: 0.55,
        PaymentBehavior.STOPPED: 0.25,
        PaymentBehavior.NEVER: 0.10,
        PaymentBehavior.PAID_OFF: 0.10,
    }

    def generate_route(self) -> Route:
        return Route(route_id=self.fake.uuid4(), name=f"Ruta {self.fake.unique.random_int(1, 999)}")

    def generate_lead(self, route: Route, locality: Location) -> Lead:
        return Lead(
            lead_id=self.fake.uuid4(),
            personal_data=PersonalData(
                full_name=self.fake.name(),
                addresses=[
                    Address(address_id=self.fake.uuid4(), location=locality, street=self.fake.street_address())
                ],
            ),
            route=route,
        )

    def generate_borrower(self) -> Borrower:
        return Borrower(
            borrower_id=self.fake.uuid4(),
            personal_data=PersonalData(
                full_name=self.fake.name(),
                client_code=self.fake.unique.bothify("??####").upper(),
            ),
        )

    def generate_loan(
        self,
        borrower: Borrower,
        lead: Lead,
        reference_date: datetime,
        behavior: PaymentBehavior | None = None,
    ) -> Loan:
        """Generate a loan signed within the last year, with its payments.

        Parameters
        ----------
        borrower : Borrower
            Borrower of the loan.
        lead : Lead
            Lead managing the loan.
        reference_date : datetime
            "Now" for the generated ledger; no payment is dated after it.
        behavior : PaymentBehavior | None
            Payment behavior; drawn at random when omitted.

        Returns
        -------
        Loan
            Loan whose stored pending amount matches its ledger.
        """
        reference_date = as_utc(reference_date)
        if behavior is None:
            behavior = random.choices(
                list(self.BEHAVIOR_WEIGHTS), weights=list(self.BEHAVIOR_WEIGHTS.values()), k=1
            )[0]

        loan_type = random.choice(list(self.LOAN_TYPES))
        weeks, rate = self.LOAN_TYPES[loan_type]
        requested = Decimal(random.randint(6, 40) * 500)
        profit = (requested * rate).quantize(CENT, rounding=ROUND_HALF_UP)
        total = requested + profit
        sign_date = reference_date - timedelta(days=random.randint(7, 365))

        loan = Loan(
            loan_id=self.fake.uuid4(),
            borrower=borrower,
            lead=lead,
            amount_gived=requested,
            profit_amount=profit,
            pending_amount_stored=total,
            sign_date=sign_date,
            requested_amount=requested,
            loan_type=loan_type,
        )

        weekly = (total / weeks).quantize(CENT, rounding=ROUND_HALF_UP)
        elapsed_weeks = (reference_date - sign_date) // timedelta(weeks=1)
        if behavior == PaymentBehavior.NEVER:
            paid_weeks = 0
        elif behavior == PaymentBehavior.STOPPED:
            paid_weeks = random.randint(0, max(0, min(elapsed_weeks, weeks) - 1))
        elif behavior == PaymentBehavior.PAID_OFF:
            paid_weeks = weeks
        else:
            paid_weeks = min(elapsed_weeks, weeks)

        paid = Decimal("0")
        for week in range(1, paid_weeks + 1):
            amount = min(weekly, total - paid)
            if amount <= 0:
                break
            paid_at = min(sign_date + timedelta(weeks=week, hours=random.randint(8, 18)), reference_date)
            loan.payments.append(
                Payment(
                    payment_id=self.fake.uuid4(),
                    loan_id=loan.loan_id,
                    amount=amount,
                    created_at=paid_at,
                    received_at=paid_at,
                )
            )
            paid += amount

        if behavior == PaymentBehavior.PAID_OFF and paid < total:
            remainder = total - paid
            loan.payments.append(
                Payment(
                    payment_id=self.fake.uuid4(),
                    loan_id=loan.loan_id,
                    amount=remainder,
                    created_at=reference_date,
                    received_at=reference_date,
                )
            )
            paid = total

        loan.pending_amount_stored = max(Decimal("0"), total - paid)
        if loan.pending_amount_stored == 0:
            loan.finished_date = loan.payments[-1].paid_at if loan.payments else reference_date
        return loan

    def generate_portfolio(
        self,
        num_routes: int = 3,
        localities_per_route: int = 3,
        loans_per_lead: int = 10,
        reference_date: datetime | None = None,
        store: PortfolioStore | None = None,
    ) -> PortfolioStore:
        """Populate a store with a complete sample portfolio.

        Each locality has one lead; each loan has its own borrower.
        """
        reference_date = as_utc(reference_date) if reference_date else utc_now()
        store = store if store is not None else PortfolioStore()

        for _ in range(num_routes):
            route = self.generate_route()
            store.add_route(route)
            for _ in range(localities_per_route):
                locality = Location(location_id=self.fake.uuid4(), name=self.fake.unique.city())
                lead = self.generate_lead(route, locality)
                store.add_lead(lead)
                for _ in range(loans_per_lead):
                    borrower = self.generate_borrower()
                    store.add_borrower(borrower)
                    store.add_loan(self.generate_loan(borrower, lead, reference_date))

        return store

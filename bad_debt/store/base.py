"""Repository contract consumed by the engine."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol

from bad_debt.models.portfolio import BadDebtStatus, Loan, Route
from bad_debt.periods import as_utc


@dataclass(frozen=True)
class LoanQuery:
    """Storage-level loan predicate.

    Every repository applies the same semantics; ``matches`` is the
    reference implementation and the in-memory store uses it directly.
    Open loans only (not finished, pending balance above zero) are always
    selected.

    Bad-debt status:

    - ``ALL``: no constraint.
    - ``MARKED``: ``bad_debt_date`` set and inside ``[marked_from, marked_to]``
      (each bound optional).
    - ``UNMARKED``: ``bad_debt_date`` unset, or later than ``unmarked_as_of``
      when that is given.
    """

    route_id: str | None = None
    signed_on_or_before: datetime | None = None
    signed_on_or_after: datetime | None = None
    status: BadDebtStatus = BadDebtStatus.ALL
    marked_from: datetime | None = None
    marked_to: datetime | None = None
    unmarked_as_of: datetime | None = None

    def matches(self, loan: Loan) -> bool:
        if not loan.is_open:
            return False
        if self.route_id is not None and loan.lead.route_id != self.route_id:
            return False
        sign_date = as_utc(loan.sign_date)
        if self.signed_on_or_before is not None and sign_date > self.signed_on_or_before:
            return False
        if self.signed_on_or_after is not None and sign_date < self.signed_on_or_after:
            return False
        return self._matches_status(loan)

    def _matches_status(self, loan: Loan) -> bool:
        if self.status == BadDebtStatus.ALL:
            return True
        if self.status == BadDebtStatus.MARKED:
            if loan.bad_debt_date is None:
                return False
            marked_at = as_utc(loan.bad_debt_date)
            if self.marked_from is not None and marked_at < self.marked_from:
                return False
            if self.marked_to is not None and marked_at > self.marked_to:
                return False
            return True
        if loan.bad_debt_date is None:
            return True
        return self.unmarked_as_of is not None and as_utc(loan.bad_debt_date) > self.unmarked_as_of


class LoanRepository(Protocol):
    """Read and bulk-update access to the loan portfolio."""

    def query_loans(self, query: LoanQuery) -> list[Loan]:
        """Loans matching ``query`` ordered by sign date, with full payment ledgers."""
        ...

    def sum_payments(self, loan_ids: Iterable[str]) -> dict[str, Decimal]:
        """Total paid per loan id (loans without payments may be absent)."""
        ...

    def mark_bad_debt(self, loan_ids: Iterable[str], bad_debt_date: datetime) -> int:
        """Set ``bad_debt_date`` on the given loans that are not marked yet.

        Returns the number of loans actually updated.
        """
        ...

    def list_routes(self) -> list[Route]:
        ...

"""Locality and route resolution.

The route is a plain column on the lead and is pushed down to storage
through ``LoanQuery.route_id``. The locality is four hops away (lead ->
personal data -> first address -> location), so it is matched in memory
on the name the repository already embedded in each loan.
"""

from collections import defaultdict
from typing import Iterable

from bad_debt.models.portfolio import Loan


def locality_of(loan: Loan) -> str:
    """Locality name of the loan's lead (first address is canonical)."""
    return loan.lead.locality


def locality_filter(localities: Iterable[str] | None):
    """Build a predicate keeping loans whose lead's locality is listed.

    An empty or absent list keeps every loan.
    """
    wanted = frozenset(name.strip() for name in (localities or ()) if name and name.strip())
    if not wanted:
        return lambda loan: True
    return lambda loan: locality_of(loan) in wanted


def filter_by_localities(loans: Iterable[Loan], localities: Iterable[str] | None) -> list[Loan]:
    keep = locality_filter(localities)
    return [loan for loan in loans if keep(loan)]


def group_by_locality(loans: Iterable[Loan]) -> dict[str, list[Loan]]:
    """Group loans by locality name, sorted by name, preserving loan order."""
    groups: dict[str, list[Loan]] = defaultdict(list)
    for loan in loans:
        groups[locality_of(loan)].append(loan)
    return dict(sorted(groups.items()))


def known_localities(loans: Iterable[Loan]) -> list[str]:
    return sorted({locality_of(loan) for loan in loans})

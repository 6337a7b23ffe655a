"""Dead-debt classification engine."""

from bad_debt.engine.amortization import Amortization, amortize
from bad_debt.engine.criteria import DeadDebtCriteria, build_loan_query, matches_criteria
from bad_debt.engine.locality import filter_by_localities, locality_filter
from bad_debt.engine.results import Failure, OperationResult, Success
from bad_debt.engine.service import DeadDebtService

__all__ = [
    "Amortization",
    "DeadDebtCriteria",
    "DeadDebtService",
    "Failure",
    "OperationResult",
    "Success",
    "amortize",
    "build_loan_query",
    "filter_by_localities",
    "locality_filter",
    "matches_criteria",
]

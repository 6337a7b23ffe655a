"""Portfolio domain models."""

from bad_debt.models.portfolio.enums import BadDebtStatus, EvaluationMode, LoanStanding
from bad_debt.models.portfolio.loan import Borrower, Lead, Loan, Payment, Route

__all__ = [
    "BadDebtStatus",
    "Borrower",
    "EvaluationMode",
    "Lead",
    "Loan",
    "LoanStanding",
    "Payment",
    "Route",
]

"""Caller-facing dead-debt operations.

Every operation returns a JSON string whose ``success`` field tells the
caller whether it worked. Nothing raises past this boundary: invalid
arguments, repository failures and unexpected errors all become failure
payloads, and are logged here.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable

from bad_debt.config import ReportConfig
from bad_debt.engine.backtest import marked_in_month, monthly_backtest
from bad_debt.engine.criteria import DeadDebtCriteria
from bad_debt.engine.marking import mark_loans
from bad_debt.engine.results import Failure, OperationResult, Success
from bad_debt.engine.snapshot import build_listing, classify_snapshot, summarize_by_locality
from bad_debt.exceptions import BadDebtError, DataAccessError, InvalidCriteriaError
from bad_debt.logging import get_logger
from bad_debt.periods import as_utc, utc_now
from bad_debt.store.base import LoanRepository

EMPTY_LISTING = {
    "loans": [],
    "totals": {"loanCount": 0, "totalPendingAmount": 0, "totalBadDebtCandidate": 0},
}
EMPTY_SUMMARY = {"summary": [], "totals": {"loanCount": 0, "totalPending": 0, "totalPaid": 0}}
EMPTY_BY_MONTH = {
    "localities": [],
    "totals": {"loanCount": 0, "totalPendingAmount": 0, "totalBadDebtCandidate": 0},
}
EMPTY_MARKING = {"updatedCount": 0, "skippedCount": 0}


class DeadDebtService:
    """Dead-debt read and marking operations over a loan repository.

    Parameters
    ----------
    repository : LoanRepository
        Storage the operations read from and mark in.
    config : ReportConfig | None
        Report defaults (default status, large-fetch warning threshold).
    clock : Callable[[], datetime] | None
        Source of "now"; defaults to the current UTC time.
    logger : logging.Logger | None
        Logger to report failures and timings to.
    """

    def __init__(
        self,
        repository: LoanRepository,
        config: ReportConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repository = repository
        self.config = config or ReportConfig()
        self.clock = clock or utc_now
        self.logger = logger or get_logger(__name__)

    def now(self) -> datetime:
        return as_utc(self.clock())

    # Operations (JSON in the transport's shape)

    def loans_for_dead_debt(self, **args: Any) -> str:
        """Snapshot listing of candidate loans."""
        return self.run_loans_for_dead_debt(**args).to_json()

    def dead_debt_summary(self, **args: Any) -> str:
        """Snapshot totals grouped by locality."""
        return self.run_dead_debt_summary(**args).to_json()

    def dead_debt_monthly_summary(self, year: int, **args: Any) -> str:
        """Month-by-month backtest for ``year``."""
        return self.run_dead_debt_monthly_summary(year, **args).to_json()

    def dead_debt_by_month(self, year: int, month: int, **args: Any) -> str:
        """Loans actually marked during ``(year, month)``."""
        return self.run_dead_debt_by_month(year, month, **args).to_json()

    def mark_loans_dead_debt(self, loan_ids: Iterable[str], dead_debt_date: str) -> str:
        """Mark confirmed loans as bad debt."""
        return self.run_mark_loans_dead_debt(loan_ids, dead_debt_date).to_json()

    # Typed variants

    def run_loans_for_dead_debt(self, **args: Any) -> OperationResult:
        def listing():
            now = self.now()
            loans = classify_snapshot(self.repository, self._criteria(args), now)
            self._check_size("loansForDeadDebt", len(loans))
            return build_listing(loans, now)

        return self._guard("loansForDeadDebt", listing, EMPTY_LISTING)

    def run_dead_debt_summary(self, **args: Any) -> OperationResult:
        def summary():
            now = self.now()
            loans = classify_snapshot(self.repository, self._criteria(args), now)
            self._check_size("deadDebtSummary", len(loans))
            paid = self.repository.sum_payments([loan.loan_id for loan in loans]) if loans else {}
            return summarize_by_locality(loans, paid, now)

        return self._guard("deadDebtSummary", summary, EMPTY_SUMMARY)

    def run_dead_debt_monthly_summary(self, year: int, **args: Any) -> OperationResult:
        def backtest():
            return monthly_backtest(self.repository, self._criteria(args), year, self.now())

        empty = {"year": year, "months": [], "yearSummary": None, "routes": [], "criteria": None}
        return self._guard("deadDebtMonthlySummary", backtest, empty)

    def run_dead_debt_by_month(
        self,
        year: int,
        month: int,
        route_id: str | None = None,
        localities: Iterable[str] | None = None,
    ) -> OperationResult:
        def report():
            return marked_in_month(
                self.repository, year, month, route_id=route_id, localities=list(localities or ())
            )

        return self._guard("deadDebtByMonth", report, {"year": year, "month": month, **EMPTY_BY_MONTH})

    def run_mark_loans_dead_debt(self, loan_ids: Iterable[str], dead_debt_date: str) -> OperationResult:
        return self._guard(
            "markLoansDeadDebt",
            lambda: mark_loans(self.repository, loan_ids, dead_debt_date),
            EMPTY_MARKING,
        )

    # Helpers

    def _criteria(self, args: dict[str, Any]) -> DeadDebtCriteria:
        return DeadDebtCriteria.from_args(default_status=self.config.default_status, **args)

    def _check_size(self, operation: str, count: int) -> None:
        if count > self.config.large_fetch_warning:
            self.logger.warning(
                "%s selected %d loans (threshold %d)",
                operation,
                count,
                self.config.large_fetch_warning,
                extra={"extra": {"operation": operation, "count": count}},
            )

    def _guard(
        self,
        operation: str,
        compute: Callable[[], Any],
        empty: dict[str, Any],
    ) -> OperationResult:
        """Run ``compute`` and wrap its outcome in a success or failure envelope."""
        try:
            result = compute()
        except InvalidCriteriaError as e:
            self.logger.warning(
                "%s rejected: %s", operation, e, extra={"extra": {"operation": operation}}
            )
            return Failure(message=str(e), error_type=type(e).__name__, empty=empty)
        except DataAccessError as e:
            self.logger.error(
                "%s failed reading storage: %s", operation, e, extra={"extra": {"operation": operation}}
            )
            return Failure(message=str(e), error_type=type(e).__name__, empty=empty)
        except BadDebtError as e:
            self.logger.error("%s failed: %s", operation, e, extra={"extra": {"operation": operation}})
            return Failure(message=str(e), error_type=type(e).__name__, empty=empty)
        except Exception as e:
            self.logger.exception("%s failed unexpectedly", operation)
            return Failure(
                message=f"Unexpected error in {operation}",
                error_type=type(e).__name__,
                empty=empty,
            )
        return Success(result)

"""Dead-debt selection criteria and the two-phase filter built from them.

Phase one (``build_loan_query``) produces a coarse ``LoanQuery`` that the
repository evaluates in storage. It always selects a superset of the final
result. Phase two (``matches_criteria``) re-checks every loan exactly in
memory against an evaluation instant: week counters depend on the payment
ledger and, in backtests, on a month-end that changes per iteration.
Locality is a third, separate step (see ``locality``).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from bad_debt.engine.amortization import weeks_since_loan, weeks_without_payment
from bad_debt.exceptions import InvalidCriteriaError
from bad_debt.models.portfolio import BadDebtStatus, EvaluationMode, Loan
from bad_debt.periods import WEEK, as_utc, parse_instant
from bad_debt.store.base import LoanQuery


def parse_status(
    value: str | BadDebtStatus | None,
    default: BadDebtStatus = BadDebtStatus.UNMARKED,
) -> BadDebtStatus:
    """Parse a caller-supplied status; absent means ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, BadDebtStatus):
        return value
    try:
        return BadDebtStatus(value.strip().upper())
    except ValueError as e:
        allowed = ", ".join(s.value for s in BadDebtStatus)
        raise InvalidCriteriaError(f"badDebtStatus must be one of {allowed}, got {value!r}") from e


def _check_range(name: str, low: int | None, high: int | None) -> None:
    for bound, value in ((f"{name}Min", low), (f"{name}Max", high)):
        if value is not None and value < 0:
            raise InvalidCriteriaError(f"{bound} must not be negative, got {value}")
    if low is not None and high is not None and low > high:
        raise InvalidCriteriaError(f"{name}Min ({low}) is greater than {name}Max ({high})")


@dataclass(frozen=True)
class DeadDebtCriteria:
    """Which slice of the portfolio a dead-debt operation looks at.

    Week bounds are inclusive; ``None`` means unbounded and ``0`` is a real
    bound. ``from_date``/``to_date`` only narrow MARKED loans in snapshot mode.
    """

    weeks_since_loan_min: int | None = None
    weeks_since_loan_max: int | None = None
    weeks_without_payment_min: int | None = None
    weeks_without_payment_max: int | None = None
    bad_debt_status: BadDebtStatus = BadDebtStatus.UNMARKED
    from_date: datetime | None = None
    to_date: datetime | None = None
    route_id: str | None = None
    localities: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _check_range("weeksSinceLoan", self.weeks_since_loan_min, self.weeks_since_loan_max)
        _check_range(
            "weeksWithoutPayment", self.weeks_without_payment_min, self.weeks_without_payment_max
        )
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise InvalidCriteriaError("fromDate is later than toDate")

    @classmethod
    def from_args(
        cls,
        weeks_since_loan_min: int | None = None,
        weeks_since_loan_max: int | None = None,
        weeks_without_payment_min: int | None = None,
        weeks_without_payment_max: int | None = None,
        bad_debt_status: str | BadDebtStatus | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        route_id: str | None = None,
        localities: Iterable[str] | None = None,
        default_status: BadDebtStatus = BadDebtStatus.UNMARKED,
    ) -> "DeadDebtCriteria":
        """Build criteria from transport arguments (strings for status and dates)."""
        names = tuple(name.strip() for name in (localities or ()) if name and name.strip())
        return cls(
            weeks_since_loan_min=weeks_since_loan_min,
            weeks_since_loan_max=weeks_since_loan_max,
            weeks_without_payment_min=weeks_without_payment_min,
            weeks_without_payment_max=weeks_without_payment_max,
            bad_debt_status=parse_status(bad_debt_status, default_status),
            from_date=parse_instant(from_date, "fromDate") if from_date else None,
            to_date=parse_instant(to_date, "toDate") if to_date else None,
            route_id=route_id or None,
            localities=names,
        )

    def to_dict(self) -> dict[str, Any]:
        """Echo of the criteria in the callers' argument names."""
        return {
            "weeksSinceLoanMin": self.weeks_since_loan_min,
            "weeksSinceLoanMax": self.weeks_since_loan_max,
            "weeksWithoutPaymentMin": self.weeks_without_payment_min,
            "weeksWithoutPaymentMax": self.weeks_without_payment_max,
            "badDebtStatus": self.bad_debt_status,
            "fromDate": self.from_date,
            "toDate": self.to_date,
            "routeId": self.route_id,
            "localities": list(self.localities),
        }


def sign_date_bounds(
    criteria: DeadDebtCriteria, evaluation_date: datetime
) -> tuple[datetime | None, datetime | None]:
    """Convert the weeks-since-loan range into ``(signed_on_or_before, signed_after_or_at)``.

    ``weeks >= min`` holds exactly when the loan was signed at least ``min``
    weeks before the evaluation instant. For ``weeks <= max`` the bound is
    widened to ``max + 1`` weeks so flooring never drops a loan; the exact
    check happens in memory.
    """
    evaluation_date = as_utc(evaluation_date)
    on_or_before = None
    on_or_after = None
    if criteria.weeks_since_loan_min is not None:
        on_or_before = evaluation_date - criteria.weeks_since_loan_min * WEEK
    if criteria.weeks_since_loan_max is not None:
        on_or_after = evaluation_date - (criteria.weeks_since_loan_max + 1) * WEEK
    return on_or_before, on_or_after


def build_loan_query(
    criteria: DeadDebtCriteria,
    evaluation_date: datetime,
    mode: EvaluationMode = EvaluationMode.SNAPSHOT,
    window_start: datetime | None = None,
) -> LoanQuery:
    """Phase one: the storage predicate.

    Parameters
    ----------
    criteria : DeadDebtCriteria
        Caller criteria.
    evaluation_date : datetime
        Snapshot instant, or in backtest mode the latest evaluation instant
        (the last month-end of the year).
    mode : EvaluationMode
        SNAPSHOT pushes week bounds and the exact status. BACKTEST pushes only
        what holds for every month-end in ``[window_start, evaluation_date]``.
    window_start : datetime | None
        Earliest evaluation instant of a backtest (the first month-end).

    Returns
    -------
    LoanQuery
        Predicate selecting a superset of the loans ``matches_criteria`` keeps.
    """
    evaluation_date = as_utc(evaluation_date)
    status = criteria.bad_debt_status

    if mode == EvaluationMode.SNAPSHOT:
        on_or_before, on_or_after = sign_date_bounds(criteria, evaluation_date)
        if status == BadDebtStatus.MARKED:
            return LoanQuery(
                route_id=criteria.route_id,
                signed_on_or_before=on_or_before,
                signed_on_or_after=on_or_after,
                status=status,
                marked_from=criteria.from_date,
                marked_to=criteria.to_date,
            )
        return LoanQuery(
            route_id=criteria.route_id,
            signed_on_or_before=on_or_before,
            signed_on_or_after=on_or_after,
            status=status,
        )

    # Backtest: week bounds are recomputed per month, so only the latest
    # month-end bounds the sign date.
    first = as_utc(window_start) if window_start else evaluation_date
    if status == BadDebtStatus.MARKED:
        return LoanQuery(
            route_id=criteria.route_id,
            signed_on_or_before=evaluation_date,
            status=status,
            marked_to=evaluation_date,
        )
    if status == BadDebtStatus.UNMARKED:
        return LoanQuery(
            route_id=criteria.route_id,
            signed_on_or_before=evaluation_date,
            status=status,
            unmarked_as_of=first,
        )
    return LoanQuery(route_id=criteria.route_id, signed_on_or_before=evaluation_date)


def matches_status(
    loan: Loan,
    criteria: DeadDebtCriteria,
    evaluation_date: datetime,
    mode: EvaluationMode,
) -> bool:
    status = criteria.bad_debt_status
    if status == BadDebtStatus.ALL:
        return True

    marked_at = as_utc(loan.bad_debt_date) if loan.bad_debt_date else None
    if mode == EvaluationMode.BACKTEST:
        marked_by_then = marked_at is not None and marked_at <= as_utc(evaluation_date)
        return marked_by_then if status == BadDebtStatus.MARKED else not marked_by_then

    if status == BadDebtStatus.UNMARKED:
        return marked_at is None
    if marked_at is None:
        return False
    if criteria.from_date is not None and marked_at < criteria.from_date:
        return False
    if criteria.to_date is not None and marked_at > criteria.to_date:
        return False
    return True


def _within(value: int, low: int | None, high: int | None) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def matches_criteria(
    loan: Loan,
    criteria: DeadDebtCriteria,
    evaluation_date: datetime,
    mode: EvaluationMode = EvaluationMode.SNAPSHOT,
) -> bool:
    """Phase two: exact in-memory predicate at ``evaluation_date``.

    Re-applies the structural filters and the route; repositories may return
    more than the storage query asked for.
    """
    if not loan.is_open:
        return False
    if criteria.route_id is not None and loan.lead.route_id != criteria.route_id:
        return False
    if not matches_status(loan, criteria, evaluation_date, mode):
        return False
    if not _within(
        weeks_since_loan(loan, evaluation_date),
        criteria.weeks_since_loan_min,
        criteria.weeks_since_loan_max,
    ):
        return False
    return _within(
        weeks_without_payment(loan, evaluation_date),
        criteria.weeks_without_payment_min,
        criteria.weeks_without_payment_max,
    )


def select_loans(
    loans: Iterable[Loan],
    criteria: DeadDebtCriteria,
    evaluation_date: datetime,
    mode: EvaluationMode = EvaluationMode.SNAPSHOT,
) -> list[Loan]:
    """Apply ``matches_criteria`` to a fetched batch, keeping order."""
    return [loan for loan in loans if matches_criteria(loan, criteria, evaluation_date, mode)]

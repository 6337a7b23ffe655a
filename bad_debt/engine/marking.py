"""Marking mutation: record the bad-debt decision on confirmed loans."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from bad_debt.exceptions import InvalidCriteriaError
from bad_debt.logging import get_logger
from bad_debt.periods import parse_instant
from bad_debt.store.base import LoanRepository

logger = get_logger(__name__)


@dataclass
class MarkingResult:
    success: bool
    message: str
    updated_count: int
    skipped_count: int
    bad_debt_date: datetime | None


def unique_ids(loan_ids: Iterable[str]) -> list[str]:
    """Requested ids without blanks or duplicates, in first-seen order."""
    return list(dict.fromkeys(str(loan_id).strip() for loan_id in loan_ids if str(loan_id).strip()))


def mark_loans(
    repository: LoanRepository,
    loan_ids: Iterable[str],
    dead_debt_date: str,
) -> MarkingResult:
    """Set the bad-debt date on every listed loan that is not marked yet.

    Loans already marked keep their original date; they are counted in
    ``skipped_count`` rather than reported as errors.

    Raises
    ------
    InvalidCriteriaError
        If no loan id is given or the date is not ISO-8601.
    """
    ids = unique_ids(loan_ids or ())
    if not ids:
        raise InvalidCriteriaError("loanIds must contain at least one id")
    marked_at = parse_instant(dead_debt_date, "deadDebtDate")

    updated = repository.mark_bad_debt(ids, marked_at)
    skipped = len(ids) - updated
    logger.info(
        "Marked %d loans as bad debt (%d already marked or not found)",
        updated,
        skipped,
        extra={"extra": {"updated": updated, "skipped": skipped, "requested": len(ids)}},
    )
    return MarkingResult(
        success=True,
        message=f"{updated} loans marked as bad debt",
        updated_count=updated,
        skipped_count=skipped,
        bad_debt_date=marked_at,
    )

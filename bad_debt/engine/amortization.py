"""Profit amortization: how much of a loan's cash is profit versus principal.

Every cash amount on a loan, paid or pending, is split into principal and
profit with the same ratio ``profit_amount / (amount_gived + profit_amount)``.
The bad-debt candidate is the principal part of what is still pending: the
profit still to collect was never disbursed, so it is not a loss.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from bad_debt.models.portfolio import Loan
from bad_debt.periods import as_utc, weeks_between

ZERO = Decimal("0")


@dataclass(frozen=True)
class Amortization:
    """Amortization state of one loan at one evaluation instant."""

    evaluation_date: datetime
    total_to_pay: Decimal
    total_paid: Decimal
    profit_recognized: Decimal
    principal_recovered: Decimal
    profit_still_to_collect: Decimal
    bad_debt_candidate: Decimal
    weeks_since_loan: int
    weeks_without_payment: int
    last_payment_date: datetime | None


def prorate_profit(loan: Loan, amount: Decimal) -> Decimal:
    """Profit share of ``amount`` for this loan; zero when nothing is owed in total."""
    total = loan.total_to_pay
    if total == 0:
        return ZERO
    # Multiply before dividing to keep exact results for exact ratios
    return amount * loan.profit_amount / total


def last_payment_on_or_before(loan: Loan, evaluation_date: datetime) -> datetime | None:
    """Date of the latest payment counted at ``evaluation_date``, if any."""
    cutoff = as_utc(evaluation_date)
    dates = [as_utc(p.paid_at) for p in loan.payments if as_utc(p.paid_at) <= cutoff]
    return max(dates) if dates else None


def weeks_since_loan(loan: Loan, evaluation_date: datetime) -> int:
    return weeks_between(loan.sign_date, evaluation_date)


def weeks_without_payment(loan: Loan, evaluation_date: datetime) -> int:
    """Weeks since the last counted payment, or since signing when none."""
    last_payment = last_payment_on_or_before(loan, evaluation_date)
    return weeks_between(last_payment or loan.sign_date, evaluation_date)


def amortize(loan: Loan, evaluation_date: datetime) -> Amortization:
    """Compute the amortization of ``loan`` as of ``evaluation_date``.

    Only payments dated on or before the evaluation instant are counted.
    The pending balance is always the loan's current stored balance, even
    for historical instants; it is not rebuilt from the ledger.

    Parameters
    ----------
    loan : Loan
        Loan with its full payment ledger.
    evaluation_date : datetime
        Instant to evaluate at.

    Returns
    -------
    Amortization
        Paid and recognized totals, the candidate amount and week counters.
    """
    evaluation_date = as_utc(evaluation_date)
    total_to_pay = loan.total_to_pay

    total_paid = ZERO
    profit_recognized = ZERO
    last_payment_date = None
    for payment in sorted(loan.payments, key=lambda p: as_utc(p.paid_at)):
        paid_at = as_utc(payment.paid_at)
        if paid_at > evaluation_date:
            break
        total_paid += payment.amount
        profit_recognized += prorate_profit(loan, payment.amount)
        last_payment_date = paid_at

    pending = loan.pending_amount_stored
    if total_to_pay == 0:
        profit_still_to_collect = ZERO
        bad_debt_candidate = ZERO
    else:
        profit_still_to_collect = prorate_profit(loan, pending)
        bad_debt_candidate = max(ZERO, pending - profit_still_to_collect)

    return Amortization(
        evaluation_date=evaluation_date,
        total_to_pay=total_to_pay,
        total_paid=total_paid,
        profit_recognized=profit_recognized,
        principal_recovered=total_paid - profit_recognized,
        profit_still_to_collect=profit_still_to_collect,
        bad_debt_candidate=bad_debt_candidate,
        weeks_since_loan=weeks_between(loan.sign_date, evaluation_date),
        weeks_without_payment=weeks_between(last_payment_date or loan.sign_date, evaluation_date),
        last_payment_date=last_payment_date,
    )

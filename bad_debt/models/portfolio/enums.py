"""Enumeration types for the loan portfolio."""

from enum import Enum


class BadDebtStatus(str, Enum):
    """Which loans a query selects by their bad-debt marking."""

    ALL = "ALL"
    MARKED = "MARKED"
    UNMARKED = "UNMARKED"


class EvaluationMode(str, Enum):
    """How the marking status is interpreted against an evaluation instant.

    SNAPSHOT evaluates at the current instant; BACKTEST re-evaluates at a past
    month-end, so a loan marked after that instant still counts as unmarked.
    """

    SNAPSHOT = "SNAPSHOT"
    BACKTEST = "BACKTEST"


class LoanStanding(str, Enum):
    """Per-row standing shown in listings."""

    ACTIVE = "ACTIVE"
    DEAD = "DEAD"

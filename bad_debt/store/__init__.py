"""Loan repositories: the contract, an in-memory store and PostgreSQL."""

from bad_debt.store.base import LoanQuery, LoanRepository
from bad_debt.store.memory import PortfolioStore
from bad_debt.store.postgres import PostgresLoanRepository

__all__ = ["LoanQuery", "LoanRepository", "PortfolioStore", "PostgresLoanRepository"]

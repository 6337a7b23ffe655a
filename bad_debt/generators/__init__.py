"""Sample data generators."""

from bad_debt.generators.base import BaseGenerator
from bad_debt.generators.portfolio import PaymentBehavior, PortfolioGenerator

__all__ = ["BaseGenerator", "PaymentBehavior", "PortfolioGenerator"]

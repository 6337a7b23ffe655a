"""Domain models for the loan portfolio."""

from bad_debt.models.base import Address, Location, PersonalData

__all__ = ["Address", "Location", "PersonalData"]

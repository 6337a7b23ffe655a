"""Custom exception hierarchy for bad_debt."""


class BadDebtError(Exception):
    """Base exception for all bad_debt errors."""


class EntityNotFoundError(BadDebtError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(BadDebtError):
    """Raised when an entity is in an invalid state for the operation."""


class InvalidCriteriaError(BadDebtError):
    """Raised when caller arguments cannot be turned into valid criteria."""


class DataAccessError(BadDebtError):
    """Raised when the loan repository fails to read or write."""


class ConfigurationError(BadDebtError):
    """Raised when configuration is invalid or missing."""

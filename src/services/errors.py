"""
Commission error taxonomy.

Each error carries the HTTP status the API layer answers with.
"""

from typing import Optional


class CommissionError(Exception):
    """Base class for commission workflow errors."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(CommissionError):
    """No usable commission rule for the requested period."""

    status_code = 409


class NotFoundError(CommissionError):
    """Referenced payout, seller or rule does not exist."""

    status_code = 404


class RuleValidationError(CommissionError):
    """Malformed numeric input (negative percentages, non-numeric amounts)."""

    status_code = 422


class PersistenceError(CommissionError):
    """Underlying store read/write failure."""

    status_code = 503


class StateConflictError(CommissionError):
    """Transition not allowed from the payout's current status."""

    status_code = 409

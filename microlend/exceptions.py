"""Custom exception hierarchy for microlend."""


class MicrolendError(Exception):
    """Base exception for all microlend errors."""


class EntityNotFoundError(MicrolendError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidLoanStateError(MicrolendError):
    """Raised when a loan is in an invalid state for the operation."""


class ValidationError(MicrolendError):
    """Raised when loan or payment input fails field validation.

    Parameters
    ----------
    errors : dict[str, str]
        Field name to human-readable message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        details = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(f"Invalid loan data ({details})")


class ScheduleGenerationError(MicrolendError):
    """Raised when a payment schedule cannot be produced for a loan."""

    DEFAULT_MESSAGE = "could not calculate payment schedule - check interest rate and term"

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        super().__init__(message)


class ConfigurationError(MicrolendError):
    """Raised when configuration is invalid or missing."""


class RepositoryError(MicrolendError):
    """Raised when a repository operation fails."""

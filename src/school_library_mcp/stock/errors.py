"""Errors raised by the loan and stock rules."""


class LoanError(ValueError):
    """Base class for rejected loan operations."""


class LoanValidationError(LoanError):
    """The request itself is invalid (quantities, borrower shape, dates)."""


class InsufficientStockError(LoanValidationError):
    """A new loan asks for more copies than are available."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot lend {requested} copies - only {available} available"
        )


class LoanStateError(LoanError):
    """The loan's current status does not allow the operation."""

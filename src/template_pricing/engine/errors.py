"""
Error taxonomy for the pricing engine.

All errors are terminal for a single pricing call. None of them are retried,
and no partial or estimated price is returned when one is raised.
"""
from typing import Optional


class PricingError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(PricingError):
    """Bad order dimensions (non-positive or non-numeric input)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConfigurationError(PricingError):
    """The pricing template is internally inconsistent."""


class ParseError(PricingError):
    """Malformed pricing grid CSV. `row` is 1-based, the header is row 1."""

    def __init__(self, message: str, row: Optional[int] = None):
        if row is not None:
            message = f"Row {row}: {message}"
        super().__init__(message)
        self.row = row


class RangeLookupError(PricingError):
    """A dimension falls outside every configured bucket."""

    def __init__(self, axis: str, value: float, message: Optional[str] = None):
        super().__init__(message or f"{axis} {value:g}cm is outside every configured {axis} range")
        self.axis = axis
        self.value = value

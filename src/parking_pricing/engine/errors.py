"""Errors raised by the pricing engine."""


class PricingError(Exception):
    """Base class for pricing engine errors."""


class InvalidIntervalError(PricingError):
    """Booking end is not strictly after its start."""


class NegativeBasePriceError(PricingError):
    """Hourly base price below zero."""


class RuleStoreUnavailableError(PricingError):
    """The rule store could not be read."""


class RuleValidationError(PricingError):
    """A price rule failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid price rule")

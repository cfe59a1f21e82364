"""Validation errors raised by the tax calculator."""


class TaxCalculationError(ValueError):
    """Base class for invalid calculator input."""

    message = "invalid tax calculation input"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class InvalidInputError(TaxCalculationError):
    """A numeric value that must be non-negative was negative."""

    message = "value must be positive"


class WithholdingExceedsIncomeError(TaxCalculationError):
    """Withholding tax is greater than total income."""

    message = "with holding tax must be lower than or equal to income"


class UnknownAllowanceTypeError(TaxCalculationError):
    """Allowance type is outside personal / donation / k-receipt."""

    message = "incorrect allowance type"

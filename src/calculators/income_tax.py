"""Income tax calculator with capped allowances and WHT refund."""

import logging
from collections.abc import Sequence
from contextlib import AbstractContextManager
from decimal import ROUND_HALF_UP, Context, Decimal, getcontext, localcontext
from typing import NamedTuple, Protocol

from src.calculators.errors import (
    InvalidInputError,
    UnknownAllowanceTypeError,
    WithholdingExceedsIncomeError,
)
from src.calculators.tax_data import (
    DEFAULT_K_RECEIPT_ALLOWANCE,
    DEFAULT_PERSONAL_ALLOWANCE,
    MAX_DONATION_ALLOWANCE,
    TAX_BRACKETS,
    AllowanceType,
    TaxBracket,
)

logger = logging.getLogger(__name__)

_PRECISION = Decimal("0.1")
_ZERO = Decimal("0")
# Digits beyond the largest operand: one decimal place, rate digits, carry
_PRECISION_MARGIN = 5


class Allowance(NamedTuple):
    """A deduction claimed against income."""

    allowance_type: AllowanceType | str
    amount: Decimal


class DeductionConfig(NamedTuple):
    """Admin-configured caps. Zero means "use the default"."""

    personal: Decimal = _ZERO
    k_receipt: Decimal = _ZERO


class BracketTax(NamedTuple):
    """Tax owed within one bracket."""

    level: int
    label: str
    tax: Decimal


class CalculationResult(NamedTuple):
    """Outcome of a single tax calculation."""

    tax: Decimal
    refund: Decimal
    tax_levels: tuple[BracketTax, ...]


class TaxCalculator(Protocol):
    """What the HTTP handlers need from a calculator."""

    def calculate(
        self,
        income: Decimal,
        withholding: Decimal,
        allowances: Sequence[Allowance],
        deduction_config: DeductionConfig,
    ) -> CalculationResult: ...


def round_amount(value: Decimal) -> Decimal:
    """Round to 1 decimal place, half away from zero."""
    return value.quantize(_PRECISION, rounding=ROUND_HALF_UP)


def _exact_context(*values: Decimal) -> AbstractContextManager[Context]:
    """Local decimal context wide enough that no intermediate result rounds."""
    digits = max(
        (
            value.adjusted() - min(value.as_tuple().exponent, 0) + 1  # type: ignore[operator]
            for value in values
            if value.is_finite()
        ),
        default=0,
    )
    return localcontext(prec=max(getcontext().prec, digits + _PRECISION_MARGIN))


def _validate(
    income: Decimal,
    withholding: Decimal,
    allowances: Sequence[Allowance],
) -> list[tuple[AllowanceType, Decimal]]:
    if income < 0:
        raise InvalidInputError()
    if withholding < 0:
        raise InvalidInputError()
    if withholding > income:
        raise WithholdingExceedsIncomeError()

    validated: list[tuple[AllowanceType, Decimal]] = []
    for allowance in allowances:
        if allowance.amount < 0:
            raise InvalidInputError()
        try:
            allowance_type = AllowanceType(allowance.allowance_type)
        except ValueError:
            raise UnknownAllowanceTypeError() from None
        validated.append((allowance_type, allowance.amount))
    return validated


def _total_deduction(
    allowances: Sequence[tuple[AllowanceType, Decimal]],
    deduction_config: DeductionConfig,
) -> Decimal:
    k_receipt_cap = deduction_config.k_receipt or DEFAULT_K_RECEIPT_ALLOWANCE

    total = _ZERO
    for allowance_type, amount in allowances:
        if allowance_type is AllowanceType.DONATION:
            amount = min(amount, MAX_DONATION_ALLOWANCE)
        elif allowance_type is AllowanceType.K_RECEIPT:
            amount = min(amount, k_receipt_cap)
        total += amount
    return total


def _bracket_tax(taxable_income: Decimal, bracket: TaxBracket) -> Decimal:
    if taxable_income <= bracket.lower:
        return _ZERO
    upper = taxable_income if bracket.upper is None else min(taxable_income, bracket.upper)
    return (upper - bracket.lower) * bracket.rate


def calculate_progressive_tax(
    taxable_income: Decimal,
) -> tuple[Decimal, tuple[BracketTax, ...]]:
    """Apply the bracket table to taxable income.

    Returns the unrounded gross tax and one rounded entry per bracket,
    in ascending order. Brackets not reached report zero.
    """
    gross = _ZERO
    levels: list[BracketTax] = []
    with _exact_context(taxable_income):
        for bracket in TAX_BRACKETS:
            tax = _bracket_tax(taxable_income, bracket)
            gross += tax
            levels.append(BracketTax(bracket.level, bracket.label, round_amount(tax)))
    return gross, tuple(levels)


def calculate_tax(
    income: Decimal,
    withholding: Decimal = _ZERO,
    allowances: Sequence[Allowance] = (),
    deduction_config: DeductionConfig = DeductionConfig(),
) -> CalculationResult:
    """Calculate personal income tax with per-bracket breakdown.

    A personal allowance equal to the configured cap (60,000 when unset)
    is always deducted. Donations are capped at 100,000 and k-receipts at
    the configured cap (50,000 when unset). Withholding tax is subtracted
    from the gross tax; any excess becomes a refund.

    Args:
        income: Total annual income (must be >= 0).
        withholding: Tax already withheld (0 <= withholding <= income).
        allowances: Claimed allowances, validated in order.
        deduction_config: Current personal / k-receipt caps.

    Returns:
        CalculationResult with tax, refund and five tax levels.

    Raises:
        InvalidInputError: A negative income, withholding or allowance amount.
        WithholdingExceedsIncomeError: Withholding greater than income.
        UnknownAllowanceTypeError: Allowance type not recognised.
    """
    claimed = _validate(income, withholding, allowances)

    personal = deduction_config.personal or DEFAULT_PERSONAL_ALLOWANCE
    claimed.append((AllowanceType.PERSONAL, personal))

    amounts = [income, withholding, deduction_config.k_receipt, *(a for _, a in claimed)]
    with _exact_context(*amounts):
        taxable_income = income - _total_deduction(claimed, deduction_config)
        gross, levels = calculate_progressive_tax(taxable_income)

        net = gross - withholding
        if net < 0:
            tax, refund = _ZERO, -net
        else:
            tax, refund = net, _ZERO
        tax, refund = round_amount(tax), round_amount(refund)

    logger.debug(
        "Calculated tax: income=%s taxable=%s gross=%s wht=%s",
        income,
        taxable_income,
        gross,
        withholding,
    )
    return CalculationResult(tax, refund, levels)


class ProgressiveTaxCalculator:
    """Default TaxCalculator backed by calculate_tax."""

    def calculate(
        self,
        income: Decimal,
        withholding: Decimal,
        allowances: Sequence[Allowance],
        deduction_config: DeductionConfig,
    ) -> CalculationResult:
        return calculate_tax(income, withholding, allowances, deduction_config)

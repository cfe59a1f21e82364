"""Tax constants: progressive brackets and allowance caps.

Hardcoded Python constants (not DB-driven). Only the personal and k-receipt
caps are admin-configurable; those live in the tax_deduction_configs table
and are passed to the calculator as a DeductionConfig.
"""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple


class TaxBracket(NamedTuple):
    """A single income tax bracket."""

    level: int
    label: str
    lower: Decimal  # exclusive
    upper: Decimal | None  # inclusive, None = no cap
    rate: Decimal


class AllowanceType(str, Enum):
    """Allowance categories accepted by the calculator."""

    PERSONAL = "personal"
    DONATION = "donation"
    K_RECEIPT = "k-receipt"


TAX_BRACKETS: tuple[TaxBracket, ...] = (
    TaxBracket(1, "0-150,000", Decimal("0"), Decimal("150000"), Decimal("0")),
    TaxBracket(2, "150,001-500,000", Decimal("150000"), Decimal("500000"), Decimal("0.10")),
    TaxBracket(3, "500,001-1,000,000", Decimal("500000"), Decimal("1000000"), Decimal("0.15")),
    TaxBracket(4, "1,000,001-2,000,000", Decimal("1000000"), Decimal("2000000"), Decimal("0.20")),
    TaxBracket(5, "2,000,001 ขึ้นไป", Decimal("2000000"), None, Decimal("0.35")),
)

DEFAULT_PERSONAL_ALLOWANCE = Decimal("60000")
DEFAULT_K_RECEIPT_ALLOWANCE = Decimal("50000")
MAX_DONATION_ALLOWANCE = Decimal("100000")

# Admin update limits
MIN_PERSONAL_DEDUCTION = Decimal("10000")
MAX_PERSONAL_DEDUCTION = Decimal("100000")
MAX_K_RECEIPT_DEDUCTION = Decimal("100000")

# Allowance types a taxpayer may claim over the API; personal is implicit
CLAIMABLE_ALLOWANCE_TYPES = frozenset({AllowanceType.DONATION, AllowanceType.K_RECEIPT})

# Upper bound for any amount accepted over the API or in CSV uploads
MAX_INPUT_AMOUNT = Decimal("1000000000000000")

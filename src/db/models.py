"""Pydantic models for database rows and API responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.calculators.income_tax import DeductionConfig

# --- Database row models ---


class DeductionConfigRow(BaseModel):
    """Admin-configured deduction caps (maps to tax_deduction_configs table)."""

    id: int | None = None
    personal: Decimal = Decimal("0")
    k_receipt: Decimal = Field(default=Decimal("0"), alias="kreceipt")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"populate_by_name": True}

    def to_deduction_config(self) -> DeductionConfig:
        """Snapshot of the caps for the calculator."""
        return DeductionConfig(personal=self.personal, k_receipt=self.k_receipt)


# --- Response models ---


class TaxLevel(BaseModel):
    """Tax owed within one bracket."""

    level: str
    tax: float


class TaxCalculationResponse(BaseModel):
    """Response from POST /tax/calculations."""

    tax: float
    taxLevel: list[TaxLevel]
    taxRefund: float | None = None


class CsvTaxResult(BaseModel):
    """One row of the CSV upload response."""

    totalIncome: float
    tax: float
    taxRefund: float | None = None


class CsvUploadResponse(BaseModel):
    """Response from POST /tax/calculations/upload-csv."""

    taxes: list[CsvTaxResult]


class DeductionsResponse(BaseModel):
    """Response from GET /admin/deductions."""

    personalDeduction: float
    kReceipt: float


class PersonalDeductionResponse(BaseModel):
    """Response from POST /admin/deductions/personal."""

    personalDeduction: float


class KReceiptDeductionResponse(BaseModel):
    """Response from POST /admin/deductions/k-receipt."""

    kReceipt: float

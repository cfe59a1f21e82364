"""API routes for tax calculations."""

import logging
from decimal import Decimal

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.calculators.errors import TaxCalculationError, UnknownAllowanceTypeError
from src.calculators.income_tax import (
    Allowance,
    CalculationResult,
    DeductionConfig,
    TaxCalculator,
)
from src.calculators.tax_data import CLAIMABLE_ALLOWANCE_TYPES, MAX_INPUT_AMOUNT, AllowanceType
from src.db.deduction_config import DeductionConfigStore, SettingsStoreError
from src.db.models import (
    CsvTaxResult,
    CsvUploadResponse,
    TaxCalculationResponse,
    TaxLevel,
)
from src.ingestion.csv_reader import CsvFormatError, read_tax_csv

logger = logging.getLogger(__name__)

router = APIRouter()


class AllowanceRequest(BaseModel):
    """A single allowance claim."""

    allowanceType: str
    amount: Decimal = Field(le=MAX_INPUT_AMOUNT)


class TaxCalculationRequest(BaseModel):
    """Request body for the /tax/calculations endpoint."""

    totalIncome: Decimal = Field(le=MAX_INPUT_AMOUNT)
    wht: Decimal = Field(default=Decimal("0"), le=MAX_INPUT_AMOUNT)
    allowances: list[AllowanceRequest] = []


def claimed_allowances(requests: list[AllowanceRequest]) -> list[Allowance]:
    """Convert request allowances, rejecting types a caller may not claim."""
    allowances: list[Allowance] = []
    for claim in requests:
        if claim.allowanceType not in CLAIMABLE_ALLOWANCE_TYPES:
            raise UnknownAllowanceTypeError()
        allowances.append(Allowance(claim.allowanceType, claim.amount))
    return allowances


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def load_deduction_config(store: DeductionConfigStore) -> DeductionConfig:
    """Snapshot the current caps. SettingsStoreError propagates."""
    row = await store.get()
    return row.to_deduction_config()


def _refund(result: CalculationResult) -> float | None:
    return float(result.refund) if result.refund else None


@router.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@router.post(
    "/tax/calculations",
    response_model=TaxCalculationResponse,
    response_model_exclude_none=True,
)
async def calculate_tax(
    body: TaxCalculationRequest, request: Request
) -> TaxCalculationResponse | JSONResponse:
    """Calculate tax for a single taxpayer."""
    calculator: TaxCalculator = request.app.state.calculator
    store: DeductionConfigStore = request.app.state.deduction_store

    try:
        deduction_config = await load_deduction_config(store)
    except SettingsStoreError as exc:
        return error_response(str(exc), 500)

    try:
        allowances = claimed_allowances(body.allowances)
        result = calculator.calculate(body.totalIncome, body.wht, allowances, deduction_config)
    except TaxCalculationError as exc:
        logger.warning("Tax calculation failed: %s", exc)
        return error_response(str(exc), 400)

    return TaxCalculationResponse(
        tax=float(result.tax),
        taxLevel=[TaxLevel(level=lvl.label, tax=float(lvl.tax)) for lvl in result.tax_levels],
        taxRefund=_refund(result),
    )


@router.post(
    "/tax/calculations/upload-csv",
    response_model=CsvUploadResponse,
    response_model_exclude_none=True,
)
async def upload_csv(
    request: Request, taxFile: UploadFile | None = File(None)
) -> CsvUploadResponse | JSONResponse:
    """Calculate tax for every row of an uploaded CSV.

    The deduction config is read once and shared by all rows, so a batch
    is never split across two admin updates.
    """
    if taxFile is None:
        return error_response("field taxFile is required", 400)

    try:
        rows = read_tax_csv(await taxFile.read())
    except CsvFormatError as exc:
        logger.warning("Rejected CSV upload %s: %s", taxFile.filename, exc)
        return error_response(str(exc), 400)

    calculator: TaxCalculator = request.app.state.calculator
    store: DeductionConfigStore = request.app.state.deduction_store

    try:
        deduction_config = await load_deduction_config(store)
    except SettingsStoreError as exc:
        return error_response(str(exc), 500)

    taxes: list[CsvTaxResult] = []
    for index, row in enumerate(rows, start=1):
        try:
            result = calculator.calculate(
                row.totalIncome,
                row.wht,
                [Allowance(AllowanceType.DONATION, row.donation)],
                deduction_config,
            )
        except TaxCalculationError as exc:
            logger.warning("CSV row %d failed: %s", index, exc)
            return error_response(str(exc), 400)

        taxes.append(
            CsvTaxResult(
                totalIncome=float(row.totalIncome),
                tax=float(result.tax),
                taxRefund=_refund(result),
            )
        )

    return CsvUploadResponse(taxes=taxes)

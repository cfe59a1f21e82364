"""Admin routes for deduction caps. Guarded by BasicAuthMiddleware."""

import logging
from decimal import Decimal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.api.routes import error_response
from src.calculators.tax_data import (
    MAX_K_RECEIPT_DEDUCTION,
    MAX_PERSONAL_DEDUCTION,
    MIN_PERSONAL_DEDUCTION,
)
from src.db.deduction_config import DeductionConfigStore, SettingsStoreError
from src.db.models import (
    DeductionsResponse,
    KReceiptDeductionResponse,
    PersonalDeductionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


class PersonalDeductionRequest(BaseModel):
    """Request body for /admin/deductions/personal."""

    amount: Decimal = Field(ge=MIN_PERSONAL_DEDUCTION, le=MAX_PERSONAL_DEDUCTION)


class KReceiptDeductionRequest(BaseModel):
    """Request body for /admin/deductions/k-receipt."""

    amount: Decimal = Field(gt=0, le=MAX_K_RECEIPT_DEDUCTION)


@router.get("/deductions", response_model=DeductionsResponse)
async def get_deductions(request: Request) -> DeductionsResponse | JSONResponse:
    """Return the stored personal and k-receipt caps."""
    store: DeductionConfigStore = request.app.state.deduction_store
    try:
        row = await store.get()
    except SettingsStoreError as exc:
        return error_response(str(exc), 500)
    return DeductionsResponse(personalDeduction=float(row.personal), kReceipt=float(row.k_receipt))


@router.post("/deductions/personal", response_model=PersonalDeductionResponse)
async def update_personal_deduction(
    body: PersonalDeductionRequest, request: Request
) -> PersonalDeductionResponse | JSONResponse:
    """Set the personal allowance cap."""
    store: DeductionConfigStore = request.app.state.deduction_store
    try:
        row = await store.update_personal_deduction(body.amount)
    except SettingsStoreError as exc:
        return error_response(str(exc), 500)
    return PersonalDeductionResponse(personalDeduction=float(row.personal))


@router.post("/deductions/k-receipt", response_model=KReceiptDeductionResponse)
async def update_k_receipt_deduction(
    body: KReceiptDeductionRequest, request: Request
) -> KReceiptDeductionResponse | JSONResponse:
    """Set the k-receipt allowance cap."""
    store: DeductionConfigStore = request.app.state.deduction_store
    try:
        row = await store.update_k_receipt_deduction(body.amount)
    except SettingsStoreError as exc:
        return error_response(str(exc), 500)
    return KReceiptDeductionResponse(kReceipt=float(row.k_receipt))

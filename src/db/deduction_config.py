"""Read and update admin deduction caps in the tax_deduction_configs table."""

import logging
from decimal import Decimal
from typing import Protocol

import asyncpg

from src.db.models import DeductionConfigRow

logger = logging.getLogger(__name__)

# Single configuration row seeded by migration 0001.
CONFIG_ROW_ID = 1

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class SettingsStoreError(Exception):
    """The deduction settings could not be read or written."""


class DeductionConfigStore(Protocol):
    """Persistence operations the API needs for deduction caps."""

    async def get(self) -> DeductionConfigRow: ...

    async def update_personal_deduction(self, amount: Decimal) -> DeductionConfigRow: ...

    async def update_k_receipt_deduction(self, amount: Decimal) -> DeductionConfigRow: ...


class PostgresDeductionConfigStore:
    """DeductionConfigStore backed by an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool, row_id: int = CONFIG_ROW_ID) -> None:
        self.pool = pool
        self.row_id = row_id

    async def get(self) -> DeductionConfigRow:
        """Return the most recently updated config.

        An empty table yields an all-zero config so calculator defaults apply.
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    SELECT id, personal, kreceipt, created_at, updated_at
                    FROM tax_deduction_configs
                    ORDER BY updated_at DESC
                    LIMIT 1
                    """
                )
        except _DB_ERRORS as exc:
            logger.exception("Failed to read deduction config")
            raise SettingsStoreError("failed to read deduction config") from exc

        if row is None:
            logger.warning("No deduction config row found, using defaults")
            return DeductionConfigRow()
        return DeductionConfigRow(**dict(row))

    async def update_personal_deduction(self, amount: Decimal) -> DeductionConfigRow:
        """Set the personal allowance cap."""
        return await self._update("personal", amount)

    async def update_k_receipt_deduction(self, amount: Decimal) -> DeductionConfigRow:
        """Set the k-receipt allowance cap."""
        return await self._update("kreceipt", amount)

    async def _update(self, column: str, amount: Decimal) -> DeductionConfigRow:
        # column is one of two literals above, never user input
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE tax_deduction_configs
                    SET {column} = $1, updated_at = NOW()
                    WHERE id = $2
                    RETURNING id, personal, kreceipt, created_at, updated_at
                    """,
                    amount,
                    self.row_id,
                )
        except _DB_ERRORS as exc:
            logger.exception("Failed to update %s deduction", column)
            raise SettingsStoreError(f"failed to update {column} deduction") from exc

        if row is None:
            raise SettingsStoreError(f"deduction config {self.row_id} not found")

        logger.info("Updated %s deduction to %s", column, amount)
        return DeductionConfigRow(**dict(row))

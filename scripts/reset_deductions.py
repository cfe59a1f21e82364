"""Reset the deduction caps row to the built-in defaults."""

import logging
import sys
from pathlib import Path

import psycopg2

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings
from src.calculators.tax_data import DEFAULT_K_RECEIPT_ALLOWANCE, DEFAULT_PERSONAL_ALLOWANCE
from src.db.deduction_config import CONFIG_ROW_ID

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> None:
    """Upsert the default personal and k-receipt caps."""
    conn = psycopg2.connect(settings.database_url)
    try:
        with conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO tax_deduction_configs (id, personal, kreceipt)
                VALUES (%s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    personal = EXCLUDED.personal,
                    kreceipt = EXCLUDED.kreceipt,
                    updated_at = NOW()
                """,
                (CONFIG_ROW_ID, DEFAULT_PERSONAL_ALLOWANCE, DEFAULT_K_RECEIPT_ALLOWANCE),
            )
    finally:
        conn.close()

    logger.info(
        "Reset deductions: personal=%s k-receipt=%s",
        DEFAULT_PERSONAL_ALLOWANCE,
        DEFAULT_K_RECEIPT_ALLOWANCE,
    )


if __name__ == "__main__":
    main()

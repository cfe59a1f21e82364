"""Create tax_deduction_configs table with the default caps row."""

from yoyo import step

__depends__ = {}  # type: ignore[var-annotated]

steps = [
    step(
        """
        CREATE TABLE tax_deduction_configs (
            id              SERIAL PRIMARY KEY,
            personal        NUMERIC(12,2) NOT NULL DEFAULT 60000,
            kreceipt        NUMERIC(12,2) NOT NULL DEFAULT 50000,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "DROP TABLE IF EXISTS tax_deduction_configs",
    ),
    step(
        "INSERT INTO tax_deduction_configs (id, personal, kreceipt) VALUES (1, 60000, 50000)",
        "DELETE FROM tax_deduction_configs WHERE id = 1",
    ),
    step(
        "SELECT setval('tax_deduction_configs_id_seq', (SELECT MAX(id) FROM tax_deduction_configs))",
    ),
]

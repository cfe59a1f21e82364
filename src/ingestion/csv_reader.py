"""Parse batch tax CSV uploads (totalIncome, wht, donation)."""

import csv
import logging
from decimal import Decimal, InvalidOperation
from io import StringIO

from pydantic import BaseModel

from src.calculators.tax_data import MAX_INPUT_AMOUNT

logger = logging.getLogger(__name__)

REQUIRED_COLUMN = "totalIncome"
OPTIONAL_COLUMNS = ("wht", "donation")


class CsvFormatError(ValueError):
    """The uploaded file is not a valid tax CSV."""


class EmptyCsvError(CsvFormatError):
    """The uploaded file has a header but no data rows."""

    def __init__(self) -> None:
        super().__init__("empty csv file given")


class TaxCsvRow(BaseModel):
    """A single batch row. Missing wht/donation default to zero."""

    totalIncome: Decimal
    wht: Decimal = Decimal("0")
    donation: Decimal = Decimal("0")


def _parse_amount(value: str | None, column: str, line: int) -> Decimal | None:
    if value is None or not value.strip():
        return None
    try:
        amount = Decimal(value.strip())
    except InvalidOperation:
        raise CsvFormatError(f"line {line}: invalid number {value!r} in column {column}") from None
    if not amount.is_finite():
        raise CsvFormatError(f"line {line}: invalid number {value!r} in column {column}")
    if amount > MAX_INPUT_AMOUNT:
        raise CsvFormatError(f"line {line}: value in column {column} is too large")
    return amount


def read_tax_csv(content: bytes) -> list[TaxCsvRow]:
    """Read a tax CSV upload into rows.

    The header must contain totalIncome; wht and donation are optional
    columns and blank cells count as zero. Range checks (negative values,
    wht above income) are left to the calculator.

    Raises:
        CsvFormatError: Undecodable file, missing column or bad number.
        EmptyCsvError: No data rows.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise CsvFormatError("csv file must be UTF-8 encoded") from None

    reader = csv.DictReader(StringIO(text))
    fieldnames = [name.strip() for name in reader.fieldnames or []]
    if not fieldnames:
        raise EmptyCsvError()
    if REQUIRED_COLUMN not in fieldnames:
        raise CsvFormatError(f"missing required column {REQUIRED_COLUMN}")
    reader.fieldnames = fieldnames

    rows: list[TaxCsvRow] = []
    for row in reader:
        line = reader.line_num
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue

        total_income = _parse_amount(row.get(REQUIRED_COLUMN), REQUIRED_COLUMN, line)
        if total_income is None:
            raise CsvFormatError(f"line {line}: field {REQUIRED_COLUMN} is required")

        values: dict[str, Decimal] = {REQUIRED_COLUMN: total_income}
        for column in OPTIONAL_COLUMNS:
            amount = _parse_amount(row.get(column), column, line)
            if amount is not None:
                values[column] = amount
        rows.append(TaxCsvRow(**values))

    if not rows:
        raise EmptyCsvError()

    logger.info("Read %d rows from tax CSV", len(rows))
    return rows

"""Tests for the tax calculation endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.calculators.errors import WithholdingExceedsIncomeError
from src.calculators.income_tax import BracketTax, CalculationResult, DeductionConfig
from src.calculators.tax_data import AllowanceType
from src.db.deduction_config import SettingsStoreError
from src.db.models import DeductionConfigRow


def _csv_upload(content: str) -> dict:  # type: ignore[type-arg]
    return {"taxFile": ("taxes.csv", content.encode(), "text/csv")}


def test_health(client: TestClient) -> None:
    """GET /health returns ok status."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# --- /tax/calculations ---


def test_calculate_returns_tax_and_levels(client: TestClient) -> None:
    response = client.post("/tax/calculations", json={"totalIncome": 500000.0})

    assert response.status_code == 200
    data = response.json()
    assert data["tax"] == 29000.0
    assert "taxRefund" not in data
    assert [lvl["level"] for lvl in data["taxLevel"]] == [
        "0-150,000",
        "150,001-500,000",
        "500,001-1,000,000",
        "1,000,001-2,000,000",
        "2,000,001 ขึ้นไป",
    ]
    assert [lvl["tax"] for lvl in data["taxLevel"]] == [0.0, 29000.0, 0.0, 0.0, 0.0]


def test_calculate_with_allowances(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations",
        json={
            "totalIncome": 500000.0,
            "wht": 0.0,
            "allowances": [
                {"allowanceType": "k-receipt", "amount": 200000.0},
                {"allowanceType": "donation", "amount": 100000.0},
            ],
        },
    )

    assert response.status_code == 200
    assert response.json()["tax"] == 14000.0


def test_calculate_returns_refund(client: TestClient) -> None:
    response = client.post("/tax/calculations", json={"totalIncome": 150000.0, "wht": 1000.0})

    assert response.status_code == 200
    data = response.json()
    assert data["tax"] == 0.0
    assert data["taxRefund"] == 1000.0


def test_calculate_uses_stored_caps(mock_store: AsyncMock, client: TestClient) -> None:
    mock_store.get.return_value = DeductionConfigRow(
        id=1, personal=Decimal("100000"), k_receipt=Decimal("50000")
    )

    response = client.post("/tax/calculations", json={"totalIncome": 500000.0})

    assert response.status_code == 200
    assert response.json()["tax"] == 25000.0


def test_calculate_negative_income_returns_400(client: TestClient) -> None:
    response = client.post("/tax/calculations", json={"totalIncome": -1000.0})
    assert response.status_code == 400
    assert response.json() == {"error": "value must be positive"}


def test_calculate_wht_above_income_returns_400(client: TestClient) -> None:
    response = client.post("/tax/calculations", json={"totalIncome": 500000.0, "wht": 500001.0})
    assert response.status_code == 400
    assert response.json() == {
        "error": "with holding tax must be lower than or equal to income"
    }


def test_calculate_unknown_allowance_returns_400(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations",
        json={"totalIncome": 500000.0, "allowances": [{"allowanceType": "lottery", "amount": 1}]},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "incorrect allowance type"}


def test_calculate_personal_allowance_claim_returns_400(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations",
        json={
            "totalIncome": 500000.0,
            "allowances": [{"allowanceType": "personal", "amount": 400000.0}],
        },
    )
    assert response.status_code == 400
    assert response.json() == {"error": "incorrect allowance type"}


def test_calculate_amount_above_limit_returns_422(client: TestClient) -> None:
    for body in (
        {"totalIncome": 1e16},
        {"totalIncome": 500000.0, "wht": 1e16},
        {"totalIncome": 500000.0, "allowances": [{"allowanceType": "donation", "amount": 1e16}]},
    ):
        response = client.post("/tax/calculations", json=body)
        assert response.status_code == 422


def test_calculate_amount_at_limit(client: TestClient) -> None:
    response = client.post("/tax/calculations", json={"totalIncome": 1e15})

    assert response.status_code == 200
    assert response.json()["tax"] == 349999999589000.0


def test_calculate_missing_income_returns_422(client: TestClient) -> None:
    response = client.post("/tax/calculations", json={"wht": 100.0})
    assert response.status_code == 422


def test_calculate_store_failure_returns_500(mock_store: AsyncMock, client: TestClient) -> None:
    mock_store.get.side_effect = SettingsStoreError("failed to read deduction config")

    response = client.post("/tax/calculations", json={"totalIncome": 500000.0})

    assert response.status_code == 500
    assert response.json() == {"error": "failed to read deduction config"}


def test_calculate_uses_injected_calculator(app: FastAPI, client: TestClient) -> None:
    """Handlers call whatever calculator is on app.state."""
    calculator = MagicMock()
    calculator.calculate.return_value = CalculationResult(
        tax=Decimal("1.5"),
        refund=Decimal("0"),
        tax_levels=(BracketTax(1, "only", Decimal("1.5")),),
    )
    app.state.calculator = calculator

    response = client.post(
        "/tax/calculations",
        json={
            "totalIncome": 1000.0,
            "wht": 10.0,
            "allowances": [{"allowanceType": "donation", "amount": 5.0}],
        },
    )

    assert response.status_code == 200
    assert response.json() == {"tax": 1.5, "taxLevel": [{"level": "only", "tax": 1.5}]}
    income, wht, allowances, config = calculator.calculate.call_args.args
    assert income == Decimal("1000.0")
    assert wht == Decimal("10.0")
    assert allowances[0].allowance_type == "donation"
    assert config == DeductionConfig(personal=Decimal("60000"), k_receipt=Decimal("50000"))


def test_calculate_injected_error_returns_400(app: FastAPI, client: TestClient) -> None:
    calculator = MagicMock()
    calculator.calculate.side_effect = WithholdingExceedsIncomeError()
    app.state.calculator = calculator

    response = client.post("/tax/calculations", json={"totalIncome": 1.0})

    assert response.status_code == 400


# --- /tax/calculations/upload-csv ---


def test_upload_csv(client: TestClient) -> None:
    csv_content = (
        "totalIncome,wht,donation\n"
        "500000,0,0\n"
        "600000,40000,20000\n"
        "750000,50000,15000\n"
    )

    response = client.post("/tax/calculations/upload-csv", files=_csv_upload(csv_content))

    assert response.status_code == 200
    assert response.json() == {
        "taxes": [
            {"totalIncome": 500000.0, "tax": 29000.0},
            {"totalIncome": 600000.0, "tax": 0.0, "taxRefund": 2000.0},
            {"totalIncome": 750000.0, "tax": 11250.0},
        ]
    }


def test_upload_csv_reads_config_once(mock_store: AsyncMock, client: TestClient) -> None:
    csv_content = "totalIncome,wht,donation\n500000,0,0\n600000,0,0\n700000,0,0\n"

    response = client.post("/tax/calculations/upload-csv", files=_csv_upload(csv_content))

    assert response.status_code == 200
    mock_store.get.assert_awaited_once()


def test_upload_csv_rows_use_donation_allowance(app: FastAPI, client: TestClient) -> None:
    calculator = MagicMock()
    calculator.calculate.return_value = CalculationResult(Decimal("0"), Decimal("0"), ())
    app.state.calculator = calculator

    response = client.post(
        "/tax/calculations/upload-csv",
        files=_csv_upload("totalIncome,wht,donation\n500000,0,1234\n"),
    )

    assert response.status_code == 200
    allowances = calculator.calculate.call_args.args[2]
    assert [(a.allowance_type, a.amount) for a in allowances] == [
        (AllowanceType.DONATION, Decimal("1234"))
    ]


def test_upload_csv_empty_returns_400(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations/upload-csv", files=_csv_upload("totalIncome,wht,donation\n")
    )
    assert response.status_code == 400
    assert response.json() == {"error": "empty csv file given"}


def test_upload_csv_missing_file_returns_400(client: TestClient) -> None:
    response = client.post("/tax/calculations/upload-csv")
    assert response.status_code == 400


def test_upload_csv_invalid_number_returns_400(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations/upload-csv",
        files=_csv_upload("totalIncome,wht,donation\nabc,0,0\n"),
    )
    assert response.status_code == 400


def test_upload_csv_row_validation_error(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations/upload-csv",
        files=_csv_upload("totalIncome,wht,donation\n500000,0,0\n100,200,0\n"),
    )
    assert response.status_code == 400
    assert response.json() == {
        "error": "with holding tax must be lower than or equal to income"
    }


def test_upload_csv_store_failure_returns_500(mock_store: AsyncMock, client: TestClient) -> None:
    mock_store.get.side_effect = SettingsStoreError("failed to read deduction config")

    response = client.post(
        "/tax/calculations/upload-csv",
        files=_csv_upload("totalIncome,wht,donation\n500000,0,0\n"),
    )

    assert response.status_code == 500


def test_upload_csv_amount_above_limit_returns_400(client: TestClient) -> None:
    response = client.post(
        "/tax/calculations/upload-csv",
        files=_csv_upload("totalIncome,wht,donation\n10000000000000000,0,0\n"),
    )
    assert response.status_code == 400
    assert "too large" in response.json()["error"]

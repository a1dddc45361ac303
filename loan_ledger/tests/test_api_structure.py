"""
Test API structure and endpoint definitions.

These tests verify the API is properly configured without requiring
database connections or backend business logic.
"""

from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient


def test_api_can_import():
    """Test that API modules can be imported."""
    from loan_ledger.api import main
    from loan_ledger.api import schemas
    from loan_ledger.api.routes import loans

    assert main.app is not None
    assert hasattr(schemas, "LoanCreate")
    assert hasattr(loans, "router")


def test_routes_registered():
    from loan_ledger.api.main import app

    paths = {route.path for route in app.routes}
    assert "/api/loan" in paths
    assert "/api/loan/{loan_id}" in paths
    assert "/api/loan/{loan_id}/payment" in paths
    assert "/api/loan/{loan_id}/payoff" in paths
    assert "/api/loan/{loan_id}/payments" in paths
    assert "/api/loan/{loan_id}/schedule" in paths


def test_repositories_defined():
    """Test that all repository classes are defined."""
    from loan_ledger.db.repositories import LoanPaymentRepository, LoanRepository

    assert LoanRepository is not None
    assert LoanPaymentRepository is not None


def test_schemas_use_camel_case():
    from loan_ledger.api.schemas import LoanCreate, PaymentProgress

    loan = LoanCreate.model_validate(
        {
            "title": "Car",
            "lenderName": "Bank",
            "amount": "1200",
            "interestRate": 12,
            "startDate": "2024-01-01",
            "paymentFrequency": "monthly",
            "compoundingFrequency": "quarterly",
            "numberOfPayments": 12,
        }
    )
    assert loan.lender_name == "Bank"
    assert loan.amount == Decimal("1200")
    assert loan.start_date == date(2024, 1, 1)
    assert loan.compounding_frequency == "quarterly"

    progress = PaymentProgress(
        original_amount=Decimal("1200.00"),
        total_with_interest=Decimal("1279.44"),
        amount_paid=Decimal("106.62"),
        amount_remaining=Decimal("1172.82"),
        remaining_balance=Decimal("1105.38"),
        payments_remaining=11,
    )
    dumped = progress.model_dump(mode="json", by_alias=True)
    assert dumped["totalWithInterest"] == 1279.44
    assert dumped["paymentsRemaining"] == 11


def test_health_endpoint():
    """Test health endpoint."""
    from loan_ledger.api.main import app

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


def test_root_endpoint():
    """Test root endpoint."""
    from loan_ledger.api.main import app

    client = TestClient(app)
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "Loan Ledger API"


def test_money_serialized_to_cents():
    from loan_ledger.api.schemas import PaymentProgress

    progress = PaymentProgress(
        original_amount=Decimal("1200"),
        total_with_interest=Decimal("1279.444"),
        amount_paid=Decimal("106.615"),
        amount_remaining=Decimal("1172.8250"),
        remaining_balance=Decimal("1105.60"),
        payments_remaining=11,
    )
    dumped = progress.model_dump(mode="json", by_alias=True)
    assert dumped["originalAmount"] == 1200.0
    assert dumped["totalWithInterest"] == 1279.44
    assert dumped["amountPaid"] == 106.62
    assert dumped["amountRemaining"] == 1172.83
    assert dumped["remainingBalance"] == 1105.6
    # Python objects keep full Decimal precision
    assert progress.model_dump()["amount_paid"] == Decimal("106.615")


def test_lifespan_disposes_connection_pool(monkeypatch):
    from loan_ledger.api import main

    calls = []

    class FakeManager:
        def dispose(self):
            calls.append("dispose")

    monkeypatch.delenv("VERCEL", raising=False)
    monkeypatch.setattr(main, "init_database", lambda: calls.append("init"))
    monkeypatch.setattr(main, "get_db_manager", lambda: FakeManager())

    with TestClient(main.app) as client:
        assert client.get("/health").status_code == 200
        assert calls == ["init"]
    assert calls == ["init", "dispose"]

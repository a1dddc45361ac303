"""
Loan API integration tests using in-memory SQLite.

Covers loan creation and listing, payments, idempotent retries, payoff,
error bodies and bearer-token ownership.

Run: python -m pytest loan_ledger/tests/test_loans_api.py -v
"""

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from loan_ledger.api.main import app
from loan_ledger.core.config import get_settings
from loan_ledger.core.engine.locks import get_lock_registry
from loan_ledger.db.connection import get_db_session
from loan_ledger.db.models import Base, User


# ---------------------------------------------------------------------------
# Test database setup
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db_session():
    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


app.dependency_overrides[get_db_session] = override_get_db_session

client = TestClient(app)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables and seed test user before each test, drop after."""
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        db.add(User(id=1, name="Test User", email="test@ledger.local"))
        db.commit()
    finally:
        db.close()

    yield

    Base.metadata.drop_all(bind=engine)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

LOAN_PAYLOAD = {
    "title": "Car loan",
    "lenderName": "City Bank",
    "amount": 1200,
    "interestRate": 12,
    "startDate": "2024-01-01",
    "endDate": "2024-12-01",
    "paymentFrequency": "monthly",
    "compoundingFrequency": "monthly",
    "numberOfPayments": 12,
    "status": "active",
    "notes": "",
}


def _create_loan(**overrides) -> dict:
    payload = {**LOAN_PAYLOAD, **overrides}
    resp = client.post("/api/loan", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _pay(loan_id, amount, payment_date, key=None):
    headers = {"Idempotency-Key": key} if key else {}
    return client.post(
        f"/api/loan/{loan_id}/payment",
        json={"paymentAmount": amount, "paymentDate": payment_date},
        headers=headers,
    )


DUE_DATES = [f"2024-{month:02d}-01" for month in range(2, 13)] + ["2025-01-01"]


# ===========================================================================
# Loans
# ===========================================================================


class TestCreateLoan:
    def test_create_loan(self):
        data = _create_loan()
        assert data["id"] is not None
        assert data["paymentAmount"] == 106.62
        assert data["amount"] == 1200.0
        assert data["interestRate"] == 12.0
        assert data["remainingBalance"] == 1200.0
        assert data["paymentsRemaining"] == 12
        assert data["status"] == "active"
        assert data["lenderName"] == "City Bank"
        # Supplied end date is replaced by the computed one
        assert data["endDate"] == "2025-01-01"
        assert data["nextDueDate"] == "2024-02-01"

    def test_rate_with_percent_sign(self):
        data = _create_loan(interestRate="12%")
        assert data["paymentAmount"] == 106.62

    def test_rate_at_stored_precision(self):
        data = _create_loan(interestRate="7.1234")
        stored = client.get(f"/api/loan/{data['id']}").json()
        assert stored["interestRate"] == 7.1234
        assert stored["paymentAmount"] == data["paymentAmount"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount": 0},
            {"amount": -50},
            {"interestRate": 150},
            {"interestRate": "7.12345"},
            {"numberOfPayments": 0},
            {"status": "paid_off"},
        ],
    )
    def test_invalid_input(self, overrides):
        resp = client.post("/api/loan", json={**LOAN_PAYLOAD, **overrides})
        assert resp.status_code == 400
        assert "message" in resp.json()

    def test_malformed_request(self):
        resp = client.post("/api/loan", json={**LOAN_PAYLOAD, "paymentFrequency": "weekly"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["message"] == "Invalid request"
        assert body["errors"]

    def test_get_loan(self):
        created = _create_loan()
        resp = client.get(f"/api/loan/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Car loan"

    def test_get_missing_loan(self):
        resp = client.get("/api/loan/999")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Loan 999 not found"}


class TestListLoans:
    def test_pagination(self):
        for index in range(12):
            _create_loan(title=f"Loan {index}")

        first = client.get("/api/loan", params={"page": 1}).json()
        assert first["total"] == 12
        assert first["pages"] == 2
        assert first["page"] == 1
        assert len(first["loans"]) == 10

        second = client.get("/api/loan", params={"page": 2}).json()
        assert len(second["loans"]) == 2

    def test_empty(self):
        data = client.get("/api/loan").json()
        assert data == {"loans": [], "pages": 1, "page": 1, "total": 0}

    def test_invalid_page(self):
        assert client.get("/api/loan", params={"page": 0}).status_code == 422


# ===========================================================================
# Payments
# ===========================================================================


class TestPayments:
    def test_first_payment(self):
        loan = _create_loan()
        resp = _pay(loan["id"], 106.62, "2024-02-01")
        assert resp.status_code == 200, resp.text
        data = resp.json()

        details = data["paymentDetails"]
        assert details["interest"] == 12.0
        assert details["principalPaid"] == 94.62
        assert details["balanceAfter"] == 1105.38

        progress = data["paymentProgress"]
        assert progress == {
            "originalAmount": 1200.0,
            "totalWithInterest": 1279.44,
            "amountPaid": 106.62,
            "amountRemaining": 1172.82,
            "remainingBalance": 1105.38,
            "paymentsRemaining": 11,
        }
        assert data["payoffDetails"] is None

    def test_full_schedule(self):
        loan = _create_loan()
        for due in DUE_DATES:
            resp = _pay(loan["id"], 106.62, due)
            assert resp.status_code == 200, resp.text

        final = resp.json()
        assert final["paymentProgress"]["remainingBalance"] == 0
        assert final["paymentProgress"]["amountRemaining"] == 0
        assert final["payoffDetails"]["totalPaid"] == 1279.44

        stored = client.get(f"/api/loan/{loan['id']}").json()
        assert stored["status"] == "paid_off"
        assert stored["totalInterestPaid"] == 79.42

        history = client.get(f"/api/loan/{loan['id']}/payments").json()
        assert len(history["payments"]) == 12

    def test_oversized_payment_suggests_payoff(self):
        loan = _create_loan()
        assert _pay(loan["id"], 1320, "2024-02-01").status_code == 200

        other = _create_loan()
        resp = _pay(other["id"], 1320.01, "2024-02-01")
        assert resp.status_code == 422
        body = resp.json()
        assert body["suggestedPayment"] == 1212.0
        assert "message" in body

        unchanged = client.get(f"/api/loan/{other['id']}").json()
        assert unchanged["remainingBalance"] == 1200.0
        assert unchanged["paymentsMade"] == 0

    def test_zero_payment(self):
        loan = _create_loan()
        resp = _pay(loan["id"], 0, "2024-02-01")
        assert resp.status_code == 422
        assert "suggestedPayment" not in resp.json()

    def test_payment_before_start(self):
        loan = _create_loan()
        resp = _pay(loan["id"], 106.62, "2023-12-01")
        assert resp.status_code == 422

    def test_payment_on_paid_off_loan(self):
        loan = _create_loan()
        client.post(f"/api/loan/{loan['id']}/payoff", json={"payoffDate": "2024-01-15"})
        resp = _pay(loan["id"], 10, "2024-02-01")
        assert resp.status_code == 409
        assert client.get(f"/api/loan/{loan['id']}").json()["paymentsMade"] == 0

    def test_idempotent_retry(self):
        loan = _create_loan()
        first = _pay(loan["id"], 106.62, "2024-02-01", key="retry-1")
        second = _pay(loan["id"], 106.62, "2024-02-01", key="retry-1")
        assert first.status_code == second.status_code == 200
        assert first.json()["paymentDetails"] == second.json()["paymentDetails"]

        stored = client.get(f"/api/loan/{loan['id']}").json()
        assert stored["paymentsMade"] == 1
        assert stored["remainingBalance"] == 1105.38

    def test_same_amount_without_key_applies_twice(self):
        loan = _create_loan()
        _pay(loan["id"], 106.62, "2024-02-01")
        _pay(loan["id"], 106.62, "2024-02-01")
        assert client.get(f"/api/loan/{loan['id']}").json()["paymentsMade"] == 2

    def test_busy_loan(self, monkeypatch):
        loan = _create_loan()
        registry = get_lock_registry()
        monkeypatch.setattr(registry, "default_timeout", 0.05)
        with registry.hold(loan["id"]):
            resp = _pay(loan["id"], 106.62, "2024-02-01")
        assert resp.status_code == 503
        assert "Retry-After" in resp.headers
        assert client.get(f"/api/loan/{loan['id']}").json()["paymentsMade"] == 0

    def test_payment_on_missing_loan(self):
        assert _pay(999, 10, "2024-02-01").status_code == 404

    def test_unknown_loans_leave_no_locks_behind(self):
        for loan_id in range(10000, 10050):
            assert _pay(loan_id, 10, "2024-02-01").status_code == 404
            assert client.post(f"/api/loan/{loan_id}/payoff", json={}).status_code == 404
        assert get_lock_registry()._locks == {}


# ===========================================================================
# Payoff
# ===========================================================================


class TestPayoff:
    def test_payoff_mid_schedule(self):
        loan = _create_loan()
        for due in DUE_DATES[:6]:
            _pay(loan["id"], 106.62, due)

        resp = client.post(f"/api/loan/{loan['id']}/payoff", json={"payoffDate": "2024-08-01"})
        assert resp.status_code == 200, resp.text
        details = resp.json()["payoffDetails"]
        assert details == {
            "finalPayment": 624.07,
            "finalInterest": 6.18,
            "totalPaid": 1263.79,
            "savings": 15.63,
        }
        assert resp.json()["paymentDetails"]["kind"] == "payoff"

        stored = client.get(f"/api/loan/{loan['id']}").json()
        assert stored["status"] == "paid_off"
        assert stored["remainingBalance"] == 0

    def test_payoff_without_body_uses_today(self):
        loan = _create_loan()
        resp = client.post(f"/api/loan/{loan['id']}/payoff")
        assert resp.status_code == 200, resp.text
        assert resp.json()["payoffDetails"]["finalPayment"] >= 1200

    def test_payoff_twice(self):
        loan = _create_loan()
        client.post(f"/api/loan/{loan['id']}/payoff", json={"payoffDate": "2024-01-15"})
        resp = client.post(f"/api/loan/{loan['id']}/payoff", json={"payoffDate": "2024-01-20"})
        assert resp.status_code == 409
        assert resp.json() == {"message": "Loan is already paid off"}

    def test_payoff_retry_with_key(self):
        loan = _create_loan()
        headers = {"Idempotency-Key": "payoff-1"}
        first = client.post(f"/api/loan/{loan['id']}/payoff", json={"payoffDate": "2024-01-15"}, headers=headers)
        second = client.post(f"/api/loan/{loan['id']}/payoff", json={"payoffDate": "2024-01-15"}, headers=headers)
        assert second.status_code == 200
        assert first.json() == second.json()


# ===========================================================================
# Schedule
# ===========================================================================


class TestSchedule:
    def test_schedule_after_payment(self):
        loan = _create_loan()
        _pay(loan["id"], 106.62, "2024-02-01")
        data = client.get(f"/api/loan/{loan['id']}/schedule").json()
        assert data["paymentAmount"] == 106.62
        assert data["projectedPaymentsRemaining"] == 11
        assert len(data["rows"]) == 11
        assert data["rows"][0]["dueDate"] == "2024-03-01"
        assert data["rows"][0]["interestPayment"] == 11.05
        assert data["rows"][-1]["balanceAfter"] == 0

    def test_extra_payment_shortens_projection(self):
        loan = _create_loan()
        _pay(loan["id"], 600, "2024-02-01")
        data = client.get(f"/api/loan/{loan['id']}/schedule").json()
        assert data["projectedPaymentsRemaining"] < 11


# ===========================================================================
# Authentication
# ===========================================================================


class TestAuth:
    SECRET = "test-secret-key-with-at-least-32-bytes!"

    @pytest.fixture
    def token_mode(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "auth_secret_key", self.SECRET)

    def _headers(self, subject):
        token = jwt.encode({"sub": subject}, self.SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    def test_missing_token(self, token_mode):
        assert client.get("/api/loan").status_code == 401

    def test_bad_token(self, token_mode):
        resp = client.get("/api/loan", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_loans_are_private(self, token_mode):
        alice = self._headers("alice")
        bob = self._headers("bob")
        resp = client.post("/api/loan", json=LOAN_PAYLOAD, headers=alice)
        assert resp.status_code == 201, resp.text
        loan_id = resp.json()["id"]

        assert client.get(f"/api/loan/{loan_id}", headers=alice).status_code == 200
        assert client.get(f"/api/loan/{loan_id}", headers=bob).status_code == 403
        assert client.get("/api/loan", headers=bob).json()["total"] == 0
        denied = client.post(
            f"/api/loan/{loan_id}/payment",
            json={"paymentAmount": 10, "paymentDate": "2024-02-01"},
            headers=bob,
        )
        assert denied.status_code == 403

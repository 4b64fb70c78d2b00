from datetime import datetime

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from condohub.api import get_db, get_now, router
from condohub.auth_api import router as auth_router
from condohub.db import Base
from condohub.seed import seed_demo_data

NOW = datetime(2025, 1, 14, 10, 0)

CARD = {
    "method": "credit",
    "card_number": "4111 1111 1111 1111",
    "expiry": "12/27",
    "cvv": "123",
    "card_name": "Juan Perez",
}


def make_client(tmp_path, now=NOW):
    db_path = tmp_path / "test_condohub.db"
    database_url = f"sqlite:///{db_path}"
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    with TestingSessionLocal() as db:
        seed_demo_data(db)

    app = FastAPI()
    app.include_router(router)
    app.include_router(auth_router)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: now
    return TestClient(app)


def auth_headers(client, email):
    res = client.post("/auth/login", json={"email": email, "password": "password123"})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def test_resident_sees_only_own_expenses(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    res = client.get("/api/expenses", headers=juan)
    assert res.status_code == 200
    rows = res.json()
    assert len(rows) == 1
    assert rows[0]["status"] == "pending"
    assert rows[0]["amount"] == 85000
    assert rows[0]["amount_display"] == "$85.000"

    admin = auth_headers(client, "admin@procomunidad.cl")
    assert len(client.get("/api/expenses", headers=admin).json()) == 2
    assert client.get("/api/expenses/years", headers=juan).json() == [2025]


def test_expense_filters(tmp_path):
    client = make_client(tmp_path)
    admin = auth_headers(client, "admin@procomunidad.cl")

    paid = client.get("/api/expenses", headers=admin, params={"status": "paid"}).json()
    assert len(paid) == 1
    assert paid[0]["payment_method"] == "transfer"

    assert client.get("/api/expenses", headers=admin, params={"q": "enero"}).json()
    assert client.get("/api/expenses", headers=admin, params={"q": "febrero"}).json() == []
    assert client.get("/api/expenses", headers=admin, params={"year": 2024}).json() == []
    assert client.get("/api/expenses", headers=admin, params={"status": "late"}).status_code == 400


def test_pay_with_card(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    res = client.post("/api/expenses/1/pay", headers=juan, json=CARD)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "paid"
    assert body["payment_method"] == "credit"
    assert body["payment_reference"].startswith("PAY-")
    assert body["paid_date"] == "2025-01-14T10:00:00"

    again = client.post("/api/expenses/1/pay", headers=juan, json=CARD)
    assert again.status_code == 409


def test_pay_by_transfer_needs_no_card(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    res = client.post("/api/expenses/1/pay", headers=juan, json={"method": "transfer"})
    assert res.status_code == 200
    assert res.json()["payment_method"] == "transfer"


def test_card_validation_errors(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    cases = [
        ({"card_number": "1234"}, "Invalid card number"),
        ({"expiry": "12/24"}, "Card expired or expiry date invalid"),
        ({"expiry": "13/27"}, "Card expired or expiry date invalid"),
        ({"cvv": "12"}, "Invalid CVV"),
        ({"card_name": "  "}, "Cardholder name is required"),
    ]
    for override, detail in cases:
        res = client.post("/api/expenses/1/pay", headers=juan, json={**CARD, **override})
        assert res.status_code == 400, override
        assert res.json()["detail"] == detail

    assert client.post("/api/expenses/1/pay", headers=juan, json={"method": "cash"}).status_code == 422

    still_pending = client.get("/api/expenses", headers=juan).json()[0]
    assert still_pending["status"] == "pending"


def test_cannot_pay_another_residents_expense(tmp_path):
    client = make_client(tmp_path)
    ana = auth_headers(client, "ana.silva@email.com")

    assert client.post("/api/expenses/1/pay", headers=ana, json=CARD).status_code == 403
    assert client.post("/api/expenses/99/pay", headers=ana, json=CARD).status_code == 404


def test_mark_overdue_then_pay(tmp_path):
    client = make_client(tmp_path, now=datetime(2025, 1, 16, 9, 0))
    admin = auth_headers(client, "admin@procomunidad.cl")
    juan = auth_headers(client, "juan.perez@email.com")

    assert client.post("/api/expenses/mark-overdue", headers=juan).status_code == 403

    res = client.post("/api/expenses/mark-overdue", headers=admin)
    assert res.status_code == 200
    assert res.json() == {"updated": 1}

    expense = client.get("/api/expenses", headers=juan).json()[0]
    assert expense["status"] == "overdue"

    assert client.post("/api/expenses/mark-overdue", headers=admin).json() == {"updated": 0}

    paid = client.post("/api/expenses/1/pay", headers=juan, json={"method": "transfer"})
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"


def test_nothing_overdue_before_due_date(tmp_path):
    client = make_client(tmp_path)
    admin = auth_headers(client, "admin@procomunidad.cl")
    assert client.post("/api/expenses/mark-overdue", headers=admin).json() == {"updated": 0}


def test_admin_issues_expense(tmp_path):
    client = make_client(tmp_path)
    admin = auth_headers(client, "admin@procomunidad.cl")
    juan = auth_headers(client, "juan.perez@email.com")

    payload = {
        "user_id": 2,
        "month": "Febrero",
        "year": 2025,
        "amount": 87000,
        "description": "Gastos comunes - Febrero 2025",
        "due_date": "2025-02-15",
    }
    assert client.post("/api/expenses", headers=juan, json=payload).status_code == 403

    res = client.post("/api/expenses", headers=admin, json=payload)
    assert res.status_code == 200
    assert res.json()["status"] == "pending"
    assert res.json()["amount_display"] == "$87.000"

    not_resident = client.post("/api/expenses", headers=admin, json={**payload, "user_id": 1})
    assert not_resident.status_code == 400
    assert not_resident.json()["detail"] == "Resident not found"

    assert client.post("/api/expenses", headers=admin, json={**payload, "amount": 0}).status_code == 422
    assert len(client.get("/api/expenses", headers=juan).json()) == 2


def test_expenses_csv_export(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    res = client.get("/api/export/expenses.csv", headers=juan)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    lines = res.text.strip().splitlines()
    assert lines[0].startswith("id,apartment,resident,month,year,amount,status")
    assert len(lines) == 2
    assert "Juan Pérez" in lines[1]
    assert ",85000,pending," in lines[1]

    admin = auth_headers(client, "admin@procomunidad.cl")
    all_rows = client.get("/api/export/expenses.csv", headers=admin).text.strip().splitlines()
    assert len(all_rows) == 3

from datetime import datetime

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from condohub.api import admin_router, get_db, get_now, router
from condohub.auth_api import router as auth_router
from condohub.db import Base
from condohub.seed import seed_demo_data

NOW = datetime(2025, 1, 14, 10, 0)


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
    app.include_router(admin_router)
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


def test_list_own_reservations_with_cost_and_cancel_flag(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    res = client.get("/api/reservations", headers=juan)
    assert res.status_code == 200
    rows = res.json()
    assert [r["date"] for r in rows] == ["2025-01-20", "2025-01-25"]
    assert rows[0]["space_name"] == "Salón de Eventos"
    assert rows[0]["estimated_cost"] == 75000
    assert rows[1]["estimated_cost"] == 60000
    assert all(r["can_cancel"] for r in rows)

    ana = auth_headers(client, "ana.silva@email.com")
    assert client.get("/api/reservations", headers=ana).json() == []


def test_create_reservation_is_confirmed(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    res = client.post(
        "/api/reservations",
        headers=juan,
        json={"space_id": 2, "date": "2025-01-16", "start_time": "12:00", "end_time": "14:00", "notes": "Almuerzo"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "confirmed"
    assert body["estimated_cost"] == 30000
    assert body["space_name"] == "Quincho"
    assert body["can_cancel"] is True


def test_reservation_date_rules(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    def attempt(day):
        return client.post(
            "/api/reservations",
            headers=juan,
            json={"space_id": 1, "date": day, "start_time": "09:00", "end_time": "10:00"},
        )

    today = attempt("2025-01-14")
    assert today.status_code == 400
    assert "before_min" in today.json()["detail"]

    sunday = attempt("2025-01-19")
    assert sunday.status_code == 400
    assert "disabled_weekday" in sunday.json()["detail"]

    too_far = attempt("2025-03-16")
    assert too_far.status_code == 400
    assert "after_max" in too_far.json()["detail"]

    assert attempt("2025-03-15").status_code == 200


def test_reservation_hours_validation(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    reversed_hours = client.post(
        "/api/reservations",
        headers=juan,
        json={"space_id": 1, "date": "2025-01-16", "start_time": "11:00", "end_time": "10:00"},
    )
    assert reversed_hours.status_code == 400
    assert reversed_hours.json()["detail"] == "end_time must be after start_time"

    closed_hour = client.post(
        "/api/reservations",
        headers=juan,
        json={"space_id": 1, "date": "2025-01-16", "start_time": "12:00", "end_time": "14:00"},
    )
    assert closed_hour.status_code == 400

    bad_format = client.post(
        "/api/reservations",
        headers=juan,
        json={"space_id": 1, "date": "2025-01-16", "start_time": "9am", "end_time": "10:00"},
    )
    assert bad_format.status_code == 422

    missing_space = client.post(
        "/api/reservations",
        headers=juan,
        json={"space_id": 99, "date": "2025-01-16", "start_time": "09:00", "end_time": "10:00"},
    )
    assert missing_space.status_code == 404


def test_overlapping_reservation_is_rejected_but_adjacent_is_allowed(tmp_path):
    client = make_client(tmp_path)
    ana = auth_headers(client, "ana.silva@email.com")

    overlap = client.post(
        "/api/reservations",
        headers=ana,
        json={"space_id": 1, "date": "2025-01-20", "start_time": "16:00", "end_time": "17:00"},
    )
    assert overlap.status_code == 400
    assert "overlaps" in overlap.json()["detail"]

    adjacent = client.post(
        "/api/reservations",
        headers=ana,
        json={"space_id": 1, "date": "2025-01-20", "start_time": "18:00", "end_time": "20:00"},
    )
    assert adjacent.status_code == 200


def test_cancel_requires_more_than_24_hours_notice(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    created = client.post(
        "/api/reservations",
        headers=juan,
        json={"space_id": 1, "date": "2025-01-15", "start_time": "10:00", "end_time": "11:00"},
    )
    assert created.status_code == 200
    body = created.json()
    # Exactly 24 hours before start.
    assert body["can_cancel"] is False

    blocked = client.post(f"/api/reservations/{body['id']}/cancel", headers=juan)
    assert blocked.status_code == 400

    admin = auth_headers(client, "admin@procomunidad.cl")
    forced = client.post(f"/api/reservations/{body['id']}/cancel", headers=admin)
    assert forced.status_code == 200
    assert forced.json()["status"] == "cancelled"

    again = client.post(f"/api/reservations/{body['id']}/cancel", headers=admin)
    assert again.status_code == 409


def test_cancel_own_reservation_and_history(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    ana = auth_headers(client, "ana.silva@email.com")

    foreign = client.post("/api/reservations/1/cancel", headers=ana)
    assert foreign.status_code == 403

    res = client.post("/api/reservations/1/cancel", headers=juan)
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"
    assert res.json()["can_cancel"] is False

    history = client.get("/api/reservations/1/history", headers=juan)
    assert history.status_code == 200
    events = history.json()
    assert len(events) == 1
    assert events[0]["from_status"] == "confirmed"
    assert events[0]["to_status"] == "cancelled"
    assert events[0]["actor"] == "juan.perez@email.com"

    assert client.get("/api/reservations/1/history", headers=ana).status_code == 403
    assert client.get("/api/reservations/999/history", headers=juan).status_code == 404


def test_cancelled_slot_can_be_booked_again(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    ana = auth_headers(client, "ana.silva@email.com")

    assert client.post("/api/reservations/1/cancel", headers=juan).status_code == 200
    res = client.post(
        "/api/reservations",
        headers=ana,
        json={"space_id": 1, "date": "2025-01-20", "start_time": "15:00", "end_time": "18:00"},
    )
    assert res.status_code == 200


def test_confirm_is_admin_only_and_checks_transition(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    admin = auth_headers(client, "admin@procomunidad.cl")

    assert client.post("/api/reservations/1/confirm", headers=juan).status_code == 403
    already = client.post("/api/reservations/1/confirm", headers=admin)
    assert already.status_code == 409
    assert already.json()["detail"] == "Invalid status transition: confirmed -> confirmed"


def test_reservation_filters(tmp_path):
    client = make_client(tmp_path)
    admin = auth_headers(client, "admin@procomunidad.cl")

    by_space = client.get("/api/reservations", headers=admin, params={"space_id": 2})
    assert [r["space_name"] for r in by_space.json()] == ["Quincho"]

    by_text = client.get("/api/reservations", headers=admin, params={"q": "juan"})
    assert len(by_text.json()) == 2

    bad_status = client.get("/api/reservations", headers=admin, params={"status": "archived"})
    assert bad_status.status_code == 400


def test_space_availability_and_quote(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")

    spaces = client.get("/api/spaces", headers=juan)
    assert spaces.status_code == 200
    assert [s["name"] for s in spaces.json()] == ["Salón de Eventos", "Quincho"]

    days = client.get("/api/spaces/1/availability", headers=juan).json()
    assert len(days) == 60
    assert days[0]["date"] == "2025-01-15"
    sunday = next(d for d in days if d["date"] == "2025-01-19")
    assert sunday["available"] is False
    assert sunday["reason"] == "disabled_weekday"
    booked = next(d for d in days if d["date"] == "2025-01-20")
    assert booked["reservations"] == 1
    assert next(d for d in days if d["date"] == "2025-01-21")["reservations"] == 0

    assert client.post("/api/reservations/1/cancel", headers=juan).status_code == 200
    days = client.get("/api/spaces/1/availability", headers=juan).json()
    assert next(d for d in days if d["date"] == "2025-01-20")["reservations"] == 0

    quote = client.get("/api/spaces/1/quote", headers=juan, params={"start_time": "15:00", "end_time": "18:00"})
    assert quote.json()["total"] == 75000
    assert quote.json()["total_display"] == "$75.000"

    empty = client.get("/api/spaces/1/quote", headers=juan, params={"start_time": "18:00", "end_time": "15:00"})
    assert empty.json()["hours"] == 0
    assert empty.json()["total"] == 0

    assert client.get("/api/spaces/42/availability", headers=juan).status_code == 404

from datetime import datetime

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from condohub.api import get_db, get_now, router
from condohub.api_messages import router as messages_router
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
    app.include_router(messages_router)
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


def test_announcements_pinned_first_then_newest(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    admin = auth_headers(client, "admin@procomunidad.cl")

    created = client.post(
        "/api/announcements",
        headers=admin,
        json={
            "title": "Corte de agua",
            "content": "El jueves se cortará el agua entre 10:00 y 12:00.",
            "type": "emergency",
            "priority": "high",
        },
    )
    assert created.status_code == 200
    assert created.json()["is_pinned"] is False

    titles = [a["title"] for a in client.get("/api/announcements", headers=juan).json()]
    assert titles == [
        "Mantención de ascensores programada",
        "Corte de agua",
        "Nueva política de reservas",
    ]

    limited = client.get("/api/announcements", headers=juan, params={"limit": 1}).json()
    assert len(limited) == 1


def test_announcement_admin_actions(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    admin = auth_headers(client, "admin@procomunidad.cl")

    payload = {"title": "Asamblea", "content": "Asamblea de copropietarios el viernes."}
    assert client.post("/api/announcements", headers=juan, json=payload).status_code == 403
    bad_type = client.post("/api/announcements", headers=admin, json={**payload, "type": "party"})
    assert bad_type.status_code == 422

    pinned = client.post("/api/announcements/2/pin", headers=admin)
    assert pinned.status_code == 200
    assert pinned.json()["is_pinned"] is True
    assert pinned.json()["updated_at"] == "2025-01-14T10:00:00"

    unpinned = client.post("/api/announcements/1/pin", headers=admin)
    assert unpinned.json()["is_pinned"] is False
    ids = [a["id"] for a in client.get("/api/announcements", headers=juan).json()]
    assert ids == [2, 1]

    assert client.delete("/api/announcements/2", headers=juan).status_code == 403
    assert client.delete("/api/announcements/2", headers=admin).status_code == 204
    assert client.delete("/api/announcements/2", headers=admin).status_code == 404
    assert client.post("/api/announcements/2/pin", headers=admin).status_code == 404


def test_messages_are_scoped_to_sender(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    ana = auth_headers(client, "ana.silva@email.com")
    admin = auth_headers(client, "admin@procomunidad.cl")

    own = client.get("/api/messages", headers=juan).json()
    assert [m["subject"] for m in own] == ["Problema con ascensor"]
    assert own[0]["status"] == "in_progress"
    assert len(own[0]["responses"]) == 1
    assert own[0]["responses"][0]["sender_type"] == "admin"

    assert len(client.get("/api/messages", headers=ana).json()) == 1
    assert len(client.get("/api/messages", headers=admin).json()) == 2


def test_create_message_and_reply(tmp_path):
    client = make_client(tmp_path)
    ana = auth_headers(client, "ana.silva@email.com")
    admin = auth_headers(client, "admin@procomunidad.cl")

    created = client.post(
        "/api/messages",
        headers=ana,
        json={"subject": "Ruidos molestos", "content": "Fiesta hasta tarde en el 4to piso.", "category": "complaint"},
    )
    assert created.status_code == 200
    message = created.json()
    assert message["status"] == "open"
    assert message["sender_name"] == "Ana Silva"
    assert message["responses"] == []

    reply = client.post(
        f"/api/messages/{message['id']}/responses",
        headers=admin,
        json={"content": "Hablaremos con el residente."},
    )
    assert reply.status_code == 200
    assert [r["sender_name"] for r in reply.json()["responses"]] == ["María González"]

    blank = client.post(f"/api/messages/{message['id']}/responses", headers=ana, json={"content": "   "})
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Response content is required"


def test_residents_cannot_touch_other_threads(tmp_path):
    client = make_client(tmp_path)
    ana = auth_headers(client, "ana.silva@email.com")

    assert client.post("/api/messages/1/responses", headers=ana, json={"content": "Hola"}).status_code == 403
    assert client.patch("/api/messages/1/status", headers=ana, json={"status": "closed"}).status_code == 403
    assert client.post("/api/messages/99/responses", headers=ana, json={"content": "Hola"}).status_code == 404


def test_message_status_transitions(tmp_path):
    client = make_client(tmp_path)
    juan = auth_headers(client, "juan.perez@email.com")
    admin = auth_headers(client, "admin@procomunidad.cl")

    resolved = client.patch("/api/messages/1/status", headers=admin, json={"status": "resolved"})
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"

    resident_close = client.patch("/api/messages/1/status", headers=juan, json={"status": "closed"})
    assert resident_close.status_code == 403
    assert resident_close.json()["detail"] == "Only administrators can change message status"

    reply = client.post("/api/messages/1/responses", headers=juan, json={"content": "Gracias"})
    assert reply.status_code == 200

    closed = client.patch("/api/messages/1/status", headers=admin, json={"status": "closed"})
    assert closed.json()["status"] == "closed"

    reopen = client.patch("/api/messages/1/status", headers=admin, json={"status": "open"})
    assert reopen.status_code == 409

    late_reply = client.post("/api/messages/1/responses", headers=admin, json={"content": "Seguimiento"})
    assert late_reply.status_code == 400
    assert late_reply.json()["detail"] == "Message is closed"

    bogus = client.patch("/api/messages/1/status", headers=admin, json={"status": "archived"})
    assert bogus.status_code == 422

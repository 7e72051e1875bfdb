from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from housekeeping.controllers.assignment_controller import router as assignment_router
from housekeeping.controllers.roster_controller import router as roster_router
from housekeeping.repository.data_repository import DataRepository, RepositoryError
from housekeeping.services.auth_service import AuthService
from housekeeping.services.auto_assignment_service import AutoAssignmentService
from housekeeping.services.roster_service import RosterService
from housekeeping.utils.config import get_settings


ADMIN_TOKEN = "secret-admin-token"
MANAGER_TOKEN = "secret-manager-token"


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    base = get_settings()
    return replace(
        base,
        database_path=tmp_path / filename,
        admin_token=ADMIN_TOKEN,
        manager_token=MANAGER_TOKEN,
        seed_demo_data=False,
    )


def _build_test_app(tmp_path) -> tuple[FastAPI, DataRepository]:
    settings = _build_test_settings(tmp_path, "api_flow.db")
    repository = DataRepository(settings)
    repository.initialize_database()

    app = FastAPI()
    app.include_router(roster_router)
    app.include_router(assignment_router)
    app.state.settings = settings
    app.state.repository = repository
    app.state.roster_service = RosterService(repository=repository, settings=settings)
    app.state.assignment_service = AutoAssignmentService(repository=repository, settings=settings)
    app.state.auth_service = AuthService(settings=settings)
    return app, repository


def _login(client: TestClient, token: str) -> dict[str, str]:
    response = client.post("/login", json={"token": token})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_manager_builds_roster_and_auto_assigns(tmp_path):
    app, repository = _build_test_app(tmp_path)
    client = TestClient(app)

    unauthenticated = client.post(
        "/auto_assign",
        json={"date": "2026-03-10", "shift_type": "Morning"},
    )
    assert unauthenticated.status_code == 401

    headers = _login(client, MANAGER_TOKEN)

    for name in ("Ana", "Ben"):
        created = client.post("/staff", json={"name": name}, headers=headers)
        assert created.status_code == 201
    supervisor = client.post(
        "/staff",
        json={"name": "Sue", "system_role": "manager"},
        headers=headers,
    )
    assert supervisor.status_code == 201

    imported = client.post(
        "/rooms/import",
        json={"csv": "Number,Type,Status\n101,Standard,Cleaning\n102,Deluxe,Occupied\n103,,\n"},
        headers=headers,
    )
    assert imported.status_code == 201
    assert [room["number"] for room in imported.json()] == ["101", "102", "103"]

    preview = client.post(
        "/auto_assign/preview",
        json={"date": "2026-03-10", "shift_type": "Morning"},
        headers=headers,
    )
    assert preview.status_code == 200
    assert repository.count_shifts() == 0

    response = client.post(
        "/auto_assign",
        json={"date": "2026-03-10", "shift_type": "Morning"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["success_count"] == 2
    assert body["failure_count"] == 0
    assert body["refresh_required"] is True
    assert body["assignments"] == preview.json()["assignments"]
    assert {item["staff_name"]: item["rooms"] for item in body["assignments"]} == {
        "Ana": ["101"],
        "Ben": ["103"],
    }

    shifts = client.get(
        "/shifts",
        params={"date": "2026-03-10", "shift": "Morning"},
        headers=headers,
    )
    assert shifts.status_code == 200
    assert len(shifts.json()) == 2

    forbidden = client.delete(f"/shifts/{shifts.json()[0]['id']}", headers=headers)
    assert forbidden.status_code == 403


def test_auto_assign_failure_is_returned_in_body(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    headers = _login(client, ADMIN_TOKEN)

    response = client.post(
        "/auto_assign",
        json={"date": "2026-03-10", "shift_type": "Evening"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["success_count"] == 0
    assert body["errors"] == ["No available staff members found"]
    assert body["refresh_required"] is False


def test_preview_rejects_capacity_overflow(tmp_path):
    app, repository = _build_test_app(tmp_path)
    repository.create_staff("Ana")
    repository.create_rooms([("101", None, None), ("102", None, None)])
    client = TestClient(app)
    headers = _login(client, ADMIN_TOKEN)

    response = client.post(
        "/auto_assign/preview",
        json={"date": "2026-03-10", "shift_type": "Morning", "max_assignments_per_staff": 1},
        headers=headers,
    )

    assert response.status_code == 400
    assert "102" in response.json()["detail"]


def test_admin_manages_shifts_and_room_deletion_cascades(tmp_path):
    app, repository = _build_test_app(tmp_path)
    member = repository.create_staff("Ana")
    rooms = repository.create_rooms([("201", None, None), ("202", None, None)])
    client = TestClient(app)
    headers = _login(client, ADMIN_TOKEN)

    created = client.post(
        "/shifts",
        json={
            "date": "2026-03-11",
            "shift": "Afternoon",
            "staff_id": member.staff_id,
            "room_ids": [room.room_id for room in rooms],
            "notes": "Deep clean",
        },
        headers=headers,
    )
    assert created.status_code == 201
    shift = created.json()
    assert shift["staff_name"] == "Ana"
    assert shift["rooms"] == ["201", "202"]

    deleted = client.delete(f"/rooms/{rooms[0].room_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"deleted": True, "shifts_updated": 1}

    listed = client.get("/shifts", params={"date": "2026-03-11"}, headers=headers).json()
    assert listed[0]["rooms"] == ["202"]
    assert listed[0]["room_ids"] == [rooms[1].room_id]

    missing_room = client.post(
        "/shifts",
        json={"date": "2026-03-11", "shift": "Afternoon", "staff_id": member.staff_id, "room_ids": [999]},
        headers=headers,
    )
    assert missing_room.status_code == 404

    removed = client.delete(f"/shifts/{shift['id']}", headers=headers)
    assert removed.status_code == 204


def test_login_rejects_invalid_token(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    response = client.post("/login", json={"token": "wrong-token"})
    assert response.status_code == 401


def test_config_serves_configured_shift_types(tmp_path):
    app, _ = _build_test_app(tmp_path)
    app.state.settings = replace(app.state.settings, shift_types=("Day", "Night"))
    client = TestClient(app)

    response = client.get("/config")

    assert response.status_code == 200
    assert response.json() == {"shift_types": ["Day", "Night"]}


def test_patch_with_null_required_field_is_rejected(tmp_path):
    app, repository = _build_test_app(tmp_path)
    member = repository.create_staff("Ana")
    room = repository.create_room("101")
    client = TestClient(app)
    headers = _login(client, ADMIN_TOKEN)

    for body in ({"availability": None}, {"name": None}, {"system_role": None}):
        response = client.patch(f"/staff/{member.staff_id}", json=body, headers=headers)
        assert response.status_code == 422

    response = client.patch(f"/rooms/{room.room_id}", json={"number": None}, headers=headers)
    assert response.status_code == 422

    cleared = client.patch(f"/staff/{member.staff_id}", json={"phone": None}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["phone"] is None
    assert repository.get_staff(member.staff_id).name == "Ana"


def test_store_failures_map_to_client_and_server_errors(tmp_path, monkeypatch):
    app, repository = _build_test_app(tmp_path)
    member = repository.create_staff("Ana")
    client = TestClient(app)
    headers = _login(client, ADMIN_TOKEN)
    service = app.state.roster_service

    def rejected(staff_id, changes):
        raise RepositoryError("Staff fields may not be empty: ['name']")

    monkeypatch.setattr(service, "update_staff", rejected)
    response = client.patch(f"/staff/{member.staff_id}", json={"role": "Lead"}, headers=headers)
    assert response.status_code == 400
    assert "may not be empty" in response.json()["detail"]

    def broken(staff_id, changes):
        raise RuntimeError("disk full")

    monkeypatch.setattr(service, "update_staff", broken)
    response = client.patch(f"/staff/{member.staff_id}", json={"role": "Lead"}, headers=headers)
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to update staff member"


def test_manager_edits_shift_rooms_and_staff(tmp_path):
    app, repository = _build_test_app(tmp_path)
    ana = repository.create_staff("Ana")
    ben = repository.create_staff("Ben")
    rooms = repository.create_rooms([("101", None, None), ("102", None, None), ("103", None, None)])
    client = TestClient(app)
    admin = _login(client, ADMIN_TOKEN)
    created = client.post(
        "/shifts",
        json={
            "date": "2026-03-12",
            "shift": "Morning",
            "staff_id": ana.staff_id,
            "room_ids": [rooms[0].room_id, rooms[1].room_id],
        },
        headers=admin,
    ).json()

    anonymous = client.patch(f"/shifts/{created['id']}", json={"notes": "x"})
    assert anonymous.status_code == 401

    manager = _login(client, MANAGER_TOKEN)
    response = client.patch(
        f"/shifts/{created['id']}",
        json={
            "staff_id": ben.staff_id,
            "room_ids": [rooms[2].room_id, rooms[0].room_id],
            "notes": "Swapped floors",
        },
        headers=manager,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["staff_id"] == ben.staff_id
    assert body["staff_name"] == "Ben"
    assert body["rooms"] == ["103", "101"]
    assert body["room_ids"] == [rooms[2].room_id, rooms[0].room_id]
    assert body["notes"] == "Swapped floors"
    assert body["date"] == "2026-03-12"

    duplicate = client.patch(
        f"/shifts/{created['id']}",
        json={"room_ids": [rooms[0].room_id, rooms[0].room_id]},
        headers=manager,
    )
    assert duplicate.status_code == 400

    unknown_room = client.patch(
        f"/shifts/{created['id']}",
        json={"room_ids": [999]},
        headers=manager,
    )
    assert unknown_room.status_code == 404
    assert repository.get_shift(created["id"]).rooms == ["103", "101"]

    missing = client.patch("/shifts/999", json={"notes": "x"}, headers=manager)
    assert missing.status_code == 404

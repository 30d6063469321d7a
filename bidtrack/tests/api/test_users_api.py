from bidtrack.services.bids_service import BidService
from bidtrack.tests.factories import create_client, create_user


def test_role_get_and_rename(api, db, admin_headers):
    r = api.post("/api/v1/roles", json={"name": "Монтажник", "permissions": {"bid_edit": True}}, headers=admin_headers)
    role_id = r.json()["id"]
    create_user(db, username="m1", role="Монтажник", full_name="Монтажник 1")

    r = api.get(f"/api/v1/roles/{role_id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["permissions"] == {"bid_edit": True}

    r = api.put(f"/api/v1/roles/{role_id}", json={"name": "Инженер"}, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Инженер"
    assert r.json()["permissions"] == {"bid_edit": True}

    users = api.get("/api/v1/users", headers=admin_headers).json()
    assert {u["username"]: u["role"] for u in users}["m1"] == "Инженер"

    r = api.put(f"/api/v1/roles/{role_id}", json={"name": "Админ"}, headers=admin_headers)
    assert r.status_code == 409

    assert api.get("/api/v1/roles/4040", headers=admin_headers).status_code == 404


def test_role_edit_requires_permission(api, db, admin, warehouse_headers):
    r = api.put("/api/v1/roles/1", json={"description": "x"}, headers=warehouse_headers)
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


def test_user_update_and_login_with_new_password(api, db, admin_headers):
    user = create_user(db, username="m1", full_name="Монтажник 1")

    r = api.put(
        f"/api/v1/users/{user.id}",
        json={"fullName": "Монтажник Первый", "password": "new-secret"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["fullName"] == "Монтажник Первый"

    r = api.post("/api/v1/auth/login", json={"username": "m1", "password": "new-secret"})
    assert r.status_code == 200

    r = api.put(f"/api/v1/users/{user.id}", json={"role": "Нет такой"}, headers=admin_headers)
    assert r.status_code == 404


def test_user_delete(api, db, admin, admin_headers, warehouse_headers):
    idle = create_user(db, username="idle", full_name="Без заявок")
    busy = create_user(db, username="busy", full_name="С заявками")
    busy_id = busy.id
    BidService().create(db, actor_user_id=busy_id, data={"clientId": create_client(db).id, "title": "x"})

    assert api.delete(f"/api/v1/users/{idle.id}", headers=warehouse_headers).status_code == 403
    assert api.delete(f"/api/v1/users/{admin.id}", headers=admin_headers).status_code == 400

    r = api.delete(f"/api/v1/users/{busy_id}", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["code"] == "conflict"

    assert api.delete(f"/api/v1/users/{idle.id}", headers=admin_headers).status_code == 204
    assert api.get(f"/api/v1/users/{idle.id}", headers=admin_headers).status_code == 404

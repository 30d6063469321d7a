from bidtrack.tests.factories import create_bid_type, create_client


def create_bid(api, headers, client_id, bid_type_id=None, **extra):
    payload = {"clientId": client_id, "title": "Выдать роутер", "amount": "1500.50", **extra}
    if bid_type_id is not None:
        payload["bidTypeId"] = bid_type_id
    r = api.post("/api/v1/bids", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_login_and_me(api, admin):
    r = api.post("/api/v1/auth/login", json={"username": "admin", "password": "pass123"})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]

    r = api.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["username"] == "admin"

    bad = api.post("/api/v1/auth/login", json={"username": "admin", "password": "nope"})
    assert bad.status_code == 401


def test_bid_lifecycle(api, db, admin_headers):
    c = create_client(db)
    bt = create_bid_type(db)

    bid = create_bid(api, admin_headers, c.id, bt.id)
    assert bid["status"] == "Открыта"
    assert bid["currentStatus"]["position"] == 1
    assert bid["allowedActions"] == ["edit"]
    assert bid["plannedDurationMinutes"] == 1440
    assert bid["clientName"] == c.name
    assert bid["amount"] == 1500.5

    r = api.post(f"/api/v1/bids/{bid['id']}/status", json={"status": "Закрыта"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "transition_not_allowed"

    r = api.get(f"/api/v1/bids/{bid['id']}/next-statuses", headers=admin_headers)
    assert [s["name"] for s in r.json()] == ["Собрать", "Отложить"]

    r = api.post(f"/api/v1/bids/{bid['id']}/status", json={"status": "Собрать"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "Собрать"

    r = api.put(f"/api/v1/bids/{bid['id']}", json={"status": "Закрыта", "title": "Готово"}, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Закрыта"
    assert r.json()["title"] == "Готово"

    r = api.get(f"/api/v1/bids/{bid['id']}/history", headers=admin_headers)
    assert r.status_code == 200
    actions = [h["action"] for h in r.json()]
    assert actions[0] == "Bid created"
    assert sum(a.startswith("BID_STATUS_CHANGED") for a in actions) == 2

    r = api.delete(f"/api/v1/bids/{bid['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert api.get(f"/api/v1/bids/{bid['id']}", headers=admin_headers).status_code == 404


def test_create_bid_for_missing_client(api, admin_headers):
    r = api.post("/api/v1/bids", json={"clientId": 999, "title": "x"}, headers=admin_headers)
    assert r.status_code == 404


def test_list_bids_paginated(api, db, admin_headers):
    c = create_client(db)
    for i in range(3):
        create_bid(api, admin_headers, c.id, title=f"bid {i}")

    r = api.get("/api/v1/bids?page=1&limit=2", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}


def test_comments(api, db, admin_headers, warehouse_headers):
    c = create_client(db)
    bid = create_bid(api, admin_headers, c.id)
    base = f"/api/v1/bids/{bid['id']}/comments"

    r = api.post(base, json={"content": "Клиент перезвонит"}, headers=admin_headers)
    assert r.status_code == 201
    comment = r.json()
    assert comment["userName"] == "Администратор"

    r = api.delete(f"{base}/{comment['id']}", headers=warehouse_headers)
    assert r.status_code == 403

    r = api.delete(f"{base}/{comment['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert api.get(base, headers=admin_headers).json() == []


def test_warehouse_role_cannot_create_bids(api, db, warehouse_headers):
    c = create_client(db)
    r = api.post("/api/v1/bids", json={"clientId": c.id, "title": "x"}, headers=warehouse_headers)
    assert r.status_code == 403


def test_clients_roles_users(api, admin_headers):
    r = api.post("/api/v1/clients", json={"name": "ИП Иванов", "phone": "123"}, headers=admin_headers)
    assert r.status_code == 201
    client_id = r.json()["id"]

    r = api.put(f"/api/v1/clients/{client_id}", json={"email": "a@b.c"}, headers=admin_headers)
    assert r.json()["email"] == "a@b.c"
    assert r.json()["phone"] == "123"

    r = api.get("/api/v1/clients?search=Иван", headers=admin_headers)
    assert [c["id"] for c in r.json()] == [client_id]

    r = api.post("/api/v1/roles", json={"name": "Монтажник", "permissions": {"bid_edit": True}}, headers=admin_headers)
    assert r.status_code == 201
    role_id = r.json()["id"]

    r = api.post(
        "/api/v1/users",
        json={"username": "m1", "password": "x", "fullName": "Монтажник 1", "role": "Монтажник"},
        headers=admin_headers,
    )
    assert r.status_code == 201

    r = api.delete(f"/api/v1/roles/{role_id}", headers=admin_headers)
    assert r.status_code == 409

    r = api.delete(f"/api/v1/clients/{client_id}", headers=admin_headers)
    assert r.status_code == 204


def test_comment_edit(api, db, admin_headers, warehouse_headers):
    c = create_client(db)
    bid = create_bid(api, admin_headers, c.id)
    other = create_bid(api, admin_headers, c.id)
    base = f"/api/v1/bids/{bid['id']}/comments"
    comment = api.post(base, json={"content": "Черновик"}, headers=admin_headers).json()

    r = api.put(f"{base}/{comment['id']}", json={"content": "Итог"}, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["content"] == "Итог"

    r = api.put(f"{base}/{comment['id']}", json={"content": "  "}, headers=admin_headers)
    assert r.status_code == 400

    r = api.put(f"{base}/{comment['id']}", json={"content": "чужое"}, headers=warehouse_headers)
    assert r.status_code == 403

    r = api.put(
        f"/api/v1/bids/{other['id']}/comments/{comment['id']}",
        json={"content": "x"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["code"] == "comment_bid_mismatch"

    assert [x["content"] for x in api.get(base, headers=admin_headers).json()] == ["Итог"]

"""
HTTP tests for the incident and access endpoints.
"""
from httpx import AsyncClient


async def _create(client: AsyncClient, **fields) -> dict:
    payload = {"name": "Flood Centre", "area": "North", "is_sensitive": False}
    payload.update(fields)
    response = await client.post("/api/v1/incidents", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_incident(client: AsyncClient):
    data = await _create(client)
    assert data["success"] is True
    assert data["id"]
    assert data["name"] == "Flood Centre"
    assert data["area"] == "North"
    assert data["persisted"] is True


async def test_create_incident_validation(client: AsyncClient):
    response = await client.post("/api/v1/incidents", json={"name": "Flood Centre", "area": ""})
    assert response.status_code == 400
    assert response.json()["detail"] == "Name and area are required"

    response = await client.post(
        "/api/v1/incidents",
        json={"name": "Flood Centre", "area": "North", "is_sensitive": True},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Password is required for sensitive incidents"


async def test_open_incident_is_readable(client: AsyncClient):
    incident = await _create(client)

    response = await client.get(f"/api/v1/incidents/{incident['id']}")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Flood Centre"
    assert body["is_sensitive"] is False
    assert "editor_password_hash" not in body


async def test_sensitive_incident_flow(client: AsyncClient):
    incident = await _create(client, name="Flood Centre", is_sensitive=True, editor_password="secret123")
    incident_id = incident["id"]

    status = await client.get(f"/api/v1/incidents/{incident_id}/protection-status")
    assert status.json() == {"isProtected": True}

    locked = await client.get(f"/api/v1/incidents/{incident_id}")
    assert locked.status_code == 401
    assert locked.json() == {"detail": "Unauthorized access"}

    wrong = await client.post(f"/api/v1/access/incidents/{incident_id}/verify", json={"password": "wrong"})
    assert wrong.status_code == 401
    assert wrong.json() == {"success": False, "error": "Invalid password"}
    assert f"incident_access_{incident_id}" not in wrong.cookies

    right = await client.post(f"/api/v1/access/incidents/{incident_id}/verify", json={"password": "secret123"})
    assert right.status_code == 200
    assert right.json() == {"success": True}
    assert f"incident_access_{incident_id}" in right.cookies

    unlocked = await client.get(f"/api/v1/incidents/{incident_id}")
    assert unlocked.status_code == 200
    assert unlocked.json()["name"] == "Flood Centre"


async def test_grant_cookie_attributes(client: AsyncClient):
    incident = await _create(client, is_sensitive=True, editor_password="secret123")
    response = await client.post(
        f"/api/v1/access/incidents/{incident['id']}/verify", json={"password": "secret123"}
    )
    set_cookie = response.headers["set-cookie"].lower()
    assert set_cookie.startswith(f"incident_access_{incident['id']}=")
    assert "httponly" in set_cookie
    assert "max-age=86400" in set_cookie
    assert "path=/" in set_cookie


async def test_missing_incident(client: AsyncClient):
    response = await client.get("/api/v1/incidents/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"detail": "Incident not found"}

    status = await client.get("/api/v1/incidents/does-not-exist/protection-status")
    assert status.status_code == 404

    verify = await client.post("/api/v1/access/incidents/does-not-exist/verify", json={"password": "x"})
    assert verify.status_code == 404
    assert verify.json() == {"success": False, "error": "Incident not found"}


async def test_reset_clears_every_grant(client: AsyncClient):
    first = await _create(client, is_sensitive=True, editor_password="one")
    second = await _create(client, is_sensitive=True, editor_password="two")
    await client.post(f"/api/v1/access/incidents/{first['id']}/verify", json={"password": "one"})
    await client.post(f"/api/v1/access/incidents/{second['id']}/verify", json={"password": "two"})
    assert (await client.get(f"/api/v1/incidents/{first['id']}")).status_code == 200

    reset = await client.post("/api/v1/access/reset")
    assert reset.json() == {"success": True, "cleared": 2}

    assert (await client.get(f"/api/v1/incidents/{first['id']}")).status_code == 401
    assert (await client.get(f"/api/v1/incidents/{second['id']}")).status_code == 401


async def test_list_incidents(client: AsyncClient):
    for name, area in [("Flood Centre", "North"), ("Fire", "South"), ("Storm", "North West")]:
        await _create(client, name=name, area=area)

    response = await client.get("/api/v1/incidents", params={"search": "north", "limit": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["totalPages"] == 2
    assert len(body["items"]) == 1

    response = await client.get("/api/v1/incidents", params={"search": "Day 9"})
    assert response.json() == {"items": [], "total": 0, "totalPages": 0}


async def test_list_rejects_bad_paging(client: AsyncClient):
    assert (await client.get("/api/v1/incidents", params={"page": 0})).status_code == 422
    assert (await client.get("/api/v1/incidents", params={"limit": 1000})).status_code == 422


async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}
    assert "X-Correlation-ID" in response.headers
    assert "X-Event-ID" in response.headers


async def test_correlation_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
    assert response.headers["X-Correlation-ID"] == "abc-123"

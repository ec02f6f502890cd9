"""
HTTP tests for briefing creation, protected reads, the view and prefill.
"""
import pytest
from httpx import AsyncClient


@pytest.fixture
async def incident_id(client: AsyncClient) -> str:
    response = await client.post("/api/v1/incidents", json={"name": "Flood Centre", "area": "North"})
    return response.json()["id"]


def _briefing_form(incident_id: str, **overrides) -> dict:
    form = {
        "incident_id": incident_id,
        "incident_name": "Flood Centre",
        "briefing_reference": "Day 1 shift 2",
        "response_summary": "Rest centre open.",
        "building_and_street": "1 High Street",
        "town_or_city": "Northtown",
        "postcode": "NT1 2AB",
        "meeting_point": "Main entrance",
        "start_date": "18 Oct",
        "start_time": "08:00",
        "end_date": "18 Oct",
        "end_time": "16:00",
        "otl_name": "Sam",
        "otl_contact": "07700 900001",
        "volunteers": [{"name": "A", "contact": "1"}, {"name": "B", "contact": "2"}],
        "key_partner_name": "Jo",
    }
    form.update(overrides)
    return form


async def test_create_dual_briefings(client: AsyncClient, incident_id: str):
    response = await client.post("/api/v1/briefings", json=_briefing_form(incident_id))
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["type"] == "Volunteer Briefing"
    assert body["shift"] == "Day 1 shift 2"
    assert body["otl_briefing_id"] and body["otl_briefing_id"] != body["id"]
    assert body["persisted"] is True

    volunteer = await client.get(f"/api/v1/briefings/{body['id']}")
    assert volunteer.status_code == 200
    assert volunteer.json()["content"]["format"] == "volunteer_briefing_v1"
    assert volunteer.json()["is_protected"] is False

    otl = await client.get(f"/api/v1/briefings/{body['otl_briefing_id']}")
    assert otl.json()["type"] == "OTL Briefing"
    assert otl.json()["content"]["page"]["title"] == "Flood Centre: OTL briefing"


async def test_create_briefing_validation(client: AsyncClient, incident_id: str):
    response = await client.post("/api/v1/briefings", json=_briefing_form(incident_id, briefing_reference=""))
    assert response.status_code == 400
    assert response.json()["detail"] == "Briefing reference is required"


async def test_protected_briefing_flow(client: AsyncClient, incident_id: str):
    created = await client.post(
        "/api/v1/briefings",
        json=_briefing_form(incident_id, volunteer_password="vol-pass", otl_password="otl-pass"),
    )
    briefing_id = created.json()["id"]

    status = await client.get(f"/api/v1/briefings/{briefing_id}/protection-status")
    assert status.json() == {"isProtected": True}

    for path in ("", "/view", "/prefill"):
        locked = await client.get(f"/api/v1/briefings/{briefing_id}{path}")
        assert locked.status_code == 401, path
        assert locked.json() == {"detail": "Unauthorized access"}

    wrong = await client.post(f"/api/v1/access/briefings/{briefing_id}/verify", json={"password": "otl-pass"})
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "Invalid password"

    right = await client.post(f"/api/v1/access/briefings/{briefing_id}/verify", json={"password": "vol-pass"})
    assert right.json() == {"success": True}

    for path in ("", "/view", "/prefill"):
        assert (await client.get(f"/api/v1/briefings/{briefing_id}{path}")).status_code == 200, path

    # The OTL companion has its own password
    otl_id = created.json()["otl_briefing_id"]
    assert (await client.get(f"/api/v1/briefings/{otl_id}")).status_code == 401


async def test_missing_briefing(client: AsyncClient):
    assert (await client.get("/api/v1/briefings/nope")).status_code == 404
    assert (await client.get("/api/v1/briefings/nope/view")).status_code == 404
    verify = await client.post("/api/v1/access/briefings/nope/verify", json={"password": "x"})
    assert verify.status_code == 404
    assert verify.json() == {"success": False, "error": "Briefing not found"}


async def test_list_incident_briefings_search(client: AsyncClient, incident_id: str):
    created = await client.post(
        "/api/v1/briefings/markdown",
        json={"incident_id": incident_id, "type": "Situation Report", "shift": "Day 1 shift 2", "content": "## Update"},
    )
    assert created.status_code == 201
    briefing_id = created.json()["id"]

    found = await client.get(f"/api/v1/incidents/{incident_id}/briefings", params={"search": "Day 1"})
    body = found.json()
    assert [b["id"] for b in body["items"]] == [briefing_id]
    assert body["total"] == 1
    assert "content" not in body["items"][0]

    missing = await client.get(f"/api/v1/incidents/{incident_id}/briefings", params={"search": "Day 9"})
    assert missing.json() == {"items": [], "total": 0, "totalPages": 0}

    by_type = await client.get(f"/api/v1/incidents/{incident_id}/briefings", params={"search": "situation"})
    assert by_type.json()["total"] == 1


async def test_markdown_briefing_requires_password_when_protected(client: AsyncClient, incident_id: str):
    response = await client.post(
        "/api/v1/briefings/markdown",
        json={"incident_id": incident_id, "type": "Update", "shift": "Day 2", "require_password": True},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Password is required when password protection is enabled"


async def test_view_markdown_briefing(client: AsyncClient, incident_id: str):
    created = await client.post(
        "/api/v1/briefings/markdown",
        json={"incident_id": incident_id, "type": "Update", "shift": "Day 2", "content": "# Title"},
    )
    view = await client.get(f"/api/v1/briefings/{created.json()['id']}/view")
    assert view.status_code == 200
    assert view.json()["html"] == "<h1>Title</h1>"
    assert view.json()["format"] == "markdown"


async def test_view_otl_briefing(client: AsyncClient, incident_id: str):
    created = await client.post("/api/v1/briefings", json=_briefing_form(incident_id))
    view = await client.get(f"/api/v1/briefings/{created.json()['otl_briefing_id']}/view")
    body = view.json()

    assert body["title"] == "Flood Centre: OTL briefing"
    shift = next(s for s in body["sections"] if s["heading"] == "Your shift and team")
    assert [item["label"] for item in shift["items"]] == [
        "Start and end date and time",
        "Volunteer 1 name and number",
        "Volunteer 2 name and number",
    ]


async def test_prefill_new_version(client: AsyncClient, incident_id: str):
    created = await client.post("/api/v1/briefings", json=_briefing_form(incident_id))
    otl_id = created.json()["otl_briefing_id"]

    response = await client.get(f"/api/v1/briefings/{otl_id}/prefill")
    assert response.status_code == 200
    body = response.json()
    assert body["source_briefing_id"] == otl_id
    assert body["source_type"] == "OTL Briefing"

    fields = body["fields"]
    assert fields["incident_name"] == "Flood Centre"
    assert fields["briefing_reference"] == "Day 1 shift 2"
    assert fields["postcode"] == "NT1 2AB"
    assert fields["start_time"] == "08:00"
    assert [v["name"] for v in fields["volunteers"]] == ["A", "B"]
    assert fields["key_partner_name"] == "Jo"

    # A new version is just another briefing for the same incident
    fields["incident_id"] = incident_id
    fields["briefing_reference"] = "Day 2 shift 1"
    again = await client.post("/api/v1/briefings", json=fields)
    assert again.status_code == 201
    assert again.json()["id"] not in (created.json()["id"], otl_id)


async def test_new_version_reports_changed_fields(client: AsyncClient, incident_id: str):
    created = await client.post("/api/v1/briefings", json=_briefing_form(incident_id))
    otl_id = created.json()["otl_briefing_id"]
    fields = (await client.get(f"/api/v1/briefings/{otl_id}/prefill")).json()["fields"]

    fields.update(incident_id=incident_id, source_briefing_id=otl_id, briefing_reference="Day 2 shift 1", hazards="Mud")
    again = await client.post("/api/v1/briefings", json=fields)

    assert again.status_code == 201, again.text
    assert again.json()["changed_fields"] == ["briefing_reference", "hazards"]


async def test_unedited_new_version_changes_nothing(client: AsyncClient, incident_id: str):
    created = await client.post("/api/v1/briefings", json=_briefing_form(incident_id))
    volunteer_id = created.json()["id"]
    fields = (await client.get(f"/api/v1/briefings/{volunteer_id}/prefill")).json()["fields"]

    fields.update(incident_id=incident_id, source_briefing_id=volunteer_id)
    again = await client.post("/api/v1/briefings", json=fields)
    assert again.json()["changed_fields"] == []

    # Plain creates have no source to compare against
    assert created.json()["changed_fields"] == []


async def test_new_version_of_locked_briefing_needs_its_grant(client: AsyncClient, incident_id: str):
    created = await client.post("/api/v1/briefings", json=_briefing_form(incident_id, volunteer_password="vol-pass"))
    volunteer_id = created.json()["id"]

    form = _briefing_form(incident_id, source_briefing_id=volunteer_id, briefing_reference="Day 2")
    locked = await client.post("/api/v1/briefings", json=form)
    assert locked.status_code == 401
    assert "changed_fields" not in locked.text

    await client.post(f"/api/v1/access/briefings/{volunteer_id}/verify", json={"password": "vol-pass"})
    unlocked = await client.post("/api/v1/briefings", json=form)
    assert unlocked.status_code == 201
    assert "briefing_reference" in unlocked.json()["changed_fields"]

    missing = await client.post("/api/v1/briefings", json=_briefing_form(incident_id, source_briefing_id="nope"))
    assert missing.status_code == 404

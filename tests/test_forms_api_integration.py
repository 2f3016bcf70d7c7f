"""Integration tests for form template API endpoints."""
import pytest
from uuid import uuid4

from conftest import create_form, make_questions


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "ok"


@pytest.mark.asyncio
async def test_create_form_endpoint(client, db_session):
    """Test creating a draft via API."""
    response = client.post(
        "/api/v1/forms",
        json={
            "name": "Visita Pali",
            "scope": {"kind": "formats", "formats": ["Pali"]},
            "questions": make_questions(),
            "created_by": "manager",
        },
    )

    assert response.status_code == 201
    form = response.json()
    assert form["status"] == "draft"
    assert form["version"] == 1
    assert form["scope"] == {"kind": "formats", "formats": ["Pali"]}
    assert [q["id"] for q in form["questions"]][:2] == ["clean", "facings"]
    assert form["questions"][1]["config"]["min"] == 4


@pytest.mark.asyncio
async def test_create_form_rejects_bad_questions(client, db_session):
    response = client.post(
        "/api/v1/forms",
        json={
            "name": "Broken",
            "questions": [{"id": "q1", "type": "single_select", "title": "Display", "options": []}],
        },
    )
    assert response.status_code == 422

    response = client.post("/api/v1/forms", json={"name": "Empty", "questions": []})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_form_rejects_bad_scope(client, db_session):
    response = client.post(
        "/api/v1/forms",
        json={"name": "No stores", "scope": {"kind": "stores", "store_ids": []}, "questions": make_questions()},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_publish_and_resolve_active(client, db_session, draft_form):
    response = client.post(
        f"/api/v1/forms/{draft_form.id}/publish",
        json={"scope": {"kind": "stores", "store_ids": ["S1"]}, "updated_by": "manager"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "published"

    response = client.get("/api/v1/forms/active", params={"store_id": "S1"})
    assert response.status_code == 200
    assert response.json()["id"] == str(draft_form.id)

    response = client.get("/api/v1/forms/active", params={"store_id": "S2", "format": "Walmart"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_publish_twice_conflicts(client, db_session, published_form):
    response = client.post(f"/api/v1/forms/{published_form.id}/publish", json={})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_publish_with_invalid_scope(client, db_session, draft_form):
    response = client.post(
        f"/api/v1/forms/{draft_form.id}/publish",
        json={"scope": {"kind": "formats", "formats": ["Costco"]}},
    )
    assert response.status_code == 422

    response = client.get(f"/api/v1/forms/{draft_form.id}")
    assert response.json()["status"] == "draft"


@pytest.mark.asyncio
async def test_archive_endpoint(client, db_session, published_form):
    response = client.post(f"/api/v1/forms/{published_form.id}/archive", json={"updated_by": "manager"})
    assert response.status_code == 200
    assert response.json()["status"] == "archived"

    response = client.post(f"/api/v1/forms/{published_form.id}/archive", json={})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_endpoint(client, db_session, draft_form, published_form):
    response = client.put(f"/api/v1/forms/{draft_form.id}", json={"name": "Renamed"})
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"

    response = client.put(f"/api/v1/forms/{published_form.id}", json={"name": "Renamed"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_versions_endpoints(client, db_session, published_form):
    response = client.post(f"/api/v1/forms/{published_form.id}/versions", json={"created_by": "manager"})
    assert response.status_code == 201
    draft = response.json()
    assert draft["version"] == 2
    assert draft["status"] == "draft"
    assert draft["lineage_id"] == str(published_form.lineage_id)

    response = client.post(f"/api/v1/forms/{draft['id']}/publish", json={})
    assert response.status_code == 200

    response = client.get(f"/api/v1/forms/{published_form.id}/versions")
    assert response.status_code == 200
    versions = response.json()
    assert [(v["version"], v["status"]) for v in versions] == [(2, "published"), (1, "archived")]


@pytest.mark.asyncio
async def test_get_by_slug_and_list(client, db_session, published_form):
    await create_form(db_session, name="Draft Only")

    response = client.get("/api/v1/forms/slug/published-visit")
    assert response.status_code == 200
    assert response.json()["id"] == str(published_form.id)

    response = client.get("/api/v1/forms", params={"status": "published"})
    assert [form["name"] for form in response.json()] == ["Published Visit"]

    response = client.get("/api/v1/forms", params={"status": "draft,published"})
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_delete_endpoint(client, db_session, draft_form):
    response = client.delete(f"/api/v1/forms/{draft_form.id}")
    assert response.status_code == 204

    response = client.get(f"/api/v1/forms/{draft_form.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_not_found_is_localized(client, db_session):
    missing = uuid4()
    response = client.get(f"/api/v1/forms/{missing}", headers={"Accept-Language": "es-CR,es;q=0.9"})
    assert response.status_code == 404
    assert str(missing) in response.json()["detail"]

    english = client.get(f"/api/v1/forms/{missing}", headers={"Accept-Language": "en-US"})
    assert english.json()["detail"] != response.json()["detail"]


@pytest.mark.asyncio
async def test_active_form_with_unknown_store_format(client, db_session, published_form):
    response = client.get("/api/v1/forms/active", params={"store_id": "S1", "format": "Costco"})
    assert response.status_code == 200
    assert response.json()["id"] == str(published_form.id)

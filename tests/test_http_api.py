from collections.abc import Generator
from dataclasses import dataclass
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from conftest import create_user
from planhub_api.core.config import get_settings
from planhub_api.core.security import issue_access_token
from planhub_api.db.session import get_db
from planhub_api.main import app


@dataclass
class HttpWorld:
    client: TestClient
    admin_headers: dict[str, str]
    u1_headers: dict[str, str]
    u2_headers: dict[str, str]
    u1_id: str
    u2_id: str


def _headers(user_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(subject=str(user_id))}"}


@pytest.fixture
def api_client(monkeypatch: pytest.MonkeyPatch, session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    monkeypatch.setenv("PH_AUTH_JWT_SECRET", "http-test-secret-key-at-least-32-bytes")
    monkeypatch.setenv("PH_AUTH_JWT_ALGORITHMS", "HS256")
    get_settings.cache_clear()
    app.dependency_overrides.clear()

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def http_world(api_client: TestClient, session_factory: sessionmaker) -> HttpWorld:
    with session_factory() as db:
        admin = create_user(db, email="admin@example.com", admin=True)
        u1 = create_user(db, email="u1@example.com")
        u2 = create_user(db, email="u2@example.com")
        ids = (admin.id, u1.id, u2.id)
    return HttpWorld(
        client=api_client,
        admin_headers=_headers(ids[0]),
        u1_headers=_headers(ids[1]),
        u2_headers=_headers(ids[2]),
        u1_id=str(ids[1]),
        u2_id=str(ids[2]),
    )


def _assert_error(response, status_code: int, code: str) -> dict:
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["request_id"]
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    return body["error"]


def _create_project_with_members(world: HttpWorld) -> str:
    created = world.client.post("/api/projects", json={"name": "校园二手交易平台"}, headers=world.admin_headers)
    assert created.status_code == 200, created.text
    project_id = created.json()["data"]["id"]
    for user_id, role in ((world.u1_id, "content_planning"), (world.u2_id, "developer")):
        added = world.client.post(
            f"/api/projects/{project_id}/members",
            json={"user_id": user_id, "role": role},
            headers=world.admin_headers,
        )
        assert added.status_code == 200, added.text
    return project_id


def test_health_live_envelope(api_client: TestClient):
    response = api_client.get("/api/health/live")

    assert response.status_code == 200
    body = response.json()
    settings = get_settings()
    assert body["data"] == {"status": "ok", "service": settings.app_name, "environment": settings.app_env}
    assert body["request_id"] == response.headers["X-Request-Id"]
    assert body["meta"]["method"] == "GET"


def test_health_ready_checks_document_table(api_client: TestClient, session_factory: sessionmaker):
    assert api_client.get("/api/health/ready").json()["data"]["status"] == "ready"

    with session_factory() as db:
        db.execute(text("DROP TABLE planning_documents"))
        db.commit()

    _assert_error(api_client.get("/api/health/ready"), 500, "DATABASE_ERROR")


def test_missing_token_is_unauthorized(api_client: TestClient):
    _assert_error(api_client.get("/api/projects"), 401, "UNAUTHORIZED")
    _assert_error(
        api_client.get("/api/projects", headers={"Authorization": "Bearer not-a-jwt"}),
        401,
        "UNAUTHORIZED",
    )


def test_token_without_profile_is_user_not_found(api_client: TestClient):
    headers = {"Authorization": f"Bearer {issue_access_token(subject=str(uuid4()), email='ghost@example.com')}"}
    _assert_error(api_client.get("/api/auth/me", headers=headers), 401, "USER_NOT_FOUND")


def test_auth_me(http_world: HttpWorld):
    project_id = _create_project_with_members(http_world)

    body = http_world.client.get("/api/auth/me", headers=http_world.u1_headers).json()
    assert body["data"]["user"]["email"] == "u1@example.com"
    assert body["data"]["is_admin"] is False
    assert body["data"]["projects"] == [
        {"project_id": project_id, "name": "校园二手交易平台", "role": "content_planning"}
    ]


def test_approval_flow_over_http(http_world: HttpWorld):
    client = http_world.client
    project_id = _create_project_with_members(http_world)

    created = client.post(
        f"/api/projects/{project_id}/documents",
        json={"workflow_step": 1, "title": "服务概述", "content": "目标与范围"},
        headers=http_world.u1_headers,
    )
    assert created.status_code == 200, created.text
    document = created.json()["data"]
    assert document["status"] == "private"
    assert "warnings" not in created.json()["meta"]

    _assert_error(client.get(f"/api/documents/{document['id']}", headers=http_world.u2_headers), 403, "FORBIDDEN")

    submitted = client.post(f"/api/documents/{document['id']}/submit", headers=http_world.u1_headers)
    assert submitted.json()["data"]["status"] == "pending_approval"

    queue = client.get("/api/documents/pending-approvals", headers=http_world.admin_headers).json()["data"]
    assert [item["id"] for item in queue] == [document["id"]]

    _assert_error(client.post(f"/api/documents/{document['id']}/approve", headers=http_world.u1_headers), 403, "FORBIDDEN")
    approved = client.post(f"/api/documents/{document['id']}/approve", headers=http_world.admin_headers)
    assert approved.json()["data"]["status"] == "official"

    listed = client.get(
        f"/api/projects/{project_id}/documents",
        params={"step": 1},
        headers=http_world.u2_headers,
    ).json()["data"]
    assert [item["id"] for item in listed] == [document["id"]]

    _assert_error(client.post(f"/api/documents/{document['id']}/submit", headers=http_world.u1_headers), 400, "INVALID_STATE")

    edited = client.patch(
        f"/api/documents/{document['id']}",
        json={"content": "更新后的范围", "expected_version": 1},
        headers=http_world.u1_headers,
    ).json()["data"]
    assert edited["status"] == "private"
    assert edited["version"] == 2

    history = client.get(f"/api/documents/{document['id']}/approval-history", headers=http_world.u1_headers).json()["data"]
    assert [item["action"] for item in history] == ["requested", "approved"]

    activities = client.get(
        f"/api/projects/{project_id}/activities",
        params={"limit": 3, "includeStats": "true"},
        headers=http_world.u2_headers,
    ).json()["data"]
    assert activities["items"][0]["activity_type"] == "document_updated"
    assert activities["pagination"]["has_more"] is True
    assert activities["stats"]["official_documents"] == 0


def test_reject_with_reason_over_http(http_world: HttpWorld):
    client = http_world.client
    project_id = _create_project_with_members(http_world)
    document_id = client.post(
        f"/api/projects/{project_id}/documents",
        json={"workflow_step": 2, "title": "目标用户", "content": "大学生"},
        headers=http_world.u1_headers,
    ).json()["data"]["id"]
    client.post(f"/api/documents/{document_id}/submit", headers=http_world.u1_headers)

    rejected = client.post(
        f"/api/documents/{document_id}/reject",
        json={"reason": "需要补充用户画像"},
        headers=http_world.admin_headers,
    )
    assert rejected.status_code == 200, rejected.text
    assert rejected.json()["data"]["status"] == "private"


def test_request_validation_maps_to_400(http_world: HttpWorld):
    client = http_world.client
    project_id = _create_project_with_members(http_world)

    error = _assert_error(
        client.post(
            f"/api/projects/{project_id}/documents",
            json={"workflow_step": 10, "title": "越界", "content": "正文"},
            headers=http_world.u1_headers,
        ),
        400,
        "VALIDATION_ERROR",
    )
    assert error["details"]["errors"][0]["field"] == "workflow_step"

    _assert_error(client.get("/api/documents/not-a-uuid", headers=http_world.u1_headers), 400, "VALIDATION_ERROR")


def test_member_conflict_and_missing_resources(http_world: HttpWorld):
    client = http_world.client
    project_id = _create_project_with_members(http_world)

    _assert_error(
        client.post(
            f"/api/projects/{project_id}/members",
            json={"user_id": http_world.u1_id, "role": "developer"},
            headers=http_world.admin_headers,
        ),
        409,
        "CONFLICT",
    )
    _assert_error(
        client.post(
            f"/api/projects/{project_id}/members",
            json={"user_id": str(uuid4()), "role": "developer"},
            headers=http_world.admin_headers,
        ),
        404,
        "USER_NOT_FOUND",
    )
    _assert_error(client.get(f"/api/projects/{uuid4()}", headers=http_world.admin_headers), 404, "NOT_FOUND")
    _assert_error(client.get("/api/no-such-route"), 404, "NOT_FOUND")


def test_member_role_update_and_removal_over_http(http_world: HttpWorld):
    client = http_world.client
    project_id = _create_project_with_members(http_world)

    updated = client.patch(
        f"/api/projects/{project_id}/members/{http_world.u2_id}",
        json={"role": "uiux_planning"},
        headers=http_world.admin_headers,
    )
    assert updated.json()["data"]["role"] == "uiux_planning"

    _assert_error(
        client.delete(f"/api/projects/{project_id}/members/{http_world.u2_id}", headers=http_world.u1_headers),
        403,
        "FORBIDDEN",
    )
    removed = client.delete(f"/api/projects/{project_id}/members/{http_world.u2_id}", headers=http_world.admin_headers)
    assert removed.json()["data"]["removed"] is True
    _assert_error(client.get(f"/api/projects/{project_id}", headers=http_world.u2_headers), 403, "FORBIDDEN")


def test_user_search_is_admin_only(http_world: HttpWorld):
    client = http_world.client

    found = client.get("/api/users/search", params={"q": "u1"}, headers=http_world.admin_headers).json()["data"]
    assert [item["email"] for item in found] == ["u1@example.com"]
    _assert_error(client.get("/api/users/search", headers=http_world.u1_headers), 403, "FORBIDDEN")

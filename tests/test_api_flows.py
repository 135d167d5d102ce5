from fastapi.testclient import TestClient

from taskhouse.core.database import get_db
from taskhouse.core.metrics import request_metrics
from tests.fixtures_data import SIGNUP_PAYLOAD, build_session_factory

REQUIRED_ROUTES = {
    "/api/auth/signup",
    "/api/auth/login",
    "/api/auth/me",
    "/api/invitations/accept",
    "/api/tenants/{tenant_id}/invitations",
    "/api/tenants/{tenant_id}/projects",
    "/api/tenants/{tenant_id}/projects/{project_id}/overview",
    "/api/tasks/{task_id}/status",
    "/api/tasks/{task_id}/comments",
    "/api/tenants/{tenant_id}/users/{user_id}/notifications",
    "/api/tenants/{tenant_id}/activity",
    "/internal/metrics/tenants",
}


def _build_client(monkeypatch) -> TestClient:
    from taskhouse import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)
    testing_session = build_session_factory()

    def override_get_db():
        db = testing_session()
        try:
            yield db
        finally:
            db.close()

    main.app.dependency_overrides[get_db] = override_get_db
    return TestClient(main.app)


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_api_startup_and_router_registration(monkeypatch):
    from taskhouse import main

    with _build_client(monkeypatch) as client:
        response = client.get("/")
        health = client.get("/health")

    main.app.dependency_overrides.clear()
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert health.json() == {"status": "healthy"}
    assert response.headers["X-Request-ID"]

    paths = set(main.app.openapi()["paths"])
    assert REQUIRED_ROUTES.issubset(paths)


def test_signup_invite_task_comment_flow(monkeypatch):
    from taskhouse import main

    request_metrics.reset()
    with _build_client(monkeypatch) as client:
        signup = client.post("/api/auth/signup", json=SIGNUP_PAYLOAD)
        assert signup.status_code == 201
        tenant_id = signup.json()["tenant_id"]
        admin_id = signup.json()["user_id"]
        admin_headers = _auth(signup.json()["access_token"])

        invite = client.post(
            f"/api/tenants/{tenant_id}/invitations",
            json={"email": "dev@example.com", "role": "Member"},
            headers=admin_headers,
        )
        assert invite.status_code == 201
        accepted = client.post(
            "/api/invitations/accept",
            json={"token": invite.json()["token"], "name": "Dev", "password": "senha-forte-123"},
        )
        assert accepted.status_code == 201
        member_id = accepted.json()["user_id"]

        login = client.post(
            "/api/auth/login",
            json={"tenant_slug": "acme-studio", "email": "dev@example.com", "password": "senha-forte-123"},
        )
        assert login.status_code == 200
        member_headers = _auth(login.json()["access_token"])

        project = client.post(
            f"/api/tenants/{tenant_id}/projects",
            json={"title": "Site", "manager_id": admin_id, "team_members": [member_id]},
            headers=admin_headers,
        )
        assert project.status_code == 201
        project_id = project.json()["id"]

        task = client.post(
            f"/api/tenants/{tenant_id}/tasks",
            json={"project_id": project_id, "title": "Home", "assignees": [member_id]},
            headers=admin_headers,
        )
        assert task.status_code == 201
        task_id = task.json()["id"]

        status = client.patch(f"/api/tasks/{task_id}/status", json={"status": "Done"}, headers=member_headers)
        assert status.status_code == 200

        comment = client.post(
            f"/api/tasks/{task_id}/comments",
            json={"content": "Feito", "mentions": [admin_id]},
            headers=member_headers,
        )
        assert comment.status_code == 201

        overview = client.get(f"/api/tenants/{tenant_id}/projects/{project_id}/overview", headers=member_headers)
        unread = client.get(
            f"/api/tenants/{tenant_id}/users/{admin_id}/notifications/unread-count",
            headers=admin_headers,
        )
        me = client.get("/api/auth/me", params={"tenant_id": tenant_id}, headers=member_headers)
        metrics = client.get("/internal/metrics/tenants", params={"tenant_id": tenant_id}, headers=admin_headers)

    main.app.dependency_overrides.clear()
    assert overview.json()["stats"]["completion_rate"] == 100.0
    assert unread.json() == {"unread": 1}
    assert me.json()["role"] == "Member"
    assert "update_task_status" in me.json()["permissions"]
    assert metrics.status_code == 200
    assert metrics.json()["metrics"]["total_requests"] >= 5


def test_errors_carry_code_and_status(monkeypatch):
    from taskhouse import main

    with _build_client(monkeypatch) as client:
        anonymous = client.get("/api/tenants/1/projects")
        signup = client.post("/api/auth/signup", json=SIGNUP_PAYLOAD)
        headers = _auth(signup.json()["access_token"])
        tenant_id = signup.json()["tenant_id"]
        bad_token = client.post(
            "/api/invitations/accept",
            json={"token": "nada", "name": "X", "password": "senha-forte-123"},
        )
        cross_tenant = client.get(f"/api/tenants/{tenant_id + 1}/projects", headers=headers)
        bad_assignee = client.post(
            f"/api/tenants/{tenant_id}/projects",
            json={"title": "Site", "manager_id": 999},
            headers=headers,
        )

    main.app.dependency_overrides.clear()
    assert anonymous.status_code == 401
    assert anonymous.json()["code"] == "authentication_required"
    assert bad_token.status_code == 404
    assert bad_token.json()["code"] == "invalid_token"
    assert cross_tenant.status_code == 403
    assert cross_tenant.json()["code"] == "user_not_found"
    assert bad_assignee.status_code == 422
    assert bad_assignee.json()["code"] == "invalid_reference"


def test_same_email_in_another_tenant_cannot_reach_first_tenant(monkeypatch):
    from taskhouse import main

    with _build_client(monkeypatch) as client:
        acme = client.post("/api/auth/signup", json=SIGNUP_PAYLOAD)
        evil = client.post("/api/auth/signup", json={**SIGNUP_PAYLOAD, "name": "Evil Corp"})
        acme_id = acme.json()["tenant_id"]

        by_bearer = client.patch(
            f"/api/tenants/{acme_id}",
            json={"name": "pwned"},
            headers=_auth(evil.json()["access_token"]),
        )
        # O cookie da última signup pertence à Evil Corp.
        by_cookie = client.get(f"/api/tenants/{acme_id}")
        own = client.get(f"/api/tenants/{acme_id}", headers=_auth(acme.json()["access_token"]))

    main.app.dependency_overrides.clear()
    assert evil.status_code == 201
    assert acme.json()["access_token"] != evil.json()["access_token"]
    assert by_bearer.status_code == 403
    assert by_bearer.json()["code"] == "user_not_found"
    assert by_cookie.status_code == 403
    assert own.json()["name"] == "Acme Studio"

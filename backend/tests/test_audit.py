import pytest
from httpx import AsyncClient

from wanshiwu.models.user import User
from wanshiwu.services.audit_service import AuditService
from tests.conftest import get_auth_headers, submit_request, move_request


@pytest.mark.asyncio
async def test_status_change_is_logged(client: AsyncClient, admin_user: User):
    headers = get_auth_headers(admin_user)
    request_id = await submit_request(client)
    await move_request(client, admin_user, request_id, "open")

    response = await client.get(
        "/api/v1/admin/logs",
        params={"action": "update_request_status"},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    entry = data["items"][0]
    assert entry["actor_id"] == admin_user.id
    assert entry["target_type"] == "request"
    assert entry["target_id"] == request_id
    assert entry["changes"] == {"old_status": "pending", "new_status": "open"}


@pytest.mark.asyncio
async def test_logs_filter_by_actor(client: AsyncClient, admin_user: User):
    headers = get_auth_headers(admin_user)
    request_id = await submit_request(client)
    await move_request(client, admin_user, request_id, "open", "published")

    response = await client.get("/api/v1/admin/logs", params={"user_id": admin_user.id}, headers=headers)
    assert response.json()["total"] == 2

    response = await client.get("/api/v1/admin/logs", params={"user_id": "someone-else"}, headers=headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_audit_failure_does_not_fail_transition(
    client: AsyncClient, admin_user: User, monkeypatch
):
    async def broken_log(self, *args, **kwargs):
        raise RuntimeError("log store unavailable")

    monkeypatch.setattr(AuditService, "log", broken_log)
    request_id = await submit_request(client)

    response = await move_request(client, admin_user, request_id, "open")
    assert response.json()["data"]["status"] == "open"

    monkeypatch.undo()
    response = await client.get("/api/v1/admin/logs", headers=get_auth_headers(admin_user))
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_volunteer_cannot_read_logs(client: AsyncClient, volunteer_user: User):
    response = await client.get("/api/v1/admin/logs", headers=get_auth_headers(volunteer_user))
    assert response.status_code == 403

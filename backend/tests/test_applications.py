import pytest
from httpx import AsyncClient

from wanshiwu.models.user import User
from tests.conftest import get_auth_headers, submit_request, move_request


async def _published_request(client: AsyncClient, admin: User) -> str:
    request_id = await submit_request(client)
    await move_request(client, admin, request_id, "open", "published")
    return request_id


async def _apply(client: AsyncClient, volunteer: User, request_id: str, **extra):
    return await client.post(
        "/api/v1/applications",
        headers=get_auth_headers(volunteer),
        json={"request_id": request_id, **extra},
    )


@pytest.mark.asyncio
async def test_volunteer_applies(client: AsyncClient, admin_user: User, volunteer_user: User):
    request_id = await _published_request(client, admin_user)

    response = await _apply(client, volunteer_user, request_id, message="星期六得閒", available_time="星期六下午")
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["volunteer_id"] == volunteer_user.id
    assert data["volunteer_name"] == "陳大文"
    assert data["message"] == "星期六得閒"


@pytest.mark.asyncio
async def test_approval_matches_published_request(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    admin_headers = get_auth_headers(admin_user)
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]

    response = await client.patch(
        f"/api/v1/applications/{application_id}",
        headers=admin_headers,
        json={"status": "approved"},
    )
    assert response.status_code == 200
    application = response.json()["data"]
    assert application["status"] == "approved"
    assert application["matched_at"] is not None

    request = (await client.get(f"/api/v1/requests/{request_id}", headers=admin_headers)).json()
    assert request["status"] == "matched"
    assert request["matched_at"] is not None


@pytest.mark.asyncio
async def test_duplicate_application_conflicts(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    request_id = await _published_request(client, admin_user)
    first = await _apply(client, volunteer_user, request_id)

    response = await _apply(client, volunteer_user, request_id)
    assert response.status_code == 409
    error = response.json()["detail"]["error"]
    assert error["code"] == "DUPLICATE"
    assert error["details"]["existing_application_id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_cannot_apply_for_someone_else(
    client: AsyncClient, admin_user: User, volunteer_user: User, other_volunteer: User
):
    request_id = await _published_request(client, admin_user)

    response = await _apply(client, volunteer_user, request_id, volunteer_id=other_volunteer.id)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_pending_volunteer_cannot_apply(
    client: AsyncClient, admin_user: User, pending_volunteer: User
):
    request_id = await _published_request(client, admin_user)

    response = await _apply(client, pending_volunteer, request_id)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cannot_apply_to_unpublished_request(client: AsyncClient, volunteer_user: User):
    request_id = await submit_request(client)

    response = await _apply(client, volunteer_user, request_id)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_apply_to_missing_request(client: AsyncClient, volunteer_user: User):
    response = await _apply(client, volunteer_user, "does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_volunteer_cannot_approve(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]

    response = await client.patch(
        f"/api/v1/applications/{application_id}",
        headers=get_auth_headers(volunteer_user),
        json={"status": "approved"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_volunteer_edits_pending_message(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]

    response = await client.patch(
        f"/api/v1/applications/{application_id}",
        headers=get_auth_headers(volunteer_user),
        json={"message": "改咗時間"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["message"] == "改咗時間"


@pytest.mark.asyncio
async def test_volunteer_withdraws_pending_application(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    headers = get_auth_headers(volunteer_user)
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]

    response = await client.delete(f"/api/v1/applications/{application_id}", headers=headers)
    assert response.status_code == 200

    response = await client.get(f"/api/v1/applications/{application_id}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cannot_withdraw_approved_application(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]
    await client.patch(
        f"/api/v1/applications/{application_id}",
        headers=get_auth_headers(admin_user),
        json={"status": "approved"},
    )

    response = await client.delete(
        f"/api/v1/applications/{application_id}",
        headers=get_auth_headers(volunteer_user),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_deletes_approved_application(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    admin_headers = get_auth_headers(admin_user)
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]
    await client.patch(
        f"/api/v1/applications/{application_id}",
        headers=admin_headers,
        json={"status": "approved"},
    )

    response = await client.delete(
        f"/api/v1/applications/{application_id}",
        headers=get_auth_headers(volunteer_user),
    )
    assert response.status_code == 400

    response = await client.delete(f"/api/v1/applications/{application_id}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/v1/applications/{application_id}", headers=admin_headers)
    assert response.status_code == 404

    logs = (await client.get(
        "/api/v1/admin/logs", params={"action": "delete_application"}, headers=admin_headers
    )).json()
    assert logs["total"] == 1
    entry = logs["items"][0]
    assert entry["target_id"] == application_id
    assert entry["changes"] == {"request_id": request_id, "volunteer_id": volunteer_user.id}


@pytest.mark.asyncio
async def test_cannot_withdraw_other_volunteers_application(
    client: AsyncClient, admin_user: User, volunteer_user: User, other_volunteer: User
):
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]

    response = await client.delete(
        f"/api/v1/applications/{application_id}",
        headers=get_auth_headers(other_volunteer),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_completed_application_is_final(
    client: AsyncClient, admin_user: User, volunteer_user: User
):
    admin_headers = get_auth_headers(admin_user)
    request_id = await _published_request(client, admin_user)
    application_id = (await _apply(client, volunteer_user, request_id)).json()["id"]

    for status in ("approved", "completed"):
        response = await client.patch(
            f"/api/v1/applications/{application_id}",
            headers=admin_headers,
            json={"status": status},
        )
        assert response.status_code == 200

    response = await client.patch(
        f"/api/v1/applications/{application_id}",
        headers=admin_headers,
        json={"status": "rejected"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_volunteer_lists_only_own_applications(
    client: AsyncClient, admin_user: User, volunteer_user: User, other_volunteer: User
):
    request_id = await _published_request(client, admin_user)
    await _apply(client, volunteer_user, request_id)
    await _apply(client, other_volunteer, request_id)

    response = await client.get("/api/v1/applications", headers=get_auth_headers(volunteer_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["volunteer_id"] == volunteer_user.id

    response = await client.get(
        "/api/v1/applications",
        params={"volunteer_id": other_volunteer.id},
        headers=get_auth_headers(volunteer_user),
    )
    assert response.status_code == 403

    response = await client.get(
        "/api/v1/applications",
        params={"request_id": request_id},
        headers=get_auth_headers(admin_user),
    )
    assert response.json()["total"] == 2

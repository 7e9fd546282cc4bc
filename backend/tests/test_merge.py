import pytest
from httpx import AsyncClient

from wanshiwu.models.user import User
from tests.conftest import get_auth_headers, submit_request


async def _merge(client: AsyncClient, admin: User, main_id: str, merge_ids: list):
    return await client.post(
        "/api/v1/requests/merge",
        headers=get_auth_headers(admin),
        json={"main_request_id": main_id, "merge_request_ids": merge_ids},
    )


@pytest.mark.asyncio
async def test_merge_duplicates_into_main(client: AsyncClient, admin_user: User):
    headers = get_auth_headers(admin_user)
    r1 = await submit_request(client)
    r2 = await submit_request(client)
    r3 = await submit_request(client)

    response = await _merge(client, admin_user, r1, [r2, r3])
    assert response.status_code == 200
    assert response.json()["data"]["merged_with"] == [r2, r3]

    for merged_id in (r2, r3):
        merged = (await client.get(f"/api/v1/requests/{merged_id}", headers=headers)).json()
        assert merged["is_merged"] is True
        assert merged["merged_with"] == r1

    listing = (await client.get("/api/v1/requests", headers=headers)).json()
    listed_ids = [item["id"] for item in listing["items"]]
    assert listed_ids == [r1]

    listing = (await client.get(
        "/api/v1/requests", params={"include_merged": True}, headers=headers
    )).json()
    assert listing["total"] == 3


@pytest.mark.asyncio
async def test_merge_requires_ids(client: AsyncClient, admin_user: User):
    headers = get_auth_headers(admin_user)
    r1 = await submit_request(client)
    r2 = await submit_request(client)

    response = await _merge(client, admin_user, r1, [])
    assert response.status_code == 400

    for request_id in (r1, r2):
        data = (await client.get(f"/api/v1/requests/{request_id}", headers=headers)).json()
        assert data["is_merged"] is False
        assert data["merged_with"] is None


@pytest.mark.asyncio
async def test_merge_rejects_self(client: AsyncClient, admin_user: User):
    r1 = await submit_request(client)
    r2 = await submit_request(client)

    response = await _merge(client, admin_user, r1, [r2, r1])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_merge_unknown_request(client: AsyncClient, admin_user: User):
    r1 = await submit_request(client)

    response = await _merge(client, admin_user, r1, ["does-not-exist"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_merge_rejects_already_merged(client: AsyncClient, admin_user: User):
    r1 = await submit_request(client)
    r2 = await submit_request(client)
    r3 = await submit_request(client)
    await _merge(client, admin_user, r1, [r2])

    response = await _merge(client, admin_user, r3, [r2])
    assert response.status_code == 409

    response = await _merge(client, admin_user, r2, [r3])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_merge_rejects_main_of_earlier_merge(client: AsyncClient, admin_user: User):
    headers = get_auth_headers(admin_user)
    r1 = await submit_request(client)
    r2 = await submit_request(client)
    r3 = await submit_request(client)
    r4 = await submit_request(client)
    await _merge(client, admin_user, r1, [r2, r3])

    response = await _merge(client, admin_user, r4, [r1])
    assert response.status_code == 409

    r1_data = (await client.get(f"/api/v1/requests/{r1}", headers=headers)).json()
    assert r1_data["is_merged"] is False
    assert r1_data["merged_with"] == [r2, r3]
    r4_data = (await client.get(f"/api/v1/requests/{r4}", headers=headers)).json()
    assert r4_data["merged_with"] is None


@pytest.mark.asyncio
async def test_merge_audit_counts_this_call_only(client: AsyncClient, admin_user: User):
    headers = get_auth_headers(admin_user)
    r1 = await submit_request(client)
    r2 = await submit_request(client)
    r3 = await submit_request(client)
    await _merge(client, admin_user, r1, [r2])
    await _merge(client, admin_user, r1, [r3, r3])

    logs = (await client.get(
        "/api/v1/admin/logs", params={"action": "merge_requests"}, headers=headers
    )).json()
    assert logs["total"] == 2
    changes = sorted((entry["changes"] for entry in logs["items"]), key=lambda c: len(c["merged_with"]))
    assert changes[0] == {"merged_request_ids": [r2], "merged_with": [r2]}
    assert changes[1] == {"merged_request_ids": [r3], "merged_with": [r2, r3]}
    assert all(entry["description"].startswith("將 1 個委托") for entry in logs["items"])


@pytest.mark.asyncio
async def test_merged_request_status_is_frozen(client: AsyncClient, admin_user: User):
    r1 = await submit_request(client)
    r2 = await submit_request(client)
    await _merge(client, admin_user, r1, [r2])

    response = await client.patch(
        f"/api/v1/requests/{r2}",
        headers=get_auth_headers(admin_user),
        json={"status": "open"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_volunteer_cannot_merge(client: AsyncClient, volunteer_user: User):
    r1 = await submit_request(client)
    r2 = await submit_request(client)

    response = await _merge(client, volunteer_user, r1, [r2])
    assert response.status_code == 403

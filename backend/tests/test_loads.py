"""
Load board tests: posting, payment mode selection, listing and withdrawal.
"""

import pytest


@pytest.mark.asyncio
async def test_post_load_defaults_to_escrow(post_load):
    load = await post_load()

    assert load["status"] == "posted"
    assert load["payment_mode"] == "ESCROW"
    assert load["currency"] == "USD"
    assert load["shipper_user_id"] == 5
    assert load["direct_disclaimer_accepted_at"] is None


@pytest.mark.asyncio
async def test_direct_mode_records_disclaimer(post_load):
    load = await post_load(
        payment_mode="direct",
        direct_disclaimer_accepted=True,
        direct_disclaimer_version="2024-06",
    )

    assert load["payment_mode"] == "DIRECT"
    assert load["direct_disclaimer_version"] == "2024-06"
    assert load["direct_disclaimer_accepted_at"] is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"payment_mode": "DIRECT"},
    {"payment_mode": "DIRECT", "direct_disclaimer_accepted": True},
    {"payment_mode": "DIRECT", "direct_disclaimer_accepted": True, "direct_disclaimer_version": "  "},
    {"payment_mode": "CASH_ON_DELIVERY"},
])
async def test_invalid_payment_mode_selection(client, auth_headers, users, overrides):
    body = {
        "species": "sheep",
        "pickup_location": "Wagga",
        "dropoff_location": "Bendigo",
        **overrides,
    }
    response = await client.post("/v1/loads", json=body, headers=auth_headers["shipper"])

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_INPUT"


@pytest.mark.asyncio
async def test_haulers_cannot_post_loads(client, auth_headers, users):
    body = {"species": "goats", "pickup_location": "A", "dropoff_location": "B"}
    response = await client.post("/v1/loads", json=body, headers=auth_headers["carrier"])

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_loads_filters_by_status(client, auth_headers, post_load, assign_load):
    first = await post_load(title="First")
    second = await post_load(title="Second")
    assert (await assign_load(first["id"])).status_code == 200

    response = await client.get("/v1/loads", params={"status": "posted"}, headers=auth_headers["carrier"])
    assert response.status_code == 200
    body = response.json()
    assert [load["id"] for load in body["loads"]] == [second["id"]]
    assert body["total"] == 1

    response = await client.get("/v1/loads", headers=auth_headers["carrier"])
    assert [load["id"] for load in response.json()["loads"]] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_list_loads_mine(client, auth_headers, post_load):
    mine = await post_load()
    await post_load(actor="other_shipper")

    response = await client.get("/v1/loads", params={"mine": "true"}, headers=auth_headers["shipper"])

    assert [load["id"] for load in response.json()["loads"]] == [mine["id"]]


@pytest.mark.asyncio
async def test_get_load(client, auth_headers, post_load):
    load = await post_load()

    response = await client.get(f"/v1/loads/{load['id']}", headers=auth_headers["carrier"])
    assert response.status_code == 200
    assert response.json()["title"] == "Feeder steers"

    missing = await client.get("/v1/loads/999", headers=auth_headers["carrier"])
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_deleted_load_is_hidden(client, auth_headers, post_load):
    load = await post_load()

    response = await client.delete(f"/v1/loads/{load['id']}", headers=auth_headers["shipper"])
    assert response.status_code == 200

    assert (await client.get(f"/v1/loads/{load['id']}", headers=auth_headers["shipper"])).status_code == 404
    listed = await client.get("/v1/loads", headers=auth_headers["shipper"])
    assert listed.json()["total"] == 0


@pytest.mark.asyncio
async def test_matched_load_cannot_be_withdrawn(client, auth_headers, post_load, assign_load):
    load = await post_load()
    assert (await assign_load(load["id"])).status_code == 200

    response = await client.delete(f"/v1/loads/{load['id']}", headers=auth_headers["shipper"])

    assert response.status_code == 409
    assert response.json()["details"]["status"] == "matched"


@pytest.mark.asyncio
async def test_only_owner_can_withdraw(client, auth_headers, post_load):
    load = await post_load()

    response = await client.delete(f"/v1/loads/{load['id']}", headers=auth_headers["other_shipper"])

    assert response.status_code == 403

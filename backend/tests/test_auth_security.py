"""
Authentication and token revocation tests.
"""

import pytest
from datetime import timedelta
from backend.app.core.jwt import create_access_token
from backend.app.core.token_revocation import revoke_token, USER_TOKENS_PREFIX
from backend.app.models.user import User


@pytest.mark.asyncio
async def test_valid_token_identifies_actor(client, auth_headers):
    response = await client.get("/auth/me", headers=auth_headers["shipper"])

    assert response.status_code == 200
    assert response.json()["authenticated_user"]["user_id"] == 5
    assert response.json()["authenticated_user"]["role"] == "SHIPPER"


@pytest.mark.asyncio
async def test_missing_token(client, users):
    response = await client.get("/v1/loads")

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


@pytest.mark.asyncio
async def test_garbage_and_expired_tokens(client, users):
    garbage = await client.get("/v1/loads", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401

    expired = create_access_token(
        {"sub": "shipper", "user_id": 5, "role": "SHIPPER"}, expires_delta=timedelta(minutes=-5)
    )
    response = await client.get("/v1/loads", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_revoked_token_loses_access_immediately(client, auth_headers):
    headers = auth_headers["shipper"]
    assert (await client.get("/v1/loads", headers=headers)).status_code == 200

    token = headers["Authorization"].split(" ", 1)[1]
    assert await revoke_token(token, 5) is True

    response = await client.get("/v1/loads", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Token has been revoked"


@pytest.mark.asyncio
async def test_blocked_user_loses_access(client, auth_headers, redis_client_session):
    await redis_client_session.set(f"{USER_TOKENS_PREFIX}7:revoked", "1")

    response = await client.get("/v1/loads", headers=auth_headers["carrier"])

    assert response.status_code == 401
    assert response.json()["message"] == "User access has been revoked"


@pytest.mark.asyncio
async def test_inactive_user_is_forbidden(client, db_session, auth_headers, users):
    user = await db_session.get(User, 9)
    user.is_active = False
    await db_session.commit()

    response = await client.get("/v1/loads", headers=auth_headers["other_carrier"])

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_token_for_unknown_user(client, users):
    token = create_access_token({"sub": "ghost", "user_id": 404, "role": "SHIPPER"})

    response = await client.get("/v1/loads", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_role_guard_on_load_posting(client, auth_headers):
    response = await client.post(
        "/v1/loads",
        json={"species": "cattle", "pickup_location": "A", "dropoff_location": "B"},
        headers=auth_headers["carrier"],
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

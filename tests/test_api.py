"""HTTP surface: auth, ownership and the transfer endpoints end to end."""

import pytest

from app.core.config import get_settings

pytestmark = pytest.mark.asyncio


async def _register(client, handle="casey"):
    r = await client.post(
        "/v1/auth/register",
        json={"name": "Casey Doe", "email": f"{handle}@example.com", "username": handle, "password": "secret123"},
    )
    assert r.status_code == 200, r.text
    client.cookies.clear()
    body = r.json()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}


async def test_register_login_and_profile(client):
    user, headers = await _register(client)
    assert set(user["accounts"]) >= {"checking", "savings"}
    assert "password_hash" not in user

    r = await client.post("/v1/auth/login", json={"username": "casey", "password": "secret123"})
    assert r.status_code == 200
    assert r.cookies.get("northbank_session")
    client.cookies.clear()

    r = await client.get(f"/v1/users/{user['id']}", headers=headers)
    assert r.status_code == 200
    profile = r.json()
    assert profile["accounts"]["bitcoin"]["balance"] == 0
    assert len(profile["accounts"]["checking"]["account_number"]) == 10


async def test_bad_login(client):
    await _register(client)
    r = await client.post("/v1/auth/login", json={"email": "casey@example.com", "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"


async def test_missing_token_and_foreign_user(client):
    user, headers = await _register(client, "owner")
    other, _ = await _register(client, "other")
    r = await client.get(f"/v1/users/{user['id']}")
    assert r.status_code == 401
    r = await client.post(f"/v1/users/{other['id']}/deposit", json={"amount": 10}, headers=headers)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN"


async def test_deposit_transfer_and_feed(client):
    user, headers = await _register(client)
    uid = user["id"]
    r = await client.post(f"/v1/users/{uid}/deposit", json={"amount": "500"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["new_balance"] == 500

    r = await client.post(
        f"/v1/users/{uid}/transfer",
        json={"from": "checking", "to": "savings", "amount": 120.5, "memo": "save"},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["from_balance"] == 379.5
    assert body["to_balance"] == 120.5
    assert [t["kind"] for t in body["transactions"]] == ["Transfer Out", "Transfer In"]

    r = await client.get(f"/v1/users/{uid}/transactions", params={"limit": 2}, headers=headers)
    page = r.json()
    assert page["total"] == 3
    assert len(page["items"]) == 2
    assert [t["kind"] for t in page["items"]] == ["Transfer Out", "Transfer In"]
    assert page["items"][0]["amount"] == -120.5


async def test_transfer_errors_map_to_400(client):
    user, headers = await _register(client)
    uid = user["id"]
    r = await client.post(f"/v1/users/{uid}/zelle", json={"recipient": "pal", "amount": 5}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INSUFFICIENT_FUNDS"

    r = await client.post(
        f"/v1/users/{uid}/transfer", json={"from": "savings", "to": "savings", "amount": 5}, headers=headers
    )
    assert r.json()["error"]["code"] == "INVALID_AMOUNT"

    r = await client.post(
        f"/v1/users/{uid}/transfer", json={"from": "checking", "to": "bitcoin", "amount": 5}, headers=headers
    )
    assert r.json()["error"]["code"] == "INVALID_ACCOUNT_TYPE"

    r = await client.post(f"/v1/users/{uid}/wire", json={"recipient_name": "x"}, headers=headers)
    assert r.status_code == 422

    r = await client.post(
        f"/v1/users/{uid}/deposit", json={"amount": "1.0000000000000000000000000000000000001"}, headers=headers
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_AMOUNT"


async def test_bitcoin_buy_endpoint(client):
    user, headers = await _register(client)
    uid = user["id"]
    await client.post(f"/v1/users/{uid}/deposit", json={"amount": 500}, headers=headers)
    r = await client.post(
        f"/v1/users/{uid}/bitcoin/buy", json={"usd_amount": 100, "btc_amount": "0.002"}, headers=headers
    )
    assert r.status_code == 200
    assert r.json()["checking_balance"] == 400
    assert r.json()["bitcoin_balance"] == 0.002


async def test_admin_endpoints(client):
    user, _ = await _register(client)
    uid = user["id"]
    r = await client.post("/v1/auth/admin", json={"pin": "0000"})
    assert r.status_code == 401
    r = await client.post("/v1/auth/admin", json={"pin": get_settings().admin_pin})
    admin = {"Authorization": f"Bearer {r.json()['token']}"}

    r = await client.post(
        f"/v1/admin/users/{uid}/update-balance", json={"account_type": "checking", "amount": -25}, headers=admin
    )
    assert r.status_code == 200
    assert r.json()["balance"] == -25

    r = await client.post(
        "/v1/admin/transfer",
        json={"account_number": user["accounts"]["savings"]["account_number"], "account_type": "savings", "amount": -1},
        headers=admin,
    )
    assert r.json()["error"]["code"] == "INSUFFICIENT_FUNDS"

    r = await client.get("/v1/admin/transactions", headers=admin)
    assert r.json()["items"][0]["user_id"] == uid

    r = await client.post("/v1/admin/migrate-accounts", headers=admin)
    assert r.json()["scanned"] == 1

    r = await client.post(f"/v1/admin/users/{uid}/toggle-suspend", headers=admin)
    assert r.json()["status"] == "suspended"


async def test_user_token_is_not_admin(client):
    _, headers = await _register(client)
    r = await client.get("/v1/admin/users", headers=headers)
    assert r.status_code == 403


async def test_password_reset_invalidates_token(client):
    user, headers = await _register(client)
    r = await client.post("/v1/auth/admin", json={"pin": get_settings().admin_pin})
    admin = {"Authorization": f"Bearer {r.json()['token']}"}
    r = await client.post(f"/v1/admin/users/{user['id']}/reset-password", json={"new_password": "fresh-pass"}, headers=admin)
    assert r.status_code == 200
    r = await client.get(f"/v1/users/{user['id']}", headers=headers)
    assert r.status_code == 401


async def test_goals_budget_notifications_routes(client):
    user, headers = await _register(client)
    uid = user["id"]
    r = await client.post(
        f"/v1/users/{uid}/savings-goals",
        json={"name": "Trip", "target_amount": 200, "target_date": "2030-01-01T00:00:00"},
        headers=headers,
    )
    goal_id = r.json()[0]["id"]
    r = await client.patch(f"/v1/users/{uid}/savings-goals/{goal_id}", json={"current_amount": 200}, headers=headers)
    assert r.json()["status"] == "completed"

    r = await client.post(f"/v1/users/{uid}/budget", json={"monthly_limit": 900}, headers=headers)
    assert r.json()["budget"]["monthly_limit"] == 900

    await client.post(f"/v1/users/{uid}/deposit", json={"amount": 5}, headers=headers)
    r = await client.get(f"/v1/users/{uid}/notifications", headers=headers)
    nid = r.json()[0]["id"]
    r = await client.post(f"/v1/users/{uid}/notifications/{nid}/read", headers=headers)
    assert r.json() == {"ok": True}
    r = await client.post(f"/v1/users/{uid}/notifications/missing/read", headers=headers)
    assert r.status_code == 404

    r = await client.get(f"/v1/users/{uid}/analytics", headers=headers)
    assert r.json()["usd_balance"] == 5

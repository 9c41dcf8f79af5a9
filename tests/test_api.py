"""
HTTP surface tests: endpoint behaviour and the error-to-status mapping.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from wagerhub.core.throttle import SettlementThrottle
from wagerhub.main import create_app

from conftest import make_payload


@pytest.fixture
def app(database, provider):
    return create_app(database=database, identity_provider=provider)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def crash_win(bet="10.00", multiplier="2.00"):
    return make_payload("crash", bet, multiplier, game_data={"crashedAt": "3.00"})


# ==================== Accounts ====================


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_security_headers(client):
    response = client.get("/api/health")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "default-src 'none'" in response.headers["Content-Security-Policy"]


def test_provision_account(client, provider):
    token = provider.issue("new-player", email="new@example.com", name="New Player")

    created = client.post("/api/user", headers=auth(token), json={"displayName": "Lucky"})
    assert created.status_code == 200
    body = created.json()
    assert body["balance"] == "1000.00"
    assert body["displayName"] == "Lucky"
    assert body["email"] == "new@example.com"

    again = client.post("/api/user", headers=auth(token))
    assert again.json()["id"] == body["id"]


def test_profile_requires_account(client, provider):
    response = client.get("/api/user/profile", headers=auth(provider.issue("ghost")))
    assert response.status_code == 404
    assert response.json()["error"] == "account_not_found"


def test_profile(client, open_account):
    account, token = open_account(balance="42.50")
    response = client.get("/api/user/profile", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["balance"] == "42.50"
    assert response.json()["id"] == account.id


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer nope"}, {"Authorization": "Basic abc"}])
def test_unauthenticated(client, headers):
    response = client.post("/api/game/result", headers=headers, json=crash_win())
    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"


# ==================== Settlement ====================


def test_settle_and_read_back(client, open_account):
    _, token = open_account(balance="100.00")
    payload = make_payload("mines", "10.00", "1.2913", game_data={"mineCount": 3, "tilesRevealed": 2})

    response = client.post("/api/game/result", headers=auth(token), json=payload)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["newBalance"] == "102.91"
    assert body["message"] == "Congratulations!"

    history = client.get("/api/game/history?limit=5", headers=auth(token))
    assert history.status_code == 200
    records = history.json()
    assert len(records) == 1
    assert records[0] == body["historyRecord"]

    stats = client.get("/api/user/stats", headers=auth(token)).json()
    assert stats["totalGames"] == 1
    assert stats["gamesByType"] == {"mines": 1}
    assert stats["winRate"] == 100.0


def test_malformed_json_body(client, open_account):
    _, token = open_account()
    response = client.post(
        "/api/game/result",
        headers={**auth(token), "Content-Type": "application/json"},
        content=b"{not json",
    )
    assert response.status_code == 400
    assert response.json()["error"] == "malformed_request"


def test_malformed_fields_list_violations(client, open_account):
    _, token = open_account()
    response = client.post("/api/game/result", headers=auth(token), json={**crash_win(), "betAmount": "-1"})
    assert response.status_code == 400
    assert any(v.startswith("betAmount") for v in response.json()["violations"])


def test_invalid_outcome(client, open_account):
    _, token = open_account()
    payload = make_payload(
        "limbo", 10, 2, is_win=True, game_data={"targetMultiplier": 2, "resultMultiplier": "1.5"}
    )
    response = client.post("/api/game/result", headers=auth(token), json=payload)
    assert response.status_code == 422
    assert response.json() == {
        "success": False,
        "error": "invalid_outcome",
        "message": "Invalid win condition",
    }


def test_insufficient_balance(client, ledger, open_account):
    account, token = open_account(balance="5.00")
    response = client.post("/api/game/result", headers=auth(token), json=crash_win(bet="10.00"))
    assert response.status_code == 409
    assert response.json()["message"] == "Insufficient balance"
    assert ledger.get_account(account.id).balance == Decimal("5.00")


def test_unprovisioned_identity_cannot_settle(client, provider):
    response = client.post("/api/game/result", headers=auth(provider.issue("ghost")), json=crash_win())
    assert response.status_code == 404


def test_too_frequent_sets_retry_after(app, client, open_account):
    app.state.pipeline.throttle = SettlementThrottle(min_interval=30)
    _, token = open_account()

    assert client.post("/api/game/result", headers=auth(token), json=crash_win()).status_code == 200
    response = client.post("/api/game/result", headers=auth(token), json=crash_win())

    assert response.status_code == 429
    assert response.json()["error"] == "too_frequent"
    assert 1 <= int(response.headers["Retry-After"]) <= 30


def test_history_limit_is_clamped(client, open_account):
    _, token = open_account(balance="1000.00")
    for _ in range(3):
        loss = make_payload("crash", "1.00", "0", game_data={"crashedAt": "1.00"})
        assert client.post("/api/game/result", headers=auth(token), json=loss).status_code == 200

    assert len(client.get("/api/game/history?limit=2", headers=auth(token)).json()) == 2
    assert len(client.get("/api/game/history?limit=0", headers=auth(token)).json()) == 1
    assert len(client.get("/api/game/history", headers=auth(token)).json()) == 3


def test_unexpected_error_is_internal(app, open_account, monkeypatch):
    _, token = open_account()

    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(app.state.pipeline.history, "stats_for", explode)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/user/stats", headers=auth(token))
    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"


@pytest.mark.asyncio
async def test_settle_over_asgi_transport(app, open_account):
    _, token = open_account(balance="50.00")
    payload = make_payload("hilo", "5.00", "1.9", game_data={"streak": 3, "recentCards": ["4H", "9S"]})

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/game/result", headers=auth(token), json=payload)

    assert response.status_code == 200
    assert response.json()["newBalance"] == "54.50"
    assert response.json()["historyRecord"]["gameData"]["recentCards"] == ["4H", "9S"]

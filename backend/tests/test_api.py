"""Tests for API endpoints."""
import inspect
import logging
from decimal import Decimal

import pytest
from limits import parse

from truebalance import ratelimit
from truebalance.dependencies import get_token_cipher
from truebalance.errors import ProviderAuthError, ProviderTimeout, ProviderUnavailable
from truebalance.main import app
from truebalance.utils.crypto import TokenCipher


def connect(client, headers, credential="token_abc"):
    return client.post("/connect", json={"accessCredential": credential}, headers=headers)


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_register_login_profile_logout(client):
    credentials = {"email": "frank@example.com", "password": "correct-horse"}
    register = client.post("/auth/register", json=credentials)
    assert register.status_code == 201
    assert register.json()["user"]["email"] == "frank@example.com"

    duplicate = client.post("/auth/register", json=credentials)
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "already_exists"

    login = client.post("/auth/login", json=credentials)
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    profile = client.get("/user/profile", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["email"] == "frank@example.com"
    assert "createdAt" in profile.json()
    assert "passwordHash" not in profile.json()

    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/user/profile", headers=headers).status_code == 403


def test_login_wrong_password(client, auth_headers):
    response = client.post("/auth/login", json={"email": "bob@example.com", "password": "wrong-horse"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


@pytest.mark.parametrize("body", [
    {"email": "not-an-email", "password": "correct-horse"},
    {"email": "gina@example.com", "password": "short"},
])
def test_register_validation(client, body):
    assert client.post("/auth/register", json=body).status_code == 422


def test_protected_routes_require_token(client):
    assert client.get("/accounts").status_code == 401
    assert client.get("/transactions").status_code == 401
    assert client.post("/sync", json={}).status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/accounts", headers=bad).status_code == 403


def test_connect_config(client):
    response = client.get("/connect/config")
    assert response.status_code == 200
    assert set(response.json()) == {"applicationId", "environment", "connectUrl"}


def test_connect_syncs_accounts_and_transactions(client, auth_headers):
    response = connect(client, auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "accounts": 2, "transactions": 5}

    accounts = client.get("/accounts", headers=auth_headers).json()
    assert len(accounts) == 2
    checking = next(a for a in accounts if a["externalId"] == "acc_mock_checking")
    assert checking["balance"] == "1250.50"
    assert checking["type"] == "checking"
    assert checking["isActive"] is True
    assert checking["lastSyncAt"] is not None


def test_connect_stores_credential_encrypted(client, auth_headers, database):
    connect(client, auth_headers, credential="token_secret_value")
    user = database.users.get_user_by_email("bob@example.com")
    stored = database.users.get_provider_token(user.id)
    assert stored and "token_secret_value" not in stored


def test_sync_is_idempotent(client, auth_headers):
    connect(client, auth_headers)
    response = client.post("/sync", json={}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "accounts": 2, "transactions": 0}
    assert len(client.get("/accounts", headers=auth_headers).json()) == 2
    assert len(client.get("/transactions", headers=auth_headers).json()) == 5


def test_sync_without_connection_is_not_found(client, auth_headers):
    response = client.post("/sync", json={}, headers=auth_headers)
    assert response.status_code == 404


def test_sync_scoped_to_account(client, auth_headers, provider):
    connect(client, auth_headers)
    accounts = client.get("/accounts", headers=auth_headers).json()
    checking = next(a for a in accounts if a["externalId"] == "acc_mock_checking")

    provider.calls.clear()
    response = client.post("/sync", json={"accountId": checking["id"]}, headers=auth_headers)
    assert response.status_code == 200
    assert ("list_transactions", "acc_mock_credit") not in provider.calls
    assert ("list_transactions", "acc_mock_checking") in provider.calls


def test_sync_unknown_account(client, auth_headers):
    connect(client, auth_headers)
    response = client.post("/sync", json={"accountId": "nope"}, headers=auth_headers)
    assert response.status_code == 404


def test_transactions_newest_first_and_limit(client, auth_headers):
    connect(client, auth_headers)
    transactions = client.get("/transactions", headers=auth_headers).json()
    dates = [t["date"] for t in transactions]
    assert dates == sorted(dates, reverse=True)
    assert {t["category"] for t in transactions} >= {"food", "housing", "transportation"}

    limited = client.get("/transactions", params={"limit": 2}, headers=auth_headers).json()
    assert len(limited) == 2


@pytest.mark.parametrize("limit,expected", [(0, 1), (-5, 1), (10000, 5)])
def test_transactions_limit_is_clamped(client, auth_headers, limit, expected):
    connect(client, auth_headers)
    response = client.get("/transactions", params={"limit": limit}, headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()) == expected


def test_account_transactions(client, auth_headers):
    connect(client, auth_headers)
    accounts = client.get("/accounts", headers=auth_headers).json()
    credit = next(a for a in accounts if a["externalId"] == "acc_mock_credit")
    response = client.get(f"/accounts/{credit['id']}/transactions", headers=auth_headers)
    assert response.status_code == 200
    assert {t["accountId"] for t in response.json()} == {credit["id"]}
    assert len(response.json()) == 2


def test_live_balance_bypasses_local_data(client, auth_headers, provider):
    connect(client, auth_headers)
    accounts = client.get("/accounts", headers=auth_headers).json()
    checking = next(a for a in accounts if a["externalId"] == "acc_mock_checking")

    provider.accounts[0].balance.ledger = Decimal("99.99")
    response = client.get(f"/accounts/{checking['id']}/balance", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["accountId"] == checking["id"]
    assert body["balance"] == "99.99"
    assert "lastUpdated" in body

    # Stored snapshot untouched
    stored = client.get("/accounts", headers=auth_headers).json()
    assert next(a for a in stored if a["id"] == checking["id"])["balance"] == "1250.50"


def test_balance_for_unknown_account(client, auth_headers):
    connect(client, auth_headers)
    assert client.get("/accounts/nope/balance", headers=auth_headers).status_code == 404


def test_users_cannot_see_each_others_accounts(client, auth_headers):
    connect(client, auth_headers)
    other = client.post("/auth/register", json={"email": "hank@example.com", "password": "correct-horse"})
    other_headers = {"Authorization": f"Bearer {other.json()['token']}"}
    assert client.get("/accounts", headers=other_headers).json() == []
    assert client.get("/transactions", headers=other_headers).json() == []


@pytest.mark.parametrize("error,status,code", [
    (ProviderAuthError(), 409, "reconnect_required"),
    (ProviderUnavailable(), 503, "provider_unavailable"),
    (ProviderTimeout(), 504, "provider_timeout"),
])
def test_provider_errors_map_to_status(client, auth_headers, provider, error, status, code):
    connect(client, auth_headers)
    provider.fail("list_accounts", error)
    response = client.post("/sync", json={}, headers=auth_headers)
    assert response.status_code == status
    assert response.json()["code"] == code
    assert "token_abc" not in response.text


def test_disconnect_then_sync_needs_reconnect(client, auth_headers):
    connect(client, auth_headers)
    assert client.delete("/connect", headers=auth_headers).json() == {"success": True}
    assert client.post("/sync", json={}, headers=auth_headers).status_code == 404
    # Synced data stays
    assert len(client.get("/accounts", headers=auth_headers).json()) == 2


def test_unreadable_credential_treated_as_absent(client, auth_headers):
    connect(client, auth_headers)
    app.dependency_overrides[get_token_cipher] = lambda: TokenCipher("rotated-secret")
    response = client.post("/sync", json={}, headers=auth_headers)
    assert response.status_code == 404
    assert "connect your bank" in response.json()["error"]


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]


def test_requests_are_logged_without_bodies(client, caplog):
    caplog.set_level(logging.INFO, logger="truebalance.access")
    credentials = {"email": "ivy@example.com", "password": "correct-horse"}
    token = client.post("/auth/register", json=credentials).json()["token"]
    client.get("/health")

    assert "POST /auth/register 201 in" in caplog.text
    assert "GET /health 200 in" in caplog.text
    assert "correct-horse" not in caplog.text
    assert token not in caplog.text


def test_register_rate_limit(client, rate_limits):
    for i in range(3):
        response = client.post("/auth/register", json={"email": f"user{i}@example.com", "password": "correct-horse"})
        assert response.status_code == 201

    response = client.post("/auth/register", json={"email": "user3@example.com", "password": "correct-horse"})
    assert response.status_code == 429
    assert response.json()["code"] == "rate_limited"


def test_failed_logins_are_throttled(client, rate_limits):
    credentials = {"email": "jack@example.com", "password": "correct-horse"}
    client.post("/auth/register", json=credentials)

    for _ in range(5):
        response = client.post("/auth/login", json={**credentials, "password": "wrong-horse"})
        assert response.status_code == 401

    # Even the right password is refused once the window is full
    response = client.post("/auth/login", json=credentials)
    assert response.status_code == 429
    assert "login attempts" in response.json()["error"]


def test_successful_logins_are_not_counted(client, rate_limits):
    credentials = {"email": "kate@example.com", "password": "correct-horse"}
    client.post("/auth/register", json=credentials)
    for _ in range(8):
        assert client.post("/auth/login", json=credentials).status_code == 200


def test_api_rate_limit_exempts_health(client, rate_limits, monkeypatch):
    monkeypatch.setattr(ratelimit, "API_LIMIT", parse("3 per minute"))
    for _ in range(3):
        assert client.get("/").status_code == 200
    assert client.get("/").status_code == 429
    assert client.get("/health").status_code == 200


@pytest.mark.parametrize("endpoint", ["register", "login", "logout", "list_accounts", "list_transactions"])
def test_blocking_routes_run_in_threadpool(endpoint):
    """bcrypt and SQLite-only routes are plain functions, which FastAPI runs off the event loop."""
    route = next(r for r in app.routes if getattr(r, "name", None) == endpoint)
    assert not inspect.iscoroutinefunction(route.endpoint)

"""API tests for /accounts and /health endpoints."""

from uuid import uuid4

from genledger.domains.accounts.tests.conftest import DEFAULT_ACCOUNT_ID, _make_account


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Request-ID"]


def test_signup(client, fake_account_repo):
    response = client.post("/accounts/", json={"email": "new@example.com"})

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new@example.com"
    assert body["credit_balance"] == 100
    assert body["tier"] == "free"
    assert fake_account_repo.call_count("create") == 1


def test_deactivate(client, fake_account_repo):
    account = _make_account()
    fake_account_repo.seed(account)
    headers = {"X-Account-ID": str(DEFAULT_ACCOUNT_ID)}

    response = client.delete("/accounts/me", headers=headers)

    assert response.status_code == 204
    assert account.is_active is False
    assert client.get("/billing/credits", headers=headers).status_code == 404


def test_deactivate_unknown(client):
    response = client.delete("/accounts/me", headers={"X-Account-ID": str(uuid4())})

    assert response.status_code == 404

"""Shared pytest fixtures."""
import os

# Must be set before truebalance.config is imported
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("TELLER_TOKEN_KEY", "test-token-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("PROVIDER", "mock")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from truebalance.adapters.mock import MockProviderClient
from truebalance.dependencies import get_provider_client
from truebalance.main import app
from truebalance.models.provider import RemoteAccount, RemoteBalance, RemoteTransaction
from truebalance.ratelimit import limiter
from truebalance.storage.database import Database, get_db


@pytest.fixture
def database(tmp_path):
    """Create a test database instance."""
    return Database(str(tmp_path / "test_truebalance.db"))


@pytest.fixture
def user(database):
    """A stored user to own accounts."""
    return database.users.create_user("alice@example.com", "not-a-real-hash")


@pytest.fixture
def remote_account():
    """Factory for provider accounts."""
    def make(
        account_id="acc_checking",
        ledger="100.00",
        status="open",
        name="Everyday Checking",
        type="depository",
        subtype="checking",
    ):
        return RemoteAccount(
            id=account_id,
            name=name,
            type=type,
            subtype=subtype,
            balance=RemoteBalance(ledger=Decimal(ledger), available=Decimal(ledger)),
            currency="USD",
            status=status,
        )
    return make


@pytest.fixture
def remote_transaction():
    """Factory for provider transactions."""
    def make(
        tx_id,
        amount="-10.00",
        description="Random Store XYZ",
        date="2024-01-15",
        type="debit",
        status="posted",
        account_id="acc_checking",
    ):
        return RemoteTransaction(
            id=tx_id,
            account_id=account_id,
            amount=Decimal(amount),
            date=date,
            description=description,
            type=type,
            status=status,
        )
    return make


@pytest.fixture
def provider():
    """Mock provider with two accounts and five transactions."""
    return MockProviderClient.with_sample_data()


@pytest.fixture
def client(database, provider):
    """API client wired to the temporary database and mock provider."""
    app.dependency_overrides[get_db] = lambda: database
    app.dependency_overrides[get_provider_client] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Register a user through the API and return its bearer header."""
    response = client.post(
        "/auth/register",
        json={"email": "bob@example.com", "password": "correct-horse"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def rate_limits():
    """Turn rate limiting on with empty windows for one test."""
    limiter.reset()
    limiter.enabled = True
    yield limiter
    limiter.enabled = False
    limiter.reset()
